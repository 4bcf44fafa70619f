"""
Target domain.

Typed wrappers for the Target commands the connection layer relies on to
discover, create and attach to browser targets.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CommandSender(Protocol):
    async def send(
        self, method: str, params: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]: ...


class TargetInfo(BaseModel):
    """Description of an inspectable target (page, worker, iframe...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_id: str
    type: str
    title: str = ""
    url: str = ""
    attached: bool = False
    opener_id: Optional[str] = None
    can_access_opener: bool = False
    browser_context_id: Optional[str] = None
    subtype: Optional[str] = None

    @property
    def is_page(self) -> bool:
        return self.type == "page"


class AttachedToTarget(BaseModel):
    """Params of the ``Target.attachedToTarget`` event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    target_info: TargetInfo
    waiting_for_debugger: bool = False


class DetachedFromTarget(BaseModel):
    """Params of the ``Target.detachedFromTarget`` event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    target_id: Optional[str] = None


class TargetApi:
    """Target domain commands."""

    ATTACHED_TO_TARGET = "Target.attachedToTarget"
    DETACHED_FROM_TARGET = "Target.detachedFromTarget"
    TARGET_CREATED = "Target.targetCreated"
    TARGET_DESTROYED = "Target.targetDestroyed"
    TARGET_INFO_CHANGED = "Target.targetInfoChanged"

    def __init__(self, client: CommandSender) -> None:
        self._client = client

    async def get_targets(self) -> list[TargetInfo]:
        result = await self._client.send("Target.getTargets")
        return [TargetInfo.model_validate(t) for t in result.get("targetInfos", [])]

    async def get_target_info(self, target_id: Optional[str] = None) -> TargetInfo:
        params = {"targetId": target_id} if target_id else {}
        result = await self._client.send("Target.getTargetInfo", params)
        return TargetInfo.model_validate(result["targetInfo"])

    async def create_target(
        self,
        url: str = "about:blank",
        *,
        width: Optional[int] = None,
        height: Optional[int] = None,
        browser_context_id: Optional[str] = None,
        new_window: Optional[bool] = None,
        background: Optional[bool] = None,
    ) -> str:
        """Open a new target and return its id."""
        params: dict[str, Any] = {"url": url}
        if width is not None:
            params["width"] = width
        if height is not None:
            params["height"] = height
        if browser_context_id is not None:
            params["browserContextId"] = browser_context_id
        if new_window is not None:
            params["newWindow"] = new_window
        if background is not None:
            params["background"] = background

        result = await self._client.send("Target.createTarget", params)
        return result["targetId"]

    async def close_target(self, target_id: str) -> bool:
        result = await self._client.send("Target.closeTarget", {"targetId": target_id})
        # removed from recent protocol versions, absent means success
        return bool(result.get("success", True))

    async def activate_target(self, target_id: str) -> None:
        await self._client.send("Target.activateTarget", {"targetId": target_id})

    async def attach_to_target(self, target_id: str, *, flatten: bool = True) -> str:
        """Attach to a target and return the new session id."""
        result = await self._client.send(
            "Target.attachToTarget",
            {"targetId": target_id, "flatten": flatten},
        )
        return result["sessionId"]

    async def detach_from_target(self, session_id: str) -> None:
        await self._client.send("Target.detachFromTarget", {"sessionId": session_id})

    async def set_discover_targets(self, discover: bool) -> None:
        await self._client.send("Target.setDiscoverTargets", {"discover": discover})

    async def set_auto_attach(
        self,
        auto_attach: bool,
        *,
        wait_for_debugger_on_start: bool = False,
        flatten: bool = True,
    ) -> None:
        await self._client.send(
            "Target.setAutoAttach",
            {
                "autoAttach": auto_attach,
                "waitForDebuggerOnStart": wait_for_debugger_on_start,
                "flatten": flatten,
            },
        )

    async def create_browser_context(
        self,
        *,
        dispose_on_detach: Optional[bool] = None,
        proxy_server: Optional[str] = None,
        proxy_bypass_list: Optional[str] = None,
    ) -> str:
        """Create an isolated (incognito-like) browser context."""
        params: dict[str, Any] = {}
        if dispose_on_detach is not None:
            params["disposeOnDetach"] = dispose_on_detach
        if proxy_server is not None:
            params["proxyServer"] = proxy_server
        if proxy_bypass_list is not None:
            params["proxyBypassList"] = proxy_bypass_list

        result = await self._client.send("Target.createBrowserContext", params)
        return result["browserContextId"]

    async def get_browser_contexts(self) -> list[str]:
        result = await self._client.send("Target.getBrowserContexts")
        return list(result.get("browserContextIds", []))

    async def dispose_browser_context(self, browser_context_id: str) -> None:
        await self._client.send(
            "Target.disposeBrowserContext",
            {"browserContextId": browser_context_id},
        )
