"""
Browser domain.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chrome_devtools.domains.target import CommandSender


class BrowserVersion(BaseModel):
    """Result of ``Browser.getVersion``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    protocol_version: str
    product: str
    revision: str = ""
    user_agent: str = ""
    js_version: str = ""

    @property
    def is_headless(self) -> bool:
        return self.product.startswith("HeadlessChrome")


class BrowserApi:
    """Browser domain commands."""

    def __init__(self, client: CommandSender) -> None:
        self._client = client

    async def get_version(self) -> BrowserVersion:
        result = await self._client.send("Browser.getVersion")
        return BrowserVersion.model_validate(result)

    async def close(self) -> None:
        """Ask the browser to close gracefully."""
        await self._client.send("Browser.close")
