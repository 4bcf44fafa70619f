"""
Typed wrappers for the CDP domains used by the connection layer.
"""

from chrome_devtools.domains.browser import BrowserApi, BrowserVersion
from chrome_devtools.domains.target import (
    AttachedToTarget,
    CommandSender,
    DetachedFromTarget,
    TargetApi,
    TargetInfo,
)

__all__ = [
    "AttachedToTarget",
    "BrowserApi",
    "BrowserVersion",
    "CommandSender",
    "DetachedFromTarget",
    "TargetApi",
    "TargetInfo",
]
