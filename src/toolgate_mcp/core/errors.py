"""Exception types raised by the catalog layer."""

from typing import Optional


class ToolgateError(Exception):
    """Base class for toolgate errors."""


class ToolNotFoundError(ToolgateError):
    """The requested tool is not part of the active catalog view."""

    def __init__(self, tool_name: str, reason: Optional[str] = None):
        message = f"Tool '{tool_name}' not found"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.tool_name = tool_name
        self.reason = reason


class ActionDeniedError(ToolgateError):
    """A denied action reached execution."""

    def __init__(self, tool_name: str, action: str):
        super().__init__(f"Action '{action}' is not allowed for tool '{tool_name}'")
        self.tool_name = tool_name
        self.action = action


class RegistryLoadError(ToolgateError):
    """A configured registry module could not provide a registry."""

    def __init__(self, module_path: str, reason: str):
        super().__init__(f"Cannot load registry from '{module_path}': {reason}")
        self.module_path = module_path
        self.reason = reason


__all__ = [
    "ToolgateError",
    "ToolNotFoundError",
    "ActionDeniedError",
    "RegistryLoadError",
]
