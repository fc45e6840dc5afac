"""Error types raised by the hook dispatcher."""

from __future__ import annotations


class HookError(Exception):
    """Base class for dispatcher errors."""


class HookTargetError(HookError, LookupError):
    """A registration points at a function or method that does not exist."""

    def __init__(self, hook_name: str, target: str, reason: str) -> None:
        super().__init__(f"Hook '{hook_name}' cannot call '{target}': {reason}")
        self.hook_name = hook_name
        self.target = target


class ConfigError(HookError, ValueError):
    pass


class TemplateNotFoundError(HookError, LookupError):
    pass
