"""In-process extension-point dispatcher."""

from hookrelay.dispatcher import HookDispatcher
from hookrelay.errors import ConfigError, HookError, HookTargetError, TemplateNotFoundError
from hookrelay.handlers import HandlerCache, HookHandler, hook_method, install_handler
from hookrelay.models import BehaviorRegistration, FireResult, HookKind, HookRegistration

__all__ = [
    "BehaviorRegistration",
    "ConfigError",
    "FireResult",
    "HandlerCache",
    "HookDispatcher",
    "HookError",
    "HookHandler",
    "HookKind",
    "HookRegistration",
    "HookTargetError",
    "TemplateNotFoundError",
    "hook_method",
    "install_handler",
]
