"""Handler classes and the lazily populated handler instance cache."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from threading import RLock
from typing import TYPE_CHECKING, Any, TypeVar

from hookrelay.errors import HookError
from hookrelay.models import CLASS_PARAM, DEFAULT_PRIORITY, DELEGATE_PARAM, HookKind

if TYPE_CHECKING:
    from hookrelay.dispatcher import HookDispatcher

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[], Any]
F = TypeVar("F", bound=Callable[..., Any])

_MARK_ATTR = "__hookrelay_hooks__"


class HandlerCache:
    """One long-lived instance per handler-class name, built on first use."""

    def __init__(self, factories: dict[str, HandlerFactory] | None = None) -> None:
        self._factories: dict[str, HandlerFactory] = dict(factories or {})
        self._instances: dict[str, Any] = {}
        # Re-entrant: a handler constructor may itself resolve another handler.
        self._lock = RLock()

    def register_factory(self, class_name: str, factory: HandlerFactory) -> None:
        with self._lock:
            self._factories[class_name] = factory

    def has_factory(self, class_name: str) -> bool:
        with self._lock:
            return class_name in self._factories

    def get(self, class_name: str) -> Any | None:
        """Return the cached instance, constructing it if needed; None if unknown."""
        with self._lock:
            if class_name in self._instances:
                return self._instances[class_name]
            factory = self._factories.get(class_name)
            if factory is None:
                return None
            instance = factory()
            self._instances[class_name] = instance
            logger.debug("Created handler instance for %s", class_name)
            return instance

    def __contains__(self, class_name: object) -> bool:
        with self._lock:
            return class_name in self._instances

    def clear(self) -> None:
        with self._lock:
            self._instances.clear()
            self._factories.clear()


@dataclass(frozen=True)
class HookMark:
    name: str
    priority: int = DEFAULT_PRIORITY
    delegate: bool = False
    pattern: bool = False


def hook_method(
    name: str,
    *,
    priority: int = DEFAULT_PRIORITY,
    delegate: bool = False,
    pattern: bool = False,
) -> Callable[[F], F]:
    """
    Mark a ``HookHandler`` method as the handler for a hook.

    Example:
    ```python
    class AuditHooks(HookHandler):
        @hook_method("topic_edit_before", priority=5)
        def on_edit(self, context, name):
            context["audited"] = True
    ```
    A method may carry several marks.
    """

    def decorator(func: F) -> F:
        marks = list(getattr(func, _MARK_ATTR, ()))
        marks.append(HookMark(name=name, priority=priority, delegate=delegate, pattern=pattern))
        setattr(func, _MARK_ATTR, marks)
        return func

    return decorator


def _collect_marks(cls: type) -> list[tuple[str, HookMark]]:
    methods: dict[str, list[HookMark]] = {}
    for klass in reversed(cls.__mro__):
        for attr, value in vars(klass).items():
            marks = getattr(value, _MARK_ATTR, None)
            if marks:
                methods[attr] = list(marks)
            elif attr in methods:
                # Overridden without marks in a subclass.
                del methods[attr]
    return [(attr, mark) for attr, marks in methods.items() for mark in marks]


class HookHandler:
    """
    Base class for objects that group several hook methods.

    Subclasses either decorate methods with ``hook_method`` or override
    ``register_hooks`` and call ``add_hook`` directly. Handler methods receive
    the mutable context and the fired hook name.
    """

    _dispatcher: HookDispatcher | None = None
    _class_name: str | None = None

    def bind(self, dispatcher: HookDispatcher, class_name: str) -> None:
        self._dispatcher = dispatcher
        self._class_name = class_name

    @property
    def dispatcher(self) -> HookDispatcher:
        if self._dispatcher is None:
            raise HookError(f"{type(self).__name__} is not installed on a dispatcher")
        return self._dispatcher

    @property
    def class_name(self) -> str:
        return self._class_name or type(self).__name__

    def register_hooks(self) -> None:
        for attr, mark in _collect_marks(type(self)):
            self.add_hook(mark.name, attr, mark.priority, delegate=mark.delegate, pattern=mark.pattern)

    def add_hook(
        self,
        name: str,
        method: str | Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
        *,
        delegate: bool = False,
        pattern: bool = False,
    ) -> bool:
        target = method if isinstance(method, str) else method.__name__
        params: dict[str, Any] = {CLASS_PARAM: self.class_name}
        if delegate:
            params[DELEGATE_PARAM] = True
        return self.dispatcher.register(
            name,
            HookKind.HANDLER_METHOD,
            target,
            priority,
            params,
            pattern=pattern,
        )


def install_handler(
    dispatcher: HookDispatcher,
    handler_cls: type[HookHandler],
    class_name: str | None = None,
) -> HookHandler:
    """Register ``handler_cls`` as a factory, build its shared instance and let it register hooks."""
    name = class_name or handler_cls.__name__
    dispatcher.register_handler_class(name, handler_cls)
    handler = dispatcher.handlers.get(name)
    if not isinstance(handler, HookHandler):
        raise HookError(f"Handler factory for {name} did not produce a HookHandler")
    handler.bind(dispatcher, name)
    handler.register_hooks()
    logger.debug("Installed handler %s", name)
    return handler
