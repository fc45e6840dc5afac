"""Hook dispatcher: registration API and the fire/dispatch engine."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, MutableMapping
from threading import Lock
from typing import Any

from hookrelay.errors import HookTargetError
from hookrelay.handlers import HandlerCache, HandlerFactory
from hookrelay.models import (
    DEFAULT_PRIORITY,
    DELEGATE_PARAM,
    TEMPLATE_PREFIX,
    FireResult,
    HookKind,
    HookRegistration,
    fold_name,
    parse_kind,
)
from hookrelay.registry import BehaviorTable, HookTable

logger = logging.getLogger(__name__)

HookContext = MutableMapping[str, Any]
HookFunction = Callable[[HookContext, str], Any]


def _by_priority(entries: list[HookRegistration]) -> list[HookRegistration]:
    # Equal priorities run in registration order, across exact and pattern entries.
    return sorted(entries, key=lambda entry: (-entry.priority, entry.sequence))


class HookDispatcher:
    """
    Registry and runtime for named extension points.

    One dispatcher is created by the host application's composition root and
    passed to whatever needs to register or fire hooks. ``host`` is the object
    whose methods ``module_method`` registrations call back into.

    Example usage:
    ```python
    dispatcher = HookDispatcher(host=app)
    dispatcher.register_callable("stamp", lambda ctx, name: ctx.update(stamped=True))
    dispatcher.register_function("topic_edit_before", "stamp", priority=5)

    context = {"topic": topic}
    dispatcher.fire("topic_edit_before", context)
    ```
    """

    def __init__(
        self,
        host: Any = None,
        *,
        functions: dict[str, HookFunction] | None = None,
        handler_classes: dict[str, HandlerFactory] | None = None,
        template_prefix: str = TEMPLATE_PREFIX,
    ) -> None:
        self.host = host
        self.template_prefix = fold_name(template_prefix)
        self.hooks = HookTable()
        self.behaviors = BehaviorTable()
        self.handlers = HandlerCache(handler_classes)
        self._functions: dict[str, HookFunction] = dict(functions or {})
        self._functions_lock = Lock()

    # -- startup registries -------------------------------------------------

    def register_callable(self, name: str, func: HookFunction) -> None:
        """Expose ``func`` to ``function`` registrations under ``name``."""
        with self._functions_lock:
            self._functions[name] = func

    def register_handler_class(self, class_name: str, factory: HandlerFactory) -> None:
        self.handlers.register_factory(class_name, factory)

    # -- hook table -----------------------------------------------------------

    def register(
        self,
        name: str,
        kind: HookKind | str,
        target: str,
        priority: int = DEFAULT_PRIORITY,
        params: dict[str, Any] | None = None,
        pattern: bool = False,
    ) -> bool:
        """Add a handler for ``name``. Returns False instead of raising on a bad registration."""
        resolved = parse_kind(kind)
        if resolved is None:
            logger.warning("Rejected hook %s: unknown kind %r", name, kind)
            return False
        try:
            level = int(priority)
        except (TypeError, ValueError):
            logger.warning("Rejected hook %s: priority %r is not an integer", name, priority)
            return False
        try:
            registration = self.hooks.add(name, resolved, target, level, dict(params or {}), pattern)
        except re.error as exc:
            logger.warning("Rejected hook pattern %r: %s", name, exc)
            return False
        logger.debug("Registered hook %s", registration.describe())
        return True

    def register_function(
        self, name: str, target: str, priority: int = DEFAULT_PRIORITY, pattern: bool = False
    ) -> bool:
        return self.register(name, HookKind.FUNCTION, target, priority, pattern=pattern)

    def register_module_method(
        self, name: str, target: str, priority: int = DEFAULT_PRIORITY, pattern: bool = False
    ) -> bool:
        return self.register(name, HookKind.MODULE_METHOD, target, priority, pattern=pattern)

    def register_handler_method(
        self,
        name: str,
        target: str,
        priority: int = DEFAULT_PRIORITY,
        params: dict[str, Any] | None = None,
        pattern: bool = False,
    ) -> bool:
        return self.register(name, HookKind.HANDLER_METHOD, target, priority, params, pattern)

    def register_delegate_function(
        self,
        name: str,
        target: str,
        priority: int = DEFAULT_PRIORITY,
        params: dict[str, Any] | None = None,
        pattern: bool = False,
    ) -> bool:
        return self.register(name, HookKind.FUNCTION, target, priority, _delegating(params), pattern)

    def register_delegate_module_method(
        self,
        name: str,
        target: str,
        priority: int = DEFAULT_PRIORITY,
        params: dict[str, Any] | None = None,
        pattern: bool = False,
    ) -> bool:
        return self.register(name, HookKind.MODULE_METHOD, target, priority, _delegating(params), pattern)

    def register_delegate_handler_method(
        self,
        name: str,
        target: str,
        priority: int = DEFAULT_PRIORITY,
        params: dict[str, Any] | None = None,
        pattern: bool = False,
    ) -> bool:
        return self.register(name, HookKind.HANDLER_METHOD, target, priority, _delegating(params), pattern)

    def registrations(self) -> list[HookRegistration]:
        return self.hooks.registrations()

    # -- behavior table -------------------------------------------------------

    def add_behavior(
        self,
        name: str,
        owner: Any,
        callback: Callable[[HookContext, str], Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        registration = self.behaviors.add(name, owner, callback, int(priority))
        logger.debug(
            "Added behavior hook %s for %s (priority=%s)",
            registration.name,
            type(owner).__name__,
            registration.priority,
        )

    def remove_behavior(
        self,
        name: str,
        owner: Any,
        callback: Callable[[HookContext, str], Any] | None = None,
    ) -> bool:
        return self.behaviors.remove(name, owner, callback)

    def run_behavior(
        self,
        name: str,
        owner: Any,
        context: HookContext | None = None,
        with_global: bool = False,
    ) -> FireResult:
        """Run hooks bound to ``owner``; results are discarded, handlers work on ``context``."""
        context = {} if context is None else context
        folded = fold_name(name)
        entries = sorted(self.behaviors.entries(folded, owner), key=lambda entry: -entry.priority)
        for entry in entries:
            entry.callback(context, folded)
        if with_global:
            self.fire(folded, context)
        return FireResult()

    # -- dispatch -------------------------------------------------------------

    def matching(self, name: str) -> tuple[list[HookRegistration], list[HookRegistration]]:
        """Normal and delegate registrations for ``name``, each in execution order."""
        candidates = self.hooks.candidates(name)
        normal = [entry for entry in candidates if not entry.is_delegate]
        delegates = [entry for entry in candidates if entry.is_delegate]
        return _by_priority(normal), _by_priority(delegates)

    def fire(self, name: str, context: HookContext | None = None) -> FireResult:
        """
        Run every handler registered for ``name``.

        Normal handlers run by descending priority; for ``template_`` hooks
        their return values are collected. Then the highest-priority delegate,
        if any, runs and its return value replaces the result.
        """
        context = {} if context is None else context
        folded = fold_name(name)
        normal, delegates = self.matching(folded)
        if not normal and not delegates:
            return FireResult()

        collect = folded.startswith(self.template_prefix)
        result = FireResult()
        for entry in normal:
            value = self.invoke(entry, context, folded)
            if collect:
                result.template_results.append(value)

        if delegates:
            # Only one delegate may replace the host's result.
            winner = delegates[0]
            if len(delegates) > 1:
                logger.debug("Hook %s: %s delegates registered, running %s", folded, len(delegates), winner.describe())
            return FireResult(delegated=True, delegate_result=self.invoke(winner, context, folded))
        return result

    def invoke(self, registration: HookRegistration, context: HookContext, name: str) -> Any:
        target = registration.target
        if registration.kind is HookKind.FUNCTION:
            with self._functions_lock:
                func = self._functions.get(target)
            if func is None:
                raise HookTargetError(name, target, "no function registered under that name")
            return func(context, name)

        if registration.kind is HookKind.MODULE_METHOD:
            if self.host is None:
                raise HookTargetError(name, target, "dispatcher has no host object")
            method = getattr(self.host, target, None)
            if not callable(method):
                raise HookTargetError(name, target, f"{type(self.host).__name__} has no such method")
            return method(context, name)

        class_name = registration.handler_class
        handler = self.handlers.get(class_name) if class_name else None
        if handler is None:
            logger.debug("Hook %s: handler class %r is not available, skipping %s", name, class_name, target)
            return None
        method = getattr(handler, target, None)
        if not callable(method):
            raise HookTargetError(name, target, f"{class_name} has no such method")
        return method(context, name)

    # -- template helpers -----------------------------------------------------

    def render_template_hook(self, name: str, context: HookContext | None = None) -> str:
        """Fire ``template_<name>`` and join the handlers' output."""
        hook_name = fold_name(name)
        if not hook_name.startswith(self.template_prefix):
            hook_name = self.template_prefix + hook_name
        result = self.fire(hook_name, context)
        if result.delegated:
            return "" if result.delegate_result is None else str(result.delegate_result)
        return "".join(str(value) for value in result.template_results if value is not None)

    def render_block_hook(self, name: str, content: str, context: HookContext | None = None) -> str:
        """Fire ``template_block_<name>`` with the original ``content``; handlers' output replaces it."""
        context = {} if context is None else context
        context["content"] = content
        result = self.fire(f"{self.template_prefix}block_{fold_name(name)}", context)
        if result.delegated:
            return "" if result.delegate_result is None else str(result.delegate_result)
        rendered = [str(value) for value in result.template_results if value is not None]
        return "".join(rendered) if rendered else content

    def clear(self) -> None:
        """Drop every registration and cached handler."""
        self.hooks.clear()
        self.behaviors.clear()
        self.handlers.clear()
        with self._functions_lock:
            self._functions.clear()


def _delegating(params: dict[str, Any] | None) -> dict[str, Any]:
    merged = dict(params or {})
    merged[DELEGATE_PARAM] = True
    return merged
