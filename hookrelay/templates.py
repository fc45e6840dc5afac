"""Collaborator interfaces used by template resolution, and two delegate resolvers."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol

from hookrelay.dispatcher import HookDispatcher

logger = logging.getLogger(__name__)


class DelegateResolver(Protocol):
    def get_delegate(self, category: str, resource_id: str) -> str: ...


class ComponentTemplateResolver(Protocol):
    def get_template_path(self, component: str, template: str | None, required: bool) -> str | None:
        """Return the template path, None when optional and missing, or raise ``TemplateNotFoundError``."""
        ...


class StaticDelegateResolver:
    """Dict-backed delegate lookup. Chains are followed to the last override."""

    def __init__(self) -> None:
        self._delegates: dict[tuple[str, str], str] = {}
        self._lock = Lock()

    def add_delegate(self, category: str, resource_id: str, replacement: str) -> None:
        with self._lock:
            self._delegates[(category.lower(), resource_id)] = replacement

    def get_delegate(self, category: str, resource_id: str) -> str:
        key = category.lower()
        seen = {resource_id}
        current = resource_id
        with self._lock:
            while (key, current) in self._delegates:
                following = self._delegates[(key, current)]
                if following in seen:
                    logger.warning("Delegate cycle for %s %s at %s", category, resource_id, following)
                    break
                seen.add(following)
                current = following
        return current


class HookDelegateResolver:
    """Delegate lookup backed by ``delegate_<category>`` hooks on a dispatcher.

    The winning delegate handler returns the replacement identifier; any
    other outcome keeps the original.
    """

    def __init__(self, dispatcher: HookDispatcher, prefix: str = "delegate_") -> None:
        self.dispatcher = dispatcher
        self.prefix = prefix

    def get_delegate(self, category: str, resource_id: str) -> str:
        context = {"category": category, "resource": resource_id}
        result = self.dispatcher.fire(f"{self.prefix}{category}", context)
        if result.delegated and isinstance(result.delegate_result, str) and result.delegate_result:
            return result.delegate_result
        return resource_id
