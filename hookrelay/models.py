"""Core Pydantic models for hook registrations and fire results."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DELEGATE_PARAM = "delegate"
CLASS_PARAM = "class_name"
TEMPLATE_PREFIX = "template_"
DEFAULT_PRIORITY = 1


class HookKind(str, Enum):
    FUNCTION = "function"
    MODULE_METHOD = "module_method"
    HANDLER_METHOD = "handler_method"


_KIND_ALIASES = {
    "function": HookKind.FUNCTION,
    "module": HookKind.MODULE_METHOD,
    "module_method": HookKind.MODULE_METHOD,
    "hook": HookKind.HANDLER_METHOD,
    "handler": HookKind.HANDLER_METHOD,
    "handler_method": HookKind.HANDLER_METHOD,
}


def parse_kind(value: HookKind | str) -> HookKind | None:
    """Map a kind or one of its string aliases to ``HookKind``; None if unknown."""
    if isinstance(value, HookKind):
        return value
    if not isinstance(value, str):
        return None
    return _KIND_ALIASES.get(value.strip().lower())


def fold_name(name: str) -> str:
    return name.lower()


class HookRegistration(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    kind: HookKind
    target: str
    priority: int = DEFAULT_PRIORITY
    params: dict[str, Any] = Field(default_factory=dict)
    pattern: bool = False
    # Verbatim expression for pattern registrations; ``name`` holds it folded.
    source: str | None = None
    sequence: int = 0

    @property
    def is_delegate(self) -> bool:
        return bool(self.params.get(DELEGATE_PARAM))

    @property
    def handler_class(self) -> str | None:
        value = self.params.get(CLASS_PARAM)
        return str(value) if value else None

    def describe(self) -> str:
        label = f"{self.kind.value}:{self.target}"
        if self.handler_class:
            label = f"{self.kind.value}:{self.handler_class}.{self.target}"
        flags = []
        if self.is_delegate:
            flags.append("delegate")
        if self.pattern:
            flags.append("pattern")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.source or self.name} -> {label} (priority={self.priority}){suffix}"


class BehaviorRegistration(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    name: str
    owner_id: int
    callback: Callable[..., Any]
    priority: int = DEFAULT_PRIORITY


class FireResult(BaseModel):
    """Outcome of a fire.

    ``template_results`` holds normal handler return values for ``template_``
    hooks. When a delegate ran, ``delegated`` is set and ``delegate_result``
    carries its value; template results are not reported in that case.
    """

    model_config = ConfigDict(extra="forbid")

    template_results: list[Any] = Field(default_factory=list)
    delegated: bool = False
    delegate_result: Any = None

    @property
    def empty(self) -> bool:
        return not self.delegated and not self.template_results

    def as_dict(self) -> dict[str, Any]:
        if self.delegated:
            return {"delegate_result": self.delegate_result}
        if self.template_results:
            return {"template_result": list(self.template_results)}
        return {}
