"""Declarative hook registration from configuration."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from hookrelay.config import DispatchConfig, HookBinding
from hookrelay.dispatcher import HookDispatcher, HookFunction
from hookrelay.handlers import HandlerFactory

logger = logging.getLogger(__name__)


@dataclass
class RegistrationReport:
    accepted: int = 0
    rejected: list[HookBinding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


def register_bindings(
    dispatcher: HookDispatcher,
    bindings: Iterable[HookBinding],
    *,
    default_priority: int | None = None,
) -> RegistrationReport:
    """Register every binding; a rejected binding is recorded and bootstrap continues."""
    report = RegistrationReport()
    for binding in bindings:
        priority = binding.priority
        if priority is None:
            priority = default_priority if default_priority is not None else 1
        accepted = dispatcher.register(
            binding.name,
            binding.kind,
            binding.target,
            priority,
            binding.registration_params(),
            pattern=binding.pattern,
        )
        if accepted:
            report.accepted += 1
        else:
            report.rejected.append(binding)

    if report.rejected:
        logger.warning(
            "Registered %s hook bindings, rejected %s: %s",
            report.accepted,
            len(report.rejected),
            ", ".join(f"{b.name}->{b.target}" for b in report.rejected),
        )
    else:
        logger.info("Registered %s hook bindings", report.accepted)
    return report


def build_dispatcher(
    config: DispatchConfig,
    host: Any = None,
    functions: dict[str, HookFunction] | None = None,
    handler_classes: dict[str, HandlerFactory] | None = None,
) -> tuple[HookDispatcher, RegistrationReport]:
    dispatcher = HookDispatcher(
        host,
        functions=functions,
        handler_classes=handler_classes,
        template_prefix=config.template_prefix,
    )
    report = register_bindings(dispatcher, config.hooks, default_priority=config.default_priority)
    return dispatcher, report
