"""CLI for checking hook binding files."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence

from hookrelay.bootstrap import build_dispatcher
from hookrelay.config import load_effective_config, load_yaml_mapping
from hookrelay.errors import ConfigError
from hookrelay.logging_utils import configure_logging
from hookrelay.models import HookRegistration


def _registration_row(entry: HookRegistration) -> dict:
    return {
        "name": entry.name,
        "kind": entry.kind.value,
        "target": entry.target,
        "handler_class": entry.handler_class,
        "priority": entry.priority,
        "delegate": entry.is_delegate,
        "pattern": entry.pattern,
    }


def _add_config_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config", required=True, help="Hook bindings YAML file")
    cmd.add_argument("--system-config", help="Optional system defaults YAML")
    cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="hookrelay binding tools")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="List bindings as they would be registered")
    _add_config_flags(inspect)

    match = sub.add_parser("match", help="Show the handlers a fire of NAME would run, in order")
    match.add_argument("name", help="Hook name to resolve")
    _add_config_flags(match)

    return parser


def _run_inspect(args: argparse.Namespace) -> int:
    config = load_effective_config(
        args.config,
        system_defaults=load_yaml_mapping(args.system_config) if args.system_config else None,
    )
    dispatcher, report = build_dispatcher(config)
    registered = [_registration_row(entry) for entry in dispatcher.registrations()]
    rejected = [binding.model_dump() for binding in report.rejected]

    if args.json:
        print(json.dumps({"registered": registered, "rejected": rejected}, indent=2))
    else:
        for entry in dispatcher.registrations():
            print(entry.describe())
        for binding in report.rejected:
            print(f"REJECTED {binding.name} -> {binding.kind}:{binding.target}")
        print(f"{len(registered)} registered, {len(rejected)} rejected")
    return 0 if report.ok else 1


def _run_match(args: argparse.Namespace) -> int:
    config = load_effective_config(
        args.config,
        system_defaults=load_yaml_mapping(args.system_config) if args.system_config else None,
    )
    dispatcher, _ = build_dispatcher(config)
    normal, delegates = dispatcher.matching(args.name)
    winner = delegates[0] if delegates else None

    if args.json:
        payload = {
            "name": args.name.lower(),
            "normal": [_registration_row(entry) for entry in normal],
            "delegate": _registration_row(winner) if winner else None,
            "shadowed_delegates": [_registration_row(entry) for entry in delegates[1:]],
        }
        print(json.dumps(payload, indent=2))
        return 0

    if not normal and winner is None:
        print(f"No handlers for {args.name.lower()}")
        return 0
    for position, entry in enumerate(normal, start=1):
        print(f"{position}. {entry.describe()}")
    if winner is not None:
        print(f"delegate: {winner.describe()}")
        for entry in delegates[1:]:
            print(f"  shadowed: {entry.describe()}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "inspect":
            return _run_inspect(args)
        return _run_match(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
