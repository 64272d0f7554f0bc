#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from crudmerge.common.logging import configure_logging
from crudmerge.domain.merge import FieldConfigurationError, describe

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from crudmerge.domain.merge import FieldDescriptor, TypeDescriptor

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect crudmerge entity descriptors")
    subparsers = parser.add_subparsers(dest="command", required=True)

    describe_cmd = subparsers.add_parser("describe", help="Print the merge fields of a class")
    describe_cmd.add_argument(
        "target",
        type=str,
        help="Class to describe, as package.module:ClassName",
    )
    describe_cmd.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(list(argv))


def _load_class(target: str) -> type[Any]:
    module_name, sep, qualname = target.partition(":")
    if not sep or not module_name or not qualname:
        raise ValueError(f"Expected package.module:ClassName, got {target!r}")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import module {module_name!r}") from exc
    for part in qualname.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ValueError(f"{module_name!r} has no attribute {qualname!r}") from exc
    if not isinstance(obj, type):
        raise ValueError(f"{target!r} is not a class")
    return obj


def _type_name(tp: Any) -> str:
    if tp is None:
        return "-"
    if isinstance(tp, type):
        return tp.__qualname__
    return str(tp).replace("typing.", "")


def _field_line(field: FieldDescriptor) -> str:
    element = field.value_type if field.value_type is not None else field.element_type
    return f"{field.name}\t{field.kind}\t{field.null_policy}\t{_type_name(element)}"


def render_descriptor(descriptor: TypeDescriptor[Any]) -> list[str]:
    """Human-readable dump of a type descriptor, one line per field."""

    lines = [f"{descriptor.type.__module__}.{descriptor.type.__qualname__}"]
    lines.append(f"identity\t{descriptor.identity_field or '-'}")
    lines.extend(_field_line(field) for field in descriptor.fields)
    lines.extend(f"{name}\texcluded" for name in descriptor.excluded)
    return lines


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(
            level=logging.DEBUG if parsed_args.verbose else logging.INFO, force=True
        )
        cls = _load_class(parsed_args.target)
        descriptor = describe(cls)
    except (ValueError, FieldConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    for line in render_descriptor(descriptor):
        print(line)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
