# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""
Command line entry point for the License Configuration Reconciler.

Usage:
    python -m license_reconciler plan    --declaration license.yaml
    python -m license_reconciler apply   --declaration license.yaml
    python -m license_reconciler show
    python -m license_reconciler import  arn:aws:license-manager:...
    python -m license_reconciler destroy

The declaration is a YAML (or JSON) document with the fields of a
license configuration. State is kept in the file named by --state or
RECONCILER_STATE_PATH.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import settings
from .container import ServiceContainer
from .models.enums import ErrorKind
from .services.errors import ReconcileError
from .services.state_store import StateFileError
from .utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_RETRYABLE = 3

EXIT_CODES = {
    ErrorKind.VALIDATION: EXIT_INVALID,
    ErrorKind.TRANSIENT: EXIT_RETRYABLE,
    ErrorKind.NOT_FOUND: EXIT_FAILED,
    ErrorKind.FATAL: EXIT_FAILED,
}


class DeclarationError(Exception):
    """Raised when the declaration file cannot be read."""

    pass


def load_declaration(path: str | Path) -> dict[str, Any]:
    """
    Load a declaration document.

    Args:
        path: Path to a YAML or JSON file

    Returns:
        The declared fields as a dictionary

    Raises:
        DeclarationError: If the file is missing or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise DeclarationError(f"Declaration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DeclarationError(f"Invalid YAML in declaration {path}: {e}") from e

    if not isinstance(data, dict):
        raise DeclarationError(f"Declaration {path} must be a mapping of fields")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="license-reconciler",
        description="Reconcile an AWS License Manager license configuration",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--state", help="Path to the state file (default: RECONCILER_STATE_PATH)")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("plan", "Show what apply would do, without calling AWS"),
        ("apply", "Create, update or replace the license configuration"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--declaration", "-d", required=True, help="YAML or JSON declaration file")

    subparsers.add_parser("show", help="Refresh and print the tracked license configuration")
    subparsers.add_parser("destroy", help="Delete the tracked license configuration")

    import_parser = subparsers.add_parser("import", help="Start tracking an existing license configuration")
    import_parser.add_argument("arn", help="ARN of the license configuration")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


async def run_command(args: argparse.Namespace, container: ServiceContainer) -> int:
    """Execute one parsed command and return its exit code."""
    runner = container.runner(args.state)

    if args.command == "plan":
        plan = runner.plan(load_declaration(args.declaration))
        _print_json(plan.model_dump(mode="json"))
    elif args.command == "apply":
        observed = await runner.apply(load_declaration(args.declaration))
        _print_json(observed.model_dump(mode="json"))
    elif args.command == "show":
        observed = await runner.refresh()
        _print_json(observed.model_dump(mode="json") if observed else None)
    elif args.command == "destroy":
        destroyed = await runner.destroy()
        _print_json({"destroyed": destroyed})
    elif args.command == "import":
        observed = await runner.import_resource(args.arn)
        _print_json(observed.model_dump(mode="json"))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run the command and map failures to exit codes."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = settings()
    configure_logging(args.log_level or config.log_level)

    try:
        return asyncio.run(run_command(args, ServiceContainer(settings=config)))
    except ReconcileError as e:
        logger.error(str(e))
        return EXIT_CODES[e.kind]
    except (DeclarationError, StateFileError) as e:
        logger.error(str(e))
        return EXIT_INVALID
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_RETRYABLE


if __name__ == "__main__":
    sys.exit(main())
