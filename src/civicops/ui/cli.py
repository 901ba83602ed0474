# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from civicops.app import delete_scenario, run_scenario, verify_index
from civicops.config import ConfigurationError, configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Correlate public records into risk graphs")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level regardless of CIVICOPS_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run one scenario through the pipeline")
    run.add_argument(
        "subject",
        type=str,
        help="Entity or topic the scenario investigates",
    )
    run.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter passed to every data source (repeatable)",
    )
    run.add_argument(
        "--facts",
        type=Path,
        help="JSON lines file of raw facts to use as a data source",
    )
    run.add_argument(
        "--cascade",
        action="store_true",
        help="Stop querying sources after the first one that returns data",
    )

    subparsers.add_parser(
        "verify-index",
        help="Recompute every entity key and report identifier collisions",
    )

    delete = subparsers.add_parser(
        "delete-scenario",
        help="Remove a scenario subgraph from the graph database",
    )
    delete.add_argument("scenario_hash", type=str, help="Scenario to delete")

    return parser.parse_args(list(argv))


def _parse_params(values: Sequence[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid parameter (expected KEY=VALUE): {value}")
        params[key.strip()] = item.strip()
    return params


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    params: dict[str, str] = {}
    try:
        configure_logging(verbose=parsed_args.verbose)
        if parsed_args.command == "run":
            params = _parse_params(parsed_args.param)
            if parsed_args.facts is not None and not parsed_args.facts.is_file():
                raise ValueError(f"Fact file not found: {parsed_args.facts}")  # noqa: TRY301
    except ConfigurationError as exc:
        print(f"{exc.code}: {exc}", file=sys.stderr)
        sys.exit(2)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            result = run_scenario(
                parsed_args.subject,
                parameters=params,
                fact_file=parsed_args.facts,
                cascade=parsed_args.cascade,
            )
            print(json.dumps(result.as_record(), indent=2))
            if result.failure is not None:
                log.error(
                    "Scenario %s failed in %s: %s",
                    result.scenario_hash,
                    result.failure.stage,
                    result.failure.error,
                )
                sys.exit(1)
        elif parsed_args.command == "verify-index":
            collisions = verify_index()
            for collision in collisions:
                log.warning(
                    "Collision on %s: %s", collision.entity_key, collision.identifier_sets
                )
            if collisions:
                sys.exit(1)
        elif parsed_args.command == "delete-scenario":
            delete_scenario(parsed_args.scenario_hash)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConfigurationError as exc:
        log.error("Configuration problem (%s): %s", exc.code, exc)
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


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
