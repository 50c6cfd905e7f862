"""Command-line entry point: fire one automation event headlessly.

Usage:
    python -m automation_engine CONFIG EVENT [--payload JSON] [--trigger-id ID]
        [--param KEY=VALUE ...] [--sql-database PATH] [--service-url URL]

UI actions are written to the log. Parameter prompts are answered from
``--param`` values; without any, prompts are cancelled. The trigger report is
printed to stdout as JSON.

Exit codes:
    0: The trigger ran (completed, cancelled or not configured)
    1: Configuration could not be loaded, parameter collection failed, or an
       unexpected error occurred
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any

from .config import configure_logging
from .engine import (
    AutomationConfigLoader,
    CancellingCollector,
    LoggingUiHost,
    PresetCollector,
    TriggerReport,
    TriggerStatus,
    create_default_manager,
)
from .engine.execution_context import RemoteClient
from .engine.executors_interactive import ParameterCollector
from .service import HttpRemoteClient, RemoteDataService

logger = logging.getLogger(__name__)


def _json_value(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _parse_params(items: list[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got '{item}'")
        values[key] = _json_value(value)
    return values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="automation-engine",
        description="Fire one automation event against a configuration file.",
    )
    parser.add_argument("config", help="Automation configuration file (YAML or JSON)")
    parser.add_argument("event", help="Event key, e.g. onClick")
    parser.add_argument("--payload", default="null", help="Trigger payload as JSON")
    parser.add_argument("--trigger-id", default=None, help="Trigger element identity")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Answer for a parameter prompt (repeatable)",
    )
    parser.add_argument("--sql-database", default=None, help="sqlite database for sql requests")
    parser.add_argument(
        "--service-url", default=None, help="Use a remote data service at this API root"
    )
    return parser


def report_to_dict(report: TriggerReport) -> dict[str, Any]:
    return {
        "event": report.event,
        "status": report.status.value,
        "executors": [result.to_context() for result in report.executors],
        "actionsRun": report.actions_run,
        "actionFailures": [asdict(failure) for failure in report.action_failures],
        "error": report.error,
    }


async def run(args: argparse.Namespace) -> TriggerReport:
    """Load the configuration and fire the event once."""
    result = AutomationConfigLoader(args.config).load()
    config = result.unwrap()

    params = _parse_params(args.param)
    collector: ParameterCollector = PresetCollector(params) if params else CancellingCollector()
    manager = create_default_manager(host=LoggingUiHost(), collector=collector)

    remote_client: RemoteClient
    if args.service_url:
        remote_client = HttpRemoteClient(args.service_url)
    else:
        remote_client = RemoteDataService(sql_database=args.sql_database)

    runner = manager.create_runner(config, remote_client=remote_client)
    return await runner.trigger(args.event, _json_value(args.payload), args.trigger_id)


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m automation_engine`` and the console script."""
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        report = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.exception(f"Automation run failed: {e}")
        return 1

    print(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False, default=str))
    return 1 if report.status == TriggerStatus.ABORTED else 0


if __name__ == "__main__":
    sys.exit(main())
