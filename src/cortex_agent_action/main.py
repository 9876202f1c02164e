"""
Cortex Agent action entry point.

This file handles startup concerns (arg-parsing, env setup, logging), resolves the action inputs and
runs the agent call.  Any failure is reported to the workflow runner and turns into exit status 1.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import (
    Dict,
    Optional,
)

from cortex_agent_action.agent.orchestrator import run_action
from cortex_agent_action.agent.runner_interface import load_runner
from cortex_agent_action.config import settings
from cortex_agent_action.core.inputs import (
    INPUT_NAMES,
    resolve_action_inputs,
)
from cortex_agent_action.workflow import (
    OutputSink,
    read_inputs,
    set_failed,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep request lines out of the step log
    logging.getLogger("httpx").setLevel(logging.WARNING)
    # answers cut mid-character must not crash the step log
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(errors="backslashreplace")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send a prompt to a Snowflake Cortex Agent and publish the result"
    )
    for name in INPUT_NAMES:
        parser.add_argument(
            f"--{name}",
            dest=name.replace("-", "_"),
            default=None,
            help=f"Overrides the '{name}' workflow input and its environment fallback",
        )
    parser.add_argument(
        "--runner",
        default=None,
        help="Agent runner back-end (default from env: AGENT_RUNNER)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL.lower(),
        help="Logging level (default from env: %(default)s)",
    )
    return parser


def _explicit_values(args: argparse.Namespace) -> Dict[str, Optional[str]]:
    """Command-line options win over workflow inputs, name by name."""
    explicit = read_inputs(INPUT_NAMES)
    for name in INPUT_NAMES:
        value = getattr(args, name.replace("-", "_"))
        if value is not None:
            explicit[name] = value
    return explicit


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the action.

    Returns the process exit status: 0 on success, 1 when anything failed.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _build_parser().parse_args(argv)
    settings.LOG_LEVEL = args.log_level
    _init_logging(settings.LOG_LEVEL)

    # Decided once; everything below receives the flag through the sink
    sink = OutputSink.from_env(os.environ)
    in_runner = sink.enabled

    try:
        inputs = resolve_action_inputs(settings, _explicit_values(args))
        runner = load_runner(args.runner, settings)
        asyncio.run(run_action(inputs, runner, sink))
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Cortex Agent run failed:")
        set_failed(str(exc) or "Unknown error when running Cortex Agent", enabled=in_runner)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
