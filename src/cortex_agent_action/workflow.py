"""
Workflow-runner integration: reading ``with:`` inputs and publishing step outputs.

Outputs are only written when the process runs inside a workflow runner.  The check is made once at
startup (:func:`is_workflow_runner`) and the result is handed to an :class:`OutputSink`, so the same
code path runs locally without touching anything.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import (
    Dict,
    Iterable,
    Mapping,
    Optional,
)

logger = logging.getLogger(__name__)


def is_workflow_runner(env: Mapping[str, str] | None = None) -> bool:
    """True when the runner's output file or ``GITHUB_ACTIONS`` flag is present."""
    env = os.environ if env is None else env
    return bool(env.get("GITHUB_OUTPUT") or env.get("GITHUB_ACTIONS"))


def get_input(name: str, env: Mapping[str, str] | None = None) -> Optional[str]:
    """
    Return the ``INPUT_<NAME>`` value for a workflow input, or ``None`` when unset.

    Runners export ``INPUT_AGENT-NAME`` for ``agent-name``; composite actions usually pass
    ``INPUT_AGENT_NAME`` explicitly, so both spellings are checked.
    """
    env = os.environ if env is None else env
    key = f"INPUT_{name.replace(' ', '_').upper()}"
    for candidate in (key, key.replace("-", "_")):
        if candidate in env:
            return env[candidate]
    return None


def read_inputs(
    names: Iterable[str], env: Mapping[str, str] | None = None
) -> Dict[str, Optional[str]]:
    """Collect :func:`get_input` for every name."""
    return {name: get_input(name, env) for name in names}


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


class OutputSink:
    """Publishes step outputs, or does nothing when *enabled* is False."""

    def __init__(self, enabled: bool, output_file: str | Path | None = None) -> None:
        self.enabled = enabled
        self.output_file = Path(output_file) if output_file else None
        self.emitted: Dict[str, str] = {}

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "OutputSink":
        """Build a sink for the current process environment."""
        env = os.environ if env is None else env
        return cls(is_workflow_runner(env), env.get("GITHUB_OUTPUT") or None)

    def emit(self, name: str, value: str) -> None:
        """Set step output *name* to *value*."""
        if not self.enabled:
            return

        if self.output_file is not None:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            if delimiter in name or delimiter in value:
                raise ValueError(f"Unexpected input: output value contains delimiter {delimiter}")
            with self.output_file.open(
                "a", encoding="utf-8", errors="backslashreplace"
            ) as handle:
                handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            print(f"::set-output name={_escape_property(name)}::{_escape_data(value)}")

        self.emitted[name] = value
        logger.debug("Set output '%s' (%d chars)", name, len(value))


def set_failed(message: str, enabled: bool = True) -> None:
    """Print an ``::error::`` annotation for the runner (exit status is the caller's job)."""
    if enabled:
        print(f"::error::{_escape_data(message)}", flush=True)
