"""
Input normalisation for the action.

Every value can come from two places: an explicit input (a ``--flag`` or a workflow ``with:``
input) and one or more environment fallbacks held by :class:`~cortex_agent_action.config.Settings`.
The helpers below pick the first non-blank candidate, validate its shape and turn it into the
typed request handed to the agent runner.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import (
    Any,
    Iterable,
    List,
    Mapping,
    Optional,
)

from pydantic import (
    TypeAdapter,
    ValidationError,
)

from cortex_agent_action.config import Settings
from cortex_agent_action.core.schema import (
    ActionInputs,
    AgentCoordinates,
    Message,
    RequestParameters,
    ToolChoice,
)

logger = logging.getLogger(__name__)

INPUT_NAMES = (
    "agent-database",
    "agent-schema",
    "agent-name",
    "messages",
    "message",
    "thread-id",
    "parent-message-id",
    "tool-choice",
    "persist-results",
    "persist-dir",
)
"""Names of the explicit inputs understood by :func:`resolve_action_inputs`."""

DEFAULT_HTTP_TIMEOUT = 600.0  # seconds
_TRUTHY = {"true", "1", "yes"}
_MESSAGES_ADAPTER = TypeAdapter(List[Message])


class ConfigurationError(ValueError):
    """Raised when a required input is missing or malformed."""


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
def first_non_blank(candidates: Iterable[Optional[str]]) -> Optional[str]:
    """Return the first candidate that is neither ``None`` nor whitespace-only."""
    for candidate in candidates:
        if candidate is not None and candidate.strip():
            return candidate
    return None


def _pick(
    explicit: Mapping[str, Optional[str]], name: str, *fallbacks: Optional[str]
) -> Optional[str]:
    return first_non_blank([explicit.get(name), *fallbacks])


def _parse_number(raw: str) -> Optional[float]:
    """Decimal or exponent literal; ``None`` for junk, NaN, infinities and ``1_000`` forms."""
    text = raw.strip()
    if "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------
def resolve_coordinates(
    settings: Settings, explicit: Mapping[str, Optional[str]] | None = None
) -> AgentCoordinates:
    """
    Resolve database / schema / agent name, explicit input first.

    Raises
    ------
    ConfigurationError
        Naming the first field that is still blank after every fallback.
    """
    explicit = explicit or {}
    database = (
        _pick(explicit, "agent-database", settings.AGENT_DATABASE, settings.SNOWFLAKE_DATABASE)
        or ""
    ).strip()
    schema = (
        _pick(explicit, "agent-schema", settings.AGENT_SCHEMA, settings.SNOWFLAKE_SCHEMA) or ""
    ).strip()
    agent_name = (_pick(explicit, "agent-name", settings.AGENT_NAME) or "").strip()

    if not database:
        raise ConfigurationError(
            "Provide `agent-database` or set AGENT_DATABASE/SNOWFLAKE_DATABASE."
        )
    if not schema:
        raise ConfigurationError("Provide `agent-schema` or set AGENT_SCHEMA/SNOWFLAKE_SCHEMA.")
    if not agent_name:
        raise ConfigurationError("Provide `agent-name` or set AGENT_NAME.")

    return AgentCoordinates(database=database, schema=schema, agent_name=agent_name)


def parse_messages(raw_messages: Optional[str], fallback_message: Optional[str]) -> List[Message]:
    """
    Build the message list from a JSON array, or wrap a single prompt as one user message.

    Parameters
    ----------
    raw_messages:
        JSON array of ``{"role": ..., "content": [...]}`` objects.  Takes precedence when non-blank.
    fallback_message:
        Plain-text prompt used when *raw_messages* is blank.
    """
    if raw_messages is not None and raw_messages.strip():
        try:
            parsed: Any = json.loads(raw_messages)
            if not isinstance(parsed, list):
                raise ValueError("messages must be a JSON array.")
            if not parsed:
                raise ValueError("messages must contain at least one message.")
            return _MESSAGES_ADAPTER.validate_python(parsed)
        except (ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError subclass
            raise ConfigurationError(f"Invalid messages JSON: {exc}") from exc

    single = (fallback_message or "").strip()
    if not single:
        raise ConfigurationError("Provide `message` input, AGENT_MESSAGE env, or a messages array.")
    return [Message.user_text(single)]


def parse_optional_integer(raw: Optional[str]) -> Optional[int]:
    """Parse *raw* as a number and floor it; blank means "not set"."""
    if raw is None or not raw.strip():
        return None
    number = _parse_number(raw)
    if number is None:
        raise ConfigurationError(f"Expected integer value, received: {raw}")
    return math.floor(number)


def parse_timeout(raw: Optional[str], default: float = DEFAULT_HTTP_TIMEOUT) -> float:
    """Seconds for the agent HTTP client; blank means *default*."""
    if raw is None or not raw.strip():
        return default
    number = _parse_number(raw)
    if number is None or number <= 0:
        raise ConfigurationError(
            f"AGENT_HTTP_TIMEOUT must be a positive number of seconds, received: {raw}"
        )
    return number


def parse_tool_choice(raw: Optional[str]) -> ToolChoice:
    """
    Turn the tool-choice input into a mapping.

    ``{...}`` strings are decoded as JSON objects; any other value is shorthand for
    ``{"type": value}`` (e.g. ``auto``, ``required``, ``none``).
    """
    if raw is None:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None

    if trimmed.startswith("{"):
        try:
            parsed = json.loads(trimmed)
            if not isinstance(parsed, dict):
                raise ValueError("tool-choice must be a JSON object.")
        except ValueError as exc:
            raise ConfigurationError(f"Invalid tool-choice JSON: {exc}") from exc
        return parsed

    return {"type": trimmed}


def parse_boolean(raw: Optional[str]) -> bool:
    """Case-insensitive ``true`` / ``1`` / ``yes``; everything else is False."""
    if not raw:
        return False
    return raw.strip().lower() in _TRUTHY


def resolve_persist_dir(
    settings: Settings, explicit: Mapping[str, Optional[str]] | None = None
) -> Path:
    """Directory for persisted results; falls back to the runner temp dir, then the CWD."""
    explicit = explicit or {}
    chosen = _pick(
        explicit,
        "persist-dir",
        settings.AGENT_PERSIST_DIR,
        settings.RUN_SQL_RESULT_DIR,
        settings.RUNNER_TEMP,
    )
    return Path(chosen.strip()) if chosen else Path.cwd()


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def resolve_action_inputs(
    settings: Settings, explicit: Mapping[str, Optional[str]] | None = None
) -> ActionInputs:
    """
    Resolve and validate every input of a run.

    Parameters
    ----------
    settings:
        Environment fallbacks.
    explicit:
        Input name -> value (see :data:`INPUT_NAMES`).  Missing or blank entries fall through to
        *settings*.

    Raises
    ------
    ConfigurationError
        On the first missing or malformed value.
    """
    explicit = explicit or {}
    coordinates = resolve_coordinates(settings, explicit)
    messages = parse_messages(
        _pick(explicit, "messages", settings.AGENT_MESSAGES),
        _pick(explicit, "message", settings.AGENT_MESSAGE),
    )

    thread_id = parse_optional_integer(_pick(explicit, "thread-id", settings.AGENT_THREAD_ID))
    parent_message_id = parse_optional_integer(
        _pick(explicit, "parent-message-id", settings.AGENT_PARENT_MESSAGE_ID)
    )
    tool_choice = parse_tool_choice(_pick(explicit, "tool-choice", settings.AGENT_TOOL_CHOICE))
    persist_results = parse_boolean(
        _pick(explicit, "persist-results", settings.AGENT_PERSIST_RESULTS)
    )

    request = RequestParameters(
        coordinates=coordinates,
        messages=messages,
        thread_id=thread_id,
        parent_message_id=parent_message_id,
        tool_choice=tool_choice,
    )
    logger.debug(
        "Resolved request for %s: %d message(s), thread_id=%s, parent_message_id=%s",
        coordinates.qualified_name,
        len(messages),
        thread_id,
        parent_message_id,
    )

    persist_dir = resolve_persist_dir(settings, explicit)
    return ActionInputs(
        request=request,
        persist_results=persist_results,
        persist_dir=persist_dir,
    )

