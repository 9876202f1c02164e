"""
Runner interface for the action.

This module is the only place that *directly* talks to the agent service.  Everything else (input
normalisation, persistence, answer extraction) works on the fully materialised
:class:`~cortex_agent_action.core.schema.AgentRunResult`.

One back-end ships out of the box:

1. **Cortex** - Snowflake Cortex Agents REST API (``:run`` endpoint, server-sent events), using a
   programmatic access token from the environment.

Additional back-ends can be added by subclassing :class:`BaseRunner` and registering via
:func:`register_runner`.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    Type,
)
from urllib.parse import quote

import httpx

from cortex_agent_action.config import Settings
from cortex_agent_action.core.inputs import (
    ConfigurationError,
    parse_timeout,
)
from cortex_agent_action.core.schema import (
    AgentCoordinates,
    AgentEvent,
    AgentRunResult,
    RequestParameters,
)

logger = logging.getLogger(__name__)


class AgentRunError(RuntimeError):
    """Raised when the agent service reports a failure inside the event stream."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_RUNNER_REGISTRY: dict[str, Type["BaseRunner"]] = {}


def register_runner(name: str) -> Callable:
    """Decorator to register a runner class under *name*."""

    def wrapper(cls: Type["BaseRunner"]) -> Type["BaseRunner"]:
        _RUNNER_REGISTRY[name] = cls
        return cls

    return wrapper


def load_runner(name: str | None = None, settings: Settings | None = None) -> "BaseRunner":
    """
    Factory that returns an instantiated runner.

    Fallback order:
    1. *name* arg
    2. ``settings.AGENT_RUNNER`` env option
    3. default: ``"cortex"``
    """
    settings = settings or Settings()
    target = name or settings.AGENT_RUNNER or "cortex"
    cls = _RUNNER_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Runner '{target}' is not registered.")
    return cls(settings=settings)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseRunner(ABC):
    """Abstract runner that sends a request to an agent and collects its answer."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    @abstractmethod
    async def run(self, params: RequestParameters) -> AgentRunResult:
        """Return the final response plus every event seen along the way."""


# ---------------------------------------------------------------------------
# Server-sent events
# ---------------------------------------------------------------------------
def _decode_data(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _make_event(name: Optional[str], data_lines: List[str]) -> AgentEvent:
    return AgentEvent(event=name or "message", data=_decode_data("\n".join(data_lines)))


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[AgentEvent]:
    """
    Group a server-sent-event line stream into :class:`AgentEvent` objects.

    ``data:`` lines of one event are joined with newlines and decoded as JSON when possible;
    comment lines (``:``) and unknown fields are ignored.
    """
    event_name: Optional[str] = None
    data_lines: List[str] = []

    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data_lines or event_name:
                yield _make_event(event_name, data_lines)
            event_name, data_lines = None, []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)

    if data_lines or event_name:
        yield _make_event(event_name, data_lines)


def _error_message(data: Any) -> str:
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if data.get(key):
                return str(data[key])
    return str(data) if data else "Agent reported an error."


def _collect_response(events: List[AgentEvent]) -> Any:
    """Last ``response`` event wins; otherwise stitch the streamed text deltas together."""
    for event in reversed(events):
        if event.event == "response":
            return event.data

    deltas = [
        event.data["text"]
        for event in events
        if event.event == "response.text.delta"
        and isinstance(event.data, dict)
        and isinstance(event.data.get("text"), str)
    ]
    if not deltas:
        return None
    return {"role": "assistant", "content": [{"type": "text", "text": "".join(deltas)}]}


# ---------------------------------------------------------------------------
# Concrete runners
# ---------------------------------------------------------------------------
@register_runner("cortex")
class CortexRunner(BaseRunner):
    """Snowflake Cortex Agents runner with a streaming httpx client."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(settings)
        self._transport = transport
        self.timeout = parse_timeout(self.settings.AGENT_HTTP_TIMEOUT)

    def endpoint(self, coordinates: AgentCoordinates) -> str:
        """Return the ``:run`` URL for the agent at *coordinates*."""
        base = (self.settings.SNOWFLAKE_ACCOUNT_URL or "").strip().rstrip("/")
        if not base:
            raise ConfigurationError(
                "Set SNOWFLAKE_ACCOUNT_URL, e.g. https://<account>.snowflakecomputing.com."
            )
        if "://" not in base:
            base = f"https://{base}"
        return (
            f"{base}/api/v2/databases/{quote(coordinates.database, safe='')}"
            f"/schemas/{quote(coordinates.schema_name, safe='')}"
            f"/agents/{quote(coordinates.agent_name, safe='')}:run"
        )

    def _headers(self) -> Dict[str, str]:
        token = (self.settings.SNOWFLAKE_PAT or "").strip()
        if not token:
            raise ConfigurationError("Set SNOWFLAKE_PAT to a programmatic access token.")
        return {
            "Authorization": f"Bearer {token}",
            "X-Snowflake-Authorization-Token-Type": self.settings.SNOWFLAKE_TOKEN_TYPE,
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    async def run(self, params: RequestParameters) -> AgentRunResult:
        """POST the request and consume the event stream until the server closes it."""
        url = self.endpoint(params.coordinates)
        headers = self._headers()
        events: List[AgentEvent] = []

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            logger.debug("POST %s", url)
            async with client.stream(
                "POST", url, json=params.to_request_body(), headers=headers
            ) as resp:
                if resp.is_error:
                    await resp.aread()
                    logger.error("Agent request failed (%s): %s", resp.status_code, resp.text)
                resp.raise_for_status()

                async for event in iter_sse_events(resp.aiter_lines()):
                    logger.debug("Agent event '%s'", event.event)
                    if event.event == "error":
                        raise AgentRunError(_error_message(event.data))
                    events.append(event)

        logger.info("Agent stream finished with %d event(s)", len(events))
        return AgentRunResult(response=_collect_response(events), events=events)
