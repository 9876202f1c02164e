"""Runs one agent call and publishes its results to the workflow."""

from __future__ import annotations

import logging
from dataclasses import (
    dataclass,
    field,
)
from pathlib import Path
from typing import (
    Any,
    List,
    Optional,
)

from cortex_agent_action.agent.runner_interface import BaseRunner
from cortex_agent_action.common import (
    AnsiColors,
    colored_print,
    compact_json,
    pretty_json,
)
from cortex_agent_action.core.answer import extract_answer_text
from cortex_agent_action.core.schema import (
    ActionInputs,
    AgentEvent,
)
from cortex_agent_action.memory.result_store import persist_response
from cortex_agent_action.workflow import OutputSink

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """What a run produced, for callers that embed the action."""

    response: Any
    events: List[AgentEvent] = field(default_factory=list)
    persisted_path: Optional[Path] = None
    answer_text: Optional[str] = None


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
async def run_action(inputs: ActionInputs, runner: BaseRunner, sink: OutputSink) -> ActionOutcome:
    """
    Call the agent, then persist / publish the response, the event trace and the answer.

    Outputs written to *sink*:
    - ``result-json``: raw response JSON, or ``{"persisted":true,"path":...}`` when persisted
    - ``result-file``: absolute path of the persisted file, or ``""``
    - ``events-json``: JSON array of ``{"event": ..., "data": ...}`` records
    - ``answer-text``: only when an answer could be extracted
    """
    request = inputs.request
    result = await runner.run(request)

    colored_print("Cortex Agent run succeeded ✅", AnsiColors.GREEN)
    logger.info("Agent: %s", request.coordinates.qualified_name)

    outcome = ActionOutcome(response=result.response, events=list(result.events))

    if inputs.persist_results:
        outcome.persisted_path = persist_response(result.response, inputs.persist_dir)
        logger.info("Response JSON persisted to %s", outcome.persisted_path)
        sink.emit(
            "result-json", compact_json({"persisted": True, "path": str(outcome.persisted_path)})
        )
        sink.emit("result-file", str(outcome.persisted_path))
    else:
        print(f"Response JSON: {pretty_json(result.response)}")
        sink.emit("result-json", compact_json({} if result.response is None else result.response))
        sink.emit("result-file", "")

    records = [event.model_dump(mode="json") for event in result.events]
    sink.emit("events-json", compact_json(records))

    outcome.answer_text = extract_answer_text(result.response)
    if outcome.answer_text:
        colored_print("Answer:", AnsiColors.YELLOW)
        print(outcome.answer_text)
        sink.emit("answer-text", outcome.answer_text)

    return outcome
