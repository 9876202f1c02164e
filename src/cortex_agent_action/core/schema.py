"""
Schema definitions for the request sent to a Cortex Agent and the result it streams back.

These data models serve as the contract between input normalisation, the agent runner and the
orchestrator.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

ToolChoice = Optional[Dict[str, Any]]


class ContentPart(BaseModel):
    """One part of a message body; ``{"type": "text", "text": "..."}`` is the common case."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Content part kind, e.g. 'text'")
    text: Optional[str] = None


class Message(BaseModel):
    """A single conversational message sent to the agent."""

    model_config = ConfigDict(extra="allow")

    role: str
    content: List[ContentPart] = Field(default_factory=list)

    @classmethod
    def user_text(cls, text: str) -> "Message":
        """Wrap a plain prompt as a one-part user message."""
        return cls(role="user", content=[ContentPart(type="text", text=text)])


class AgentCoordinates(BaseModel):
    """Fully qualified location of an agent object: ``database.schema.agent``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    database: str
    schema_name: str = Field(..., alias="schema")
    agent_name: str

    @field_validator("database", "schema_name", "agent_name")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be a non-empty string")
        return value

    @property
    def qualified_name(self) -> str:
        """Dotted name used in log lines."""
        return f"{self.database}.{self.schema_name}.{self.agent_name}"


class RequestParameters(BaseModel):
    """Everything the runner needs for one agent call.  Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    coordinates: AgentCoordinates
    messages: List[Message] = Field(..., min_length=1)
    thread_id: Optional[int] = None
    parent_message_id: Optional[int] = None
    tool_choice: ToolChoice = None

    def to_request_body(self) -> Dict[str, Any]:
        """Return the JSON body for the agent ``:run`` endpoint, omitting unset options."""
        body: Dict[str, Any] = {
            "messages": [msg.model_dump(mode="json", exclude_none=True) for msg in self.messages]
        }
        if self.thread_id is not None:
            body["thread_id"] = self.thread_id
        if self.parent_message_id is not None:
            body["parent_message_id"] = self.parent_message_id
        if self.tool_choice is not None:
            body["tool_choice"] = self.tool_choice
        return body


class AgentEvent(BaseModel):
    """A single server-sent event from the agent stream."""

    event: str
    data: Any = None


class AgentRunResult(BaseModel):
    """Fully materialised outcome of one agent call."""

    response: Any = None
    events: List[AgentEvent] = Field(default_factory=list)


class ActionInputs(BaseModel):
    """Validated inputs for a single action run."""

    model_config = ConfigDict(frozen=True)

    request: RequestParameters
    persist_results: bool = False
    persist_dir: Path
