"""Wire models for messages exchanged between the web core and the skills worker.

Every NATS payload uses camelCase keys (``requestId``, ``projectId``, ...),
matching the nested skill records. Snake_case names are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notepilot.skills.models import SelectedSkill  # noqa: TC001 (Pydantic needs it at runtime)

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(BaseModel):
    """One turn of a stored chat conversation."""

    role: str
    content: str


class SkillMatchRequest(BaseModel):
    """Request to pick skills for an incoming chat message."""

    model_config = _WIRE_CONFIG

    request_id: str = ""
    message: str
    project_id: int | None = None
    token_budget: int | None = Field(default=None, ge=0)  # None: use the worker default
    chat_message_id: int | None = None


class SkillMatchResult(BaseModel):
    """Result published back to the web core for a SkillMatchRequest."""

    model_config = _WIRE_CONFIG

    request_id: str = ""
    project_id: int | None = None
    skills: list[SelectedSkill] = Field(default_factory=list)
    context: str = ""
    disabled: bool = False
    error: str = ""


class SkillUsageRequest(BaseModel):
    """Records which skills were injected for a stored chat message."""

    model_config = _WIRE_CONFIG

    chat_message_id: int
    skill_ids: list[int] = Field(default_factory=list)
