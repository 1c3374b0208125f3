"""Pydantic models for the skills subsystem."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from notepilot.constants import MAX_SKILL_CONTENT_CHARS, MAX_SKILL_NAME_CHARS


class SkillScope(StrEnum):
    """Where a skill applies."""

    GLOBAL = "global"
    PROJECT = "project"


def coerce_keywords(value: object) -> list[str]:
    """Turn a stored trigger-keyword value into a list of strings.

    The column holds JSON text, so strings are decoded first. Anything
    that is not a list afterwards yields an empty list; non-string items
    are dropped.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Skill(BaseModel):
    """A reusable instruction snippet injected into chat prompts."""

    id: int
    name: str
    slug: str
    description: str = ""
    content: str
    scope: SkillScope = SkillScope.GLOBAL
    project_id: int | None = None
    trigger_keywords: list[str] = Field(default_factory=list)
    auto_activate: bool = True
    created_at: datetime | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("trigger_keywords", mode="before")
    @classmethod
    def _coerce_keywords(cls, v: object) -> list[str]:
        """Malformed keyword data degrades to no keywords instead of failing."""
        return coerce_keywords(v)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description_none(cls, v: str | None) -> str:
        return v if v is not None else ""

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        """Timestamps without tzinfo are stored in UTC."""
        return _as_utc(v)

    @model_validator(mode="after")
    def _check_scope(self) -> Skill:
        if self.scope == SkillScope.PROJECT and self.project_id is None:
            raise ValueError("project-scoped skill requires a project_id")
        if self.scope == SkillScope.GLOBAL and self.project_id is not None:
            raise ValueError("global skill cannot belong to a project")
        return self


class SkillMatch(BaseModel):
    """A skill scored against one user message."""

    skill: Skill
    score: int = Field(default=0, ge=0)
    matches: list[str] = Field(default_factory=list)


class BudgetedSkill(BaseModel):
    """A matched skill accepted by the token budgeter."""

    match: SkillMatch
    content: str
    estimated_tokens: int = Field(ge=0)
    compressed: bool = False


class SelectedSkill(BaseModel):
    """Output record for one injected skill.

    Serialized with camelCase keys (``estimatedTokens``) for the web core.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str
    slug: str
    scope: SkillScope
    score: int
    matches: list[str] = Field(default_factory=list)
    estimated_tokens: int = 0
    compressed: bool = False
    reason: str = ""
    content: str = ""


class SkillSelection(BaseModel):
    """Ordered skills chosen for a message plus the prompt block built from them."""

    skills: list[SelectedSkill] = Field(default_factory=list)
    context: str = ""

    @property
    def total_tokens(self) -> int:
        return sum(s.estimated_tokens for s in self.skills)


class SkillCreateRequest(BaseModel):
    """Payload for authoring a new skill."""

    name: str = Field(min_length=1, max_length=MAX_SKILL_NAME_CHARS)
    content: str = Field(min_length=1, max_length=MAX_SKILL_CONTENT_CHARS)
    description: str = ""
    trigger_keywords: list[str] = Field(default_factory=list)
    auto_activate: bool = True
    scope: SkillScope = SkillScope.GLOBAL
    project_id: int | None = Field(default=None, gt=0)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("trigger_keywords", mode="before")
    @classmethod
    def _coerce_keywords_none(cls, v: list[str] | None) -> list[str]:
        return v if v is not None else []

    @model_validator(mode="after")
    def _check_scope(self) -> SkillCreateRequest:
        if self.scope == SkillScope.PROJECT and self.project_id is None:
            raise ValueError("project-scoped skill requires a project_id")
        if self.scope == SkillScope.GLOBAL and self.project_id is not None:
            raise ValueError("global skill cannot belong to a project")
        return self


class SkillUpdateRequest(BaseModel):
    """Partial update; scope and project are fixed at creation."""

    name: str | None = Field(default=None, min_length=1, max_length=MAX_SKILL_NAME_CHARS)
    content: str | None = Field(default=None, min_length=1, max_length=MAX_SKILL_CONTENT_CHARS)
    description: str | None = None
    trigger_keywords: list[str] | None = None
    auto_activate: bool | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class SkillUsageStats(BaseModel):
    """How often a skill has been injected into chat prompts."""

    skill_id: int
    usage_count: int = 0
    last_used_at: datetime | None = None
