"""Builders for Skill fixtures shared by the skills test modules."""

from __future__ import annotations

from datetime import UTC, datetime

from notepilot.skills.models import Skill, SkillScope

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def filler(tokens: int) -> str:
    """Plain text of exactly ``tokens * 4`` characters (no sentence breaks)."""
    return ("notes " * (tokens + 1))[: tokens * 4]


def make_skill(
    skill_id: int,
    keywords: list[str],
    *,
    name: str = "",
    content: str | None = None,
    tokens: int = 50,
    project_id: int | None = None,
    updated_at: datetime = BASE_TIME,
    auto_activate: bool = True,
) -> Skill:
    """Build a skill; passing *project_id* makes it project-scoped."""
    name = name or f"Skill {skill_id}"
    return Skill(
        id=skill_id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        content=content if content is not None else filler(tokens),
        scope=SkillScope.PROJECT if project_id is not None else SkillScope.GLOBAL,
        project_id=project_id,
        trigger_keywords=keywords,
        auto_activate=auto_activate,
        updated_at=updated_at,
    )


class FakeSkillSource:
    """In-memory SkillSource that records the calls made to it."""

    def __init__(self, global_skills: list[Skill] | None = None, project_skills: list[Skill] | None = None) -> None:
        self.global_skills = global_skills or []
        self.project_skills = project_skills or []
        self.project_calls: list[int] = []

    async def get_global_skills(self) -> list[Skill]:
        return list(self.global_skills)

    async def get_project_skills(self, project_id: int) -> list[Skill]:
        self.project_calls.append(project_id)
        return [s for s in self.project_skills if s.project_id == project_id]
