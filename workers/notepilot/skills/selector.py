"""SkillSelector: picks the skills to inject for one chat message.

Pipeline, run once per message:
    fetch (global + project) -> match -> order by precedence -> budget -> format

The selector holds no state between calls. Store failures propagate to
the caller; an empty selection always means "nothing matched".
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

from notepilot.constants import DEFAULT_SKILL_TOKEN_BUDGET
from notepilot.skills.budget import allocate
from notepilot.skills.formatter import format_skill_context
from notepilot.skills.matcher import match_skills
from notepilot.skills.models import SelectedSkill, SkillSelection
from notepilot.skills.precedence import order_matches

if TYPE_CHECKING:
    from notepilot.skills.models import BudgetedSkill, Skill

logger = structlog.get_logger()


class SkillSource(Protocol):
    """Retrieval operations the selector needs from a skill store."""

    async def get_global_skills(self) -> list[Skill]: ...

    async def get_project_skills(self, project_id: int) -> list[Skill]: ...


def build_reason(item: BudgetedSkill) -> str:
    """Summarize why a skill was included."""
    count = len(item.match.matches)
    noun = "keyword" if count == 1 else "keywords"
    reason = f"Matched {count} {noun} with score {item.match.score}"
    if item.compressed:
        reason += ", compressed to fit the token budget"
    return reason


def to_selected(item: BudgetedSkill) -> SelectedSkill:
    """Convert a budgeted skill into its output record."""
    skill = item.match.skill
    return SelectedSkill(
        id=skill.id,
        name=skill.name,
        slug=skill.slug,
        scope=skill.scope,
        score=item.match.score,
        matches=list(item.match.matches),
        estimated_tokens=item.estimated_tokens,
        compressed=item.compressed,
        reason=build_reason(item),
        content=item.content,
    )


class SkillSelector:
    """Chooses and renders skills for a message from an injected skill source."""

    def __init__(self, source: SkillSource) -> None:
        self._source = source

    async def candidates(self, project_id: int | None = None) -> list[Skill]:
        """Fetch global skills plus the project's skills, without duplicates."""
        skills = list(await self._source.get_global_skills())
        if project_id is not None:
            skills.extend(await self._source.get_project_skills(project_id))

        seen: set[int] = set()
        unique: list[Skill] = []
        for skill in skills:
            if skill.id in seen:
                continue
            seen.add(skill.id)
            unique.append(skill)
        return unique

    async def select(
        self,
        message: str,
        project_id: int | None = None,
        token_budget: int = DEFAULT_SKILL_TOKEN_BUDGET,
    ) -> SkillSelection:
        """Return the ordered, budgeted skills for *message* and their prompt block."""
        candidates = await self.candidates(project_id)
        matched = match_skills(message, candidates)
        budgeted = allocate(order_matches(matched), token_budget)

        selected = [to_selected(item) for item in budgeted]
        selection = SkillSelection(skills=selected, context=format_skill_context(selected))

        logger.info(
            "skills selected",
            project_id=project_id,
            candidates=len(candidates),
            matched=len(matched),
            selected=len(selected),
            tokens=selection.total_tokens,
            budget=token_budget,
        )
        return selection
