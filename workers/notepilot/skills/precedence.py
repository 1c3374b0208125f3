"""Precedence resolver: deterministic total order over matched skills.

Sort key, compared strictly left to right:

1. scope: project skills before global skills, whatever their scores
2. score: descending
3. updated_at: most recently updated first
4. id: ascending, so identical candidates always come out in the same order
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notepilot.skills.models import SkillScope

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notepilot.skills.models import SkillMatch

_SCOPE_RANK: dict[SkillScope, int] = {
    SkillScope.PROJECT: 0,
    SkillScope.GLOBAL: 1,
}


def precedence_key(match: SkillMatch) -> tuple[int, int, float, int]:
    """Return the ascending sort key that encodes skill precedence."""
    skill = match.skill
    return (
        _SCOPE_RANK[skill.scope],
        -match.score,
        -skill.updated_at.timestamp(),
        skill.id,
    )


def order_matches(matches: Iterable[SkillMatch]) -> list[SkillMatch]:
    """Return *matches* sorted by precedence, highest priority first."""
    return sorted(matches, key=precedence_key)
