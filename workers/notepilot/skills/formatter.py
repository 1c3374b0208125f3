"""Renders accepted skills into one block for the chat system prompt."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notepilot.skills.models import SelectedSkill

_PREAMBLE = (
    "# Active Skills\n\n"
    "The following skills apply to this conversation. They are listed in "
    "priority order: when two skills disagree, follow the one that comes first."
)
_SEPARATOR = "\n\n---\n\n"


def format_skill(skill: SelectedSkill) -> str:
    """Render a single skill block with its name as the heading."""
    heading = f"## Skill: {skill.name}"
    if skill.compressed:
        heading += " (condensed)"
    body = skill.content.strip()
    return f"{heading}\n\n{body}" if body else heading


def format_skill_context(skills: Sequence[SelectedSkill]) -> str:
    """Join skill blocks in acceptance order; nothing to inject yields ``""``."""
    if not skills:
        return ""
    blocks = [format_skill(s) for s in skills]
    return _PREAMBLE + _SEPARATOR + _SEPARATOR.join(blocks)
