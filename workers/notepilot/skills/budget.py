"""Token budgeter: fits ordered skills into a prompt token budget.

Walks the precedence-ordered skills once, keeping a running total:

1. The full content fits: accept it uncompressed.
2. Otherwise try the compressed content: a non-empty condensed version
   cheaper than the full content is accepted when it fits.
3. Otherwise stop. Lower-priority skills are never tried (hard cutoff,
   not bin packing).

Token counts are a characters/4 estimate, not a real tokenizer.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from notepilot.constants import CHARS_PER_TOKEN, DEFAULT_SKILL_TOKEN_BUDGET
from notepilot.skills.models import BudgetedSkill

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notepilot.skills.models import SkillMatch

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#{1,6}\s+\S")
_FENCE_RE = re.compile(r"^(```|~~~)")
_LIST_MARKER_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s+")
_SENTENCE_RE = re.compile(r"^(.+?[.!?])(?:\s|$)")
_ELLIPSIS = " …"


def estimate_tokens(text: str) -> int:
    """Estimate tokens as characters / 4, rounded half up. Empty text is 0."""
    return (len(text) + CHARS_PER_TOKEN // 2) // CHARS_PER_TOKEN


def _first_sentence(line: str) -> str:
    m = _SENTENCE_RE.match(line)
    return m.group(1) if m else line


def _cap(text: str, limit: int) -> str:
    """Trim *text* to at most *limit* characters, preferring a word boundary."""
    if len(text) <= limit:
        return text
    if limit <= len(_ELLIPSIS):
        return text[:limit]
    cut = text[: limit - len(_ELLIPSIS)]
    head, sep, _ = cut.rpartition(" ")
    if sep and head.strip():
        cut = head
    return cut.rstrip() + _ELLIPSIS


def compress_content(text: str) -> str:
    """Condense skill content to its outline.

    Keeps markdown heading lines, the first sentence of every paragraph and
    the first sentence of every list item. Code blocks are dropped unless
    nothing else survives, in which case their leading lines are kept. An
    outline far shorter than half the original (less than a quarter of the
    cap) is replaced by a word-boundary prefix of the original. The result
    is never longer than half of the original.
    """
    limit = len(text) // 2
    outline: list[str] = []
    code: list[str] = []
    in_fence = False
    in_paragraph = False
    for line in text.splitlines():
        stripped = line.strip()
        if _FENCE_RE.match(stripped):
            in_fence = not in_fence
            in_paragraph = False
            continue
        if in_fence:
            if stripped:
                code.append(line.rstrip())
            continue
        if not stripped:
            in_paragraph = False
            continue
        if _HEADING_RE.match(stripped):
            outline.append(stripped)
            in_paragraph = False
            continue
        marker = _LIST_MARKER_RE.match(stripped)
        if marker:
            outline.append(marker.group(0) + _first_sentence(stripped[marker.end() :]))
            in_paragraph = True
            continue
        if in_paragraph:
            continue
        outline.append(_first_sentence(stripped))
        in_paragraph = True

    if not outline:
        outline = code
    condensed = _cap("\n".join(outline), limit)
    if len(condensed) < limit // 4:
        condensed = _cap(text.strip(), limit)
    return condensed


def allocate(
    matches: Iterable[SkillMatch],
    budget: int = DEFAULT_SKILL_TOKEN_BUDGET,
) -> list[BudgetedSkill]:
    """Accept skills in order until one no longer fits, even compressed."""
    if budget < 0:
        raise ValueError(f"token budget must be non-negative, got {budget}")

    accepted: list[BudgetedSkill] = []
    used = 0
    for match in matches:
        content = match.skill.content
        cost = estimate_tokens(content)
        if used + cost <= budget:
            accepted.append(BudgetedSkill(match=match, content=content, estimated_tokens=cost))
            used += cost
            continue

        condensed = compress_content(content)
        condensed_cost = estimate_tokens(condensed)
        if condensed.strip() and condensed_cost < cost and used + condensed_cost <= budget:
            accepted.append(
                BudgetedSkill(match=match, content=condensed, estimated_tokens=condensed_cost, compressed=True)
            )
            used += condensed_cost
            continue

        logger.debug(
            "skill budget exhausted at skill %d (~%d tokens, used %d of %d)",
            match.skill.id,
            cost,
            used,
            budget,
        )
        break

    return accepted
