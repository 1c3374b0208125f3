"""Keyword matcher: scores skills against a user message.

Scoring per trigger keyword (case-insensitive, literal comparison only):

- phrase (keyword with an internal space) found as a contiguous substring: +4
- single word found as an exact token: +2
- otherwise, single word found inside any token: +1

A keyword without spaces that still joins word characters with punctuation
(``follow-up``, ``1:1``, ``q&a``) is compared literally against the
normalized message and scores as a word (+2). Keywords with no word
characters at all are ignored like blank ones.

Duplicate keywords are scored once per occurrence. Skills that end up
with a score of 0, or that are not auto-activating, never leave this stage.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from notepilot.constants import PARTIAL_MATCH_SCORE, PHRASE_MATCH_SCORE, WORD_MATCH_SCORE
from notepilot.skills.models import SkillMatch

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notepilot.skills.models import Skill

_TOKEN_RE = re.compile(r"\w+")


def normalize_message(text: str) -> str:
    """Lowercase and trim a raw message."""
    return text.lower().strip()


def tokenize(normalized: str) -> list[str]:
    """Split a normalized message into word tokens at whitespace and punctuation."""
    return _TOKEN_RE.findall(normalized)


def score_skill(message: str, skill: Skill) -> SkillMatch:
    """Score one skill's trigger keywords against *message*."""
    normalized = normalize_message(message)
    tokens = tokenize(normalized)
    token_set = set(tokens)

    score = 0
    matches: list[str] = []
    for raw in skill.trigger_keywords:
        keyword = raw.lower().strip()
        if not _TOKEN_RE.search(keyword):
            continue

        if " " in keyword:
            if keyword in normalized:
                score += PHRASE_MATCH_SCORE
                matches.append(f'phrase:"{keyword}"')
        elif not _TOKEN_RE.fullmatch(keyword):
            # follow-up, 1:1, q&a: tokenizing would split these apart
            if keyword in normalized:
                score += WORD_MATCH_SCORE
                matches.append(f'word:"{keyword}"')
        elif keyword in token_set:
            score += WORD_MATCH_SCORE
            matches.append(f'word:"{keyword}"')
        elif any(keyword in token for token in tokens):
            score += PARTIAL_MATCH_SCORE
            matches.append(f'partial:"{keyword}"')

    return SkillMatch(skill=skill, score=score, matches=matches)


def match_skills(message: str, skills: Iterable[Skill]) -> list[SkillMatch]:
    """Score every auto-activating skill and keep the ones with a non-zero score.

    Input order is preserved; ordering is the precedence resolver's job.
    """
    results: list[SkillMatch] = []
    for skill in skills:
        if not skill.auto_activate:
            continue
        match = score_skill(message, skill)
        if match.score > 0:
            results.append(match)
    return results
