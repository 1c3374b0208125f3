"""Skills system: keyword-matched instruction snippets injected into chat prompts."""

from notepilot.skills.budget import allocate, compress_content, estimate_tokens
from notepilot.skills.formatter import format_skill_context
from notepilot.skills.matcher import match_skills, score_skill
from notepilot.skills.models import (
    BudgetedSkill,
    SelectedSkill,
    Skill,
    SkillCreateRequest,
    SkillMatch,
    SkillScope,
    SkillSelection,
    SkillUpdateRequest,
    SkillUsageStats,
)
from notepilot.skills.precedence import order_matches
from notepilot.skills.selector import SkillSelector, SkillSource
from notepilot.skills.store import (
    DuplicateSlugError,
    SkillNotFoundError,
    SkillStore,
    SkillStoreError,
    SkillValidationError,
    slugify,
)

__all__ = [
    "BudgetedSkill",
    "DuplicateSlugError",
    "SelectedSkill",
    "Skill",
    "SkillCreateRequest",
    "SkillMatch",
    "SkillNotFoundError",
    "SkillScope",
    "SkillSelection",
    "SkillSelector",
    "SkillSource",
    "SkillStore",
    "SkillStoreError",
    "SkillUpdateRequest",
    "SkillUsageStats",
    "SkillValidationError",
    "allocate",
    "compress_content",
    "estimate_tokens",
    "format_skill_context",
    "match_skills",
    "order_matches",
    "score_skill",
    "slugify",
]
