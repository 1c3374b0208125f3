"""NotePilot worker: skill selection for chat prompts.

Embedding callers build a chat turn with :class:`ChatPromptBuilder` over a
:class:`SkillSelector`. The NATS worker in :mod:`notepilot.consumer`
answers the same selection requests for the web core.
"""

from notepilot.models import ChatMessage, SkillMatchRequest, SkillMatchResult, SkillUsageRequest
from notepilot.prompt import MENTOR_SYSTEM_PROMPT, ChatPrompt, ChatPromptBuilder, PromptConfig
from notepilot.skills.selector import SkillSelector
from notepilot.skills.store import SkillStore

__all__ = [
    "MENTOR_SYSTEM_PROMPT",
    "ChatMessage",
    "ChatPrompt",
    "ChatPromptBuilder",
    "PromptConfig",
    "SkillMatchRequest",
    "SkillMatchResult",
    "SkillSelector",
    "SkillStore",
    "SkillUsageRequest",
]
