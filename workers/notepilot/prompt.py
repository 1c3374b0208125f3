"""Chat prompt assembly for the project mentor.

Builds the system prompt and the messages array for one chat turn:

1. The mentor system prompt is always first.
2. Project context (meetings, wiki, summaries) is appended when available;
   a selected project without context gets a short note instead.
3. Matching skills are appended last, in precedence order.
4. Only the most recent ``history_limit`` messages are sent, followed by
   the new user message.

When skills are disabled the selector is not called at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from notepilot.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_SKILL_TOKEN_BUDGET
from notepilot.skills.budget import estimate_tokens
from notepilot.skills.models import SkillSelection

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notepilot.models import ChatMessage
    from notepilot.skills.selector import SkillSelector

logger = logging.getLogger(__name__)

MENTOR_SYSTEM_PROMPT = """You are an experienced, friendly AI mentor and companion. \
You help with project-related questions and with general conversation.

Personality:
- Supportive and encouraging, like a wise friend and mentor
- Ask clarifying questions when needed
- Give specific, actionable advice
- Reference project details when relevant

When discussing projects:
- Reference specific meetings, decisions, and technical details from the context
- Point out patterns or potential issues you notice
- Offer alternatives and trade-offs

You have access to the user's project context (meetings, wikis, summaries), \
which is provided below when relevant."""

NO_CONTEXT_NOTE = (
    "Note: User has selected a project, but no context is available yet. Acknowledge this if relevant."
)

_SECTION_RULE = "\n\n---\n\n"


@dataclass
class PromptConfig:
    """Configuration for chat prompt assembly."""

    system_prompt: str = MENTOR_SYSTEM_PROMPT
    history_limit: int = DEFAULT_HISTORY_LIMIT
    skills_enabled: bool = True
    skill_token_budget: int = DEFAULT_SKILL_TOKEN_BUDGET


@dataclass
class ChatPrompt:
    """Messages ready for the LLM plus the skills that were injected."""

    messages: list[dict[str, str]]
    selection: SkillSelection = field(default_factory=SkillSelection)

    @property
    def system_prompt(self) -> str:
        return self.messages[0]["content"]


class ChatPromptBuilder:
    """Builds the messages array for one mentor chat turn."""

    def __init__(self, selector: SkillSelector | None = None, config: PromptConfig | None = None) -> None:
        self._selector = selector
        self._config = config or PromptConfig()

    async def build(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        project_id: int | None = None,
        project_context: str = "",
    ) -> ChatPrompt:
        """Assemble the prompt for *message*.

        Errors from the skill store propagate; a chat turn is never silently
        sent without skills that should have been considered.
        """
        selection = SkillSelection()
        if self._config.skills_enabled and self._selector is not None:
            selection = await self._selector.select(
                message,
                project_id=project_id,
                token_budget=self._config.skill_token_budget,
            )

        system_content = self._build_system_content(project_id, project_context, selection)
        messages: list[dict[str, str]] = [{"role": "system", "content": system_content}]

        limit = self._config.history_limit
        recent = list(history)[-limit:] if limit > 0 else []
        messages.extend({"role": m.role, "content": m.content} for m in recent)
        messages.append({"role": "user", "content": message})

        logger.debug(
            "chat prompt assembled: %d messages, %d skills, ~%d system tokens",
            len(messages),
            len(selection.skills),
            estimate_tokens(system_content),
        )
        return ChatPrompt(messages=messages, selection=selection)

    def _build_system_content(self, project_id: int | None, project_context: str, selection: SkillSelection) -> str:
        sections: list[str] = [self._config.system_prompt]
        if project_context.strip():
            sections.append(f"{_SECTION_RULE}# Project Context\n\n{project_context.strip()}")
        elif project_id is not None:
            sections.append(f"\n\n{NO_CONTEXT_NOTE}")
        if selection.context:
            sections.append(f"{_SECTION_RULE}{selection.context}")
        return "".join(sections)
