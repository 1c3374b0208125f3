"""Tests for the chat prompt builder."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from notepilot import ChatMessage, ChatPromptBuilder, PromptConfig, SkillSelector
from notepilot.prompt import NO_CONTEXT_NOTE
from tests.skill_factory import FakeSkillSource, make_skill


@pytest.fixture
def selector() -> SkillSelector:
    return SkillSelector(
        FakeSkillSource(
            global_skills=[make_skill(1, ["agenda"], name="Agenda Writer", content="Number every agenda item.")],
        )
    )


async def test_build_basic() -> None:
    builder = ChatPromptBuilder(config=PromptConfig(system_prompt="You are a mentor."))
    prompt = await builder.build("Hello")

    assert prompt.messages == [
        {"role": "system", "content": "You are a mentor."},
        {"role": "user", "content": "Hello"},
    ]
    assert prompt.selection.skills == []


async def test_build_injects_project_context_then_skills(selector: SkillSelector) -> None:
    builder = ChatPromptBuilder(selector, PromptConfig(system_prompt="Base."))
    prompt = await builder.build(
        "Can you draft the agenda?",
        project_id=3,
        project_context="Meeting on Monday: decided to ship v2.",
    )

    system = prompt.system_prompt
    assert system.startswith("Base.")
    assert "# Project Context" in system
    assert system.index("# Project Context") < system.index("# Active Skills")
    assert "Number every agenda item." in system
    assert [s.id for s in prompt.selection.skills] == [1]


async def test_build_notes_missing_project_context() -> None:
    builder = ChatPromptBuilder(config=PromptConfig(system_prompt="Base."))
    prompt = await builder.build("hi", project_id=3)
    assert prompt.system_prompt == f"Base.\n\n{NO_CONTEXT_NOTE}"


async def test_build_without_matches_adds_no_skill_section(selector: SkillSelector) -> None:
    builder = ChatPromptBuilder(selector, PromptConfig(system_prompt="Base."))
    prompt = await builder.build("how is the weather?")
    assert prompt.system_prompt == "Base."


async def test_disabled_skills_never_call_selector() -> None:
    selector = MagicMock()
    selector.select = AsyncMock()
    builder = ChatPromptBuilder(selector, PromptConfig(skills_enabled=False))

    prompt = await builder.build("draft the agenda")

    selector.select.assert_not_called()
    assert "# Active Skills" not in prompt.system_prompt


async def test_build_passes_budget_to_selector() -> None:
    selector = MagicMock()
    selector.select = AsyncMock(return_value=MagicMock(skills=[], context=""))
    builder = ChatPromptBuilder(selector, PromptConfig(skill_token_budget=500))

    await builder.build("agenda", project_id=9)

    selector.select.assert_awaited_once_with("agenda", project_id=9, token_budget=500)


async def test_build_keeps_recent_history_only() -> None:
    history = [ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(14)]
    builder = ChatPromptBuilder(config=PromptConfig(history_limit=10))

    prompt = await builder.build("latest", history)

    contents = [m["content"] for m in prompt.messages[1:]]
    assert contents == [f"m{i}" for i in range(4, 14)] + ["latest"]


async def test_store_errors_propagate() -> None:
    selector = MagicMock()
    selector.select = AsyncMock(side_effect=RuntimeError("store down"))
    builder = ChatPromptBuilder(selector)

    with pytest.raises(RuntimeError, match="store down"):
        await builder.build("agenda")
