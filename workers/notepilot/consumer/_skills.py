"""Skill match and skill usage handler mixins."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from notepilot.consumer._subjects import SUBJECT_SKILLS_MATCH_RESULT
from notepilot.logger import bind_request_context
from notepilot.models import SkillMatchRequest, SkillMatchResult, SkillUsageRequest
from notepilot.skills.selector import SkillSelector

if TYPE_CHECKING:
    import nats.aio.msg

logger = structlog.get_logger()


class SkillHandlerMixin:
    """Handles skills.match.request and skills.usage.record messages."""

    _skills_disabled: bool
    _default_token_budget: int

    async def _handle_skill_match(self, msg: nats.aio.msg.Msg) -> None:
        """Select skills for a chat message and publish the result."""
        try:
            request = SkillMatchRequest.model_validate_json(msg.data)
        except ValidationError:
            logger.warning("invalid skill match request", exc_info=True)
            await msg.nak()
            return

        bind_request_context(request.request_id, request.project_id)
        log = logger.bind(request_id=request.request_id, project_id=request.project_id)

        if self._skills_disabled:
            result = SkillMatchResult(request_id=request.request_id, project_id=request.project_id, disabled=True)
            await self._publish_model(SUBJECT_SKILLS_MATCH_RESULT, result, request.request_id)
            await msg.ack()
            log.info("skills disabled, match skipped")
            return

        budget = request.token_budget if request.token_budget is not None else self._default_token_budget
        try:
            async with self._open_store() as store:
                selection = await SkillSelector(store).select(
                    request.message,
                    project_id=request.project_id,
                    token_budget=budget,
                )

            result = SkillMatchResult(
                request_id=request.request_id,
                project_id=request.project_id,
                skills=selection.skills,
                context=selection.context,
            )
            await self._publish_model(SUBJECT_SKILLS_MATCH_RESULT, result, request.request_id)
            await msg.ack()
            log.info("skill match published", skills=len(selection.skills), tokens=selection.total_tokens)

        except Exception:
            log.exception("skill selection failed")
            error_result = SkillMatchResult(
                request_id=request.request_id,
                project_id=request.project_id,
                error="skill selection failed",
            )
            try:
                await self._publish_model(SUBJECT_SKILLS_MATCH_RESULT, error_result, request.request_id)
            except Exception:
                log.exception("failed to publish error result")
            await self._reject(msg)
            return

        if request.chat_message_id is not None and selection.skills:
            await self._record_match_usage([s.id for s in selection.skills], request.chat_message_id)

    async def _record_match_usage(self, skill_ids: list[int], chat_message_id: int) -> None:
        """Record usage for an already delivered match; failures are logged only."""
        try:
            async with self._open_store() as store:
                await store.record_usage(skill_ids, chat_message_id)
        except Exception:
            logger.exception("failed to record skill usage", chat_message_id=chat_message_id, skill_ids=skill_ids)

    async def _handle_skill_usage(self, msg: nats.aio.msg.Msg) -> None:
        """Persist which skills were injected for a stored chat message."""
        try:
            request = SkillUsageRequest.model_validate_json(msg.data)
            log = logger.bind(chat_message_id=request.chat_message_id)

            async with self._open_store() as store:
                recorded = await store.record_usage(request.skill_ids, request.chat_message_id)

            await msg.ack()
            log.info("skill usage recorded", count=recorded)

        except Exception:
            logger.exception("failed to record skill usage")
            await self._reject(msg)
