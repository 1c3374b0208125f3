"""Base mixin with shared helpers used by all handler groups."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import psycopg
import structlog

from notepilot.consumer._subjects import HEADER_REQUEST_ID, HEADER_RETRY_COUNT, MAX_RETRIES
from notepilot.skills.store import SkillStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import nats.aio.msg
    from nats.js.client import JetStreamContext
    from pydantic import BaseModel

logger = structlog.get_logger()


class ConsumerBaseMixin:
    """Shared helper methods inherited by the SkillConsumer via mixin pattern."""

    # These attributes are set on the concrete SkillConsumer class.
    _js: JetStreamContext | None
    _db_url: str

    @staticmethod
    def _retry_count(msg: nats.aio.msg.Msg) -> int:
        """Extract the Retry-Count header value, defaulting to 0."""
        if msg.headers and HEADER_RETRY_COUNT in msg.headers:
            try:
                return int(msg.headers[HEADER_RETRY_COUNT])
            except (ValueError, TypeError):
                return 0
        return 0

    async def _reject(self, msg: nats.aio.msg.Msg) -> None:
        """Nak for redelivery, or move to the DLQ once retries are exhausted."""
        if self._retry_count(msg) >= MAX_RETRIES:
            await self._move_to_dlq(msg)
        else:
            await msg.nak()

    async def _move_to_dlq(self, msg: nats.aio.msg.Msg) -> None:
        """Publish message to DLQ subject and ack the original."""
        if self._js is None:
            return
        dlq_subject = msg.subject + ".dlq"
        headers = dict(msg.headers) if msg.headers else {}
        try:
            await self._js.publish(dlq_subject, msg.data, headers=headers or None)
            logger.warning("message moved to DLQ", dlq_subject=dlq_subject)
        except Exception:
            logger.exception("failed to publish to DLQ", dlq_subject=dlq_subject)
        await msg.ack()

    async def _publish_model(self, subject: str, payload: BaseModel, request_id: str = "") -> None:
        """Publish a pydantic payload as camelCase-aliased JSON."""
        if self._js is None:
            return
        headers: dict[str, str] = {}
        if request_id:
            headers[HEADER_REQUEST_ID] = request_id
        await self._js.publish(subject, payload.model_dump_json(by_alias=True).encode(), headers=headers or None)

    @contextlib.asynccontextmanager
    async def _open_store(self) -> AsyncIterator[SkillStore]:
        """Open a PostgreSQL connection for the duration of one message."""
        async with await psycopg.AsyncConnection.connect(self._db_url) as conn:
            yield SkillStore(conn)
