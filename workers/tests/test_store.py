"""Tests for the PostgreSQL-backed SkillStore (psycopg calls are mocked)."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import psycopg
import pytest
from psycopg.types.json import Jsonb

from notepilot.skills.models import SkillCreateRequest, SkillScope, SkillUpdateRequest
from notepilot.skills.store import (
    DuplicateSlugError,
    SkillNotFoundError,
    SkillStore,
    SkillValidationError,
    slugify,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def _row(
    skill_id: int = 1,
    name: str = "Status Update",
    scope: str = "global",
    project_id: int | None = None,
    keywords: object = '["status", "weekly update"]',
) -> tuple[object, ...]:
    return (
        skill_id,
        name,
        slugify(name),
        None,
        "Lead with blockers.",
        scope,
        project_id,
        keywords,
        True,
        NOW,
        NOW,
    )


def _mock_db(
    rows: list[tuple[object, ...]] | None = None,
    fetchone: object = None,
    rowcount: int = 0,
) -> tuple[MagicMock, MagicMock]:
    """Build a fake AsyncConnection whose cursor() works as an async context manager."""
    cur = MagicMock()
    cur.execute = AsyncMock()
    cur.executemany = AsyncMock()
    cur.fetchall = AsyncMock(return_value=rows or [])
    if isinstance(fetchone, list):
        cur.fetchone = AsyncMock(side_effect=fetchone)
    else:
        cur.fetchone = AsyncMock(return_value=fetchone)
    cur.rowcount = rowcount

    cursor_cm = MagicMock()
    cursor_cm.__aenter__ = AsyncMock(return_value=cur)
    cursor_cm.__aexit__ = AsyncMock(return_value=False)

    db = MagicMock()
    db.cursor = MagicMock(return_value=cursor_cm)
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db, cur


# ---------------------------------------------------------------------------
# slugify
# ---------------------------------------------------------------------------


def test_slugify() -> None:
    assert slugify("Status Update") == "status-update"
    assert slugify("  Q3 -- Planning!! ") == "q3-planning"
    assert slugify("Résumé review") == "r-sum-review"
    assert slugify("!!!") == "skill"
    assert len(slugify("x" * 300)) == 100


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


async def test_get_global_skills_maps_rows() -> None:
    db, cur = _mock_db(rows=[_row(1), _row(2, name="Retro", keywords=None)])
    skills = await SkillStore(db).get_global_skills()

    assert [s.id for s in skills] == [1, 2]
    assert skills[0].trigger_keywords == ["status", "weekly update"]
    assert skills[0].description == ""
    assert skills[0].scope == SkillScope.GLOBAL
    assert skills[1].trigger_keywords == []
    query = cur.execute.call_args.args[0]
    assert "scope = 'global'" in query
    assert "auto_activate = TRUE" in query
    assert "ORDER BY updated_at DESC" in query


async def test_get_project_skills_filters_by_project() -> None:
    db, cur = _mock_db(rows=[_row(3, scope="project", project_id=7, keywords=["retro"])])
    skills = await SkillStore(db).get_project_skills(7)

    assert skills[0].project_id == 7
    assert skills[0].scope == SkillScope.PROJECT
    assert cur.execute.call_args.args[1] == (7,)


async def test_retrieval_errors_propagate() -> None:
    db, cur = _mock_db()
    cur.execute.side_effect = psycopg.OperationalError("connection lost")
    with pytest.raises(psycopg.OperationalError):
        await SkillStore(db).get_global_skills()


async def test_get_skill_not_found() -> None:
    db, _ = _mock_db(fetchone=None)
    with pytest.raises(SkillNotFoundError, match="skill 42 not found"):
        await SkillStore(db).get_skill(42)


async def test_get_skill_by_slug_prefers_project_skill() -> None:
    db, cur = _mock_db(fetchone=_row(4, name="Retro", scope="project", project_id=7))
    skill = await SkillStore(db).get_skill_by_slug("retro", project_id=7)

    assert skill is not None
    assert skill.id == 4
    assert skill.scope == SkillScope.PROJECT
    query, params = cur.execute.call_args.args
    assert params == ("retro", 7)
    assert "scope = 'global' OR project_id = %s" in query
    assert query.index("WHEN scope = 'project' THEN 0") < query.index("LIMIT 1")


async def test_get_skill_by_slug_without_project_or_match() -> None:
    db, cur = _mock_db(fetchone=None)
    assert await SkillStore(db).get_skill_by_slug("unknown") is None
    assert cur.execute.call_args.args[1] == ("unknown", None)


async def test_list_skills_for_project() -> None:
    db, cur = _mock_db(rows=[_row(3, scope="project", project_id=7)])
    await SkillStore(db).list_skills(project_id=7)
    query, params = cur.execute.call_args.args
    assert "WHERE project_id = %s" in query
    assert params == (7,)


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------


async def test_create_skill_derives_slug() -> None:
    db, cur = _mock_db(fetchone=_row(9, name="Weekly Status"))
    req = SkillCreateRequest(name="  Weekly Status ", content="Lead with blockers.", trigger_keywords=["status"])
    skill = await SkillStore(db).create_skill(req)

    assert skill.id == 9
    params = cur.execute.call_args.args[1]
    assert params[0] == "Weekly Status"
    assert params[1] == "weekly-status"
    assert params[4] == "global"
    assert params[5] is None
    assert isinstance(params[6], Jsonb)
    db.commit.assert_awaited_once()


async def test_create_skill_duplicate_slug_in_scope() -> None:
    db, cur = _mock_db()
    cur.execute.side_effect = psycopg.errors.UniqueViolation("duplicate key")
    req = SkillCreateRequest(name="Retro", content="x", scope=SkillScope.PROJECT, project_id=4)

    with pytest.raises(DuplicateSlugError, match="project 4") as exc_info:
        await SkillStore(db).create_skill(req)
    assert exc_info.value.slug == "retro"
    db.rollback.assert_awaited_once()


async def test_create_skill_unknown_project() -> None:
    db, cur = _mock_db()
    cur.execute.side_effect = psycopg.errors.ForeignKeyViolation("fk")
    req = SkillCreateRequest(name="Retro", content="x", scope=SkillScope.PROJECT, project_id=404)

    with pytest.raises(SkillValidationError, match="project 404"):
        await SkillStore(db).create_skill(req)


async def test_update_skill_reslugs_on_rename() -> None:
    db, cur = _mock_db(fetchone=[_row(1), _row(1, name="Status Digest")])
    skill = await SkillStore(db).update_skill(1, SkillUpdateRequest(name="Status Digest"))

    assert skill.slug == "status-digest"
    update_params = cur.execute.call_args.args[1]
    assert update_params[0] == "Status Digest"
    assert update_params[1] == "status-digest"
    assert update_params[3] == "Lead with blockers."
    assert update_params[-1] == 1
    assert "updated_at = NOW()" in cur.execute.call_args.args[0]


async def test_update_missing_skill() -> None:
    db, _ = _mock_db(fetchone=None)
    with pytest.raises(SkillNotFoundError):
        await SkillStore(db).update_skill(5, SkillUpdateRequest(content="new"))


async def test_delete_skill() -> None:
    db, _ = _mock_db(rowcount=1)
    assert await SkillStore(db).delete_skill(1) is True

    db, _ = _mock_db(rowcount=0)
    assert await SkillStore(db).delete_skill(1) is False


# ---------------------------------------------------------------------------
# Usage tracking
# ---------------------------------------------------------------------------


async def test_record_usage() -> None:
    db, cur = _mock_db()
    count = await SkillStore(db).record_usage([2, 1], chat_message_id=77)

    assert count == 2
    assert cur.executemany.call_args.args[1] == [(2, 77), (1, 77)]
    db.commit.assert_awaited_once()


async def test_record_usage_noop_for_empty() -> None:
    db, cur = _mock_db()
    assert await SkillStore(db).record_usage([], chat_message_id=77) == 0
    cur.executemany.assert_not_called()


async def test_usage_stats() -> None:
    db, _ = _mock_db(fetchone=(3, NOW))
    stats = await SkillStore(db).usage_stats(1)
    assert stats.usage_count == 3
    assert stats.last_used_at == NOW


async def test_ensure_schema_creates_scoped_slug_index() -> None:
    db, cur = _mock_db()
    await SkillStore(db).ensure_schema()
    sql = cur.execute.call_args.args[0]
    assert "COALESCE(project_id, 0)" in sql
    assert "ON DELETE CASCADE" in sql
