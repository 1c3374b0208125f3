"""SkillStore: persistence of skills and skill usage in PostgreSQL.

Slugs are unique per scope (among global skills, or within one project),
never globally. Deleting a project cascades to its project-scoped skills.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import psycopg
import structlog
from psycopg.types.json import Jsonb

from notepilot.constants import MAX_SLUG_CHARS
from notepilot.skills.models import Skill, SkillScope, SkillUsageStats

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notepilot.skills.models import SkillCreateRequest, SkillUpdateRequest

logger = structlog.get_logger()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS skills (
    id               SERIAL PRIMARY KEY,
    name             TEXT NOT NULL,
    slug             TEXT NOT NULL,
    description      TEXT,
    content          TEXT NOT NULL,
    scope            TEXT NOT NULL DEFAULT 'global' CHECK (scope IN ('global', 'project')),
    project_id       INTEGER REFERENCES projects(id) ON DELETE CASCADE,
    trigger_keywords JSONB NOT NULL DEFAULT '[]'::jsonb,
    auto_activate    BOOLEAN NOT NULL DEFAULT TRUE,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CHECK ((scope = 'project') = (project_id IS NOT NULL))
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_skills_slug_scope
    ON skills (slug, COALESCE(project_id, 0));

CREATE TABLE IF NOT EXISTS skill_usage (
    id              SERIAL PRIMARY KEY,
    skill_id        INTEGER NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
    chat_message_id INTEGER NOT NULL,
    used_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_COLUMNS = (
    "id, name, slug, description, content, scope, project_id,"
    " trigger_keywords, auto_activate, created_at, updated_at"
)

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


class SkillStoreError(Exception):
    """Base class for skill store failures."""


class SkillNotFoundError(SkillStoreError):
    """Raised when a skill id does not exist."""

    def __init__(self, skill_id: int) -> None:
        self.skill_id = skill_id
        super().__init__(f"skill {skill_id} not found")


class DuplicateSlugError(SkillStoreError):
    """Raised when a slug is already taken within the same scope."""

    def __init__(self, slug: str, project_id: int | None) -> None:
        self.slug = slug
        self.project_id = project_id
        where = f"project {project_id}" if project_id is not None else "global scope"
        super().__init__(f"slug '{slug}' already exists in {where}")


class SkillValidationError(SkillStoreError):
    """Raised when a skill references data that does not exist (e.g. a project)."""


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a display name."""
    slug = _SLUG_STRIP_RE.sub("-", name.lower()).strip("-")
    slug = slug[:MAX_SLUG_CHARS].rstrip("-")
    return slug or "skill"


def _row_to_skill(row: Sequence[object]) -> Skill:
    return Skill(
        id=row[0],
        name=row[1],
        slug=row[2],
        description=row[3],
        content=row[4],
        scope=SkillScope(row[5]),
        project_id=row[6],
        trigger_keywords=row[7],
        auto_activate=bool(row[8]),
        created_at=row[9],
        updated_at=row[10],
    )


class SkillStore:
    """Reads and writes skills through an async psycopg connection."""

    def __init__(self, db: psycopg.AsyncConnection[object]) -> None:
        self._db = db

    async def ensure_schema(self) -> None:
        """Create the skills tables and the per-scope slug index if missing."""
        async with self._db.cursor() as cur:
            await cur.execute(SCHEMA_SQL)
        await self._db.commit()

    # -- Retrieval used by the selector ------------------------------------------

    async def get_global_skills(self) -> list[Skill]:
        """Return auto-activating global skills, most recently updated first."""
        async with self._db.cursor() as cur:
            await cur.execute(
                f"""SELECT {_COLUMNS} FROM skills
                    WHERE scope = 'global' AND auto_activate = TRUE
                    ORDER BY updated_at DESC"""
            )
            rows = await cur.fetchall()
        return [_row_to_skill(r) for r in rows]

    async def get_project_skills(self, project_id: int) -> list[Skill]:
        """Return auto-activating skills of one project, most recently updated first."""
        async with self._db.cursor() as cur:
            await cur.execute(
                f"""SELECT {_COLUMNS} FROM skills
                    WHERE project_id = %s AND auto_activate = TRUE
                    ORDER BY updated_at DESC""",
                (project_id,),
            )
            rows = await cur.fetchall()
        return [_row_to_skill(r) for r in rows]

    # -- CRUD ----------------------------------------------------------------------

    async def get_skill(self, skill_id: int) -> Skill:
        async with self._db.cursor() as cur:
            await cur.execute(f"SELECT {_COLUMNS} FROM skills WHERE id = %s", (skill_id,))
            row = await cur.fetchone()
        if row is None:
            raise SkillNotFoundError(skill_id)
        return _row_to_skill(row)

    async def get_skill_by_slug(self, slug: str, project_id: int | None = None) -> Skill | None:
        """Resolve a slug as seen from one project, including manual-only skills.

        A project skill shadows a global skill with the same slug. Without a
        project only global skills are considered. Returns None when nothing
        matches.
        """
        async with self._db.cursor() as cur:
            await cur.execute(
                f"""SELECT {_COLUMNS} FROM skills
                    WHERE slug = %s AND (scope = 'global' OR project_id = %s)
                    ORDER BY CASE WHEN scope = 'project' THEN 0 ELSE 1 END
                    LIMIT 1""",
                (slug, project_id),
            )
            row = await cur.fetchone()
        return _row_to_skill(row) if row is not None else None

    async def list_skills(self, project_id: int | None = None) -> list[Skill]:
        """List all skills, or only one project's skills, newest first."""
        query = f"SELECT {_COLUMNS} FROM skills"
        params: tuple[object, ...] = ()
        if project_id is not None:
            query += " WHERE project_id = %s"
            params = (project_id,)
        query += " ORDER BY created_at DESC"
        async with self._db.cursor() as cur:
            await cur.execute(query, params)
            rows = await cur.fetchall()
        return [_row_to_skill(r) for r in rows]

    async def create_skill(self, req: SkillCreateRequest) -> Skill:
        """Insert a new skill; the slug is derived from its name."""
        slug = slugify(req.name)
        try:
            async with self._db.cursor() as cur:
                await cur.execute(
                    f"""INSERT INTO skills
                           (name, slug, description, content, scope, project_id, trigger_keywords, auto_activate)
                       VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                       RETURNING {_COLUMNS}""",
                    (
                        req.name,
                        slug,
                        req.description,
                        req.content,
                        req.scope.value,
                        req.project_id,
                        Jsonb(list(req.trigger_keywords)),
                        req.auto_activate,
                    ),
                )
                row = await cur.fetchone()
            await self._db.commit()
        except psycopg.errors.UniqueViolation as exc:
            await self._db.rollback()
            raise DuplicateSlugError(slug, req.project_id) from exc
        except psycopg.errors.ForeignKeyViolation as exc:
            await self._db.rollback()
            raise SkillValidationError(f"project {req.project_id} does not exist") from exc

        if row is None:
            raise SkillStoreError("insert returned no row")
        skill = _row_to_skill(row)
        logger.info("skill created", skill_id=skill.id, slug=skill.slug, scope=skill.scope)
        return skill

    async def update_skill(self, skill_id: int, req: SkillUpdateRequest) -> Skill:
        """Apply a partial update; a new name re-derives the slug."""
        current = await self.get_skill(skill_id)
        name = req.name if req.name is not None else current.name
        slug = slugify(name) if req.name is not None else current.slug
        keywords = req.trigger_keywords if req.trigger_keywords is not None else current.trigger_keywords

        try:
            async with self._db.cursor() as cur:
                await cur.execute(
                    f"""UPDATE skills
                       SET name = %s, slug = %s, description = %s, content = %s,
                           trigger_keywords = %s, auto_activate = %s, updated_at = NOW()
                       WHERE id = %s
                       RETURNING {_COLUMNS}""",
                    (
                        name,
                        slug,
                        req.description if req.description is not None else current.description,
                        req.content if req.content is not None else current.content,
                        Jsonb(list(keywords)),
                        req.auto_activate if req.auto_activate is not None else current.auto_activate,
                        skill_id,
                    ),
                )
                row = await cur.fetchone()
            await self._db.commit()
        except psycopg.errors.UniqueViolation as exc:
            await self._db.rollback()
            raise DuplicateSlugError(slug, current.project_id) from exc

        if row is None:
            raise SkillNotFoundError(skill_id)
        logger.info("skill updated", skill_id=skill_id)
        return _row_to_skill(row)

    async def delete_skill(self, skill_id: int) -> bool:
        """Delete a skill; returns False when it did not exist."""
        async with self._db.cursor() as cur:
            await cur.execute("DELETE FROM skills WHERE id = %s", (skill_id,))
            deleted = cur.rowcount > 0
        await self._db.commit()
        if deleted:
            logger.info("skill deleted", skill_id=skill_id)
        return deleted

    # -- Usage tracking ------------------------------------------------------------

    async def record_usage(self, skill_ids: Sequence[int], chat_message_id: int) -> int:
        """Record that *skill_ids* were injected for a chat message."""
        if not skill_ids:
            return 0
        async with self._db.cursor() as cur:
            await cur.executemany(
                "INSERT INTO skill_usage (skill_id, chat_message_id) VALUES (%s, %s)",
                [(sid, chat_message_id) for sid in skill_ids],
            )
        await self._db.commit()
        logger.debug("skill usage recorded", chat_message_id=chat_message_id, count=len(skill_ids))
        return len(skill_ids)

    async def usage_stats(self, skill_id: int) -> SkillUsageStats:
        async with self._db.cursor() as cur:
            await cur.execute(
                "SELECT COUNT(*), MAX(used_at) FROM skill_usage WHERE skill_id = %s",
                (skill_id,),
            )
            row = await cur.fetchone()
        if row is None:
            return SkillUsageStats(skill_id=skill_id)
        return SkillUsageStats(skill_id=skill_id, usage_count=int(row[0] or 0), last_used_at=row[1])
