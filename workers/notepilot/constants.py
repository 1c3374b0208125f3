"""Centralized constants for the NotePilot worker.

Magic numbers shared by the skills engine, the skill store and the
prompt builder are collected here for easy discovery and consistent usage.
"""

from __future__ import annotations

# -- Token estimation --------------------------------------------------------
CHARS_PER_TOKEN = 4  # Rough heuristic: 1 token ~ 4 characters.
DEFAULT_SKILL_TOKEN_BUDGET = 2000  # Ceiling for skills injected into one prompt.

# -- Keyword scoring ---------------------------------------------------------
PHRASE_MATCH_SCORE = 4  # Multi-word keyword found as a contiguous substring.
WORD_MATCH_SCORE = 2  # Single keyword found as an exact token.
PARTIAL_MATCH_SCORE = 1  # Single keyword found inside a longer token.

# -- Skill validation limits -------------------------------------------------
MAX_SKILL_NAME_CHARS = 100
MAX_SKILL_CONTENT_CHARS = 50_000
MAX_SLUG_CHARS = 100

# -- Chat prompt assembly ----------------------------------------------------
DEFAULT_HISTORY_LIMIT = 10  # Recent chat messages sent alongside a new one.

# -- NATS protocol -----------------------------------------------------------
NATS_DRAIN_TIMEOUT_SECONDS = 10  # Graceful shutdown drain limit.
