"""NATS stream and subject constants for the SkillConsumer."""

from __future__ import annotations

STREAM_NAME = "NOTEPILOT"
STREAM_SUBJECTS = [
    "skills.>",
]

# Skill selection
SUBJECT_SKILLS_MATCH_REQUEST = "skills.match.request"
SUBJECT_SKILLS_MATCH_RESULT = "skills.match.result"

# Skill usage tracking
SUBJECT_SKILLS_USAGE_RECORD = "skills.usage.record"

# Headers
HEADER_REQUEST_ID = "X-Request-ID"
HEADER_RETRY_COUNT = "Retry-Count"
MAX_RETRIES = 3
