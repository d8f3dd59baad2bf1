"""
Job type and work mode detection from titles, descriptions and source hints.
"""

import re
from typing import Optional

from core.rule_tables import EMPLOYMENT_TYPE_ALIASES, JOB_TYPE_PATTERNS, WORK_MODE_PATTERNS

JOB_TYPES = ('Full-Time', 'Part-Time', 'Contract', 'Per Diem')
WORK_MODES = ('Remote', 'Hybrid', 'In-Person')
JOB_TYPES_LOWER = {label.lower(): label for label in JOB_TYPES}

_JOB_TYPE_RULES = [
    (label, [re.compile(p, re.IGNORECASE) for p in patterns])
    for label, patterns in JOB_TYPE_PATTERNS
]
_WORK_MODE_RULES = [
    (label, [re.compile(p, re.IGNORECASE) for p in patterns])
    for label, patterns in WORK_MODE_PATTERNS
]


def _first_match(rules, text: str) -> Optional[str]:
    for label, patterns in rules:
        if any(p.search(text) for p in patterns):
            return label
    return None


def map_employment_type(raw: Optional[str]) -> Optional[str]:
    """Map a source's own employment type field ("FULLTIME", "part_time") to a job type."""
    if not raw:
        return None
    key = raw.strip().lower()
    if key in JOB_TYPES_LOWER:
        return JOB_TYPES_LOWER[key]
    if key in EMPLOYMENT_TYPE_ALIASES:
        return EMPLOYMENT_TYPE_ALIASES[key]
    return _first_match(_JOB_TYPE_RULES, key)


def detect_job_type(title: str = '', description: str = '', hint: Optional[str] = None) -> Optional[str]:
    """
    Detect the job type.

    A source-provided hint wins when it maps cleanly; otherwise the title is
    checked before the description since descriptions often mention several
    arrangements ("full-time or per diem").
    """
    mapped = map_employment_type(hint)
    if mapped:
        return mapped
    return _first_match(_JOB_TYPE_RULES, title or '') or _first_match(_JOB_TYPE_RULES, description or '')


def detect_work_mode(
    title: str = '',
    description: str = '',
    location: str = '',
    is_remote: Optional[bool] = None,
) -> Optional[str]:
    """Detect Remote / Hybrid / In-Person. Returns None when nothing indicates a mode."""
    text = ' '.join(part for part in (title, location, description) if part)
    mode = _first_match(_WORK_MODE_RULES, text)
    if mode:
        return mode
    if is_remote:
        return 'Remote'
    return None
