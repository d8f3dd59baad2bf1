"""
Free-text location parsing for US postings.

Turns strings like "Austin, TX", "Remote - US", "Hybrid: Denver, Colorado" or
"Greater Boston Area, Massachusetts" into a ParsedLocation. Rules are tried in
priority order and the first that matches wins, so the same input always
produces the same output.
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from core.rule_tables import (
    DEFAULT_COUNTRY,
    HYBRID_KEYWORDS,
    REMOTE_KEYWORDS,
    STATE_CODE_TO_NAME,
    STATE_NAME_TO_CODE,
)

logger = logging.getLogger(__name__)

REMOTE_CONFIDENCE = 0.7
EXACT_CONFIDENCE = 1.0
PARTIAL_CONFIDENCE = 0.8
UNSTRUCTURED_CONFIDENCE = 0.3
MIN_CITY_LENGTH = 3

CITY_STATE_CODE_PATTERN = re.compile(r'^([^,]+),\s*([A-Z]{2})$', re.IGNORECASE)
CITY_STATE_NAME_PATTERN = re.compile(r'^([^,]+),\s*([A-Za-z\s]+)$')
BARE_STATE_CODE_PATTERN = re.compile(r'\b([A-Z]{2})\b')

# Longest names first so "West Virginia" wins over "Virginia".
_STATE_NAME_PATTERNS = [
    (name, re.compile(r'\b' + re.escape(name) + r'\b', re.IGNORECASE))
    for name in sorted(STATE_NAME_TO_CODE, key=len, reverse=True)
]
_STATE_NAMES_LOWER = {name.lower(): name for name in STATE_NAME_TO_CODE}


@dataclass
class ParsedLocation:
    """Structured location derived from free text."""
    original_text: str = ''
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    country: str = DEFAULT_COUNTRY
    is_remote: bool = False
    is_hybrid: bool = False
    confidence: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


def _clean_city(text: str) -> Optional[str]:
    city = text.strip().rstrip(',').strip(' -–:;').strip()
    if len(city) < MIN_CITY_LENGTH:
        return None
    return city


def parse_location(text: Optional[str]) -> ParsedLocation:
    """
    Parse a free-text location.

    Priority:
        1. remote / hybrid keywords (fully remote stops here)
        2. "City, ST"
        3. "City, State Name"
        4. bare two-letter state code, text before it as city
        5. state name anywhere, text before it as city
        6. nothing recognized (confidence 0.3)
    """
    original = text or ''
    result = ParsedLocation(original_text=original, confidence=UNSTRUCTURED_CONFIDENCE)
    normalized = original.strip()
    if not normalized:
        return result

    lower = normalized.lower()

    if any(keyword in lower for keyword in REMOTE_KEYWORDS):
        result.is_remote = True
        result.confidence = REMOTE_CONFIDENCE
    if any(keyword in lower for keyword in HYBRID_KEYWORDS):
        result.is_hybrid = True
        result.confidence = REMOTE_CONFIDENCE

    if result.is_remote and not result.is_hybrid:
        return result

    match = CITY_STATE_CODE_PATTERN.match(normalized)
    if match:
        code = match.group(2).upper()
        if code in STATE_CODE_TO_NAME:
            result.city = match.group(1).strip()
            result.state_code = code
            result.state = STATE_CODE_TO_NAME[code]
            result.confidence = EXACT_CONFIDENCE
            return result

    match = CITY_STATE_NAME_PATTERN.match(normalized)
    if match:
        state_name = _STATE_NAMES_LOWER.get(match.group(2).strip().lower())
        if state_name:
            result.city = match.group(1).strip()
            result.state = state_name
            result.state_code = STATE_NAME_TO_CODE[state_name]
            result.confidence = EXACT_CONFIDENCE
            return result

    # Only the first uppercase pair is considered; "REMOTE" style tokens are
    # four letters or more and never match.
    match = BARE_STATE_CODE_PATTERN.search(normalized)
    if match and match.group(1) in STATE_CODE_TO_NAME:
        code = match.group(1)
        result.state_code = code
        result.state = STATE_CODE_TO_NAME[code]
        result.confidence = PARTIAL_CONFIDENCE
        city = _clean_city(normalized[:match.start()])
        if city:
            result.city = city
            result.confidence = EXACT_CONFIDENCE
        return result

    for state_name, pattern in _STATE_NAME_PATTERNS:
        match = pattern.search(normalized)
        if match:
            result.state = state_name
            result.state_code = STATE_NAME_TO_CODE[state_name]
            result.confidence = PARTIAL_CONFIDENCE
            city = _clean_city(normalized[:match.start()])
            if city:
                result.city = city
                result.confidence = EXACT_CONFIDENCE
            return result

    logger.debug(f"[location] No structure recovered from '{original}'")
    return result
