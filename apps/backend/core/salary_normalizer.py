"""
Salary normalization.

Converts whatever pay information a source provides (min/max with or without a
period, or a free-text range such as "$60 - $75/hr") into an annual range with a
confidence signal. Implausible values are rejected per bound: the caller keeps
the raw values on the record and only the normalized bound is dropped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from core.rule_tables import (
    ANNUAL_BAND,
    ANNUAL_BAND_LOOSE,
    ESTIMATED_MARKERS,
    HOURLY_RATE_BAND,
    PERIOD_ALIASES,
    PERIOD_MAGNITUDE_THRESHOLDS,
    PERIOD_MULTIPLIERS,
    PERIOD_TEXT_KEYWORDS,
)

logger = logging.getLogger(__name__)

FULL_CONFIDENCE = 1.0
ESTIMATED_CONFIDENCE = 0.6
HOURLY_CONFIDENCE_FACTOR = 0.9
DAILY_WEEKLY_CONFIDENCE_FACTOR = 0.85
WIDE_RANGE_RATIO = 2.5
WIDE_RANGE_CONFIDENCE_FACTOR = 0.7

HOURLY_TEXT_PATTERN = re.compile(
    r'\$?\s*([\d,]+(?:\.\d+)?)\s*(?:-|–|to)?\s*\$?\s*([\d,]+(?:\.\d+)?)?\s*(?:/|per\s*|an?\s+)?\s*(?:hour|hr)\b',
    re.IGNORECASE,
)
ANNUAL_TEXT_PATTERN = re.compile(
    r'\$\s*([\d,]+(?:\.\d+)?k?)\s*(?:-|–|to)?\s*\$?\s*([\d,]+(?:\.\d+)?k?)?',
    re.IGNORECASE,
)


@dataclass
class SalaryNormalizationResult:
    """Annualized salary range derived from raw source values."""
    normalized_min: Optional[int] = None
    normalized_max: Optional[int] = None
    is_estimated: bool = False
    confidence: Optional[float] = None
    period: Optional[str] = None

    @property
    def has_value(self) -> bool:
        return self.normalized_min is not None or self.normalized_max is not None


def is_estimated_text(raw_text: Optional[str]) -> bool:
    if not raw_text:
        return False
    lower = raw_text.lower()
    return any(marker in lower for marker in ESTIMATED_MARKERS)


def detect_period(
    raw_period: Optional[str],
    raw_text: Optional[str],
    raw_min: Optional[float],
    raw_max: Optional[float],
) -> str:
    """
    Detect the pay period of a raw salary.

    Order: explicit period field, then keywords in the free text, then the
    magnitude of the value itself. Falls back to annual.
    """
    if raw_period:
        normalized = raw_period.lower().strip()
        for alias, period in PERIOD_ALIASES:
            if alias in normalized:
                return period

    if raw_text:
        lower = raw_text.lower()
        for period, keywords in PERIOD_TEXT_KEYWORDS:
            if any(keyword in lower for keyword in keywords):
                return period

    value = raw_min or raw_max
    if value:
        for upper_bound, period in PERIOD_MAGNITUDE_THRESHOLDS:
            if value < upper_bound:
                return period

    return 'annual'


def is_plausible(original_value: float, period: str, annual_value: float, confidence: float) -> bool:
    """
    Check a salary against the plausibility band of its ORIGINAL unit.

    Hourly rates are compared as hourly rates so contractor pay
    ($50-$350/hr) is not judged by its annualized equivalent. Everything else
    is compared as an annual figure, with a looser band once confidence has
    already been reduced.
    """
    if period == 'hourly':
        low, high = HOURLY_RATE_BAND
        if low <= original_value <= high:
            return True
        logger.info(f"[salary] Rejected hourly rate ${original_value:,.2f}/hr (outside ${low}-${high}/hr)")
        return False

    low, high = ANNUAL_BAND if confidence >= FULL_CONFIDENCE else ANNUAL_BAND_LOOSE
    if low <= annual_value <= high:
        return True
    logger.info(
        f"[salary] Rejected annual salary ${annual_value:,.0f} "
        f"(outside ${low:,.0f}-${high:,.0f}, confidence={confidence})"
    )
    return False


def _normalize_single(value: float, period: str, is_estimated: bool) -> Optional[Tuple[int, float]]:
    annual = int(round(value * PERIOD_MULTIPLIERS[period]))
    confidence = ESTIMATED_CONFIDENCE if is_estimated else FULL_CONFIDENCE

    if not is_plausible(value, period, annual, confidence):
        return None

    if period == 'hourly':
        confidence *= HOURLY_CONFIDENCE_FACTOR
    elif period in ('daily', 'weekly'):
        confidence *= DAILY_WEEKLY_CONFIDENCE_FACTOR

    return annual, confidence


def normalize_salary(
    raw_min: Optional[float],
    raw_max: Optional[float],
    raw_period: Optional[str] = None,
    raw_text: Optional[str] = None,
) -> Optional[SalaryNormalizationResult]:
    """
    Normalize a raw salary range to annual figures.

    Args:
        raw_min: Lower bound as published by the source
        raw_max: Upper bound as published by the source
        raw_period: Period field if the source has one ("hourly", "YEAR", ...)
        raw_text: Free-text salary string, used for period and estimation hints

    Returns:
        SalaryNormalizationResult, or None when there is nothing to normalize
        or every provided bound was rejected as implausible.
    """
    raw_min = raw_min if raw_min and raw_min > 0 else None
    raw_max = raw_max if raw_max and raw_max > 0 else None
    if raw_min is None and raw_max is None:
        return None

    estimated = is_estimated_text(raw_text)
    period = detect_period(raw_period, raw_text, raw_min, raw_max)
    result = SalaryNormalizationResult(is_estimated=estimated, period=period)

    confidences = []
    if raw_min is not None:
        normalized = _normalize_single(raw_min, period, estimated)
        if normalized:
            result.normalized_min, min_confidence = normalized
            confidences.append(min_confidence)

    if raw_max is not None:
        normalized = _normalize_single(raw_max, period, estimated)
        if normalized:
            result.normalized_max, max_confidence = normalized
            confidences.append(max_confidence)

    if not confidences:
        return None

    # The range is only as trustworthy as its weaker bound.
    result.confidence = min(confidences)

    if result.normalized_min is not None and result.normalized_max is not None:
        if result.normalized_min > result.normalized_max:
            result.normalized_min, result.normalized_max = result.normalized_max, result.normalized_min
        if result.normalized_max / result.normalized_min > WIDE_RANGE_RATIO:
            result.confidence *= WIDE_RANGE_CONFIDENCE_FACTOR

    result.confidence = round(result.confidence, 4)
    return result


def _parse_amount(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    cleaned = raw.replace(',', '').strip().lower()
    multiplier = 1000 if cleaned.endswith('k') else 1
    try:
        return float(cleaned.rstrip('k')) * multiplier
    except ValueError:
        return None


def extract_salary_from_text(text: Optional[str]) -> Tuple[Optional[float], Optional[float], Optional[str]]:
    """
    Pull a (min, max, period) triple out of free text.

    Hourly patterns are tried before dollar ranges so "$60-$75/hr" is not read
    as an annual range.
    """
    if not text:
        return None, None, None

    hourly = HOURLY_TEXT_PATTERN.search(text)
    if hourly:
        return _parse_amount(hourly.group(1)), _parse_amount(hourly.group(2)), 'hourly'

    annual = ANNUAL_TEXT_PATTERN.search(text)
    if annual:
        low = _parse_amount(annual.group(1))
        high = _parse_amount(annual.group(2))
        if low:
            return low, high, None

    return None, None, None


def format_display_salary(
    raw_min: Optional[float],
    raw_max: Optional[float],
    period: Optional[str],
) -> Optional[str]:
    """Human-readable salary in the source's own unit, e.g. "$120k-$150k/yr"."""
    if not raw_min and not raw_max:
        return None

    def fmt(value: float) -> str:
        if period in (None, 'annual') and value >= 1000:
            return f"${value / 1000:.0f}k"
        if value == int(value):
            return f"${value:,.0f}"
        return f"${value:,.2f}"

    suffix = {
        'hourly': '/hr',
        'daily': '/day',
        'weekly': '/wk',
        'monthly': '/mo',
        'annual': '/yr',
    }.get(period or 'annual', '')

    if raw_min and raw_max and raw_min != raw_max:
        low, high = sorted((raw_min, raw_max))
        return f"{fmt(low)}-{fmt(high)}{suffix}"
    return f"{fmt(raw_min or raw_max)}{suffix}"
