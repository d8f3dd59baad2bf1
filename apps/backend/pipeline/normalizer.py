"""
Raw record -> normalized record.

Runs every field normalizer over a connector's RawRecord and scores the result.
Normalizers are independent of each other; a field that cannot be normalized
is left empty rather than guessed.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from core.company_normalizer import normalize_employer
from core.description_cleaner import clean_description, summarize
from core.job_attributes import detect_job_type, detect_work_mode
from core.location_parser import parse_location
from core.quality_score import get_quality_scorer
from core.salary_normalizer import detect_period, extract_salary_from_text, format_display_salary, normalize_salary
from pipeline.models import DEFAULT_EXPIRY_DAYS, NormalizedRecord, RawRecord, utcnow

logger = logging.getLogger(__name__)


def normalize_record(raw: RawRecord, now: Optional[datetime] = None) -> NormalizedRecord:
    """Normalize every field of a raw record.

    Raises:
        ValueError: the record has no title or no apply link and cannot be published
    """
    missing = raw.missing_required()
    if missing:
        raise ValueError(f"{raw.source} record {raw.external_id or '?'} has no {missing}")
    now = now or utcnow()

    description = clean_description(raw.description)
    location = parse_location(raw.location)

    min_salary, max_salary, period_hint = raw.min_salary, raw.max_salary, raw.salary_period
    if min_salary is None and max_salary is None and raw.salary_text:
        min_salary, max_salary, text_period = extract_salary_from_text(raw.salary_text)
        period_hint = period_hint or text_period

    salary = normalize_salary(min_salary, max_salary, period_hint, raw.salary_text)
    if salary is None and min_salary is None and max_salary is None and not raw.salary_text:
        # Only trust figures from the posting body when they normalize to a plausible pay.
        text_min, text_max, text_period = extract_salary_from_text(f"{raw.title} {description}")
        salary = normalize_salary(text_min, text_max, period_hint or text_period)
        if salary:
            min_salary, max_salary, period_hint = text_min, text_max, period_hint or text_period

    if salary:
        period = salary.period
    elif min_salary or max_salary:
        period = detect_period(period_hint, raw.salary_text, min_salary, max_salary)
    else:
        period = None

    work_mode = detect_work_mode(raw.title, description, raw.location, raw.is_remote or location.is_remote)

    record = NormalizedRecord(
        title=raw.title,
        employer=normalize_employer(raw.employer),
        description=description,
        summary=summarize(description),
        location=raw.location,
        city=location.city,
        state=location.state,
        state_code=location.state_code,
        country=location.country,
        is_remote=bool(raw.is_remote or location.is_remote or work_mode == 'Remote'),
        is_hybrid=bool(location.is_hybrid or work_mode == 'Hybrid'),
        location_confidence=location.confidence,
        job_type=detect_job_type(raw.title, description, raw.job_type),
        work_mode=work_mode,
        min_salary=min_salary,
        max_salary=max_salary,
        salary_period=period,
        normalized_min_salary=salary.normalized_min if salary else None,
        normalized_max_salary=salary.normalized_max if salary else None,
        salary_is_estimated=salary.is_estimated if salary else False,
        salary_confidence=salary.confidence if salary else None,
        display_salary=format_display_salary(min_salary, max_salary, period),
        apply_link=raw.apply_url,
        external_id=raw.external_id,
        source=raw.source,
        source_site=raw.source_site,
        employer_submitted=raw.employer_submitted,
        posted_at=raw.posted_at,
        expires_at=raw.expires_at or now + timedelta(days=DEFAULT_EXPIRY_DAYS),
        created_at=now,
        updated_at=now,
    )
    record.quality_score = get_quality_scorer().score(record)
    return record
