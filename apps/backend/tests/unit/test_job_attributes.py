"""
Unit tests for job type and work mode detection.
"""

import pytest

from core.job_attributes import detect_job_type, detect_work_mode, map_employment_type


@pytest.mark.parametrize("raw,expected", [
    ("FULLTIME", "Full-Time"),
    ("part_time", "Part-Time"),
    ("Contractor", "Contract"),
    ("Per Diem", "Per Diem"),
    ("", None),
    (None, None),
])
def test_map_employment_type(raw, expected):
    """Test mapping of source-provided employment types."""
    assert map_employment_type(raw) == expected


def test_detect_job_type_from_title():
    """Test that the title is checked first."""
    assert detect_job_type("PMHNP - PRN", "Full-time benefits for staff") == "Per Diem"


def test_detect_job_type_from_description():
    """Test fallback to the description."""
    assert detect_job_type("PMHNP", "This is a part-time role") == "Part-Time"


def test_detect_job_type_hint_wins():
    """Test that a clean source hint overrides text detection."""
    assert detect_job_type("PMHNP - PRN", "", hint="FULL_TIME") == "Full-Time"


def test_detect_job_type_none():
    """Test that no signal gives None."""
    assert detect_job_type("PMHNP", "Great team") is None


def test_detect_work_mode():
    """Test Remote / Hybrid / In-Person detection."""
    assert detect_work_mode("Remote PMHNP") == "Remote"
    assert detect_work_mode("PMHNP", "hybrid schedule, remote two days") == "Hybrid"
    assert detect_work_mode("PMHNP", "Fully on-site clinic") == "In-Person"
    assert detect_work_mode("PMHNP", "", "", is_remote=True) == "Remote"
    assert detect_work_mode("PMHNP", "Great team") is None
