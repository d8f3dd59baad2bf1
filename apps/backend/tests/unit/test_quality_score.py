"""
Unit tests for quality scoring.
"""

from core.quality_score import QualityScorer, classify_link_tier, get_quality_scorer


def test_classify_link_tier():
    """Test apply link tiers."""
    assert classify_link_tier("https://boards.greenhouse.io/acme/jobs/1") == "direct_ats"
    assert classify_link_tier("https://www.indeed.com/viewjob?jk=1") == "job_board"
    assert classify_link_tier("https://careers.example.com/jobs/1") == "career_page"
    assert classify_link_tier("") == "none"
    assert classify_link_tier("not a url") == "none"


def test_full_score_is_capped():
    """Test that every factor present is capped at 100."""
    record = {
        "apply_link": "https://boards.greenhouse.io/acme/jobs/1",
        "normalized_min_salary": 120000,
        "summary": "Outpatient PMHNP role with a growing team.",
        "city": "Austin",
        "state": "Texas",
        "employer_submitted": True,
    }
    breakdown = QualityScorer().score_breakdown(record)
    assert breakdown == {
        "link_tier": 30,
        "salary": 20,
        "description": 10,
        "location": 10,
        "employer_submitted": 30,
    }
    assert QualityScorer().score(record) == 100


def test_partial_factors():
    """Test a job board link with only a long description and a state."""
    record = {
        "apply_link": "https://www.indeed.com/viewjob?jk=1",
        "description": "x" * 250,
        "state": "Texas",
    }
    assert QualityScorer().score(record) == 0 + 5 + 5


def test_score_accepts_objects():
    """Test that attribute-style records are scored too."""

    class Record:
        apply_link = "https://careers.example.com/jobs/1"
        min_salary = 60

    assert get_quality_scorer().score(Record()) == 20 + 20


def test_empty_record():
    """Test that an empty record scores zero."""
    assert QualityScorer().score({}) == 0
