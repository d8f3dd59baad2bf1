"""
Unit tests for free-text location parsing.
"""

import pytest

from core.location_parser import parse_location


def test_city_state_code():
    """Test the canonical 'City, ST' form."""
    parsed = parse_location("Austin, TX")
    assert parsed.city == "Austin"
    assert parsed.state == "Texas"
    assert parsed.state_code == "TX"
    assert parsed.country == "US"
    assert parsed.confidence == 1.0


def test_lowercase_state_code():
    """Test that the state code match is case-insensitive."""
    parsed = parse_location("austin, tx")
    assert parsed.state_code == "TX"


def test_city_state_name():
    """Test 'City, State Name'."""
    parsed = parse_location("Boston, Massachusetts")
    assert parsed.city == "Boston"
    assert parsed.state_code == "MA"
    assert parsed.confidence == 1.0


def test_remote_stops_parsing():
    """Test that fully remote locations are flagged without a state."""
    parsed = parse_location("Remote - US")
    assert parsed.is_remote is True
    assert parsed.is_hybrid is False
    assert parsed.state_code is None
    assert parsed.confidence == 0.7


def test_hybrid_keeps_parsing():
    """Test that hybrid locations still recover a state."""
    parsed = parse_location("Hybrid - Denver, CO")
    assert parsed.is_hybrid is True
    assert parsed.state_code == "CO"


def test_bare_state_code_with_city():
    """Test a state code without a comma, followed by a ZIP."""
    parsed = parse_location("Charleston WV 25301")
    assert parsed.city == "Charleston"
    assert parsed.state_code == "WV"
    assert parsed.confidence == 1.0


def test_longest_state_name_wins():
    """Test that 'West Virginia' is not read as 'Virginia'."""
    parsed = parse_location("West Virginia")
    assert parsed.state_code == "WV"
    assert parsed.city is None
    assert parsed.confidence == 0.8


def test_state_name_with_prefix_city():
    """Test a state name anywhere in the text with a city before it."""
    parsed = parse_location("Greater Portland Area Oregon")
    assert parsed.state_code == "OR"
    assert parsed.city == "Greater Portland Area"


@pytest.mark.parametrize("text", ["", None, "   ", "Somewhere"])
def test_unstructured(text):
    """Test that unrecognized input gets the lowest confidence and no state."""
    parsed = parse_location(text)
    assert parsed.state_code is None
    assert parsed.confidence == 0.3
    assert parsed.original_text == (text or '')


def test_deterministic():
    """Test that parsing the same input twice gives equal results."""
    assert parse_location("Chicago, IL").to_dict() == parse_location("Chicago, IL").to_dict()
