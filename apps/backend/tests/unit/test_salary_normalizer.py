"""
Unit tests for salary normalization.
"""

import pytest

from core.salary_normalizer import (
    detect_period,
    extract_salary_from_text,
    format_display_salary,
    is_estimated_text,
    normalize_salary,
)


class TestNormalizeSalary:
    """Test normalize_salary()."""

    def test_hourly_rate_annualized(self):
        """Test that $127/hr annualizes to 264,160 with reduced confidence."""
        result = normalize_salary(127, None, 'hourly')
        assert result.normalized_min == 264160
        assert result.normalized_max is None
        assert result.period == 'hourly'
        assert result.confidence < 1.0

    def test_hourly_rate_below_band_rejected(self):
        """Test that hourly rates under $50 are rejected."""
        assert normalize_salary(40, None, 'hourly') is None

    def test_hourly_rate_above_band_rejected(self):
        """Test that hourly rates over $350 are rejected."""
        assert normalize_salary(400, None, 'hourly') is None

    def test_annual_range(self):
        """Test a plain annual range keeps full confidence."""
        result = normalize_salary(120000, 150000, 'annual')
        assert (result.normalized_min, result.normalized_max) == (120000, 150000)
        assert result.confidence == 1.0
        assert result.is_estimated is False

    def test_reversed_range_swapped(self):
        """Test that a reversed range is swapped so min <= max."""
        result = normalize_salary(150000, 120000, 'YEAR')
        assert result.normalized_min == 120000
        assert result.normalized_max == 150000

    def test_monthly_salary(self):
        """Test monthly salaries are multiplied by 12."""
        result = normalize_salary(10000, 12000, 'monthly')
        assert (result.normalized_min, result.normalized_max) == (120000, 144000)

    def test_period_inferred_from_magnitude(self):
        """Test that small values without a period are read as hourly."""
        result = normalize_salary(65, 80)
        assert result.period == 'hourly'
        assert result.normalized_min == 65 * 2080

    def test_low_annual_rejected_at_full_confidence(self):
        """Test that $50k/yr is outside the strict annual band."""
        assert normalize_salary(50000, None, 'annual') is None

    def test_estimated_uses_loose_band(self):
        """Test that estimated salaries get the looser band and lower confidence."""
        result = normalize_salary(50000, None, 'annual', raw_text='Estimated salary')
        assert result.normalized_min == 50000
        assert result.is_estimated is True
        assert result.confidence == pytest.approx(0.6)

    def test_one_bound_rejected_other_kept(self):
        """Test that rejection is per bound."""
        result = normalize_salary(30000, 150000, 'annual')
        assert result.normalized_min is None
        assert result.normalized_max == 150000

    def test_wide_range_lowers_confidence(self):
        """Test that very wide ranges reduce confidence."""
        result = normalize_salary(70000, 200000, 'annual')
        assert result.confidence == pytest.approx(0.7)

    @pytest.mark.parametrize("low,high", [(None, None), (0, 0), (-5, None)])
    def test_nothing_to_normalize(self, low, high):
        """Test that missing or non-positive values give None."""
        assert normalize_salary(low, high, 'annual') is None


def test_detect_period():
    """Test period detection order: field, text, magnitude, default."""
    assert detect_period('YEAR', None, None, None) == 'annual'
    assert detect_period('Hourly', None, None, None) == 'hourly'
    assert detect_period(None, '$60/hr', None, None) == 'hourly'
    assert detect_period(None, None, 3000, None) == 'weekly'
    assert detect_period(None, None, 12000, None) == 'monthly'
    assert detect_period(None, None, 150000, None) == 'annual'
    assert detect_period(None, None, None, None) == 'annual'


def test_is_estimated_text():
    """Test estimation markers in free text."""
    assert is_estimated_text('Predicted salary') is True
    assert is_estimated_text('$120k') is False
    assert is_estimated_text(None) is False


class TestExtractSalaryFromText:
    """Test extract_salary_from_text()."""

    def test_hourly_range(self):
        """Test an hourly range with 'per hour'."""
        assert extract_salary_from_text('$60 - $75 per hour') == (60.0, 75.0, 'hourly')

    def test_k_range(self):
        """Test a dollar range written in thousands."""
        assert extract_salary_from_text('$120k - $150k') == (120000.0, 150000.0, None)

    def test_comma_range(self):
        """Test a comma-formatted range."""
        low, high, _ = extract_salary_from_text('$120,000 to $150,000 a year')
        assert (low, high) == (120000.0, 150000.0)

    def test_no_salary(self):
        """Test text without amounts."""
        assert extract_salary_from_text('Competitive pay') == (None, None, None)
        assert extract_salary_from_text(None) == (None, None, None)


def test_format_display_salary():
    """Test the display string keeps the source's own unit."""
    assert format_display_salary(120000, 150000, 'annual') == '$120k-$150k/yr'
    assert format_display_salary(60, 75, 'hourly') == '$60-$75/hr'
    assert format_display_salary(62.5, None, 'hourly') == '$62.50/hr'
    assert format_display_salary(150000, 120000, None) == '$120k-$150k'
    assert format_display_salary(None, None, 'annual') is None
