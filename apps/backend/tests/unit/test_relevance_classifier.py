"""
Unit tests for the rule-based relevance classifier.
"""

import pytest

from pipeline.classifier import RelevanceClassifier, get_classifier, is_relevant_job


@pytest.fixture
def classifier():
    return RelevanceClassifier()


def test_pmhnp_title_accepted(classifier):
    """Test that a PMHNP title with psych context is accepted."""
    result = classifier.explain("PMHNP", "Join our outpatient psychiatric team")
    assert result.accepted is True
    assert result.reason == 'accepted'
    assert 'pmhnp' in result.positive_matches


def test_registered_nurse_rejected(classifier):
    """Test that an RN posting on a psych unit is not mistaken for an NP job."""
    assert classifier.classify("Registered Nurse", "Work on our psychiatric unit") is False


def test_empty_input(classifier):
    """Test that empty title and description are rejected."""
    result = classifier.explain("", "   ")
    assert result.accepted is False
    assert result.reason == 'empty'


def test_no_positive_match(classifier):
    """Test that unrelated postings are rejected before role checks."""
    result = classifier.explain("Software Engineer", "Build web applications")
    assert result.reason == 'no_positive_match'


def test_domain_plus_role_fallback(classifier):
    """Test that a domain term plus an NP role in the title counts as positive."""
    result = classifier.explain("Outpatient Nurse Practitioner", "Provide care in a behavioral health clinic")
    assert result.accepted is True
    assert result.positive_matches == ['domain+role']


def test_non_ambiguous_wrong_role_rejected(classifier):
    """Test that a non-ambiguous wrong-role phrase always rejects."""
    result = classifier.explain("Physician - Psychiatry", "Collaborate with our psychiatric nurse practitioner team")
    assert result.accepted is False
    assert result.reason == 'wrong_role'
    assert 'physician' in result.negative_matches


def test_other_specialty_rejected(classifier):
    """Test that other NP specialties are rejected even with mental health context."""
    result = classifier.explain("Family Nurse Practitioner - Primary Care", "Some mental health screening")
    assert result.accepted is False
    assert 'primary care' in result.negative_matches


def test_ambiguous_role_excused_by_strong_positive(classifier):
    """Test that dual titles like 'Psychiatrist / PMHNP' are excused."""
    result = classifier.explain("Psychiatrist / PMHNP", "Outpatient clinic")
    assert result.accepted is True
    assert 'psychiatrist' in result.excused_matches


def test_ambiguous_setting_excused(classifier):
    """Test that care settings in a PMHNP title are excused."""
    result = classifier.explain("PMHNP - Long Term Care", "Rounding at facilities")
    assert result.accepted is True
    assert result.excused_matches == ['long term care']


def test_ambiguous_role_without_strong_positive_rejected(classifier):
    """Test that an ambiguous phrase still rejects without a strong positive phrase."""
    result = classifier.explain("Psychiatrist", "Lead our mental health clinic")
    assert result.accepted is False
    assert result.reason in ('no_positive_match', 'wrong_role')


def test_generic_title_rejected_without_psych_wording(classifier):
    """Test that generic NP titles need psych wording in the title itself."""
    result = classifier.explain("Nurse Practitioner", "Our psychiatric clinic is growing")
    assert result.accepted is False
    assert result.reason == 'generic_title'


def test_generic_title_with_suffix_rejected(classifier):
    """Test that a generic title with a location suffix is still generic."""
    result = classifier.explain("Nurse Practitioner - Memphis, TN", "Psychiatric practice")
    assert result.reason == 'generic_title'


def test_generic_title_with_psych_wording_accepted(classifier):
    """Test that 'Nurse Practitioner - Psychiatry' is accepted."""
    assert classifier.classify("Nurse Practitioner - Psychiatry", "") is True


def test_classify_is_pure(classifier):
    """Test that repeated calls give the same answer."""
    args = ("Telehealth PMHNP", "Remote psychiatric evaluations")
    assert classifier.classify(*args) == classifier.classify(*args) is True


def test_result_to_dict_and_bool(classifier):
    """Test ClassificationResult helpers."""
    result = classifier.explain("PMHNP", "")
    assert bool(result) is True
    assert result.to_dict()['reason'] == 'accepted'


def test_module_helpers():
    """Test the singleton and convenience wrapper."""
    assert get_classifier() is get_classifier()
    assert is_relevant_job("Psychiatric Nurse Practitioner", None) is True
