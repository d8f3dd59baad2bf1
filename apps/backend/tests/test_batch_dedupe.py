"""
Tests for the offline duplicate pass.
"""

from datetime import datetime, timedelta, timezone

from pipeline.batch_dedupe import (
    employers_similar,
    find_duplicates,
    levenshtein,
    normalize_apply_url,
    run_batch_dedupe,
    title_word_overlap,
)
from pipeline.models import NormalizedRecord
from pipeline.store import InMemoryJobStore

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _row(record_id, **overrides):
    row = {
        'id': record_id,
        'title': 'PMHNP',
        'employer': 'Acme',
        'state': 'Texas',
        'is_remote': False,
        'apply_link': f'https://careers.acme.test/jobs/{record_id}',
        'quality_score': 50,
        'created_at': T0,
    }
    row.update(overrides)
    return row


def test_normalize_apply_url():
    """Test that tracking params, www, case and trailing slashes are ignored."""
    a = normalize_apply_url('https://www.Example.com/Jobs/1/?utm_source=x&gh_src=y&id=5#top')
    b = normalize_apply_url('http://example.com/jobs/1?id=5')
    assert a == b == 'example.com/jobs/1?id=5'
    assert normalize_apply_url(None) == ''


def test_levenshtein():
    """Test edit distance."""
    assert levenshtein('kitten', 'sitting') == 3
    assert levenshtein('', 'abc') == 3
    assert levenshtein('same', 'same') == 0


def test_employers_similar():
    """Test exact, containment and small-edit employer matches."""
    assert employers_similar('Acme Health', 'acme health')
    assert employers_similar('Acme', 'Acme Behavioral Health, Inc.')
    assert employers_similar('Lifestance', 'LifeStance.')
    assert employers_similar('Talkiatry', 'Talkiatri')
    assert not employers_similar('Acme', 'Globex')
    assert not employers_similar('', 'Acme')


def test_title_word_overlap():
    """Test the Dice coefficient over words of three or more characters."""
    assert title_word_overlap('Remote PMHNP Telehealth', 'PMHNP Telehealth Remote') == 1.0
    assert title_word_overlap('PMHNP Outpatient', 'PMHNP Inpatient') == 0.5
    assert title_word_overlap('NP', 'NP') == 0.0


def test_url_duplicates_keep_best():
    """Test that the highest quality record of a URL group survives."""
    rows = [
        _row('a', apply_link='https://x.test/job/1', quality_score=40),
        _row('b', apply_link='https://www.x.test/job/1/', quality_score=80, employer='Other'),
    ]
    report = find_duplicates(rows)
    assert report.url_duplicates == 1
    assert report.unpublished_ids == ['a']


def test_exact_duplicates_tie_break_on_created_at():
    """Test that equal scores keep the earliest created record."""
    rows = [
        _row('new', created_at=T0 + timedelta(days=1)),
        _row('old', created_at=T0),
    ]
    report = find_duplicates(rows)
    assert report.exact_duplicates == 1
    assert report.unpublished_ids == ['new']


def test_exact_match_is_per_state():
    """Test that the same title and employer in different states are distinct."""
    rows = [_row('tx'), _row('ca', state='California')]
    report = find_duplicates(rows)
    assert report.unpublished_ids == []


def test_fuzzy_matches_are_flagged_only():
    """Test that fuzzy matches are reported but not unpublished."""
    rows = [
        _row('a', title='Psychiatric Nurse Practitioner Outpatient', employer='Acme Health'),
        _row('b', title='Outpatient Psychiatric Nurse Practitioner PMHNP', employer='Acme Health Inc'),
    ]
    report = find_duplicates(rows)
    assert report.unpublished_ids == []
    assert len(report.fuzzy_matches) == 1
    assert report.fuzzy_matches[0].similarity >= 0.8


def test_run_batch_dedupe_dry_run_and_apply():
    """Test that dry runs report and apply runs unpublish."""
    store = InMemoryJobStore()
    for external_id, score in (('1', 30), ('2', 70)):
        store.create(NormalizedRecord(
            title='PMHNP', employer='Acme', state='Texas',
            apply_link='https://careers.acme.test/jobs/1',
            source='career_page', external_id=external_id, quality_score=score,
        ))

    report = run_batch_dedupe(store, dry_run=True)
    assert report.to_dict()['unpublished'] == 1
    assert store.count({'published': True}) == 2

    report = run_batch_dedupe(store, dry_run=False)
    assert report.dry_run is False
    survivors = list(store.iter_records({'published': True}))
    assert [row['external_id'] for row in survivors] == ['2']
