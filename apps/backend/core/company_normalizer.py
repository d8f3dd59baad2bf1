"""
Employer name normalization.

Feeds spell one employer many ways ("Talkspace", "Talkspace, Inc.",
"TALKSPACE LLC"). Known aliases map to a canonical name; any other name keeps
its spelling minus trailing legal-entity forms, so exact-match dedupe sees a
single employer.
"""

import re
from functools import lru_cache
from typing import Dict, Optional

from core.rule_tables import EMPLOYER_KEY_SUFFIXES, EMPLOYER_LEGAL_SUFFIXES, KNOWN_EMPLOYERS

_KEY_SUFFIXES = sorted((tuple(suffix.split()) for suffix in EMPLOYER_KEY_SUFFIXES), key=len, reverse=True)
_LEGAL_SUFFIX_PATTERN = re.compile(
    r'[\s,]+(?:' + '|'.join(re.escape(s) for s in sorted(EMPLOYER_LEGAL_SUFFIXES, key=len, reverse=True)) + r')\.?$',
    re.IGNORECASE,
)


def employer_key(name: Optional[str]) -> str:
    """Lowercase, punctuation-free name with trailing corporate and sector words removed.

    At least one word is always kept, so 'Health Inc' keys to 'health'.
    """
    text = (name or '').lower().replace('.', '').replace('&', ' and ')
    words = re.sub(r'[^a-z0-9\s-]', ' ', text).split()
    stripped = True
    while stripped:
        stripped = False
        for suffix in _KEY_SUFFIXES:
            if len(words) > len(suffix) and tuple(words[-len(suffix):]) == suffix:
                words = words[:-len(suffix)]
                stripped = True
                break
    return ' '.join(words)


@lru_cache(maxsize=1)
def _alias_index() -> Dict[str, str]:
    index = {}
    for canonical, aliases in KNOWN_EMPLOYERS.items():
        for alias in (canonical,) + tuple(aliases):
            index[employer_key(alias)] = canonical
    return index


def canonical_employer(name: Optional[str]) -> Optional[str]:
    key = employer_key(name)
    return _alias_index().get(key) if key else None


def normalize_employer(name: Optional[str]) -> Optional[str]:
    """Canonical name for a known employer, else the name without a trailing 'Inc.', 'LLC', ..."""
    if not name or not name.strip():
        return name
    display = re.sub(r'\s+', ' ', name).strip()
    canonical = canonical_employer(display)
    if canonical:
        return canonical
    trimmed = _LEGAL_SUFFIX_PATTERN.sub('', display).rstrip(' ,')
    return trimmed or display
