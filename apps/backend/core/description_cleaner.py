"""
Description cleaning: HTML/entity-laden source text to readable plain text.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment

MOJIBAKE_REPLACEMENTS = (
    ('�', ''),
    ('â€™', "'"),
    ('â€˜', "'"),
    ('â€“', '–'),
    ('â€”', '—'),
    ('â€œ', '"'),
    ('â€\x9d', '"'),
    ('â€¢', '•'),
    ('â€¦', '...'),
    ('â€', '"'),
    ('Â', ''),
)

# Never part of the readable text
STRIP_TAGS = ['script', 'style', 'noscript', 'template', 'head']
BLOCK_TAGS = ['p', 'div', 'ul', 'ol', 'table', 'tr', 'section', 'article', 'blockquote']
HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']

LITERAL_NEWLINE_PATTERN = re.compile(r'\\r\\n|\\n|\\r')

BOILERPLATE_PATTERNS = (
    re.compile(r'^Preview: This is a summary from adzuna[\s\S]*?application details\.?', re.IGNORECASE),
    re.compile(r'^\s*(?:>|•|-)?\s*(?:Who We Are|About Us|About the Company|Company Overview)\b[:\s]*', re.IGNORECASE),
    re.compile(r'^\s*(?:Job Description|Position Summary|Role Overview)\b[:\s]*', re.IGNORECASE),
    re.compile(r'^\s*Description\s*:\s*', re.IGNORECASE),
)
INLINE_HEADER_PATTERN = re.compile(
    r'\n[ \t]*(?:Job Description|Position Summary|Role Overview)\b[ \t]*:?[ \t]*(?=\n)',
    re.IGNORECASE,
)

DEFAULT_SUMMARY_LENGTH = 300
SENTENCE_CUT_RATIO = 0.7
MAX_DECODE_PASSES = 5


def _fix_mojibake(text: str) -> str:
    for broken, fixed in MOJIBAKE_REPLACEMENTS:
        text = text.replace(broken, fixed)
    return text


def _html_to_text(markup: str) -> str:
    soup = BeautifulSoup(markup, 'lxml')
    for tag in soup(STRIP_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for item in soup.find_all('li'):
        item.insert(0, '• ')
        item.append('\n')
    for tag in soup.find_all(HEADING_TAGS):
        tag.insert(0, '\n\n')
        tag.append('\n\n')
    for tag in soup.find_all(BLOCK_TAGS):
        tag.append('\n\n')
    return soup.get_text().replace('\xa0', ' ')


def _normalize_whitespace(text: str) -> str:
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'[ \t\f\v]+', ' ', text)
    text = re.sub(r'\n[ \t]+', '\n', text)
    text = re.sub(r'[ \t]+\n', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def _strip_boilerplate(text: str) -> str:
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub('', text)
    return INLINE_HEADER_PATTERN.sub('\n', text)


def clean_description(raw: Optional[str]) -> str:
    """
    Convert raw source description (HTML, escaped entities, mojibake) to plain text.

    Block-level tags become newlines before the text is extracted, so paragraph
    and list structure survives. Feeds that escape their HTML (sometimes twice)
    are re-parsed until the text stops changing. Cleaning already-clean text
    is a no-op.
    """
    if not raw:
        return ''

    text = _fix_mojibake(raw)
    text = LITERAL_NEWLINE_PATTERN.sub('\n', text)
    for _ in range(MAX_DECODE_PASSES):
        parsed = _normalize_whitespace(_html_to_text(text))
        if parsed == text:
            break
        text = parsed

    # Duplicated headers ("Job Description: Job Description:") peel off one per pass.
    while True:
        stripped = _normalize_whitespace(_strip_boilerplate(text))
        if stripped == text:
            return text
        text = stripped


def summarize(text: Optional[str], max_length: int = DEFAULT_SUMMARY_LENGTH) -> str:
    """
    Bounded-length summary of a cleaned description.

    Cuts at the last sentence end when one falls in the final 30% of the
    window, otherwise at the last word boundary. A cut always ends in an
    ellipsis; text that already fits is returned unchanged.
    """
    if not text:
        return ''
    flat = ' '.join(text.split())
    if len(flat) <= max_length:
        return flat

    window = flat[:max_length]
    sentence_end = max(window.rfind('.'), window.rfind('!'), window.rfind('?'))
    if sentence_end > max_length * SENTENCE_CUT_RATIO:
        return window[:sentence_end].rstrip() + '...'

    word_end = window.rfind(' ')
    if word_end > 0:
        window = window[:word_end]
    return window.rstrip(' ,;:-') + '...'
