"""
Text Processing Utilities
Search-term cleaning, case-insensitive matching and Japanese-aware sort keys
"""

import re
import unicodedata
from typing import Iterable, Optional

import emoji
import icu

_JA_COLLATOR = icu.Collator.createInstance(icu.Locale("ja_JP"))


def shorten(text, max_length=50):
    """
    Shorten text for logging

    Args:
        text: Text to shorten
        max_length: Maximum length

    Returns:
        Shortened text with ellipsis if needed
    """
    if not isinstance(text, str):
        text = str(text)
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def clean_text(text):
    """
    Remove emoji, newlines, and excessive whitespace

    Args:
        text: Text to clean

    Returns:
        Cleaned text
    """
    if not text:
        return ""
    text = emoji.replace_emoji(text, replace=" ")
    text = re.sub(r"\s+", " ", text).strip()
    return text


def normalize_search_term(term: Optional[str]) -> str:
    """
    Prepare a user search term for matching

    Emoji and runs of whitespace are removed, full-width characters are
    folded (NFKC) and the result is casefolded.
    """
    if not isinstance(term, str):
        return ""
    return unicodedata.normalize('NFKC', clean_text(term)).casefold()


def contains_term(term: str, fields: Iterable[Optional[str]]) -> bool:
    """
    Case-insensitive substring match over several optional text fields

    Args:
        term: Already normalized search term
        fields: Candidate field values (None is skipped)
    """
    for value in fields:
        if value and term in unicodedata.normalize('NFKC', value).casefold():
            return True
    return False


def collation_key(text: Optional[str]) -> bytes:
    """
    Sort key following Japanese locale ordering (ICU ja collation)

    Kanji sort by their JIS reading order, hiragana and katakana
    interleave, and full-width forms sort with their half-width ones.
    """
    if not text:
        return b""
    return _JA_COLLATOR.getSortKey(unicodedata.normalize('NFKC', text))
