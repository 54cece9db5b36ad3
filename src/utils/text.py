"""String helpers for name cleanup and edit-distance matching."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r'\s+')
_PUNCTUATION_RE = re.compile(r'[^\w\s]')
_FEE_SUFFIX_RE = re.compile(r'\s*-\s*[\d.]+\s*%\s*$')


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text)


def clean_name(name: str) -> str:
    """Uppercase, whitespace-collapsed, punctuation-stripped form of a business name.

    A trailing `- 1.75%` fee suffix, as written in deal ledgers, is dropped first.
    """
    text = _FEE_SUFFIX_RE.sub('', str(name).strip())
    text = _PUNCTUATION_RE.sub('', text.upper())
    return collapse_whitespace(text).strip()


def levenshtein_distance(s1: str, s2: str) -> int:
    """Minimum single-character insertions, deletions and substitutions turning s1 into s2.

    Two-row dynamic programming, O(min(m, n)) memory.
    """
    if s1 == s2:
        return 0
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    prev_row = list(range(len(s1) + 1))
    curr_row = [0] * (len(s1) + 1)
    for j in range(1, len(s2) + 1):
        curr_row[0] = j
        for i in range(1, len(s1) + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                curr_row[i - 1] + 1,
                prev_row[i] + 1,
                prev_row[i - 1] + cost,
            )
        prev_row, curr_row = curr_row, prev_row
    return prev_row[len(s1)]
