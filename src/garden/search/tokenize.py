"""Tokenizer and query parser for mixed Japanese/ASCII text."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field

_ASCII_WORD_RE = re.compile(r"[A-Za-z0-9]+")
# Everything that is not treated as CJK: ASCII alphanumerics, whitespace, ASCII punctuation.
_NON_CJK_RE = re.compile(r"[A-Za-z0-9\s" + re.escape(string.punctuation) + r"]+")


def cjk_text(text: str) -> str:
    return _NON_CJK_RE.sub("", text)


def tokenize(text: str) -> list[str]:
    """Split *text* into search tokens.

    ASCII alphanumeric runs become lowercase words.  The remaining (CJK)
    characters are indexed as every overlapping bigram *and* every single
    character, so one-character queries still hit.

    >>> tokenize("Garden 日記帳")
    ['garden', '日記', '記帳', '日', '記', '帳']
    """
    tokens = [w.lower() for w in _ASCII_WORD_RE.findall(text)]
    cjk = cjk_text(text)
    tokens.extend(cjk[i : i + 2] for i in range(len(cjk) - 1))
    tokens.extend(cjk)
    return tokens


@dataclass
class ParsedQuery:
    #: Positive terms joined back into one query string
    terms: str
    #: Lowercased exclusion terms (``-word``), matched as substrings
    excludes: list[str] = field(default_factory=list)


def parse_query(query: str) -> ParsedQuery:
    terms: list[str] = []
    excludes: list[str] = []
    for part in query.split():
        if part.startswith("-") and len(part) > 1:
            excludes.append(part[1:].lower())
        else:
            terms.append(part)
    return ParsedQuery(" ".join(terms), excludes)
