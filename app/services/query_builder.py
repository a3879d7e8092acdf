"""
Listing query construction.

Turns the raw listing parameters (search text, category, author, sort) into a
``PostQuery``: a tuple of SQLAlchemy clauses plus a sort key. Nothing here
touches the database; the repository applies the query.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, false, func, literal_column, not_, or_

from app.models.blog import BlogPost
from app.repositories.posts import visible_criteria

SEARCHABLE_COLUMNS = (BlogPost.title, BlogPost.content, BlogPost.excerpt)

# Term separators besides whitespace. % and _ are kept (LIKE escaping covers
# them) so "100%" stays one term.
TERM_DELIMITERS = ".,;:!?()[]{}<>\"'/\\|*+=~`#&@^$-\n\r\t"
_COLLAPSE_PASSES = 3

# -"negated phrase" | "phrase" | word
_TOKEN = re.compile(r'(-?)"([^"]*)"|(\S+)')


class SortKey(str, Enum):
    LATEST = "latest"
    OLDEST = "oldest"
    POPULAR = "popular"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """Unknown or missing keys fall back to latest."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.LATEST


_ORDERING = {
    SortKey.LATEST: (BlogPost.published_at.desc(), BlogPost.id.asc()),
    SortKey.OLDEST: (BlogPost.published_at.asc(), BlogPost.id.asc()),
    SortKey.POPULAR: (BlogPost.views.desc(), BlogPost.id.asc()),
}


@dataclass(frozen=True)
class PostQuery:
    criteria: tuple
    sort: SortKey = SortKey.LATEST

    @property
    def order_by(self) -> tuple:
        return _ORDERING[self.sort]


def normalize_terms(text: str) -> str:
    """Lower-case ``text``, turn delimiters into spaces and collapse runs of spaces."""
    text = text.lower()
    for ch in TERM_DELIMITERS:
        text = text.replace(ch, " ")
    return " ".join(text.split())


def _sql_text(value: str):
    # Inline literal; these are fixed characters, never user input
    return literal_column("'" + value.replace("'", "''") + "'", String)


def _normalized_column(col):
    """SQL counterpart of ``normalize_terms``, padded with one space on each side."""
    space = _sql_text(" ")
    expr = func.lower(col, type_=String)
    for ch in TERM_DELIMITERS:
        expr = func.replace(expr, _sql_text(ch), space, type_=String)
    for _ in range(_COLLAPSE_PASSES):
        expr = func.replace(expr, _sql_text("  "), space, type_=String)
    return space + expr + space


_NORMALIZED_COLUMNS = tuple(_normalized_column(col) for col in SEARCHABLE_COLUMNS)


@dataclass
class SearchTerms:
    words: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.words or self.phrases or self.excluded)


def parse_search(text: Optional[str]) -> SearchTerms:
    """Split search text into bare words, quoted phrases and -negations, all normalized."""
    terms = SearchTerms()
    for negated, phrase, word in _TOKEN.findall(text or ""):
        if word:
            negated = word.startswith("-")
            target = terms.excluded if negated else terms.words
            term = normalize_terms(word[1:] if negated else word)
        else:
            target = terms.excluded if negated else terms.phrases
            term = normalize_terms(phrase)
        if term:
            target.append(term)
    return terms


def _contains(term: str):
    """Clause: ``term`` appears as whole words in any searchable column."""
    return or_(*[col.contains(f" {term} ", autoescape=True) for col in _NORMALIZED_COLUMNS])


def search_criteria(text: Optional[str]) -> list:
    """
    Boolean text predicate, pass/fail with no scoring.

    Terms match whole words, case-insensitively; a phrase matches the same
    words in sequence. When phrases are given every phrase must appear;
    otherwise at least one bare word must appear. Negated words and phrases
    must not appear. A query made only of negations matches nothing.
    """
    terms = parse_search(text)
    if terms.empty:
        return []

    if terms.phrases:
        clauses = [_contains(p) for p in terms.phrases]
    elif terms.words:
        clauses = [or_(*[_contains(w) for w in terms.words])]
    else:
        return [false()]

    clauses.extend(not_(_contains(term)) for term in terms.excluded)
    return clauses


def build_post_query(
    search: Optional[str] = None,
    category: Optional[str] = None,
    author: Optional[int] = None,
    sort: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PostQuery:
    criteria = list(visible_criteria(now))

    if search and search.strip():
        criteria.extend(search_criteria(search))

    if category and category.strip():
        criteria.append(BlogPost.category == category.strip())

    if author is not None:
        criteria.append(BlogPost.author_id == author)

    return PostQuery(criteria=tuple(criteria), sort=SortKey.parse(sort))
