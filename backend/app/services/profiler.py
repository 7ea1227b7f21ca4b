"""
Text profiler: turns reference books into a ReferenceProfile.

Genres come from the taxonomy's named patterns run over title, author and
notes; keywords come from long-enough notes. Everything is aggregated
across books and ranked by frequency, ties keeping first-seen order.
"""
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

from app.core.taxonomy import GENERAL_GENRE, Taxonomy, get_taxonomy
from app.schemas.book import NO_NOTES, ReadingEntry

logger = logging.getLogger(__name__)

MIN_NOTES_LENGTH = 100
MIN_KEYWORD_LENGTH = 5
MAX_KEYWORDS_PER_BOOK = 20
TOP_GENRES = 5
TOP_KEYWORDS = 10

_TOKEN_SPLIT = re.compile(r"\W+")


@dataclass(frozen=True)
class ReferenceProfile:
    genres: Tuple[str, ...]  # ranked, most frequent first
    themes: FrozenSet[str]
    keywords: Tuple[str, ...] = ()  # ranked, most frequent first
    authors: FrozenSet[str] = field(default_factory=frozenset)
    genre_counts: Tuple[Tuple[str, int], ...] = ()
    book_count: int = 0

    @property
    def top_genres(self) -> Tuple[str, ...]:
        return self.genres[:TOP_GENRES]

    @property
    def top_keywords(self) -> Tuple[str, ...]:
        return self.keywords[:TOP_KEYWORDS]

    @property
    def primary_genre(self) -> str:
        return self.genres[0]

    def has_author(self, author: Optional[str]) -> bool:
        return bool(author) and author.strip().lower() in self.authors


def _book_text(entry: ReadingEntry) -> str:
    notes = "" if entry.notes == NO_NOTES else entry.notes
    return f"{entry.title} {entry.author} {notes}".lower()


def count_genres(text: str, taxonomy: Taxonomy) -> Counter:
    """Number of pattern hits per genre in ``text``; genres with no hit are absent."""
    counts: Counter = Counter()
    for genre, pattern in taxonomy.compiled_genre_patterns:
        hits = len(pattern.findall(text))
        if hits:
            counts[genre] += hits
    return counts


def extract_keywords(notes: str, taxonomy: Taxonomy) -> List[str]:
    """Content words from a single book's notes, capped per book."""
    if not notes or notes == NO_NOTES or len(notes) <= MIN_NOTES_LENGTH:
        return []
    stopwords = taxonomy.stopword_set
    words = [
        token
        for token in _TOKEN_SPLIT.split(notes.lower())
        if len(token) >= MIN_KEYWORD_LENGTH and not token.isdigit() and token not in stopwords
    ]
    return words[:MAX_KEYWORDS_PER_BOOK]


def extract_profile(
    entries: Iterable[ReadingEntry],
    taxonomy: Optional[Taxonomy] = None,
) -> ReferenceProfile:
    """
    Build a profile from one or more reference books.

    Never fails: empty or malformed notes contribute nothing, and a profile
    with no matched genre gets the "general" sentinel so downstream matching
    always has something to work with.
    """
    taxonomy = taxonomy or get_taxonomy()
    genre_counts: Counter = Counter()
    keyword_counts: Counter = Counter()
    authors = set()
    book_count = 0

    for entry in entries:
        book_count += 1
        if entry.author:
            authors.add(entry.author.strip().lower())
        genre_counts.update(count_genres(_book_text(entry), taxonomy))
        keyword_counts.update(extract_keywords(entry.notes, taxonomy))

    ranked_genres = genre_counts.most_common()
    if ranked_genres:
        genres = tuple(genre for genre, _ in ranked_genres)
    else:
        genres = (GENERAL_GENRE,)

    profile = ReferenceProfile(
        genres=genres,
        themes=frozenset(genres),
        keywords=tuple(word for word, _ in keyword_counts.most_common()),
        authors=frozenset(authors),
        genre_counts=tuple(ranked_genres),
        book_count=book_count,
    )
    logger.debug(
        "Profiled %d book(s): top_genres=%s top_keywords=%s",
        book_count,
        profile.top_genres,
        profile.top_keywords,
    )
    return profile
