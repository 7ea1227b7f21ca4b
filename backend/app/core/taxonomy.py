"""
Versioned taxonomy table for profiling, candidate sourcing and fallbacks.

The table lives in ``app/data/taxonomy_v1.json`` so genre patterns, list
mappings, stopwords and curated tables can change without touching the
scoring code. ``get_taxonomy()`` loads and validates it once per process.
"""
import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import settings

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_TAXONOMY_FILE = BASE_DIR / "data" / "taxonomy_v1.json"

GENERAL_GENRE = "general"


class CuratedBook(BaseModel):
    """One row of a hand-curated table (awards, critics' picks, fallbacks)."""
    model_config = ConfigDict(frozen=True)

    title: str
    author: str
    description: str = ""
    published_date: Optional[str] = None
    source: str
    average_rating: Optional[float] = None
    genre: Optional[str] = None
    reason: Optional[str] = None


class Taxonomy(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    genre_patterns: Dict[str, str]
    display_genres: Dict[str, str] = Field(default_factory=dict)
    stopwords: List[str]
    bestseller_lists: Dict[str, List[str]] = Field(default_factory=dict)
    default_bestseller_lists: List[str]
    genre_cross_map: Dict[str, List[str]] = Field(default_factory=dict)
    source_prestige: List[Tuple[str, float]] = Field(default_factory=list)
    award_books: List[CuratedBook] = Field(default_factory=list)
    critics_picks: List[CuratedBook] = Field(default_factory=list)
    fallbacks: Dict[str, List[CuratedBook]]

    @field_validator("genre_patterns", "display_genres")
    @classmethod
    def _patterns_compile(cls, value: Dict[str, str]) -> Dict[str, str]:
        for name, pattern in value.items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid pattern for {name!r}: {e}") from e
        return value

    @field_validator("fallbacks")
    @classmethod
    def _has_default_fallback(cls, value: Dict[str, List[CuratedBook]]) -> Dict[str, List[CuratedBook]]:
        if not value.get("default"):
            raise ValueError("fallbacks must define a non-empty 'default' list")
        return value

    @property
    def compiled_genre_patterns(self) -> List[Tuple[str, "re.Pattern[str]"]]:
        return _compile(tuple(self.genre_patterns.items()))

    @property
    def compiled_display_genres(self) -> List[Tuple[str, "re.Pattern[str]"]]:
        return _compile(tuple(self.display_genres.items()))

    @property
    def stopword_set(self) -> frozenset:
        return frozenset(self.stopwords)

    def related_genres(self, genre: str) -> frozenset:
        """The genre itself plus its explicit cross-mappings."""
        return frozenset([genre, *self.genre_cross_map.get(genre, [])])

    def fallbacks_for(self, genre: Optional[str]) -> List[CuratedBook]:
        if genre and self.fallbacks.get(genre):
            return self.fallbacks[genre]
        return self.fallbacks["default"]


@lru_cache(maxsize=None)
def _compile(items: Tuple[Tuple[str, str], ...]) -> List[Tuple[str, "re.Pattern[str]"]]:
    return [(name, re.compile(pattern, re.IGNORECASE)) for name, pattern in items]


def load_taxonomy(path: Path) -> Taxonomy:
    """Load and validate a taxonomy file. Raises on a missing or malformed file."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    taxonomy = Taxonomy.model_validate(data)
    logger.info(
        "Loaded taxonomy %s from %s (%d genres, %d award books)",
        taxonomy.version,
        path,
        len(taxonomy.genre_patterns),
        len(taxonomy.award_books),
    )
    return taxonomy


@lru_cache(maxsize=1)
def get_taxonomy() -> Taxonomy:
    path = Path(settings.TAXONOMY_PATH) if settings.TAXONOMY_PATH else DEFAULT_TAXONOMY_FILE
    return load_taxonomy(path)
