"""Hand-curated award winners and critics' picks. No network access."""
import logging
from typing import Iterable, Optional

from app.core.taxonomy import GENERAL_GENRE, CuratedBook, Taxonomy, get_taxonomy
from app.services.sources.base import AdapterResult, CandidateSource, build_candidate, collect

logger = logging.getLogger(__name__)


def award_matches(book_genre: Optional[str], profile_genres: Iterable[str], taxonomy: Taxonomy) -> bool:
    if not book_genre:
        return False
    return any(book_genre in taxonomy.related_genres(genre) for genre in profile_genres)


def to_candidate(book: CuratedBook):
    return build_candidate(
        title=book.title,
        author=book.author,
        description=book.description,
        categories=(book.genre.replace("_", " "),) if book.genre else (),
        source=book.source,
        average_rating=book.average_rating,
        published_date=book.published_date,
    )


class CuratedListSource(CandidateSource):
    name = "curated_lists"

    def __init__(self, taxonomy: Optional[Taxonomy] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._taxonomy = taxonomy

    def search(self, profile, deadline: Optional[float] = None) -> AdapterResult:
        taxonomy = self._taxonomy or get_taxonomy()
        genres = set(profile.genres)

        awards = [b for b in taxonomy.award_books if award_matches(b.genre, genres, taxonomy)]
        picks = [
            b for b in taxonomy.critics_picks
            if b.genre in genres or GENERAL_GENRE in genres
        ]
        candidates = collect(to_candidate(b) for b in awards + picks)
        logger.info(
            "Curated lists: %d award book(s), %d critics' pick(s) for genres %s",
            len(awards),
            len(picks),
            sorted(genres),
        )
        return AdapterResult(source=self.name, candidates=candidates)
