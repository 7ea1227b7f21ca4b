"""Google Books volume search as a candidate source."""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from app.core.errors import AdapterError
from app.services.sources.base import (
    AdapterResult,
    CandidateSource,
    build_candidate,
    convert_items,
    deadline_passed,
)
from app.utils.dates import months_since, parse_published_date

logger = logging.getLogger(__name__)

SOURCE_LABEL = "Google Books"
GOOGLE_BOOKS_BASE_URL = "https://www.googleapis.com/books/v1/volumes"


@dataclass(frozen=True)
class AcceptanceRules:
    min_rating: float = 3.5
    min_ratings_count: int = 10
    min_description_length: int = 150
    recency_window_months: int = 36  # 0 disables


def _label(genre: str) -> str:
    return genre.replace("_", " ")


def build_queries(profile, year: int, max_queries: int = 6) -> List[str]:
    """
    Search terms mixing the profile's top genres and keywords with the year.

    Award-style queries for every top genre come first so the cap trims
    the weaker variants.
    """
    genres = [_label(g) for g in profile.top_genres[:3]]
    keywords = list(profile.top_keywords[:2])

    queries: List[str] = []
    queries.extend(f"{genre} {year} award winner" for genre in genres)
    queries.extend(f"{keyword} {year}" for keyword in keywords)
    queries.extend(f"best {genre} {year}" for genre in genres)

    unique: List[str] = []
    for query in queries:
        if query not in unique:
            unique.append(query)
    return unique[:max_queries]


def accept_volume(info: Dict[str, Any], today: date, rules: AcceptanceRules) -> bool:
    """Quality and freshness filters for a raw ``volumeInfo`` payload."""
    authors = [a for a in (info.get("authors") or []) if isinstance(a, str) and a.strip()]
    if not authors:
        return False

    rating = info.get("averageRating") or 0
    ratings_count = info.get("ratingsCount") or 0
    description = info.get("description") or ""
    has_quality_signal = (
        rating >= rules.min_rating
        or ratings_count >= rules.min_ratings_count
        or len(description) >= rules.min_description_length
    )
    if not has_quality_signal:
        return False

    if rules.recency_window_months > 0:
        published = parse_published_date(info.get("publishedDate"))
        if published is None or months_since(published, today) > rules.recency_window_months:
            return False
    return True


class GoogleBooksSource(CandidateSource):
    name = "google_books"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = GOOGLE_BOOKS_BASE_URL,
        rules: Optional[AcceptanceRules] = None,
        max_queries: int = 6,
        today: Optional[date] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._base_url = base_url
        self._rules = rules or AcceptanceRules()
        self._max_queries = max_queries
        self._today = today

    def search(self, profile, deadline: Optional[float] = None) -> AdapterResult:
        today = self._today or date.today()
        candidates = []
        errors = []
        for index, query in enumerate(build_queries(profile, today.year, self._max_queries)):
            if deadline_passed(deadline):
                errors.append(self._timeout_error(query))
                continue
            if index:
                self._pause()
            try:
                data = self._fetch_json(self._base_url, self._params(query), query=query)
                candidates.extend(self._parse_payload(self._parse_volumes, data, today, query=query))
            except AdapterError as e:
                logger.warning("Error searching Google Books for %r: %s", query, e)
                errors.append(e)

        logger.info("Google Books: %d candidate(s), %d failed quer(ies)", len(candidates), len(errors))
        return AdapterResult(source=self.name, candidates=tuple(candidates), errors=tuple(errors))

    def _params(self, query: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": query,
            "orderBy": "relevance",
            "maxResults": 20,
            "printType": "books",
            "langRestrict": "en",
        }
        if self._api_key:
            params["key"] = self._api_key
        return params

    def _parse_volumes(self, data: Dict[str, Any], today: date):
        return convert_items(data.get("items") or [], lambda item: self._to_candidate(item, today), self.name)

    def _to_candidate(self, item: Any, today: date):
        info = item.get("volumeInfo") if isinstance(item, dict) else None
        if not isinstance(info, dict) or not accept_volume(info, today, self._rules):
            return None
        authors = [a for a in info.get("authors") or [] if isinstance(a, str)]
        return build_candidate(
            title=info.get("title") or "",
            author=authors[0] if authors else "",
            additional_authors=tuple(authors[1:]),
            description=info.get("description") or "",
            categories=tuple(c for c in info.get("categories") or [] if isinstance(c, str)),
            source=SOURCE_LABEL,
            average_rating=info.get("averageRating"),
            ratings_count=int(info.get("ratingsCount") or 0),
            published_date=info.get("publishedDate"),
            thumbnail_url=(info.get("imageLinks") or {}).get("thumbnail"),
            info_url=info.get("infoLink"),
        )
