"""NYT Books API bestseller lists as a candidate source."""
import logging
import string
from typing import List, Optional

from app.core.errors import AdapterError
from app.core.taxonomy import Taxonomy, get_taxonomy
from app.services.sources.base import (
    AdapterResult,
    CandidateSource,
    build_candidate,
    convert_items,
    deadline_passed,
)

logger = logging.getLogger(__name__)

SOURCE_LABEL = "NYT Bestseller"
MAX_LISTS = 3
ITEMS_PER_LIST = 10
# Bestsellers rarely carry a rating; treat them as well regarded by default
DEFAULT_RATING = 4.2


def select_lists(genres, taxonomy: Taxonomy, max_lists: int = MAX_LISTS) -> List[str]:
    """List names for the profile's genres in rank order, or the default pair."""
    lists: List[str] = []
    for genre in genres:
        for list_name in taxonomy.bestseller_lists.get(genre, []):
            if list_name not in lists:
                lists.append(list_name)
    if not lists:
        lists = list(taxonomy.default_bestseller_lists)
    return lists[:max_lists]


def _display_title(raw) -> str:
    if not isinstance(raw, str):
        return ""
    # NYT list titles come back in all caps
    if raw.isupper():
        return string.capwords(raw.lower())
    return raw


class NYTBestsellerSource(CandidateSource):
    name = "nyt_bestsellers"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.nytimes.com/svc/books/v3",
        taxonomy: Optional[Taxonomy] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._taxonomy = taxonomy

    def search(self, profile, deadline: Optional[float] = None) -> AdapterResult:
        if not self._api_key:
            logger.warning("NYT_BOOKS_API_KEY is not set; skipping bestseller lists")
            return AdapterResult(
                source=self.name,
                errors=(AdapterError(self.name, "configuration", "NYT_BOOKS_API_KEY is not configured"),),
            )

        taxonomy = self._taxonomy or get_taxonomy()
        candidates = []
        errors = []
        for index, list_name in enumerate(select_lists(profile.genres, taxonomy)):
            if deadline_passed(deadline):
                errors.append(self._timeout_error(list_name))
                continue
            if index:
                self._pause()
            try:
                data = self._fetch_json(
                    f"{self._base_url}/lists/current/{list_name}.json",
                    {"api-key": self._api_key},
                    query=list_name,
                )
                candidates.extend(self._parse_payload(self._parse_list, data, list_name, query=list_name))
            except AdapterError as e:
                logger.warning("Error fetching NYT list %s: %s", list_name, e)
                errors.append(e)

        logger.info("NYT bestsellers: %d candidate(s), %d failed list(s)", len(candidates), len(errors))
        return AdapterResult(source=self.name, candidates=tuple(candidates), errors=tuple(errors))

    def _parse_list(self, data: dict, list_name: str):
        results = data.get("results")
        if not isinstance(results, dict):
            raise AdapterError(self.name, "payload", "NYT response has no results", list_name)
        books = results.get("books") or []
        list_date = results.get("published_date")
        return convert_items(books[:ITEMS_PER_LIST], lambda book: _to_candidate(book, list_date), self.name)


def _to_candidate(book, list_date):
    if not isinstance(book, dict):
        return None
    return build_candidate(
        title=_display_title(book.get("title")),
        author=book.get("author") or "",
        description=book.get("description") or "",
        source=SOURCE_LABEL,
        average_rating=DEFAULT_RATING,
        published_date=book.get("published_date") or list_date,
        thumbnail_url=book.get("book_image") or None,
        purchase_url=book.get("amazon_product_url") or None,
    )
