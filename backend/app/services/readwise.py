"""
Readwise reading-history client and the helpers that turn its books into
profiler input.
"""
import logging
import random
import re
from typing import Any, Dict, Iterable, List, Optional

import requests

from app.core.errors import ProviderConfigurationError, ProviderError
from app.schemas.book import NO_NOTES, ReadingEntry

logger = logging.getLogger(__name__)

READWISE_BASE_URL = "https://readwise.io/api/v2"
PAGE_SIZE = 100
DEFAULT_SAMPLE_SIZE = 5

_URL_RE = re.compile(r"^\s*(?:https?://|www\.)\S*", re.IGNORECASE)


class ReadwiseClient:
    """Thin wrapper over the Readwise v2 books and highlights endpoints."""

    def __init__(
        self,
        token: str,
        base_url: str = READWISE_BASE_URL,
        session: Any = None,
        timeout: float = 10.0,
    ) -> None:
        if not token:
            raise ProviderConfigurationError("Readwise", "READWISE_API_TOKEN")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings, session: Any = None) -> "ReadwiseClient":
        return cls(
            token=settings.READWISE_API_TOKEN or "",
            base_url=settings.READWISE_BASE_URL,
            session=session,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self._token}",
            "Content-Type": "application/json",
        }

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self._session.get(url, params=params, headers=self._headers, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.HTTPError as e:
            status = getattr(e.response, "status_code", "?")
            raise ProviderError(f"Readwise API error: {status}") from e
        except requests.RequestException as e:
            raise ProviderError(f"Readwise request failed: {e}") from e
        except ValueError as e:
            raise ProviderError("Readwise returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ProviderError("Readwise returned an unexpected payload")
        return data

    def fetch_books(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Most recent books first, following pagination.

        ``limit=None`` walks every page.
        """
        page_size = min(PAGE_SIZE, limit) if limit else PAGE_SIZE
        url: Optional[str] = f"{self._base_url}/books/"
        params: Optional[Dict[str, Any]] = {"page_size": page_size}
        books: List[Dict[str, Any]] = []

        while url:
            data = self._get(url, params)
            books.extend(b for b in data.get("results") or [] if isinstance(b, dict))
            if limit is not None and len(books) >= limit:
                return books[:limit]
            url = data.get("next")
            params = None  # "next" already carries the query string
        return books

    def fetch_highlights(self, book_id: Any) -> List[Dict[str, Any]]:
        data = self._get(f"{self._base_url}/highlights/", {"book_id": book_id})
        return [h for h in data.get("results") or [] if isinstance(h, dict)]

    def fetch_books_with_highlights(self, limit: Optional[int] = 10) -> List[Dict[str, Any]]:
        """Books with a ``highlights`` list; a failed highlights call leaves it empty."""
        books = self.fetch_books(limit)
        enriched = []
        for book in books:
            try:
                highlights = self.fetch_highlights(book.get("id"))
            except ProviderError as e:
                logger.warning("Error fetching highlights for book %s: %s", book.get("id"), e)
                highlights = []
            enriched.append({**book, "highlights": highlights})
        logger.info("Fetched %d Readwise book(s) with highlights", len(enriched))
        return enriched


def _notes_for(book: Dict[str, Any]) -> str:
    texts = [(h.get("text") or "").strip() for h in book.get("highlights") or [] if isinstance(h, dict)]
    texts = [t for t in texts if t]
    if texts:
        return ". ".join(texts)
    return book.get("summary") or NO_NOTES


def to_reading_entries(books: Iterable[Dict[str, Any]]) -> List[ReadingEntry]:
    return [
        ReadingEntry(
            title=book.get("title"),
            author=book.get("author"),
            notes=_notes_for(book),
            category=book.get("category"),
            cover_image_url=book.get("cover_image_url"),
            source_url=book.get("source_url"),
        )
        for book in books
    ]


def looks_like_url(value: Optional[str]) -> bool:
    return bool(value) and bool(_URL_RE.match(value))


def is_book_noise(entry: ReadingEntry) -> bool:
    """Tweets, bookmarks and other non-book items that should not shape the profile."""
    if not entry.title and not entry.author:
        return True
    return looks_like_url(entry.title) or looks_like_url(entry.author)


def filter_reading_entries(entries: Iterable[ReadingEntry]) -> List[ReadingEntry]:
    kept = [e for e in entries if not is_book_noise(e)]
    return kept


def sample_reference_books(
    entries: List[ReadingEntry],
    count: int = DEFAULT_SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
) -> List[ReadingEntry]:
    """Random selection for the "pick one of these" flow; pass a seeded rng for repeatable picks."""
    rng = rng or random.Random()
    if count >= len(entries):
        picked = list(entries)
        rng.shuffle(picked)
        return picked
    return rng.sample(entries, count)
