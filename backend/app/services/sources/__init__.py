"""Candidate source adapters, in the priority order used for deduplication."""
from typing import Any, List

from app.services.sources.base import AdapterResult, CandidateSource
from app.services.sources.curated import CuratedListSource
from app.services.sources.google_books import AcceptanceRules, GoogleBooksSource
from app.services.sources.nyt import NYTBestsellerSource


def build_default_sources(settings, session: Any = None) -> List[CandidateSource]:
    """NYT bestsellers, then curated lists, then Google Books."""
    common = {
        "session": session,
        "timeout": settings.HTTP_TIMEOUT_SECONDS,
        "request_delay": settings.SEARCH_REQUEST_DELAY_SECONDS,
    }
    return [
        NYTBestsellerSource(
            api_key=settings.NYT_BOOKS_API_KEY,
            base_url=settings.NYT_BOOKS_BASE_URL,
            **common,
        ),
        CuratedListSource(),
        GoogleBooksSource(
            api_key=settings.GOOGLE_BOOKS_API_KEY,
            base_url=settings.GOOGLE_BOOKS_BASE_URL,
            rules=AcceptanceRules(
                min_rating=settings.SEARCH_MIN_RATING,
                min_ratings_count=settings.SEARCH_MIN_RATINGS_COUNT,
                min_description_length=settings.SEARCH_MIN_DESCRIPTION_LENGTH,
                recency_window_months=settings.RECENCY_WINDOW_MONTHS,
            ),
            max_queries=settings.MAX_SEARCH_QUERIES,
            **common,
        ),
    ]


__all__ = [
    "AdapterResult",
    "CandidateSource",
    "CuratedListSource",
    "GoogleBooksSource",
    "NYTBestsellerSource",
    "build_default_sources",
]
