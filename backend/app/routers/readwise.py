import logging
import random
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.schemas.recommendation import ErrorResponse, ReadingSampleResponse
from app.services.readwise import (
    DEFAULT_SAMPLE_SIZE,
    ReadwiseClient,
    filter_reading_entries,
    sample_reference_books,
    to_reading_entries,
)
from app.utils.timing import log_elapsed, now_ms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/readwise", tags=["readwise"])

ERROR_RESPONSES = {
    500: {"model": ErrorResponse, "description": "Readwise token missing"},
    502: {"model": ErrorResponse, "description": "Readwise unreachable"},
}


def get_readwise_client() -> ReadwiseClient:
    return ReadwiseClient.from_settings(settings)


@router.get("", responses=ERROR_RESPONSES)
def get_reading_history(client: ReadwiseClient = Depends(get_readwise_client)):
    """Most recent Readwise books with their highlights."""
    t0 = now_ms()
    books = client.fetch_books_with_highlights(settings.READWISE_BOOK_LIMIT)
    if settings.DEBUG:
        log_elapsed(t0, f"readwise fetch count={len(books)}", logger.debug)
    return {"results": books, "count": len(books)}


@router.get("/sample", response_model=ReadingSampleResponse, responses=ERROR_RESPONSES)
def get_reference_sample(
    count: int = Query(DEFAULT_SAMPLE_SIZE, ge=1, le=20),
    seed: Optional[int] = Query(None, description="Seed for a repeatable sample"),
    client: ReadwiseClient = Depends(get_readwise_client),
):
    """A handful of real books (no tweets or bookmarks) to choose a reference from."""
    books = client.fetch_books_with_highlights(settings.READWISE_BOOK_LIMIT)
    entries = filter_reading_entries(to_reading_entries(books))
    rng = random.Random(seed) if seed is not None else None
    sample = sample_reference_books(entries, count, rng)
    logger.info("Sampled %d of %d Readwise book(s) (%d fetched)", len(sample), len(entries), len(books))
    return ReadingSampleResponse(books=sample, total_books=len(entries))
