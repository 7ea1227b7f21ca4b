from typing import Any, Dict, List, Optional
import uuid as uuid_lib

from fastapi import APIRouter, Body, Depends, Query
import logging

from app.core.config import settings
from app.schemas.recommendation import (
    ErrorResponse,
    Recommendation,
    RecommendationsResponse,
    SimilarRecommendationsResponse,
)
from app.services.orchestrator import (
    RecommendationPipeline,
    build_pipeline,
    recommend_from_history,
    recommend_from_single,
)
from app.utils.instrumentation import log_event
from app.utils.timing import now_ms, log_elapsed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid reference book or reading history"},
    500: {"model": ErrorResponse, "description": "Pipeline failure"},
}


def get_pipeline() -> RecommendationPipeline:
    """A fresh pipeline per request; overridden in tests."""
    return build_pipeline(settings)


def _resolve_limit(limit: Optional[int]) -> int:
    return limit if limit is not None else settings.DEFAULT_RECOMMENDATION_LIMIT


def _impression_properties(request_id: str, items: List[Recommendation]) -> Dict[str, Any]:
    return {
        "request_id": request_id,
        "count": len(items),
        "titles": [item.title for item in items],
        "fallback": any(item.is_fallback for item in items),
    }


@router.post("/recommendations", response_model=RecommendationsResponse, responses=ERROR_RESPONSES)
def recommendations_from_history(
    payload: Dict[str, Any] = Body(...),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_RECOMMENDATION_LIMIT),
    pipeline: RecommendationPipeline = Depends(get_pipeline),
):
    """Recommendations from a whole reading history (``{"readingHistory": [...]}``)."""
    t0 = now_ms()
    request_id = str(uuid_lib.uuid4())
    logger.info("Starting recommendation generation (req_id=%s)", request_id)

    result = recommend_from_history(payload.get("readingHistory"), pipeline, _resolve_limit(limit))
    items = result["recommendations"]

    if settings.DEBUG:
        log_elapsed(t0, f"req_id={request_id} recommendations count={len(items)}", logger.debug)
    log_event(
        "recommendations_impression",
        properties=_impression_properties(request_id, items),
        request_id=request_id,
    )
    return RecommendationsResponse(recommendations=items)


@router.post("/find-similar", response_model=SimilarRecommendationsResponse, responses=ERROR_RESPONSES)
def find_similar(
    payload: Dict[str, Any] = Body(...),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_RECOMMENDATION_LIMIT),
    pipeline: RecommendationPipeline = Depends(get_pipeline),
):
    """Recommendations similar to one reference book (``{"referenceBook": {...}}``)."""
    t0 = now_ms()
    request_id = str(uuid_lib.uuid4())

    result = recommend_from_single(payload.get("referenceBook"), pipeline, _resolve_limit(limit))
    items = result["recommendations"]

    if settings.DEBUG:
        log_elapsed(t0, f"req_id={request_id} find_similar count={len(items)}", logger.debug)
    log_event(
        "similar_recommendations_impression",
        properties={**_impression_properties(request_id, items), "searched_for": result["searchedFor"]},
        request_id=request_id,
    )
    return SimilarRecommendationsResponse(recommendations=items, searched_for=result["searchedFor"])
