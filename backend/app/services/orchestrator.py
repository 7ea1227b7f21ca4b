"""
Recommendation pipeline: profile -> search -> dedupe/score -> assemble.

A ``RecommendationPipeline`` runs one request at a time and records the
states it went through. Build a fresh one per request (``build_pipeline``);
nothing is shared between runs except the immutable taxonomy.

Adapter failures never fail the pipeline. They are collected from each
``AdapterResult``, logged, and returned alongside the recommendations. When
nothing survives scoring, the static fallback table is used instead.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.core.config import settings as default_settings
from app.core.errors import AdapterError, InvalidInputError, PipelineError
from app.core.taxonomy import Taxonomy, get_taxonomy
from app.schemas.book import CandidateBook, ReadingEntry
from app.schemas.recommendation import Recommendation
from app.services import recommendation_engine
from app.services.profiler import ReferenceProfile, extract_profile
from app.services.readwise import filter_reading_entries
from app.services.recommendation_engine import ScoringConfig
from app.services.sources import AdapterResult, CandidateSource, build_default_sources
from app.utils.instrumentation import log_event
from app.utils.timing import StageTimer

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    PROFILING = "profiling"
    SEARCHING = "searching"
    SCORING = "scoring"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResult:
    recommendations: List[Recommendation]
    profile: Optional[ReferenceProfile]
    errors: Tuple[AdapterError, ...]
    used_fallback: bool
    state: PipelineState
    candidate_count: int = 0
    timings_ms: Dict[str, float] = field(default_factory=dict)


class RecommendationPipeline:
    def __init__(
        self,
        sources: Sequence[CandidateSource],
        config: ScoringConfig = ScoringConfig(),
        taxonomy: Optional[Taxonomy] = None,
        today: Optional[date] = None,
        timeout: float = 90.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sources = list(sources)
        self._config = config
        self._taxonomy = taxonomy or get_taxonomy()
        self._today = today
        self._timeout = timeout
        self._clock = clock
        self._state = PipelineState.IDLE
        self.transitions: List[PipelineState] = [PipelineState.IDLE]

    @property
    def state(self) -> PipelineState:
        return self._state

    def _transition(self, state: PipelineState) -> None:
        logger.debug("[PIPELINE] %s -> %s", self._state.value, state.value)
        self._state = state
        self.transitions.append(state)

    def _fail(self, stage: PipelineState, exc: Exception) -> PipelineError:
        self._transition(PipelineState.FAILED)
        logger.exception("[PIPELINE] %s stage failed: %s", stage.value, exc)
        return PipelineError(stage.value, str(exc) or type(exc).__name__)

    def run(self, entries: Iterable[ReadingEntry], limit: int = 5) -> PipelineResult:
        """
        Run every stage for ``entries`` and return at most ``limit`` recommendations.

        Raises InvalidInputError when there is nothing to profile and
        PipelineError when a stage breaks; the state is ``failed`` either way.
        """
        self._state = PipelineState.IDLE
        self.transitions = [PipelineState.IDLE]
        today = self._today or date.today()
        entries = list(entries)
        timer = StageTimer("[PIPELINE]", logger.debug)

        self._transition(PipelineState.PROFILING)
        if not entries:
            self._transition(PipelineState.FAILED)
            raise InvalidInputError("No reference books provided", "At least one book is required to build a profile")
        try:
            profile = extract_profile(entries, self._taxonomy)
        except Exception as e:
            raise self._fail(PipelineState.PROFILING, e) from e
        timer.mark("profiling")

        self._transition(PipelineState.SEARCHING)
        try:
            candidates, errors = self._search(profile)
        except Exception as e:
            raise self._fail(PipelineState.SEARCHING, e) from e
        timer.mark("searching")

        self._transition(PipelineState.SCORING)
        try:
            unique = recommendation_engine.dedupe(candidates)
            scored = recommendation_engine.score(unique, profile, self._config, self._taxonomy, today)
            recommendations = recommendation_engine.assemble(
                scored, limit, self._config, self._taxonomy, today
            )
            used_fallback = not recommendations
            if used_fallback:
                logger.info(
                    "[PIPELINE] No candidate passed scoring (%d unique), using fallbacks for %s",
                    len(unique),
                    profile.primary_genre,
                )
                recommendations = recommendation_engine.get_fallback_recommendations(
                    profile, limit, self._taxonomy, today
                )
        except Exception as e:
            raise self._fail(PipelineState.SCORING, e) from e
        timer.mark("scoring")

        self._transition(PipelineState.DONE)
        logger.info(
            "[PIPELINE] done in %.0fms: genres=%s candidates=%d unique=%d returned=%d fallback=%s adapter_errors=%d",
            timer.total_ms,
            list(profile.top_genres),
            len(candidates),
            len(unique),
            len(recommendations),
            used_fallback,
            len(errors),
        )
        return PipelineResult(
            recommendations=recommendations,
            profile=profile,
            errors=tuple(errors),
            used_fallback=used_fallback,
            state=self._state,
            candidate_count=len(candidates),
            timings_ms=timer.durations,
        )

    def _search(self, profile: ReferenceProfile) -> Tuple[List[CandidateBook], List[AdapterError]]:
        """
        Run every source concurrently and merge results in source order.

        Sources still running at the deadline contribute a timeout error.
        """
        if not self._sources:
            return [], []

        deadline = self._clock() + self._timeout
        pool = ThreadPoolExecutor(max_workers=len(self._sources), thread_name_prefix="gazette-source")
        try:
            futures = [pool.submit(source.search, profile, deadline) for source in self._sources]
            wait(futures, timeout=self._timeout)
            results = [
                self._collect(source, future)
                for source, future in zip(self._sources, futures)
            ]
        finally:
            # Late sources stop at their next deadline check
            pool.shutdown(wait=False, cancel_futures=True)

        candidates: List[CandidateBook] = []
        errors: List[AdapterError] = []
        for result in results:
            candidates.extend(result.candidates)
            errors.extend(result.errors)
            logger.info(
                "[PIPELINE] %s: %d candidate(s), %d error(s)",
                result.source,
                len(result.candidates),
                len(result.errors),
            )
        for error in errors:
            log_event(
                "adapter_failed",
                properties={
                    "source": error.source,
                    "kind": error.kind,
                    "query": error.query,
                    "message": str(error),
                },
            )
        return candidates, errors

    def _collect(self, source: CandidateSource, future) -> AdapterResult:
        if not future.done():
            return AdapterResult(
                source=source.name,
                errors=(AdapterError(source.name, "timeout", f"{source.name} did not finish within {self._timeout}s"),),
            )
        try:
            return future.result()
        except Exception as e:
            # Sources are not supposed to raise; keep the others' results
            logger.exception("[PIPELINE] %s raised instead of returning errors", source.name)
            return AdapterResult(source=source.name, errors=(AdapterError(source.name, "unexpected", str(e)),))


def build_pipeline(settings=None, session: Any = None, today: Optional[date] = None) -> RecommendationPipeline:
    settings = settings or default_settings
    return RecommendationPipeline(
        sources=build_default_sources(settings, session=session),
        config=ScoringConfig.from_settings(settings),
        taxonomy=get_taxonomy(),
        today=today,
        timeout=settings.PIPELINE_TIMEOUT_SECONDS,
    )


def _coerce_entry(book: Any) -> ReadingEntry:
    if isinstance(book, ReadingEntry):
        return book
    if not isinstance(book, dict):
        raise InvalidInputError("Invalid book data", f"Expected a book object, got {type(book).__name__}")
    try:
        return ReadingEntry.model_validate(book)
    except ValidationError as e:
        raise InvalidInputError("Invalid book data", str(e)) from e


def recommend_from_single(
    book: Any,
    pipeline: Optional[RecommendationPipeline] = None,
    limit: int = 5,
) -> Dict[str, Any]:
    """Recommendations similar to one reference book: ``{recommendations, searchedFor}``."""
    if book is None:
        raise InvalidInputError("Reference book is required", "Send a referenceBook with at least a title")
    entry = _coerce_entry(book)
    if not entry.title:
        raise InvalidInputError("Reference book is required", "The reference book needs a title")

    logger.info("Finding recommendations similar to: %s", entry.title)
    pipeline = pipeline or build_pipeline()
    result = pipeline.run([entry], limit)
    return {"recommendations": result.recommendations, "searchedFor": entry.title}


def recommend_from_history(
    books: Any,
    pipeline: Optional[RecommendationPipeline] = None,
    limit: int = 5,
) -> Dict[str, Any]:
    """Recommendations for a whole reading history: ``{recommendations}``."""
    if books is None or not isinstance(books, (list, tuple)):
        raise InvalidInputError("Invalid reading history data", "readingHistory must be a list of books")
    entries = filter_reading_entries(_coerce_entry(book) for book in books)
    if not entries:
        raise InvalidInputError(
            "Invalid reading history data",
            "readingHistory has no books with a title or author",
        )

    logger.info("Generating recommendations from %d of %d history entries", len(entries), len(books))
    pipeline = pipeline or build_pipeline()
    result = pipeline.run(entries, limit)
    return {"recommendations": result.recommendations}
