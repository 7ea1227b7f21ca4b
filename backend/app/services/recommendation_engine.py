from typing import Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from datetime import date
import logging

from app.core.taxonomy import Taxonomy, get_taxonomy
from app.schemas.book import CandidateBook
from app.schemas.recommendation import Recommendation
from app.services.profiler import ReferenceProfile
from app.services.sources.google_books import SOURCE_LABEL as GOOGLE_BOOKS_LABEL
from app.utils import links
from app.utils.dates import format_month_year, months_since, parse_published_date, published_sort_key

logger = logging.getLogger(__name__)

# Prestige thresholds for justification fragments
MAJOR_RECOGNITION_POINTS = 8
ACCLAIMED_POINTS = 5

# Quality and recency bonuses
HIGH_RATING_BONUS = 3.0
MID_RATING_BONUS = 2.0
RATINGS_COUNT_TIERS = ((100, 1.0), (1000, 1.0))
RECENCY_FULL_MONTHS = 6
RECENCY_PARTIAL_MONTHS = 12
RECENCY_FULL_BONUS = 3.0
RECENCY_PARTIAL_BONUS = 1.0

MAX_REASON_FRAGMENTS = 2
DESCRIPTION_LIMIT = 200
DEFAULT_DISPLAY_RATING = 4.0
GENERIC_REASON = "This book offers compelling insights that complement your reading interests."
FALLBACK_REASON = "This book has received critical recognition and is a reliable pick while live search catches up."
FALLBACK_LABEL = "fallback pick"


@dataclass(frozen=True)
class ScoringConfig:
    """Tunable weights and cutoffs. Defaults match Settings defaults."""
    score_cutoff: float = 3.0
    relaxed_score_cutoff: float = 2.0
    genre_weight_multiplier: float = 3.0
    high_rating_threshold: float = 4.3
    mid_rating_threshold: float = 4.0
    novelty_penalty: float = 1.0

    @classmethod
    def from_settings(cls, settings) -> "ScoringConfig":
        return cls(
            score_cutoff=settings.SCORE_CUTOFF,
            relaxed_score_cutoff=settings.RELAXED_SCORE_CUTOFF,
            genre_weight_multiplier=settings.GENRE_WEIGHT_MULTIPLIER,
            high_rating_threshold=settings.HIGH_RATING_THRESHOLD,
            mid_rating_threshold=settings.MID_RATING_THRESHOLD,
            novelty_penalty=settings.NOVELTY_PENALTY,
        )


@dataclass(frozen=True)
class ScoreFactors:
    """Tracks contributing factors for a candidate's score."""
    prestige: float = 0.0
    genre: float = 0.0
    keyword: float = 0.0
    quality: float = 0.0
    recency: float = 0.0
    novelty: float = 0.0

    @property
    def total(self) -> float:
        return self.prestige + self.genre + self.keyword + self.quality + self.recency - self.novelty


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: CandidateBook
    score: float
    fragments: Tuple[str, ...] = ()
    factors: ScoreFactors = field(default_factory=ScoreFactors)


# ----------------------------
# Deduplication
# ----------------------------
def dedupe(candidates: Iterable[CandidateBook]) -> List[CandidateBook]:
    """Keep the first occurrence of each title+author identity key."""
    seen = set()
    unique: List[CandidateBook] = []
    for candidate in candidates:
        key = candidate.identity_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


# ----------------------------
# Scoring
# ----------------------------
def source_prestige(source: str, taxonomy: Taxonomy) -> float:
    """Points for the first prestige label found in ``source``; 0 for unranked sources."""
    source_lower = (source or "").lower()
    for label, points in taxonomy.source_prestige:
        if label.lower() in source_lower:
            return float(points)
    return 0.0


def _genre_terms(genre: str) -> Tuple[str, ...]:
    return (genre.replace("_", " "), genre.replace("_", ""), genre.replace("_", "-"))


def humanize(value: str) -> str:
    """Replace underscores with spaces and clean up the string."""
    return value.replace("_", " ").strip()


def score_candidate(
    candidate: CandidateBook,
    profile: ReferenceProfile,
    config: ScoringConfig = ScoringConfig(),
    taxonomy: Optional[Taxonomy] = None,
    today: Optional[date] = None,
) -> ScoredCandidate:
    taxonomy = taxonomy or get_taxonomy()
    today = today or date.today()
    text = candidate.searchable_text
    fragments: List[str] = []

    # Source prestige
    prestige = source_prestige(candidate.source, taxonomy)
    if prestige >= MAJOR_RECOGNITION_POINTS:
        fragments.append(f"has received major literary recognition ({candidate.source})")
    elif prestige >= ACCLAIMED_POINTS:
        fragments.append(f"is critically acclaimed ({candidate.source})")

    # Genre match, weighted by genre rank
    genre_score = 0.0
    for rank, genre in enumerate(profile.top_genres):
        if any(term in text for term in _genre_terms(genre)):
            genre_score += max(1, 5 - rank) * config.genre_weight_multiplier
            if rank < 2:
                fragments.append(f"aligns with your interest in {humanize(genre)}")

    # Keyword match
    keyword_score = 0.0
    for index, keyword in enumerate(profile.top_keywords):
        if keyword in text:
            keyword_score += max(1, 3 - index // 3)
            if index < 3:
                fragments.append("explores themes you've highlighted")

    # Quality signals
    quality = 0.0
    rating = candidate.average_rating or 0.0
    if rating >= config.high_rating_threshold:
        quality += HIGH_RATING_BONUS
        fragments.append("has exceptional reader ratings")
    elif rating >= config.mid_rating_threshold:
        quality += MID_RATING_BONUS
    for threshold, bonus in RATINGS_COUNT_TIERS:
        if candidate.ratings_count >= threshold:
            quality += bonus

    # Recency; an unknown date counts as the current year but earns no fragment
    published = parse_published_date(candidate.published_date)
    months = months_since(published, today) if published else 0
    recency = 0.0
    if months <= RECENCY_FULL_MONTHS:
        recency = RECENCY_FULL_BONUS
        if published:
            fragments.append("is a very recent publication")
    elif months <= RECENCY_PARTIAL_MONTHS:
        recency = RECENCY_PARTIAL_BONUS

    # Novelty: mild penalty for authors already read
    novelty = config.novelty_penalty if profile.has_author(candidate.author) else 0.0

    factors = ScoreFactors(
        prestige=prestige,
        genre=genre_score,
        keyword=keyword_score,
        quality=quality,
        recency=recency,
        novelty=novelty,
    )
    return ScoredCandidate(
        candidate=candidate,
        score=factors.total,
        fragments=tuple(dict.fromkeys(fragments)),
        factors=factors,
    )


def score(
    candidates: Iterable[CandidateBook],
    profile: ReferenceProfile,
    config: ScoringConfig = ScoringConfig(),
    taxonomy: Optional[Taxonomy] = None,
    today: Optional[date] = None,
) -> List[ScoredCandidate]:
    taxonomy = taxonomy or get_taxonomy()
    today = today or date.today()
    return [score_candidate(c, profile, config, taxonomy, today) for c in candidates]


# ----------------------------
# Assembly
# ----------------------------
def generate_reason_text(fragments: Sequence[str]) -> str:
    unique = list(dict.fromkeys(fragments))[:MAX_REASON_FRAGMENTS]
    if not unique:
        return GENERIC_REASON
    return f"This book {' and '.join(unique)}."


def truncate_description(description: Optional[str]) -> str:
    if not description:
        return "No description available."
    if len(description) > DESCRIPTION_LIMIT:
        return description[:DESCRIPTION_LIMIT] + "..."
    return description


def detect_primary_genre(candidate: CandidateBook, taxonomy: Taxonomy) -> str:
    """Display label for a candidate: first matching display genre, else its first category."""
    content = f"{candidate.title} {candidate.description}".lower()
    categories = [c.lower() for c in candidate.categories]
    for label, pattern in taxonomy.compiled_display_genres:
        if pattern.search(content) or any(pattern.search(c) for c in categories):
            return label
    return candidate.categories[0] if candidate.categories else "General"


def _review_source(source: str) -> str:
    return "Google Books" if source == GOOGLE_BOOKS_LABEL else "Goodreads"


def to_recommendation(
    scored: ScoredCandidate,
    taxonomy: Taxonomy,
    today: date,
    reason: Optional[str] = None,
    is_fallback: bool = False,
) -> Recommendation:
    book = scored.candidate
    published = parse_published_date(book.published_date)
    review_source = _review_source(book.source)
    return Recommendation(
        title=book.title,
        author=book.author,
        description=truncate_description(book.description),
        genre=detect_primary_genre(book, taxonomy),
        source=book.source,
        review_source=review_source,
        score=scored.score,
        rating=book.average_rating if book.average_rating is not None else DEFAULT_DISPLAY_RATING,
        reason=reason or generate_reason_text(scored.fragments),
        publication_date=format_month_year(book.published_date, today),
        publication_year=published.value.year if published else None,
        image=book.thumbnail_url or "",
        purchase_url=book.purchase_url or links.purchase_url(book.title, book.author),
        review_url=links.review_url(book.title, review_source),
        is_fallback=is_fallback,
    )


def select_qualifying(
    scored: Sequence[ScoredCandidate],
    limit: int,
    config: ScoringConfig = ScoringConfig(),
) -> List[ScoredCandidate]:
    """
    Candidates above the strict cutoff, or above the relaxed cutoff when the
    strict one leaves fewer than ``limit``.
    """
    strict = [s for s in scored if s.score > config.score_cutoff]
    if len(strict) >= limit:
        return strict
    return [s for s in scored if s.score > config.relaxed_score_cutoff]


def rank(scored: Iterable[ScoredCandidate]) -> List[ScoredCandidate]:
    """Score descending, newer publication first on ties."""
    return sorted(
        scored,
        key=lambda s: (s.score, published_sort_key(s.candidate.published_date)),
        reverse=True,
    )


def assemble(
    scored: Sequence[ScoredCandidate],
    limit: int = 5,
    config: ScoringConfig = ScoringConfig(),
    taxonomy: Optional[Taxonomy] = None,
    today: Optional[date] = None,
) -> List[Recommendation]:
    taxonomy = taxonomy or get_taxonomy()
    today = today or date.today()
    ranked = rank(select_qualifying(scored, limit, config))[:limit]
    logger.debug(
        "Assembled %d of %d scored candidate(s): %s",
        len(ranked),
        len(scored),
        [(s.candidate.title, s.score) for s in ranked],
    )
    return [to_recommendation(s, taxonomy, today) for s in ranked]


# ----------------------------
# Fallbacks
# ----------------------------
def get_fallback_recommendations(
    profile: ReferenceProfile,
    limit: int = 5,
    taxonomy: Optional[Taxonomy] = None,
    today: Optional[date] = None,
) -> List[Recommendation]:
    """
    Static recommendations for the profile's primary genre, or the default
    list when that genre has none. Marked as fallbacks in source and flag.
    """
    taxonomy = taxonomy or get_taxonomy()
    today = today or date.today()
    rows = taxonomy.fallbacks_for(profile.primary_genre)

    recommendations: List[Recommendation] = []
    for row in rows[:limit]:
        candidate = CandidateBook(
            title=row.title,
            author=row.author,
            description=row.description,
            source=f"{row.source} ({FALLBACK_LABEL})",
            average_rating=row.average_rating,
            published_date=row.published_date,
        )
        recommendations.append(
            to_recommendation(
                ScoredCandidate(candidate=candidate, score=0.0),
                taxonomy,
                today,
                reason=row.reason or FALLBACK_REASON,
                is_fallback=True,
            )
        )
    return recommendations
