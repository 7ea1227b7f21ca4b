from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List
from app.schemas.book import ReadingEntry


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Recommendation(CamelModel):
    title: str
    author: str
    description: str
    genre: str
    source: str
    review_source: str
    score: float
    rating: float
    reason: str  # Always present, one sentence built from the top justification fragments
    publication_date: str  # "Month Year", bare year, or current year when unknown
    publication_year: Optional[int] = None
    image: str = ""
    purchase_url: str
    review_url: str
    is_fallback: bool = False


class RecommendationsResponse(CamelModel):
    recommendations: List[Recommendation]


class SimilarRecommendationsResponse(RecommendationsResponse):
    searched_for: str


class ReadingSampleResponse(CamelModel):
    books: List[ReadingEntry]
    total_books: int


class ErrorResponse(BaseModel):
    error: str
    message: str
