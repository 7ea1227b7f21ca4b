from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import json
from pathlib import Path


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS - can be JSON string or comma-separated string
    CORS_ORIGINS: str = '["http://localhost:3000", "http://localhost:5173"]'

    # Readwise (reading history)
    READWISE_API_TOKEN: Optional[str] = None
    READWISE_BASE_URL: str = "https://readwise.io/api/v2"
    READWISE_BOOK_LIMIT: int = 10

    # NYT Books API (bestseller lists)
    NYT_BOOKS_API_KEY: Optional[str] = None
    NYT_BOOKS_BASE_URL: str = "https://api.nytimes.com/svc/books/v3"

    # Google Books (works without a key, the key only raises the quota)
    GOOGLE_BOOKS_API_KEY: Optional[str] = None
    GOOGLE_BOOKS_BASE_URL: str = "https://www.googleapis.com/books/v1/volumes"

    # Outbound requests
    HTTP_TIMEOUT_SECONDS: float = 10.0
    SEARCH_REQUEST_DELAY_SECONDS: float = 0.25
    PIPELINE_TIMEOUT_SECONDS: float = 90.0
    MAX_SEARCH_QUERIES: int = 6

    # Candidate acceptance (general search)
    RECENCY_WINDOW_MONTHS: int = 36  # 0 disables the freshness filter
    SEARCH_MIN_RATING: float = 3.5
    SEARCH_MIN_RATINGS_COUNT: int = 10
    SEARCH_MIN_DESCRIPTION_LENGTH: int = 150

    # Scoring
    SCORE_CUTOFF: float = 3.0
    RELAXED_SCORE_CUTOFF: float = 2.0
    GENRE_WEIGHT_MULTIPLIER: float = 3.0
    HIGH_RATING_THRESHOLD: float = 4.3
    MID_RATING_THRESHOLD: float = 4.0
    NOVELTY_PENALTY: float = 1.0

    # Output
    DEFAULT_RECOMMENDATION_LIMIT: int = 5
    MAX_RECOMMENDATION_LIMIT: int = 10

    # Optional override for the bundled taxonomy file (app/data/taxonomy_v1.json)
    TAXONOMY_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        # Load from backend/.env (relative to this file's parent's parent)
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore unknown environment variables (like NEXT_PUBLIC_*)
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from JSON string or comma-separated string."""
        if not self.CORS_ORIGINS:
            return ["http://localhost:3000", "http://localhost:5173"]

        try:
            # Try parsing as JSON first
            parsed = json.loads(self.CORS_ORIGINS)
            if isinstance(parsed, list):
                return parsed
            # If it's a string, treat as single origin
            return [str(parsed)]
        except (json.JSONDecodeError, TypeError):
            # Fall back to comma-separated string
            origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
            return origins if origins else ["http://localhost:3000", "http://localhost:5173"]


settings = Settings()
