from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Tuple

NO_NOTES = "No notes available"


class ReadingEntry(BaseModel):
    """One book from the reader's history, reduced to what the profiler needs."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    author: str = ""
    notes: str = NO_NOTES
    category: Optional[str] = None
    cover_image_url: Optional[str] = None
    source_url: Optional[str] = None

    @field_validator("title", "author", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("notes", mode="before")
    @classmethod
    def _default_notes(cls, value):
        if value is None or not str(value).strip():
            return NO_NOTES
        return str(value)


class CandidateBook(BaseModel):
    """
    A book returned by a candidate source, normalized across providers.

    ``title`` and ``author`` are always non-empty: adapters drop anything
    else before it gets here (see ``sources.base.build_candidate``).
    """
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    additional_authors: Tuple[str, ...] = ()
    description: str = ""
    categories: Tuple[str, ...] = ()
    source: str
    average_rating: Optional[float] = None
    ratings_count: int = 0
    published_date: Optional[str] = None
    thumbnail_url: Optional[str] = None
    purchase_url: Optional[str] = None
    info_url: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return f"{self.title.strip().lower()}-{self.author.strip().lower()}"

    @property
    def searchable_text(self) -> str:
        """Lower-cased title, description and categories for term matching."""
        return " ".join([self.title, self.description, *self.categories]).lower()
