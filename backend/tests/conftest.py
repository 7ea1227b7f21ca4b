"""Pytest configuration for backend tests."""
import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import requests

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from app.core.taxonomy import get_taxonomy  # noqa: E402
from app.schemas.book import CandidateBook, ReadingEntry  # noqa: E402
from app.services.sources.base import AdapterResult, CandidateSource  # noqa: E402

TODAY = date(2024, 11, 15)


class FakeResponse:
    """Just enough of requests.Response for the code under test."""

    def __init__(self, payload: Any = None, status_code: int = 200, invalid_json: bool = False):
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("No JSON object could be decoded")
        return self._payload


Reply = Union[FakeResponse, Exception]


class FakeSession:
    """
    Stands in for the requests module / a requests.Session.

    ``replies`` is either a list consumed in call order or a callable
    ``(url, params) -> reply``. A reply that is an exception is raised.
    """

    def __init__(self, replies: Union[List[Reply], Callable[[str, Dict[str, Any]], Reply]]):
        self._replies = replies
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params or {}, "headers": headers or {}, "timeout": timeout})
        if callable(self._replies):
            reply = self._replies(url, params or {})
        else:
            reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class StaticSource(CandidateSource):
    """A source that returns a fixed result, optionally after a callback."""

    def __init__(self, name: str, candidates=(), errors=(), on_search: Optional[Callable] = None):
        super().__init__()
        self.name = name
        self._result = AdapterResult(source=name, candidates=tuple(candidates), errors=tuple(errors))
        self._on_search = on_search
        self.calls = 0

    def search(self, profile, deadline=None):
        self.calls += 1
        if self._on_search:
            self._on_search()
        return self._result


def make_candidate(title: str = "A Book", author: str = "Some Author", **fields) -> CandidateBook:
    fields.setdefault("source", "Google Books")
    return CandidateBook(title=title, author=author, **fields)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def taxonomy():
    return get_taxonomy()


@pytest.fixture
def lean_startup() -> ReadingEntry:
    return ReadingEntry(title="The Lean Startup", author="Eric Ries", notes="startup strategy management")


@pytest.fixture
def sample_entries() -> List[ReadingEntry]:
    return [
        ReadingEntry(
            title="The Lean Startup",
            author="Eric Ries",
            notes=(
                "Validated learning beats elaborate planning. Build a minimum viable product, "
                "measure customer behavior, and decide whether to pivot or persevere with the startup strategy."
            ),
        ),
        ReadingEntry(
            title="Thinking, Fast and Slow",
            author="Daniel Kahneman",
            notes="Cognitive bias shapes every decision; the mind has two systems.",
        ),
        ReadingEntry(title="Good Strategy Bad Strategy", author="Richard Rumelt"),
    ]
