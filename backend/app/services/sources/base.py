"""
Shared pieces for candidate source adapters.

Each adapter returns an ``AdapterResult``: the candidates it managed to
collect plus one ``AdapterError`` per failed query. Adapters never raise;
the orchestrator decides what to do with partial results.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import requests
from pydantic import ValidationError

from app.core.errors import AdapterError
from app.schemas.book import CandidateBook

logger = logging.getLogger(__name__)

# Raised by a parseable response whose items have the wrong shape
MALFORMED_ITEM_ERRORS = (TypeError, ValueError, AttributeError, KeyError)


@dataclass(frozen=True)
class AdapterResult:
    source: str
    candidates: Tuple[CandidateBook, ...] = ()
    errors: Tuple[AdapterError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class CandidateSource(ABC):
    """A provider of candidate books for a profile."""

    name: str = "source"

    def __init__(
        self,
        session: Any = None,
        timeout: float = 10.0,
        request_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        # requests module itself works as a session (requests.get)
        self._session = session if session is not None else requests
        self._timeout = timeout
        self._request_delay = request_delay
        self._sleep = sleep

    @abstractmethod
    def search(self, profile, deadline: Optional[float] = None) -> AdapterResult:
        """Return candidates for ``profile``; ``deadline`` is a time.monotonic() value."""
        ...

    def _fetch_json(self, url: str, params: Dict[str, Any], query: str) -> Dict[str, Any]:
        return fetch_json(self._session, url, params, self._timeout, source=self.name, query=query)

    def _pause(self) -> None:
        """Spacing between sequential calls to the same provider."""
        if self._request_delay > 0:
            self._sleep(self._request_delay)

    def _timeout_error(self, query: str) -> AdapterError:
        return AdapterError(self.name, "timeout", "Pipeline deadline reached before query ran", query)

    def _parse_payload(self, parse: Callable[..., list], *args: Any, query: str) -> list:
        """Run a payload parser; a payload it cannot walk fails only this query."""
        try:
            return parse(*args)
        except MALFORMED_ITEM_ERRORS as e:
            raise AdapterError(self.name, "payload", f"{self.name} returned an unexpected payload: {e}", query) from e


def deadline_passed(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def fetch_json(
    session: Any,
    url: str,
    params: Dict[str, Any],
    timeout: float,
    source: str,
    query: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Single GET returning a JSON object. No retries.

    Raises AdapterError (kind network, http or payload) on any failure.
    """
    resp = None
    try:
        resp = session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
    except requests.HTTPError as e:
        status = getattr(e.response, "status_code", None) or getattr(resp, "status_code", "?")
        raise AdapterError(source, "http", f"{source} returned HTTP {status}", query) from e
    except requests.RequestException as e:
        raise AdapterError(source, "network", f"{source} request failed: {e}", query) from e

    try:
        data = resp.json()
    except ValueError as e:
        raise AdapterError(source, "payload", f"{source} returned invalid JSON", query) from e

    if not isinstance(data, dict):
        raise AdapterError(source, "payload", f"{source} returned {type(data).__name__}, expected object", query)
    return data


def build_candidate(**fields: Any) -> Optional[CandidateBook]:
    """
    Build a CandidateBook, or None when title or author is missing.

    This is the adapter boundary: nothing without a title and an author
    gets past it.
    """
    title = (fields.get("title") or "").strip()
    author = (fields.get("author") or "").strip()
    if not title or not author:
        return None
    fields["title"] = title
    fields["author"] = author
    fields["categories"] = tuple(c for c in (fields.get("categories") or ()) if c)
    fields["additional_authors"] = tuple(a for a in (fields.get("additional_authors") or ()) if a)
    try:
        return CandidateBook(**fields)
    except ValidationError as e:
        logger.debug("Dropping malformed candidate %r: %s", title, e)
        return None


def collect(candidates: Iterable[Optional[CandidateBook]]) -> Tuple[CandidateBook, ...]:
    return tuple(c for c in candidates if c is not None)


def convert_items(items: Iterable[Any], convert: Callable[[Any], Optional[CandidateBook]], source: str) -> list:
    """Apply ``convert`` to each raw item, dropping the ones that do not fit."""
    parsed = []
    for item in items:
        try:
            candidate = convert(item)
        except MALFORMED_ITEM_ERRORS as e:
            logger.debug("%s: dropping malformed item: %s", source, e)
            continue
        if candidate is not None:
            parsed.append(candidate)
    return parsed
