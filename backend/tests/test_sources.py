"""Tests for the candidate source adapters (no live network)."""
import time

import requests

from app.services.profiler import ReferenceProfile
from app.services.sources.base import build_candidate, fetch_json
from app.services.sources.curated import CuratedListSource
from app.services.sources.google_books import (
    AcceptanceRules,
    GoogleBooksSource,
    accept_volume,
    build_queries,
)
from app.services.sources.nyt import NYTBestsellerSource, select_lists

from conftest import FakeResponse, FakeSession, TODAY


def _profile(*genres, keywords=()):
    return ReferenceProfile(genres=tuple(genres), themes=frozenset(genres), keywords=tuple(keywords))


def _volume(**overrides):
    info = {
        "title": "The Anxious Generation",
        "authors": ["Jonathan Haidt"],
        "description": "x" * 200,
        "publishedDate": "2024-03-26",
        "categories": ["Psychology"],
        "averageRating": 4.1,
        "ratingsCount": 120,
        "imageLinks": {"thumbnail": "http://books.google.com/thumb.jpg"},
        "infoLink": "http://books.google.com/info",
    }
    info.update(overrides)
    return {"volumeInfo": info}


# ----------------------------
# Shared helpers
# ----------------------------
def test_build_candidate_drops_missing_author():
    assert build_candidate(title="Untitled", author="", source="Google Books") is None
    assert build_candidate(title="  ", author="Someone", source="Google Books") is None
    book = build_candidate(title=" Dune ", author=" Frank Herbert ", source="Google Books")
    assert book.title == "Dune"
    assert book.author == "Frank Herbert"


def test_fetch_json_classifies_failures():
    cases = [
        (FakeResponse(status_code=503), "http"),
        (requests.ConnectionError("boom"), "network"),
        (requests.Timeout("slow"), "network"),
        (FakeResponse(invalid_json=True), "payload"),
        (FakeResponse(payload=["not", "an", "object"]), "payload"),
    ]
    for reply, kind in cases:
        session = FakeSession([reply])
        try:
            fetch_json(session, "https://example.test", {}, 5, source="google_books", query="q")
        except Exception as e:
            assert e.kind == kind
            assert e.source == "google_books"
            assert e.query == "q"
        else:
            raise AssertionError(f"expected an AdapterError of kind {kind}")


# ----------------------------
# NYT bestsellers
# ----------------------------
def test_select_lists_follows_genre_rank(taxonomy):
    assert select_lists(("science", "business"), taxonomy) == ["science", "business-books"]
    assert select_lists(("philosophy",), taxonomy) == list(taxonomy.default_bestseller_lists)


def test_select_lists_capped_at_three(taxonomy):
    lists = select_lists(("science", "history", "business", "health"), taxonomy)
    assert lists == ["science", "history", "business-books"]


def test_nyt_without_key_reports_configuration_error():
    session = FakeSession([])
    result = NYTBestsellerSource(api_key=None, session=session).search(_profile("business"))
    assert result.candidates == ()
    assert [e.kind for e in result.errors] == ["configuration"]
    assert session.calls == []


def test_nyt_parses_list_and_spaces_calls():
    payload = {
        "results": {
            "published_date": "2024-11-03",
            "books": [
                {
                    "title": "THE WAGER",
                    "author": "David Grann",
                    "description": "A tale of shipwreck.",
                    "book_image": "https://img.test/wager.jpg",
                    "amazon_product_url": "https://amazon.test/wager",
                },
                {"title": "NO AUTHOR", "author": ""},
            ],
        }
    }
    session = FakeSession(lambda url, params: FakeResponse(payload))
    sleeps = []
    source = NYTBestsellerSource(api_key="k", session=session, request_delay=0.25, sleep=sleeps.append)

    result = source.search(_profile("history", "business"))

    assert result.ok
    assert [c.title for c in result.candidates] == ["The Wager", "The Wager"]
    wager = result.candidates[0]
    assert wager.source == "NYT Bestseller"
    assert wager.average_rating == 4.2
    assert wager.published_date == "2024-11-03"
    assert wager.purchase_url == "https://amazon.test/wager"
    assert session.calls[0]["url"].endswith("/lists/current/history.json")
    assert session.calls[0]["params"] == {"api-key": "k"}
    assert sleeps == [0.25]


def test_nyt_failed_list_does_not_stop_others():
    def reply(url, params):
        if "history" in url:
            return FakeResponse(status_code=500)
        return FakeResponse({"results": {"books": [{"title": "Rich Dad", "author": "R. Kiyosaki"}]}})

    result = NYTBestsellerSource(api_key="k", session=FakeSession(reply)).search(_profile("history", "business"))
    assert [c.title for c in result.candidates] == ["Rich Dad"]
    assert [(e.kind, e.query) for e in result.errors] == [("http", "history")]


def test_nyt_malformed_book_is_dropped_alone():
    payload = {
        "results": {
            "books": [
                {"title": 123, "author": "Numbers"},
                {"title": "OK", "author": "Someone"},
                {"title": "Odd Author", "author": 7},
            ]
        }
    }
    session = FakeSession(lambda url, params: FakeResponse(payload))
    result = NYTBestsellerSource(api_key="k", session=session).search(_profile("history"))
    assert result.ok
    assert [c.title for c in result.candidates] == ["OK"]


def test_nyt_unreadable_list_fails_only_that_list():
    def reply(url, params):
        if "history" in url:
            return FakeResponse({"results": {"books": 5}})
        return FakeResponse({"results": {"books": [{"title": "Rich Dad", "author": "R. Kiyosaki"}]}})

    result = NYTBestsellerSource(api_key="k", session=FakeSession(reply)).search(_profile("history", "business"))
    assert [c.title for c in result.candidates] == ["Rich Dad"]
    assert [(e.kind, e.query) for e in result.errors] == [("payload", "history")]


def test_nyt_past_deadline_makes_no_calls():
    session = FakeSession([])
    result = NYTBestsellerSource(api_key="k", session=session).search(
        _profile("history"), deadline=time.monotonic() - 1
    )
    assert session.calls == []
    assert [e.kind for e in result.errors] == ["timeout"]


# ----------------------------
# Curated lists
# ----------------------------
def test_curated_matches_genre_and_cross_map():
    result = CuratedListSource().search(_profile("current_affairs"))
    titles = {c.title for c in result.candidates}
    # history awards reach a current affairs reader through the cross map
    assert {"The Wager", "Master Slave Husband Wife"} <= titles
    assert "Orbital" not in titles


def test_curated_general_profile_gets_critics_picks():
    result = CuratedListSource().search(_profile("general"))
    assert {c.title for c in result.candidates} == {
        "Fourth Wing",
        "Tomorrow, and Tomorrow, and Tomorrow",
        "Demon Copperhead",
    }


# ----------------------------
# Google Books
# ----------------------------
def test_build_queries_order_and_cap():
    profile = _profile("business", "self_help", "history", "science", keywords=("habits", "pivot", "growth"))
    queries = build_queries(profile, 2024, max_queries=6)
    assert queries == [
        "business 2024 award winner",
        "self help 2024 award winner",
        "history 2024 award winner",
        "habits 2024",
        "pivot 2024",
        "best business 2024",
    ]


def test_accept_volume_needs_author_and_quality_signal():
    rules = AcceptanceRules()
    assert accept_volume(_volume()["volumeInfo"], TODAY, rules)
    assert not accept_volume(_volume(authors=[])["volumeInfo"], TODAY, rules)
    weak = _volume(averageRating=3.0, ratingsCount=2, description="short")["volumeInfo"]
    assert not accept_volume(weak, TODAY, rules)
    only_long_description = _volume(averageRating=None, ratingsCount=None)["volumeInfo"]
    assert accept_volume(only_long_description, TODAY, rules)


def test_accept_volume_recency_window():
    rules = AcceptanceRules(recency_window_months=36)
    assert not accept_volume(_volume(publishedDate="2019-01-01")["volumeInfo"], TODAY, rules)
    assert not accept_volume(_volume(publishedDate=None)["volumeInfo"], TODAY, rules)
    assert accept_volume(_volume(publishedDate="2019-01-01")["volumeInfo"], TODAY, AcceptanceRules(recency_window_months=0))


def test_google_books_collects_and_filters():
    payload = {"items": [_volume(), _volume(title="Old Book", publishedDate="2001"), {"volumeInfo": None}]}
    session = FakeSession(lambda url, params: FakeResponse(payload))
    source = GoogleBooksSource(session=session, max_queries=2, today=TODAY, sleep=lambda s: None)

    result = source.search(_profile("psychology"))

    assert result.ok
    assert len(session.calls) == 2
    assert session.calls[0]["params"]["q"] == "psychology 2024 award winner"
    assert session.calls[0]["params"]["langRestrict"] == "en"
    assert "key" not in session.calls[0]["params"]
    assert [c.title for c in result.candidates] == ["The Anxious Generation"] * 2
    book = result.candidates[0]
    assert book.source == "Google Books"
    assert book.categories == ("Psychology",)
    assert book.thumbnail_url == "http://books.google.com/thumb.jpg"


def test_google_books_failed_query_is_recorded():
    replies = [requests.ConnectionError("down"), FakeResponse({"items": [_volume()]})]
    source = GoogleBooksSource(api_key="g", session=FakeSession(replies), max_queries=2, today=TODAY)
    result = source.search(_profile("psychology"))
    assert len(result.candidates) == 1
    assert [e.kind for e in result.errors] == ["network"]
    assert result.errors[0].query == "psychology 2024 award winner"


def test_google_books_malformed_volume_is_dropped_alone():
    replies = [
        FakeResponse({"items": [_volume(title="Good One")]}),
        FakeResponse({"items": [_volume(title="Bad Rating", averageRating="4.5"), _volume(title="Good Middle")]}),
        FakeResponse({"items": [_volume(title="Good Two")]}),
    ]
    source = GoogleBooksSource(session=FakeSession(replies), max_queries=3, today=TODAY)

    result = source.search(_profile("psychology", keywords=("habits",)))

    assert result.ok
    assert [c.title for c in result.candidates] == ["Good One", "Good Middle", "Good Two"]


def test_google_books_unreadable_items_fail_only_that_query():
    replies = [FakeResponse({"items": 5}), FakeResponse({"items": [_volume()]})]
    source = GoogleBooksSource(session=FakeSession(replies), max_queries=2, today=TODAY)
    result = source.search(_profile("psychology"))
    assert [c.title for c in result.candidates] == ["The Anxious Generation"]
    assert [(e.kind, e.query) for e in result.errors] == [("payload", "psychology 2024 award winner")]
