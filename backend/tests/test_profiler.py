"""Tests for the text profiler."""
from app.core.taxonomy import GENERAL_GENRE
from app.schemas.book import NO_NOTES, ReadingEntry
from app.services.profiler import count_genres, extract_keywords, extract_profile


def test_business_book_profiles_as_business(lean_startup):
    profile = extract_profile([lean_startup])
    assert "business" in profile.genres
    assert profile.primary_genre == "business"
    assert profile.book_count == 1


def test_genres_ranked_by_hit_count(taxonomy):
    counts = count_genres("history of the empire. war and ancient history. a startup", taxonomy)
    assert counts["history"] > counts["business"] > 0


def test_profile_never_has_empty_genres():
    profile = extract_profile([ReadingEntry(title="Untitled", author="Anon", notes="zzz qqq")])
    assert profile.genres == (GENERAL_GENRE,)
    assert GENERAL_GENRE in profile.themes


def test_profile_aggregates_across_books(sample_entries):
    profile = extract_profile(sample_entries)
    assert profile.book_count == 3
    assert "business" in profile.top_genres
    assert "psychology" in profile.top_genres
    assert profile.has_author("daniel kahneman")
    assert not profile.has_author("Someone Else")


def test_keywords_need_long_notes(taxonomy):
    assert extract_keywords("short notes about strategy", taxonomy) == []
    assert extract_keywords(NO_NOTES, taxonomy) == []


def test_keywords_skip_stopwords_short_and_numeric_tokens(taxonomy):
    notes = (
        "Validated learning beats elaborate planning because customers rarely behave "
        "the way founders predict in 2011, which means every experiment matters."
    )
    keywords = extract_keywords(notes, taxonomy)
    assert "validated" in keywords
    assert "learning" in keywords
    assert "because" not in keywords  # stopword
    assert "beats" in keywords
    assert "the" not in keywords
    assert all(not k.isdigit() for k in keywords)
    assert all(len(k) >= 5 for k in keywords)


def test_keywords_capped_per_book(taxonomy):
    notes = " ".join(f"keyword{chr(97 + i % 26)}{i}" for i in range(60))
    assert len(extract_keywords(notes, taxonomy)) == 20


def test_placeholder_notes_contribute_nothing(taxonomy):
    # "available" and "notes" would otherwise leak into the profile
    profile = extract_profile([ReadingEntry(title="Zzz", author="Qqq")], taxonomy)
    assert profile.keywords == ()
    assert profile.genres == (GENERAL_GENRE,)
