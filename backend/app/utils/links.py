"""Purchase and review links for recommendation cards."""
from urllib.parse import quote_plus


def purchase_url(title: str, author: str) -> str:
    """Amazon India book search for title and author."""
    search_query = quote_plus(f"{title or ''} {author or ''}".strip())
    return f"https://www.amazon.in/s?k={search_query}&i=stripbooks"


def review_url(title: str, source: str) -> str:
    search_query = quote_plus(title or "")
    if source == "Goodreads":
        return f"https://www.goodreads.com/search?q={search_query}"
    return f"https://www.amazon.in/s?k={search_query}&i=stripbooks#customerReviews"
