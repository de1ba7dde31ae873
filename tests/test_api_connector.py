"""
Test cases for the NewsAPI connector.
"""

import asyncio

from newsglobe.scraper.api_connector import NewsAPIConnector

from conftest import FakeResponse, FakeSession

BASE_URL = "https://newsapi.example.com/v2/"
HEADLINES = "https://newsapi.example.com/v2/top-headlines"


def test_top_headlines_parses_articles():
    """Valid articles become stories; incomplete ones are rejected."""
    payload = {
        "status": "ok",
        "totalResults": 4,
        "articles": [
            {"title": "Valid", "description": "desc", "url": "https://x.example.com/1",
             "publishedAt": "2024-05-01T08:30:00Z", "source": {"name": "Reuters"}},
            {"title": "No description", "description": None, "url": "https://x.example.com/2",
             "publishedAt": "2024-05-01T08:30:00Z", "source": {"name": "Reuters"}},
            {"title": "[Removed]", "description": "desc", "url": "https://x.example.com/3"},
            {"title": "No source or date", "description": "desc", "url": "https://x.example.com/4"},
        ],
    }
    session = FakeSession({HEADLINES: FakeResponse(payload=payload)})
    connector = NewsAPIConnector("key", session, base_url=BASE_URL)

    response = asyncio.run(connector.get_top_headlines(country="US", page_size=500))

    assert response.ok
    assert response.total_results == 4
    assert [story.title for story in response.stories] == ["Valid", "No source or date"]
    assert response.stories[0].source == "Reuters"
    assert response.stories[0].published_at.hour == 8
    assert response.stories[1].source == "NewsAPI"
    assert response.stories[1].published_at.tzinfo is not None

    call = session.calls[0]
    assert call.params == {"pageSize": 100, "country": "us"}
    assert call.headers == {"X-Api-Key": "key"}


def test_top_headlines_http_error():
    """Non-200 responses yield an error response without stories."""
    session = FakeSession({HEADLINES: FakeResponse(status=401)})
    connector = NewsAPIConnector("key", session, base_url=BASE_URL)

    response = asyncio.run(connector.get_top_headlines(category="general"))

    assert not response.ok
    assert response.stories == []
    assert response.error_message == "HTTP 401"


def test_top_headlines_network_error():
    """Transport errors are reported, not raised."""
    session = FakeSession({HEADLINES: FakeResponse(error=ConnectionError("reset"))})
    connector = NewsAPIConnector("key", session, base_url=BASE_URL)

    response = asyncio.run(connector.get_top_headlines())

    assert response.status == "error"
    assert "reset" in response.error_message


def test_undated_articles_share_fetch_time():
    """Articles without a publish time all get the same timestamp."""
    payload = {
        "status": "ok",
        "articles": [
            {"title": f"Undated {i}", "description": "desc", "url": f"https://x.example.com/{i}"}
            for i in range(5)
        ],
    }
    session = FakeSession({HEADLINES: FakeResponse(payload=payload)})
    connector = NewsAPIConnector("key", session, base_url=BASE_URL)

    response = asyncio.run(connector.get_top_headlines())

    assert len({story.published_at for story in response.stories}) == 1
