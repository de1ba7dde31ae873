"""
Shared fakes for the HTTP session and the OpenAI client.
"""

import json
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from newsglobe.models import Coordinates, EnrichedStory, GeolocatedStory, RawStory

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status: int = 200, text: str = "", payload: Optional[dict] = None, error: Optional[BaseException] = None):
        self.status = status
        self._text = text
        self._payload = payload
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def text(self) -> str:
        return self._text

    async def json(self) -> dict:
        return self._payload if self._payload is not None else json.loads(self._text)


class FakeSession:
    """Routes GET requests by URL to canned responses or callables of params."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: List[SimpleNamespace] = []

    def get(self, url, params=None, headers=None):
        self.calls.append(SimpleNamespace(url=url, params=params or {}, headers=headers or {}))
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status=404)
        if callable(route):
            return route(params or {})
        return route


class FakeCompletions:
    def __init__(self, reply: Callable[[dict], str]):
        self.reply = reply
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.reply(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    """Stands in for AsyncOpenAI; reply(kwargs) returns content or raises."""

    def __init__(self, reply: Callable[[dict], str]):
        self.chat = SimpleNamespace(completions=FakeCompletions(reply))

    @property
    def calls(self) -> List[dict]:
        return self.chat.completions.calls


def prompt_of(kwargs: dict) -> str:
    return kwargs["messages"][-1]["content"]


def stories_in_prompt(kwargs: dict) -> List[dict]:
    """Decode the story list embedded in an enrichment prompt."""
    prompt = prompt_of(kwargs)
    return json.loads(prompt.split("Stories:", 1)[1].strip())


def rss_feed(title: str, items: List[dict]) -> str:
    """Render a minimal RSS 2.0 document."""
    rendered = []
    for item in items:
        parts = []
        if item.get("title") is not None:
            parts.append(f"<title>{item['title']}</title>")
        if item.get("link") is not None:
            parts.append(f"<link>{item['link']}</link>")
        if item.get("description") is not None:
            parts.append(f"<description><![CDATA[{item['description']}]]></description>")
        if item.get("published") is not None:
            parts.append(f"<pubDate>{format_datetime(item['published'])}</pubDate>")
        rendered.append("<item>" + "".join(parts) + "</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://example.com</link><description>feed</description>"
        + "".join(rendered)
        + "</channel></rss>"
    )


def make_raw(index: int, title: Optional[str] = None, minutes_ago: int = 0, source: str = "Test Wire") -> RawStory:
    return RawStory(
        title=title or f"Story number {index}",
        description=f"Description {index}",
        url=f"https://example.com/{index}",
        published_at=BASE_TIME - timedelta(minutes=minutes_ago),
        source=source,
    )


def make_enriched(index: int, location: str = "Tokyo, Japan") -> EnrichedStory:
    return EnrichedStory.from_raw(
        make_raw(index), location=location, summary=f"Summary {index}", category="tech", urgency="recent"
    )


def make_geolocated(index: int, lat: float = 35.6762, lng: float = 139.6503, urgency: str = "recent", minutes_ago: int = 0) -> GeolocatedStory:
    raw = make_raw(index, minutes_ago=minutes_ago)
    enriched = EnrichedStory.from_raw(raw, location="Somewhere", summary="s", category="tech", urgency=urgency)
    return GeolocatedStory.from_enriched(enriched, Coordinates(lat, lng))


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
