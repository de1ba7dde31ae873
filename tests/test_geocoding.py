"""
Test cases for layered location resolution.
"""

import asyncio
import json

from newsglobe.ai.geocoding import CITY_COORDS, COUNTRY_COORDS, GeocodingService
from newsglobe.models import Coordinates, UNKNOWN_COORDINATES
from newsglobe.store.coord_store import InMemoryCoordinateStore

from conftest import FakeOpenAI, make_enriched, prompt_of


def fail_reply(kwargs):
    raise AssertionError("AI lookup should not be called")


def make_service(reply=fail_reply, store=None):
    client = FakeOpenAI(reply)
    return GeocodingService(client, model="test-model", store=store), client


def test_city_table_hit_makes_no_ai_call():
    service, client = make_service()

    coords = asyncio.run(service.resolve("Tokyo, Japan"))

    assert coords == Coordinates(35.6762, 139.6503)
    assert client.calls == []
    assert service.store.get("Tokyo, Japan") == coords


def test_country_table_fallback():
    """Locations without a known city resolve to the country centroid."""
    service, client = make_service()

    coords = asyncio.run(service.resolve("Osaka Prefecture, Japan"))

    assert coords == COUNTRY_COORDS["Japan"]
    assert client.calls == []


def test_city_takes_precedence_over_country():
    service, _ = make_service()

    assert asyncio.run(service.resolve("Paris, France")) == CITY_COORDS["Paris"]


def test_table_matching_is_case_sensitive():
    """Lowercase text misses the tables and goes to the AI lookup."""
    service, client = make_service(lambda kwargs: json.dumps({"lat": 1.5, "lng": 2.5}))

    coords = asyncio.run(service.resolve("tokyo"))

    assert coords == Coordinates(1.5, 2.5)
    assert len(client.calls) == 1


def test_empty_and_unknown_locations():
    service, client = make_service()

    assert asyncio.run(service.resolve("")) == UNKNOWN_COORDINATES
    assert asyncio.run(service.resolve("   ")) == UNKNOWN_COORDINATES
    assert asyncio.run(service.resolve("Unknown Location")) == UNKNOWN_COORDINATES
    assert client.calls == []


def test_store_hit_wins():
    """A stored entry is returned before any table is consulted."""
    store = InMemoryCoordinateStore({"Tokyo, Japan": Coordinates(1.0, 2.0)})
    service, _ = make_service(store=store)

    assert asyncio.run(service.resolve(" Tokyo, Japan ")) == Coordinates(1.0, 2.0)


def test_ai_success_is_stored():
    """A valid AI answer is cached so the next lookup makes no request."""
    service, client = make_service(lambda kwargs: json.dumps({"lat": -1.2921, "lng": 36.8219}))

    first = asyncio.run(service.resolve("Kibera"))
    second = asyncio.run(service.resolve("Kibera"))

    assert first == second == Coordinates(-1.2921, 36.8219)
    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["temperature"] == 0
    assert "Kibera" in prompt_of(call)
    assert "Kibera" in service.store


def test_ai_zero_coordinate_is_accepted():
    service, _ = make_service(lambda kwargs: json.dumps({"lat": 0, "lng": 9.5}))

    assert asyncio.run(service.resolve("Gulf of Guinea")) == Coordinates(0.0, 9.5)


def test_ai_failures_resolve_to_unknown_and_are_not_stored():
    replies = {
        "Out of range": json.dumps({"lat": 120, "lng": 10}),
        "Missing lng": json.dumps({"lat": 10}),
        "Not numbers": json.dumps({"lat": "10", "lng": "20"}),
        "Garbage": "no json here",
    }

    def reply(kwargs):
        for location, content in replies.items():
            if location in prompt_of(kwargs):
                return content
        raise ConnectionError("network down")

    service, _ = make_service(reply)

    for location in list(replies) + ["Network"]:
        assert asyncio.run(service.resolve(location)) == UNKNOWN_COORDINATES
        assert location not in service.store


def test_concurrent_lookups_share_one_request():
    """Simultaneous resolves of the same text issue a single AI request."""
    service, client = make_service(lambda kwargs: "not json")

    async def run():
        return await asyncio.gather(*(service.resolve("Atlantis") for _ in range(3)))

    results = asyncio.run(run())

    assert results == [UNKNOWN_COORDINATES] * 3
    assert len(client.calls) == 1

    # Failures are not cached, so a later call asks again
    asyncio.run(service.resolve("Atlantis"))
    assert len(client.calls) == 2


def test_resolve_all_preserves_order():
    service, _ = make_service(lambda kwargs: json.dumps({"lat": 10.0, "lng": 20.0}))
    stories = [
        make_enriched(1, location="Tokyo, Japan"),
        make_enriched(2, location="Somewhere odd"),
        make_enriched(3, location="Unknown Location"),
        make_enriched(4, location="Berlin, Germany"),
    ]

    geolocated = asyncio.run(service.resolve_all(stories))

    assert [story.url for story in geolocated] == [story.url for story in stories]
    assert geolocated[0].coords == CITY_COORDS["Tokyo"]
    assert geolocated[1].coords == Coordinates(10.0, 20.0)
    assert geolocated[2].coords.is_unknown
    assert geolocated[3].coords == CITY_COORDS["Berlin"]
    assert geolocated[0].summary == "Summary 1"


def test_resolve_all_batched(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr("newsglobe.ai.geocoding.asyncio.sleep", fake_sleep)
    service, _ = make_service()
    stories = [make_enriched(i) for i in range(5)]

    geolocated = asyncio.run(service.resolve_all_batched(stories, batch_size=2, delay=0.5))

    assert len(geolocated) == 5
    assert sleeps == [0.5, 0.5]
