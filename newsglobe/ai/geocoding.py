"""
Geocoding of free-text story locations.
Resolves through an exact-match store, curated city and country tables,
and finally an OpenAI lookup.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI

from newsglobe.ai.completion import complete_json
from newsglobe.models import (
    Coordinates,
    EnrichedStory,
    GeolocatedStory,
    UNKNOWN_COORDINATES,
)
from newsglobe.store.coord_store import CoordinateStore, InMemoryCoordinateStore
from newsglobe.utils.config import get_openai_config, get_pipeline_config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a geocoding assistant. Return only valid JSON with lat and lng "
    "coordinates for the given location. If uncertain, provide the capital city "
    "or major city of the mentioned country/region."
)

# Order matters: the first name found in the location wins.
CITY_COORDS: Dict[str, Coordinates] = {
    "New York": Coordinates(40.7128, -74.0060),
    "London": Coordinates(51.5074, -0.1278),
    "Paris": Coordinates(48.8566, 2.3522),
    "Tokyo": Coordinates(35.6762, 139.6503),
    "Beijing": Coordinates(39.9042, 116.4074),
    "Moscow": Coordinates(55.7558, 37.6173),
    "Berlin": Coordinates(52.5200, 13.4050),
    "Sydney": Coordinates(-33.8688, 151.2093),
    "Mumbai": Coordinates(19.0760, 72.8777),
    "Dubai": Coordinates(25.2048, 55.2708),
    "Singapore": Coordinates(1.3521, 103.8198),
    "Hong Kong": Coordinates(22.3193, 114.1694),
    "Toronto": Coordinates(43.6532, -79.3832),
    "Mexico City": Coordinates(19.4326, -99.1332),
    "São Paulo": Coordinates(-23.5505, -46.6333),
    "Los Angeles": Coordinates(34.0522, -118.2437),
    "Chicago": Coordinates(41.8781, -87.6298),
    "San Francisco": Coordinates(37.7749, -122.4194),
    "Boston": Coordinates(42.3601, -71.0589),
    "Washington": Coordinates(38.9072, -77.0369),
    "Seoul": Coordinates(37.5665, 126.9780),
    "Bangkok": Coordinates(13.7563, 100.5018),
    "Istanbul": Coordinates(41.0082, 28.9784),
    "Cairo": Coordinates(30.0444, 31.2357),
    "Rome": Coordinates(41.9028, 12.4964),
    "Madrid": Coordinates(40.4168, -3.7038),
    "Amsterdam": Coordinates(52.3676, 4.9041),
    "Geneva": Coordinates(46.2044, 6.1432),
    "Zurich": Coordinates(47.3769, 8.5417),
    "Brussels": Coordinates(50.8503, 4.3517),
    "Vienna": Coordinates(48.2082, 16.3738),
    "Warsaw": Coordinates(52.2297, 21.0122),
    "Stockholm": Coordinates(59.3293, 18.0686),
    "Copenhagen": Coordinates(55.6761, 12.5683),
    "Oslo": Coordinates(59.9139, 10.7522),
    "Helsinki": Coordinates(60.1699, 24.9384),
    "Athens": Coordinates(37.9838, 23.7275),
    "Lisbon": Coordinates(38.7223, -9.1393),
    "Dublin": Coordinates(53.3498, -6.2603),
    "Tel Aviv": Coordinates(32.0853, 34.7818),
    "Jerusalem": Coordinates(31.7683, 35.2137),
    "Riyadh": Coordinates(24.7136, 46.6753),
    "Abu Dhabi": Coordinates(24.4539, 54.3773),
    "Doha": Coordinates(25.2854, 51.5310),
    "Kuwait City": Coordinates(29.3759, 47.9774),
    "Beirut": Coordinates(33.8886, 35.4955),
    "Baghdad": Coordinates(33.3152, 44.3661),
    "Tehran": Coordinates(35.6892, 51.3890),
    "Kabul": Coordinates(34.5553, 69.2075),
    "Islamabad": Coordinates(33.6844, 73.0479),
    "New Delhi": Coordinates(28.6139, 77.2090),
    "Dhaka": Coordinates(23.8103, 90.4125),
    "Yangon": Coordinates(16.8661, 96.1951),
    "Hanoi": Coordinates(21.0285, 105.8542),
    "Ho Chi Minh City": Coordinates(10.8231, 106.6297),
    "Manila": Coordinates(14.5995, 120.9842),
    "Jakarta": Coordinates(-6.2088, 106.8456),
    "Kuala Lumpur": Coordinates(3.1390, 101.6869),
    "Nairobi": Coordinates(-1.2921, 36.8219),
    "Lagos": Coordinates(6.5244, 3.3792),
    "Johannesburg": Coordinates(-26.2041, 28.0473),
    "Cape Town": Coordinates(-33.9249, 18.4241),
    "Buenos Aires": Coordinates(-34.6037, -58.3816),
    "Santiago": Coordinates(-33.4489, -70.6693),
    "Lima": Coordinates(-12.0464, -77.0428),
    "Bogotá": Coordinates(4.7110, -74.0721),
    "Caracas": Coordinates(10.4806, -66.9036),
    "Rio de Janeiro": Coordinates(-22.9068, -43.1729),
    "Brasília": Coordinates(-15.8267, -47.9218),
    "Melbourne": Coordinates(-37.8136, 144.9631),
    "Brisbane": Coordinates(-27.4698, 153.0251),
    "Perth": Coordinates(-31.9505, 115.8605),
    "Auckland": Coordinates(-36.8485, 174.7633),
    "Wellington": Coordinates(-41.2865, 174.7762),
}

# Country and region fallbacks. "Unknown" maps the enrichment default to the sentinel.
COUNTRY_COORDS: Dict[str, Coordinates] = {
    "Unknown": UNKNOWN_COORDINATES,
    "United States": Coordinates(37.0902, -95.7129),
    "United Kingdom": Coordinates(55.3781, -3.4360),
    "France": Coordinates(46.2276, 2.2137),
    "Germany": Coordinates(51.1657, 10.4515),
    "China": Coordinates(35.8617, 104.1954),
    "Japan": Coordinates(36.2048, 138.2529),
    "India": Coordinates(20.5937, 78.9629),
    "Brazil": Coordinates(-14.2350, -51.9253),
    "Australia": Coordinates(-25.2744, 133.7751),
    "Russia": Coordinates(61.5240, 105.3188),
    "Canada": Coordinates(56.1304, -106.3468),
    "Mexico": Coordinates(23.6345, -102.5528),
    "South Africa": Coordinates(-30.5595, 22.9375),
    "Egypt": Coordinates(26.8206, 30.8025),
}


def _match_table(location: str, table: Dict[str, Coordinates]) -> Optional[Coordinates]:
    for name, coords in table.items():
        if name in location:
            return coords
    return None


def _coordinate(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class GeocodingService:
    """
    Converts location strings into coordinates.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: Optional[str] = None,
        store: Optional[CoordinateStore] = None,
        city_coords: Optional[Dict[str, Coordinates]] = None,
        country_coords: Optional[Dict[str, Coordinates]] = None
    ):
        """
        Initialize the geocoding service.

        Args:
            client: Async OpenAI client used for the last-resort lookup
            model: Chat model, defaults to the configured model
            store: Exact-match coordinate store, in-memory by default
            city_coords: City table, defaults to CITY_COORDS
            country_coords: Country/region table, defaults to COUNTRY_COORDS
        """
        self.client = client
        self.model = model or get_openai_config()["model"]
        self.store = store if store is not None else InMemoryCoordinateStore()
        self.city_coords = CITY_COORDS if city_coords is None else city_coords
        self.country_coords = COUNTRY_COORDS if country_coords is None else country_coords
        self._inflight: Dict[str, asyncio.Future] = {}

    def find_known(self, location: str) -> Optional[Coordinates]:
        """
        Resolve a location without the AI lookup.

        Checks the store, then the city table, then the country table.
        Table hits are written to the store.

        Args:
            location: Location text, already stripped

        Returns:
            Coordinates or None when nothing matches
        """
        cached = self.store.get(location)
        if cached is not None:
            return cached

        coords = _match_table(location, self.city_coords)
        if coords is None:
            coords = _match_table(location, self.country_coords)

        if coords is not None:
            self.store.set(location, coords)
        return coords

    async def resolve(self, location: str) -> Coordinates:
        """
        Convert a location string to coordinates.

        Never raises; unresolvable locations give UNKNOWN_COORDINATES.

        Args:
            location: Free-text location, e.g. "Tokyo, Japan"

        Returns:
            Resolved coordinates
        """
        key = (location or "").strip()
        if not key:
            return UNKNOWN_COORDINATES

        known = self.find_known(key)
        if known is not None:
            return known

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._geocode_with_ai(key))
        self._inflight[key] = task
        try:
            return await task
        finally:
            self._inflight.pop(key, None)

    async def _geocode_with_ai(self, location: str) -> Coordinates:
        """
        Ask the model for the coordinates of a location.

        Args:
            location: Location text

        Returns:
            Validated coordinates, or UNKNOWN_COORDINATES on any failure
        """
        try:
            data = await complete_json(
                self.client,
                self.model,
                SYSTEM_PROMPT,
                f"What are the latitude and longitude coordinates for: {location}? "
                'Return only JSON in this format: {"lat": number, "lng": number}',
                temperature=0
            )

            lat = _coordinate(data.get("lat"))
            lng = _coordinate(data.get("lng"))
            if lat is None or lng is None:
                raise ValueError(f"Missing coordinates in {data!r}")

            coords = Coordinates(lat=lat, lng=lng)
            if not coords.is_valid:
                raise ValueError(f"Coordinates out of range: {lat}, {lng}")

            self.store.set(location, coords)
            return coords

        except Exception as e:
            logger.error(f'AI geocoding failed for "{location}": {e}')
            return UNKNOWN_COORDINATES

    async def resolve_all(self, stories: List[EnrichedStory]) -> List[GeolocatedStory]:
        """
        Resolve every story's location concurrently.

        Args:
            stories: Enriched stories

        Returns:
            Geolocated stories in input order
        """
        logger.info(f"Geolocating {len(stories)} stories...")

        coords = await asyncio.gather(*(self.resolve(story.location) for story in stories))
        geolocated = [
            GeolocatedStory.from_enriched(story, story_coords)
            for story, story_coords in zip(stories, coords)
        ]

        logger.info(f"Successfully geolocated {len(geolocated)} stories")
        return geolocated

    async def resolve_all_batched(
        self,
        stories: List[EnrichedStory],
        batch_size: Optional[int] = None,
        delay: Optional[float] = None
    ) -> List[GeolocatedStory]:
        """
        Resolve stories in chunks with a pause between chunks.

        Args:
            stories: Enriched stories
            batch_size: Stories resolved concurrently per chunk
            delay: Seconds to wait between chunks

        Returns:
            Geolocated stories in input order
        """
        pipeline_config = get_pipeline_config()
        size = max(1, batch_size or pipeline_config["geocode_batch_size"])
        pause = pipeline_config["batch_delay"] if delay is None else delay

        results: List[GeolocatedStory] = []
        for i in range(0, len(stories), size):
            if i > 0 and pause > 0:
                await asyncio.sleep(pause)
            results.extend(await self.resolve_all(stories[i:i + size]))

        return results
