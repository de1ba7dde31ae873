"""
Story data models shared across the aggregation pipeline.
RawStory -> EnrichedStory -> GeolocatedStory, each stage adding fields.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CATEGORIES = ("politics", "conflict", "environment", "tech", "health", "economy")
URGENCIES = ("breaking", "recent", "standard")

DEFAULT_LOCATION = "Unknown Location"
DEFAULT_CATEGORY = "politics"
DEFAULT_URGENCY = "standard"

_FRACTION = re.compile(r"\.(\d+)")


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp as returned by NewsAPI.

    Fractional seconds of any length are padded or cut to microseconds.

    Args:
        value: Timestamp string, e.g. "2024-05-01T12:00:00Z"

    Returns:
        UTC datetime or None if the value is empty or malformed
    """
    if not value:
        return None
    try:
        text = value.strip().replace("Z", "+00:00")
        text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
        return ensure_utc(datetime.fromisoformat(text))
    except (ValueError, AttributeError):
        return None


@dataclass(frozen=True)
class RawStory:
    """
    A news item as retrieved from a source, before AI annotation.
    """
    title: str
    description: str
    url: str
    published_at: datetime
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "publishedAt": self.published_at.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class EnrichedStory(RawStory):
    """
    Raw story annotated with location text, summary, category and urgency.
    """
    location: str
    summary: str
    category: str
    urgency: str

    @classmethod
    def from_raw(
        cls,
        story: RawStory,
        location: str = DEFAULT_LOCATION,
        summary: Optional[str] = None,
        category: str = DEFAULT_CATEGORY,
        urgency: str = DEFAULT_URGENCY,
    ) -> "EnrichedStory":
        return cls(
            title=story.title,
            description=story.description,
            url=story.url,
            published_at=story.published_at,
            source=story.source,
            location=location,
            summary=story.description if summary is None else summary,
            category=category,
            urgency=urgency,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "location": self.location,
            "summary": self.summary,
            "category": self.category,
            "urgency": self.urgency,
        })
        return data


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in degrees."""
    lat: float
    lng: float

    @property
    def is_unknown(self) -> bool:
        return self.lat == 0 and self.lng == 0

    @property
    def is_valid(self) -> bool:
        return -90 <= self.lat <= 90 and -180 <= self.lng <= 180

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


# Sentinel for a location that could not be resolved
UNKNOWN_COORDINATES = Coordinates(lat=0.0, lng=0.0)


@dataclass(frozen=True)
class GeolocatedStory(EnrichedStory):
    """
    Enriched story with resolved coordinates. Terminal representation.
    """
    coords: Coordinates

    @classmethod
    def from_enriched(cls, story: EnrichedStory, coords: Coordinates) -> "GeolocatedStory":
        return cls(
            title=story.title,
            description=story.description,
            url=story.url,
            published_at=story.published_at,
            source=story.source,
            location=story.location,
            summary=story.summary,
            category=story.category,
            urgency=story.urgency,
            coords=coords,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["coords"] = self.coords.to_dict()
        return data
