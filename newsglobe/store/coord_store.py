"""
Exact-match store for resolved location coordinates.
"""

from typing import Dict, Optional, Protocol

from newsglobe.models import Coordinates


class CoordinateStore(Protocol):
    """Lookup/store of location string -> coordinates."""

    def get(self, location: str) -> Optional[Coordinates]:
        ...

    def set(self, location: str, coords: Coordinates) -> None:
        ...

    def __len__(self) -> int:
        ...


class InMemoryCoordinateStore:
    """
    Dict-backed coordinate store. Entries are never evicted; location strings
    are few compared to story volume.
    """

    def __init__(self, initial: Optional[Dict[str, Coordinates]] = None):
        self._entries: Dict[str, Coordinates] = dict(initial or {})

    def get(self, location: str) -> Optional[Coordinates]:
        return self._entries.get(location)

    def set(self, location: str, coords: Coordinates) -> None:
        self._entries[location] = coords

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, location: str) -> bool:
        return location in self._entries
