"""
Static gazetteer of the cities the globe supports.

Design:
  - Every entry maps one canonical city name to its coordinates.
  - Names are compared case-insensitively with internal whitespace collapsed,
    so "new   YORK" resolves to "New York".
  - Insertion order is significant: mention scanning walks the gazetteer in
    this order and nearest-city resolution breaks ties in favour of the
    earlier entry.
  - Nearest-city lookup is planar Euclidean distance in degrees. This is only
    used to snap a globe click onto a marker, never for routing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import numpy as np


@dataclass(frozen=True)
class Place:
    name: str          # canonical casing, e.g. "Ho Chi Minh City"
    longitude: float
    latitude: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


def normalize_name(name: str) -> str:
    """Lowercase and collapse internal whitespace."""
    return " ".join(name.split()).lower()


# ══════════════════════════════════════════════════════════════════════
# GAZETTEER DATA
# ══════════════════════════════════════════════════════════════════════

_SUPPORTED_CITIES: list[Place] = []


def _add(name: str, lng: float, lat: float) -> None:
    _SUPPORTED_CITIES.append(Place(name, lng, lat))


# ── Europe ────────────────────────────────────────────────────────────

_add("Paris", 2.3522, 48.8566)
_add("London", -0.1276, 51.5074)
_add("Berlin", 13.4050, 52.5200)
_add("Rome", 12.4964, 41.9028)
_add("Bruges", 3.3792, 51.9225)
_add("Amsterdam", 4.9041, 52.3676)
_add("Barcelona", 2.1734, 41.3851)
_add("Copenhagen", 12.5683, 55.6761)
_add("Vienna", 16.3738, 48.2082)
_add("Budapest", 19.0402, 47.4979)
_add("Prague", 14.4378, 50.0755)
_add("Warsaw", 21.0122, 52.2297)
_add("Kyiv", 30.5234, 50.4501)
_add("Moscow", 37.6173, 55.7558)

# ── Asia ──────────────────────────────────────────────────────────────

_add("Tokyo", 139.6917, 35.6895)
_add("Seoul", 126.9780, 37.5665)
_add("Hong Kong", 114.0579, 22.5431)
_add("Shanghai", 121.4737, 31.2304)
_add("Beijing", 116.4074, 39.9042)
_add("Mumbai", 72.8777, 19.0760)
_add("New Delhi", 77.2090, 28.6139)
_add("Kolkata", 88.3639, 22.5726)
_add("Bangkok", 100.5018, 13.7563)
_add("Ho Chi Minh City", 106.6297, 10.8231)
_add("Singapore", 103.8198, 1.3521)
_add("Jakarta", 106.8456, -6.2088)
_add("Manila", 120.9842, 14.5995)

# ── Americas ──────────────────────────────────────────────────────────

_add("New York", -74.006, 40.7128)
_add("Los Angeles", -118.2437, 34.0522)
_add("Chicago", -87.6298, 41.8781)
_add("Houston", -95.3698, 29.7604)
_add("Miami", -80.1918, 25.7617)
_add("Toronto", -79.3832, 43.6532)
_add("Vancouver", -123.1207, 49.2827)
_add("Mexico City", -99.1332, 19.4326)
_add("São Paulo", -46.6333, -23.5505)
_add("Buenos Aires", -58.3816, -34.6037)
_add("Santiago", -70.6483, -33.4489)
_add("Lima", -77.0428, -12.0464)

# ── Africa ────────────────────────────────────────────────────────────

_add("Cairo", 31.2357, 30.0444)
_add("Lagos", 3.3792, 6.5244)
_add("Cape Town", 18.4241, -33.9249)
_add("Nairobi", 36.8172, -1.2921)
_add("Victoria", 55.2708, -4.4419)
_add("Tunis", 10.1815, 36.8065)
_add("Casablanca", -6.8498, 34.0209)

# ── Oceania ───────────────────────────────────────────────────────────

_add("Sydney", 151.2093, -33.8688)
_add("Melbourne", 144.9631, -37.8136)
_add("Perth", 115.8605, -31.9505)
_add("Auckland", 174.7633, -36.8485)
_add("Noumea", 167.8449, -29.0556)


# ══════════════════════════════════════════════════════════════════════
# LOOKUP
# ══════════════════════════════════════════════════════════════════════

class Gazetteer:
    """
    Immutable, ordered registry of places.

    Lookups:
      - lookup(): exact canonical-name match.
      - nearest(): closest place to a point, if strictly closer than a cutoff.
      - search(): substring filter for a city picker.
    """

    def __init__(self, places: Iterable[Place]):
        self._places: list[Place] = []
        self._by_name: dict[str, Place] = {}
        for place in places:
            key = normalize_name(place.name)
            if key in self._by_name:
                raise ValueError(f"Duplicate place name in gazetteer: {place.name!r}")
            self._validate(place)
            self._by_name[key] = place
            self._places.append(place)

        # (n, 2) array of (lng, lat), row order == insertion order
        self._coords = np.array(
            [[p.longitude, p.latitude] for p in self._places], dtype=np.float64
        ).reshape(-1, 2)

    @staticmethod
    def _validate(place: Place) -> None:
        if not -180.0 <= place.longitude <= 180.0:
            raise ValueError(f"{place.name}: longitude {place.longitude} out of range")
        if not -90.0 <= place.latitude <= 90.0:
            raise ValueError(f"{place.name}: latitude {place.latitude} out of range")

    def __iter__(self) -> Iterator[Place]:
        return iter(self._places)

    def __len__(self) -> int:
        return len(self._places)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._by_name

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._places]

    def lookup(self, name: str) -> Optional[Place]:
        return self._by_name.get(normalize_name(name))

    def nearest(self, lng: float, lat: float, max_distance: float) -> Optional[Place]:
        """
        Return the place closest to (lng, lat) in degree-space, or None when
        nothing is strictly closer than max_distance.
        Ties resolve to the earliest inserted place (argmin keeps the first).
        """
        if not self._places:
            return None
        distances = np.hypot(self._coords[:, 0] - lng, self._coords[:, 1] - lat)
        idx = int(np.argmin(distances))
        if distances[idx] < max_distance:
            return self._places[idx]
        return None

    def search(self, query: str, limit: Optional[int] = None) -> list[Place]:
        """Places whose name contains the query, case-insensitive, in gazetteer order."""
        needle = normalize_name(query)
        if not needle:
            return []
        hits = [p for p in self._places if needle in normalize_name(p.name)]
        return hits[:limit] if limit is not None else hits


# Singleton gazetteer instance
_gazetteer: Optional[Gazetteer] = None


def get_gazetteer() -> Gazetteer:
    global _gazetteer
    if _gazetteer is None:
        _gazetteer = Gazetteer(_SUPPORTED_CITIES)
    return _gazetteer
