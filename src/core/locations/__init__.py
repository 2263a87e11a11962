# src/core/locations/__init__.py
"""
Домен геолокации водителей.
GEO-индекс, валидация и поиск ближайших с расширяющимся радиусом.
"""

from src.core.locations.exceptions import (
    LocationServiceError,
    InvalidCoordinate,
    InvalidIdentifier,
    InvalidRadius,
    DriverNotFound,
    IndexUnavailable,
)
from src.core.locations.index import GeoIndex, InMemoryGeoIndex, RedisGeoIndex
from src.core.locations.models import (
    AgentPosition,
    IndexHit,
    ProximityCandidate,
    SearchResult,
    SearchSpec,
)
from src.core.locations.search import search
from src.core.locations.service import DriverLocationService

__all__ = [
    "LocationServiceError",
    "InvalidCoordinate",
    "InvalidIdentifier",
    "InvalidRadius",
    "DriverNotFound",
    "IndexUnavailable",
    "GeoIndex",
    "InMemoryGeoIndex",
    "RedisGeoIndex",
    "AgentPosition",
    "IndexHit",
    "ProximityCandidate",
    "SearchResult",
    "SearchSpec",
    "search",
    "DriverLocationService",
]
