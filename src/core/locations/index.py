# src/core/locations/index.py
"""
GEO-индекс позиций водителей.

Контракт индекса (GeoIndex) и две реализации:
- RedisGeoIndex - продакшн, поверх Redis GEO
- InMemoryGeoIndex - перебор по словарю с haversine (dev-режим и тесты)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from redis.exceptions import RedisError

from src.common.constants import DRIVER_GEO_KEY
from src.core.locations.distance import haversine_km
from src.core.locations.exceptions import IndexUnavailable, InvalidCoordinate
from src.core.locations.models import IndexHit
from src.infra.redis_client import RedisClient


class GeoIndex(ABC):
    """
    Хранилище одной позиции на ID водителя.

    Все методы при сбое хранилища выбрасывают IndexUnavailable.
    """

    @abstractmethod
    async def upsert(self, agent_id: str, latitude: float, longitude: float) -> bool:
        """
        Вставляет или заменяет позицию.

        Returns:
            True если водитель добавлен, False если позиция обновлена
        """

    @abstractmethod
    async def remove(self, agent_id: str) -> bool:
        """Удаляет позицию. False если её не было."""

    @abstractmethod
    async def position(self, agent_id: str) -> tuple[float, float] | None:
        """Возвращает (latitude, longitude) или None."""

    @abstractmethod
    async def radius_query(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        limit: int,
    ) -> list[IndexHit]:
        """Водители в радиусе, по возрастанию расстояния, не больше limit."""

    async def ping(self) -> bool:
        """Проверка доступности хранилища."""
        return True


class RedisGeoIndex(GeoIndex):
    """Индекс поверх Redis GEO (sorted set с geohash)."""

    # Redis хранит точки в проекции Web Mercator
    MAX_LATITUDE = 85.05112878

    def __init__(self, redis: RedisClient, key: str = DRIVER_GEO_KEY) -> None:
        self._redis = redis
        self._key = key

    def _check_latitude(self, latitude: float) -> None:
        if abs(latitude) > self.MAX_LATITUDE:
            raise InvalidCoordinate(
                f"Latitude must be between -{self.MAX_LATITUDE} and {self.MAX_LATITUDE}"
            )

    def _ensure_connected(self) -> None:
        if not self._redis.is_connected:
            raise IndexUnavailable("Redis is not connected")

    async def upsert(self, agent_id: str, latitude: float, longitude: float) -> bool:
        self._check_latitude(latitude)
        self._ensure_connected()
        try:
            added = await self._redis.geoadd(self._key, longitude, latitude, agent_id)
        except (RedisError, OSError) as e:
            raise IndexUnavailable(f"GEOADD failed: {e}") from e
        return bool(added)

    async def remove(self, agent_id: str) -> bool:
        self._ensure_connected()
        try:
            removed = await self._redis.georem(self._key, agent_id)
        except (RedisError, OSError) as e:
            raise IndexUnavailable(f"ZREM failed: {e}") from e
        return bool(removed)

    async def position(self, agent_id: str) -> tuple[float, float] | None:
        self._ensure_connected()
        try:
            point = await self._redis.geopos(self._key, agent_id)
        except (RedisError, OSError) as e:
            raise IndexUnavailable(f"GEOPOS failed: {e}") from e
        if point is None:
            return None
        lon, lat = point
        return lat, lon

    async def radius_query(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        limit: int,
    ) -> list[IndexHit]:
        self._check_latitude(center_lat)
        self._ensure_connected()
        try:
            rows = await self._redis.georadius(
                self._key,
                longitude=center_lon,
                latitude=center_lat,
                radius=radius_km,
                unit="km",
                count=limit,
                sort="ASC",
            )
        except (RedisError, OSError) as e:
            raise IndexUnavailable(f"GEORADIUS failed: {e}") from e

        return [
            IndexHit(agent_id=member, latitude=lat, longitude=lon, distance_km=distance)
            for member, distance, lon, lat in rows
        ]

    async def ping(self) -> bool:
        if not self._redis.is_connected:
            return False
        return await self._redis.health_check()


class InMemoryGeoIndex(GeoIndex):
    """
    Индекс в памяти процесса.
    Радиусный запрос - полный перебор с haversine.
    """

    def __init__(self) -> None:
        self._positions: dict[str, tuple[float, float]] = {}

    def __len__(self) -> int:
        return len(self._positions)

    async def upsert(self, agent_id: str, latitude: float, longitude: float) -> bool:
        created = agent_id not in self._positions
        self._positions[agent_id] = (latitude, longitude)
        return created

    async def remove(self, agent_id: str) -> bool:
        return self._positions.pop(agent_id, None) is not None

    async def position(self, agent_id: str) -> tuple[float, float] | None:
        return self._positions.get(agent_id)

    async def radius_query(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        limit: int,
    ) -> list[IndexHit]:
        hits = []
        for agent_id, (lat, lon) in self._positions.items():
            distance = haversine_km(center_lat, center_lon, lat, lon)
            if distance <= radius_km:
                hits.append(IndexHit(agent_id, lat, lon, distance))

        hits.sort(key=lambda hit: (hit.distance_km, hit.agent_id))
        return hits[:limit]
