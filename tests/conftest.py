# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import json
import math
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("LOCATION_INDEX_BACKEND", "memory")

from src.core.locations.distance import EARTH_RADIUS_KM
from src.core.locations.exceptions import IndexUnavailable
from src.core.locations.index import GeoIndex, InMemoryGeoIndex
from src.core.locations.models import IndexHit
from src.core.locations.service import DriverLocationService
from src.infra.redis_client import RedisClient


# Точка поиска (Нью-Дели)
CENTER_LAT = 28.6139
CENTER_LON = 77.2090
LADDER = (2.0, 5.0, 7.0, 10.0, 15.0)


def point_north(km: float) -> tuple[float, float]:
    """Точка на km километров к северу от центра по меридиану."""
    return CENTER_LAT + math.degrees(km / EARTH_RADIUS_KM), CENTER_LON


# =============================================================================
# ТЕСТОВЫЕ ДВОЙНИКИ ИНДЕКСА
# =============================================================================

class RecordingIndex(InMemoryGeoIndex):
    """
    In-memory индекс, который считает вызовы и умеет падать.

    failing_radii - радиусы, на которых radius_query выбрасывает IndexUnavailable.
    slow_radii - радиусы, на которых radius_query «зависает» на delay секунд.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, Any]] = []
        self.failing_radii: set[float] = set()
        self.slow_radii: set[float] = set()
        self.delay = 1.0
        self.fail_writes = False

    @property
    def queried_radii(self) -> list[float]:
        return [args for name, args in self.calls if name == "radius_query"]

    async def seed(self, drivers: dict[str, tuple[float, float]]) -> None:
        """Заполняет индекс без записи в calls."""
        for agent_id, (lat, lon) in drivers.items():
            await super().upsert(agent_id, lat, lon)

    async def upsert(self, agent_id: str, latitude: float, longitude: float) -> bool:
        self.calls.append(("upsert", agent_id))
        if self.fail_writes:
            raise IndexUnavailable("store is down")
        return await super().upsert(agent_id, latitude, longitude)

    async def remove(self, agent_id: str) -> bool:
        self.calls.append(("remove", agent_id))
        if self.fail_writes:
            raise IndexUnavailable("store is down")
        return await super().remove(agent_id)

    async def position(self, agent_id: str) -> tuple[float, float] | None:
        self.calls.append(("position", agent_id))
        return await super().position(agent_id)

    async def radius_query(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        limit: int,
    ) -> list[IndexHit]:
        self.calls.append(("radius_query", radius_km))
        if radius_km in self.failing_radii:
            raise IndexUnavailable(f"radius {radius_km} failed")
        if radius_km in self.slow_radii:
            await asyncio.sleep(self.delay)
        return await super().radius_query(center_lat, center_lon, radius_km, limit)


class ScriptedIndex(GeoIndex):
    """Индекс, который на radius_query возвращает заранее заданные ответы по радиусу."""

    def __init__(self, responses: dict[float, list[IndexHit]]) -> None:
        self.responses = responses
        self.queries: list[tuple[float, int]] = []

    async def upsert(self, agent_id: str, latitude: float, longitude: float) -> bool:
        raise AssertionError("search must not write")

    async def remove(self, agent_id: str) -> bool:
        raise AssertionError("search must not write")

    async def position(self, agent_id: str) -> tuple[float, float] | None:
        return None

    async def radius_query(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        limit: int,
    ) -> list[IndexHit]:
        self.queries.append((radius_km, limit))
        return self.responses.get(radius_km, [])[:limit]


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "comment",
        "PROJECT_NAME": "driver_location_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "LOCATION_SERVICE_HOST": "127.0.0.1",
        "LOCATION_SERVICE_PORT": 9090,
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "json",
        "LOG_MAX_BYTES": 1024,
        "REDIS_HOST": "redis.test",
        "REDIS_PORT": 6380,
        "REDIS_DB": 2,
        "REDIS_PASSWORD": "",
        "REDIS_NAMESPACE": "location_test",
        "REDIS_MAX_CONNECTIONS": 10,
        "LOCATION_INDEX_BACKEND": "memory",
        "REQUIRED_DRIVER_COUNT": 3,
        "MAX_SEARCH_RADIUS_KM": 10.0,
        "SEARCH_RADIUS_LADDER_KM": [1.0, 3.0, 10.0],
        "DRIVER_ID_MIN_LENGTH": 2,
        "DRIVER_ID_MAX_LENGTH": 20,
        "INDEX_CALL_TIMEOUT": 0.5,
        "NEARBY_SEARCH_DEADLINE": 1.5,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_redis() -> MagicMock:
    """Мок клиента Redis (подключён)."""
    redis = MagicMock(spec=RedisClient)
    redis.is_connected = True
    redis.geoadd = AsyncMock(return_value=1)
    redis.geopos = AsyncMock(return_value=None)
    redis.georadius = AsyncMock(return_value=[])
    redis.georem = AsyncMock(return_value=1)
    redis.health_check = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def memory_index() -> InMemoryGeoIndex:
    """Пустой in-memory индекс."""
    return InMemoryGeoIndex()


@pytest.fixture
def recording_index() -> RecordingIndex:
    """Индекс со счётчиком вызовов и внедрением сбоев."""
    return RecordingIndex()


def _make_service(index: GeoIndex, **overrides: Any) -> DriverLocationService:
    params: dict[str, Any] = {
        "radius_ladder": LADDER,
        "required_count": 5,
        "max_radius_km": 15.0,
        "id_min_length": 3,
        "id_max_length": 50,
        "call_timeout": 0.5,
        "search_deadline": 2.0,
    }
    params.update(overrides)
    return DriverLocationService(index, **params)


@pytest.fixture
def service_factory() -> Callable[..., DriverLocationService]:
    """Фабрика сервиса с явными параметрами (без чтения конфига)."""
    return _make_service


@pytest.fixture
def location_service(recording_index: RecordingIndex) -> DriverLocationService:
    """Сервис геолокации поверх RecordingIndex."""
    return _make_service(recording_index)


@pytest.fixture
def scripted_index() -> Callable[[dict[float, list[IndexHit]]], ScriptedIndex]:
    """Фабрика индекса с заранее заданными ответами по радиусу."""
    return ScriptedIndex


# =============================================================================
# ФИКСТУРЫ ГЕОМЕТРИИ ПОИСКА
# =============================================================================

@pytest.fixture
def search_center() -> tuple[float, float]:
    """Точка поиска (lat, lon)."""
    return CENTER_LAT, CENTER_LON


@pytest.fixture
def radius_ladder() -> tuple[float, ...]:
    """Лестница радиусов, с которой собирается тестовый сервис."""
    return LADDER


@pytest.fixture
def north_of_center() -> Callable[[float], tuple[float, float]]:
    """Точка на заданное число километров к северу от точки поиска."""
    return point_north


@pytest.fixture
def drivers_on_meridian() -> dict[str, tuple[float, float]]:
    """Водители A(0 км), B(3 км), C(6 км), D(12 км) к северу от центра."""
    return {
        "DRV-A": point_north(0.0),
        "DRV-B": point_north(3.0),
        "DRV-C": point_north(6.0),
        "DRV-D": point_north(12.0),
    }
