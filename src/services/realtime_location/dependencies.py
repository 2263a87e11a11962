# src/services/realtime_location/dependencies.py
"""
Сборка зависимостей сервиса геолокации.
"""

from __future__ import annotations

from src.common.constants import IndexBackend, TypeMsg
from src.common.logger import log_info
from src.core.locations import DriverLocationService, GeoIndex, InMemoryGeoIndex, RedisGeoIndex
from src.infra.redis_client import close_redis, init_redis

_service: DriverLocationService | None = None


async def create_index(backend: str) -> GeoIndex:
    """
    Создаёт GEO-индекс указанного типа.

    Для redis поднимает подключение из конфига.
    """
    if backend == IndexBackend.MEMORY:
        await log_info("GEO-индекс: in-memory (данные не переживут рестарт)", type_msg=TypeMsg.WARNING)
        return InMemoryGeoIndex()

    redis_client = await init_redis()
    return RedisGeoIndex(redis_client)


async def init_location_service() -> DriverLocationService:
    """Создаёт сервис геолокации по настройкам."""
    global _service

    from src.config import settings

    index = await create_index(settings.search.LOCATION_INDEX_BACKEND)
    _service = DriverLocationService(index)
    return _service


async def close_location_service() -> None:
    """Освобождает ресурсы сервиса."""
    global _service

    if _service is not None and isinstance(_service.index, RedisGeoIndex):
        await close_redis()
    _service = None


def get_location_service() -> DriverLocationService:
    """Зависимость FastAPI: текущий сервис геолокации."""
    if _service is None:
        raise RuntimeError("Service not initialized")
    return _service
