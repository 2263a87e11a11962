# src/core/locations/service.py
"""
Сервис геолокации водителей.
Валидирует вход и делегирует работу GEO-индексу и поиску ближайших.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Awaitable, Sequence, TypeVar

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.locations.exceptions import DriverNotFound, IndexUnavailable, InvalidRadius
from src.core.locations.index import GeoIndex
from src.core.locations.models import AgentPosition, ProximityCandidate, SearchSpec
from src.core.locations.search import search
from src.core.locations.validation import validate_agent_id, validate_coordinates

T = TypeVar("T")


class DriverLocationService:
    """
    Фасад над GEO-индексом.

    Реализует:
    - Сохранение/обновление позиции водителя
    - Поиск ближайших водителей (расширяющийся радиус)
    - Получение позиции водителя
    - Удаление водителя из индекса (идемпотентно)

    Некорректный вход отклоняется до любого обращения к индексу.
    Ошибки индекса на записи пробрасываются сразу, без повторов.
    """

    def __init__(
        self,
        index: GeoIndex,
        *,
        radius_ladder: Sequence[float] | None = None,
        required_count: int | None = None,
        max_radius_km: float | None = None,
        id_min_length: int | None = None,
        id_max_length: int | None = None,
        call_timeout: float | None = None,
        search_deadline: float | None = None,
    ) -> None:
        """
        Инициализация сервиса.

        Не переданные параметры берутся из конфига.

        Args:
            index: GEO-индекс
            radius_ladder: Лестница радиусов поиска, км
            required_count: Сколько водителей искать
            max_radius_km: Максимальный радиус поиска, км
            id_min_length: Минимальная длина ID водителя
            id_max_length: Максимальная длина ID водителя
            call_timeout: Таймаут одного обращения к индексу, сек
            search_deadline: Бюджет на весь поиск ближайших, сек
        """
        if None in (radius_ladder, required_count, max_radius_km, id_min_length,
                    id_max_length, call_timeout, search_deadline):
            from src.config import settings
            radius_ladder = radius_ladder if radius_ladder is not None else settings.search.SEARCH_RADIUS_LADDER_KM
            required_count = required_count if required_count is not None else settings.search.REQUIRED_DRIVER_COUNT
            max_radius_km = max_radius_km if max_radius_km is not None else settings.search.MAX_SEARCH_RADIUS_KM
            id_min_length = id_min_length if id_min_length is not None else settings.search.DRIVER_ID_MIN_LENGTH
            id_max_length = id_max_length if id_max_length is not None else settings.search.DRIVER_ID_MAX_LENGTH
            call_timeout = call_timeout if call_timeout is not None else settings.timeouts.INDEX_CALL_TIMEOUT
            search_deadline = search_deadline if search_deadline is not None else settings.timeouts.NEARBY_SEARCH_DEADLINE

        self._index = index
        self._radius_ladder = tuple(float(r) for r in radius_ladder)
        self._required_count = required_count
        self._max_radius_km = max_radius_km
        self._id_min_length = id_min_length
        self._id_max_length = id_max_length
        self._call_timeout = call_timeout
        self._search_deadline = search_deadline

    @property
    def index(self) -> GeoIndex:
        """GEO-индекс сервиса."""
        return self._index

    async def _call(self, action: str, call: Awaitable[T], timeout: float | None) -> T:
        """
        Выполняет обращение к индексу на пути записи/точечного чтения.

        Таймаут превращается в IndexUnavailable; ошибка логируется
        и пробрасывается вызывающему.
        """
        if timeout is None:
            timeout = self._call_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            await log_error(f"Таймаут индекса: {action}")
            raise IndexUnavailable(f"Index timed out: {action}") from e
        except IndexUnavailable as e:
            await log_error(f"Индекс недоступен: {action}: {e}", exc_info=True)
            raise

    async def upsert(
        self,
        agent_id: str,
        latitude: float,
        longitude: float,
        *,
        timeout: float | None = None,
    ) -> bool:
        """
        Сохраняет или обновляет позицию водителя.

        Args:
            agent_id: ID водителя
            latitude: Широта
            longitude: Долгота
            timeout: Таймаут обращения к индексу, сек

        Returns:
            True если водитель добавлен впервые, False если позиция обновлена

        Raises:
            InvalidIdentifier, InvalidCoordinate, IndexUnavailable
        """
        validate_agent_id(agent_id, self._id_min_length, self._id_max_length)
        validate_coordinates(latitude, longitude)

        created = await self._call(
            f"upsert {agent_id}",
            self._index.upsert(agent_id, float(latitude), float(longitude)),
            timeout,
        )

        if created:
            await log_info(f"Позиция водителя сохранена: driver_id={agent_id}, lat={latitude}, lon={longitude}")
        else:
            await log_info(f"Позиция водителя обновлена: driver_id={agent_id}, lat={latitude}, lon={longitude}")

        return created

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        max_radius_km: float | None = None,
        *,
        timeout: float | None = None,
        deadline: float | None = None,
    ) -> list[ProximityCandidate]:
        """
        Ищет ближайших водителей.

        Args:
            latitude: Широта точки поиска
            longitude: Долгота точки поиска
            max_radius_km: Максимальный радиус вместо значения из конфига
            timeout: Таймаут одного яруса, сек
            deadline: Бюджет на весь поиск, сек

        Returns:
            До required_count водителей; пустой список, если никого нет

        Raises:
            InvalidCoordinate, InvalidRadius
            IndexUnavailable: индекс не ответил ни на одном ярусе
        """
        validate_coordinates(latitude, longitude)

        if max_radius_km is not None:
            self._check_radius(max_radius_km)

        spec = SearchSpec(
            center_lat=float(latitude),
            center_lon=float(longitude),
            radii=self._radius_ladder,
            max_radius_km=float(max_radius_km) if max_radius_km is not None else self._max_radius_km,
            target_count=self._required_count,
        )

        result = await search(
            self._index,
            spec,
            tier_timeout=timeout if timeout is not None else self._call_timeout,
            deadline=deadline if deadline is not None else self._search_deadline,
        )

        if result.all_tiers_failed:
            await log_error(
                f"Поиск ближайших водителей не удался: все {result.tiers_probed} ярусов упали "
                f"(lat={latitude}, lon={longitude})"
            )
            raise IndexUnavailable("Failed to retrieve nearby drivers")

        await log_info(
            f"Найдено {len(result.candidates)} водителей рядом с lat={latitude}, lon={longitude}",
            type_msg=TypeMsg.INFO,
        )
        return result.candidates

    async def get_one(self, agent_id: str, *, timeout: float | None = None) -> AgentPosition:
        """
        Возвращает текущую позицию водителя.

        Raises:
            InvalidIdentifier
            DriverNotFound: у водителя нет позиции
            IndexUnavailable
        """
        validate_agent_id(agent_id)

        point = await self._call(f"position {agent_id}", self._index.position(agent_id), timeout)
        if point is None:
            raise DriverNotFound(agent_id)

        latitude, longitude = point
        return AgentPosition(agent_id=agent_id, latitude=latitude, longitude=longitude)

    async def delete_one(self, agent_id: str, *, timeout: float | None = None) -> bool:
        """
        Удаляет водителя из индекса.
        Отсутствие позиции - не ошибка.

        Returns:
            True если позиция была удалена
        """
        validate_agent_id(agent_id)

        removed = await self._call(f"remove {agent_id}", self._index.remove(agent_id), timeout)

        if removed:
            await log_info(f"Позиция водителя удалена: driver_id={agent_id}")
        else:
            await log_info(
                f"Позиция для удаления не найдена: driver_id={agent_id}",
                type_msg=TypeMsg.WARNING,
            )
        return removed

    @staticmethod
    def _check_radius(value: Any) -> None:
        """Радиус поиска - положительное конечное число."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidRadius("max_radius_km must be a number")
        if math.isnan(value) or math.isinf(value) or value <= 0:
            raise InvalidRadius("max_radius_km must be greater than 0")
