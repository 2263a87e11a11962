# src/core/locations/search.py
"""
Поиск ближайших водителей с расширяющимся радиусом.

Радиусы лестницы опрашиваются по возрастанию, пока не набрано
target_count водителей или не превышен max_radius_km.
Водитель, найденный на меньшем ярусе, остаётся на своём месте:
результат отсортирован по расстоянию внутри яруса, а ярусы идут
в порядке лестницы (это не глобальная сортировка по расстоянию).
"""

from __future__ import annotations

import asyncio

from src.common.logger import log_debug, log_warning
from src.core.locations.exceptions import IndexUnavailable
from src.core.locations.index import GeoIndex
from src.core.locations.models import IndexHit, ProximityCandidate, SearchResult, SearchSpec


async def _query_tier(
    index: GeoIndex,
    spec: SearchSpec,
    radius_km: float,
    timeout: float | None,
) -> list[IndexHit]:
    """Один радиусный запрос к индексу с таймаутом."""
    query = index.radius_query(spec.center_lat, spec.center_lon, radius_km, spec.fetch_limit)
    if timeout is None:
        return await query
    return await asyncio.wait_for(query, timeout=timeout)


async def search(
    index: GeoIndex,
    spec: SearchSpec,
    *,
    tier_timeout: float | None = None,
    deadline: float | None = None,
) -> SearchResult:
    """
    Ищет до spec.target_count водителей вокруг точки.

    Сбой индекса на ярусе (IndexUnavailable или таймаут) не прерывает поиск:
    ярус считается пустым. Если упали все опрошенные ярусы, возвращается
    пустой результат с all_tiers_failed=True.
    Истёкший дедлайн сбоем не считается: поиск завершается с тем,
    что уже найдено.

    Args:
        index: GEO-индекс (только чтение)
        spec: Параметры поиска
        tier_timeout: Таймаут одного запроса к индексу, сек
        deadline: Бюджет на весь поиск, сек; проверяется перед каждым ярусом

    Returns:
        SearchResult с кандидатами и счётчиками ярусов
    """
    loop = asyncio.get_running_loop()
    expires_at = loop.time() + deadline if deadline is not None else None

    result = SearchResult()
    seen: set[str] = set()

    for radius in spec.radii:
        if radius > spec.max_radius_km:
            break

        if len(result.candidates) >= spec.target_count:
            break

        timeout = tier_timeout
        cut_by_deadline = False
        if expires_at is not None:
            remaining = expires_at - loop.time()
            if remaining <= 0:
                await log_warning(
                    f"Дедлайн поиска истёк перед ярусом {radius} км, "
                    f"найдено {len(result.candidates)}"
                )
                break
            if timeout is None or remaining < timeout:
                timeout = remaining
                cut_by_deadline = True

        try:
            hits = await _query_tier(index, spec, radius, timeout)
        except (IndexUnavailable, asyncio.TimeoutError) as e:
            if cut_by_deadline and isinstance(e, asyncio.TimeoutError):
                await log_warning(
                    f"Дедлайн поиска истёк на ярусе {radius} км, "
                    f"найдено {len(result.candidates)}"
                )
                break
            result.tiers_probed += 1
            result.tiers_failed += 1
            await log_warning(f"Ярус {radius} км пропущен, индекс не ответил: {e!r}")
            continue

        result.tiers_probed += 1
        accepted = 0
        for hit in hits:
            if hit.agent_id in seen:
                continue

            # Сравниваем неокруглённое расстояние
            if hit.distance_km > radius:
                await log_warning(
                    f"Индекс вернул {hit.agent_id} на {hit.distance_km} км "
                    f"для радиуса {radius} км, кандидат отброшен"
                )
                continue

            result.candidates.append(ProximityCandidate(
                agent_id=hit.agent_id,
                latitude=hit.latitude,
                longitude=hit.longitude,
                distance_km=round(hit.distance_km, 2),
            ))
            seen.add(hit.agent_id)
            accepted += 1

            if len(result.candidates) == spec.target_count:
                break

        await log_debug(
            f"Ярус {radius} км: получено {len(hits)}, принято {accepted}, "
            f"всего {len(result.candidates)}/{spec.target_count}"
        )

    return result
