# tests/core/test_locations_search.py
"""
Тесты поиска ближайших водителей с расширяющимся радиусом.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from src.core.locations.index import GeoIndex, InMemoryGeoIndex
from src.core.locations.models import IndexHit, SearchSpec
from src.core.locations.search import search


def hit(agent_id: str, distance_km: float) -> IndexHit:
    """Строка ответа индекса; координаты поиску не важны."""
    return IndexHit(agent_id, 28.6, 77.2, distance_km)


@pytest.fixture
def make_spec(
    search_center: tuple[float, float],
    radius_ladder: tuple[float, ...],
) -> Callable[..., SearchSpec]:
    def _make(target_count: int = 3, max_radius_km: float = 15.0) -> SearchSpec:
        lat, lon = search_center
        return SearchSpec(
            center_lat=lat,
            center_lon=lon,
            radii=radius_ladder,
            max_radius_km=max_radius_km,
            target_count=target_count,
        )
    return _make


class TestExpandingSearch:
    """Поиск по реальному in-memory индексу."""

    @pytest.mark.asyncio
    async def test_stops_when_target_reached(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """A(0), B(3), C(6) находятся на ярусах 2/5/7 км; ярусы 10 и 15 не запрашиваются."""
        await recording_index.seed(drivers_on_meridian)

        result = await search(recording_index, make_spec(target_count=3))

        assert [c.agent_id for c in result.candidates] == ["DRV-A", "DRV-B", "DRV-C"]
        assert [c.distance_km for c in result.candidates] == [0.0, 3.0, 6.0]
        assert recording_index.queried_radii == [2.0, 5.0, 7.0]
        assert result.tiers_probed == 3
        assert result.tiers_failed == 0

    @pytest.mark.asyncio
    async def test_returns_all_when_fewer_than_target(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
        radius_ladder: tuple[float, ...],
    ) -> None:
        """Если водителей меньше target_count, возвращаются все и лестница исчерпывается."""
        await recording_index.seed(drivers_on_meridian)

        result = await search(recording_index, make_spec(target_count=10))

        assert [c.agent_id for c in result.candidates] == ["DRV-A", "DRV-B", "DRV-C", "DRV-D"]
        assert recording_index.queried_radii == list(radius_ladder)
        assert not result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_radii_above_max_are_skipped(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Радиусы больше max_radius_km не запрашиваются, D(12 км) не найден."""
        await recording_index.seed(drivers_on_meridian)

        result = await search(recording_index, make_spec(target_count=10, max_radius_km=7.0))

        assert recording_index.queried_radii == [2.0, 5.0, 7.0]
        assert "DRV-D" not in [c.agent_id for c in result.candidates]

    @pytest.mark.asyncio
    async def test_max_below_first_radius_probes_nothing(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """max_radius_km меньше первого радиуса: ни одного запроса, пустой успешный результат."""
        await recording_index.seed(drivers_on_meridian)

        result = await search(recording_index, make_spec(max_radius_km=1.0))

        assert result.candidates == []
        assert result.tiers_probed == 0
        assert not result.all_tiers_failed
        assert recording_index.queried_radii == []

    @pytest.mark.asyncio
    async def test_empty_index(
        self,
        recording_index: InMemoryGeoIndex,
        make_spec: Callable[..., SearchSpec],
        radius_ladder: tuple[float, ...],
    ) -> None:
        """Пустой индекс - пустой список, не ошибка."""
        result = await search(recording_index, make_spec())

        assert result.candidates == []
        assert result.tiers_probed == len(radius_ladder)
        assert not result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_overfetch_limit_is_twice_target(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Каждый ярус запрашивается с лимитом 2 * target_count."""
        index = scripted_index({})

        await search(index, make_spec(target_count=4))

        assert {limit for _, limit in index.queries} == {8}

    @pytest.mark.asyncio
    async def test_stops_inside_tier_at_target(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Ярус обрабатывается только до набора target_count."""
        index = scripted_index({2.0: [hit(f"DRV-{i}", i * 0.1) for i in range(6)]})

        result = await search(index, make_spec(target_count=2))

        assert [c.agent_id for c in result.candidates] == ["DRV-0", "DRV-1"]
        assert index.queries == [(2.0, 4)]


class TestTieredOrdering:
    """Порядок ярусов и дедупликация."""

    @pytest.mark.asyncio
    async def test_earlier_tier_precedes_closer_later_hit(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Водитель из большего яруса идёт после меньшего, даже если он ближе."""
        index = scripted_index({
            2.0: [hit("DRV-X", 1.5)],
            5.0: [hit("DRV-Y", 0.5), hit("DRV-X", 1.5), hit("DRV-Z", 4.0)],
        })

        result = await search(index, make_spec(target_count=3))

        assert [c.agent_id for c in result.candidates] == ["DRV-X", "DRV-Y", "DRV-Z"]
        assert [c.distance_km for c in result.candidates] == [1.5, 0.5, 4.0]

    @pytest.mark.asyncio
    async def test_first_tier_distance_is_kept(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Водитель, найденный на меньшем ярусе, не переоценивается на большем."""
        index = scripted_index({
            2.0: [hit("DRV-X", 1.9)],
            5.0: [hit("DRV-X", 0.2)],
        })

        result = await search(index, make_spec(target_count=3))

        assert len(result.candidates) == 1
        assert result.candidates[0].distance_km == 1.9

    @pytest.mark.asyncio
    async def test_no_duplicates_and_bounded(
        self,
        recording_index: InMemoryGeoIndex,
        north_of_center: Callable[[float], tuple[float, float]],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Результат без повторов ID и не длиннее target_count."""
        await recording_index.seed({f"DRV-{i:02d}": north_of_center(0.5 * i) for i in range(20)})

        result = await search(recording_index, make_spec(target_count=7))
        ids = [c.agent_id for c in result.candidates]

        assert len(ids) == 7
        assert len(set(ids)) == len(ids)

    @pytest.mark.asyncio
    async def test_tier_with_only_duplicates_advances(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Ярус, давший только уже найденных водителей, просто пропускается."""
        a = hit("DRV-A", 1.0)
        index = scripted_index({
            2.0: [a],
            5.0: [a],
            7.0: [a, hit("DRV-C", 6.5)],
        })

        result = await search(index, make_spec(target_count=2))

        assert [c.agent_id for c in result.candidates] == ["DRV-A", "DRV-C"]
        assert [r for r, _ in index.queries] == [2.0, 5.0, 7.0]


class TestDistancePolicy:
    """Проверка расстояний относительно радиуса яруса."""

    @pytest.mark.asyncio
    async def test_hit_beyond_radius_is_dropped(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Расстояние больше радиуса считается несогласованностью и отбрасывается."""
        index = scripted_index({2.0: [hit("DRV-OK", 1.0), hit("DRV-BAD", 3.2)]})

        result = await search(index, make_spec(target_count=5, max_radius_km=2.0))

        assert [c.agent_id for c in result.candidates] == ["DRV-OK"]

    @pytest.mark.asyncio
    async def test_bound_uses_unrounded_distance(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """2.004 км округляется до 2.0, но для радиуса 2 км кандидат отброшен."""
        index = scripted_index({
            2.0: [hit("DRV-EDGE", 2.004)],
            5.0: [hit("DRV-EDGE", 2.004)],
        })

        result = await search(index, make_spec(target_count=5, max_radius_km=5.0))

        assert len(result.candidates) == 1
        assert result.candidates[0].distance_km == 2.0
        # Принят только на втором ярусе
        assert [r for r, _ in index.queries] == [2.0, 5.0]

    @pytest.mark.asyncio
    async def test_distance_rounded_to_two_decimals(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """В ответе расстояние округлено до сотых."""
        index = scripted_index({2.0: [hit("DRV-R", 1.23456)]})

        result = await search(index, make_spec(target_count=1))

        assert result.candidates[0].distance_km == 1.23

    @pytest.mark.asyncio
    async def test_distance_never_exceeds_accepting_tier(
        self,
        scripted_index: Callable[..., GeoIndex],
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Округлённое расстояние не превышает радиус яруса, на котором водитель принят."""
        responses = {
            2.0: [hit("DRV-X", 1.996), hit("DRV-Y", 2.004)],
            5.0: [hit("DRV-X", 1.996), hit("DRV-Y", 2.004), hit("DRV-Z", 4.999)],
            7.0: [hit("DRV-W", 6.9949), hit("DRV-V", 7.001)],
            10.0: [hit("DRV-V", 7.001), hit("DRV-U", 9.9951)],
        }
        index = scripted_index(responses)

        result = await search(index, make_spec(target_count=10, max_radius_km=10.0))

        accepted_at = {}
        for radius, hits in sorted(responses.items()):
            for h in hits:
                if h.distance_km <= radius:
                    accepted_at.setdefault(h.agent_id, radius)

        assert [c.agent_id for c in result.candidates] == [
            "DRV-X", "DRV-Y", "DRV-Z", "DRV-W", "DRV-V", "DRV-U",
        ]
        assert accepted_at == {
            "DRV-X": 2.0, "DRV-Y": 5.0, "DRV-Z": 5.0, "DRV-W": 7.0, "DRV-V": 10.0, "DRV-U": 10.0,
        }
        for candidate in result.candidates:
            assert candidate.distance_km <= accepted_at[candidate.agent_id]


class TestTierFailures:
    """Сбои индекса на ярусах."""

    @pytest.mark.asyncio
    async def test_failed_tier_is_treated_as_empty(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Упавший ярус пропускается, поиск продолжается."""
        await recording_index.seed(drivers_on_meridian)
        recording_index.failing_radii = {2.0}

        result = await search(recording_index, make_spec(target_count=2))

        # A найден только на ярусе 5 км
        assert [c.agent_id for c in result.candidates] == ["DRV-A", "DRV-B"]
        assert result.tiers_failed == 1
        assert not result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_all_tiers_failed(
        self,
        recording_index: InMemoryGeoIndex,
        make_spec: Callable[..., SearchSpec],
        radius_ladder: tuple[float, ...],
    ) -> None:
        """Если упали все ярусы - пустой результат с флагом, без исключения."""
        recording_index.failing_radii = set(radius_ladder)

        result = await search(recording_index, make_spec())

        assert result.candidates == []
        assert result.tiers_probed == len(radius_ladder)
        assert result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_tier_timeout_is_a_failure(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Таймаут яруса приравнивается к сбою."""
        await recording_index.seed(drivers_on_meridian)
        recording_index.slow_radii = {2.0}

        result = await search(recording_index, make_spec(target_count=1), tier_timeout=0.05)

        assert [c.agent_id for c in result.candidates] == ["DRV-A"]
        assert result.tiers_failed == 1

    @pytest.mark.asyncio
    async def test_deadline_abandons_remaining_tiers(
        self,
        recording_index: InMemoryGeoIndex,
        drivers_on_meridian: dict,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Дедлайн обрывает поиск, найденное ранее сохраняется."""
        await recording_index.seed(drivers_on_meridian)
        recording_index.slow_radii = {5.0, 7.0, 10.0, 15.0}

        result = await search(recording_index, make_spec(target_count=3), deadline=0.1)

        assert [c.agent_id for c in result.candidates] == ["DRV-A"]
        assert recording_index.queried_radii == [2.0, 5.0]
        # Оборванный дедлайном ярус не считается упавшим
        assert result.tiers_probed == 1
        assert result.tiers_failed == 0

    @pytest.mark.asyncio
    async def test_deadline_during_first_tier_is_not_a_failure(
        self,
        recording_index: InMemoryGeoIndex,
        make_spec: Callable[..., SearchSpec],
        radius_ladder: tuple[float, ...],
    ) -> None:
        """Дедлайн короче таймаута яруса: поиск заканчивается пустым, а не сбоем."""
        recording_index.slow_radii = set(radius_ladder)

        result = await search(recording_index, make_spec(), tier_timeout=5.0, deadline=0.05)

        assert result.candidates == []
        assert recording_index.queried_radii == [2.0]
        assert result.tiers_probed == 0
        assert not result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_tier_timeout_shorter_than_deadline_is_a_failure(
        self,
        recording_index: InMemoryGeoIndex,
        make_spec: Callable[..., SearchSpec],
        radius_ladder: tuple[float, ...],
    ) -> None:
        """Если раньше истекает таймаут яруса, ярус считается упавшим."""
        recording_index.slow_radii = set(radius_ladder)

        result = await search(
            recording_index, make_spec(max_radius_km=2.0), tier_timeout=0.05, deadline=5.0,
        )

        assert result.tiers_probed == 1
        assert result.all_tiers_failed

    @pytest.mark.asyncio
    async def test_zero_deadline_probes_nothing(
        self,
        recording_index: InMemoryGeoIndex,
        make_spec: Callable[..., SearchSpec],
    ) -> None:
        """Нулевой бюджет: ни одного запроса к индексу."""
        result = await search(recording_index, make_spec(), deadline=0)

        assert result.tiers_probed == 0
        assert recording_index.queried_radii == []
