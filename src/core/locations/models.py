# src/core/locations/models.py
"""
Модели данных геолокации водителей.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AgentPosition:
    """Текущая позиция водителя (одна запись на driver_id)."""
    agent_id: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class IndexHit:
    """Строка ответа радиусного запроса к индексу (расстояние не округлено)."""
    agent_id: str
    latitude: float
    longitude: float
    distance_km: float


@dataclass(frozen=True)
class ProximityCandidate:
    """Водитель, принятый поиском ближайших."""
    agent_id: str
    latitude: float
    longitude: float
    distance_km: float  # округлено до 0.01 км


@dataclass(frozen=True)
class SearchSpec:
    """
    Параметры расширяющегося поиска.

    radii - лестница радиусов (км), перебирается по возрастанию.
    Радиусы больше max_radius_km не запрашиваются.
    """
    center_lat: float
    center_lon: float
    radii: tuple[float, ...]
    max_radius_km: float
    target_count: int

    def __post_init__(self) -> None:
        if self.target_count <= 0:
            raise ValueError("target_count должен быть больше нуля")
        if not self.radii:
            raise ValueError("Лестница радиусов пуста")
        if any(r <= 0 for r in self.radii):
            raise ValueError("Все радиусы должны быть больше нуля")
        if any(round(r, 2) != r for r in self.radii):
            raise ValueError("Радиусы задаются с точностью до 0.01 км")
        if any(b <= a for a, b in zip(self.radii, self.radii[1:])):
            raise ValueError("Радиусы должны строго возрастать")

    @property
    def fetch_limit(self) -> int:
        """Сколько кандидатов запрашивать на ярус (с запасом под дубликаты)."""
        return self.target_count * 2


@dataclass
class SearchResult:
    """Результат поиска ближайших водителей."""
    candidates: list[ProximityCandidate] = field(default_factory=list)
    tiers_probed: int = 0
    tiers_failed: int = 0

    @property
    def all_tiers_failed(self) -> bool:
        """Индекс не ответил ни на одном из опрошенных ярусов."""
        return self.tiers_probed > 0 and self.tiers_failed == self.tiers_probed
