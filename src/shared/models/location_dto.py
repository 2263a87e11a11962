# src/shared/models/location_dto.py
"""
DTO эндпоинтов геолокации водителей.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.core.locations.models import AgentPosition, ProximityCandidate


class SaveDriverLocationRequest(BaseModel):
    """Запрос на сохранение позиции водителя."""
    driver_id: str = Field(
        ...,
        min_length=1,
        description="Уникальный ID водителя (границы длины проверяет сервис)",
        examples=["DRV-12345"],
    )
    latitude: float = Field(..., ge=-90, le=90, examples=[28.6139])
    longitude: float = Field(..., ge=-180, le=180, examples=[77.2090])


class NearbyDriversRequest(BaseModel):
    """Запрос на поиск ближайших водителей."""
    latitude: float = Field(..., ge=-90, le=90, examples=[28.6139])
    longitude: float = Field(..., ge=-180, le=180, examples=[77.2090])
    max_radius_km: float | None = Field(
        default=None,
        gt=0,
        description="Максимальный радиус поиска, км (по умолчанию из конфига)",
        examples=[10.0],
    )


class DriverLocationDTO(BaseModel):
    """Позиция водителя в ответе API."""
    driver_id: str
    latitude: float
    longitude: float
    distance_km: float | None = None

    @classmethod
    def from_position(cls, position: AgentPosition) -> "DriverLocationDTO":
        return cls(
            driver_id=position.agent_id,
            latitude=position.latitude,
            longitude=position.longitude,
        )

    @classmethod
    def from_candidate(cls, candidate: ProximityCandidate) -> "DriverLocationDTO":
        return cls(
            driver_id=candidate.agent_id,
            latitude=candidate.latitude,
            longitude=candidate.longitude,
            distance_km=candidate.distance_km,
        )
