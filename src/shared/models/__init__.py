# src/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели API.
"""

from src.shared.models.common import ApiResponse, HealthStatus
from src.shared.models.location_dto import (
    SaveDriverLocationRequest,
    NearbyDriversRequest,
    DriverLocationDTO,
)

__all__ = [
    "ApiResponse",
    "HealthStatus",
    "SaveDriverLocationRequest",
    "NearbyDriversRequest",
    "DriverLocationDTO",
]
