# src/core/__init__.py
"""
Доменный слой (Core Domain).
Бизнес-логика геолокации, независимая от транспорта.
"""

from src.core.locations import DriverLocationService, GeoIndex

__all__ = [
    "DriverLocationService",
    "GeoIndex",
]
