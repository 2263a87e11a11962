# src/core/locations/validation.py
"""
Валидация входных данных до обращения к индексу.
Чистые функции без побочных эффектов.
"""

from __future__ import annotations

import math
from typing import Any

from src.core.locations.exceptions import InvalidCoordinate, InvalidIdentifier


def _as_number(value: Any, name: str) -> float:
    """Приводит координату к float или выбрасывает InvalidCoordinate."""
    # bool - подкласс int, но координатой не является
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCoordinate(f"{name} is required")
    number = float(value)
    if math.isnan(number):
        raise InvalidCoordinate(f"{name} is required")
    return number


def validate_coordinates(latitude: Any, longitude: Any) -> None:
    """
    Проверяет широту и долготу.

    Raises:
        InvalidCoordinate: значение отсутствует, NaN или вне диапазона
    """
    lat = _as_number(latitude, "Latitude")
    lon = _as_number(longitude, "Longitude")

    if not -90 <= lat <= 90:
        raise InvalidCoordinate("Latitude must be between -90 and 90")

    if not -180 <= lon <= 180:
        raise InvalidCoordinate("Longitude must be between -180 and 180")


def validate_agent_id(
    agent_id: Any,
    min_length: int = 1,
    max_length: int | None = None,
) -> None:
    """
    Проверяет ID водителя.

    Raises:
        InvalidIdentifier: ID не строка, пустой или нарушает границы длины
    """
    if not isinstance(agent_id, str) or not agent_id.strip():
        raise InvalidIdentifier("Driver ID is required")

    if len(agent_id) < min_length or (max_length is not None and len(agent_id) > max_length):
        bound = f"between {min_length} and {max_length}" if max_length is not None else f"at least {min_length}"
        raise InvalidIdentifier(f"Driver ID must be {bound} characters")
