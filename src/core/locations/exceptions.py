# src/core/locations/exceptions.py
"""
Исключения домена геолокации.
"""

from __future__ import annotations


class LocationServiceError(Exception):
    """Базовая ошибка сервиса геолокации."""

    status_code: int = 500


class InvalidCoordinate(LocationServiceError):
    """Широта/долгота отсутствует или вне допустимого диапазона."""

    status_code = 400


class InvalidIdentifier(LocationServiceError):
    """ID водителя отсутствует или нарушает ограничения длины."""

    status_code = 400


class InvalidRadius(LocationServiceError):
    """Некорректный радиус поиска."""

    status_code = 400


class DriverNotFound(LocationServiceError):
    """У водителя нет сохранённой позиции."""

    status_code = 404

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Driver not found: {agent_id}")
        self.agent_id = agent_id


class IndexUnavailable(LocationServiceError):
    """GEO-индекс недоступен или вернул ошибку."""

    status_code = 503
