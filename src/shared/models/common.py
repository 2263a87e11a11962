# src/shared/models/common.py
"""
Общие модели ответов API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Стандартная обёртка ответа.
    Одинаковая структура для всех эндпоинтов.
    """

    success: bool = Field(..., description="Успешен ли запрос")
    message: str = Field(..., description="Сообщение")
    data: T | None = Field(default=None, description="Данные ответа")
    timestamp: datetime = Field(default_factory=datetime.now, description="Время ответа")

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "ApiResponse":
        """Успешный ответ."""
        return cls(success=True, message=message, data=data)

    @classmethod
    def error(cls, message: str, data: Any = None) -> "ApiResponse":
        """Ответ с ошибкой."""
        return cls(success=False, message=message, data=data)


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    # dependencies: {"location_index": "healthy"}
