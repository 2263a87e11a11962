# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class IndexBackend(str, Enum):
    """Реализации GEO-индекса."""
    REDIS = "redis"
    MEMORY = "memory"


# Ключ GEO-индекса водителей в Redis
DRIVER_GEO_KEY = "drivers:locations"

# Имя основного логгера сервиса
SERVICE_LOGGER_NAME = "location_service"
