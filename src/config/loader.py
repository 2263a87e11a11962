# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины - config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "driver_location_service"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"


class DeploymentSettings(BaseModel):
    """Настройки развертывания сервиса."""
    LOCATION_SERVICE_HOST: str = "0.0.0.0"
    LOCATION_SERVICE_PORT: int = 8090


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760

    @field_validator("LOG_FORMAT")
    @classmethod
    def check_format(cls, v: str) -> str:
        """Допустимы только colored и json."""
        if v not in ("colored", "json"):
            raise ValueError(f"Неизвестный LOG_FORMAT: {v}")
        return v


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "location"
    REDIS_MAX_CONNECTIONS: int = 50

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class SearchSettings(BaseModel):
    """Настройки поиска водителей."""
    LOCATION_INDEX_BACKEND: str = "redis"  # redis | memory
    REQUIRED_DRIVER_COUNT: int = Field(default=5, gt=0)
    MAX_SEARCH_RADIUS_KM: float = Field(default=15.0, gt=0)
    SEARCH_RADIUS_LADDER_KM: list[float] = Field(
        default_factory=lambda: [2.0, 5.0, 7.0, 10.0, 15.0]
    )
    DRIVER_ID_MIN_LENGTH: int = Field(default=3, ge=1)
    DRIVER_ID_MAX_LENGTH: int = Field(default=50, ge=1)

    @field_validator("LOCATION_INDEX_BACKEND")
    @classmethod
    def check_backend(cls, v: str) -> str:
        """Проверяет тип бэкенда индекса."""
        if v not in ("redis", "memory"):
            raise ValueError(f"Неизвестный LOCATION_INDEX_BACKEND: {v}")
        return v

    @field_validator("SEARCH_RADIUS_LADDER_KM")
    @classmethod
    def check_ladder(cls, v: list[float]) -> list[float]:
        """Лестница радиусов: непустая, положительная, с точностью до сотых, строго возрастающая."""
        if not v:
            raise ValueError("SEARCH_RADIUS_LADDER_KM не может быть пустым")
        if any(r <= 0 for r in v):
            raise ValueError("Все радиусы должны быть больше нуля")
        if any(round(r, 2) != r for r in v):
            raise ValueError("Радиусы задаются с точностью до 0.01 км")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Радиусы должны строго возрастать")
        return v

    @model_validator(mode="after")
    def check_id_bounds(self) -> "SearchSettings":
        """Минимальная длина ID не больше максимальной."""
        if self.DRIVER_ID_MIN_LENGTH > self.DRIVER_ID_MAX_LENGTH:
            raise ValueError("DRIVER_ID_MIN_LENGTH больше DRIVER_ID_MAX_LENGTH")
        return self


class TimeoutSettings(BaseModel):
    """Настройки таймаутов (секунды)."""
    INDEX_CALL_TIMEOUT: float = Field(default=2.0, gt=0)
    NEARBY_SEARCH_DEADLINE: float = Field(default=5.0, gt=0)


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты переопределяются из переменных окружения.
        """
        return cls.from_dict(load_config_json())

    @classmethod
    def from_dict(cls, config_data: dict[str, Any]) -> "Settings":
        """Создаёт объект Settings из плоского словаря конфигурации."""
        # Фильтруем комментарии (ключи, начинающиеся с _comment_)
        filtered_data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        # Маппинг полей в секции
        return cls(
            system=SystemSettings(
                PROJECT_NAME=filtered_data.get("PROJECT_NAME", "driver_location_service"),
                VERSION=filtered_data.get("VERSION", "1.0.0"),
                DEBUG=filtered_data.get("DEBUG", False),
                LOG_LEVEL=filtered_data.get("LOG_LEVEL", "INFO"),
                ENVIRONMENT=os.getenv("ENVIRONMENT", filtered_data.get("ENVIRONMENT", "development")),
            ),
            deployment=DeploymentSettings(
                LOCATION_SERVICE_HOST=os.getenv("LOCATION_SERVICE_HOST", filtered_data.get("LOCATION_SERVICE_HOST", "0.0.0.0")),
                LOCATION_SERVICE_PORT=int(os.getenv("LOCATION_SERVICE_PORT", filtered_data.get("LOCATION_SERVICE_PORT", 8090))),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=filtered_data.get("LOG_LEVEL", "INFO"),
                LOG_TO_FILE=filtered_data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=filtered_data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=filtered_data.get("LOG_FORMAT", "colored"),
                LOG_MAX_BYTES=filtered_data.get("LOG_MAX_BYTES", 10485760),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", filtered_data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", filtered_data.get("REDIS_PORT", 6379))),
                REDIS_DB=filtered_data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", filtered_data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=filtered_data.get("REDIS_NAMESPACE", "location"),
                REDIS_MAX_CONNECTIONS=filtered_data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            search=SearchSettings(
                LOCATION_INDEX_BACKEND=os.getenv("LOCATION_INDEX_BACKEND", filtered_data.get("LOCATION_INDEX_BACKEND", "redis")),
                REQUIRED_DRIVER_COUNT=filtered_data.get("REQUIRED_DRIVER_COUNT", 5),
                MAX_SEARCH_RADIUS_KM=filtered_data.get("MAX_SEARCH_RADIUS_KM", 15.0),
                SEARCH_RADIUS_LADDER_KM=filtered_data.get("SEARCH_RADIUS_LADDER_KM", [2.0, 5.0, 7.0, 10.0, 15.0]),
                DRIVER_ID_MIN_LENGTH=filtered_data.get("DRIVER_ID_MIN_LENGTH", 3),
                DRIVER_ID_MAX_LENGTH=filtered_data.get("DRIVER_ID_MAX_LENGTH", 50),
            ),
            timeouts=TimeoutSettings(
                INDEX_CALL_TIMEOUT=filtered_data.get("INDEX_CALL_TIMEOUT", 2.0),
                NEARBY_SEARCH_DEADLINE=filtered_data.get("NEARBY_SEARCH_DEADLINE", 5.0),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Использует кэширование для производительности.
    """
    from dotenv import load_dotenv

    # Загружаем .env файл
    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
