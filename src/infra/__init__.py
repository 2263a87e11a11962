# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними сервисами: Redis.
"""

from src.infra.redis_client import RedisClient, get_redis, init_redis, close_redis

__all__ = [
    "RedisClient",
    "get_redis",
    "init_redis",
    "close_redis",
]
