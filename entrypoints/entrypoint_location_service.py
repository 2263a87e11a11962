#!/usr/bin/env python3
"""
Entrypoint для Driver Location Service.

Запуск:
    python entrypoint_location_service.py

Порт по умолчанию: 8090
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Driver Location Service."""
    uvicorn.run(
        "src.services.realtime_location.app:app",
        host=settings.deployment.LOCATION_SERVICE_HOST,
        port=settings.deployment.LOCATION_SERVICE_PORT,
        reload=settings.system.DEBUG,
        log_level=settings.system.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
