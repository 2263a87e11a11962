# src/services/realtime_location/app.py
"""
FastAPI приложение сервиса геолокации водителей.

Endpoints:
- POST /api/v1/locations/drivers - сохранить позицию водителя
- POST /api/v1/locations/drivers/nearby - ближайшие водители
- GET /api/v1/locations/drivers/{driver_id} - позиция водителя
- DELETE /api/v1/locations/drivers/{driver_id} - удалить из индекса
- GET /health - проверка здоровья
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info, setup_logging
from src.config import settings
from src.core.locations import DriverLocationService, IndexUnavailable, LocationServiceError
from src.services.realtime_location.dependencies import (
    close_location_service,
    get_location_service,
    init_location_service,
)
from src.services.realtime_location.routes import envelope, router
from src.shared.models.common import ApiResponse, HealthStatus

SERVICE_NAME = "driver_location_service"


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    setup_logging()
    await log_info("Запуск сервиса геолокации...", type_msg=TypeMsg.INFO)

    await init_location_service()

    yield

    await close_location_service()
    await log_info("Сервис геолокации остановлен", type_msg=TypeMsg.INFO)


# === APP ===

app = FastAPI(
    title="Driver Location Service",
    description="Приём геолокации водителей и поиск ближайших.",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(router, prefix="/api/v1")


# === EXCEPTION HANDLERS ===

@app.exception_handler(LocationServiceError)
async def handle_location_error(request: Request, exc: LocationServiceError) -> JSONResponse:
    """Доменные ошибки: 400 / 404 / 503."""
    if isinstance(exc, IndexUnavailable):
        await log_error(f"Ошибка индекса: {exc}")
    else:
        await log_info(f"{type(exc).__name__}: {exc}", type_msg=TypeMsg.WARNING)

    return envelope(ApiResponse.error(str(exc)), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки валидации тела запроса: поле -> сообщение."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][-1]) if error.get("loc") else "body"
        errors[field] = error.get("msg", "Invalid value")

    await log_info(f"Validation failed: {errors}", type_msg=TypeMsg.WARNING)

    return envelope(
        ApiResponse.error("Validation failed", errors),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Непредвиденные ошибки."""
    await log_error(f"Непредвиденная ошибка: {exc}", exc_info=True)

    return envelope(
        ApiResponse.error("An unexpected error occurred. Please try again later."),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check(
    service: DriverLocationService = Depends(get_location_service),
) -> HealthStatus:
    """Проверка здоровья сервиса и GEO-индекса."""
    index_ok = await service.index.ping()
    return HealthStatus(
        service=SERVICE_NAME,
        status="healthy" if index_ok else "degraded",
        version=settings.system.VERSION,
        dependencies={"location_index": "healthy" if index_ok else "unhealthy"},
    )


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.deployment.LOCATION_SERVICE_HOST,
        port=settings.deployment.LOCATION_SERVICE_PORT,
    )
