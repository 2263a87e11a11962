# src/services/realtime_location/routes.py
"""
Эндпоинты геолокации водителей.

- POST   /locations/drivers              - сохранить/обновить позицию
- POST   /locations/drivers/nearby       - ближайшие водители
- GET    /locations/drivers/{driver_id}  - позиция водителя
- DELETE /locations/drivers/{driver_id}  - удалить из индекса
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.common.logger import log_info
from src.core.locations import DriverLocationService
from src.services.realtime_location.dependencies import get_location_service
from src.shared.models.common import ApiResponse
from src.shared.models.location_dto import (
    DriverLocationDTO,
    NearbyDriversRequest,
    SaveDriverLocationRequest,
)

router = APIRouter(prefix="/locations", tags=["Location Management"])


def envelope(response: ApiResponse, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Сериализует ApiResponse без null-полей."""
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json", exclude_none=True),
    )


@router.post(
    "/drivers",
    status_code=status.HTTP_201_CREATED,
    summary="Save driver location",
)
async def save_driver_location(
    request: SaveDriverLocationRequest,
    service: DriverLocationService = Depends(get_location_service),
) -> JSONResponse:
    """Сохраняет или обновляет текущую позицию водителя."""
    await log_info(f"Сохранение позиции водителя: {request.driver_id}")

    await service.upsert(request.driver_id, request.latitude, request.longitude)

    return envelope(
        ApiResponse.ok("Driver location saved successfully"),
        status_code=status.HTTP_201_CREATED,
    )


@router.post(
    "/drivers/nearby",
    summary="Find nearby drivers",
)
async def get_nearby_drivers(
    request: NearbyDriversRequest,
    service: DriverLocationService = Depends(get_location_service),
) -> JSONResponse:
    """
    Возвращает ближайших водителей.

    Радиус поиска расширяется по лестнице из конфига, пока не найдено
    нужное количество водителей.
    """
    await log_info(f"Поиск водителей рядом с lat={request.latitude}, lon={request.longitude}")

    candidates = await service.find_nearby(
        request.latitude,
        request.longitude,
        max_radius_km=request.max_radius_km,
    )
    drivers = [DriverLocationDTO.from_candidate(c) for c in candidates]

    return envelope(ApiResponse.ok("Nearby drivers retrieved successfully", drivers))


@router.get(
    "/drivers/{driver_id}",
    responses={404: {"description": "Водитель не найден"}},
    summary="Get driver location",
)
async def get_driver_location(
    driver_id: str,
    service: DriverLocationService = Depends(get_location_service),
) -> JSONResponse:
    """Возвращает последнюю сохранённую позицию водителя."""
    position = await service.get_one(driver_id)
    return envelope(
        ApiResponse.ok("Driver location retrieved successfully", DriverLocationDTO.from_position(position))
    )


@router.delete(
    "/drivers/{driver_id}",
    summary="Delete driver location",
)
async def delete_driver_location(
    driver_id: str,
    service: DriverLocationService = Depends(get_location_service),
) -> JSONResponse:
    """
    Удаляет водителя из индекса.

    Вызывается, когда водитель уходит offline. Повторное удаление не ошибка.
    """
    await log_info(f"Удаление позиции водителя: {driver_id}")

    await service.delete_one(driver_id)

    return envelope(ApiResponse.ok("Driver location deleted successfully"))
