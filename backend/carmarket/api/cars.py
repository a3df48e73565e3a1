# File: backend/carmarket/api/cars.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from carmarket.core.errors import NotFound
from carmarket.core.query import CarFilters, build_pagination, clamp_limit, page_window
from carmarket.core.security import ensure_owner_or_admin, get_current_user
from carmarket.models.car import CarCreate, CarStatus
from carmarket.repositories.cars import CarRepository, get_car_repository
from carmarket.repositories.users import UserRepository, get_user_repository

logger = logging.getLogger(__name__)
router = APIRouter()

CAR_NOT_FOUND = "Car listing not found"


async def _paginated(cars: CarRepository, filters: CarFilters, page: int, limit: Optional[int]) -> dict:
    limit = clamp_limit(limit)
    skip, limit = page_window(page, limit)
    items, total = await cars.search(filters, skip, limit)
    return {
        "success": True,
        "cars": [car.public() for car in items],
        "pagination": build_pagination(page, limit, total),
    }


@router.get("")
async def list_cars(
    status: Optional[CarStatus] = None,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    cars: CarRepository = Depends(get_car_repository),
):
    """
    Public listing search. Newest first; limit is capped at MAX_PAGE_LIMIT.
    """
    filters = CarFilters(
        status=status.value if status else None,
        brand=brand,
        model=model,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    return await _paginated(cars, filters, page, limit)


# Registered before /{car_id} so "user" isn't read as an id.
@router.get("/user/listings")
async def list_my_cars(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    user=Depends(get_current_user),
    cars: CarRepository = Depends(get_car_repository),
):
    return await _paginated(cars, CarFilters(owner_id=user["user_id"]), page, limit)


@router.get("/{car_id}")
async def get_car(car_id: str, cars: CarRepository = Depends(get_car_repository)):
    car = await cars.view(car_id)
    if not car:
        raise NotFound(CAR_NOT_FOUND)
    return {"success": True, "car": car.public()}


@router.post("", status_code=201)
async def create_car(
    payload: CarCreate,
    user=Depends(get_current_user),
    cars: CarRepository = Depends(get_car_repository),
    users: UserRepository = Depends(get_user_repository),
):
    # The owner is always the caller, and the caller has to still exist.
    if not await users.get_by_id(user["user_id"]):
        raise NotFound("User not found")

    car = await cars.create(payload.model_dump(mode="json"), owner_id=user["user_id"])
    logger.info("User %s created car listing %s", user["user_id"], car.id)
    return {"success": True, "message": "Car listing created successfully", "car": car.public()}


@router.put("/{car_id}")
async def update_car(
    car_id: str,
    payload: CarCreate,
    user=Depends(get_current_user),
    cars: CarRepository = Depends(get_car_repository),
):
    owner_id = await cars.get_owner_id(car_id)
    if owner_id is None:
        raise NotFound(CAR_NOT_FOUND)
    ensure_owner_or_admin(owner_id, user, "update")

    car = await cars.update(car_id, payload.model_dump(mode="json", exclude_unset=True))
    if not car:
        raise NotFound(CAR_NOT_FOUND)
    logger.info("User %s updated car listing %s", user["user_id"], car_id)
    return {"success": True, "message": "Car listing updated successfully", "car": car.public()}


@router.delete("/{car_id}")
async def delete_car(
    car_id: str,
    user=Depends(get_current_user),
    cars: CarRepository = Depends(get_car_repository),
):
    owner_id = await cars.get_owner_id(car_id)
    if owner_id is None:
        raise NotFound(CAR_NOT_FOUND)
    ensure_owner_or_admin(owner_id, user, "delete")

    await cars.delete(car_id)
    logger.info("User %s deleted car listing %s", user["user_id"], car_id)
    return {"success": True, "message": "Car listing deleted successfully"}
