# File: backend/carmarket/core/query.py

import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from carmarket.core.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from carmarket.core.errors import ValidationFailed

# skip() goes over the wire as a signed 64-bit int.
MAX_SKIP = 2 ** 63 - 1


@dataclass
class CarFilters:
    """
    Listing search parameters as they arrive on GET /cars.
    Every field is optional; unset fields don't narrow the query.
    """
    status: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None
    owner_id: Optional[str] = None


def _contains(value: str) -> dict:
    # Case-insensitive substring; user input is escaped so "." or "(" match literally.
    return {"$regex": re.escape(value), "$options": "i"}


def build_car_filter(filters: CarFilters, owner_key=None) -> dict:
    """
    Translate CarFilters into a Mongo filter document.

    `owner_key` is the value stored in the owner field (an ObjectId for the
    Motor store); it defaults to filters.owner_id as-is.
    """
    query = {}
    if filters.status:
        query["status"] = filters.status
    if filters.brand:
        query["brand"] = _contains(filters.brand)
    if filters.model:
        query["model"] = _contains(filters.model)
    if filters.min_price is not None or filters.max_price is not None:
        price = {}
        if filters.min_price is not None:
            price["$gte"] = filters.min_price
        if filters.max_price is not None:
            price["$lte"] = filters.max_price
        query["price"] = price
    if filters.search and filters.search.strip():
        # $text ORs the terms across the title/description/brand/model text index.
        query["$text"] = {"$search": filters.search.strip()}
    if filters.owner_id is not None:
        query["owner"] = owner_key if owner_key is not None else filters.owner_id
    return query


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_PAGE_LIMIT
    return min(limit, MAX_PAGE_LIMIT)


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return (skip, limit) for a 1-based page."""
    skip = (page - 1) * limit
    if skip > MAX_SKIP:
        raise ValidationFailed(details=[{"field": "page", "message": "Page is out of range"}])
    return skip, limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
