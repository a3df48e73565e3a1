from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import Depends
from pymongo import DESCENDING, ReturnDocument

from carmarket.core.database import get_database
from carmarket.core.query import CarFilters, build_car_filter
from carmarket.models.car import Car, OwnerSummary
from carmarket.repositories.users import to_object_id

# Owner fields shown on listing pages; the detail view adds phone and address.
OWNER_SUMMARY_FIELDS = {"username": 1, "email": 1, "first_name": 1, "last_name": 1}
OWNER_DETAIL_FIELDS = {**OWNER_SUMMARY_FIELDS, "phone": 1, "address": 1}


def _stamp_images(images, now: datetime) -> None:
    for image in images:
        image["uploaded_at"] = image.get("uploaded_at") or now


class CarRepository:
    def __init__(self, db):
        self.collection = db["cars"]
        self.users = db["users"]

    async def _owners(self, owner_ids, detailed: bool = False) -> dict:
        projection = OWNER_DETAIL_FIELDS if detailed else OWNER_SUMMARY_FIELDS
        owners = {}
        cursor = self.users.find({"_id": {"$in": list(set(owner_ids))}}, projection=projection)
        async for doc in cursor:
            owners[doc["_id"]] = doc
        return owners

    @staticmethod
    def _to_model(doc: dict, owner_doc: Optional[dict]) -> Car:
        owner = {k: v for k, v in (owner_doc or {}).items() if k != "_id"}
        data = {k: v for k, v in doc.items() if k not in ("_id", "owner")}
        return Car(
            id=str(doc["_id"]),
            owner=OwnerSummary(id=str(doc["owner"]), **owner),
            **data,
        )

    async def _populate(self, doc: dict, detailed: bool = False) -> Car:
        owners = await self._owners([doc["owner"]], detailed=detailed)
        return self._to_model(doc, owners.get(doc["owner"]))

    async def create(self, car_data: dict, owner_id: str) -> Car:
        now = datetime.now(timezone.utc)
        doc = {
            **car_data,
            "owner": to_object_id(owner_id),
            "views": 0,
            "rating": 0,
            "reviews": [],
            "created_at": now,
            "updated_at": now,
        }
        _stamp_images(doc.get("images", []), now)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return await self._populate(doc)

    async def get_owner_id(self, car_id: str) -> Optional[str]:
        oid = to_object_id(car_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid}, projection={"owner": 1})
        return str(doc["owner"]) if doc else None

    async def view(self, car_id: str) -> Optional[Car]:
        """
        Fetch one listing and count the view in the same atomic
        find_one_and_update, so concurrent readers never lose an increment.
        """
        oid = to_object_id(car_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return await self._populate(doc, detailed=True)

    async def update(self, car_id: str, fields: dict) -> Optional[Car]:
        oid = to_object_id(car_id)
        if oid is None:
            return None
        now = datetime.now(timezone.utc)
        changes = {**fields, "updated_at": now}
        _stamp_images(changes.get("images", []), now)
        for protected in ("owner", "views", "reviews", "rating", "created_at"):
            changes.pop(protected, None)
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return await self._populate(doc)

    async def delete(self, car_id: str) -> bool:
        oid = to_object_id(car_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count == 1

    async def search(self, filters: CarFilters, skip: int, limit: int) -> Tuple[List[Car], int]:
        owner_key = to_object_id(filters.owner_id) if filters.owner_id is not None else None
        query = build_car_filter(filters, owner_key=owner_key)

        cursor = self.collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        docs = [doc async for doc in cursor]
        total = await self.collection.count_documents(query)

        owners = await self._owners([d["owner"] for d in docs])
        return [self._to_model(d, owners.get(d["owner"])) for d in docs], total


def get_car_repository(db=Depends(get_database)) -> CarRepository:
    return CarRepository(db)
