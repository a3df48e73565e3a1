from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from fastapi import Depends
from pymongo import ReturnDocument

from carmarket.core.database import get_database
from carmarket.models.user import UserInDB


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a hex id; anything that isn't a valid ObjectId resolves to None."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class UserRepository:
    def __init__(self, db):
        self.collection = db["users"]

    async def get_by_id(self, user_id: str) -> Optional[UserInDB]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return UserInDB.from_doc(doc) if doc else None

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        doc = await self.collection.find_one({"email": email.lower()})
        return UserInDB.from_doc(doc) if doc else None

    async def exists(self, username: str, email: str) -> bool:
        doc = await self.collection.find_one(
            {"$or": [{"email": email.lower()}, {"username": username}]},
            projection={"_id": 1},
        )
        return doc is not None

    async def create(self, user_doc: dict) -> UserInDB:
        now = datetime.now(timezone.utc)
        doc = {
            "role": "user",
            "is_email_verified": False,
            **user_doc,
            "created_at": now,
            "updated_at": now,
        }
        doc["email"] = doc["email"].lower()
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return UserInDB.from_doc(doc)

    async def update(self, user_id: str, fields: dict) -> Optional[UserInDB]:
        """
        $set only the given fields and bump updated_at. A username/email that
        collides with another account raises DuplicateKeyError from the
        unique indexes.
        """
        oid = to_object_id(user_id)
        if oid is None:
            return None
        changes = {**fields, "updated_at": datetime.now(timezone.utc)}
        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return UserInDB.from_doc(doc) if doc else None

    async def delete(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count == 1


def get_user_repository(db=Depends(get_database)) -> UserRepository:
    return UserRepository(db)
