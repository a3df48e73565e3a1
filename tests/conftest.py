"""
tests/conftest.py -- Shared fixtures for the car marketplace API tests.

The routes take their stores through Depends(get_user_repository) and
Depends(get_car_repository). Tests swap both for the in-memory fakes below
via app.dependency_overrides, so no MongoDB is needed. TestClient is used
without entering its context manager, which keeps the startup hook (Motor
client, index creation, admin seed) from running.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from carmarket.core.query import CarFilters
from carmarket.core.security import create_jwt_token, hash_password
from carmarket.main import app
from carmarket.models.user import UserInDB
from carmarket.repositories.cars import CarRepository, get_car_repository
from carmarket.repositories.users import get_user_repository
from tests.helpers import make_registration

# ---------------------------------------------------------------------------
# Fake repositories (pure in-memory, same async interface as the Motor ones)
# ---------------------------------------------------------------------------


class FakeUserRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, dict] = {}

    @staticmethod
    def _oid(user_id: str) -> Optional[ObjectId]:
        return ObjectId(user_id) if ObjectId.is_valid(user_id) else None

    def _check_unique(self, doc: dict, skip: Optional[ObjectId] = None) -> None:
        for other in self.docs.values():
            if other["_id"] == skip:
                continue
            for field in ("username", "email"):
                if field in doc and other[field] == doc[field]:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error: {field}",
                        code=11000,
                        details={"keyValue": {field: doc[field]}},
                    )

    async def get_by_id(self, user_id: str) -> Optional[UserInDB]:
        doc = self.docs.get(self._oid(user_id))
        return UserInDB.from_doc(doc) if doc else None

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        for doc in self.docs.values():
            if doc["email"] == email.lower():
                return UserInDB.from_doc(doc)
        return None

    async def exists(self, username: str, email: str) -> bool:
        return any(d["username"] == username or d["email"] == email.lower() for d in self.docs.values())

    async def create(self, user_doc: dict) -> UserInDB:
        now = datetime.now(timezone.utc)
        doc = {"role": "user", "is_email_verified": False, **user_doc, "created_at": now, "updated_at": now}
        doc["email"] = doc["email"].lower()
        self._check_unique(doc)
        doc["_id"] = ObjectId()
        self.docs[doc["_id"]] = doc
        return UserInDB.from_doc(doc)

    async def update(self, user_id: str, fields: dict) -> Optional[UserInDB]:
        doc = self.docs.get(self._oid(user_id))
        if not doc:
            return None
        self._check_unique(fields, skip=doc["_id"])
        doc.update(fields, updated_at=datetime.now(timezone.utc))
        return UserInDB.from_doc(doc)

    async def delete(self, user_id: str) -> bool:
        return self.docs.pop(self._oid(user_id), None) is not None


class FakeCarRepository:
    """
    Applies CarFilters in Python. The view increment has no await between
    read and write, so like Mongo's $inc it can't interleave with another
    request on the same event loop.
    """

    def __init__(self, users: FakeUserRepository) -> None:
        self.users = users
        self.docs: dict[ObjectId, dict] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _owner(self, doc: dict, detailed: bool = False) -> Optional[dict]:
        owner = self.users.docs.get(doc["owner"])
        if owner is None:
            return None
        fields = ["username", "email", "first_name", "last_name"]
        if detailed:
            fields += ["phone", "address"]
        return {f: owner.get(f) for f in fields}

    def _model(self, doc: dict, detailed: bool = False):
        return CarRepository._to_model(doc, self._owner(doc, detailed))

    async def create(self, car_data: dict, owner_id: str):
        # Strictly increasing timestamps keep "newest first" deterministic.
        self._clock += timedelta(seconds=1)
        doc = {
            **car_data,
            "_id": ObjectId(),
            "owner": ObjectId(owner_id),
            "views": 0,
            "rating": 0,
            "reviews": [],
            "created_at": self._clock,
            "updated_at": self._clock,
        }
        self.docs[doc["_id"]] = doc
        return self._model(doc)

    def _get(self, car_id: str) -> Optional[dict]:
        return self.docs.get(ObjectId(car_id)) if ObjectId.is_valid(car_id) else None

    async def get_owner_id(self, car_id: str) -> Optional[str]:
        doc = self._get(car_id)
        return str(doc["owner"]) if doc else None

    async def view(self, car_id: str):
        doc = self._get(car_id)
        if not doc:
            return None
        doc["views"] += 1
        return self._model(doc, detailed=True)

    async def update(self, car_id: str, fields: dict):
        doc = self._get(car_id)
        if not doc:
            return None
        doc.update(fields, updated_at=datetime.now(timezone.utc))
        return self._model(doc)

    async def delete(self, car_id: str) -> bool:
        doc = self._get(car_id)
        if not doc:
            return False
        del self.docs[doc["_id"]]
        return True

    @staticmethod
    def _matches(doc: dict, f: CarFilters) -> bool:
        if f.status and doc["status"] != f.status:
            return False
        if f.brand and f.brand.lower() not in doc["brand"].lower():
            return False
        if f.model and f.model.lower() not in doc["model"].lower():
            return False
        if f.min_price is not None and doc["price"] < f.min_price:
            return False
        if f.max_price is not None and doc["price"] > f.max_price:
            return False
        if f.owner_id is not None and str(doc["owner"]) != f.owner_id:
            return False
        if f.search and f.search.strip():
            text = " ".join(doc[k] for k in ("title", "description", "brand", "model")).lower()
            if not any(term.lower() in text for term in f.search.split()):
                return False
        return True

    async def search(self, filters: CarFilters, skip: int, limit: int):
        hits = [d for d in self.docs.values() if self._matches(d, filters)]
        hits.sort(key=lambda d: d["created_at"], reverse=True)
        return [self._model(d) for d in hits[skip:skip + limit]], len(hits)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def car_repo(user_repo: FakeUserRepository) -> FakeCarRepository:
    return FakeCarRepository(user_repo)


@pytest.fixture
def client(user_repo, car_repo):
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_car_repository] = lambda: car_repo
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def register(client):
    """Register a user through the API; returns (token, user_json, headers)."""

    def _register(username: str, **extra):
        resp = client.post("/api/auth/register", json=make_registration(username, **extra))
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data["token"], data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def admin_headers(user_repo) -> dict:
    """Headers for an admin seeded straight into the fake store."""
    doc = {
        "_id": ObjectId(),
        "username": "rootadmin",
        "email": "admin@example.com",
        "hashed_password": hash_password("adminpass"),
        "role": "admin",
        "is_email_verified": False,
    }
    user_repo.docs[doc["_id"]] = doc
    token = create_jwt_token(str(doc["_id"]), "admin")
    return {"Authorization": f"Bearer {token}"}
