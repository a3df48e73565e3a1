import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from carmarket.core.config import BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_EXPIRES_IN, JWT_SECRET_KEY
from carmarket.core.errors import (
    Forbidden,
    InvalidSignature,
    MalformedToken,
    TokenExpired,
    Unauthenticated,
)
from carmarket.models.user import Role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)

UNAUTHORIZED = "Unauthorized access"
INVALID_TOKEN = "Invalid or expired token"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_pass: str, hashed_pass: str) -> bool:
    # Mismatch returns False; a hash passlib can't identify raises ValueError.
    return pwd_context.verify(plain_pass, hashed_pass)


# Login runs a verify against this even when the email is unknown, so both
# failure paths cost one bcrypt round trip.
DUMMY_HASH = hash_password("car-marketplace-timing-dummy")


def create_jwt_token(
    user_id: str,
    role: str,
    expires_delta: int = JWT_EXPIRES_IN,
    secret: str = JWT_SECRET_KEY,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=expires_delta),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str, secret: str = JWT_SECRET_KEY) -> dict:
    """
    Verify signature and expiry and return {"user_id", "role"}.

    Raises TokenExpired, InvalidSignature or MalformedToken; all three are
    Unauthenticated, so an uncaught one renders as a 401.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("[decode_jwt_token] Token signature has expired.")
        raise TokenExpired("Token has expired")
    except jwt.InvalidSignatureError:
        logger.debug("[decode_jwt_token] Signature verification failed.")
        raise InvalidSignature(INVALID_TOKEN)
    except jwt.InvalidTokenError:
        logger.debug("[decode_jwt_token] Token could not be decoded.")
        raise MalformedToken(INVALID_TOKEN)

    user_id = payload.get("user_id")
    role = payload.get("role")
    if not isinstance(user_id, str) or not isinstance(role, str):
        logger.debug("[decode_jwt_token] Token is missing identity claims.")
        raise MalformedToken(INVALID_TOKEN)
    return {"user_id": user_id, "role": role}


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """
    Authentication gate. Trusts the role embedded in the token at issuance;
    the user store is not consulted, so a role change only shows up once the
    user gets a fresh token.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated(UNAUTHORIZED)
    user = decode_jwt_token(credentials.credentials)
    logger.debug("[get_current_user] Authenticated user %s with role %s", user["user_id"], user["role"])
    return user


def require_role(*roles: str):
    allowed = {Role(r).value for r in roles}

    def role_checker(user=Depends(get_current_user)):
        logger.debug("[require_role] Required one of: %s, user has role: %s", sorted(allowed), user["role"])
        if user["role"] not in allowed:
            raise Forbidden("You do not have permission to access this resource")
        return user
    return role_checker


def ensure_owner_or_admin(owner_id: str, user: dict, action: str) -> None:
    if user["role"] == Role.ADMIN.value:
        return
    if str(owner_id) != user["user_id"]:
        raise Forbidden(f"You can only {action} your own car listings")
