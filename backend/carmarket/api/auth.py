# File: backend/carmarket/api/auth.py

import logging
from fastapi import APIRouter, BackgroundTasks, Depends
from carmarket.core.errors import Conflict, Unauthenticated
from carmarket.core.notifications import send_welcome_email
from carmarket.core.security import DUMMY_HASH, create_jwt_token, hash_password, verify_password
from carmarket.models.user import LoginRequest, Role, UserCreate
from carmarket.repositories.users import UserRepository, get_user_repository

logger = logging.getLogger(__name__)
router = APIRouter()

INVALID_CREDENTIALS = "Invalid email or password"


@router.post("/register", status_code=201)
async def register(
    payload: UserCreate,
    background_tasks: BackgroundTasks,
    users: UserRepository = Depends(get_user_repository),
):
    """
    Create a regular user and sign them in straight away.
    The welcome email goes out after the response; if it fails, the
    registration still stands.
    """
    if await users.exists(payload.username, payload.email):
        logger.debug("Registration rejected, username or email taken: %s", payload.email)
        raise Conflict("User already exists")

    user = await users.create({
        "username": payload.username,
        "email": payload.email,
        "hashed_password": hash_password(payload.password),
        "first_name": payload.first_name,
        "last_name": payload.last_name,
        "phone": payload.phone,
        "role": Role.USER.value,
    })

    token = create_jwt_token(user.id, user.role.value)
    background_tasks.add_task(send_welcome_email, user.email, user.username, user.first_name)

    logger.info("User %s registered", user.id)
    return {
        "success": True,
        "message": "User registered successfully",
        "token": token,
        "user": user.public(),
    }


@router.post("/login")
async def login(payload: LoginRequest, users: UserRepository = Depends(get_user_repository)):
    user = await users.get_by_email(payload.email)
    if not user:
        verify_password(payload.password, DUMMY_HASH)
        logger.debug("No user found with email: %s", payload.email)
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not verify_password(payload.password, user.hashed_password):
        logger.debug("Password mismatch for user: %s", payload.email)
        raise Unauthenticated(INVALID_CREDENTIALS)

    token = create_jwt_token(user.id, user.role.value)
    logger.info("User %s logged in successfully", user.id)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": user.public(),
    }
