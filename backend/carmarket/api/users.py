import logging
from fastapi import APIRouter, Depends
from carmarket.core.errors import NotFound
from carmarket.core.security import get_current_user, require_role
from carmarket.models.user import RoleUpdate, UserUpdate
from carmarket.repositories.users import UserRepository, get_user_repository

logger = logging.getLogger(__name__)
router = APIRouter()

USER_NOT_FOUND = "User not found"


@router.get("/profile")
async def get_profile(
    user=Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
):
    record = await users.get_by_id(user["user_id"])
    if not record:
        raise NotFound(USER_NOT_FOUND)
    return {"success": True, "user": record.public()}


@router.put("/profile")
async def update_profile(
    payload: UserUpdate,
    user=Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Partial update of the caller's own profile. Only fields present in the
    body are written; updatedAt always moves.
    """
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    record = await users.update(user["user_id"], changes)
    if not record:
        raise NotFound(USER_NOT_FOUND)
    logger.info("User %s updated profile fields: %s", user["user_id"], sorted(changes))
    return {"success": True, "message": "Profile updated successfully", "user": record.public()}


@router.delete("/account")
async def delete_account(
    user=Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
):
    # Hard delete; the user's listings are left in place.
    if not await users.delete(user["user_id"]):
        raise NotFound(USER_NOT_FOUND)
    logger.info("User %s deleted their account", user["user_id"])
    return {"success": True, "message": "Account deleted successfully"}


@router.put("/{user_id}/role")
async def change_role(
    user_id: str,
    payload: RoleUpdate,
    admin=Depends(require_role("admin")),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Admin only. Tokens carry the role they were issued with, so the target
    user sees the new role after their next login.
    """
    record = await users.update(user_id, {"role": payload.role.value})
    if not record:
        raise NotFound(USER_NOT_FOUND)
    logger.info("Admin %s set role of user %s to %s", admin["user_id"], user_id, payload.role.value)
    return {"success": True, "message": "Role updated successfully", "user": record.public()}
