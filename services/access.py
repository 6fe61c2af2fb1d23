"""
Access checks shared by the services.

Roles are always read from the stored profile, never from the caller's token,
so a role change takes effect on the next request.
"""
from typing import Optional

from core.errors import ErrorCode, PlatformError, forbidden
from database import profiles as profiles_db
from models import Profile


async def get_actor(user_id: Optional[str]) -> Profile:
    """Profile of the acting user; 401 when unknown or banned"""
    if not user_id:
        raise PlatformError(ErrorCode.UNAUTHORIZED, "Authentication required", 401)
    row = await profiles_db.get_profile(user_id)
    if not row:
        raise PlatformError(ErrorCode.UNAUTHORIZED, "User not found", 401)
    actor = Profile.from_db_row(row)
    if not actor.is_active:
        raise forbidden("Account is disabled")
    return actor


async def require_admin(user_id: Optional[str], message: str = "Only administrators can perform this action") -> Profile:
    actor = await get_actor(user_id)
    if not actor.is_admin:
        raise forbidden(message)
    return actor


async def require_owner_or_admin(user_id: Optional[str], owner_id: Optional[str],
                                 message: str = "You do not have permission to modify this resource") -> Profile:
    actor = await get_actor(user_id)
    if actor.is_admin or (owner_id is not None and actor.id == str(owner_id)):
        return actor
    raise forbidden(message)
