"""
User Service - profiles, roles and account status
"""
import logging
from typing import Any, Dict, Optional, Tuple

from core.errors import forbidden, not_found, validation_error, with_error_handling
from core.validation import ProfileUpdateSchema, RoleUpdateSchema, UserStatusSchema, validate_data
from database import profiles as profiles_db
from database.db import paginate
from models import Profile
from models.base import money
from services import audit_service
from services.access import get_actor, require_admin, require_owner_or_admin

logger = logging.getLogger(__name__)


@with_error_handling
async def get_user_profile(user_id: str) -> Dict[str, Any]:
    row = await profiles_db.get_profile(user_id)
    if not row:
        raise not_found("User")
    return Profile.from_db_row(row).to_dict()


@with_error_handling
async def update_user_profile(user_id: str, updates: Dict, current_user_id: str) -> Dict[str, Any]:
    await require_owner_or_admin(current_user_id, user_id, "You can only update your own profile")
    data = validate_data(ProfileUpdateSchema, updates)

    row = await profiles_db.update_profile(user_id, data.changes())
    if not row:
        raise not_found("User")
    return Profile.from_db_row(row).to_dict()


@with_error_handling
async def update_user_role(user_id: str, role: str, admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can change user roles")
    data = validate_data(RoleUpdateSchema, {"role": role})
    if admin.id == str(user_id):
        raise validation_error("role", "You cannot change your own role")

    existing = await profiles_db.get_profile(user_id)
    if not existing:
        raise not_found("User")

    row = await profiles_db.update_profile(user_id, {"role": data.role})
    await audit_service.log_audit_event(
        admin.id, audit_service.USER_ROLE_UPDATED, "user", user_id,
        {"old_role": existing["role"], "new_role": data.role},
    )
    logger.info(f"User {user_id} role: {existing['role']} -> {data.role}")
    return Profile.from_db_row(row).to_dict()


@with_error_handling
async def verify_user(user_id: str, admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can verify users")
    row = await profiles_db.update_profile(user_id, {"is_verified": True})
    if not row:
        raise not_found("User")
    await audit_service.log_audit_event(admin.id, audit_service.USER_VERIFIED, "user", user_id)
    return Profile.from_db_row(row).to_dict()


@with_error_handling
async def toggle_user_status(user_id: str, is_active: bool, admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can change account status")
    is_active = validate_data(UserStatusSchema, {"is_active": is_active}).is_active
    if admin.id == str(user_id) and not is_active:
        raise validation_error("isActive", "You cannot deactivate your own account")

    row = await profiles_db.update_profile(user_id, {"is_active": is_active})
    if not row:
        raise not_found("User")
    await audit_service.log_audit_event(
        admin.id, audit_service.USER_STATUS_UPDATED, "user", user_id, {"is_active": is_active}
    )
    return Profile.from_db_row(row).to_dict()


@with_error_handling
async def search_users(query: Optional[str], role: Optional[str], page: int, limit: int,
                       admin_id: str) -> Tuple[list, int]:
    await require_admin(admin_id, "Only administrators can search users")
    limit, offset = paginate(page, limit)
    rows, total = await profiles_db.search_profiles(query, role, limit, offset)
    return [Profile.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_user_statistics(user_id: str, current_user_id: str) -> Dict[str, Any]:
    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != str(user_id):
        raise forbidden("You can only view your own statistics")

    totals = await profiles_db.get_donation_totals(user_id)
    return {
        "totalDonations": totals.get("total_donations", 0),
        "totalAmount": money(totals.get("total_amount")),
        "campaignsSupported": totals.get("campaigns_supported", 0),
    }
