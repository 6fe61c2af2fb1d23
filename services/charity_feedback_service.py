"""
Charity Feedback Service - donor ratings of charities

A donor may rate a charity once, after a completed donation to any of its
campaigns.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from core.errors import ErrorCode, PlatformError, not_found, with_error_handling
from core.validation import (
    AdminDeleteSchema, FeedbackCreateSchema, FeedbackUpdateSchema, validate_data,
)
from database import charities as charities_db
from database import donations as donations_db
from database import feedback as feedback_db
from database.db import paginate
from models import CharityFeedback
from models.base import average_rating, money
from models.review import RATINGS
from services import audit_service
from services.access import get_actor, require_admin

logger = logging.getLogger(__name__)


async def _own_feedback(feedback_id: str, user_id: str) -> Dict:
    feedback = await feedback_db.get_feedback(feedback_id)
    if not feedback or str(feedback["donor_id"]) != str(user_id):
        raise not_found("Feedback")
    return feedback


@with_error_handling
async def create_feedback(data: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    payload = validate_data(FeedbackCreateSchema, data)

    if not await charities_db.get_charity(payload.charity_id):
        raise not_found("Charity")
    if not await donations_db.has_completed_donation_to_charity(actor.id, payload.charity_id):
        raise PlatformError(
            ErrorCode.FORBIDDEN,
            "You must donate to one of this charity's campaigns before leaving feedback", 403,
        )
    if await feedback_db.get_donor_feedback(actor.id, payload.charity_id):
        raise PlatformError(ErrorCode.DUPLICATE_FEEDBACK,
                            "You have already submitted feedback for this charity", 400)

    row = await feedback_db.create_feedback(payload.charity_id, actor.id, payload.rating, payload.comment)
    feedback = CharityFeedback.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_FEEDBACK_CREATED, "charity_feedback", feedback.id,
        {"charity_id": payload.charity_id, "rating": payload.rating},
    )
    return feedback.to_dict()


@with_error_handling
async def update_feedback(feedback_id: str, updates: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    await _own_feedback(feedback_id, actor.id)
    payload = validate_data(FeedbackUpdateSchema, updates)
    changes = payload.changes()

    row = await feedback_db.update_feedback(feedback_id, changes)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_FEEDBACK_UPDATED, "charity_feedback", feedback_id,
        {"fields": sorted(changes)},
    )
    return CharityFeedback.from_db_row(row).to_dict()


@with_error_handling
async def delete_feedback(feedback_id: str, user_id: str) -> bool:
    actor = await get_actor(user_id)
    feedback = await _own_feedback(feedback_id, actor.id)
    deleted = await feedback_db.delete_feedback(feedback_id)
    await audit_service.log_audit_event(
        actor.id, audit_service.CHARITY_FEEDBACK_DELETED, "charity_feedback", feedback_id,
        {"charity_id": str(feedback["charity_id"])},
    )
    return deleted


@with_error_handling
async def get_feedback_by_id(feedback_id: str) -> Dict[str, Any]:
    row = await feedback_db.get_feedback(feedback_id)
    if not row:
        raise not_found("Feedback")
    return CharityFeedback.from_db_row(row).to_dict()


@with_error_handling
async def list_feedback(filters: Optional[Dict] = None, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    limit, offset = paginate(page, limit)
    rows, total = await feedback_db.list_feedback(filters or {}, limit, offset)
    return [CharityFeedback.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_charity_feedback_stats(charity_id: str) -> Dict[str, Any]:
    rows = await feedback_db.list_charity_ratings(charity_id)
    ratings = [r["rating"] for r in rows]
    return {
        "totalFeedback": len(ratings),
        "averageRating": average_rating(ratings),
        "ratingDistribution": {str(n): ratings.count(n) for n in RATINGS},
        "feedbackWithComments": sum(1 for r in rows if (r.get("comment") or "").strip()),
    }


@with_error_handling
async def get_eligible_charities_for_feedback(user_id: str) -> List[Dict[str, Any]]:
    actor = await get_actor(user_id)
    supported = await donations_db.list_supported_charities(actor.id)
    rated = set(await feedback_db.list_rated_charity_ids(actor.id))
    return [
        {
            "charityId": str(r["id"]),
            "organizationName": r["organization_name"],
            "logoUrl": r.get("logo_url"),
            "donationCount": r["donation_count"],
            "totalDonated": money(r["total_donated"]),
        }
        for r in supported
        if str(r["id"]) not in rated
    ]


@with_error_handling
async def admin_delete_feedback(feedback_id: str, reason: str, admin_id: str) -> bool:
    admin = await require_admin(admin_id, "Only administrators can remove feedback")
    payload = validate_data(AdminDeleteSchema, {"reason": reason})

    feedback = await feedback_db.get_feedback(feedback_id)
    if not feedback:
        raise not_found("Feedback")

    deleted = await feedback_db.delete_feedback(feedback_id)
    await audit_service.log_audit_event(
        admin.id, audit_service.CHARITY_FEEDBACK_ADMIN_DELETED, "charity_feedback", feedback_id,
        {"charity_id": str(feedback["charity_id"]), "donor_id": str(feedback["donor_id"]),
         "rating": feedback["rating"], "reason": payload.reason},
    )
    logger.info(f"Feedback {feedback_id} removed by admin {admin.id}: {payload.reason}")
    return deleted
