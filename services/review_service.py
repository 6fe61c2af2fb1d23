"""
Review Service - campaign reviews by donors

Only donors with a completed donation to a campaign may review it, once.
Reviews are published immediately; admins can later reject them.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.validation import ReviewCreateSchema, ReviewModerationSchema, ReviewUpdateSchema, validate_data
from database import campaigns as campaigns_db
from database import donations as donations_db
from database import reviews as reviews_db
from database.db import paginate
from models import CampaignReview
from models.base import average_rating
from models.review import RATINGS
from services import audit_service
from services.access import get_actor, require_admin

logger = logging.getLogger(__name__)


async def _own_review(review_id: str, user_id: str) -> Dict:
    review = await reviews_db.get_review(review_id)
    if not review or str(review["user_id"]) != str(user_id):
        raise not_found("Review")
    if review["status"] == "rejected":
        raise forbidden("Rejected reviews cannot be changed")
    return review


@with_error_handling
async def create_review(data: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    payload = validate_data(ReviewCreateSchema, data)

    if not await campaigns_db.get_campaign(payload.campaign_id):
        raise not_found("Campaign")
    if not await donations_db.has_completed_donation(actor.id, payload.campaign_id):
        raise forbidden("You must donate to this campaign before leaving a review")
    if await reviews_db.get_user_review(actor.id, payload.campaign_id):
        raise PlatformError(ErrorCode.DUPLICATE_REVIEW, "You have already reviewed this campaign", 400)

    row = await reviews_db.create_review(payload.campaign_id, actor.id, payload.rating, payload.comment)
    review = CampaignReview.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.REVIEW_CREATED, "campaign_review", review.id,
        {"campaign_id": payload.campaign_id, "rating": payload.rating},
    )
    return review.to_dict()


@with_error_handling
async def update_review(review_id: str, updates: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    await _own_review(review_id, actor.id)
    payload = validate_data(ReviewUpdateSchema, updates)
    changes = payload.changes()

    row = await reviews_db.update_review(review_id, changes)
    await audit_service.log_audit_event(
        actor.id, audit_service.REVIEW_UPDATED, "campaign_review", review_id, {"fields": sorted(changes)}
    )
    return CampaignReview.from_db_row(row).to_dict()


@with_error_handling
async def delete_review(review_id: str, user_id: str) -> bool:
    actor = await get_actor(user_id)
    review = await _own_review(review_id, actor.id)
    deleted = await reviews_db.delete_review(review_id)
    await audit_service.log_audit_event(
        actor.id, audit_service.REVIEW_DELETED, "campaign_review", review_id,
        {"campaign_id": str(review["campaign_id"])},
    )
    return deleted


@with_error_handling
async def get_review_by_id(review_id: str) -> Dict[str, Any]:
    row = await reviews_db.get_review(review_id)
    if not row:
        raise not_found("Review")
    return CampaignReview.from_db_row(row).to_dict()


@with_error_handling
async def list_reviews(filters: Optional[Dict] = None, page: int = 1, limit: int = 20,
                       current_user_id: Optional[str] = None) -> Tuple[list, int]:
    include_all = False
    if current_user_id:
        include_all = (await get_actor(current_user_id)).is_admin
    limit, offset = paginate(page, limit)
    rows, total = await reviews_db.list_reviews(filters or {}, current_user_id, include_all, limit, offset)
    return [CampaignReview.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def moderate_review(review_id: str, status: str, admin_notes: Optional[str], admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can moderate reviews")
    payload = validate_data(ReviewModerationSchema, {"status": status, "admin_notes": admin_notes})

    existing = await reviews_db.get_review(review_id)
    if not existing:
        raise not_found("Review")

    row = await reviews_db.moderate_review(review_id, payload.status, payload.admin_notes, admin.id)
    await audit_service.log_audit_event(
        admin.id, audit_service.REVIEW_MODERATED, "campaign_review", review_id,
        {"old_status": existing["status"], "new_status": payload.status},
    )
    return CampaignReview.from_db_row({**existing, **row}).to_dict()


@with_error_handling
async def get_campaign_review_stats(campaign_id: str) -> Dict[str, Any]:
    rows = await reviews_db.list_campaign_ratings(campaign_id)
    approved = [r["rating"] for r in rows if r["status"] == "approved"]
    return {
        "totalReviews": len(rows),
        "approvedReviews": len(approved),
        "pendingReviews": sum(1 for r in rows if r["status"] == "pending"),
        "averageRating": average_rating(approved),
        "ratingDistribution": {str(n): approved.count(n) for n in RATINGS},
    }
