"""
Campaign Service

Campaign lifecycle: creation with milestones, edits, listing and the
status state machine. Allowed status moves live in STATUS_TRANSITIONS;
anything not listed there is rejected.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

import config
from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.event_bus import event_bus, CAMPAIGN_STATUS_CHANGED
from core.validation import (
    CampaignCreateSchema, CampaignFilterSchema, CampaignStatusSchema, CampaignUpdateSchema,
    validate_campaign_dates, validate_campaign_window, validate_data, validate_milestone_amounts,
)
from database import campaigns as campaigns_db
from database import charities as charities_db
from database import donations as donations_db
from database import milestones as milestones_db
from database.db import paginate
from models import Campaign, Charity, Donation
from models.base import money
from services import audit_service, category_service
from services.access import get_actor

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: Dict[str, List[str]] = {
    "draft": ["pending", "cancelled"],
    "pending": ["active", "draft", "cancelled"],
    "active": ["paused", "completed", "cancelled"],
    "paused": ["active", "cancelled"],
    "completed": [],
    "cancelled": [],
}

# Approving or returning a submitted campaign is an admin decision
ADMIN_ONLY_TRANSITIONS = {("pending", "active"), ("pending", "draft")}

LOCKED_STATUSES = ("completed", "cancelled")

RECENT_DONATIONS_LIMIT = 10


def can_transition(current: str, new: str) -> bool:
    return new in STATUS_TRANSITIONS.get(current, [])


async def _load(campaign_id: str, with_milestones: bool = False) -> Campaign:
    row = await campaigns_db.get_campaign(campaign_id)
    if not row:
        raise not_found("Campaign")
    milestones = await milestones_db.list_by_campaign(campaign_id) if with_milestones else None
    return Campaign.from_db_row(row, milestones)


@with_error_handling
async def create_campaign(data: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    charity_row = await charities_db.get_charity_by_user(actor.id)
    if not charity_row:
        raise forbidden("You must register a charity before creating campaigns")
    charity = Charity.from_db_row(charity_row)
    if not charity.is_approved:
        raise forbidden("Your charity must be verified before creating campaigns")

    payload = validate_data(CampaignCreateSchema, data)
    start_date, end_date = validate_campaign_dates(payload.start_date, payload.end_date)
    validate_milestone_amounts(payload.milestones, payload.goal_amount)
    if payload.category:
        await category_service.ensure_active_category(payload.category)

    fields = payload.model_dump(exclude={"milestones"})
    fields.update(start_date=start_date, end_date=end_date)
    milestones = [m.model_dump() for m in payload.milestones]
    row, milestone_rows = await campaigns_db.create_campaign(charity.id, fields, milestones)
    campaign = Campaign.from_db_row(row, milestone_rows)

    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_CREATED, "campaign", campaign.id,
        {"title": campaign.title, "goal_amount": money(campaign.goal_amount),
         "milestones": len(milestone_rows)},
    )
    logger.info(f"Campaign created: {campaign.title} ({campaign.id}) by charity {charity.id}")
    return campaign.to_dict()


@with_error_handling
async def get_campaign_by_id(campaign_id: str, include_relations: bool = True) -> Dict[str, Any]:
    return (await _load(campaign_id, with_milestones=include_relations)).to_dict()


@with_error_handling
async def update_campaign(campaign_id: str, updates: Dict, current_user_id: str) -> Dict[str, Any]:
    campaign = await _load(campaign_id)
    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != campaign.owner_id:
        raise forbidden("You can only update your own campaigns")
    if campaign.status in LOCKED_STATUSES:
        raise PlatformError(ErrorCode.INVALID_STATUS,
                            f"Cannot edit a {campaign.status} campaign", 400)

    payload = validate_data(CampaignUpdateSchema, updates)
    changes = payload.changes()

    if "start_date" in changes or "end_date" in changes:
        start_date, end_date = validate_campaign_dates(changes.get("start_date"), changes.get("end_date"))
        for key, value in (("start_date", start_date), ("end_date", end_date)):
            if key in changes:
                changes[key] = value
        start = changes.get("start_date", campaign.start_date)
        end = changes.get("end_date", campaign.end_date)
        if start and end:
            validate_campaign_window(start, end)
    if "goal_amount" in changes:
        milestones = await milestones_db.list_by_campaign(campaign_id)
        validate_milestone_amounts(milestones, changes["goal_amount"])
    if changes.get("category"):
        await category_service.ensure_active_category(changes["category"])

    if not await campaigns_db.update_campaign(campaign_id, changes):
        raise not_found("Campaign")
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_UPDATED, "campaign", campaign_id, {"fields": sorted(changes)}
    )
    return (await _load(campaign_id)).to_dict()


@with_error_handling
async def list_campaigns(filters: Optional[Dict] = None, page: int = 1, limit: int = 20,
                         sort_by: str = "created_at", sort_order: str = "desc") -> Tuple[list, int]:
    payload = validate_data(CampaignFilterSchema, filters or {})
    limit, offset = paginate(page, limit)
    rows, total = await campaigns_db.list_campaigns(
        payload.model_dump(exclude_none=True), limit, offset, sort_by, sort_order
    )
    return [Campaign.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_campaigns_by_charity(charity_id: str, page: int = 1, limit: int = 20,
                                   current_user_id: Optional[str] = None) -> Tuple[list, int]:
    charity_row = await charities_db.get_charity(charity_id)
    if not charity_row:
        raise not_found("Charity")

    filters: Dict[str, Any] = {"charity_id": charity_id}
    is_owner_or_admin = False
    if current_user_id:
        actor = await get_actor(current_user_id)
        is_owner_or_admin = actor.is_admin or actor.id == str(charity_row["user_id"])
    if not is_owner_or_admin:
        filters["status"] = ["active"]

    limit, offset = paginate(page, limit)
    rows, total = await campaigns_db.list_campaigns(filters, limit, offset)
    return [Campaign.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def update_campaign_status(campaign_id: str, status: str, current_user_id: str) -> Dict[str, Any]:
    payload = validate_data(CampaignStatusSchema, {"status": status})
    campaign = await _load(campaign_id)
    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != campaign.owner_id:
        raise forbidden("You can only change the status of your own campaigns")

    old_status, new_status = campaign.status, payload.status
    if not can_transition(old_status, new_status):
        raise PlatformError(
            ErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change campaign status from {old_status} to {new_status}",
            400,
            {"from": old_status, "to": new_status, "allowed": STATUS_TRANSITIONS.get(old_status, [])},
        )
    if (old_status, new_status) in ADMIN_ONLY_TRANSITIONS and not actor.is_admin:
        raise forbidden("Only administrators can approve or return submitted campaigns")

    row = await campaigns_db.set_status(campaign_id, new_status)
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_STATUS_UPDATE, "campaign", campaign_id,
        {"old_status": old_status, "new_status": new_status},
    )
    await event_bus.emit(CAMPAIGN_STATUS_CHANGED, {
        "campaign_id": campaign_id, "old_status": old_status, "new_status": new_status,
    })
    logger.info(f"Campaign {campaign_id} status: {old_status} -> {new_status}")

    campaign.status = row["status"] if row else new_status
    return campaign.to_dict()


@with_error_handling
async def delete_campaign(campaign_id: str, current_user_id: str) -> bool:
    campaign = await _load(campaign_id)
    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != campaign.owner_id:
        raise forbidden("You can only delete your own campaigns")
    if campaign.status != "draft" and campaign.current_amount > 0:
        raise PlatformError(ErrorCode.DELETION_BLOCKED,
                            "Cannot delete a campaign that has received donations", 400)

    deleted = await campaigns_db.delete_campaign(campaign_id)
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_DELETED, "campaign", campaign_id,
        {"title": campaign.title, "status": campaign.status},
    )
    return deleted


@with_error_handling
async def get_campaign_statistics(campaign_id: str) -> Dict[str, Any]:
    campaign = await _load(campaign_id)
    totals = await donations_db.get_campaign_totals(campaign_id) or {}
    recent, _ = await donations_db.list_completed_by_campaign(campaign_id, RECENT_DONATIONS_LIMIT, 0)

    count = totals.get("total_donations", 0) or 0
    total_amount = Decimal(str(totals.get("total_amount") or 0))
    average = (total_amount / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) if count else Decimal("0")
    return {
        "campaignId": campaign.id,
        "totalDonations": count,
        "uniqueDonors": totals.get("unique_donors", 0) or 0,
        "totalAmount": money(total_amount),
        "averageDonation": money(average),
        "progress": campaign.progress,
        "goalAmount": money(campaign.goal_amount),
        "currentAmount": money(campaign.current_amount),
        "recentDonations": [Donation.from_db_row(r).to_dict(public=True) for r in recent],
    }


@with_error_handling
async def get_suggested_campaigns(page: int = 1, limit: int = 6) -> Tuple[list, int]:
    limit, offset = paginate(page, limit)
    rows, total = await campaigns_db.list_campaigns(
        {"status": ["active"]}, limit, offset, sort_by="current_amount", sort_order="desc"
    )
    return [Campaign.from_db_row(r).to_dict() for r in rows], total


async def process_expired_campaigns(now=None) -> int:
    """Complete every active campaign whose end date has passed"""
    now = now or config.get_now()
    expired = await campaigns_db.get_expired_active(now)
    completed = 0
    for row in expired:
        campaign_id = str(row["id"])
        try:
            await campaigns_db.set_status(campaign_id, "completed")
        except Exception as e:
            logger.error(f"Failed to complete expired campaign {campaign_id}: {e}")
            continue
        completed += 1
        await audit_service.log_audit_event(
            None, audit_service.CAMPAIGN_AUTO_COMPLETED, "campaign", campaign_id,
            {"end_date": row["end_date"], "old_status": "active", "new_status": "completed"},
        )
        await event_bus.emit(CAMPAIGN_STATUS_CHANGED, {
            "campaign_id": campaign_id, "old_status": "active", "new_status": "completed",
        })
    if completed:
        logger.info(f"Completed {completed} expired campaign(s)")
    return completed
