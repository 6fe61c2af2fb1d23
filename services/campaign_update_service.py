"""
Campaign Update Service - news posts charities publish on their campaigns

Only the owning charity posts updates. Everyone sees published updates;
the owner and admins also see drafts and archived posts.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from core.errors import forbidden, not_found, validation_error, with_error_handling
from core.validation import CampaignPostEditSchema, CampaignPostSchema, validate_data
from database import campaign_updates as updates_db
from database import campaigns as campaigns_db
from database import milestones as milestones_db
from database.db import paginate
from models import Campaign, CampaignUpdate
from services import audit_service
from services.access import get_actor, require_owner_or_admin

logger = logging.getLogger(__name__)

PUBLIC_STATUSES = ("published",)


async def _load_campaign(campaign_id: str) -> Campaign:
    row = await campaigns_db.get_campaign(campaign_id)
    if not row:
        raise not_found("Campaign")
    return Campaign.from_db_row(row)


async def _check_milestone(milestone_id: Optional[str], campaign_id: str) -> None:
    if not milestone_id:
        return
    milestone = await milestones_db.get_milestone(milestone_id)
    if not milestone or str(milestone["campaign_id"]) != str(campaign_id):
        raise validation_error("milestoneId", "Milestone does not belong to this campaign")


@with_error_handling
async def create_campaign_update(campaign_id: str, data: Dict, user_id: str) -> Dict[str, Any]:
    campaign = await _load_campaign(campaign_id)
    actor = await get_actor(user_id)
    if actor.id != campaign.owner_id:
        raise forbidden("You can only create updates for your own campaigns")

    payload = validate_data(CampaignPostSchema, data)
    await _check_milestone(payload.milestone_id, campaign_id)

    row = await updates_db.create_update(campaign_id, campaign.charity_id, actor.id, payload.model_dump())
    post = CampaignUpdate.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_UPDATE_POSTED, "campaign_update", post.id,
        {"campaign_id": campaign_id, "update_type": post.update_type},
    )
    logger.info(f"Campaign update {post.id} posted on {campaign_id}")
    return post.to_dict()


@with_error_handling
async def get_campaign_updates(campaign_id: str, page: int = 1, limit: int = 20,
                               update_type: Optional[str] = None,
                               current_user_id: Optional[str] = None) -> Tuple[list, int]:
    campaign = await _load_campaign(campaign_id)
    statuses = PUBLIC_STATUSES
    if current_user_id:
        actor = await get_actor(current_user_id)
        if actor.is_admin or actor.id == campaign.owner_id:
            statuses = None

    limit, offset = paginate(page, limit)
    rows, total = await updates_db.list_by_campaign(campaign_id, statuses, update_type, limit, offset)
    return [CampaignUpdate.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def update_campaign_update(update_id: str, updates: Dict, user_id: str) -> Dict[str, Any]:
    existing = await updates_db.get_update(update_id)
    if not existing:
        raise not_found("Campaign update")
    actor = await require_owner_or_admin(user_id, existing["charity_user_id"],
                                         "You can only edit updates for your own campaigns")

    changes = validate_data(CampaignPostEditSchema, updates).changes()
    update_type = changes.get("update_type", existing["update_type"])
    milestone_id = changes.get("milestone_id", existing["milestone_id"])
    if update_type == "milestone" and not milestone_id:
        raise validation_error("milestoneId", "Milestone updates must reference a milestone")
    if "milestone_id" in changes:
        await _check_milestone(changes["milestone_id"], existing["campaign_id"])

    row = await updates_db.update_update(update_id, changes)
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_UPDATE_EDITED, "campaign_update", update_id,
        {"fields": sorted(changes)},
    )
    return CampaignUpdate.from_db_row({**existing, **row}).to_dict()


@with_error_handling
async def delete_campaign_update(update_id: str, user_id: str) -> bool:
    existing = await updates_db.get_update(update_id)
    if not existing:
        raise not_found("Campaign update")
    actor = await require_owner_or_admin(user_id, existing["charity_user_id"],
                                         "You can only delete updates for your own campaigns")

    deleted = await updates_db.delete_update(update_id)
    await audit_service.log_audit_event(
        actor.id, audit_service.CAMPAIGN_UPDATE_DELETED, "campaign_update", update_id,
        {"campaign_id": str(existing["campaign_id"])},
    )
    return deleted
