"""
Donation Service - pledges, payment confirmation, refunds and statistics
"""
import logging
import secrets
import string
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

import config
from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.event_bus import event_bus, DONATION_COMPLETED, DONATION_REFUNDED
from core.validation import DonationCreateSchema, DonationStatusSchema, RefundSchema, validate_data
from database import campaigns as campaigns_db
from database import donations as donations_db
from database.db import paginate
from models import Donation
from models.base import money
from services import audit_service, notification_service
from services.access import get_actor, require_admin

logger = logging.getLogger(__name__)

_TXN_ALPHABET = string.ascii_lowercase + string.digits


def generate_transaction_id() -> str:
    suffix = "".join(secrets.choice(_TXN_ALPHABET) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


def _campaign_inactive(message: str) -> PlatformError:
    return PlatformError(ErrorCode.CAMPAIGN_INACTIVE, message, 400)


@with_error_handling
async def create_donation(data: Dict, user_id: str) -> Dict[str, Any]:
    actor = await get_actor(user_id)
    payload = validate_data(DonationCreateSchema, data)

    campaign = await campaigns_db.get_campaign(payload.campaign_id)
    if not campaign:
        raise not_found("Campaign")
    if campaign["status"] != "active":
        raise _campaign_inactive("This campaign is not currently accepting donations")
    end_date = campaign.get("end_date")
    if end_date and end_date < config.get_now():
        raise _campaign_inactive("This campaign has ended")
    if campaign["current_amount"] >= campaign["goal_amount"]:
        raise _campaign_inactive("This campaign has already reached its goal")

    row = await donations_db.create_donation(
        actor.id, payload.campaign_id, payload.amount, payload.payment_method,
        generate_transaction_id(), payload.message, payload.is_anonymous,
    )
    donation = Donation.from_db_row(row)
    await audit_service.log_audit_event(
        actor.id, audit_service.DONATION_CREATED, "donation", donation.id,
        {"campaign_id": payload.campaign_id, "amount": money(payload.amount),
         "payment_method": payload.payment_method},
    )
    logger.info(f"Donation {donation.id} pending: {payload.amount} to campaign {payload.campaign_id}")
    return donation.to_dict()


@with_error_handling
async def complete_donation(donation_id: str, transaction_id: Optional[str] = None) -> Dict[str, Any]:
    """Payment confirmed: credit the campaign and notify listeners"""
    existing = await donations_db.get_donation(donation_id)
    if not existing:
        raise not_found("Donation")

    row = await donations_db.complete_donation(donation_id, transaction_id)
    if not row:
        raise PlatformError(ErrorCode.INVALID_STATUS,
                            f"Only pending donations can be completed (current: {existing['status']})", 400)

    donation = Donation.from_db_row({**existing, **row})
    await event_bus.emit(DONATION_COMPLETED, {
        "campaign_id": donation.campaign_id,
        "donation": donation.to_dict(public=True),
    })
    await notification_service.create_notification(
        donation.user_id, "donation_completed", "Thank you for your donation",
        f"Your donation of ₱{money(donation.amount):,.2f} to \"{donation.campaign_title}\" was received.",
        action_url=f"/campaigns/{donation.campaign_id}", metadata={"donation_id": donation.id},
    )
    logger.info(f"Donation {donation_id} completed")
    return donation.to_dict()


@with_error_handling
async def update_donation_status(donation_id: str, status: str, transaction_id: Optional[str],
                                 admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can update donation status")
    payload = validate_data(DonationStatusSchema, {"status": status, "transaction_id": transaction_id})

    existing = await donations_db.get_donation(donation_id)
    if not existing:
        raise not_found("Donation")

    if payload.status == "completed":
        result = await complete_donation(donation_id, payload.transaction_id)
    elif payload.status == "refunded":
        raise PlatformError(ErrorCode.INVALID_STATUS, "Use the refund operation to refund a donation", 400)
    else:
        if existing["status"] != "pending":
            raise PlatformError(ErrorCode.INVALID_STATUS,
                                f"Cannot change donation status from {existing['status']} to {payload.status}", 400)
        row = await donations_db.set_status(donation_id, payload.status, payload.transaction_id)
        result = Donation.from_db_row({**existing, **row}).to_dict()

    await audit_service.log_audit_event(
        admin.id, audit_service.DONATION_STATUS_UPDATE, "donation", donation_id,
        {"old_status": existing["status"], "new_status": payload.status},
    )
    return result


@with_error_handling
async def refund_donation(donation_id: str, reason: str, admin_id: str) -> Dict[str, Any]:
    admin = await require_admin(admin_id, "Only administrators can refund donations")
    payload = validate_data(RefundSchema, {"reason": reason})

    existing = await donations_db.get_donation(donation_id)
    if not existing:
        raise not_found("Donation")
    if existing["status"] != "completed":
        raise PlatformError(ErrorCode.INVALID_STATUS, "Only completed donations can be refunded", 400)

    row = await donations_db.refund_donation(donation_id)
    if not row:
        raise PlatformError(ErrorCode.INVALID_STATUS, "Only completed donations can be refunded", 400)

    donation = Donation.from_db_row({**existing, **row})
    await audit_service.log_audit_event(
        admin.id, audit_service.DONATION_REFUNDED, "donation", donation_id,
        {"amount": money(donation.amount), "campaign_id": donation.campaign_id, "reason": payload.reason},
    )
    await event_bus.emit(DONATION_REFUNDED, {
        "campaign_id": donation.campaign_id, "donation_id": donation.id, "amount": money(donation.amount),
    })
    await notification_service.create_notification(
        donation.user_id, "donation_refunded", "Donation refunded",
        f"Your donation of ₱{money(donation.amount):,.2f} has been refunded. Reason: {payload.reason}",
        metadata={"donation_id": donation.id},
    )
    return donation.to_dict()


@with_error_handling
async def get_donation_by_id(donation_id: str, current_user_id: str) -> Dict[str, Any]:
    row = await donations_db.get_donation(donation_id)
    if not row:
        raise not_found("Donation")
    donation = Donation.from_db_row(row)

    actor = await get_actor(current_user_id)
    if actor.is_admin or actor.id == donation.user_id:
        return donation.to_dict()
    if actor.id == donation.charity_user_id:
        return donation.to_dict(public=True)
    raise forbidden("You do not have permission to view this donation")


@with_error_handling
async def get_donations_by_donor(donor_id: str, page: int, limit: int, current_user_id: str) -> Tuple[list, int]:
    actor = await get_actor(current_user_id)
    if not actor.is_admin and actor.id != str(donor_id):
        raise forbidden("You can only view your own donations")
    limit, offset = paginate(page, limit)
    rows, total = await donations_db.list_by_donor(donor_id, limit, offset)
    return [Donation.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def get_donations_by_campaign(campaign_id: str, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    limit, offset = paginate(page, limit)
    rows, total = await donations_db.list_completed_by_campaign(campaign_id, limit, offset)
    return [Donation.from_db_row(r).to_dict(public=True) for r in rows], total


@with_error_handling
async def get_donation_statistics(current_user_id: str, campaign_id: Optional[str] = None) -> Dict[str, Any]:
    actor = await get_actor(current_user_id)
    scope_user = None if actor.is_admin else actor.id
    stats = await donations_db.get_statistics(user_id=scope_user, campaign_id=campaign_id)

    by_status = {r["status"]: {"count": r["count"], "amount": money(r["amount"])} for r in stats["by_status"]}
    completed = by_status.get("completed", {"count": 0, "amount": 0.0})
    count = completed["count"]
    average = Decimal("0")
    if count:
        average = (Decimal(str(completed["amount"])) / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return {
        "totalDonations": count,
        "totalAmount": money(completed["amount"]),
        "averageDonation": money(average),
        "byStatus": {s: by_status.get(s, {"count": 0, "amount": 0.0})
                     for s in ("pending", "completed", "failed", "refunded")},
        "byMonth": [
            {"month": r["month"], "count": r["count"], "amount": money(r["amount"])}
            for r in stats["by_month"]
        ],
    }
