"""
Withdrawal Service - charities moving released funds to their bank
"""
import logging
import secrets
import string
import time
from typing import Any, Dict, List

import config
from core.errors import ErrorCode, PlatformError, forbidden, not_found, with_error_handling
from core.validation import WithdrawalRequestSchema, validate_data
from database import charities as charities_db
from database import withdrawals as withdrawals_db
from models import Charity, WithdrawalTransaction
from models.base import money
from services import audit_service, notification_service
from services.access import get_actor

logger = logging.getLogger(__name__)

_REF_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference() -> str:
    suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(6))
    return f"WTX-{int(time.time() * 1000)}-{suffix}"


def _insufficient(available) -> PlatformError:
    return PlatformError(
        ErrorCode.INSUFFICIENT_FUNDS,
        f"Insufficient balance. Available: ₱{money(available):,.2f}",
        400,
        {"availableBalance": money(available)},
    )


async def _owned_charity(charity_id: str, current_user_id: str) -> Charity:
    row = await charities_db.get_charity(charity_id)
    if not row:
        raise not_found("Charity")
    charity = Charity.from_db_row(row)
    actor = await get_actor(current_user_id)
    if actor.id != charity.user_id:
        raise forbidden("You can only manage withdrawals for your own charity")
    return charity


@with_error_handling
async def process_withdrawal(charity_id: str, amount, bank_details: Dict, current_user_id: str) -> Dict[str, Any]:
    charity = await _owned_charity(charity_id, current_user_id)
    payload = validate_data(WithdrawalRequestSchema, {**(bank_details or {}), "amount": amount})

    if payload.amount > charity.available_balance:
        raise _insufficient(charity.available_balance)
    if payload.amount < config.MIN_WITHDRAWAL_AMOUNT:
        raise PlatformError(
            ErrorCode.VALIDATION_ERROR,
            f"Minimum withdrawal amount is ₱{config.MIN_WITHDRAWAL_AMOUNT}",
            400,
            {"field": "amount"},
        )

    reference = generate_reference()
    row = await withdrawals_db.create_withdrawal(
        charity_id, payload.amount, payload.bank_name, payload.account_number[-4:],
        payload.account_holder, reference,
    )
    if not row:
        # Balance moved between the check and the locked update
        refreshed = await charities_db.get_charity(charity_id)
        raise _insufficient(refreshed["available_balance"] if refreshed else 0)

    withdrawal = WithdrawalTransaction.from_db_row(row)
    await notification_service.create_notification(
        charity.user_id, "withdrawal_processed", "Withdrawal processed",
        f"₱{money(payload.amount):,.2f} was sent to {payload.bank_name} account "
        f"ending in {withdrawal.bank_account_last4}. Reference: {reference}",
        action_url="/charity/funds", metadata={"withdrawal_id": withdrawal.id, "reference": reference},
    )
    await audit_service.log_audit_event(
        charity.user_id, audit_service.WITHDRAWAL_PROCESSED, "withdrawal", withdrawal.id,
        {"charity_id": charity_id, "amount": money(payload.amount), "reference": reference,
         "bank_name": payload.bank_name},
    )
    logger.info(f"Withdrawal {reference}: {payload.amount} from charity {charity_id}")
    return withdrawal.to_dict()


@with_error_handling
async def get_withdrawal_history(charity_id: str, current_user_id: str) -> List[Dict[str, Any]]:
    await _owned_charity(charity_id, current_user_id)
    rows = await withdrawals_db.list_by_charity(charity_id)
    return [WithdrawalTransaction.from_db_row(r).to_dict() for r in rows]
