"""
Charity withdrawals out of the available balance.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from database.db import get_connection, transaction

logger = logging.getLogger(__name__)


async def create_withdrawal(charity_id: str, amount: Decimal, bank_name: str, account_last4: str,
                            account_holder: str, reference: str) -> Optional[Dict]:
    """Deduct the balance and record the transfer; None if the balance is short"""
    async with transaction() as db:
        balance = await db.fetchval(
            "SELECT available_balance FROM charities WHERE id = $1 FOR UPDATE", charity_id
        )
        if balance is None or balance < amount:
            return None

        await db.execute("""
            UPDATE charities
            SET available_balance = available_balance - $2,
                total_withdrawn = total_withdrawn + $2,
                updated_at = NOW()
            WHERE id = $1
        """, charity_id, amount)

        return await db.fetchrow("""
            INSERT INTO withdrawal_transactions
                (charity_id, amount, bank_name, bank_account_last4, account_holder,
                 transaction_reference, status, processed_at)
            VALUES ($1, $2, $3, $4, $5, $6, 'completed', NOW())
            RETURNING *
        """, charity_id, amount, bank_name, account_last4, account_holder, reference)


async def list_by_charity(charity_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch("""
            SELECT * FROM withdrawal_transactions
            WHERE charity_id = $1
            ORDER BY processed_at DESC
        """, charity_id)
