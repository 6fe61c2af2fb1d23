"""
Donation queries, payment-status changes and aggregate statistics.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, transaction

logger = logging.getLogger(__name__)

DONATION_WITH_CAMPAIGN = """
    SELECT d.*,
           c.title AS campaign_title, c.charity_id,
           ch.user_id AS charity_user_id,
           p.full_name AS donor_name
    FROM donations d
    JOIN campaigns c ON c.id = d.campaign_id
    JOIN charities ch ON ch.id = c.charity_id
    LEFT JOIN profiles p ON p.id = d.user_id
"""


async def create_donation(user_id: str, campaign_id: str, amount: Decimal, payment_method: str,
                          transaction_id: str, message: Optional[str], is_anonymous: bool) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO donations
                (user_id, campaign_id, amount, status, payment_method, transaction_id, message, is_anonymous)
            VALUES ($1, $2, $3, 'pending', $4, $5, $6, $7)
            RETURNING *
        """, user_id, campaign_id, amount, payment_method, transaction_id, message, is_anonymous)


async def get_donation(donation_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(f"{DONATION_WITH_CAMPAIGN} WHERE d.id = $1", donation_id)


async def complete_donation(donation_id: str, transaction_id: Optional[str] = None) -> Optional[Dict]:
    """pending -> completed and credit the campaign; None when not pending"""
    async with transaction() as db:
        donation = await db.fetchrow(
            "SELECT * FROM donations WHERE id = $1 FOR UPDATE", donation_id
        )
        if not donation or donation["status"] != "pending":
            return None

        updated = await db.fetchrow("""
            UPDATE donations
            SET status = 'completed', transaction_id = COALESCE($2, transaction_id), updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, donation_id, transaction_id)

        await db.execute("""
            UPDATE campaigns SET current_amount = current_amount + $2, updated_at = NOW()
            WHERE id = $1
        """, donation["campaign_id"], donation["amount"])
    return updated


async def set_status(donation_id: str, status: str, transaction_id: Optional[str] = None) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE donations
            SET status = $2, transaction_id = COALESCE($3, transaction_id), updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, donation_id, status, transaction_id)


async def refund_donation(donation_id: str) -> Optional[Dict]:
    """completed -> refunded and debit the campaign; None when not completed"""
    async with transaction() as db:
        donation = await db.fetchrow(
            "SELECT * FROM donations WHERE id = $1 FOR UPDATE", donation_id
        )
        if not donation or donation["status"] != "completed":
            return None

        updated = await db.fetchrow("""
            UPDATE donations SET status = 'refunded', updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, donation_id)

        await db.execute("""
            UPDATE campaigns
            SET current_amount = GREATEST(current_amount - $2, 0), updated_at = NOW()
            WHERE id = $1
        """, donation["campaign_id"], donation["amount"])
    return updated


async def list_by_donor(user_id: str, limit: int, offset: int) -> Tuple[List[Dict], int]:
    async with get_connection() as db:
        total = await db.fetchval("SELECT COUNT(*) FROM donations WHERE user_id = $1", user_id)
        rows = await db.fetch(f"""
            {DONATION_WITH_CAMPAIGN}
            WHERE d.user_id = $1
            ORDER BY d.created_at DESC
            LIMIT $2 OFFSET $3
        """, user_id, limit, offset)
    return rows, total or 0


async def list_completed_by_campaign(campaign_id: str, limit: int, offset: int) -> Tuple[List[Dict], int]:
    async with get_connection() as db:
        total = await db.fetchval(
            "SELECT COUNT(*) FROM donations WHERE campaign_id = $1 AND status = 'completed'",
            campaign_id
        )
        rows = await db.fetch(f"""
            {DONATION_WITH_CAMPAIGN}
            WHERE d.campaign_id = $1 AND d.status = 'completed'
            ORDER BY d.created_at DESC
            LIMIT $2 OFFSET $3
        """, campaign_id, limit, offset)
    return rows, total or 0


async def get_campaign_totals(campaign_id: str) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            SELECT COUNT(*) AS total_donations,
                   COUNT(DISTINCT user_id) AS unique_donors,
                   COALESCE(SUM(amount), 0) AS total_amount
            FROM donations
            WHERE campaign_id = $1 AND status = 'completed'
        """, campaign_id)


async def has_completed_donation(user_id: str, campaign_id: str) -> bool:
    async with get_connection() as db:
        return bool(await db.fetchval("""
            SELECT EXISTS(
                SELECT 1 FROM donations
                WHERE user_id = $1 AND campaign_id = $2 AND status = 'completed'
            )
        """, user_id, campaign_id))


async def has_completed_donation_to_charity(user_id: str, charity_id: str) -> bool:
    async with get_connection() as db:
        return bool(await db.fetchval("""
            SELECT EXISTS(
                SELECT 1 FROM donations d
                JOIN campaigns c ON c.id = d.campaign_id
                WHERE d.user_id = $1 AND c.charity_id = $2 AND d.status = 'completed'
            )
        """, user_id, charity_id))


async def list_supported_charities(user_id: str) -> List[Dict]:
    """Charities the donor has a completed donation with"""
    async with get_connection() as db:
        return await db.fetch("""
            SELECT ch.id, ch.organization_name, ch.logo_url,
                   COUNT(d.id) AS donation_count, SUM(d.amount) AS total_donated
            FROM donations d
            JOIN campaigns c ON c.id = d.campaign_id
            JOIN charities ch ON ch.id = c.charity_id
            WHERE d.user_id = $1 AND d.status = 'completed'
            GROUP BY ch.id, ch.organization_name, ch.logo_url
            ORDER BY ch.organization_name
        """, user_id)


async def get_statistics(user_id: Optional[str] = None, campaign_id: Optional[str] = None) -> Dict:
    """Totals, status counts and monthly buckets, optionally scoped"""
    conditions, args = [], []
    if user_id:
        args.append(user_id)
        conditions.append(f"user_id = ${len(args)}")
    if campaign_id:
        args.append(campaign_id)
        conditions.append(f"campaign_id = ${len(args)}")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    and_where = f"{where} AND" if where else "WHERE"

    async with get_connection() as db:
        by_status = await db.fetch(f"""
            SELECT status, COUNT(*) AS count, COALESCE(SUM(amount), 0) AS amount
            FROM donations {where}
            GROUP BY status
        """, *args)
        by_month = await db.fetch(f"""
            SELECT to_char(date_trunc('month', created_at), 'YYYY-MM') AS month,
                   COUNT(*) AS count, COALESCE(SUM(amount), 0) AS amount
            FROM donations {and_where} status = 'completed'
            GROUP BY 1
            ORDER BY 1
        """, *args)
    return {"by_status": by_status, "by_month": by_month}


async def get_platform_totals() -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            SELECT COUNT(*) AS total_donations, COALESCE(SUM(amount), 0) AS total_amount
            FROM donations WHERE status = 'completed'
        """)
