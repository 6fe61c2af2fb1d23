"""
Fund disbursements: seed and milestone releases into a charity's balance.

Each release locks the row it is keyed on, re-checks that nothing was
released yet, then writes the disbursement, the campaign/milestone markers
and the charity balance in one transaction.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from database.db import get_connection, transaction

logger = logging.getLogger(__name__)


async def get_seed_disbursement(campaign_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            SELECT * FROM fund_disbursements
            WHERE campaign_id = $1 AND disbursement_type = 'seed'
        """, campaign_id)


async def release_seed(campaign_id: str, amount: Decimal, admin_id: str,
                       notes: Optional[str] = None) -> Optional[Dict]:
    """Returns the disbursement row, or None if a seed release already exists"""
    async with transaction() as db:
        campaign = await db.fetchrow(
            "SELECT id, charity_id, seed_released_at FROM campaigns WHERE id = $1 FOR UPDATE",
            campaign_id
        )
        if not campaign or campaign["seed_released_at"] is not None:
            return None

        disbursement = await db.fetchrow("""
            INSERT INTO fund_disbursements
                (campaign_id, charity_id, amount, disbursement_type, status, approved_by, notes)
            VALUES ($1, $2, $3, 'seed', 'completed', $4, $5)
            RETURNING *
        """, campaign_id, campaign["charity_id"], amount, admin_id, notes)

        await db.execute("""
            UPDATE campaigns
            SET seed_amount_released = $2, seed_released_at = NOW(), updated_at = NOW()
            WHERE id = $1
        """, campaign_id, amount)

        await db.execute("""
            UPDATE charities
            SET available_balance = available_balance + $2,
                total_received = total_received + $2,
                updated_at = NOW()
            WHERE id = $1
        """, campaign["charity_id"], amount)

    logger.info(f"Seed release: campaign {campaign_id} -> {amount}")
    return disbursement


async def release_milestone(milestone_id: str, amount: Decimal, admin_id: str,
                            notes: Optional[str] = None) -> Optional[Dict]:
    """Returns the disbursement row, or None if the milestone was already paid out"""
    async with transaction() as db:
        milestone = await db.fetchrow("""
            SELECT m.id, m.campaign_id, m.funds_released, c.charity_id
            FROM milestones m
            JOIN campaigns c ON c.id = m.campaign_id
            WHERE m.id = $1
            FOR UPDATE OF m
        """, milestone_id)
        if not milestone or milestone["funds_released"]:
            return None

        disbursement = await db.fetchrow("""
            INSERT INTO fund_disbursements
                (campaign_id, charity_id, milestone_id, amount, disbursement_type, status, approved_by, notes)
            VALUES ($1, $2, $3, $4, 'milestone', 'completed', $5, $6)
            RETURNING *
        """, milestone["campaign_id"], milestone["charity_id"], milestone_id, amount, admin_id, notes)

        await db.execute("""
            UPDATE milestones
            SET funds_released = TRUE, released_amount = $2, updated_at = NOW()
            WHERE id = $1
        """, milestone_id, amount)

        await db.execute("""
            UPDATE campaigns
            SET milestone_amount_released = milestone_amount_released + $2, updated_at = NOW()
            WHERE id = $1
        """, milestone["campaign_id"], amount)

        await db.execute("""
            UPDATE charities
            SET available_balance = available_balance + $2,
                total_received = total_received + $2,
                updated_at = NOW()
            WHERE id = $1
        """, milestone["charity_id"], amount)

    logger.info(f"Milestone release: milestone {milestone_id} -> {amount}")
    return disbursement


async def list_by_campaign(campaign_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT * FROM fund_disbursements WHERE campaign_id = $1 ORDER BY created_at DESC",
            campaign_id
        )


async def list_by_charity(charity_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch("""
            SELECT d.*, c.title AS campaign_title, m.title AS milestone_title
            FROM fund_disbursements d
            JOIN campaigns c ON c.id = d.campaign_id
            LEFT JOIN milestones m ON m.id = d.milestone_id
            WHERE d.charity_id = $1
            ORDER BY d.created_at DESC
        """, charity_id)
