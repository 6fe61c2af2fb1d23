"""
Charity queries: registration, verification, balances and statistics.
"""
import logging
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, build_set_clause, escape_like

logger = logging.getLogger(__name__)

UPDATABLE = {
    "organization_name", "description", "website_url", "logo_url", "contact_email",
    "contact_phone", "address", "registration_number", "document_urls",
}


async def get_charity(charity_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM charities WHERE id = $1", charity_id)


async def get_charity_by_user(user_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM charities WHERE user_id = $1", user_id)


async def create_charity(user_id: str, fields: Dict) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO charities (
                user_id, organization_name, description, website_url, logo_url,
                contact_email, contact_phone, address, registration_number, document_urls
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING *
        """, user_id, fields["organization_name"], fields.get("description"),
            fields.get("website_url"), fields.get("logo_url"), fields.get("contact_email"),
            fields.get("contact_phone"), fields.get("address"),
            fields.get("registration_number"), fields.get("document_urls") or [])


async def update_charity(charity_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, UPDATABLE, start=2)
    if not clause:
        return await get_charity(charity_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE charities SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            charity_id, *values
        )


async def set_verification(charity_id: str, status: str, notes: Optional[str]) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE charities
            SET verification_status = $2, verification_notes = $3, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, charity_id, status, notes)


async def list_charities(status: Optional[str], search: Optional[str],
                         limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = [], []
    if status:
        args.append(status)
        conditions.append(f"verification_status = ${len(args)}")
    if search:
        args.append(f"%{escape_like(search)}%")
        conditions.append(f"organization_name ILIKE ${len(args)}")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM charities {where}", *args)
        rows = await db.fetch(f"""
            SELECT * FROM charities {where}
            ORDER BY created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def count_active_campaigns(charity_id: str) -> int:
    async with get_connection() as db:
        return await db.fetchval(
            "SELECT COUNT(*) FROM campaigns WHERE charity_id = $1 AND status = 'active'",
            charity_id
        ) or 0


async def delete_charity(charity_id: str) -> bool:
    async with get_connection() as db:
        result = await db.execute("DELETE FROM charities WHERE id = $1", charity_id)
    return result == "DELETE 1"


async def get_statistics(charity_id: str) -> Dict:
    """Aggregates across the charity's campaigns, donations and milestones"""
    async with get_connection() as db:
        campaigns = await db.fetch("""
            SELECT status, COUNT(*) AS count, COALESCE(SUM(current_amount), 0) AS raised
            FROM campaigns WHERE charity_id = $1
            GROUP BY status
        """, charity_id)
        donations = await db.fetchrow("""
            SELECT COUNT(*) AS total_donations, COUNT(DISTINCT d.user_id) AS unique_donors
            FROM donations d
            JOIN campaigns c ON c.id = d.campaign_id
            WHERE c.charity_id = $1 AND d.status = 'completed'
        """, charity_id)
        milestones = await db.fetch("""
            SELECT m.status, COUNT(*) AS count
            FROM milestones m
            JOIN campaigns c ON c.id = m.campaign_id
            WHERE c.charity_id = $1
            GROUP BY m.status
        """, charity_id)
        released = await db.fetchval(
            "SELECT COALESCE(SUM(amount), 0) FROM fund_disbursements WHERE charity_id = $1",
            charity_id
        )
    return {
        "campaigns": campaigns,
        "donations": donations or {"total_donations": 0, "unique_donors": 0},
        "milestones": milestones,
        "released": released or 0,
    }
