"""
Campaign queries: creation with milestones, filtered listing, status changes.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, transaction, build_set_clause, escape_like

logger = logging.getLogger(__name__)

UPDATABLE = {
    "title", "description", "goal_amount", "image_url", "start_date", "end_date",
    "category", "location",
}

SORTABLE = {"created_at", "updated_at", "goal_amount", "current_amount", "end_date", "title"}

CAMPAIGN_WITH_CHARITY = """
    SELECT c.*,
           ch.organization_name AS charity_name,
           ch.logo_url AS charity_logo_url,
           ch.verification_status AS charity_verification_status,
           ch.user_id AS charity_user_id
    FROM campaigns c
    JOIN charities ch ON ch.id = c.charity_id
"""


async def create_campaign(charity_id: str, fields: Dict, milestones: List[Dict]) -> Tuple[Dict, List[Dict]]:
    """Insert a draft campaign and its milestones in one transaction"""
    async with transaction() as db:
        campaign = await db.fetchrow("""
            INSERT INTO campaigns (
                charity_id, title, description, goal_amount, image_url,
                start_date, end_date, category, location, status
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'draft')
            RETURNING *
        """, charity_id, fields["title"], fields["description"], fields["goal_amount"],
            fields.get("image_url"), fields.get("start_date"), fields.get("end_date"),
            fields.get("category"), fields.get("location"))

        rows = []
        for m in milestones:
            rows.append(await db.fetchrow("""
                INSERT INTO milestones (campaign_id, title, description, target_amount, evidence_description)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING *
            """, campaign["id"], m["title"], m["description"], m["target_amount"],
                m.get("evidence_description")))
    return campaign, rows


async def get_campaign(campaign_id: str) -> Optional[Dict]:
    """Campaign row joined with its charity's name, status and owner"""
    async with get_connection() as db:
        return await db.fetchrow(f"{CAMPAIGN_WITH_CHARITY} WHERE c.id = $1", campaign_id)


async def update_campaign(campaign_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, UPDATABLE, start=2)
    if not clause:
        return await get_campaign(campaign_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE campaigns SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            campaign_id, *values
        )


async def set_status(campaign_id: str, status: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE campaigns SET status = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, campaign_id, status)


async def delete_campaign(campaign_id: str) -> bool:
    async with get_connection() as db:
        result = await db.execute("DELETE FROM campaigns WHERE id = $1", campaign_id)
    return result == "DELETE 1"


async def list_campaigns(filters: Dict, limit: int, offset: int,
                         sort_by: str = "created_at", sort_order: str = "desc") -> Tuple[List[Dict], int]:
    conditions, args = [], []

    def add(condition: str, value):
        args.append(value)
        conditions.append(condition.format(n=len(args)))

    if filters.get("status"):
        add("c.status = ANY(${n}::text[])", list(filters["status"]))
    if filters.get("category"):
        add("c.category = ANY(${n}::text[])", list(filters["category"]))
    if filters.get("location"):
        add("c.location = ANY(${n}::text[])", list(filters["location"]))
    if filters.get("min_goal") is not None:
        add("c.goal_amount >= ${n}", filters["min_goal"])
    if filters.get("max_goal") is not None:
        add("c.goal_amount <= ${n}", filters["max_goal"])
    if filters.get("charity_id"):
        add("c.charity_id = ${n}", filters["charity_id"])
    if filters.get("search"):
        add("(c.title ILIKE ${n} OR c.description ILIKE ${n})", f"%{escape_like(filters['search'])}%")

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    column = sort_by if sort_by in SORTABLE else "created_at"
    direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM campaigns c {where}", *args)
        rows = await db.fetch(f"""
            {CAMPAIGN_WITH_CHARITY}
            {where}
            ORDER BY c.{column} {direction}, c.id
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def get_expired_active(now: datetime) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch("""
            SELECT * FROM campaigns
            WHERE status = 'active' AND end_date IS NOT NULL AND end_date < $1
            ORDER BY end_date
        """, now)


async def count_by_status() -> Dict[str, int]:
    async with get_connection() as db:
        rows = await db.fetch("SELECT status, COUNT(*) AS count FROM campaigns GROUP BY status")
    return {r["status"]: r["count"] for r in rows}
