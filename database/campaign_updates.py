"""
Campaign update (news post) queries.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from database.db import get_connection, build_set_clause

logger = logging.getLogger(__name__)

UPDATE_WITH_OWNER = """
    SELECT u.*, ch.user_id AS charity_user_id, ch.organization_name AS charity_name,
           m.title AS milestone_title
    FROM campaign_updates u
    JOIN charities ch ON ch.id = u.charity_id
    LEFT JOIN milestones m ON m.id = u.milestone_id
"""

EDITABLE_FIELDS = {"title", "content", "update_type", "milestone_id", "image_url", "status"}


async def create_update(campaign_id: str, charity_id: str, created_by: str, fields: Dict) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO campaign_updates (
                campaign_id, charity_id, created_by, title, content,
                update_type, milestone_id, image_url, status
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING *
        """, campaign_id, charity_id, created_by, fields["title"], fields["content"],
            fields.get("update_type", "general"), fields.get("milestone_id"),
            fields.get("image_url"), fields.get("status", "published"))


async def get_update(update_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(f"{UPDATE_WITH_OWNER} WHERE u.id = $1", update_id)


async def list_by_campaign(campaign_id: str, statuses: Optional[Sequence[str]],
                           update_type: Optional[str], limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = ["u.campaign_id = $1"], [campaign_id]
    if statuses:
        args.append(list(statuses))
        conditions.append(f"u.status = ANY(${len(args)})")
    if update_type:
        args.append(update_type)
        conditions.append(f"u.update_type = ${len(args)}")
    where = " AND ".join(conditions)

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM campaign_updates u WHERE {where}", *args)
        rows = await db.fetch(f"""
            {UPDATE_WITH_OWNER}
            WHERE {where}
            ORDER BY u.created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def update_update(update_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, EDITABLE_FIELDS, start=2)
    if not clause:
        return await get_update(update_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE campaign_updates SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            update_id, *values
        )


async def delete_update(update_id: str) -> bool:
    async with get_connection() as db:
        result = await db.execute("DELETE FROM campaign_updates WHERE id = $1", update_id)
    return result == "DELETE 1"
