"""
Charity feedback queries (donor ratings of charities).
"""
import logging
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, build_set_clause

logger = logging.getLogger(__name__)

FEEDBACK_WITH_DONOR = """
    SELECT f.*, p.full_name AS donor_name, p.avatar_url AS donor_avatar_url,
           ch.organization_name AS charity_name
    FROM charity_feedback f
    JOIN profiles p ON p.id = f.donor_id
    JOIN charities ch ON ch.id = f.charity_id
"""


async def get_feedback(feedback_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(f"{FEEDBACK_WITH_DONOR} WHERE f.id = $1", feedback_id)


async def get_donor_feedback(donor_id: str, charity_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(
            "SELECT * FROM charity_feedback WHERE donor_id = $1 AND charity_id = $2",
            donor_id, charity_id
        )


async def create_feedback(charity_id: str, donor_id: str, rating: int, comment: Optional[str]) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO charity_feedback (charity_id, donor_id, rating, comment)
            VALUES ($1, $2, $3, $4)
            RETURNING *
        """, charity_id, donor_id, rating, comment)


async def update_feedback(feedback_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, {"rating", "comment"}, start=2)
    if not clause:
        return await get_feedback(feedback_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE charity_feedback SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            feedback_id, *values
        )


async def delete_feedback(feedback_id: str) -> bool:
    async with get_connection() as db:
        result = await db.execute("DELETE FROM charity_feedback WHERE id = $1", feedback_id)
    return result == "DELETE 1"


async def list_feedback(filters: Dict, limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = [], []
    if filters.get("charity_id"):
        args.append(filters["charity_id"])
        conditions.append(f"f.charity_id = ${len(args)}")
    if filters.get("donor_id"):
        args.append(filters["donor_id"])
        conditions.append(f"f.donor_id = ${len(args)}")
    if filters.get("rating"):
        args.append(int(filters["rating"]))
        conditions.append(f"f.rating = ${len(args)}")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM charity_feedback f {where}", *args)
        rows = await db.fetch(f"""
            {FEEDBACK_WITH_DONOR}
            {where}
            ORDER BY f.created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def list_charity_ratings(charity_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT rating, comment FROM charity_feedback WHERE charity_id = $1",
            charity_id
        )


async def list_rated_charity_ids(donor_id: str) -> List[str]:
    async with get_connection() as db:
        rows = await db.fetch(
            "SELECT charity_id FROM charity_feedback WHERE donor_id = $1", donor_id
        )
    return [str(r["charity_id"]) for r in rows]
