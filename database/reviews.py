"""
Campaign review queries.
"""
import logging
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, build_set_clause

logger = logging.getLogger(__name__)

REVIEW_WITH_AUTHOR = """
    SELECT r.*, p.full_name AS user_name, p.avatar_url AS user_avatar_url,
           c.title AS campaign_title
    FROM campaign_reviews r
    JOIN profiles p ON p.id = r.user_id
    JOIN campaigns c ON c.id = r.campaign_id
"""


async def get_review(review_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(f"{REVIEW_WITH_AUTHOR} WHERE r.id = $1", review_id)


async def get_user_review(user_id: str, campaign_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow(
            "SELECT * FROM campaign_reviews WHERE user_id = $1 AND campaign_id = $2",
            user_id, campaign_id
        )


async def create_review(campaign_id: str, user_id: str, rating: int,
                        comment: Optional[str], status: str = "approved") -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO campaign_reviews (campaign_id, user_id, rating, comment, status)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
        """, campaign_id, user_id, rating, comment, status)


async def update_review(review_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, {"rating", "comment"}, start=2)
    if not clause:
        return await get_review(review_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE campaign_reviews SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            review_id, *values
        )


async def delete_review(review_id: str) -> bool:
    async with get_connection() as db:
        result = await db.execute("DELETE FROM campaign_reviews WHERE id = $1", review_id)
    return result == "DELETE 1"


async def moderate_review(review_id: str, status: str, admin_notes: Optional[str],
                          admin_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE campaign_reviews
            SET status = $2, admin_notes = $3, reviewed_by = $4,
                reviewed_at = NOW(), updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """, review_id, status, admin_notes, admin_id)


async def list_reviews(filters: Dict, viewer_id: Optional[str], include_all: bool,
                       limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = [], []
    if filters.get("campaign_id"):
        args.append(filters["campaign_id"])
        conditions.append(f"r.campaign_id = ${len(args)}")
    if filters.get("user_id"):
        args.append(filters["user_id"])
        conditions.append(f"r.user_id = ${len(args)}")
    if filters.get("rating"):
        args.append(int(filters["rating"]))
        conditions.append(f"r.rating = ${len(args)}")
    if filters.get("status"):
        args.append(filters["status"])
        conditions.append(f"r.status = ${len(args)}")
    if not include_all:
        if viewer_id:
            args.append(viewer_id)
            conditions.append(f"(r.status = 'approved' OR r.user_id = ${len(args)})")
        else:
            conditions.append("r.status = 'approved'")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM campaign_reviews r {where}", *args)
        rows = await db.fetch(f"""
            {REVIEW_WITH_AUTHOR}
            {where}
            ORDER BY r.created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def list_campaign_ratings(campaign_id: str) -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT rating, status FROM campaign_reviews WHERE campaign_id = $1",
            campaign_id
        )
