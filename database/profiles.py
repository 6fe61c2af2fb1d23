"""
Profile queries: accounts, roles and per-user donation totals.
"""
import logging
from typing import Dict, List, Optional, Tuple

from database.db import get_connection, build_set_clause, escape_like

logger = logging.getLogger(__name__)

UPDATABLE = {"full_name", "avatar_url", "phone", "role", "is_verified", "is_active"}


async def get_profile(user_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM profiles WHERE id = $1", user_id)


async def get_profile_by_email(email: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM profiles WHERE email = $1", email.lower())


async def create_profile(email: str, password_hash: str, full_name: str, role: str = "donor",
                         is_verified: bool = False) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO profiles (email, password_hash, full_name, role, is_verified)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
        """, email.lower(), password_hash, full_name, role, is_verified)


async def update_profile(user_id: str, fields: Dict) -> Optional[Dict]:
    clause, values = build_set_clause(fields, UPDATABLE, start=2)
    if not clause:
        return await get_profile(user_id)
    async with get_connection() as db:
        return await db.fetchrow(
            f"UPDATE profiles SET {clause}, updated_at = NOW() WHERE id = $1 RETURNING *",
            user_id, *values
        )


async def search_profiles(query: Optional[str], role: Optional[str],
                          limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = [], []
    if query:
        args.append(f"%{escape_like(query)}%")
        conditions.append(f"(full_name ILIKE ${len(args)} OR email ILIKE ${len(args)})")
    if role:
        args.append(role)
        conditions.append(f"role = ${len(args)}")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM profiles {where}", *args)
        rows = await db.fetch(f"""
            SELECT * FROM profiles {where}
            ORDER BY created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def get_donation_totals(user_id: str) -> Dict:
    """Completed-donation totals for one donor"""
    async with get_connection() as db:
        row = await db.fetchrow("""
            SELECT COUNT(*) AS total_donations,
                   COALESCE(SUM(amount), 0) AS total_amount,
                   COUNT(DISTINCT campaign_id) AS campaigns_supported
            FROM donations
            WHERE user_id = $1 AND status = 'completed'
        """, user_id)
    return row or {"total_donations": 0, "total_amount": 0, "campaigns_supported": 0}
