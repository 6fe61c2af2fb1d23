"""
Audit log storage and platform-wide counters for the admin dashboard.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from database.db import get_connection

logger = logging.getLogger(__name__)


async def insert_log(user_id: Optional[str], action: str, entity_type: str,
                     entity_id: Optional[str], details: Optional[Dict[str, Any]],
                     ip_address: Optional[str], user_agent: Optional[str]) -> None:
    async with get_connection() as db:
        await db.execute("""
            INSERT INTO audit_logs (user_id, action, entity_type, entity_id, details, ip_address, user_agent)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7)
        """, user_id, action, entity_type, entity_id,
            json.dumps(details or {}, default=str), ip_address, user_agent)


async def list_logs(filters: Dict, limit: int, offset: int) -> Tuple[List[Dict], int]:
    conditions, args = [], []
    for key in ("action", "entity_type", "entity_id", "user_id"):
        if filters.get(key):
            args.append(filters[key])
            conditions.append(f"a.{key} = ${len(args)}")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    async with get_connection() as db:
        total = await db.fetchval(f"SELECT COUNT(*) FROM audit_logs a {where}", *args)
        rows = await db.fetch(f"""
            SELECT a.*, p.email AS user_email, p.full_name AS user_name
            FROM audit_logs a
            LEFT JOIN profiles p ON p.id = a.user_id
            {where}
            ORDER BY a.created_at DESC
            LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}
        """, *args, limit, offset)
    return rows, total or 0


async def get_platform_counts() -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            SELECT
                (SELECT COUNT(*) FROM profiles) AS total_users,
                (SELECT COUNT(*) FROM profiles WHERE role = 'donor') AS total_donors,
                (SELECT COUNT(*) FROM charities) AS total_charities,
                (SELECT COUNT(*) FROM charities WHERE verification_status = 'approved') AS verified_charities,
                (SELECT COUNT(*) FROM charities WHERE verification_status IN ('pending', 'under_review')) AS pending_verifications,
                (SELECT COUNT(*) FROM campaigns) AS total_campaigns,
                (SELECT COUNT(*) FROM campaigns WHERE status = 'active') AS active_campaigns,
                (SELECT COUNT(*) FROM campaigns WHERE status = 'pending') AS pending_campaigns,
                (SELECT COUNT(*) FROM donations WHERE status = 'completed') AS total_donations,
                (SELECT COALESCE(SUM(amount), 0) FROM donations WHERE status = 'completed') AS total_raised,
                (SELECT COUNT(*) FROM milestone_proofs WHERE verification_status = 'pending') AS pending_proofs,
                (SELECT COALESCE(SUM(amount), 0) FROM fund_disbursements) AS total_disbursed
        """)
