"""
In-app notifications.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from database.db import get_connection

logger = logging.getLogger(__name__)


async def insert_notification(user_id: str, type: str, title: str, message: str,
                              action_url: Optional[str], metadata: Optional[Dict[str, Any]]) -> Dict:
    async with get_connection() as db:
        return await db.fetchrow("""
            INSERT INTO notifications (user_id, type, title, message, action_url, metadata)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            RETURNING *
        """, user_id, type, title, message, action_url, json.dumps(metadata or {}, default=str))


async def list_notifications(user_id: str, unread_only: bool, limit: int, offset: int) -> Tuple[List[Dict], int]:
    condition = "AND is_read = FALSE" if unread_only else ""
    async with get_connection() as db:
        total = await db.fetchval(
            f"SELECT COUNT(*) FROM notifications WHERE user_id = $1 {condition}", user_id
        )
        rows = await db.fetch(f"""
            SELECT * FROM notifications
            WHERE user_id = $1 {condition}
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
        """, user_id, limit, offset)
    return rows, total or 0


async def mark_read(notification_id: str, user_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("""
            UPDATE notifications SET is_read = TRUE
            WHERE id = $1 AND user_id = $2
            RETURNING *
        """, notification_id, user_id)


async def mark_all_read(user_id: str) -> int:
    async with get_connection() as db:
        result = await db.execute(
            "UPDATE notifications SET is_read = TRUE WHERE user_id = $1 AND is_read = FALSE",
            user_id
        )
    # "UPDATE <n>"
    return int(result.split()[-1]) if result else 0
