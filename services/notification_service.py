"""
Notification Service - in-app notices to users
"""
import logging
from typing import Any, Dict, Optional, Tuple

from core.errors import not_found, with_error_handling
from database import notifications as notifications_db
from database.db import paginate
from models import Notification

logger = logging.getLogger(__name__)


async def create_notification(user_id: str, type: str, title: str, message: str,
                              action_url: Optional[str] = None,
                              metadata: Optional[Dict[str, Any]] = None) -> Optional[Dict]:
    """Best effort: a failed notice is logged, the caller carries on"""
    try:
        row = await notifications_db.insert_notification(user_id, type, title, message, action_url, metadata)
        return Notification.from_db_row(row).to_dict() if row else None
    except Exception as e:
        logger.error(f"Failed to create notification '{type}' for {user_id}: {e}")
        return None


@with_error_handling
async def list_notifications(user_id: str, unread_only: bool = False,
                             page: int = 1, limit: int = 20) -> Tuple[list, int]:
    limit, offset = paginate(page, limit)
    rows, total = await notifications_db.list_notifications(user_id, unread_only, limit, offset)
    return [Notification.from_db_row(r).to_dict() for r in rows], total


@with_error_handling
async def mark_as_read(notification_id: str, user_id: str) -> Dict:
    row = await notifications_db.mark_read(notification_id, user_id)
    if not row:
        raise not_found("Notification")
    return Notification.from_db_row(row).to_dict()


@with_error_handling
async def mark_all_as_read(user_id: str) -> int:
    return await notifications_db.mark_all_read(user_id)
