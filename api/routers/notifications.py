"""Notifications router"""
from typing import Dict

from fastapi import APIRouter, Depends

from api.core import RouterConfig
from api.utils.responses import paginated, success
from services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def setup_routes(cfg: RouterConfig):

    @router.get("")
    async def list_notifications(page: int = 1, limit: int = 20, unread_only: bool = False,
                                 user: Dict = Depends(cfg.get_current_user)):
        items, total = await notification_service.list_notifications(user["id"], unread_only, page, limit)
        return paginated(items, total, page, limit)

    @router.post("/read-all")
    async def mark_all_read(user: Dict = Depends(cfg.get_current_user)):
        updated = await notification_service.mark_all_as_read(user["id"])
        return success({"updated": updated})

    @router.post("/{notification_id}/read")
    async def mark_read(notification_id: str, user: Dict = Depends(cfg.get_current_user)):
        return success(await notification_service.mark_as_read(notification_id, user["id"]))

    return router
