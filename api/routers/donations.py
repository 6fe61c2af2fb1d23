"""Donations router (donor)"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import created, paginated, success
from services import donation_service

router = APIRouter(prefix="/api/donations", tags=["donations"])


def setup_routes(cfg: RouterConfig):

    @router.post("")
    async def create_donation(data: Dict[str, Any] = Body(...), user: Dict = Depends(cfg.get_current_user)):
        return created(await donation_service.create_donation(data, user["id"]), "Donation created")

    @router.get("/mine")
    async def my_donations(page: int = 1, limit: int = 20, user: Dict = Depends(cfg.get_current_user)):
        items, total = await donation_service.get_donations_by_donor(user["id"], page, limit, user["id"])
        return paginated(items, total, page, limit)

    @router.get("/statistics")
    async def statistics(campaign_id: Optional[str] = None, user: Dict = Depends(cfg.get_current_user)):
        return success(await donation_service.get_donation_statistics(user["id"], campaign_id))

    @router.get("/{donation_id}")
    async def get_donation(donation_id: str, user: Dict = Depends(cfg.get_current_user)):
        return success(await donation_service.get_donation_by_id(donation_id, user["id"]))

    return router
