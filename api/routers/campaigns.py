"""Campaigns router: public browsing, charity management"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from api.core import RouterConfig
from api.utils.responses import created, paginated, success
from services import (
    campaign_service, campaign_update_service, donation_service, fund_service, milestone_service,
    review_service,
)

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])


def setup_routes(cfg: RouterConfig):
    charity_only = cfg.role("charity", "admin")

    @router.get("")
    async def list_campaigns(
        page: int = 1, limit: int = 20,
        status: Optional[List[str]] = Query(None),
        category: Optional[List[str]] = Query(None),
        location: Optional[List[str]] = Query(None),
        min_goal: Optional[float] = None, max_goal: Optional[float] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at", sort_order: str = "desc",
    ):
        filters = {
            "status": status, "category": category, "location": location,
            "min_goal": min_goal, "max_goal": max_goal, "search": search,
        }
        items, total = await campaign_service.list_campaigns(
            {k: v for k, v in filters.items() if v is not None}, page, limit, sort_by, sort_order
        )
        return paginated(items, total, page, limit)

    @router.get("/suggested")
    async def suggested(page: int = 1, limit: int = 6):
        items, total = await campaign_service.get_suggested_campaigns(page, limit)
        return paginated(items, total, page, limit)

    @router.get("/charity/{charity_id}")
    async def by_charity(charity_id: str, page: int = 1, limit: int = 20,
                         user: Optional[Dict] = Depends(cfg.get_optional_user)):
        items, total = await campaign_service.get_campaigns_by_charity(
            charity_id, page, limit, user["id"] if user else None
        )
        return paginated(items, total, page, limit)

    @router.post("")
    async def create_campaign(data: Dict[str, Any] = Body(...), user: Dict = Depends(charity_only)):
        return created(await campaign_service.create_campaign(data, user["id"]), "Campaign created")

    @router.patch("/updates/{update_id}")
    async def edit_update(update_id: str, data: Dict[str, Any] = Body(...),
                          user: Dict = Depends(charity_only)):
        post = await campaign_update_service.update_campaign_update(update_id, data, user["id"])
        return success(post, "Campaign update saved")

    @router.delete("/updates/{update_id}")
    async def delete_update(update_id: str, user: Dict = Depends(charity_only)):
        await campaign_update_service.delete_campaign_update(update_id, user["id"])
        return success(message="Campaign update deleted")

    @router.get("/{campaign_id}")
    async def get_campaign(campaign_id: str):
        return success(await campaign_service.get_campaign_by_id(campaign_id))

    @router.patch("/{campaign_id}")
    async def update_campaign(campaign_id: str, data: Dict[str, Any] = Body(...),
                              user: Dict = Depends(charity_only)):
        return success(await campaign_service.update_campaign(campaign_id, data, user["id"]), "Campaign updated")

    @router.patch("/{campaign_id}/status")
    async def update_status(campaign_id: str, data: Dict[str, Any] = Body(...),
                            user: Dict = Depends(cfg.get_current_user)):
        campaign = await campaign_service.update_campaign_status(campaign_id, data.get("status"), user["id"])
        return success(campaign, "Campaign status updated")

    @router.delete("/{campaign_id}")
    async def delete_campaign(campaign_id: str, user: Dict = Depends(charity_only)):
        await campaign_service.delete_campaign(campaign_id, user["id"])
        return success(message="Campaign deleted")

    @router.get("/{campaign_id}/updates")
    async def list_updates(campaign_id: str, page: int = 1, limit: int = 20,
                           update_type: Optional[str] = Query(None, alias="type"),
                           user: Optional[Dict] = Depends(cfg.get_optional_user)):
        items, total = await campaign_update_service.get_campaign_updates(
            campaign_id, page, limit, update_type, user["id"] if user else None
        )
        return paginated(items, total, page, limit)

    @router.post("/{campaign_id}/updates")
    async def post_update(campaign_id: str, data: Dict[str, Any] = Body(...),
                          user: Dict = Depends(charity_only)):
        post = await campaign_update_service.create_campaign_update(campaign_id, data, user["id"])
        return created(post, "Campaign update posted")

    @router.get("/{campaign_id}/statistics")
    async def statistics(campaign_id: str):
        return success(await campaign_service.get_campaign_statistics(campaign_id))

    @router.get("/{campaign_id}/milestones")
    async def milestones(campaign_id: str):
        return success(await milestone_service.get_milestones(campaign_id))

    @router.get("/{campaign_id}/milestones/progress")
    async def milestone_progress(campaign_id: str):
        return success(await milestone_service.get_milestone_progress(campaign_id))

    @router.get("/{campaign_id}/disbursements")
    async def disbursements(campaign_id: str):
        return success(await fund_service.get_campaign_disbursements(campaign_id))

    @router.get("/{campaign_id}/donations")
    async def donations(campaign_id: str, page: int = 1, limit: int = 20):
        items, total = await donation_service.get_donations_by_campaign(campaign_id, page, limit)
        return paginated(items, total, page, limit)

    @router.get("/{campaign_id}/reviews")
    async def reviews(campaign_id: str, page: int = 1, limit: int = 20, rating: Optional[int] = None,
                      user: Optional[Dict] = Depends(cfg.get_optional_user)):
        filters = {"campaign_id": campaign_id, "rating": rating}
        items, total = await review_service.list_reviews(
            filters, page, limit, user["id"] if user else None
        )
        return paginated(items, total, page, limit)

    @router.get("/{campaign_id}/reviews/stats")
    async def review_stats(campaign_id: str):
        return success(await review_service.get_campaign_review_stats(campaign_id))

    return router
