"""Reviews router: donor reviews of campaigns"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import created, paginated, success
from services import review_service

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


def setup_routes(cfg: RouterConfig):

    @router.post("")
    async def create_review(data: Dict[str, Any] = Body(...), user: Dict = Depends(cfg.get_current_user)):
        return created(await review_service.create_review(data, user["id"]), "Review published")

    @router.get("/mine")
    async def my_reviews(page: int = 1, limit: int = 20, user: Dict = Depends(cfg.get_current_user)):
        items, total = await review_service.list_reviews({"user_id": user["id"]}, page, limit, user["id"])
        return paginated(items, total, page, limit)

    @router.get("/{review_id}")
    async def get_review(review_id: str):
        return success(await review_service.get_review_by_id(review_id))

    @router.patch("/{review_id}")
    async def update_review(review_id: str, data: Dict[str, Any] = Body(...),
                            user: Dict = Depends(cfg.get_current_user)):
        return success(await review_service.update_review(review_id, data, user["id"]), "Review updated")

    @router.delete("/{review_id}")
    async def delete_review(review_id: str, user: Dict = Depends(cfg.get_current_user)):
        await review_service.delete_review(review_id, user["id"])
        return success(message="Review deleted")

    return router
