"""Feedback router: donor ratings of charities"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import created, paginated, success
from services import charity_feedback_service

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


def setup_routes(cfg: RouterConfig):

    @router.post("")
    async def create_feedback(data: Dict[str, Any] = Body(...), user: Dict = Depends(cfg.get_current_user)):
        return created(await charity_feedback_service.create_feedback(data, user["id"]), "Feedback submitted")

    @router.get("/eligible")
    async def eligible_charities(user: Dict = Depends(cfg.get_current_user)):
        return success(await charity_feedback_service.get_eligible_charities_for_feedback(user["id"]))

    @router.get("/mine")
    async def my_feedback(page: int = 1, limit: int = 20, user: Dict = Depends(cfg.get_current_user)):
        items, total = await charity_feedback_service.list_feedback({"donor_id": user["id"]}, page, limit)
        return paginated(items, total, page, limit)

    @router.get("/{feedback_id}")
    async def get_feedback(feedback_id: str):
        return success(await charity_feedback_service.get_feedback_by_id(feedback_id))

    @router.patch("/{feedback_id}")
    async def update_feedback(feedback_id: str, data: Dict[str, Any] = Body(...),
                              user: Dict = Depends(cfg.get_current_user)):
        feedback = await charity_feedback_service.update_feedback(feedback_id, data, user["id"])
        return success(feedback, "Feedback updated")

    @router.delete("/{feedback_id}")
    async def delete_feedback(feedback_id: str, user: Dict = Depends(cfg.get_current_user)):
        await charity_feedback_service.delete_feedback(feedback_id, user["id"])
        return success(message="Feedback deleted")

    return router
