"""User profiles router"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from api.core import RouterConfig
from api.utils.responses import success
from services import user_service

router = APIRouter(prefix="/api/users", tags=["users"])


def setup_routes(cfg: RouterConfig):

    @router.get("/{user_id}")
    async def get_user(user_id: str, user: Dict = Depends(cfg.get_current_user)):
        return success(await user_service.get_user_profile(user_id))

    @router.patch("/{user_id}")
    async def update_user(user_id: str, data: Dict[str, Any] = Body(...),
                          user: Dict = Depends(cfg.get_current_user)):
        return success(await user_service.update_user_profile(user_id, data, user["id"]), "Profile updated")

    @router.get("/{user_id}/statistics")
    async def user_statistics(user_id: str, user: Dict = Depends(cfg.get_current_user)):
        return success(await user_service.get_user_statistics(user_id, user["id"]))

    return router
