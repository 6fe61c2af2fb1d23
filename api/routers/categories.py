"""Campaign categories router (public)"""
from fastapi import APIRouter

from api.core import RouterConfig
from api.utils.responses import success
from services import category_service

router = APIRouter(prefix="/api/categories", tags=["categories"])


def setup_routes(cfg: RouterConfig):

    @router.get("")
    async def list_categories():
        return success(await category_service.get_active_categories())

    @router.get("/slug/{slug}")
    async def by_slug(slug: str):
        return success(await category_service.get_category_by_slug(slug))

    @router.get("/{category_id}")
    async def by_id(category_id: str):
        return success(await category_service.get_category_by_id(category_id))

    return router
