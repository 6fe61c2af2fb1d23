"""
Category Service - the lookup list campaigns are filed under
"""
from typing import Any, Dict, List

from core.errors import not_found, validation_error, with_error_handling
from database import categories as categories_db
from models import CampaignCategory


@with_error_handling
async def get_active_categories() -> List[Dict[str, Any]]:
    rows = await categories_db.list_active()
    return [CampaignCategory.from_db_row(r).to_dict() for r in rows]


@with_error_handling
async def get_category_by_id(category_id: str) -> Dict[str, Any]:
    row = await categories_db.get_category(category_id)
    if not row:
        raise not_found("Category")
    return CampaignCategory.from_db_row(row).to_dict()


@with_error_handling
async def get_category_by_slug(slug: str) -> Dict[str, Any]:
    row = await categories_db.get_by_slug(slug)
    if not row:
        raise not_found("Category")
    return CampaignCategory.from_db_row(row).to_dict()


async def ensure_active_category(slug: str) -> None:
    """Campaigns may only be filed under an active category"""
    row = await categories_db.get_by_slug(slug)
    if not row or not row["is_active"]:
        raise validation_error("category", f"Unknown category '{slug}'")
