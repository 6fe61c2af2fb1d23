"""
Campaign category lookups.
"""
from typing import Dict, List, Optional

from database.db import get_connection


async def list_active() -> List[Dict]:
    async with get_connection() as db:
        return await db.fetch(
            "SELECT * FROM campaign_categories WHERE is_active ORDER BY display_order, name"
        )


async def get_category(category_id: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM campaign_categories WHERE id = $1", category_id)


async def get_by_slug(slug: str) -> Optional[Dict]:
    async with get_connection() as db:
        return await db.fetchrow("SELECT * FROM campaign_categories WHERE slug = $1", slug)
