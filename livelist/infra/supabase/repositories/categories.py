"""Category repository"""
from typing import List

from supabase import AsyncClient  # type: ignore

from livelist.models.category import Category, CategoryCreate, CategoryUpdate

from .base import BaseRepository


class CategoryRepository(BaseRepository[Category, CategoryCreate, CategoryUpdate]):
    """Repository for category (board) operations"""

    def __init__(self, client: AsyncClient):
        super().__init__(client, "categories", Category)

    async def find_by_workspace(self, workspace_id: str) -> List[Category]:
        """Categories of a workspace, newest first"""
        return await self.find_by_filters(
            {"workspace_id": workspace_id}, order_by="created_at", desc=True
        )
