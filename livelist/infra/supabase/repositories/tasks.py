"""Task repository"""
from typing import List, Optional

from supabase import AsyncClient  # type: ignore

from livelist.models.task import Task, TaskCreate, TaskUpdate

from .base import BaseRepository


class TaskRepository(BaseRepository[Task, TaskCreate, TaskUpdate]):
    """Repository for task operations"""

    def __init__(self, client: AsyncClient):
        super().__init__(client, "tasks", Task)

    async def find_by_workspace(self, workspace_id: str, category_id: Optional[str] = None) -> List[Task]:
        """Find tasks of a workspace, newest first

        Args:
            workspace_id: Workspace to load
            category_id: Optional category filter
        """
        filters = {"workspace_id": workspace_id}
        if category_id:
            filters["category_id"] = category_id
        return await self.find_by_filters(filters, order_by="created_at", desc=True)

    async def unassign_member(self, workspace_id: str, assignee_value: str) -> int:
        """Clear the assignee on every task of the workspace assigned to a member

        Returns:
            Number of tasks updated
        """
        response = await (
            self._client.table(self._table_name)
            .update({"assigned_to": None})
            .eq("workspace_id", workspace_id)
            .eq("assigned_to", assignee_value)
            .execute()
        )
        return len(response.data) if response.data else 0
