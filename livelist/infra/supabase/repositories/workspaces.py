"""Workspace repository"""
from typing import List, Optional
from supabase import AsyncClient  # type: ignore

from livelist.models.workspace import (
    Workspace, WorkspaceCreate, WorkspaceUpdate,
    WorkspaceMember, WorkspaceMemberCreate,
)
from .base import BaseRepository


class WorkspaceRepository(BaseRepository[Workspace, WorkspaceCreate, WorkspaceUpdate]):
    """Repository for workspace operations"""

    def __init__(self, client: AsyncClient):
        super().__init__(client, "workspaces", Workspace)

    async def find_by_invite_code(self, invite_code: str) -> Optional[Workspace]:
        """Find the workspace an invite code belongs to"""
        rows = await self.find_by_filters({"invite_code": invite_code}, limit=1)
        return rows[0] if rows else None

    async def find_by_ids(self, workspace_ids: List[str]) -> List[Workspace]:
        """Find several workspaces at once"""
        if not workspace_ids:
            return []
        response = await (
            self._client.table(self._table_name)
            .select("*")
            .in_("id", workspace_ids)
            .execute()
        )
        return self._to_models(response.data or [])


class WorkspaceMemberRepository(BaseRepository[WorkspaceMember, WorkspaceMemberCreate, WorkspaceMemberCreate]):
    """Repository for workspace membership operations"""

    def __init__(self, client: AsyncClient):
        super().__init__(client, "workspace_members", WorkspaceMember)

    async def upsert_membership(self, profile_id: str, workspace_id: str) -> WorkspaceMember:
        """Create the membership unless the pair already exists"""
        data = WorkspaceMemberCreate(profile_id=profile_id, workspace_id=workspace_id)
        response = await (
            self._client.table(self._table_name)
            .upsert(data.model_dump(mode='json'), on_conflict="profile_id,workspace_id")
            .execute()
        )
        if not response.data:
            return WorkspaceMember(profile_id=profile_id, workspace_id=workspace_id)
        return self._to_model(response.data[0])

    async def find_by_profile(self, profile_id: str) -> List[WorkspaceMember]:
        """All memberships held by a profile"""
        return await self.find_by_filters({"profile_id": profile_id})

    async def find_by_workspace(self, workspace_id: str) -> List[WorkspaceMember]:
        """Find all members of a workspace"""
        return await self.find_by_filters({"workspace_id": workspace_id})

    async def exists(self, profile_id: str, workspace_id: str) -> bool:
        rows = await self.find_by_filters(
            {"profile_id": profile_id, "workspace_id": workspace_id}, limit=1
        )
        return bool(rows)

    async def delete_membership(self, profile_id: str, workspace_id: str) -> bool:
        """Delete the (profile, workspace) membership"""
        response = await (
            self._client.table(self._table_name)
            .delete()
            .eq("profile_id", profile_id)
            .eq("workspace_id", workspace_id)
            .execute()
        )
        return len(response.data or []) > 0
