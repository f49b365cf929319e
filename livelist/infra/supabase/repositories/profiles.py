"""Profile repository"""
from typing import List, Optional

from supabase import AsyncClient  # type: ignore

from livelist.models.profile import Member, Profile, ProfileCreate, ProfileUpdate

from .base import BaseRepository


class ProfileRepository(BaseRepository[Profile, ProfileCreate, ProfileUpdate]):
    """Repository for profile operations"""

    def __init__(self, client: AsyncClient):
        super().__init__(client, "profiles", Profile)

    async def set_active_workspace(self, profile_id: str, workspace_id: Optional[str]) -> Optional[Profile]:
        """Point the profile at a workspace, or at none"""
        return await self.update(profile_id, ProfileUpdate(workspace_id=workspace_id))

    async def find_members(self, profile_ids: List[str]) -> List[Member]:
        """Fetch the member projection for a set of profiles, ordered by name"""
        if not profile_ids:
            return []

        response = await (
            self._client.table(self._table_name)
            .select("id, email, full_name, color")
            .in_("id", profile_ids)
            .order("full_name", desc=False)
            .execute()
        )
        return [Member(**row) for row in response.data or []]
