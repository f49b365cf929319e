"""Identity resolution: authenticated principal -> Profile"""
import logging
from typing import Optional

from pydantic import BaseModel

from livelist.errors import ProfileResolutionError
from livelist.infra.supabase.repositories.profiles import ProfileRepository
from livelist.models.profile import Profile, ProfileCreate, ProfileUpdate
from livelist.services.members.display import display_name_from_email

logger = logging.getLogger(__name__)


class ProfileResolution(BaseModel):
    """Outcome of resolving an identity"""
    profile: Profile
    active_workspace_id: Optional[str] = None
    created: bool = False


class IdentityResolver:
    """Turns an authenticated identity into a stable Profile record"""

    def __init__(self, profile_repo: ProfileRepository):
        self.profile_repo = profile_repo

    async def resolve_profile(
        self,
        identity_id: str,
        email: str,
        display_name_hint: Optional[str] = None,
    ) -> ProfileResolution:
        """
        Look up the profile for an identity, creating it on first sight.

        An existing profile without a display name gets one backfilled; an
        existing name is never overwritten. At most one write happens per call.

        Raises:
            ProfileResolutionError: persistence failed; the caller stays
                without a workspace until the next attempt
        """
        resolved_email = email.lower()
        resolved_name = display_name_hint or display_name_from_email(resolved_email)

        try:
            profile = await self.profile_repo.find_by_id(identity_id)

            if profile is None:
                profile = await self.profile_repo.create(
                    ProfileCreate(id=identity_id, email=resolved_email, full_name=resolved_name)
                )
                logger.info(f"Created profile {identity_id} ({resolved_email})")
                return ProfileResolution(profile=profile, active_workspace_id=None, created=True)

            if not profile.full_name and resolved_name:
                updated = await self.profile_repo.update(identity_id, ProfileUpdate(full_name=resolved_name))
                profile = updated or profile.model_copy(update={"full_name": resolved_name})
                logger.info(f"Backfilled display name for profile {identity_id}")

        except Exception as e:
            logger.error(f"Unable to resolve profile {identity_id}: {e}")
            raise ProfileResolutionError(f"Unable to load profile: {e}", cause=e)

        return ProfileResolution(profile=profile, active_workspace_id=profile.workspace_id)
