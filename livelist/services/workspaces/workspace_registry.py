"""Workspace registry: membership and the active-workspace state machine"""
import asyncio
import logging
from typing import Callable, List, Optional

from livelist.config import DEFAULT_WORKSPACE_NAME
from livelist.errors import PartialFailure, RemoteWriteError, ValidationError
from livelist.models.profile import Member
from livelist.models.workspace import Workspace, WorkspaceCreate, WorkspaceSummary
from livelist.services.members.display import assignee_value_for_member
from livelist.services.sync.change_feed import ChangeFeedSubscriber
from livelist.services.sync.coordinator import OptimisticMutationCoordinator
from livelist.services.sync.loader import WorkspaceLoader
from livelist.services.sync.state import SessionPhase, SessionState, WorkspaceView

from .invite_service import InviteService, generate_invite_code

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
MAX_INVITE_CODE_ATTEMPTS = 3


def _is_unique_violation(error: Exception) -> bool:
    return getattr(error, "code", None) == UNIQUE_VIOLATION


class WorkspaceRegistry:
    """
    Tracks the workspaces a profile belongs to and which one is active.

    Every transition of the active workspace runs under one lock and is a
    full teardown of the previous view followed by a fresh load.
    """

    def __init__(
        self,
        state: SessionState,
        repos,
        subscriber: ChangeFeedSubscriber,
        loader: WorkspaceLoader,
        coordinator: OptimisticMutationCoordinator,
        invites: InviteService,
        invite_code_factory: Callable[[], str] = generate_invite_code,
    ):
        self.state = state
        self.repos = repos
        self.subscriber = subscriber
        self.loader = loader
        self.coordinator = coordinator
        self.invites = invites
        self.invite_code_factory = invite_code_factory
        self._transition_lock = asyncio.Lock()

    def _require_profile_id(self) -> str:
        if self.state.profile is None:
            raise ValidationError("Sign in first")
        return self.state.profile.id

    # ------------------------------------------------------------------
    # Active workspace transitions
    # ------------------------------------------------------------------

    async def teardown(self) -> None:
        """Drop subscriptions and caches of the active workspace"""
        previous = self.state.view
        await self.subscriber.stop()
        self.coordinator.reset()
        self.state.view = None
        if self.state.profile is not None:
            self.state.phase = SessionPhase.NO_WORKSPACE
        if previous is not None:
            logger.info(f"Tore down workspace {previous.workspace_id}")

    async def _activate(self, workspace_id: Optional[str], name: Optional[str] = None,
                        invite_code: Optional[str] = None) -> Optional[WorkspaceView]:
        # caller holds the transition lock
        await self.teardown()
        if self.state.profile is not None:
            self.state.profile = self.state.profile.model_copy(update={"workspace_id": workspace_id})
        if workspace_id is None:
            return None

        view = WorkspaceView(workspace_id, self.state.next_generation(), name=name, invite_code=invite_code)
        self.state.view = view
        self.state.phase = SessionPhase.WORKSPACE_ACTIVE

        try:
            await self.subscriber.start(view)
        except Exception as e:
            logger.error(f"Unable to subscribe to workspace {workspace_id}: {e}")
            self.state.notify(f"Live updates are unavailable: {e}")

        await self.loader.load(view)
        logger.info(f"Activated workspace {workspace_id}")
        return view

    async def activate(self, workspace_id: Optional[str]) -> Optional[WorkspaceView]:
        """Load the given workspace (or none) as the active view without writing the pointer"""
        async with self._transition_lock:
            return await self._activate(workspace_id)

    async def switch_active_workspace(self, workspace_id: str) -> Optional[WorkspaceView]:
        """Point the profile at another workspace it belongs to"""
        profile_id = self._require_profile_id()
        async with self._transition_lock:
            if self.state.active_workspace_id == workspace_id:
                return self.state.view

            try:
                await self.repos.profiles.set_active_workspace(profile_id, workspace_id)
            except Exception as e:
                logger.error(f"Unable to switch profile {profile_id} to {workspace_id}: {e}")
                raise RemoteWriteError(f"Unable to switch: {e}", cause=e)

            name = next((w.name for w in self.state.known_workspaces if w.id == workspace_id), None)
            return await self._activate(workspace_id, name=name)

    async def create_workspace(self, name: Optional[str] = None) -> Workspace:
        """
        Create a workspace, join it and make it active.

        Writes happen in order workspace -> membership -> profile pointer, so
        a failure part-way leaves the pointer untouched.
        """
        profile_id = self._require_profile_id()
        resolved_name = (name or "").strip() or DEFAULT_WORKSPACE_NAME

        async with self._transition_lock:
            workspace = await self._insert_workspace(resolved_name)

            try:
                await self.repos.workspace_members.upsert_membership(profile_id, workspace.id)
                await self.repos.profiles.set_active_workspace(profile_id, workspace.id)
            except Exception as e:
                logger.error(f"Unable to link workspace {workspace.id} to {profile_id}: {e}")
                raise RemoteWriteError(f"Unable to link workspace: {e}", cause=e)

            self.state.remember_workspace(workspace.id, workspace.name)
            await self._activate(workspace.id, name=workspace.name, invite_code=workspace.invite_code)
            logger.info(f"Profile {profile_id} created workspace {workspace.id}")
            return workspace

    async def _insert_workspace(self, name: str) -> Workspace:
        for attempt in range(1, MAX_INVITE_CODE_ATTEMPTS + 1):
            try:
                return await self.repos.workspaces.create(
                    WorkspaceCreate(name=name, invite_code=self.invite_code_factory())
                )
            except Exception as e:
                if _is_unique_violation(e) and attempt < MAX_INVITE_CODE_ATTEMPTS:
                    logger.warning(f"Invite code collision, regenerating (attempt {attempt})")
                    continue
                logger.error(f"Unable to create workspace: {e}")
                raise RemoteWriteError(f"Unable to create home: {e}", cause=e)
        raise RemoteWriteError("Unable to create home: no unique invite code")

    async def join_with_invite(self, raw_input: str) -> Workspace:
        """Redeem an invite (code or link) and activate the joined workspace"""
        profile_id = self._require_profile_id()
        async with self._transition_lock:
            workspace = await self.invites.redeem_invite(raw_input, profile_id)
            self.state.remember_workspace(workspace.id, workspace.name)
            if self.state.active_workspace_id != workspace.id:
                await self._activate(workspace.id, name=workspace.name, invite_code=workspace.invite_code)
            return workspace

    # ------------------------------------------------------------------
    # Known workspaces and membership
    # ------------------------------------------------------------------

    async def load_known_workspaces(self) -> List[WorkspaceSummary]:
        """Refresh the list of workspaces the profile is a member of"""
        profile_id = self._require_profile_id()
        try:
            memberships = await self.repos.workspace_members.find_by_profile(profile_id)
        except Exception as e:
            logger.error(f"Unable to load workspaces of {profile_id}: {e}")
            self.state.notify(f"Unable to load workspaces: {e}")
            return self.state.known_workspaces

        ids = [m.workspace_id for m in memberships]
        names = {}
        try:
            names = {w.id: w.name for w in await self.repos.workspaces.find_by_ids(ids)}
        except Exception as e:
            logger.warning(f"Unable to load workspace names: {e}")

        self.state.known_workspaces = [
            WorkspaceSummary(id=workspace_id, name=names.get(workspace_id) or DEFAULT_WORKSPACE_NAME)
            for workspace_id in ids
        ]
        return self.state.known_workspaces

    async def _member_for(self, profile_id: str) -> Optional[Member]:
        view = self.state.view
        if view is not None:
            member = view.member_collection.get(profile_id)
            if member is not None:
                return member
        members = await self.repos.profiles.find_members([profile_id])
        return members[0] if members else None

    async def remove_membership(self, profile_id: str, workspace_id: str) -> Optional[str]:
        """
        Remove a profile from a workspace.

        The removed profile is repointed at one of its remaining workspaces
        (or none) and unassigned from the workspace's tasks. Returns the
        removed profile's new active workspace id.

        Raises:
            RemoteWriteError: the member lookup or the membership removal
                failed; nothing was written
            PartialFailure: the member was removed but a cleanup step failed
        """
        try:
            member = await self._member_for(profile_id)
        except Exception as e:
            logger.error(f"Unable to look up member {profile_id}: {e}")
            raise RemoteWriteError(f"Unable to remove member: {e}", cause=e)
        assignee_value = assignee_value_for_member(member) if member else None
        is_self = self.state.profile is not None and self.state.profile.id == profile_id

        try:
            await self.repos.workspace_members.delete_membership(profile_id, workspace_id)
        except Exception as e:
            logger.error(f"Unable to remove {profile_id} from {workspace_id}: {e}")
            raise RemoteWriteError(f"Unable to remove member: {e}", cause=e)

        cleanup_errors = []
        new_workspace_id: Optional[str] = None
        try:
            remaining = await self.repos.workspace_members.find_by_profile(profile_id)
            new_workspace_id = remaining[0].workspace_id if remaining else None
            await self.repos.profiles.set_active_workspace(profile_id, new_workspace_id)
        except Exception as e:
            logger.error(f"Unable to repoint profile {profile_id}: {e}")
            cleanup_errors.append(e)

        if assignee_value is not None:
            try:
                await self.repos.tasks.unassign_member(workspace_id, assignee_value)
            except Exception as e:
                logger.error(f"Unable to unassign {assignee_value} in {workspace_id}: {e}")
                cleanup_errors.append(e)

        self._apply_local_removal(profile_id, workspace_id, assignee_value)

        if is_self:
            self.state.forget_workspace(workspace_id)
            if self.state.active_workspace_id == workspace_id:
                async with self._transition_lock:
                    await self._activate(new_workspace_id)

        logger.info(f"Removed profile {profile_id} from workspace {workspace_id}")
        if cleanup_errors:
            raise PartialFailure(
                "Member removed, but some task updates failed.",
                cause=cleanup_errors[0],
            )
        return new_workspace_id

    def _apply_local_removal(self, profile_id: str, workspace_id: str, assignee_value: Optional[str]) -> None:
        view = self.state.view
        if view is None or view.workspace_id != workspace_id:
            return
        view.member_collection.remove(profile_id)
        if assignee_value is None:
            return
        for task in view.task_collection:
            if task.assigned_to == assignee_value:
                view.task_collection.replace(task.model_copy(update={"assigned_to": None}))
