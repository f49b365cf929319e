"""Client session: wires identity, workspaces and the sync engine together

Methods here are the user-facing entry points. Engine errors are logged,
recorded on ``state.message`` and turned into a falsy return value, so the
session always ends in a consistent state with a visible message.
"""
import logging
from typing import Awaitable, Optional, Tuple, TypeVar

from livelist import config
from livelist.auth import user_from_session_user
from livelist.errors import AuthenticationError, LivelistError, ProfileResolutionError
from livelist.infra.supabase import get_supabase_client
from livelist.infra.supabase.realtime import RealtimeFeedTransport
from livelist.infra.supabase.repositories import RepositoryFactory
from livelist.models.profile import AuthenticatedUser, Member
from livelist.models.task import Task
from livelist.models.workspace import Workspace
from livelist.services.email import InviteEmailService
from livelist.services.identity import IdentityResolver
from livelist.services.members.colors import assign_colors, color_for_assignee
from livelist.services.preferences import LocalPreferences
from livelist.services.sync import (
    ChangeFeedSubscriber,
    OptimisticMutationCoordinator,
    SessionPhase,
    SessionState,
    WorkspaceLoader,
)
from livelist.services.workspaces import InviteService, WorkspaceRegistry, extract_invite_code

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LivelistSession:
    """One signed-in client"""

    def __init__(
        self,
        repos,
        transport,
        preferences: Optional[LocalPreferences] = None,
        email_service: Optional[InviteEmailService] = None,
        app_url: Optional[str] = None,
    ):
        self.state = SessionState()
        self.repos = repos
        self.identity = IdentityResolver(repos.profiles)
        self.subscriber = ChangeFeedSubscriber(transport, self.state)
        self.loader = WorkspaceLoader(repos, self.subscriber, self.state, preferences)
        self.mutations = OptimisticMutationCoordinator(
            self.state, repos, self.subscriber, self.loader, preferences
        )
        self.invites = InviteService(repos, base_url=app_url, email_service=email_service)
        self.registry = WorkspaceRegistry(
            self.state, repos, self.subscriber, self.loader, self.mutations, self.invites
        )

    @classmethod
    async def connect(cls) -> "LivelistSession":
        """Build a session against the configured Supabase project"""
        client = await get_supabase_client()
        return cls(
            RepositoryFactory(client),
            RealtimeFeedTransport(client),
            preferences=LocalPreferences(config.PREFERENCES_PATH),
            email_service=InviteEmailService(),
            app_url=config.APP_URL,
        )

    async def _run(self, operation: Awaitable[T], success_message: Optional[str]) -> Tuple[bool, Optional[T]]:
        try:
            result = await operation
        except LivelistError as e:
            logger.warning(f"{type(e).__name__}: {e.message}")
            self.state.notify(e.message)
            return False, None
        if success_message:
            self.state.notify(success_message)
        return True, result

    async def _surface(self, operation: Awaitable[T], success_message: Optional[str] = None) -> Optional[T]:
        _, result = await self._run(operation, success_message)
        return result

    async def _attempt(self, operation: Awaitable, success_message: Optional[str] = None) -> bool:
        ok, _ = await self._run(operation, success_message)
        return ok

    # ------------------------------------------------------------------
    # Sign in / out
    # ------------------------------------------------------------------

    async def sign_in(self, user: Optional[AuthenticatedUser]) -> bool:
        """
        Resolve the profile for a signed-in user and load their workspace.

        A code stored by ``open_invite_link`` before sign-in is redeemed
        afterwards. Returns False when the profile could not be resolved; the
        session then behaves as signed out until the next attempt.
        """
        if user is None:
            raise AuthenticationError("No signed-in user")

        self.state.notify(None)
        self.state.user = user
        try:
            resolution = await self.identity.resolve_profile(user.id, user.email, user.full_name)
        except ProfileResolutionError as e:
            self.state.notify(e.message)
            self.state.phase = SessionPhase.SIGNED_OUT
            return False

        self.state.profile = resolution.profile
        self.state.phase = SessionPhase.NO_WORKSPACE
        await self.registry.load_known_workspaces()
        await self.registry.activate(resolution.active_workspace_id)

        pending, self.state.pending_invite_code = self.state.pending_invite_code, None
        if pending:
            logger.info("Replaying invite code received before sign-in")
            await self.join_workspace(pending)
        return True

    async def sign_in_with_supabase(self, client) -> bool:
        """Sign in with the user of the client's current auth session"""
        session = await client.auth.get_session()
        user = user_from_session_user(session.user if session else None)
        return await self.sign_in(user)

    async def sign_out(self) -> None:
        await self.registry.teardown()
        self.state.clear()
        self.state.notify(None)

    # ------------------------------------------------------------------
    # Workspaces and invites
    # ------------------------------------------------------------------

    @property
    def invite_link(self) -> Optional[str]:
        view = self.state.view
        return self.invites.issue_invite_link(view.invite_code) if view else None

    async def open_invite_link(self, raw: str) -> Optional[Workspace]:
        """Handle landing on ``/join?code=...``; defers until a profile exists"""
        code = extract_invite_code(raw)
        if not code:
            self.state.notify("Paste a valid invite link or code.")
            return None
        if self.state.profile is None:
            self.state.pending_invite_code = code
            return None
        return await self.join_workspace(code)

    async def join_workspace(self, raw: str) -> Optional[Workspace]:
        return await self._surface(self.registry.join_with_invite(raw), "Joined workspace successfully.")

    async def create_workspace(self, name: Optional[str] = None) -> Optional[Workspace]:
        return await self._surface(self.registry.create_workspace(name))

    async def switch_workspace(self, workspace_id: str) -> bool:
        view = await self._surface(self.registry.switch_active_workspace(workspace_id))
        return view is not None

    async def remove_member(self, member: Member) -> bool:
        view = self.state.view
        if view is None:
            return False
        is_self = self.state.profile is not None and member.id == self.state.profile.id
        message = "You left the workspace." if is_self else "Member removed."
        return await self._attempt(self.registry.remove_membership(member.id, view.workspace_id), message)

    async def leave_workspace(self) -> bool:
        view = self.state.view
        if view is None or self.state.profile is None:
            return False
        me = view.member_collection.get(self.state.profile.id) or Member(
            id=self.state.profile.id,
            email=self.state.profile.email,
            full_name=self.state.profile.full_name,
        )
        return await self.remove_member(me)

    async def send_invite(self, recipient_email: str) -> bool:
        if self.state.user is None:
            self.state.notify("Please sign in again and retry.")
            return False
        result = await self._surface(self.invites.send_invite_email(recipient_email, self.state.user))
        if result is None:
            return False
        if not result.success:
            self.state.notify(result.reason or "Failed to send invite.")
            return False
        self.state.notify("Invite sent!")
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_task(self, title: str) -> Optional[Task]:
        return await self._surface(self.mutations.create_task(title))

    async def toggle_task(self, task_id: str) -> bool:
        return await self._attempt(self.mutations.toggle_task(task_id))

    async def rename_task(self, task_id: str, title: str) -> bool:
        return await self._attempt(self.mutations.edit_task_title(task_id, title))

    async def assign_task(self, task_id: str, member: Optional[Member]) -> bool:
        return await self._attempt(self.mutations.assign_task(task_id, member))

    async def delete_task(self, task_id: str) -> bool:
        return await self._attempt(self.mutations.delete_task(task_id))

    async def select_category(self, category_id: Optional[str]) -> bool:
        return await self._attempt(self.mutations.select_category(category_id))

    async def add_category(self, name: str) -> bool:
        return await self._attempt(self.mutations.create_category(name))

    async def delete_category(self, category_id: str) -> bool:
        return await self._attempt(self.mutations.delete_category(category_id))

    async def rename_workspace(self, name: str) -> bool:
        return await self._attempt(self.mutations.rename_workspace(name), "Workspace name updated.")

    async def update_color(self, color: str) -> bool:
        if self.state.profile is None:
            return False
        return await self._attempt(
            self.mutations.update_own_color(self.state.profile.id, color), "Color updated."
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def member_colors(self) -> dict:
        view = self.state.view
        return assign_colors(list(view.members)) if view else {}

    def task_color(self, task: Task) -> str:
        view = self.state.view
        return color_for_assignee(task.assigned_to, list(view.members) if view else [])
