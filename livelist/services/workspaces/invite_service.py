"""Invite links, redemption and invite emails"""
import logging
import re
import secrets
import string
from typing import Optional, Union
from urllib.parse import parse_qs, urlsplit

from livelist import config
from livelist.errors import InvalidInviteCode, NotAWorkspaceMember, RemoteWriteError, ValidationError
from livelist.models.profile import AuthenticatedUser
from livelist.models.workspace import Workspace
from livelist.services.email.invite_email_service import EmailSendResult, InviteEmailService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVITE_CODE_ALPHABET = string.ascii_lowercase + string.digits
INVITE_CODE_LENGTH = 8


def generate_invite_code() -> str:
    """Random opaque token; uniqueness is enforced by the database"""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def extract_invite_code(raw: Optional[str]) -> Optional[str]:
    """
    Pull an invite code out of user input.

    Accepts a plain code ("k3x9a0qz"), a full link
    ("https://host/join?code=k3x9a0qz") or a bare query string
    ("code=k3x9a0qz" / "?code=k3x9a0qz"). Returns None when no code can be
    found.
    """
    if raw is None:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None

    if trimmed.startswith("http"):
        query = urlsplit(trimmed).query
    elif "?" in trimmed or "=" in trimmed:
        query = trimmed.split("?", 1)[1] if "?" in trimmed else trimmed
    else:
        return trimmed

    values = parse_qs(query).get("code")
    if not values or not values[0].strip():
        return None
    return values[0].strip()


class InviteService:
    """Issues and redeems workspace invite codes"""

    def __init__(
        self,
        repos,
        base_url: Optional[str] = None,
        email_service: Optional[InviteEmailService] = None,
    ):
        self.repos = repos
        self.base_url = base_url if base_url is not None else config.APP_URL
        self.email_service = email_service

    def issue_invite_link(self, workspace: Union[Workspace, str, None]) -> Optional[str]:
        """``<base>/join?code=<code>`` for a workspace or a raw invite code"""
        code = workspace.invite_code if isinstance(workspace, Workspace) else workspace
        if not code or not self.base_url:
            return None
        return f"{self.base_url.rstrip('/')}/join?code={code}"

    async def redeem_invite(self, raw_input: str, profile_id: str) -> Workspace:
        """
        Join the workspace an invite code belongs to and make it active.

        Redeeming a code the profile already holds does not create a second
        membership.

        Raises:
            InvalidInviteCode: nothing usable in the input or no workspace
                matches; no mutation happened
            RemoteWriteError: membership or pointer write failed
        """
        code = extract_invite_code(raw_input)
        if not code:
            raise InvalidInviteCode("Paste a valid invite link or code.")

        try:
            workspace = await self.repos.workspaces.find_by_invite_code(code)
        except Exception as e:
            logger.warning(f"Invite lookup failed for code {code}: {e}")
            raise InvalidInviteCode(cause=e)

        if workspace is None:
            logger.info(f"No workspace matches invite code {code}")
            raise InvalidInviteCode()

        try:
            await self.repos.workspace_members.upsert_membership(profile_id, workspace.id)
        except Exception as e:
            logger.error(f"Unable to join workspace {workspace.id}: {e}")
            raise RemoteWriteError(f"Unable to join workspace: {e}", cause=e)

        try:
            await self.repos.profiles.set_active_workspace(profile_id, workspace.id)
        except Exception as e:
            logger.error(f"Unable to switch profile {profile_id} to {workspace.id}: {e}")
            raise RemoteWriteError(f"Unable to switch workspace: {e}", cause=e)

        logger.info(f"Profile {profile_id} joined workspace {workspace.id}")
        return workspace

    async def send_invite_email(self, recipient_email: Optional[str], caller: AuthenticatedUser) -> EmailSendResult:
        """
        Email an invite link for the caller's active workspace.

        The caller must hold a membership in their active workspace. The
        email collaborator is called once; failures are returned, not retried.

        Raises:
            ValidationError: malformed recipient address
            NotAWorkspaceMember: caller has no active workspace membership
            RemoteWriteError: the membership lookup failed
        """
        email = (recipient_email or "").strip()
        if not email or not EMAIL_PATTERN.match(email):
            raise ValidationError("Please enter a valid email address.")

        try:
            profile = await self.repos.profiles.find_by_id(caller.id)
            is_member = bool(profile and profile.workspace_id) and await self.repos.workspace_members.exists(
                caller.id, profile.workspace_id
            )
            workspace = await self.repos.workspaces.find_by_id(profile.workspace_id) if is_member else None
        except Exception as e:
            logger.error(f"Unable to check invite permissions for {caller.id}: {e}")
            raise RemoteWriteError(f"Unable to send invite: {e}", cause=e)

        if profile is None or not profile.workspace_id:
            raise NotAWorkspaceMember()
        if not is_member:
            logger.warning(f"Profile {caller.id} points at {profile.workspace_id} without a membership")
            raise NotAWorkspaceMember()

        invite_link = self.issue_invite_link(workspace) if workspace else None
        if workspace is None or invite_link is None:
            return EmailSendResult(success=False, reason="Workspace invite code not found")

        if self.email_service is None:
            return EmailSendResult(success=False, reason="Email service not configured.")

        result = await self.email_service.send(email, invite_link, workspace.name)
        if result.success:
            logger.info(f"Sent invite for workspace {workspace.id} to {email}")
        else:
            logger.warning(f"Invite email to {email} failed: {result.reason}")
        return result
