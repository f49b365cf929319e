"""
Invite Email Service

Sends workspace invite emails via the Resend HTTP API
"""

import html
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from livelist import config

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class EmailSendResult(BaseModel):
    """Outcome of one delivery attempt"""
    success: bool
    reason: Optional[str] = None


class InviteEmailService:
    """Delivers invite links; never retries on its own"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else config.RESEND_API_KEY
        self.from_address = from_address or config.INVITE_FROM_ADDRESS
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _render(self, invite_link: str, workspace_name: str) -> str:
        name = html.escape(workspace_name)
        link = html.escape(invite_link, quote=True)
        return (
            "<p>Hi!</p>"
            f"<p>You've been invited to join <strong>{name}</strong> on Livelist.</p>"
            "<p>Click the link below to join:</p>"
            f'<p><a href="{link}" style="color: #5034ff; font-weight: 600;">{link}</a></p>'
            "<p>If you didn't expect this invite, you can ignore this email.</p>"
        )

    async def send(self, recipient_email: str, invite_link: str, workspace_name: Optional[str]) -> EmailSendResult:
        """
        Send one invite email

        Args:
            recipient_email: Validated recipient address
            invite_link: Link produced by the invite service
            workspace_name: Shown in the subject and body

        Returns:
            EmailSendResult with the failure reason when delivery failed
        """
        if not self.is_configured:
            return EmailSendResult(success=False, reason="Email service not configured. Add RESEND_API_KEY.")

        workspace_name = workspace_name or "our workspace"
        payload = {
            "from": self.from_address,
            "to": [recipient_email],
            "subject": f"You're invited to join {workspace_name}",
            "html": self._render(invite_link, workspace_name),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(RESEND_EMAILS_URL, json=payload, headers=headers, timeout=10.0)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(RESEND_EMAILS_URL, json=payload, headers=headers, timeout=10.0)
        except httpx.HTTPError as e:
            logger.error(f"Error sending invite email to {recipient_email}: {e}")
            return EmailSendResult(success=False, reason=str(e) or "Failed to send email")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            reason = body.get("message") if isinstance(body, dict) else None
            logger.error(f"Resend rejected invite email ({response.status_code}): {reason}")
            return EmailSendResult(success=False, reason=reason or "Failed to send email")

        return EmailSendResult(success=True)
