from .invite_email_service import EmailSendResult, InviteEmailService

__all__ = ["EmailSendResult", "InviteEmailService"]
