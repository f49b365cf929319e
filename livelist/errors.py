"""Error taxonomy for the sync and membership engine

Every error carries a human-readable ``message`` that the session surfaces
to the user. None of them is process-fatal.
"""
from typing import Optional


class LivelistError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AuthenticationError(LivelistError):
    """No or invalid credential; blocks every workspace operation"""


class ProfileResolutionError(LivelistError):
    """Persistence failure while resolving identity; retried on next load"""


class InvalidInviteCode(LivelistError):
    """Invite code could not be extracted or matches no workspace"""

    def __init__(self, message: str = "That invite code is not valid.", **kwargs):
        super().__init__(message, **kwargs)


class ValidationError(LivelistError):
    """Input rejected locally before any remote call"""


class NotAWorkspaceMember(ValidationError):
    """Caller holds no membership in an active workspace"""

    def __init__(self, message: str = "You must be in a workspace to invite", **kwargs):
        super().__init__(message, **kwargs)


class RemoteWriteError(LivelistError):
    """A remote call failed; optimistic state has been rolled back"""


class PartialFailure(LivelistError):
    """Primary step of a multi-step operation succeeded, a cleanup step did not"""
