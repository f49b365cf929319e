from .invite_service import InviteService, extract_invite_code, generate_invite_code
from .workspace_registry import WorkspaceRegistry

__all__ = ["InviteService", "WorkspaceRegistry", "extract_invite_code", "generate_invite_code"]
