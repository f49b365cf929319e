from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from livelist import config
from livelist.auth import get_current_user
from livelist.errors import RemoteWriteError, ValidationError
from livelist.infra.supabase import get_service_role_client
from livelist.infra.supabase.repositories import RepositoryFactory
from livelist.models.profile import AuthenticatedUser
from livelist.services.email import InviteEmailService
from livelist.services.workspaces import InviteService

router = APIRouter(prefix="/api/invite", tags=["invite"])


class InviteRequest(BaseModel):
    email: Optional[str] = None


class InviteResponse(BaseModel):
    success: bool


async def get_invite_service() -> InviteService:
    client = await get_service_role_client()
    return InviteService(
        RepositoryFactory(client),
        base_url=config.APP_URL,
        email_service=InviteEmailService(),
    )


@router.post("", response_model=InviteResponse)
async def send_invite(
    request: InviteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: InviteService = Depends(get_invite_service),
):
    """Email an invite link for the caller's active workspace"""
    try:
        result = await service.send_invite_email(request.email, user)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except RemoteWriteError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if not result.success:
        raise HTTPException(status_code=500, detail=result.reason or "Failed to send email")

    return {"success": True}
