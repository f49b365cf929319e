from fastapi import APIRouter
from livelist.api import invite

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(invite.router)
