# API module exports
from livelist.api import invite
from livelist.api.base import api_router

__all__ = ["invite", "api_router"]
