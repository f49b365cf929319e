"""Supabase async client singletons"""
from typing import Optional

from supabase import AsyncClient, acreate_client  # type: ignore

from livelist import config

# Session clients act as the signed-in user (anon key + user JWT); the API
# process needs the service role to read memberships across users
_supabase_client: Optional[AsyncClient] = None
_service_role_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """Get or create the anon-key async Supabase client singleton

    Realtime channels are only available on the async client, so every
    repository and the change feed of a session share this one instance.
    """
    global _supabase_client

    if _supabase_client is None:
        url = config.SUPABASE_URL
        key = config.SUPABASE_ANON_KEY

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

        _supabase_client = await acreate_client(url, key)

    return _supabase_client


async def get_service_role_client() -> AsyncClient:
    """Get or create the service-role async Supabase client singleton"""
    global _service_role_client

    if _service_role_client is None:
        url = config.SUPABASE_URL
        key = config.SUPABASE_SERVICE_ROLE_KEY

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        _service_role_client = await acreate_client(url, key)

    return _service_role_client


def reset_supabase_client():
    """Reset both Supabase client singletons (useful for testing)"""
    global _supabase_client, _service_role_client
    _supabase_client = None
    _service_role_client = None
