"""Supabase client singletons"""
from types import SimpleNamespace

import pytest

from livelist import config
from livelist.infra.supabase import client as supabase_client


@pytest.fixture
def created(monkeypatch):
    keys = []

    async def fake_create_client(url, key):
        keys.append(key)
        return SimpleNamespace(url=url, key=key)

    monkeypatch.setattr(supabase_client, "acreate_client", fake_create_client)
    monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    supabase_client.reset_supabase_client()
    yield keys
    supabase_client.reset_supabase_client()


@pytest.mark.asyncio
async def test_service_role_client_is_separate_from_session_client(created):
    session_client = await supabase_client.get_supabase_client()
    service_client = await supabase_client.get_service_role_client()

    assert session_client is not service_client
    assert session_client.key == "anon-key"
    assert service_client.key == "service-key"
    assert created == ["anon-key", "service-key"]

    assert await supabase_client.get_supabase_client() is session_client
    assert await supabase_client.get_service_role_client() is service_client
    assert len(created) == 2


@pytest.mark.asyncio
async def test_service_role_client_requires_its_key(created, monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", None)
    await supabase_client.get_supabase_client()

    with pytest.raises(ValueError, match="SUPABASE_SERVICE_ROLE_KEY"):
        await supabase_client.get_service_role_client()
