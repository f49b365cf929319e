"""Repositories translate calls into the expected PostgREST queries"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from livelist.infra.supabase.repositories import RepositoryFactory
from livelist.models.task import TaskUpdate


def fake_client(rows):
    query = MagicMock()
    for method in ("select", "eq", "in_", "order", "limit", "insert", "update", "upsert", "delete"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=SimpleNamespace(data=rows))
    client = MagicMock()
    client.table.return_value = query
    return client, query


TASK_ROW = {
    "id": "t1",
    "title": "Milk",
    "is_completed": False,
    "assigned_to": None,
    "workspace_id": "ws",
    "category_id": "c1",
    "user_email": "a@x.com",
    "created_at": "2024-01-01T00:00:00+00:00",
}


@pytest.mark.asyncio
async def test_tasks_are_loaded_newest_first():
    client, query = fake_client([TASK_ROW])
    tasks = await RepositoryFactory(client).tasks.find_by_workspace("ws", "c1")

    client.table.assert_called_with("tasks")
    query.eq.assert_any_call("workspace_id", "ws")
    query.eq.assert_any_call("category_id", "c1")
    query.order.assert_called_with("created_at", desc=True)
    assert [t.id for t in tasks] == ["t1"]


@pytest.mark.asyncio
async def test_update_writes_only_set_fields():
    client, query = fake_client([{**TASK_ROW, "assigned_to": None}])
    await RepositoryFactory(client).tasks.update("t1", TaskUpdate(assigned_to=None))
    query.update.assert_called_with({"assigned_to": None})
    query.eq.assert_called_with("id", "t1")


@pytest.mark.asyncio
async def test_membership_upsert_is_keyed_on_pair():
    client, query = fake_client([{"id": "m1", "profile_id": "p1", "workspace_id": "ws"}])
    member = await RepositoryFactory(client).workspace_members.upsert_membership("p1", "ws")
    query.upsert.assert_called_with({"profile_id": "p1", "workspace_id": "ws"}, on_conflict="profile_id,workspace_id")
    assert member.id == "m1"


@pytest.mark.asyncio
async def test_unassign_member_counts_rows():
    client, query = fake_client([TASK_ROW, {**TASK_ROW, "id": "t2"}])
    count = await RepositoryFactory(client).tasks.unassign_member("ws", "Bob")
    query.update.assert_called_with({"assigned_to": None})
    query.eq.assert_any_call("assigned_to", "Bob")
    assert count == 2


@pytest.mark.asyncio
async def test_find_members_skips_empty_lookup():
    client, query = fake_client([])
    assert await RepositoryFactory(client).profiles.find_members([]) == []
    client.table.assert_not_called()
