"""Optimistic mutations, rollback and convergence across clients"""
import asyncio

import pytest

from livelist.errors import ValidationError
from livelist.models.profile import Member
from livelist.services.members import DEFAULT_MEMBER_COLORS
from livelist.services.preferences import LocalPreferences

from tests.conftest import ALICE, BOB
from tests.fakes import build_session, settle, spin


async def signed_in(store, user, **kwargs):
    session = build_session(store, **kwargs)
    assert await session.sign_in(user)
    return session


def titles(session):
    return [t.title for t in session.state.view.tasks]


@pytest.mark.asyncio
async def test_two_clients_converge(household):
    store = household.store
    alice = await signed_in(store, ALICE)
    bob = await signed_in(store, BOB)

    task = await alice.add_task("Buy milk")
    await settle(alice, bob)
    assert titles(bob) == ["Buy milk"]
    assert titles(alice) == ["Buy milk"]

    assert await bob.toggle_task(task.id)
    await settle(alice, bob)
    assert alice.state.view.task_collection.get(task.id).is_completed

    assert await bob.delete_task(task.id)
    await settle(alice, bob)
    assert alice.state.view.tasks == ()
    assert bob.state.view.tasks == ()
    assert store.tasks == {}


@pytest.mark.asyncio
async def test_toggle_rolls_back_on_failure(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Laundry")
    alice = await signed_in(store, ALICE)

    gate = store.pause("tasks.update")
    store.fail("tasks.update")
    pending = asyncio.create_task(alice.toggle_task(row["id"]))
    await spin()
    assert alice.state.view.task_collection.get(row["id"]).is_completed is True

    gate.set()
    assert await pending is False
    assert alice.state.view.task_collection.get(row["id"]).is_completed is False
    assert alice.state.message.startswith("Unable to update task")


@pytest.mark.asyncio
async def test_failed_delete_restores_position(household):
    store = household.store
    ws = household.workspace_id
    first, second, third = (store.seed_task(ws, title) for title in ("one", "two", "three"))
    alice = await signed_in(store, ALICE)
    assert titles(alice) == ["three", "two", "one"]

    store.fail("tasks.delete")
    assert await alice.delete_task(second["id"]) is False
    assert titles(alice) == ["three", "two", "one"]
    assert second["id"] in store.tasks


@pytest.mark.asyncio
async def test_stale_rollback_is_discarded(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Original")
    alice = await signed_in(store, ALICE)

    gate_a = store.pause("tasks.update")
    gate_b = store.pause("tasks.update")
    first = asyncio.create_task(alice.rename_task(row["id"], "A"))
    await spin()
    second = asyncio.create_task(alice.rename_task(row["id"], "B"))
    await spin()
    assert titles(alice) == ["B"]

    gate_b.set()
    assert await second

    store.fail("tasks.update")
    gate_a.set()
    assert await first is False
    await settle(alice)
    # The older write failed after a newer one was confirmed
    assert titles(alice) == ["B"]


@pytest.mark.asyncio
async def test_newest_failure_restores_last_confirmed_value(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Original")
    alice = await signed_in(store, ALICE)

    gate_a = store.pause("tasks.update")
    gate_b = store.pause("tasks.update")
    first = asyncio.create_task(alice.rename_task(row["id"], "A"))
    await spin()
    second = asyncio.create_task(alice.rename_task(row["id"], "B"))
    await spin()

    gate_a.set()
    assert await first
    await settle(alice)
    # Feed confirmation of A does not clobber the in-flight B
    assert titles(alice) == ["B"]

    store.fail("tasks.update")
    gate_b.set()
    assert await second is False
    assert titles(alice) == ["A"]
    assert store.tasks[row["id"]]["title"] == "A"


@pytest.mark.asyncio
async def test_feed_merges_with_in_flight_edit(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Dishes")
    alice = await signed_in(store, ALICE)
    bob = await signed_in(store, BOB)

    gate = store.pause("tasks.update")
    rename = asyncio.create_task(alice.rename_task(row["id"], "Dishes tonight"))
    await spin()

    assert await bob.toggle_task(row["id"])
    await settle(alice, bob)
    local = alice.state.view.task_collection.get(row["id"])
    assert local.title == "Dishes tonight"
    assert local.is_completed

    gate.set()
    assert await rename
    await settle(alice, bob)
    for session in (alice, bob):
        task = session.state.view.task_collection.get(row["id"])
        assert (task.title, task.is_completed) == ("Dishes tonight", True)


@pytest.mark.asyncio
async def test_failed_create_removes_optimistic_task(household):
    store = household.store
    alice = await signed_in(store, ALICE)

    store.fail("tasks.create")
    assert await alice.add_task("Vacuum") is None
    assert alice.state.view.tasks == ()
    assert alice.state.message.startswith("Unable to add task")


@pytest.mark.asyncio
async def test_empty_title_is_rejected_locally(household):
    store = household.store
    alice = await signed_in(store, ALICE)

    assert await alice.add_task("   ") is None
    assert alice.state.message == "Task title cannot be empty"
    assert "tasks.create" not in store.writes


@pytest.mark.asyncio
async def test_new_category_is_selected_and_remembered(household, tmp_path):
    store = household.store
    prefs = LocalPreferences(tmp_path / "prefs.json")
    store.seed_task(household.workspace_id, "Uncategorised")
    alice = await signed_in(store, ALICE, preferences=prefs)

    assert await alice.add_category("Groceries")
    view = alice.state.view
    category_id = view.categories[0].id
    assert view.selected_category_id == category_id
    assert prefs.get_last_category(household.workspace_id) == category_id
    assert view.tasks == ()

    task = await alice.add_task("Eggs")
    assert task.category_id == category_id
    assert titles(alice) == ["Eggs"]


@pytest.mark.asyncio
async def test_selection_is_restored_on_sign_in(household, tmp_path):
    store = household.store
    ws = household.workspace_id
    category = store.seed_category(ws, "Garden")
    store.seed_task(ws, "Mow", category_id=category["id"])
    store.seed_task(ws, "Cook")
    prefs = LocalPreferences(tmp_path / "prefs.json")
    prefs.set_last_category(ws, category["id"])

    alice = await signed_in(store, ALICE, preferences=prefs)
    assert alice.state.view.selected_category_id == category["id"]
    assert titles(alice) == ["Mow"]


@pytest.mark.asyncio
async def test_remote_delete_of_selected_category_reloads_tasks(household):
    store = household.store
    ws = household.workspace_id
    category = store.seed_category(ws, "Garden")
    store.seed_task(ws, "Mow", category_id=category["id"])
    store.seed_task(ws, "Cook")
    alice = await signed_in(store, ALICE)
    bob = await signed_in(store, BOB)

    assert await alice.select_category(category["id"])
    assert titles(alice) == ["Mow"]

    assert await bob.delete_category(category["id"])
    await settle(alice, bob)

    view = alice.state.view
    assert view.selected_category_id is None
    assert view.categories == ()
    assert sorted(titles(alice)) == ["Cook", "Mow"]
    assert all(t.category_id is None for t in view.tasks)


@pytest.mark.asyncio
async def test_assignment_and_colors(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Trash")
    alice = await signed_in(store, ALICE)
    bob_member = alice.state.view.member_collection.get(BOB.id)

    assert await alice.assign_task(row["id"], bob_member)
    task = alice.state.view.task_collection.get(row["id"])
    assert task.assigned_to == "Bob"
    assert store.tasks[row["id"]]["assigned_to"] == "Bob"
    assert alice.task_color(task) == DEFAULT_MEMBER_COLORS[1]

    assert await alice.assign_task(row["id"], None)
    assert store.tasks[row["id"]]["assigned_to"] is None


@pytest.mark.asyncio
async def test_members_can_only_change_their_own_color(household):
    store = household.store
    alice = await signed_in(store, ALICE)

    assert await alice.update_color("#000000")
    assert alice.member_colors()[ALICE.id] == "#000000"
    assert store.profiles[ALICE.id]["color"] == "#000000"
    assert alice.state.message == "Color updated."

    with pytest.raises(ValidationError):
        await alice.mutations.update_own_color(BOB.id, "#ffffff")


@pytest.mark.asyncio
async def test_rename_workspace(household):
    store = household.store
    alice = await signed_in(store, ALICE)

    assert await alice.rename_workspace("  Beach House ")
    assert alice.state.view.name == "Beach House"
    assert [w.name for w in alice.state.known_workspaces] == ["Beach House"]
    assert store.workspaces[household.workspace_id]["name"] == "Beach House"

    store.fail("workspaces.update")
    assert await alice.rename_workspace("Cabin") is False
    assert alice.state.view.name == "Beach House"


@pytest.mark.asyncio
async def test_assign_with_unknown_member_value(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Trash")
    alice = await signed_in(store, ALICE)

    assert await alice.assign_task(row["id"], Member(id="x", email="carol.king@example.com"))
    assert store.tasks[row["id"]]["assigned_to"] == "Carol King"


@pytest.mark.asyncio
async def test_failed_delete_keeps_in_flight_rollback(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Laundry")
    alice = await signed_in(store, ALICE)

    gate = store.pause("tasks.update")
    store.fail("tasks.update")
    toggle = asyncio.create_task(alice.toggle_task(row["id"]))
    await spin()

    store.fail("tasks.delete")
    assert await alice.delete_task(row["id"]) is False
    assert alice.state.view.task_collection.get(row["id"]).is_completed is True

    gate.set()
    assert await toggle is False
    await settle(alice)
    local = alice.state.view.task_collection.get(row["id"])
    assert local.is_completed is store.tasks[row["id"]]["is_completed"] is False


@pytest.mark.asyncio
async def test_field_write_settling_during_failed_delete(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Laundry")
    alice = await signed_in(store, ALICE)

    update_gate = store.pause("tasks.update")
    delete_gate = store.pause("tasks.delete")
    store.fail("tasks.update")
    toggle = asyncio.create_task(alice.toggle_task(row["id"]))
    await spin()
    delete = asyncio.create_task(alice.delete_task(row["id"]))
    await spin()
    assert alice.state.view.tasks == ()

    # The toggle fails while the task is out of the view
    update_gate.set()
    assert await toggle is False

    store.fail("tasks.delete")
    delete_gate.set()
    assert await delete is False
    assert alice.state.view.task_collection.get(row["id"]).is_completed is False


@pytest.mark.asyncio
async def test_task_category_must_belong_to_workspace(household):
    store = household.store
    elsewhere = store.seed_workspace("Cabin", "cabin123", [BOB.id])
    foreign = store.seed_category(elsewhere["id"], "Firewood")
    alice = await signed_in(store, ALICE)

    with pytest.raises(ValidationError):
        await alice.mutations.create_task("Milk", category_id=foreign["id"])
    assert alice.state.view.tasks == ()
    assert "tasks.create" not in store.writes


@pytest.mark.asyncio
async def test_failed_assignment_rolls_back(household):
    store = household.store
    row = store.seed_task(household.workspace_id, "Trash")
    alice = await signed_in(store, ALICE)
    bob_member = alice.state.view.member_collection.get(BOB.id)

    gate = store.pause("tasks.update")
    store.fail("tasks.update")
    assign = asyncio.create_task(alice.assign_task(row["id"], bob_member))
    await spin()
    assert alice.state.view.task_collection.get(row["id"]).assigned_to == "Bob"

    gate.set()
    assert await assign is False
    assert alice.state.view.task_collection.get(row["id"]).assigned_to is None
    assert store.tasks[row["id"]]["assigned_to"] is None
    assert alice.state.message.startswith("Unable to assign task")


@pytest.mark.asyncio
async def test_failed_category_delete_restores_position_and_selection(household):
    store = household.store
    ws = household.workspace_id
    for name in ("Garden", "Kitchen", "Garage"):
        store.seed_category(ws, name)
    alice = await signed_in(store, ALICE)
    view = alice.state.view
    assert [c.name for c in view.categories] == ["Garage", "Kitchen", "Garden"]

    kitchen = view.categories[1]
    assert await alice.select_category(kitchen.id)

    store.fail("categories.delete")
    assert await alice.delete_category(kitchen.id) is False
    assert [c.name for c in view.categories] == ["Garage", "Kitchen", "Garden"]
    assert view.selected_category_id == kitchen.id
    assert alice.state.message.startswith("Unable to delete board")


@pytest.mark.asyncio
async def test_failed_color_change_rolls_back(household):
    store = household.store
    alice = await signed_in(store, ALICE)

    store.fail("profiles.update")
    assert await alice.update_color("#000000") is False
    assert alice.state.view.member_collection.get(ALICE.id).color is None
    assert alice.state.profile.color is None
    assert store.profiles[ALICE.id]["color"] is None
