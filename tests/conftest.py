from types import SimpleNamespace

import pytest

from livelist.models.profile import AuthenticatedUser

from tests.fakes import InMemoryStore

ALICE = AuthenticatedUser(id="alice-id", email="alice@example.com", full_name="Alice")
BOB = AuthenticatedUser(id="bob-id", email="bob@example.com", full_name="Bob")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def household(store):
    """Alice and Bob share one workspace that both point at"""
    store.seed_profile(ALICE.id, ALICE.email, ALICE.full_name)
    store.seed_profile(BOB.id, BOB.email, BOB.full_name)
    workspace = store.seed_workspace("Our Home", "home1234", [ALICE.id, BOB.id])
    for profile_id in (ALICE.id, BOB.id):
        store.profiles[profile_id]["workspace_id"] = workspace["id"]
    return SimpleNamespace(store=store, workspace=workspace, workspace_id=workspace["id"])
