import pytest

from livelist.errors import ProfileResolutionError
from livelist.services.identity import IdentityResolver

from tests.fakes import FakeProfileRepository, StoreError


@pytest.mark.asyncio
async def test_first_sight_creates_profile(store):
    resolver = IdentityResolver(FakeProfileRepository(store))
    resolution = await resolver.resolve_profile("u1", "John.Doe@Example.com")

    assert resolution.created
    assert resolution.active_workspace_id is None
    assert resolution.profile.email == "john.doe@example.com"
    assert resolution.profile.full_name == "John Doe"
    assert store.writes == ["profiles.create"]


@pytest.mark.asyncio
async def test_display_name_hint_wins_over_derived_name(store):
    resolver = IdentityResolver(FakeProfileRepository(store))
    resolution = await resolver.resolve_profile("u1", "jd@example.com", "Johnny")
    assert resolution.profile.full_name == "Johnny"


@pytest.mark.asyncio
async def test_missing_name_is_backfilled_once(store):
    store.seed_profile("u1", "jane_roe@example.com", full_name=None, workspace_id="ws-1")
    resolver = IdentityResolver(FakeProfileRepository(store))

    resolution = await resolver.resolve_profile("u1", "jane_roe@example.com")
    assert not resolution.created
    assert resolution.profile.full_name == "Jane Roe"
    assert resolution.active_workspace_id == "ws-1"
    assert store.writes == ["profiles.update"]

    # Second call finds the name and writes nothing
    await resolver.resolve_profile("u1", "jane_roe@example.com")
    assert store.writes == ["profiles.update"]


@pytest.mark.asyncio
async def test_existing_name_is_never_overwritten(store):
    store.seed_profile("u1", "jane@example.com", full_name="Jane R.")
    resolver = IdentityResolver(FakeProfileRepository(store))

    resolution = await resolver.resolve_profile("u1", "jane@example.com", "Someone Else")
    assert resolution.profile.full_name == "Jane R."
    assert store.writes == []


@pytest.mark.asyncio
async def test_repeated_resolution_keeps_one_profile(store):
    resolver = IdentityResolver(FakeProfileRepository(store))
    first = await resolver.resolve_profile("u1", "a@example.com")
    second = await resolver.resolve_profile("u1", "a@example.com")
    assert first.profile.id == second.profile.id
    assert len(store.profiles) == 1


@pytest.mark.asyncio
async def test_persistence_failure_raises_resolution_error(store):
    store.fail("profiles.find_by_id", StoreError("connection reset"))
    resolver = IdentityResolver(FakeProfileRepository(store))

    with pytest.raises(ProfileResolutionError) as exc_info:
        await resolver.resolve_profile("u1", "a@example.com")
    assert "Unable to load profile" in exc_info.value.message
    assert store.profiles == {}
