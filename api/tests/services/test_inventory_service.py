"""Tests for inventory_service module.

Tests cover:
- reuse of an identical inventory on create
- missing observer/locality on create
- SimilarInventoryExistsError vs entries migration on update
- ownership checks and the entries guard on delete
"""

import datetime as dt
from collections.abc import Generator
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from core.permissions import Role
from schemas import InventoryInput
from services.exceptions import (
    IsUsedError,
    NotAllowedError,
    RequiredDataNotFoundError,
    SimilarInventoryExistsError,
)
from services.inventory_service import (
    create_inventory,
    delete_inventory,
    update_inventory,
)
from tests.factories import ADMIN_ID, CONTRIBUTOR_ID, USER_ID, make_logged_user


def _input(**overrides) -> InventoryInput:
    return InventoryInput(
        observer_id=1,
        date=dt.date(2024, 5, 12),
        time="07:00",
        locality_id=2,
        **overrides,
    )


@pytest.fixture
def repos() -> Generator[SimpleNamespace]:
    with (
        patch("services.inventory_service.InventoryRepository", autospec=True) as inv,
        patch("services.inventory_service.EntryRepository", autospec=True) as entries,
        patch("services.inventory_service.ObserverRepository", autospec=True) as obs,
        patch("services.inventory_service.LocalityRepository", autospec=True) as loc,
    ):
        inventory_repo = inv.return_value
        inventory_repo.find_existing = AsyncMock(return_value=None)
        inventory_repo.create = AsyncMock(return_value=SimpleNamespace(id=10))
        obs.return_value.find_by_id = AsyncMock(return_value=SimpleNamespace(id=1))
        loc.return_value.find_by_id = AsyncMock(return_value=SimpleNamespace(id=2))
        yield SimpleNamespace(
            inventory=inventory_repo,
            entry=entries.return_value,
            observer=obs.return_value,
            locality=loc.return_value,
        )


@pytest.mark.unit
class TestCreateInventory:
    @pytest.mark.asyncio
    async def test_creates_owned_inventory(self, repos: SimpleNamespace):
        data = _input(
            associate_ids=[3],
            weather_ids=[4],
            coordinates={"altitude": 10, "longitude": 1.5, "latitude": 45.0},
        )

        inventory = await create_inventory(AsyncMock(), data, make_logged_user())

        assert inventory.id == 10
        values, associate_ids, weather_ids = repos.inventory.create.await_args.args
        assert values["owner_id"] == USER_ID
        assert values["heure"] == "07:00"
        assert values["altitude"] == 10
        assert (associate_ids, weather_ids) == ([3], [4])

    @pytest.mark.asyncio
    async def test_returns_identical_inventory(self, repos: SimpleNamespace):
        existing = SimpleNamespace(id=7)
        repos.inventory.find_existing.return_value = existing

        inventory = await create_inventory(AsyncMock(), _input(), make_logged_user())

        assert inventory is existing
        repos.inventory.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_locality(self, repos: SimpleNamespace):
        repos.locality.find_by_id.return_value = None

        with pytest.raises(RequiredDataNotFoundError):
            await create_inventory(AsyncMock(), _input(), make_logged_user())

    @pytest.mark.asyncio
    async def test_anonymous_is_rejected(self, repos: SimpleNamespace):
        with pytest.raises(NotAllowedError):
            await create_inventory(AsyncMock(), _input(), None)


@pytest.mark.unit
class TestUpdateInventory:
    @pytest.fixture
    def current(self, repos: SimpleNamespace) -> SimpleNamespace:
        inventory = SimpleNamespace(id=5, owner_id=USER_ID)
        repos.inventory.find_by_id = AsyncMock(return_value=inventory)
        repos.inventory.update = AsyncMock(return_value=inventory)
        repos.inventory.delete_by_id = AsyncMock(return_value=inventory)
        repos.entry.move_to_inventory = AsyncMock()
        return inventory

    @pytest.mark.asyncio
    async def test_similar_inventory_without_migration(
        self, repos: SimpleNamespace, current
    ):
        repos.inventory.find_existing.return_value = SimpleNamespace(id=9)

        with pytest.raises(SimilarInventoryExistsError) as exc_info:
            await update_inventory(AsyncMock(), 5, _input(), make_logged_user())

        assert exc_info.value.corresponding_id == 9
        repos.inventory.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_migration_moves_entries_and_deletes(
        self, repos: SimpleNamespace, current
    ):
        existing = SimpleNamespace(id=9)
        repos.inventory.find_existing.return_value = existing

        result = await update_inventory(
            AsyncMock(),
            5,
            _input(migrate_donnees_if_matches_existing_inventaire=True),
            make_logged_user(),
        )

        assert result is existing
        repos.entry.move_to_inventory.assert_awaited_once_with(5, 9)
        repos.inventory.delete_by_id.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_matching_itself_is_a_plain_update(
        self, repos: SimpleNamespace, current
    ):
        repos.inventory.find_existing.return_value = current

        result = await update_inventory(AsyncMock(), 5, _input(), make_logged_user())

        assert result is current
        repos.inventory.update.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_keeps_original_owner(self, repos: SimpleNamespace, current):
        await update_inventory(
            AsyncMock(), 5, _input(), make_logged_user(Role.ADMIN, ADMIN_ID)
        )

        values = repos.inventory.update.await_args.args[1]
        assert values["owner_id"] == USER_ID

    @pytest.mark.asyncio
    async def test_non_owner_is_rejected(self, repos: SimpleNamespace, current):
        with pytest.raises(NotAllowedError):
            await update_inventory(
                AsyncMock(),
                5,
                _input(),
                make_logged_user(Role.CONTRIBUTOR, CONTRIBUTOR_ID),
            )

    @pytest.mark.asyncio
    async def test_unknown_inventory_returns_none(self, repos: SimpleNamespace):
        repos.inventory.find_by_id = AsyncMock(return_value=None)

        assert await update_inventory(AsyncMock(), 5, _input(), make_logged_user()) is None


@pytest.mark.unit
class TestDeleteInventory:
    @pytest.mark.asyncio
    async def test_inventory_with_entries(self, repos: SimpleNamespace):
        repos.inventory.find_by_id = AsyncMock(
            return_value=SimpleNamespace(id=5, owner_id=USER_ID)
        )
        repos.inventory.entries_count = AsyncMock(return_value=2)
        repos.inventory.delete_by_id = AsyncMock()

        with pytest.raises(IsUsedError):
            await delete_inventory(AsyncMock(), 5, make_logged_user())

        repos.inventory.delete_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_deletes_any_inventory(self, repos: SimpleNamespace):
        inventory = SimpleNamespace(id=5, owner_id=USER_ID)
        repos.inventory.find_by_id = AsyncMock(return_value=inventory)
        repos.inventory.entries_count = AsyncMock(return_value=0)
        repos.inventory.delete_by_id = AsyncMock(return_value=inventory)

        deleted = await delete_inventory(
            AsyncMock(), 5, make_logged_user(Role.ADMIN, ADMIN_ID)
        )

        assert deleted is inventory

