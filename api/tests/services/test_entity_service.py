"""Tests for the generic EntityService.

Tests cover:
- authentication requirement on every operation
- create permission and ownership stamping
- owner-or-permission policy for update/delete
- usage check before delete
- pagination forwarding to the repository
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.permissions import Role
from schemas import LabelInput, LabelQueryParams
from services.entity_service import EntityService
from services.exceptions import AlreadyExistsError, IsUsedError, NotAllowedError
from tests.factories import ADMIN_ID, CONTRIBUTOR_ID, USER_ID, make_logged_user


@pytest.fixture
def repo() -> MagicMock:
    repo = MagicMock()
    repo.find_by_id = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda values: SimpleNamespace(id=1, **values))
    repo.update = AsyncMock(side_effect=lambda i, values: SimpleNamespace(id=i, **values))
    repo.delete_by_id = AsyncMock(side_effect=lambda i: SimpleNamespace(id=i))
    repo.usage_count = AsyncMock(return_value=0)
    repo.entries_count = AsyncMock(return_value=0)
    repo.find_many = AsyncMock(return_value=[])
    repo.count = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def service(repo: MagicMock) -> EntityService:
    return EntityService(MagicMock(return_value=repo), "age")


@pytest.mark.unit
class TestAuthentication:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.find(AsyncMock(), 1, None),
            lambda s: s.is_used(AsyncMock(), 1, None),
            lambda s: s.entries_count(AsyncMock(), 1, None),
            lambda s: s.get_info(AsyncMock(), 1, None),
            lambda s: s.find_paginated(AsyncMock(), None, LabelQueryParams()),
            lambda s: s.create(AsyncMock(), LabelInput(libelle="x"), None),
            lambda s: s.update(AsyncMock(), 1, LabelInput(libelle="x"), None),
            lambda s: s.delete(AsyncMock(), 1, None),
        ],
    )
    async def test_anonymous_caller_is_rejected(
        self, service: EntityService, repo, call
    ):
        with pytest.raises(NotAllowedError):
            await call(service)

        for method in (
            repo.find_by_id,
            repo.usage_count,
            repo.entries_count,
            repo.find_many,
            repo.create,
            repo.update,
            repo.delete_by_id,
        ):
            method.assert_not_awaited()


@pytest.mark.unit
class TestCreate:
    @pytest.mark.asyncio
    async def test_stamps_caller_as_owner(self, service: EntityService, repo):
        user = make_logged_user(Role.CONTRIBUTOR, CONTRIBUTOR_ID)

        created = await service.create(AsyncMock(), LabelInput(libelle="Adulte"), user)

        repo.create.assert_awaited_once_with(
            {"libelle": "Adulte", "owner_id": CONTRIBUTOR_ID}
        )
        assert created.owner_id == CONTRIBUTOR_ID

    @pytest.mark.asyncio
    async def test_conflict_propagates(self, service: EntityService, repo):
        repo.create.side_effect = AlreadyExistsError("age")

        with pytest.raises(AlreadyExistsError):
            await service.create(
                AsyncMock(), LabelInput(libelle="Adulte"), make_logged_user(Role.ADMIN)
            )

    @pytest.mark.asyncio
    async def test_requires_create_permission(self, service: EntityService, repo):
        with pytest.raises(NotAllowedError):
            await service.create(
                AsyncMock(), LabelInput(libelle="Adulte"), make_logged_user(Role.USER)
            )

        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_multiple_keeps_order(self, service: EntityService, repo):
        repo.create_many = AsyncMock(return_value=[])
        user = make_logged_user(Role.ADMIN, ADMIN_ID)

        await service.create_multiple(
            AsyncMock(),
            [LabelInput(libelle="A"), LabelInput(libelle="B")],
            user,
        )

        repo.create_many.assert_awaited_once_with(
            [
                {"libelle": "A", "owner_id": ADMIN_ID},
                {"libelle": "B", "owner_id": ADMIN_ID},
            ]
        )


@pytest.mark.unit
class TestUpdate:
    @pytest.mark.asyncio
    async def test_owner_without_permission_can_edit(self, service: EntityService, repo):
        repo.find_by_id.return_value = SimpleNamespace(id=4, owner_id=USER_ID)

        updated = await service.update(
            AsyncMock(), 4, LabelInput(libelle="New"), make_logged_user(Role.USER)
        )

        assert updated.libelle == "New"

    @pytest.mark.asyncio
    async def test_non_owner_without_permission_is_rejected(
        self, service: EntityService, repo
    ):
        repo.find_by_id.return_value = SimpleNamespace(id=4, owner_id=ADMIN_ID)

        with pytest.raises(NotAllowedError):
            await service.update(
                AsyncMock(),
                4,
                LabelInput(libelle="New"),
                make_logged_user(Role.CONTRIBUTOR, CONTRIBUTOR_ID),
            )

        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_permission_skips_ownership_lookup(self, service: EntityService, repo):
        await service.update(
            AsyncMock(), 4, LabelInput(libelle="New"), make_logged_user(Role.ADMIN)
        )

        repo.find_by_id.assert_not_awaited()
        repo.update.assert_awaited_once_with(4, {"libelle": "New"})

    @pytest.mark.asyncio
    async def test_conflict_propagates(self, service: EntityService, repo):
        repo.update.side_effect = AlreadyExistsError("age")

        with pytest.raises(AlreadyExistsError):
            await service.update(
                AsyncMock(),
                4,
                LabelInput(libelle="Adulte"),
                make_logged_user(Role.ADMIN),
            )


@pytest.mark.unit
class TestDelete:
    @pytest.mark.asyncio
    async def test_used_entity_is_not_deleted(self, service: EntityService, repo):
        repo.usage_count.return_value = 3

        with pytest.raises(IsUsedError):
            await service.delete(AsyncMock(), 4, make_logged_user(Role.ADMIN))

        repo.delete_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unused_entity_is_deleted(self, service: EntityService, repo):
        deleted = await service.delete(AsyncMock(), 4, make_logged_user(Role.ADMIN))

        assert deleted.id == 4

    @pytest.mark.asyncio
    async def test_owner_can_delete(self, service: EntityService, repo):
        repo.find_by_id.return_value = SimpleNamespace(id=4, owner_id=USER_ID)

        deleted = await service.delete(AsyncMock(), 4, make_logged_user(Role.USER))

        assert deleted.id == 4


@pytest.mark.unit
class TestReads:
    @pytest.mark.asyncio
    async def test_find_missing_record_returns_none(
        self, service: EntityService, repo
    ):
        assert await service.find(AsyncMock(), 404, make_logged_user()) is None
        repo.find_by_id.assert_awaited_once_with(404)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("usage,expected", [(0, False), (2, True)])
    async def test_is_used(self, service: EntityService, repo, usage, expected):
        repo.usage_count.return_value = usage

        assert await service.is_used(AsyncMock(), 4, make_logged_user()) is expected
        repo.usage_count.assert_awaited_once_with(4)

    @pytest.mark.asyncio
    async def test_find_paginated_forwards_offset_and_owner(
        self, service: EntityService, repo
    ):
        params = LabelQueryParams(
            q="adu", order_by="nbDonnees", sort_order="desc", page_number=3, page_size=10
        )

        await service.find_paginated(AsyncMock(), make_logged_user(), params)

        repo.find_many.assert_awaited_once_with(
            q="adu",
            order_by="nbDonnees",
            sort_order="desc",
            offset=20,
            limit=10,
            owner_id=USER_ID,
        )

    @pytest.mark.asyncio
    async def test_info_reports_usage_and_own_entries(
        self, service: EntityService, repo
    ):
        repo.usage_count.return_value = 5
        repo.entries_count.return_value = 2

        info = await service.get_info(AsyncMock(), 4, make_logged_user())

        assert info.can_be_deleted is False
        assert info.own_entries_count == 2
        repo.entries_count.assert_awaited_once_with(4, owner_id=USER_ID)
