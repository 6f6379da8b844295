"""Tests for enrichment_service module."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from services.enrichment_service import enrich_species_list
from services.exceptions import ExtendedDataNotFoundError, NotAllowedError
from tests.factories import make_logged_user


def _species(species_id: int, class_id: int | None) -> SimpleNamespace:
    return SimpleNamespace(
        id=species_id,
        owner_id=None,
        code=f"SP{species_id}",
        nom_francais=f"Espèce {species_id}",
        nom_latin=f"Species {species_id}",
        class_id=class_id,
    )


@pytest.mark.unit
class TestEnrichSpecies:
    @pytest.mark.asyncio
    async def test_embeds_class(self):
        classes = [SimpleNamespace(id=3, owner_id=None, libelle="Oiseaux")]
        with patch(
            "services.enrichment_service.species_class_service.find_by_ids",
            new=AsyncMock(return_value=classes),
        ) as find_by_ids:
            responses = await enrich_species_list(
                AsyncMock(), [_species(1, 3), _species(2, None)], make_logged_user()
            )

        find_by_ids.assert_awaited_once()
        assert find_by_ids.await_args.args[1] == [3]
        assert responses[0].species_class.libelle == "Oiseaux"
        assert responses[0].id == "1"
        assert responses[1].species_class is None

    @pytest.mark.asyncio
    async def test_dangling_class_reference(self):
        with (
            patch(
                "services.enrichment_service.species_class_service.find_by_ids",
                new=AsyncMock(return_value=[]),
            ),
            pytest.raises(ExtendedDataNotFoundError),
        ):
            await enrich_species_list(
                AsyncMock(), [_species(1, 3)], make_logged_user()
            )

    @pytest.mark.asyncio
    async def test_anonymous_is_rejected(self):
        with pytest.raises(NotAllowedError):
            await enrich_species_list(AsyncMock(), [_species(1, 3)], None)
