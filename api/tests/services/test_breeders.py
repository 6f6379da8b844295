"""Tests for the breeding status helpers."""

import pytest

from models import BreederStatus
from services.breeders import (
    get_breeder_status_to_display,
    get_highest_breeder_status,
)


@pytest.mark.unit
class TestHighestBreederStatus:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([], None),
            ([None, None], None),
            ([BreederStatus.POSSIBLE], BreederStatus.POSSIBLE),
            ([BreederStatus.POSSIBLE, None, BreederStatus.PROBABLE], BreederStatus.PROBABLE),
            ([BreederStatus.CERTAIN, BreederStatus.PROBABLE], BreederStatus.CERTAIN),
        ],
    )
    def test_highest(self, statuses, expected):
        assert get_highest_breeder_status(statuses) == expected

    def test_display_name(self):
        statuses = [BreederStatus.PROBABLE, BreederStatus.POSSIBLE]

        assert get_breeder_status_to_display(statuses) == "Nicheur probable"

    def test_display_fallback(self):
        assert get_breeder_status_to_display([None], fallback="-") == "-"
