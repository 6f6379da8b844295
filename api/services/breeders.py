"""Breeding status derived from an entry's behaviors."""

from collections.abc import Iterable

from models import BreederStatus

BREEDER_LEVELS: dict[BreederStatus, int] = {
    BreederStatus.POSSIBLE: 1,
    BreederStatus.PROBABLE: 2,
    BreederStatus.CERTAIN: 3,
}

BREEDER_NAMES: dict[BreederStatus, str] = {
    BreederStatus.POSSIBLE: "Nicheur possible",
    BreederStatus.PROBABLE: "Nicheur probable",
    BreederStatus.CERTAIN: "Nicheur certain",
}


def get_highest_breeder_status(
    statuses: Iterable[BreederStatus | None],
) -> BreederStatus | None:
    known = [status for status in statuses if status is not None]
    if not known:
        return None
    return max(known, key=BREEDER_LEVELS.__getitem__)


def get_breeder_status_to_display(
    statuses: Iterable[BreederStatus | None], fallback: str = ""
) -> str:
    status = get_highest_breeder_status(statuses)
    return BREEDER_NAMES[status] if status is not None else fallback
