"""Domain errors raised by services and repositories.

The HTTP layer maps each of them to a status code (see main.py).
An absent record is not an error: lookups return None.
"""


class DomainError(Exception):
    """Base class for expected, per-request failures."""


class NotAllowedError(DomainError):
    """Caller is not authenticated or lacks the permission for the operation."""


class AlreadyExistsError(DomainError):
    """A unique natural key (label, code) is already taken."""


class IsUsedError(DomainError):
    """The record is still referenced and cannot be deleted."""


class ExtendedDataNotFoundError(DomainError):
    """A related record needed to build a response is missing."""


class RequiredDataNotFoundError(DomainError):
    """A record referenced by the input does not exist."""


class SimilarInventoryExistsError(DomainError):
    def __init__(self, corresponding_id: int):
        self.corresponding_id = corresponding_id
        super().__init__(f"Similar inventory exists: {corresponding_id}")


class SimilarEntryExistsError(DomainError):
    def __init__(self, corresponding_id: int):
        self.corresponding_id = corresponding_id
        super().__init__(f"Similar entry exists: {corresponding_id}")
