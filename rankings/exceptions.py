"""
Errors raised by the ranking engine.

Callers map them onto their own transport: ``ValidationError`` means the request must be fixed,
``NotFoundError`` that a referenced identity is missing, ``ConflictAbort`` that the whole submission
may be retried unchanged and ``StoreUnavailable`` that the database could not be reached. No partial
write is ever visible after any of them.
"""

from django.core import exceptions as django_exceptions


class RankingError(Exception):
    """Base class for all ranking engine errors."""


class ValidationError(RankingError, django_exceptions.ValidationError):
    """Malformed ranking request, raised before the store is touched."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """
        Initialize the ValidationError.

        Args:
            message: Human-readable description of the problem
            field: Name of the offending request field, if any

        """
        self.field = field
        django_exceptions.ValidationError.__init__(self, message, code="invalid")

    def __str__(self) -> str:
        """Return the plain message instead of Django's list representation."""
        return self.message


class NotFoundError(RankingError):
    """A referenced user, dish, restaurant or ranking does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        """
        Initialize the NotFoundError.

        Args:
            kind: What was looked up, e.g. "dish"
            identifier: The id that matched nothing

        """
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class ConflictAbort(RankingError):
    """A concurrent write for the same ranking scope prevented the submission; retry it."""


class StoreUnavailable(RankingError):
    """The ranking store could not be reached or failed unexpectedly."""
