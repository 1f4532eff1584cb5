"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""

from uuid import UUID

from hanar.models.domain import EntitlementDecision


class HanarError(Exception):
    """Base exception for all Hanar service errors."""

    pass


class UnauthorizedError(HanarError):
    """Raised when no caller identity can be resolved."""

    def __init__(self, message: str = "Unauthorized") -> None:
        self.message = message
        super().__init__(message)


class ForbiddenError(HanarError):
    """Raised when a resolved caller may not perform the operation."""

    def __init__(self, message: str = "Forbidden") -> None:
        self.message = message
        super().__init__(message)


class InvalidOperationError(ForbiddenError):
    """Raised when the caller's account type does not support the operation."""

    def __init__(self, user_id: UUID, message: str) -> None:
        self.user_id = user_id
        super().__init__(message)


class ListingLimitReachedError(HanarError):
    """Raised when an item would exceed the caller's listing quota."""

    def __init__(self, decision: EntitlementDecision, message: str) -> None:
        self.decision = decision
        self.message = message
        super().__init__(message)


class ItemNotFoundError(HanarError):
    """Raised when a marketplace item doesn't exist."""

    def __init__(self, item_id: UUID) -> None:
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class InvalidInputError(HanarError):
    """Raised when an identifier or payload is malformed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid input: {message}")


class StorageError(HanarError):
    """Raised when a database read or write fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"Storage error during {operation}: {message}")
