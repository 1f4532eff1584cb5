"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from hanar.models.api import AdminRole


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller resolved from a session cookie or bearer token."""

    user_id: UUID
    email: str | None = None

    @property
    def normalized_email(self) -> str | None:
        """Lower-cased contact address used for admin lookups."""
        if not self.email:
            return None
        return self.email.strip().lower() or None


@dataclass(frozen=True)
class EntitlementDecision:
    """Point-in-time listing quota state for one user."""

    is_business: bool
    active_count: int
    max_allowed: int
    has_pack: bool
    pack_expires_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate quota values."""
        if self.active_count < 0:
            raise ValueError(f"Active count cannot be negative: {self.active_count}")
        if self.max_allowed <= 0:
            raise ValueError(f"Max allowed must be positive: {self.max_allowed}")
        if self.is_business and self.has_pack:
            raise ValueError("Business accounts cannot hold a listing pack")

    @property
    def can_add_more(self) -> bool:
        """Businesses are never capped."""
        return self.is_business or self.active_count < self.max_allowed


@dataclass(frozen=True)
class AdminDecision:
    """Result of an admin allow-list check."""

    allowed: bool
    role: AdminRole | None = None

    def __post_init__(self) -> None:
        if self.allowed and self.role is None:
            raise ValueError("An allowed decision must carry a role")

    @classmethod
    def denied(cls) -> "AdminDecision":
        """Decision used for every failed or ambiguous check."""
        return cls(allowed=False, role=None)


@dataclass(frozen=True)
class MarketplaceItemIntent:
    """Domain model for an item before persistence - immutable intent."""

    title: str
    description: str | None = None
    price: Decimal | None = None
    category: str | None = None
    condition: str | None = None
    location: str | None = None
    image_urls: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate item constraints."""
        if not self.title.strip():
            raise ValueError("Title cannot be empty")
        if self.price is not None and self.price < 0:
            raise ValueError(f"Price cannot be negative: {self.price}")


@dataclass(frozen=True)
class MarketplaceItemData:
    """Immutable item data after persistence."""

    item_id: UUID
    title: str
    created_at: datetime | None
