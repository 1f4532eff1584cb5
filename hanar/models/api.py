"""
API Models - Pydantic models for request/response validation.

NO DICTIONARIES - All data structures are strongly typed.
Marketplace responses keep the camelCase keys the web client already reads.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class AdminRole(str, Enum):
    """Closed set of admin roles stored in adminaccounts.role."""

    OWNER = "owner"
    CEO = "ceo"
    TOPMANAGER = "topmanager"
    MANAGER = "manager"
    REVIEWER = "reviewer"
    MODERATOR = "moderator"
    SUPPORT = "support"
    EDITOR = "editor"
    READONLY = "readonly"
    BUSINESS = "business"

    @classmethod
    def parse(cls, value: str | None) -> "AdminRole | None":
        """Map a stored role string to a role, or None if unknown."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class CamelModel(BaseModel):
    """Base for responses serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Listing Entitlement Models
# ============================================================================


class ListingLimitsResponse(CamelModel):
    """GET /api/marketplace/listing-limits response."""

    is_business: bool
    active_count: int
    max_allowed: int
    has_pack: bool
    pack_expires_at: datetime | None = None
    can_add_more: bool


class PackRenewalResponse(CamelModel):
    """POST /api/marketplace/casual-seller-pack response."""

    success: bool = True
    pack_expires_at: datetime
    message: str


# ============================================================================
# Marketplace Item Models
# ============================================================================


class CreateItemRequest(BaseModel):
    """POST /api/marketplace/create-item request body."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    price: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: str | None = Field(None, max_length=100)
    condition: str | None = Field(None, max_length=50)
    location: str | None = Field(None, max_length=255)
    image_urls: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject whitespace-only titles."""
        if not v.strip():
            raise ValueError("title cannot be blank")
        return v.strip()


class CreatedItem(BaseModel):
    """Projection of a freshly inserted item."""

    id: UUID
    title: str
    created_at: datetime | None


class CreateItemResponse(BaseModel):
    """POST /api/marketplace/create-item response."""

    success: bool = True
    item: CreatedItem


class DeleteItemRequest(BaseModel):
    """POST /api/marketplace/delete-item request body (itemId or id)."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: UUID | None = Field(None, alias="itemId")
    id: UUID | None = None

    @model_validator(mode="after")
    def require_identifier(self) -> "DeleteItemRequest":
        if self.item_id is None and self.id is None:
            raise ValueError("Missing itemId")
        return self

    @property
    def target_id(self) -> UUID:
        """The item to delete; itemId wins when both are sent."""
        return self.item_id or self.id  # type: ignore[return-value]


class SuccessResponse(BaseModel):
    """Generic success acknowledgement."""

    success: bool = True


# ============================================================================
# Admin Models
# ============================================================================


class AdminCheckResponse(BaseModel):
    """GET /api/check-admin response."""

    allowed: bool
    role: AdminRole | None = None


class DashboardCountsResponse(BaseModel):
    """GET /api/admin/dashboard-counts response."""

    businesses_pending_approval: int = 0
    marketplace_items_total: int = 0
    active_listing_packs: int = 0


class AdminAccountResponse(BaseModel):
    """One admin account row."""

    user_id: UUID | None
    email: str | None
    role: str | None
    label: str


class AdminAccountListResponse(BaseModel):
    """GET /api/admin/admins response."""

    admins: list[AdminAccountResponse]


class ReportResponse(BaseModel):
    """One row of the reports table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: str
    entity_id: str
    entity_title: str | None = None
    reporter_id: UUID | None = None
    reporter_username: str | None = None
    reason: str
    details: str | None = None
    status: str
    admin_note: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReportListResponse(BaseModel):
    """GET /api/admin/reports response."""

    reports: list[ReportResponse]


class UpdateReportRequest(BaseModel):
    """
    PATCH /api/admin/reports request body.

    A blank status leaves the stored one unchanged; admin_note is written
    whenever the key is present, so an explicit null clears it.
    """

    model_config = ConfigDict(extra="ignore")

    id: UUID
    status: str | None = Field(None, max_length=20)
    admin_note: str | None = Field(None, max_length=5000)

    @property
    def writes_admin_note(self) -> bool:
        return "admin_note" in self.model_fields_set


class ReportUpdateResponse(BaseModel):
    """PATCH /api/admin/reports response."""

    report: ReportResponse


# ============================================================================
# Health Models
# ============================================================================


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    database: str
    timestamp: str
