"""
Database Models - SQLAlchemy ORM models with strict typing.

The tables are owned by the hosted backend; these mappings cover only the
columns this service reads or writes.
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import ARRAY, Boolean, DateTime, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Business(Base):
    """
    ORM model for businesses table.

    A user owning at least one row is a business account.
    """

    __tablename__ = "businesses"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    owner_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Moderation
    moderation_status: Mapped[str] = mapped_column(String(20), nullable=False, default="on_hold")
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("idx_businesses_owner_id", "owner_id"),
        Index("idx_businesses_moderation", "moderation_status", "is_archived"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Business(id={self.id}, owner_id={self.owner_id}, name={self.business_name})>"


class IndividualListingPack(Base):
    """
    ORM model for individual_listing_packs table.

    One row per user; expiry is extended on every renewal.
    """

    __tablename__ = "individual_listing_packs"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, unique=True)
    pack_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (Index("idx_listing_packs_expires_at", "pack_expires_at"),)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<IndividualListingPack(user_id={self.user_id}, "
            f"pack_expires_at={self.pack_expires_at})>"
        )


class MarketplaceItem(Base):
    """ORM model for marketplace_items table."""

    __tablename__ = "marketplace_items"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)

    # Listing content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_urls: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)

    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (Index("idx_marketplace_items_user_created", "user_id", "created_at"),)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<MarketplaceItem(id={self.id}, user_id={self.user_id}, title={self.title})>"


class AdminAccount(Base):
    """
    ORM model for adminaccounts table.

    Accounts may be provisioned by user id, by email, or both.
    """

    __tablename__ = "adminaccounts"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (Index("idx_adminaccounts_role", "role"),)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<AdminAccount(user_id={self.user_id}, email={self.email}, role={self.role})>"


class Report(Base):
    """
    ORM model for reports table.

    User-filed reports against listings, businesses or profiles. Rows are
    inserted by the web client; this service lists and triages them.
    """

    __tablename__ = "reports"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(Text, nullable=False)
    entity_title: Mapped[str | None] = mapped_column(Text, nullable=True)

    reporter_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    reporter_username: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Triage
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unread")
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_reports_status_created", "status", "created_at"),
        Index("idx_reports_entity_type", "entity_type"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Report(id={self.id}, entity_type={self.entity_type}, status={self.status})>"
