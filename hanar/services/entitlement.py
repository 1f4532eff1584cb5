"""
Listing Entitlement Service - decides whether a user may add a marketplace listing.

Tiers:
- business: any user owning a business record; never capped
- pack: individual with an active Casual Seller Pack; capped at pack_max_listings
- free: everyone else; pack-less users get free_tier_max_listings per rolling window

Every route that needs the decision goes through this service, so the
pack/free/business rules live in exactly one place.
"""

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.config import Settings, get_settings
from hanar.db.models import Business, IndividualListingPack, MarketplaceItem, utc_now
from hanar.exceptions import InvalidOperationError, StorageError
from hanar.models.domain import EntitlementDecision
from hanar.observability.metrics import metrics
from hanar.observability.tracing import add_span_attributes, get_tracer

logger = get_logger(__name__)
tracer = get_tracer(__name__)

BUSINESS_TIER = "business"
PACK_TIER = "pack"
FREE_TIER = "free"


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_pack_active(pack_expires_at: datetime | None, now: datetime) -> bool:
    """A pack is active iff its expiry is set and strictly in the future."""
    if pack_expires_at is None:
        return False
    return _as_utc(pack_expires_at) > now


def tier_of(decision: EntitlementDecision) -> str:
    """Metric/log label for a decision."""
    if decision.is_business:
        return BUSINESS_TIER
    if decision.has_pack:
        return PACK_TIER
    return FREE_TIER


class ListingEntitlementService:
    """
    Listing quota decisions and Casual Seller Pack renewal.

    check() is read-only and returns a point-in-time snapshot; call it
    again after any item is created or deleted.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        config: Settings | None = None,
    ) -> None:
        self.session = session
        self.clock = clock
        self.config = config or get_settings()

    async def check(self, user_id: UUID) -> EntitlementDecision:
        """
        Compute the caller's listing entitlement.

        Raises:
            StorageError: Any read against the account store failed
        """
        start = time.perf_counter()
        with tracer.start_as_current_span("listing_entitlement_check") as span:
            try:
                decision = await self._compute(user_id)
            except SQLAlchemyError as exc:
                metrics.record_error(type(exc).__name__, "entitlement_check")
                logger.error("entitlement_check_failed", user_id=str(user_id), error=str(exc))
                raise StorageError("entitlement_check", str(exc)) from exc

            add_span_attributes(
                span,
                user_id=user_id,
                tier=tier_of(decision),
                active_count=decision.active_count,
                max_allowed=decision.max_allowed,
                can_add_more=decision.can_add_more,
            )

        metrics.record_entitlement_check(
            tier_of(decision), decision.can_add_more, time.perf_counter() - start
        )
        logger.debug(
            "listing_entitlement_checked",
            user_id=str(user_id),
            tier=tier_of(decision),
            active_count=decision.active_count,
            max_allowed=decision.max_allowed,
        )
        return decision

    async def renew_pack(self, user_id: UUID) -> datetime:
        """
        Purchase or renew the Casual Seller Pack.

        Extends the expiry by pack_duration_days from the current expiry when
        the pack is still active, otherwise from now. Exactly one pack row per
        user: the write is an upsert on user_id.

        Raises:
            InvalidOperationError: Caller owns a business
            StorageError: Read or upsert failed

        Returns:
            The new pack expiry
        """
        try:
            if await self.owns_business(user_id):
                metrics.record_pack_renewal(False)
                logger.warning("pack_renewal_rejected_business_account", user_id=str(user_id))
                raise InvalidOperationError(user_id, "Business accounts do not use listing packs")

            now = self.clock()
            current_expiry = await self._get_pack_expiry(user_id)
            base_expiry = (
                _as_utc(current_expiry)
                if current_expiry is not None and is_pack_active(current_expiry, now)
                else now
            )
            new_expiry = base_expiry + timedelta(days=self.config.pack_duration_days)

            stmt = (
                pg_insert(IndividualListingPack)
                .values(
                    user_id=user_id,
                    pack_expires_at=new_expiry,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_update(
                    index_elements=[IndividualListingPack.user_id],
                    set_={"pack_expires_at": new_expiry, "updated_at": now},
                )
            )
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            metrics.record_pack_renewal(False)
            metrics.record_error(type(exc).__name__, "pack_renewal")
            logger.error("pack_renewal_failed", user_id=str(user_id), error=str(exc))
            raise StorageError("pack_renewal", str(exc)) from exc

        metrics.record_pack_renewal(True)
        logger.info(
            "pack_renewed",
            user_id=str(user_id),
            previous_expiry=current_expiry.isoformat() if current_expiry else None,
            new_expiry=new_expiry.isoformat(),
        )
        return new_expiry

    def denial_message(self, decision: EntitlementDecision) -> str:
        """User-facing explanation of a quota denial, including the remedy."""
        if decision.has_pack:
            return f"You have reached the maximum of {decision.max_allowed} listings."
        listing_word = "listing" if decision.max_allowed == 1 else "listings"
        return (
            f"Free tier allows {decision.max_allowed} active {listing_word} "
            f"({self.config.free_listing_window_days} days). "
            "Delete one or get the Casual Seller Pack to list more."
        )

    def pack_confirmation_message(self) -> str:
        return (
            f"Casual Seller Pack active. You can list up to "
            f"{self.config.pack_max_listings} items."
        )

    async def owns_business(self, user_id: UUID) -> bool:
        """Check whether the user owns at least one business record."""
        stmt = select(Business.id).where(Business.owner_id == user_id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def _compute(self, user_id: UUID) -> EntitlementDecision:
        now = self.clock()

        if await self.owns_business(user_id):
            return EntitlementDecision(
                is_business=True,
                active_count=await self._count_items(user_id),
                max_allowed=self.config.business_listing_sentinel,
                has_pack=False,
                pack_expires_at=None,
            )

        pack_expires_at = await self._get_pack_expiry(user_id)
        created_ats = await self._list_item_created_at(user_id)
        has_pack = is_pack_active(pack_expires_at, now)

        if has_pack:
            # Legacy items beyond the pack ceiling are not double-counted
            active_count = min(len(created_ats), self.config.pack_max_listings)
            max_allowed = self.config.pack_max_listings
        else:
            cutoff = now - timedelta(days=self.config.free_listing_window_days)
            active_count = sum(
                1
                for created_at in created_ats
                if created_at is not None and _as_utc(created_at) >= cutoff
            )
            max_allowed = self.config.free_tier_max_listings

        return EntitlementDecision(
            is_business=False,
            active_count=active_count,
            max_allowed=max_allowed,
            has_pack=has_pack,
            pack_expires_at=pack_expires_at,
        )

    async def _count_items(self, user_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MarketplaceItem)
            .where(MarketplaceItem.user_id == user_id)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def _get_pack_expiry(self, user_id: UUID) -> datetime | None:
        stmt = select(IndividualListingPack.pack_expires_at).where(
            IndividualListingPack.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _list_item_created_at(self, user_id: UUID) -> list[datetime | None]:
        stmt = select(MarketplaceItem.id, MarketplaceItem.created_at).where(
            MarketplaceItem.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return [created_at for _, created_at in result.all()]
