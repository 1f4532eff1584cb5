"""
Marketplace Item Service - quota-gated creation and owner-checked deletion.
"""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.config import Settings
from hanar.db.models import MarketplaceItem, utc_now
from hanar.exceptions import (
    ForbiddenError,
    ItemNotFoundError,
    ListingLimitReachedError,
    StorageError,
)
from hanar.models.domain import MarketplaceItemData, MarketplaceItemIntent
from hanar.observability.metrics import metrics
from hanar.services.entitlement import ListingEntitlementService, tier_of

logger = get_logger(__name__)


class MarketplaceService:
    """
    Marketplace item writes.

    Creation follows the pattern:
    1. Serialize concurrent creates for the same user (advisory xact lock)
    2. Check the listing entitlement inside that transaction
    3. Insert, flush, commit
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        config: Settings | None = None,
    ) -> None:
        self.session = session
        self.clock = clock
        self.entitlements = ListingEntitlementService(session, clock=clock, config=config)

    async def create_item(
        self, user_id: UUID, intent: MarketplaceItemIntent
    ) -> MarketplaceItemData:
        """
        Create a marketplace item if the caller's quota allows it.

        Raises:
            ListingLimitReachedError: Quota exhausted (message explains the remedy)
            StorageError: Lock, check or insert failed
        """
        try:
            await self._lock_user_listings(user_id)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError("create_item", str(exc)) from exc

        try:
            decision = await self.entitlements.check(user_id)
        except StorageError:
            await self.session.rollback()
            raise

        if not decision.can_add_more:
            await self.session.rollback()
            metrics.items_rejected_total.labels(tier=tier_of(decision)).inc()
            logger.info(
                "listing_limit_reached",
                user_id=str(user_id),
                active_count=decision.active_count,
                max_allowed=decision.max_allowed,
                has_pack=decision.has_pack,
            )
            raise ListingLimitReachedError(decision, self.entitlements.denial_message(decision))

        item = MarketplaceItem(
            id=uuid4(),
            user_id=user_id,
            title=intent.title,
            description=intent.description,
            price=intent.price,
            category=intent.category,
            condition=intent.condition,
            location=intent.location,
            image_urls=list(intent.image_urls),
            created_at=self.clock(),
        )
        self.session.add(item)

        try:
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            metrics.record_error(type(exc).__name__, "create_item")
            logger.error("item_insert_failed", user_id=str(user_id), error=str(exc))
            raise StorageError("create_item", str(exc)) from exc

        metrics.items_created_total.labels(tier=tier_of(decision)).inc()
        logger.info("marketplace_item_created", user_id=str(user_id), item_id=str(item.id))

        return MarketplaceItemData(
            item_id=item.id,
            title=item.title,
            created_at=item.created_at,
        )

    async def delete_item(self, user_id: UUID, item_id: UUID) -> None:
        """
        Delete one of the caller's items.

        Raises:
            ItemNotFoundError: No such item
            ForbiddenError: Item belongs to another user
            StorageError: Read or delete failed
        """
        try:
            stmt = select(MarketplaceItem.user_id).where(MarketplaceItem.id == item_id)
            result = await self.session.execute(stmt)
            owner_id = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("delete_item", str(exc)) from exc

        if owner_id is None:
            raise ItemNotFoundError(item_id)

        if owner_id != user_id:
            logger.warning(
                "item_delete_forbidden",
                user_id=str(user_id),
                item_id=str(item_id),
            )
            raise ForbiddenError()

        try:
            await self.session.execute(
                delete(MarketplaceItem).where(
                    MarketplaceItem.id == item_id,
                    MarketplaceItem.user_id == user_id,
                )
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            metrics.record_error(type(exc).__name__, "delete_item")
            raise StorageError("delete_item", str(exc)) from exc

        metrics.items_deleted_total.inc()
        logger.info("marketplace_item_deleted", user_id=str(user_id), item_id=str(item_id))

    async def _lock_user_listings(self, user_id: UUID) -> None:
        # Released automatically at commit/rollback
        await self.session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(str(user_id))))
        )
