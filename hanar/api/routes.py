"""
API Routes - FastAPI endpoints for marketplace listing operations.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.api.dependencies import get_current_caller
from hanar.db.session import get_read_db, get_write_db
from hanar.exceptions import (
    ForbiddenError,
    InvalidOperationError,
    ItemNotFoundError,
    ListingLimitReachedError,
    StorageError,
)
from hanar.models.api import (
    CreatedItem,
    CreateItemRequest,
    CreateItemResponse,
    DeleteItemRequest,
    HealthResponse,
    ListingLimitsResponse,
    PackRenewalResponse,
    SuccessResponse,
)
from hanar.models.domain import CallerIdentity, EntitlementDecision, MarketplaceItemIntent
from hanar.services.entitlement import ListingEntitlementService
from hanar.services.marketplace import MarketplaceService

logger = get_logger(__name__)
router = APIRouter()


def _server_error(exc: StorageError) -> HTTPException:
    """Map a storage failure to a generic 500."""
    logger.warning("storage_error_response", operation=exc.operation)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Server error",
    )


def _limits_response(decision: EntitlementDecision) -> ListingLimitsResponse:
    return ListingLimitsResponse(
        is_business=decision.is_business,
        active_count=decision.active_count,
        max_allowed=decision.max_allowed,
        has_pack=decision.has_pack,
        pack_expires_at=decision.pack_expires_at,
        can_add_more=decision.can_add_more,
    )


@router.get("/api/marketplace/listing-limits", response_model=ListingLimitsResponse)
async def get_listing_limits(
    caller: CallerIdentity = Depends(get_current_caller),
    db: AsyncSession = Depends(get_write_db),
) -> ListingLimitsResponse:
    """
    Get the caller's listing limits.

    Individual: free 1 per 30 days, or 5 with an active Casual Seller Pack.
    Business: unlimited. Reads the primary so the caller's own writes are seen.
    """
    service = ListingEntitlementService(db)

    try:
        decision = await service.check(caller.user_id)
    except StorageError as exc:
        raise _server_error(exc) from exc

    return _limits_response(decision)


@router.post("/api/marketplace/casual-seller-pack", response_model=PackRenewalResponse)
async def renew_casual_seller_pack(
    caller: CallerIdentity = Depends(get_current_caller),
    db: AsyncSession = Depends(get_write_db),
) -> PackRenewalResponse:
    """
    Purchase or renew the Casual Seller Pack.

    Extends the pack by 40 days from the current expiry if still active,
    otherwise from now. Business accounts are rejected with 403.
    """
    service = ListingEntitlementService(db)

    try:
        new_expiry = await service.renew_pack(caller.user_id)
    except InvalidOperationError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc
    except StorageError as exc:
        raise _server_error(exc) from exc

    return PackRenewalResponse(
        success=True,
        pack_expires_at=new_expiry,
        message=service.pack_confirmation_message(),
    )


@router.post("/api/marketplace/create-item", response_model=CreateItemResponse)
async def create_item(
    request: CreateItemRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: AsyncSession = Depends(get_write_db),
) -> CreateItemResponse:
    """
    Create a marketplace item, enforcing the caller's listing limits.

    Returns 400 with the limit and remedy when the quota is exhausted.
    """
    service = MarketplaceService(db)

    intent = MarketplaceItemIntent(
        title=request.title,
        description=request.description,
        price=request.price,
        category=request.category,
        condition=request.condition,
        location=request.location,
        image_urls=tuple(request.image_urls),
    )

    try:
        item = await service.create_item(caller.user_id, intent)
    except ListingLimitReachedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    except StorageError as exc:
        raise _server_error(exc) from exc

    return CreateItemResponse(
        success=True,
        item=CreatedItem(id=item.item_id, title=item.title, created_at=item.created_at),
    )


@router.post("/api/marketplace/delete-item", response_model=SuccessResponse)
async def delete_item(
    request: DeleteItemRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: AsyncSession = Depends(get_write_db),
) -> SuccessResponse:
    """Delete one of the caller's marketplace items."""
    service = MarketplaceService(db)

    try:
        await service.delete_item(caller.user_id, request.target_id)
    except ItemNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found",
        ) from exc
    except ForbiddenError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        ) from exc
    except StorageError as exc:
        raise _server_error(exc) from exc

    return SuccessResponse(success=True)


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_read_db)) -> HealthResponse:
    """
    Health check for load balancer.

    Verifies database connectivity.
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "unhealthy",
                "database": "disconnected",
                "error": str(exc),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        ) from exc

    return HealthResponse(
        status="healthy",
        database="connected",
        timestamp=datetime.now(UTC).isoformat(),
    )
