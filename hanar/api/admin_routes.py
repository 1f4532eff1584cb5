"""
Admin API routes.

Every route declares the flat set of admin roles it accepts; see
hanar.services.admin_auth for the capability sets.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.api.dependencies import get_admin_gate, get_current_caller, require_admin
from hanar.db.models import (
    AdminAccount,
    Business,
    IndividualListingPack,
    MarketplaceItem,
    Report,
    utc_now,
)
from hanar.db.session import get_read_db, get_write_db
from hanar.models.api import (
    AdminAccountListResponse,
    AdminAccountResponse,
    AdminCheckResponse,
    AdminRole,
    DashboardCountsResponse,
    ReportListResponse,
    ReportResponse,
    ReportUpdateResponse,
    UpdateReportRequest,
)
from hanar.models.domain import AdminDecision, CallerIdentity
from hanar.services.admin_auth import (
    ALL_ADMIN_ROLES,
    REPORT_ROLES,
    STAFF_ROLES,
    AdminAuthorizationGate,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["admin"])

REPORT_LIST_LIMIT = 200


@router.get(
    "/check-admin",
    response_model=AdminCheckResponse,
    responses={403: {"model": AdminCheckResponse}},
)
async def check_admin(
    response: Response,
    caller: CallerIdentity = Depends(get_current_caller),
    gate: AdminAuthorizationGate = Depends(get_admin_gate),
) -> AdminCheckResponse:
    """
    Check whether the caller may enter the admin console.

    Returns {allowed, role}. Denials answer 403 with {allowed: false,
    role: null} whatever the reason.
    """
    decision = await gate.authorize(caller, STAFF_ROLES)
    if not decision.allowed:
        response.status_code = status.HTTP_403_FORBIDDEN
        return AdminCheckResponse(allowed=False, role=None)
    return AdminCheckResponse(allowed=True, role=decision.role)


@router.get("/admin/dashboard-counts", response_model=DashboardCountsResponse)
async def get_dashboard_counts(
    decision: AdminDecision = Depends(require_admin(ALL_ADMIN_ROLES)),
    db: AsyncSession = Depends(get_read_db),
) -> DashboardCountsResponse:
    """Counts shown on the admin dashboard tiles."""
    now = utc_now()

    try:
        businesses_pending = await db.scalar(
            select(func.count())
            .select_from(Business)
            .where(Business.moderation_status == "on_hold", Business.is_archived.is_(False))
        )
        items_total = await db.scalar(select(func.count()).select_from(MarketplaceItem))
        active_packs = await db.scalar(
            select(func.count())
            .select_from(IndividualListingPack)
            .where(IndividualListingPack.pack_expires_at > now)
        )
    except SQLAlchemyError as exc:
        logger.error("dashboard_counts_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from exc

    return DashboardCountsResponse(
        businesses_pending_approval=businesses_pending or 0,
        marketplace_items_total=items_total or 0,
        active_listing_packs=active_packs or 0,
    )


@router.get("/admin/admins", response_model=AdminAccountListResponse)
async def list_business_admins(
    decision: AdminDecision = Depends(require_admin(ALL_ADMIN_ROLES)),
    db: AsyncSession = Depends(get_read_db),
) -> AdminAccountListResponse:
    """List admin accounts holding the business role."""
    try:
        result = await db.execute(
            select(AdminAccount)
            .where(AdminAccount.role == AdminRole.BUSINESS.value)
            .order_by(AdminAccount.email)
        )
        rows = result.scalars().all()
    except SQLAlchemyError as exc:
        logger.error("admin_list_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from exc

    return AdminAccountListResponse(
        admins=[
            AdminAccountResponse(
                user_id=row.user_id,
                email=row.email,
                role=row.role,
                label="Business account",
            )
            for row in rows
        ]
    )


@router.get("/admin/reports", response_model=ReportListResponse)
async def list_reports(
    status_filter: str | None = Query(None, alias="status", max_length=20),
    entity_type: str | None = Query(None, max_length=50),
    decision: AdminDecision = Depends(require_admin(REPORT_ROLES)),
    db: AsyncSession = Depends(get_read_db),
) -> ReportListResponse:
    """
    List the most recent reports, newest first.

    Either filter may be "all", which is the same as leaving it out.
    """
    stmt = select(Report).order_by(Report.created_at.desc()).limit(REPORT_LIST_LIMIT)
    if status_filter and status_filter != "all":
        stmt = stmt.where(Report.status == status_filter)
    if entity_type and entity_type != "all":
        stmt = stmt.where(Report.entity_type == entity_type)

    try:
        result = await db.execute(stmt)
        rows = result.scalars().all()
    except SQLAlchemyError as exc:
        logger.error("report_list_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from exc

    return ReportListResponse(reports=[ReportResponse.model_validate(row) for row in rows])


@router.patch("/admin/reports", response_model=ReportUpdateResponse)
async def update_report(
    request: UpdateReportRequest,
    decision: AdminDecision = Depends(require_admin(REPORT_ROLES)),
    db: AsyncSession = Depends(get_write_db),
) -> ReportUpdateResponse:
    """Set a report's triage status and/or admin note."""
    values: dict[str, object] = {"updated_at": utc_now()}
    if request.status:
        values["status"] = request.status
    if request.writes_admin_note:
        values["admin_note"] = request.admin_note

    try:
        result = await db.execute(
            update(Report).where(Report.id == request.id).values(**values).returning(Report)
        )
        report = result.scalar_one_or_none()
        if report is None:
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Report not found",
            )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("report_update_failed", report_id=str(request.id), error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from exc

    logger.info(
        "report_updated",
        report_id=str(request.id),
        status=report.status,
        role=decision.role.value if decision.role else None,
    )
    return ReportUpdateResponse(report=ReportResponse.model_validate(report))
