"""
FastAPI Dependencies - Caller authentication and admin authorization.

NO DICTIONARIES - All dependencies return typed objects.
"""

from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.config import get_settings
from hanar.db.session import get_write_db
from hanar.exceptions import UnauthorizedError
from hanar.models.api import AdminRole
from hanar.models.domain import AdminDecision, CallerIdentity
from hanar.services.admin_auth import AdminAuthorizationGate
from hanar.services.identity import AccessTokenVerifier

logger = get_logger(__name__)

# Bearer token scheme; missing header is not an error at this layer
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_verifier() -> AccessTokenVerifier:
    """Get access token verifier instance."""
    settings = get_settings()
    return AccessTokenVerifier(
        jwt_secret=settings.auth_jwt_secret,
        audience=settings.auth_jwt_audience or None,
    )


async def get_optional_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: AccessTokenVerifier = Depends(get_token_verifier),
) -> CallerIdentity | None:
    """
    Resolve the caller, or None if neither channel yields an identity.

    Order: session cookie first, then Authorization: Bearer.
    """
    session_token = request.cookies.get(get_settings().session_cookie_name)
    bearer_token = credentials.credentials if credentials else None
    return verifier.resolve_identity(session_token, bearer_token)


async def get_current_caller(
    caller: CallerIdentity | None = Depends(get_optional_caller),
) -> CallerIdentity:
    """
    Require an authenticated caller.

    Raises:
        UnauthorizedError: No valid session cookie or bearer token
    """
    if caller is None:
        logger.info("caller_auth_missing")
        raise UnauthorizedError()
    return caller


def get_admin_gate(db: AsyncSession = Depends(get_write_db)) -> AdminAuthorizationGate:
    """Get admin authorization gate bound to the request session."""
    return AdminAuthorizationGate(db)


def require_admin(
    allowed_roles: frozenset[AdminRole],
) -> Callable[..., Awaitable[AdminDecision]]:
    """
    FastAPI dependency factory for admin routes.

    Usage:
        @router.get("/api/admin/dashboard-counts")
        async def dashboard_counts(
            decision: AdminDecision = Depends(require_admin(ALL_ADMIN_ROLES)),
        ):
            pass

    Args:
        allowed_roles: The flat set of roles this route accepts

    Returns:
        Dependency that yields the allowed decision

    Raises:
        UnauthorizedError: No caller identity
        HTTPException(403): Caller holds no role in allowed_roles
    """

    async def admin_checker(
        caller: CallerIdentity | None = Depends(get_optional_caller),
        gate: AdminAuthorizationGate = Depends(get_admin_gate),
    ) -> AdminDecision:
        if caller is None:
            logger.info("caller_auth_missing")
            raise UnauthorizedError()

        decision = await gate.authorize(caller, allowed_roles)
        if not decision.allowed:
            # Same detail for every denial reason
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return decision

    return admin_checker
