"""
Admin Authorization Gate - role lookup plus per-route allow-list check.

Roles are flat capabilities, not a hierarchy: every protected route names the
exact set of roles it accepts. Any failure resolves to "not allowed".
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from hanar.db.models import AdminAccount
from hanar.exceptions import StorageError
from hanar.models.api import AdminRole
from hanar.models.domain import AdminDecision, CallerIdentity
from hanar.observability.metrics import metrics

logger = get_logger(__name__)


# ============================================================================
# Capability sets
# ============================================================================

# Shared base of STAFF_ROLES and REPORT_ROLES; no route accepts it directly
_SENIOR_ROLES: frozenset[AdminRole] = frozenset(
    {
        AdminRole.OWNER,
        AdminRole.CEO,
        AdminRole.TOPMANAGER,
        AdminRole.MANAGER,
        AdminRole.REVIEWER,
    }
)

# Admin console entry: /api/check-admin
STAFF_ROLES: frozenset[AdminRole] = _SENIOR_ROLES | {
    AdminRole.MODERATOR,
    AdminRole.SUPPORT,
    AdminRole.EDITOR,
    AdminRole.READONLY,
}

# Dashboard reads: /api/admin/dashboard-counts, /api/admin/admins
ALL_ADMIN_ROLES: frozenset[AdminRole] = STAFF_ROLES | {AdminRole.BUSINESS}

# Report triage: /api/admin/reports
REPORT_ROLES: frozenset[AdminRole] = _SENIOR_ROLES | {AdminRole.MODERATOR, AdminRole.BUSINESS}


class AdminAuthorizationGate:
    """Resolves a caller to at most one admin role and checks it against an allow-list."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lookup_role(self, identity: CallerIdentity) -> AdminRole | None:
        """
        Find the caller's admin role.

        Lookup by user id takes precedence; the lower-cased email is only
        consulted when no row with a role matches the id. Unknown role
        strings resolve to None.

        Raises:
            StorageError: The role lookup query failed
        """
        try:
            raw_role = await self._role_by_user_id(identity)
            if not raw_role and identity.normalized_email:
                raw_role = await self._role_by_email(identity.normalized_email)
        except SQLAlchemyError as exc:
            raise StorageError("admin_role_lookup", str(exc)) from exc
        return AdminRole.parse(raw_role)

    async def authorize(
        self,
        identity: CallerIdentity | None,
        allowed_roles: frozenset[AdminRole],
    ) -> AdminDecision:
        """Decide whether the caller may use a route accepting allowed_roles."""
        decision = await self._decide(identity, allowed_roles)
        metrics.record_admin_decision(decision.allowed)
        return decision

    async def _decide(
        self,
        identity: CallerIdentity | None,
        allowed_roles: frozenset[AdminRole],
    ) -> AdminDecision:
        if identity is None:
            return AdminDecision.denied()

        try:
            role = await self.lookup_role(identity)
        except StorageError as exc:
            metrics.record_error(type(exc).__name__, "admin_authorize")
            logger.error(
                "admin_role_lookup_failed",
                user_id=str(identity.user_id),
                error=exc.message,
            )
            return AdminDecision.denied()

        if role is None or role not in allowed_roles:
            logger.warning(
                "admin_access_denied",
                user_id=str(identity.user_id),
                role=role.value if role else None,
            )
            return AdminDecision.denied()

        return AdminDecision(allowed=True, role=role)

    async def _role_by_user_id(self, identity: CallerIdentity) -> str | None:
        stmt = select(AdminAccount.role).where(AdminAccount.user_id == identity.user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _role_by_email(self, email: str) -> str | None:
        stmt = select(AdminAccount.role).where(AdminAccount.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
