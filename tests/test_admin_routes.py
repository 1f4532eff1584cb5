"""
Tests for Admin Routes.

Covers the admin gate over HTTP, the dashboard read endpoints and report triage.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi import HTTPException, Response
from sqlalchemy.exc import OperationalError

from hanar.db.models import AdminAccount, Report
from hanar.models.api import AdminRole, UpdateReportRequest
from hanar.models.domain import AdminDecision
from hanar.services.admin_auth import STAFF_ROLES
from tests.factories import make_access_token, make_result


def auth_header(user_id: UUID, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(str(user_id), email=email)}"}


def create_mock_admin_account(email: str, role: str = "business") -> MagicMock:
    """Create a mock AdminAccount row."""
    account = MagicMock(spec=AdminAccount)
    account.id = uuid4()
    account.user_id = uuid4()
    account.email = email
    account.role = role
    return account


def make_report(status: str = "unread", entity_type: str = "marketplace_item") -> Report:
    return Report(
        id=uuid4(),
        entity_type=entity_type,
        entity_id=str(uuid4()),
        entity_title="Road bike",
        reporter_username="neighbour",
        reason="Spam",
        status=status,
        created_at=datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def owner_decision() -> AdminDecision:
    return AdminDecision(allowed=True, role=AdminRole.OWNER)


# ============================================================================
# Check Admin Tests
# ============================================================================


class TestCheckAdmin:
    """Tests for GET /api/check-admin."""

    @pytest.mark.asyncio
    async def test_returns_decision(self, caller):
        from hanar.api.admin_routes import check_admin

        gate = MagicMock()
        gate.authorize = AsyncMock(
            return_value=AdminDecision(allowed=True, role=AdminRole.SUPPORT)
        )
        response = Response()

        result = await check_admin(response=response, caller=caller, gate=gate)

        assert result.allowed is True
        assert result.role == AdminRole.SUPPORT
        assert response.status_code == 200
        gate.authorize.assert_awaited_once_with(caller, STAFF_ROLES)

    @pytest.mark.asyncio
    async def test_denial_sets_403_with_body(self, caller):
        from hanar.api.admin_routes import check_admin

        gate = MagicMock()
        gate.authorize = AsyncMock(return_value=AdminDecision.denied())
        response = Response()

        result = await check_admin(response=response, caller=caller, gate=gate)

        assert response.status_code == 403
        assert result.allowed is False
        assert result.role is None

    def test_http_staff_role_allowed(self, client_factory, db_session: AsyncMock, user_id):
        db_session.execute.side_effect = [make_result(scalar="support")]
        client = client_factory()

        response = client.get("/api/check-admin", headers=auth_header(user_id))

        assert response.status_code == 200
        assert response.json() == {"allowed": True, "role": "support"}

    def test_http_email_fallback(self, client_factory, db_session: AsyncMock, user_id):
        db_session.execute.side_effect = [
            make_result(scalar=None),
            make_result(scalar="reviewer"),
        ]
        client = client_factory()

        response = client.get(
            "/api/check-admin", headers=auth_header(user_id, email="Reviewer@Hanar.com")
        )

        assert response.status_code == 200
        assert response.json()["role"] == "reviewer"

    def test_http_business_role_forbidden(self, client_factory, db_session: AsyncMock, user_id):
        """Business accounts are admins but not staff."""
        db_session.execute.side_effect = [make_result(scalar="business")]
        client = client_factory()

        response = client.get("/api/check-admin", headers=auth_header(user_id))

        assert response.status_code == 403
        assert response.json() == {"allowed": False, "role": None}

    def test_http_non_admin_forbidden(self, client_factory, db_session: AsyncMock, user_id):
        db_session.execute.side_effect = [make_result(scalar=None), make_result(scalar=None)]
        client = client_factory()

        response = client.get(
            "/api/check-admin", headers=auth_header(user_id, email="someone@example.com")
        )

        assert response.status_code == 403
        assert response.json() == {"allowed": False, "role": None}

    def test_http_non_canonical_role_forbidden(
        self, client_factory, db_session: AsyncMock, user_id
    ):
        db_session.execute.side_effect = [make_result(scalar="Owner")]
        client = client_factory()

        response = client.get("/api/check-admin", headers=auth_header(user_id))

        assert response.status_code == 403
        assert response.json() == {"allowed": False, "role": None}

    def test_http_lookup_failure_forbidden(
        self, client_factory, db_session: AsyncMock, user_id
    ):
        """Role lookup errors deny with the same response as any other denial."""
        db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        client = client_factory()

        response = client.get("/api/check-admin", headers=auth_header(user_id))

        assert response.status_code == 403
        assert response.json() == {"allowed": False, "role": None}

    def test_http_anonymous_is_401(self, client_factory, db_session: AsyncMock):
        response = client_factory().get("/api/check-admin")

        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}
        db_session.execute.assert_not_awaited()


# ============================================================================
# Dashboard Tests
# ============================================================================


class TestDashboardCounts:
    """Tests for GET /api/admin/dashboard-counts."""

    @pytest.mark.asyncio
    async def test_counts(self, db_session: AsyncMock, owner_decision: AdminDecision):
        from hanar.api.admin_routes import get_dashboard_counts

        db_session.scalar = AsyncMock(side_effect=[4, 120, 9])

        result = await get_dashboard_counts(decision=owner_decision, db=db_session)

        assert result.businesses_pending_approval == 4
        assert result.marketplace_items_total == 120
        assert result.active_listing_packs == 9
        assert db_session.scalar.await_count == 3

    @pytest.mark.asyncio
    async def test_null_counts_become_zero(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import get_dashboard_counts

        db_session.scalar = AsyncMock(side_effect=[None, None, None])

        result = await get_dashboard_counts(decision=owner_decision, db=db_session)

        assert result.businesses_pending_approval == 0
        assert result.marketplace_items_total == 0
        assert result.active_listing_packs == 0

    @pytest.mark.asyncio
    async def test_storage_error_is_500(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import get_dashboard_counts

        db_session.scalar = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("x")))

        with pytest.raises(HTTPException) as exc_info:
            await get_dashboard_counts(decision=owner_decision, db=db_session)

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Server error"

    def test_http_business_role_allowed(self, client_factory, db_session: AsyncMock, user_id):
        db_session.execute.side_effect = [make_result(scalar="business")]
        db_session.scalar = AsyncMock(side_effect=[1, 2, 3])
        client = client_factory()

        response = client.get("/api/admin/dashboard-counts", headers=auth_header(user_id))

        assert response.status_code == 200
        assert response.json() == {
            "businesses_pending_approval": 1,
            "marketplace_items_total": 2,
            "active_listing_packs": 3,
        }


# ============================================================================
# Admin List Tests
# ============================================================================


class TestListBusinessAdmins:
    """Tests for GET /api/admin/admins."""

    @pytest.mark.asyncio
    async def test_lists_business_accounts(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import list_business_admins

        rows = [
            create_mock_admin_account("a@shop.com"),
            create_mock_admin_account("b@shop.com"),
        ]
        db_session.execute.return_value = make_result(scalars_list=rows)

        result = await list_business_admins(decision=owner_decision, db=db_session)

        assert [admin.email for admin in result.admins] == ["a@shop.com", "b@shop.com"]
        assert all(admin.label == "Business account" for admin in result.admins)
        assert all(admin.role == "business" for admin in result.admins)
        stmt = str(db_session.execute.await_args.args[0])
        assert "ORDER BY adminaccounts.email" in stmt

    @pytest.mark.asyncio
    async def test_storage_error_is_500(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import list_business_admins

        db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("x"))

        with pytest.raises(HTTPException) as exc_info:
            await list_business_admins(decision=owner_decision, db=db_session)

        assert exc_info.value.status_code == 500

    def test_http_list(self, client_factory, db_session: AsyncMock, user_id):
        row = create_mock_admin_account("shop@example.com")
        db_session.execute.side_effect = [
            make_result(scalar="manager"),
            make_result(scalars_list=[row]),
        ]
        client = client_factory()

        response = client.get("/api/admin/admins", headers=auth_header(user_id))

        assert response.status_code == 200
        admins = response.json()["admins"]
        assert len(admins) == 1
        assert admins[0]["email"] == "shop@example.com"
        assert admins[0]["user_id"] == str(row.user_id)
        assert admins[0]["label"] == "Business account"


# ============================================================================
# Report Triage Tests
# ============================================================================


class TestListReports:
    """Tests for GET /api/admin/reports."""

    @pytest.mark.asyncio
    async def test_newest_first_with_cap(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import list_reports

        rows = [make_report(), make_report(status="resolved")]
        db_session.execute.return_value = make_result(scalars_list=rows)

        result = await list_reports(
            status_filter=None, entity_type=None, decision=owner_decision, db=db_session
        )

        assert [report.id for report in result.reports] == [row.id for row in rows]
        stmt = db_session.execute.await_args.args[0]
        sql = str(stmt)
        assert "ORDER BY reports.created_at DESC" in sql
        assert "WHERE" not in sql
        assert 200 in stmt.compile().params.values()

    @pytest.mark.asyncio
    async def test_filters_applied(self, db_session: AsyncMock, owner_decision: AdminDecision):
        from hanar.api.admin_routes import list_reports

        await list_reports(
            status_filter="unread",
            entity_type="business",
            decision=owner_decision,
            db=db_session,
        )

        sql = str(db_session.execute.await_args.args[0])
        assert "reports.status = " in sql
        assert "reports.entity_type = " in sql

    @pytest.mark.asyncio
    async def test_all_means_unfiltered(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import list_reports

        await list_reports(
            status_filter="all", entity_type="all", decision=owner_decision, db=db_session
        )

        assert "WHERE" not in str(db_session.execute.await_args.args[0])

    @pytest.mark.asyncio
    async def test_storage_error_is_500(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import list_reports

        db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("x"))

        with pytest.raises(HTTPException) as exc_info:
            await list_reports(
                status_filter=None, entity_type=None, decision=owner_decision, db=db_session
            )

        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize("role", ["moderator", "business", "reviewer"])
    def test_http_report_roles_allowed(
        self, client_factory, db_session: AsyncMock, user_id, role
    ):
        row = make_report()
        db_session.execute.side_effect = [
            make_result(scalar=role),
            make_result(scalars_list=[row]),
        ]
        client = client_factory()

        response = client.get(
            "/api/admin/reports", params={"status": "unread"}, headers=auth_header(user_id)
        )

        assert response.status_code == 200
        reports = response.json()["reports"]
        assert reports[0]["id"] == str(row.id)
        assert reports[0]["status"] == "unread"
        assert reports[0]["admin_note"] is None

    @pytest.mark.parametrize("role", ["support", "editor", "readonly"])
    def test_http_other_staff_forbidden(
        self, client_factory, db_session: AsyncMock, user_id, role
    ):
        db_session.execute.side_effect = [make_result(scalar=role)]
        client = client_factory()

        response = client.get("/api/admin/reports", headers=auth_header(user_id))

        assert response.status_code == 403
        assert response.json() == {"detail": "Forbidden"}
        assert db_session.execute.await_count == 1


class TestUpdateReport:
    """Tests for PATCH /api/admin/reports."""

    @pytest.mark.asyncio
    async def test_updates_status_and_note(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import update_report

        report = make_report(status="resolved")
        report.admin_note = "Removed listing"
        db_session.execute.return_value = make_result(scalar=report)
        request = UpdateReportRequest(
            id=report.id, status="resolved", admin_note="Removed listing"
        )

        result = await update_report(request=request, decision=owner_decision, db=db_session)

        assert result.report.status == "resolved"
        assert result.report.admin_note == "Removed listing"
        db_session.commit.assert_awaited_once()
        params = db_session.execute.await_args.args[0].compile().params
        assert params["status"] == "resolved"
        assert params["admin_note"] == "Removed listing"
        assert "updated_at" in params

    @pytest.mark.asyncio
    async def test_note_left_alone_when_absent(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import update_report

        report = make_report(status="reviewing")
        db_session.execute.return_value = make_result(scalar=report)

        await update_report(
            request=UpdateReportRequest(id=report.id, status="reviewing"),
            decision=owner_decision,
            db=db_session,
        )

        params = db_session.execute.await_args.args[0].compile().params
        assert "admin_note" not in params

    @pytest.mark.asyncio
    async def test_explicit_null_clears_note(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import update_report

        report = make_report()
        db_session.execute.return_value = make_result(scalar=report)

        await update_report(
            request=UpdateReportRequest.model_validate({"id": str(report.id), "admin_note": None}),
            decision=owner_decision,
            db=db_session,
        )

        params = db_session.execute.await_args.args[0].compile().params
        assert params["admin_note"] is None
        assert "status" not in params

    @pytest.mark.asyncio
    async def test_missing_report_is_404(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import update_report

        db_session.execute.return_value = make_result(scalar=None)

        with pytest.raises(HTTPException) as exc_info:
            await update_report(
                request=UpdateReportRequest(id=uuid4(), status="resolved"),
                decision=owner_decision,
                db=db_session,
            )

        assert exc_info.value.status_code == 404
        db_session.commit.assert_not_awaited()
        db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_storage_error_rolls_back(
        self, db_session: AsyncMock, owner_decision: AdminDecision
    ):
        from hanar.api.admin_routes import update_report

        db_session.execute.side_effect = OperationalError("UPDATE", {}, Exception("x"))

        with pytest.raises(HTTPException) as exc_info:
            await update_report(
                request=UpdateReportRequest(id=uuid4(), status="resolved"),
                decision=owner_decision,
                db=db_session,
            )

        assert exc_info.value.status_code == 500
        db_session.rollback.assert_awaited_once()

    def test_http_missing_id_is_422(self, client_factory, db_session: AsyncMock, user_id):
        db_session.execute.side_effect = [make_result(scalar="owner")]

        response = client_factory().patch(
            "/api/admin/reports", json={"status": "resolved"}, headers=auth_header(user_id)
        )

        assert response.status_code == 422

    def test_http_moderator_updates(self, client_factory, db_session: AsyncMock, user_id):
        report = make_report(status="resolved")
        db_session.execute.side_effect = [
            make_result(scalar="moderator"),
            make_result(scalar=report),
        ]
        client = client_factory()

        response = client.patch(
            "/api/admin/reports",
            json={"id": str(report.id), "status": "resolved"},
            headers=auth_header(user_id),
        )

        assert response.status_code == 200
        assert response.json()["report"]["status"] == "resolved"
