"""
Tests for AdminAuthorizationGate.

Role lookup precedence and the fail-closed allow-list check.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from hanar.exceptions import StorageError
from hanar.models.api import AdminRole
from hanar.models.domain import CallerIdentity
from hanar.services.admin_auth import (
    ALL_ADMIN_ROLES,
    REPORT_ROLES,
    STAFF_ROLES,
    AdminAuthorizationGate,
)
from tests.factories import make_result

OWNER_OR_SUPPORT = frozenset({AdminRole.OWNER, AdminRole.SUPPORT})
OWNER_ONLY = frozenset({AdminRole.OWNER})


class TestCapabilitySets:
    """Tests for the declared role sets."""

    def test_staff_excludes_business(self) -> None:
        assert AdminRole.BUSINESS not in STAFF_ROLES
        assert AdminRole.BUSINESS in ALL_ADMIN_ROLES

    def test_report_roles(self) -> None:
        assert REPORT_ROLES == frozenset(
            {
                AdminRole.OWNER,
                AdminRole.CEO,
                AdminRole.TOPMANAGER,
                AdminRole.MANAGER,
                AdminRole.REVIEWER,
                AdminRole.MODERATOR,
                AdminRole.BUSINESS,
            }
        )

    def test_report_staff_share_senior_roles(self) -> None:
        senior = REPORT_ROLES - {AdminRole.MODERATOR, AdminRole.BUSINESS}
        assert senior < STAFF_ROLES
        assert not {AdminRole.SUPPORT, AdminRole.EDITOR, AdminRole.READONLY} & REPORT_ROLES

    def test_all_admin_roles_covers_every_role(self) -> None:
        assert ALL_ADMIN_ROLES == frozenset(AdminRole)


class TestRoleLookup:
    """Tests for resolving a caller to a role."""

    async def test_user_id_match_wins_over_email(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar="manager")]
        gate = AdminAuthorizationGate(db_session)

        role = await gate.lookup_role(CallerIdentity(uuid4(), "boss@example.com"))

        assert role == AdminRole.MANAGER
        assert db_session.execute.await_count == 1

    async def test_falls_back_to_lowercased_email(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [
            make_result(scalar=None),
            make_result(scalar="support"),
        ]
        gate = AdminAuthorizationGate(db_session)

        role = await gate.lookup_role(CallerIdentity(uuid4(), "  Help@Example.COM "))

        assert role == AdminRole.SUPPORT
        email_stmt = db_session.execute.await_args_list[1].args[0]
        assert "help@example.com" in email_stmt.compile().params.values()

    async def test_empty_role_on_id_row_falls_back_to_email(
        self, db_session: AsyncMock
    ) -> None:
        db_session.execute.side_effect = [
            make_result(scalar=""),
            make_result(scalar="editor"),
        ]
        gate = AdminAuthorizationGate(db_session)

        role = await gate.lookup_role(CallerIdentity(uuid4(), "ed@example.com"))

        assert role == AdminRole.EDITOR

    async def test_no_email_skips_email_lookup(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar=None)]
        gate = AdminAuthorizationGate(db_session)

        role = await gate.lookup_role(CallerIdentity(uuid4()))

        assert role is None
        assert db_session.execute.await_count == 1

    async def test_unknown_role_string_resolves_to_none(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar="superuser")]
        gate = AdminAuthorizationGate(db_session)

        assert await gate.lookup_role(CallerIdentity(uuid4(), "x@example.com")) is None

    async def test_storage_failure_raises(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        gate = AdminAuthorizationGate(db_session)

        with pytest.raises(StorageError):
            await gate.lookup_role(CallerIdentity(uuid4()))


class TestAuthorize:
    """Tests for the allow-list decision."""

    async def test_support_allowed_on_owner_or_support_route(
        self, db_session: AsyncMock
    ) -> None:
        db_session.execute.side_effect = [make_result(scalar="support")]
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(CallerIdentity(uuid4()), OWNER_OR_SUPPORT)

        assert decision.allowed is True
        assert decision.role == AdminRole.SUPPORT

    async def test_support_denied_on_owner_only_route(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar="support")]
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(CallerIdentity(uuid4()), OWNER_ONLY)

        assert decision.allowed is False
        assert decision.role is None

    async def test_no_identity_is_denied_without_lookup(self, db_session: AsyncMock) -> None:
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(None, ALL_ADMIN_ROLES)

        assert decision.allowed is False
        db_session.execute.assert_not_awaited()

    async def test_storage_failure_is_denied(self, db_session: AsyncMock) -> None:
        """Lookup errors never grant access."""
        db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(CallerIdentity(uuid4(), "a@example.com"), STAFF_ROLES)

        assert decision.allowed is False

    async def test_caller_without_role_is_denied(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar=None), make_result(scalar=None)]
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(
            CallerIdentity(uuid4(), "nobody@example.com"), ALL_ADMIN_ROLES
        )

        assert decision.allowed is False

    async def test_business_role_denied_on_staff_route(self, db_session: AsyncMock) -> None:
        db_session.execute.side_effect = [make_result(scalar="business")]
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(CallerIdentity(uuid4()), STAFF_ROLES)

        assert decision.allowed is False

    @pytest.mark.parametrize("stored", ["Owner", " owner ", "OWNER"])
    async def test_non_canonical_stored_role_denied(
        self, db_session: AsyncMock, stored: str
    ) -> None:
        """Stored roles must match a canonical value exactly."""
        db_session.execute.side_effect = [make_result(scalar=stored)]
        gate = AdminAuthorizationGate(db_session)

        decision = await gate.authorize(CallerIdentity(uuid4()), OWNER_ONLY)

        assert decision.allowed is False
        assert decision.role is None
