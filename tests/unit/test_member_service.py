# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for MemberService."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from upskill.core.config import AnalyticsSettings
from upskill.domains.member.service import (
    MemberDepartmentNotFoundError,
    MemberExistsError,
    MemberNotFoundError,
    MemberService,
    MemberValidationError,
    is_valid_email,
    normalize_email,
)
from upskill.infrastructure.database.models import (
    Department,
    Enrollment,
    OrganizationMember,
    User,
)
from upskill.models.common import MemberRole, MemberStatus
from upskill.models.organization import (
    BulkImportRequest,
    BulkMemberRow,
    MemberCreateRequest,
    MemberUpdateRequest,
)


@pytest.fixture
def org_id() -> str:
    return str(uuid4())


@pytest.fixture
def service(mock_db) -> MemberService:
    return MemberService(db=mock_db, settings=AnalyticsSettings(bulk_import_limit=10))


def _member(org_id: str, **overrides) -> OrganizationMember:
    values = {
        "id": str(uuid4()),
        "organization_id": org_id,
        "email": "sam@example.com",
        "role": MemberRole.EMPLOYEE.value,
        "status": MemberStatus.INVITED.value,
        "assigned_course_ids": [],
        "invited_at": datetime(2025, 2, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return OrganizationMember(**values)


def _department(org_id: str, name: str = "Sales", **overrides) -> Department:
    values = {
        "id": str(uuid4()),
        "organization_id": org_id,
        "name": name,
        "default_course_ids": [],
        "auto_enroll": True,
    }
    values.update(overrides)
    return Department(**values)


class TestEmailHelpers:
    """Tests for email normalization and validation."""

    def test_normalize(self) -> None:
        assert normalize_email("  Sam@Example.COM ") == "sam@example.com"
        assert normalize_email(None) == ""

    @pytest.mark.parametrize(
        ("email", "valid"),
        [
            ("sam@example.com", True),
            ("sam@example", False),
            ("sam example@example.com", False),
            ("@example.com", False),
        ],
    )
    def test_is_valid_email(self, email: str, valid: bool) -> None:
        assert is_valid_email(email) is valid


class TestMemberServiceAdd:
    """Tests for MemberService.add."""

    @pytest.mark.asyncio
    async def test_add_invitation(self, service, mock_db, make_result, org_id) -> None:
        """Test an unknown email becomes an invited member."""
        mock_db.execute.side_effect = [
            make_result(one=None),
            make_result(one=None),
        ]

        member, created = await service.add(
            org_id, MemberCreateRequest(email=" Sam@Example.com ", name=" Sam ")
        )

        assert created is True
        assert member.email == "sam@example.com"
        assert member.name == "Sam"
        assert member.status == MemberStatus.INVITED
        assert member.user_id is None
        assert member.invited_at is not None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_add_existing_user_enrolls_department_courses(
        self, service, mock_db, make_result, org_id
    ) -> None:
        """Test a registered user is linked and enrolled in department defaults."""
        course_a, course_b = str(uuid4()), str(uuid4())
        department = _department(org_id, default_course_ids=[course_a, course_b])
        user = User(id=str(uuid4()), external_id="user_1", email="sam@example.com", api_key="k")
        mock_db.execute.side_effect = [
            make_result(one=None),
            make_result(one=department),
            make_result(one=user),
            make_result(items=[course_a, course_b]),
            make_result(items=[course_b]),
        ]

        member, created = await service.add(
            org_id,
            MemberCreateRequest(email="sam@example.com", department_id=department.id),
        )

        assert created is True
        assert member.status == MemberStatus.ACTIVE
        assert member.user_id == user.id
        assert member.joined_at is not None
        assert member.department_name == "Sales"
        assert member.assigned_course_ids == [course_a, course_b]

        enrollments = [obj for obj in mock_db.added if isinstance(obj, Enrollment)]
        assert [e.course_id for e in enrollments] == [course_a]

    @pytest.mark.asyncio
    async def test_add_admin_upgrades_employee(self, service, mock_db, make_result, org_id) -> None:
        existing = _member(org_id)
        mock_db.execute.return_value = make_result(one=existing)

        member, created = await service.add(
            org_id, MemberCreateRequest(email="sam@example.com", role=MemberRole.ADMIN)
        )

        assert created is False
        assert member.role == MemberRole.ADMIN
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_duplicate_raises(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(one=_member(org_id))

        with pytest.raises(MemberExistsError):
            await service.add(org_id, MemberCreateRequest(email="sam@example.com"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "  ", "not-an-email"])
    async def test_add_bad_email(self, service, mock_db, org_id, email) -> None:
        with pytest.raises(MemberValidationError):
            await service.add(org_id, MemberCreateRequest(email=email))

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_unknown_department(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.side_effect = [
            make_result(one=None),
            make_result(one=None),
        ]

        with pytest.raises(MemberDepartmentNotFoundError):
            await service.add(
                org_id,
                MemberCreateRequest(email="sam@example.com", department_id=str(uuid4())),
            )


class TestMemberServiceBulkImport:
    """Tests for MemberService.bulk_import."""

    @pytest.mark.asyncio
    async def test_mixed_rows(self, service, mock_db, make_result, org_id) -> None:
        """Test every row ends up as success, error or skipped."""
        sales = _department(org_id, "Sales")
        mock_db.execute.side_effect = [
            make_result(items=[sales]),
            make_result(items=["Existing@example.com"]),
        ]

        result = await service.bulk_import(
            org_id,
            BulkImportRequest(
                members=[
                    BulkMemberRow(email="new@example.com", name="New", department="sales"),
                    BulkMemberRow(email="existing@example.com"),
                    BulkMemberRow(email="NEW@example.com"),
                    BulkMemberRow(email="broken"),
                    BulkMemberRow(email=""),
                    BulkMemberRow(email="other@example.com", department="Marketing"),
                ]
            ),
        )

        assert [r.status for r in result.results] == [
            "success",
            "skipped",
            "skipped",
            "error",
            "error",
            "error",
        ]
        assert result.summary.total == 6
        assert result.summary.success == 1
        assert result.summary.skipped == 2
        assert result.summary.errors == 3
        assert result.results[0].member_id is not None
        assert result.results[5].message == 'Department "Marketing" not found'

        imported = mock_db.added[0]
        assert imported.department_id == sales.id
        assert imported.status == MemberStatus.INVITED.value
        assert imported.user_id is None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_role_is_a_row_error(self, service, mock_db, make_result, org_id) -> None:
        """Test an unknown role rejects only its own row."""
        mock_db.execute.side_effect = [make_result(items=[]), make_result(items=[])]

        request = BulkImportRequest.model_validate(
            {
                "members": [
                    {"email": "a@example.com"},
                    {"email": "b@example.com", "role": "manager"},
                    {"email": "c@example.com", "role": " Admin "},
                ]
            }
        )
        result = await service.bulk_import(org_id, request)

        assert [r.status for r in result.results] == ["success", "error", "success"]
        assert result.results[1].message == 'Invalid role "manager"'
        assert result.summary.total == 3
        assert result.summary.success + result.summary.errors + result.summary.skipped == 3
        assert [m.role for m in mock_db.added] == ["employee", "admin"]

    @pytest.mark.asyncio
    async def test_conflicting_row_does_not_abort_import(
        self, service, mock_db, make_result, org_id
    ) -> None:
        """Test a unique violation on one row is recorded and the rest commit."""
        mock_db.execute.side_effect = [make_result(items=[]), make_result(items=[])]
        mock_db.flush.side_effect = [
            IntegrityError("INSERT INTO organization_members", {}, Exception("duplicate key")),
            None,
        ]

        result = await service.bulk_import(
            org_id,
            BulkImportRequest(
                members=[
                    BulkMemberRow(email="race@example.com"),
                    BulkMemberRow(email="calm@example.com"),
                ]
            ),
        )

        assert [r.status for r in result.results] == ["error", "success"]
        assert result.summary.errors == 1
        assert result.summary.success == 1
        assert mock_db.begin_nested.call_count == 2
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_import(self, service) -> None:
        with pytest.raises(MemberValidationError, match="must not be empty"):
            await service.bulk_import(str(uuid4()), BulkImportRequest(members=[]))

    @pytest.mark.asyncio
    async def test_too_many_rows(self, service, mock_db) -> None:
        rows = [BulkMemberRow(email=f"u{i}@example.com") for i in range(11)]

        with pytest.raises(MemberValidationError, match="more than 10"):
            await service.bulk_import(str(uuid4()), BulkImportRequest(members=rows))

        mock_db.execute.assert_not_called()


class TestMemberServiceList:
    """Tests for member listing with stats."""

    @pytest.mark.asyncio
    async def test_stats_for_active_and_invited(
        self, service, mock_db, make_result, org_id
    ) -> None:
        """Test linked members get enrollment stats, invitations get assigned counts."""
        user_id = str(uuid4())
        department = _department(org_id, default_course_ids=["c1", "c2"])
        active = _member(org_id, email="a@example.com", user_id=user_id, status="active")
        invited = _member(
            org_id,
            email="b@example.com",
            department_id=department.id,
            assigned_course_ids=["c2", "c3"],
        )
        enrollments = [
            Enrollment(user_id=user_id, status="completed", progress_percentage=100),
            Enrollment(user_id=user_id, status="in-progress", progress_percentage=51),
        ]
        mock_db.execute.side_effect = [
            make_result(items=[active, invited]),
            make_result(items=[department]),
            make_result(items=enrollments),
        ]

        result = await service.list_members(org_id)

        assert result.total == 2
        active_stats = result.items[0].stats
        assert active_stats.courses_enrolled == 2
        assert active_stats.courses_completed == 1
        assert active_stats.courses_in_progress == 1
        assert active_stats.avg_progress == 76
        assert result.items[1].stats.courses_enrolled == 3
        assert result.items[1].department_name == "Sales"

    @pytest.mark.asyncio
    async def test_no_members(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(items=[])

        result = await service.list_members(org_id, role=MemberRole.ADMIN)

        assert result.total == 0
        assert mock_db.execute.call_count == 1


class TestMemberServiceUpdate:
    """Tests for MemberService.update."""

    @pytest.mark.asyncio
    async def test_general_clears_department(self, service, mock_db, make_result, org_id) -> None:
        member = _member(org_id, department_id=str(uuid4()))
        mock_db.execute.return_value = make_result(one=member)

        result = await service.update(
            org_id, member.id, MemberUpdateRequest(department_id="general", role="admin")
        )

        assert result.department_id is None
        assert result.department_name is None
        assert result.role == MemberRole.ADMIN

    @pytest.mark.asyncio
    async def test_keeps_department_name(self, service, mock_db, make_result, org_id) -> None:
        department = _department(org_id, "Support")
        member = _member(org_id, department_id=department.id)
        mock_db.execute.side_effect = [
            make_result(one=member),
            make_result(one=department.name),
        ]

        result = await service.update(
            org_id, member.id, MemberUpdateRequest(course_ids=["c1", "c1", "c2"])
        )

        assert result.department_name == "Support"
        assert result.assigned_course_ids == ["c1", "c2"]

    @pytest.mark.asyncio
    async def test_missing_department_does_not_block_role_change(
        self, service, mock_db, make_result, org_id
    ) -> None:
        member = _member(org_id, department_id=str(uuid4()))
        mock_db.execute.side_effect = [
            make_result(one=member),
            make_result(one=None),
        ]

        result = await service.update(org_id, member.id, MemberUpdateRequest(role="admin"))

        assert result.role == MemberRole.ADMIN
        assert result.department_id == member.department_id
        assert result.department_name is None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_role(self, service, mock_db, make_result, org_id) -> None:
        member = _member(org_id)
        mock_db.execute.return_value = make_result(one=member)

        with pytest.raises(MemberValidationError, match="Invalid role"):
            await service.update(org_id, member.id, MemberUpdateRequest(role="owner"))

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_member(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(MemberNotFoundError):
            await service.update(org_id, str(uuid4()), MemberUpdateRequest(status="active"))


class TestMemberServiceRemove:
    """Tests for MemberService.remove."""

    @pytest.mark.asyncio
    async def test_remove_by_email(self, service, mock_db, make_result, org_id) -> None:
        member = _member(org_id)
        mock_db.execute.return_value = make_result(one=member)

        removed = await service.remove(org_id, email="SAM@example.com")

        assert removed is member
        mock_db.delete.assert_called_once_with(member)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_remove_requires_identifier(self, service, org_id) -> None:
        with pytest.raises(MemberValidationError):
            await service.remove(org_id)

    @pytest.mark.asyncio
    async def test_remove_unknown_email(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(MemberNotFoundError):
            await service.remove(org_id, email="ghost@example.com")
