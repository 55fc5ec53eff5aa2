# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for DepartmentService."""

from uuid import uuid4

import pytest

from upskill.domains.department.service import (
    DepartmentExistsError,
    DepartmentNotFoundError,
    DepartmentOrganizationNotFoundError,
    DepartmentService,
    DepartmentValidationError,
    clean_name,
)
from upskill.infrastructure.database.models import Department, Enrollment, OrganizationMember
from upskill.models.organization import DepartmentCreateRequest, DepartmentUpdateRequest


@pytest.fixture
def org_id() -> str:
    return str(uuid4())


@pytest.fixture
def service(mock_db) -> DepartmentService:
    return DepartmentService(db=mock_db)


def _department(org_id: str, name: str = "Engineering", **overrides) -> Department:
    values = {
        "id": str(uuid4()),
        "organization_id": org_id,
        "name": name,
        "default_course_ids": [],
        "auto_enroll": True,
    }
    values.update(overrides)
    return Department(**values)


class TestCleanName:
    """Tests for department name validation."""

    def test_trims(self) -> None:
        assert clean_name("  Sales  ") == "Sales"

    @pytest.mark.parametrize("name", [None, "", " a ", "x" * 101])
    def test_rejects_bad_length(self, name) -> None:
        with pytest.raises(DepartmentValidationError):
            clean_name(name)


class TestDepartmentServiceCreate:
    """Tests for DepartmentService.create."""

    @pytest.mark.asyncio
    async def test_create_success(self, service, mock_db, make_result, org_id) -> None:
        c1 = str(uuid4())
        mock_db.execute.side_effect = [
            make_result(one=org_id),
            make_result(one=None),
        ]

        result = await service.create(
            org_id,
            DepartmentCreateRequest(name=" Engineering ", default_course_ids=[c1, c1]),
        )

        assert result.name == "Engineering"
        assert result.default_course_ids == [c1]
        assert result.member_count == 0
        assert result.auto_enroll is True
        assert result.id
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_duplicate_name_case_insensitive(
        self, service, mock_db, make_result, org_id
    ) -> None:
        mock_db.execute.side_effect = [
            make_result(one=org_id),
            make_result(one=str(uuid4())),
        ]

        with pytest.raises(DepartmentExistsError, match="ENGINEERING"):
            await service.create(org_id, DepartmentCreateRequest(name="ENGINEERING"))

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_organization(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(DepartmentOrganizationNotFoundError):
            await service.create(org_id, DepartmentCreateRequest(name="Sales"))

    @pytest.mark.asyncio
    async def test_short_name_checked_first(self, service, mock_db, org_id) -> None:
        with pytest.raises(DepartmentValidationError):
            await service.create(org_id, DepartmentCreateRequest(name="A"))

        mock_db.execute.assert_not_called()


class TestDepartmentServiceList:
    """Tests for listing departments."""

    @pytest.mark.asyncio
    async def test_member_counts(self, service, mock_db, make_result, org_id) -> None:
        engineering = _department(org_id, "Engineering")
        sales = _department(org_id, "Sales")
        mock_db.execute.side_effect = [
            make_result(items=[engineering, sales]),
            make_result(rows=[(engineering.id, 3)]),
        ]

        result = await service.list_departments(org_id)

        assert result.total == 2
        assert result.items[0].member_count == 3
        assert result.items[1].member_count == 0

    @pytest.mark.asyncio
    async def test_get_missing(self, service, mock_db, make_result, org_id) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(DepartmentNotFoundError):
            await service.get(org_id, str(uuid4()))


class TestDepartmentServiceUpdate:
    """Tests for DepartmentService.update."""

    @pytest.mark.asyncio
    async def test_added_courses_enroll_active_employees(
        self, service, mock_db, make_result, org_id
    ) -> None:
        """Test only newly added default courses are auto-enrolled."""
        c1, c2 = str(uuid4()), str(uuid4())
        u1, u2 = str(uuid4()), str(uuid4())
        department = _department(org_id, default_course_ids=[c1])
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(items=[u1, u2]),
            make_result(items=[c2]),
            make_result(items=[]),
            make_result(items=[c2]),
            make_result(items=[c2]),
            make_result(scalar=4),
        ]

        result = await service.update(
            org_id,
            department.id,
            DepartmentUpdateRequest(default_course_ids=[c1, c2]),
        )

        assert result.enrolled_count == 1
        assert result.department.default_course_ids == [c1, c2]
        assert result.department.member_count == 4
        enrollments = [obj for obj in mock_db.added if isinstance(obj, Enrollment)]
        assert [(e.user_id, e.course_id) for e in enrollments] == [(u1, c2)]

    @pytest.mark.asyncio
    async def test_auto_enroll_off_skips_enrollment(
        self, service, mock_db, make_result, org_id
    ) -> None:
        department = _department(org_id, default_course_ids=[])
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(scalar=0),
        ]

        result = await service.update(
            org_id,
            department.id,
            DepartmentUpdateRequest(default_course_ids=[str(uuid4())], auto_enroll=False),
        )

        assert result.enrolled_count == 0
        assert result.department.auto_enroll is False

    @pytest.mark.asyncio
    async def test_rename_to_taken_name(self, service, mock_db, make_result, org_id) -> None:
        department = _department(org_id, "Engineering")
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(one=str(uuid4())),
        ]

        with pytest.raises(DepartmentExistsError):
            await service.update(org_id, department.id, DepartmentUpdateRequest(name="Sales"))

    @pytest.mark.asyncio
    async def test_rename_case_only(self, service, mock_db, make_result, org_id) -> None:
        """Test changing only the case skips the uniqueness lookup."""
        department = _department(org_id, "engineering")
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(scalar=2),
        ]

        result = await service.update(
            org_id, department.id, DepartmentUpdateRequest(name="Engineering")
        )

        assert result.department.name == "Engineering"


class TestDepartmentServiceDelete:
    """Tests for department deletion."""

    @pytest.mark.asyncio
    async def test_delete_clears_members(self, service, mock_db, make_result, org_id) -> None:
        department = _department(org_id)
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(),
        ]

        await service.delete(org_id, department.id)

        assert mock_db.execute.call_count == 2
        mock_db.delete.assert_called_once_with(department)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_list_members(self, service, mock_db, make_result, org_id) -> None:
        department = _department(org_id, "Support")
        member = OrganizationMember(
            id=str(uuid4()),
            organization_id=org_id,
            email="kim@example.com",
            role="employee",
            status="active",
            department_id=department.id,
            assigned_course_ids=[],
        )
        mock_db.execute.side_effect = [
            make_result(one=department),
            make_result(items=[member]),
        ]

        members = await service.list_members(org_id, department.id)

        assert len(members) == 1
        assert members[0].department_name == "Support"
