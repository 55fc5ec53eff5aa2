# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department service.

Departments group organization members and may carry default courses.
With auto-enroll on, adding default courses enrolls the department's
active employees into them.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.enrollment.service import EnrollmentService
from upskill.infrastructure.database.models import (
    Department,
    Organization,
    OrganizationMember,
    is_valid_id,
)
from upskill.models.common import MemberRole, MemberStatus
from upskill.models.organization import (
    DepartmentCreateRequest,
    DepartmentListResponse,
    DepartmentResponse,
    DepartmentUpdateRequest,
    DepartmentUpdateResponse,
    MemberResponse,
)

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

COUNTED_STATUSES = (MemberStatus.ACTIVE.value, MemberStatus.INVITED.value)


class DepartmentServiceError(Exception):
    """Base exception for department service errors."""

    pass


class DepartmentNotFoundError(DepartmentServiceError):
    """Raised when a department is not found."""

    pass


class DepartmentExistsError(DepartmentServiceError):
    """Raised when the organization already has a department with the name."""

    pass


class DepartmentValidationError(DepartmentServiceError):
    """Raised for invalid department input."""

    pass


class DepartmentOrganizationNotFoundError(DepartmentServiceError):
    """Raised when the organization does not exist."""

    pass


def clean_name(name: str | None) -> str:
    """Trim a department name and check its length.

    Raises:
        DepartmentValidationError: If the name is too short or too long.
    """
    trimmed = (name or "").strip()
    if len(trimmed) < NAME_MIN_LENGTH:
        raise DepartmentValidationError(
            f"Department name must be at least {NAME_MIN_LENGTH} characters"
        )
    if len(trimmed) > NAME_MAX_LENGTH:
        raise DepartmentValidationError(
            f"Department name must be at most {NAME_MAX_LENGTH} characters"
        )
    return trimmed


class DepartmentService:
    """Service for organization departments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        organization_id: str,
        data: DepartmentCreateRequest,
        created_by: str | None = None,
    ) -> DepartmentResponse:
        """Create a department.

        Args:
            organization_id: Organization ID.
            data: Department fields.
            created_by: Creating user ID.

        Returns:
            Created department.

        Raises:
            DepartmentValidationError: If the name length is invalid.
            DepartmentOrganizationNotFoundError: If the organization does not exist.
            DepartmentExistsError: If the name is taken in the organization.
        """
        name = clean_name(data.name)
        await self._ensure_organization(organization_id)
        await self._ensure_unique_name(organization_id, name)

        department = Department(
            organization_id=organization_id,
            name=name,
            description=(data.description or "").strip() or None,
            default_course_ids=list(dict.fromkeys(data.default_course_ids)),
            auto_enroll=data.auto_enroll,
            created_by=created_by,
        )
        self.db.add(department)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise DepartmentExistsError(f'Department "{name}" already exists')

        await self.db.commit()
        await self.db.refresh(department)

        logger.info("Created department: id=%s, org=%s, name=%s", department.id, organization_id, name)
        return self._to_response(department, 0)

    async def list_departments(self, organization_id: str) -> DepartmentListResponse:
        """List departments sorted by name with their member counts."""
        if not is_valid_id(organization_id):
            return DepartmentListResponse(items=[], total=0)

        result = await self.db.execute(
            select(Department)
            .where(Department.organization_id == organization_id)
            .order_by(Department.name)
        )
        departments = result.scalars().all()
        if not departments:
            return DepartmentListResponse(items=[], total=0)

        result = await self.db.execute(
            select(OrganizationMember.department_id, func.count())
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.department_id.is_not(None),
                OrganizationMember.status.in_(COUNTED_STATUSES),
            )
            .group_by(OrganizationMember.department_id)
        )
        counts = {department_id: count for department_id, count in result.all()}

        items = [self._to_response(d, counts.get(d.id, 0)) for d in departments]
        return DepartmentListResponse(items=items, total=len(items))

    async def get(self, organization_id: str, department_id: str) -> DepartmentResponse:
        """Get a department with its member count.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self._get_department(organization_id, department_id)
        return self._to_response(department, await self._member_count(department.id))

    async def update(
        self,
        organization_id: str,
        department_id: str,
        data: DepartmentUpdateRequest,
    ) -> DepartmentUpdateResponse:
        """Update a department.

        When auto-enroll is on after the update and default courses were
        added, active employees of the department with a linked user are
        enrolled into the added courses.

        Args:
            organization_id: Organization ID.
            department_id: Department ID.
            data: Fields to change.

        Returns:
            Updated department and the number of enrollments created.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
            DepartmentValidationError: If the new name length is invalid.
            DepartmentExistsError: If the new name is taken.
        """
        department = await self._get_department(organization_id, department_id)

        if data.name is not None:
            name = clean_name(data.name)
            if name.lower() != department.name.lower():
                await self._ensure_unique_name(organization_id, name, exclude_id=department.id)
            department.name = name

        if data.description is not None:
            department.description = data.description.strip() or None

        previous_courses = list(department.default_course_ids or [])
        if data.default_course_ids is not None:
            department.default_course_ids = list(dict.fromkeys(data.default_course_ids))

        if data.auto_enroll is not None:
            department.auto_enroll = data.auto_enroll

        enrolled_count = 0
        added = [c for c in department.default_course_ids or [] if c not in previous_courses]
        if department.auto_enroll and data.default_course_ids is not None and added:
            enrolled_count = await self._enroll_members(department, added)

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise DepartmentExistsError(f'Department "{department.name}" already exists')

        await self.db.commit()
        await self.db.refresh(department)

        logger.info(
            "Updated department: id=%s, added_courses=%d, enrolled=%d",
            department_id,
            len(added),
            enrolled_count,
        )
        return DepartmentUpdateResponse(
            department=self._to_response(department, await self._member_count(department.id)),
            enrolled_count=enrolled_count,
        )

    async def delete(self, organization_id: str, department_id: str) -> None:
        """Delete a department; its members are left without a department.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self._get_department(organization_id, department_id)

        await self.db.execute(
            update(OrganizationMember)
            .where(OrganizationMember.department_id == department.id)
            .values(department_id=None)
        )
        await self.db.delete(department)
        await self.db.commit()

        logger.info("Deleted department: id=%s, org=%s", department_id, organization_id)

    async def list_members(self, organization_id: str, department_id: str) -> list[MemberResponse]:
        """List the members of a department.

        Raises:
            DepartmentNotFoundError: If the department does not exist.
        """
        department = await self._get_department(organization_id, department_id)

        result = await self.db.execute(
            select(OrganizationMember)
            .where(OrganizationMember.department_id == department.id)
            .order_by(OrganizationMember.email)
        )
        return [
            MemberResponse(
                id=m.id,
                organization_id=m.organization_id,
                user_id=m.user_id,
                email=m.email,
                name=m.name,
                role=m.role,
                status=m.status,
                department_id=m.department_id,
                department_name=department.name,
                assigned_course_ids=list(m.assigned_course_ids or []),
                invited_at=m.invited_at,
                joined_at=m.joined_at,
            )
            for m in result.scalars().all()
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _enroll_members(self, department: Department, course_ids: list[str]) -> int:
        result = await self.db.execute(
            select(OrganizationMember.user_id).where(
                OrganizationMember.department_id == department.id,
                OrganizationMember.status == MemberStatus.ACTIVE.value,
                OrganizationMember.role == MemberRole.EMPLOYEE.value,
                OrganizationMember.user_id.is_not(None),
            )
        )
        user_ids = list(result.scalars().all())

        enrollments = EnrollmentService(self.db)
        total = 0
        for user_id in user_ids:
            total += await enrollments.enroll_many(user_id, department.organization_id, course_ids)
        return total

    async def _member_count(self, department_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(OrganizationMember)
            .where(
                OrganizationMember.department_id == department_id,
                OrganizationMember.status.in_(COUNTED_STATUSES),
            )
        )
        return result.scalar() or 0

    async def _ensure_unique_name(
        self,
        organization_id: str,
        name: str,
        exclude_id: str | None = None,
    ) -> None:
        query = select(Department.id).where(
            Department.organization_id == organization_id,
            func.lower(Department.name) == name.lower(),
        )
        if exclude_id:
            query = query.where(Department.id != exclude_id)

        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise DepartmentExistsError(f'Department "{name}" already exists')

    async def _ensure_organization(self, organization_id: str) -> None:
        if not is_valid_id(organization_id):
            raise DepartmentOrganizationNotFoundError(f"Organization {organization_id} not found")

        result = await self.db.execute(
            select(Organization.id).where(Organization.id == organization_id)
        )
        if result.scalar_one_or_none() is None:
            raise DepartmentOrganizationNotFoundError(f"Organization {organization_id} not found")

    async def _get_department(self, organization_id: str, department_id: str) -> Department:
        if not is_valid_id(department_id):
            raise DepartmentNotFoundError("Department not found")

        result = await self.db.execute(
            select(Department).where(
                Department.id == department_id,
                Department.organization_id == organization_id,
            )
        )
        department = result.scalar_one_or_none()
        if department is None:
            raise DepartmentNotFoundError("Department not found")
        return department

    @staticmethod
    def _to_response(department: Department, member_count: int) -> DepartmentResponse:
        return DepartmentResponse(
            id=department.id,
            organization_id=department.organization_id,
            name=department.name,
            description=department.description,
            default_course_ids=list(department.default_course_ids or []),
            auto_enroll=department.auto_enroll,
            member_count=member_count,
            created_at=department.created_at,
        )
