# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization member service.

This module provides the MemberService class for:
- Adding single members with course assignment
- Bulk member import with per-row results
- Member listing with learning statistics
- Member updates and removal

Members are keyed by lowercased email within an organization. A member
without a linked user is an invitation; it is linked when a user with
the same email signs in.
"""

import logging
import re
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.core.config import AnalyticsSettings, get_settings
from upskill.domains.enrollment.service import EnrollmentService
from upskill.infrastructure.database.models import (
    Department,
    Enrollment,
    OrganizationMember,
    User,
    is_valid_id,
)
from upskill.models.common import EnrollmentStatus, MemberRole, MemberStatus
from upskill.models.organization import (
    BulkImportRequest,
    BulkImportResponse,
    BulkImportSummary,
    BulkRowResult,
    MemberCreateRequest,
    MemberListResponse,
    MemberResponse,
    MemberStats,
    MemberUpdateRequest,
)
from upskill.utils.datetime import utc_now
from upskill.utils.numbers import mean, round_int

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Sentinel department id that stands for "no department".
GENERAL_DEPARTMENT = "general"


class MemberServiceError(Exception):
    """Base exception for member service errors."""

    pass


class MemberNotFoundError(MemberServiceError):
    """Raised when a member is not found."""

    pass


class MemberExistsError(MemberServiceError):
    """Raised when the email is already a member."""

    pass


class MemberValidationError(MemberServiceError):
    """Raised for invalid member input."""

    pass


class MemberDepartmentNotFoundError(MemberServiceError):
    """Raised when the referenced department is not in the organization."""

    pass


def normalize_email(email: str | None) -> str:
    """Trim and lowercase an email address."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    """Check an email against the accepted address format."""
    return bool(EMAIL_PATTERN.match(email))


class MemberService:
    """Service for organization members.

    Attributes:
        db: Async database session.
        settings: Analytics and import settings.
    """

    def __init__(self, db: AsyncSession, settings: AnalyticsSettings | None = None) -> None:
        """Initialize member service.

        Args:
            db: Async database session.
            settings: Import limits, defaults to the application settings.
        """
        self.db = db
        self.settings = settings or get_settings().analytics

    async def add(
        self,
        organization_id: str,
        data: MemberCreateRequest,
        invited_by: str | None = None,
    ) -> tuple[MemberResponse, bool]:
        """Add a member to an organization.

        Adding an existing employee as admin upgrades their role instead.
        When a user with the email already exists, the member is linked
        and enrolled into the assigned courses right away.

        Args:
            organization_id: Organization ID.
            data: Member details.
            invited_by: Inviting user ID.

        Returns:
            Tuple of (member, created). created is False for a role upgrade.

        Raises:
            MemberValidationError: If the email is missing or malformed.
            MemberExistsError: If the email is already a member.
            MemberDepartmentNotFoundError: If the department does not exist.
        """
        email = normalize_email(data.email)
        if not email:
            raise MemberValidationError("Email is required")
        if not is_valid_email(email):
            raise MemberValidationError("Invalid email format")

        existing = await self._find_by_email(organization_id, email)
        if existing is not None:
            if data.role == MemberRole.ADMIN and existing.role != MemberRole.ADMIN.value:
                existing.role = MemberRole.ADMIN.value
                await self.db.commit()
                await self.db.refresh(existing)
                logger.info("Upgraded member to admin: org=%s, member=%s", organization_id, existing.id)
                return self._to_response(existing), False
            raise MemberExistsError("Member already exists")

        department = None
        if data.department_id:
            department = await self._get_department(organization_id, data.department_id)

        if data.course_ids:
            course_ids = list(dict.fromkeys(data.course_ids))
        elif department is not None and department.auto_enroll:
            course_ids = list(department.default_course_ids or [])
        else:
            course_ids = []

        now = utc_now()
        member = OrganizationMember(
            organization_id=organization_id,
            email=email,
            name=(data.name or "").strip() or None,
            role=data.role.value,
            status=MemberStatus.INVITED.value,
            department_id=department.id if department is not None else None,
            assigned_course_ids=course_ids,
            invited_by=invited_by,
            invited_at=now,
        )

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        enrolled = 0
        if user is not None:
            member.user_id = user.id
            member.status = MemberStatus.ACTIVE.value
            member.joined_at = now

        self.db.add(member)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise MemberExistsError("Member already exists")

        if user is not None and course_ids:
            enrolled = await EnrollmentService(self.db).enroll_many(
                user.id, organization_id, course_ids
            )

        await self.db.commit()
        await self.db.refresh(member)

        logger.info(
            "Added member: org=%s, email=%s, linked=%s, enrolled=%d",
            organization_id,
            email,
            user is not None,
            enrolled,
        )
        return (
            self._to_response(member, department.name if department is not None else None),
            True,
        )

    async def bulk_import(
        self,
        organization_id: str,
        data: BulkImportRequest,
        invited_by: str | None = None,
    ) -> BulkImportResponse:
        """Import many members at once.

        Rows are validated independently; a bad row never stops the
        import. Every row ends up as exactly one of success, error or
        skipped.

        Args:
            organization_id: Organization ID.
            data: Rows to import.
            invited_by: Inviting user ID.

        Returns:
            Summary and per-row results.

        Raises:
            MemberValidationError: If the row list is empty or too long.
        """
        limit = self.settings.bulk_import_limit
        if not data.members:
            raise MemberValidationError("Members array is required and must not be empty")
        if len(data.members) > limit:
            raise MemberValidationError(f"Cannot import more than {limit} members at once")

        result = await self.db.execute(
            select(Department).where(Department.organization_id == organization_id)
        )
        departments = {d.name.lower(): d.id for d in result.scalars().all()}

        result = await self.db.execute(
            select(OrganizationMember.email).where(
                OrganizationMember.organization_id == organization_id
            )
        )
        known_emails = {email.lower() for email in result.scalars().all()}

        now = utc_now()
        results: list[BulkRowResult] = []
        for index, row in enumerate(data.members):
            number = index + 1
            email = normalize_email(row.email)

            if not email:
                results.append(
                    BulkRowResult(row=number, email=row.email, status="error", message="Email is required")
                )
                continue
            if not is_valid_email(email):
                results.append(
                    BulkRowResult(row=number, email=row.email, status="error", message="Invalid email format")
                )
                continue
            if email in known_emails:
                results.append(
                    BulkRowResult(row=number, email=row.email, status="skipped", message="Already exists")
                )
                continue

            role = (row.role or "").strip().lower() or MemberRole.EMPLOYEE.value
            if role not in {r.value for r in MemberRole}:
                results.append(
                    BulkRowResult(
                        row=number,
                        email=row.email,
                        status="error",
                        message=f'Invalid role "{row.role}"',
                    )
                )
                continue

            department_id = None
            if row.department and row.department.strip():
                department_id = departments.get(row.department.strip().lower())
                if department_id is None:
                    results.append(
                        BulkRowResult(
                            row=number,
                            email=row.email,
                            status="error",
                            message=f'Department "{row.department}" not found',
                        )
                    )
                    continue

            member = OrganizationMember(
                organization_id=organization_id,
                email=email,
                name=(row.name or "").strip() or None,
                role=role,
                status=MemberStatus.INVITED.value,
                department_id=department_id,
                assigned_course_ids=[],
                invited_by=invited_by,
                invited_at=now,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(member)
                    await self.db.flush()
            except IntegrityError:
                logger.warning("Bulk import row %d conflicted: org=%s", number, organization_id)
                results.append(
                    BulkRowResult(row=number, email=row.email, status="error", message="Already exists")
                )
                continue
            known_emails.add(email)
            results.append(
                BulkRowResult(row=number, email=row.email, status="success", member_id=member.id)
            )

        await self.db.commit()

        summary = BulkImportSummary(
            total=len(data.members),
            success=sum(1 for r in results if r.status == "success"),
            errors=sum(1 for r in results if r.status == "error"),
            skipped=sum(1 for r in results if r.status == "skipped"),
        )
        logger.info(
            "Bulk import: org=%s, total=%d, success=%d, errors=%d, skipped=%d",
            organization_id,
            summary.total,
            summary.success,
            summary.errors,
            summary.skipped,
        )
        return BulkImportResponse(summary=summary, results=results)

    async def list_members(
        self,
        organization_id: str,
        role: MemberRole | None = None,
        status: MemberStatus | None = None,
        department_id: str | None = None,
    ) -> MemberListResponse:
        """List members with their learning statistics, newest first.

        Args:
            organization_id: Organization ID.
            role: Optional role filter.
            status: Optional status filter.
            department_id: Optional department filter, "general" for none.

        Returns:
            Members with department names and stats.
        """
        if not is_valid_id(organization_id):
            return MemberListResponse(items=[], total=0)

        query = select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id
        )
        if role:
            query = query.where(OrganizationMember.role == role.value)
        if status:
            query = query.where(OrganizationMember.status == status.value)
        if department_id == GENERAL_DEPARTMENT:
            query = query.where(OrganizationMember.department_id.is_(None))
        elif department_id:
            if not is_valid_id(department_id):
                return MemberListResponse(items=[], total=0)
            query = query.where(OrganizationMember.department_id == department_id)
        query = query.order_by(OrganizationMember.created_at.desc())

        result = await self.db.execute(query)
        members = result.scalars().all()
        if not members:
            return MemberListResponse(items=[], total=0)

        result = await self.db.execute(
            select(Department).where(Department.organization_id == organization_id)
        )
        departments = {d.id: d for d in result.scalars().all()}

        user_ids = {m.user_id for m in members if m.user_id}
        enrollments: dict[str, list[Enrollment]] = {}
        if user_ids:
            result = await self.db.execute(
                select(Enrollment).where(
                    Enrollment.organization_id == organization_id,
                    Enrollment.user_id.in_(user_ids),
                )
            )
            for enrollment in result.scalars().all():
                enrollments.setdefault(enrollment.user_id, []).append(enrollment)

        items = []
        for member in members:
            department = departments.get(member.department_id) if member.department_id else None
            if member.user_id:
                stats = self._enrollment_stats(enrollments.get(member.user_id, []))
            else:
                stats = self._pending_stats(member, department)
            items.append(
                self._to_response(
                    member,
                    department.name if department is not None else None,
                    stats,
                )
            )
        return MemberListResponse(items=items, total=len(items))

    async def update(
        self,
        organization_id: str,
        member_id: str,
        data: MemberUpdateRequest,
    ) -> MemberResponse:
        """Update a member's role, department, status or assigned courses.

        Raises:
            MemberNotFoundError: If the member does not exist.
            MemberValidationError: If a role or status is not recognised.
            MemberDepartmentNotFoundError: If the department does not exist.
        """
        member = await self._get_member(organization_id, member_id)
        fields = data.model_fields_set

        if data.role is not None:
            if data.role not in {r.value for r in MemberRole}:
                raise MemberValidationError("Invalid role. Must be admin or employee")
            member.role = data.role

        if data.status is not None:
            if data.status not in {s.value for s in MemberStatus}:
                raise MemberValidationError("Invalid status. Must be active, invited or inactive")
            member.status = data.status

        department_name = None
        if "department_id" in fields:
            if data.department_id is None or data.department_id == GENERAL_DEPARTMENT:
                member.department_id = None
            else:
                department = await self._get_department(organization_id, data.department_id)
                member.department_id = department.id
                department_name = department.name
        elif member.department_id:
            department_name = await self._department_name(organization_id, member.department_id)

        if data.course_ids is not None:
            member.assigned_course_ids = list(dict.fromkeys(data.course_ids))

        await self.db.commit()
        await self.db.refresh(member)

        logger.info("Updated member: org=%s, member=%s", organization_id, member_id)
        return self._to_response(member, department_name)

    async def remove(
        self,
        organization_id: str,
        member_id: str | None = None,
        email: str | None = None,
    ) -> OrganizationMember:
        """Remove a member by ID or email.

        Enrollments of the member's user are kept.

        Raises:
            MemberValidationError: If neither member_id nor email is given.
            MemberNotFoundError: If the member does not exist.
        """
        if member_id:
            member = await self._get_member(organization_id, member_id)
        elif email:
            member = await self._find_by_email(organization_id, normalize_email(email))
            if member is None:
                raise MemberNotFoundError("Member not found in this organization")
        else:
            raise MemberValidationError("Either email or member_id is required")

        await self.db.delete(member)
        await self.db.commit()

        logger.info("Removed member: org=%s, email=%s", organization_id, member.email)
        return member

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _enrollment_stats(enrollments: Iterable[Enrollment]) -> MemberStats:
        enrollments = list(enrollments)
        return MemberStats(
            courses_enrolled=len(enrollments),
            courses_completed=sum(
                1 for e in enrollments if e.status == EnrollmentStatus.COMPLETED.value
            ),
            courses_in_progress=sum(
                1 for e in enrollments if e.status == EnrollmentStatus.IN_PROGRESS.value
            ),
            avg_progress=round_int(mean([e.progress_percentage or 0 for e in enrollments])),
        )

    @staticmethod
    def _pending_stats(member: OrganizationMember, department: Department | None) -> MemberStats:
        assigned = list(member.assigned_course_ids or [])
        if department is not None:
            assigned += [c for c in department.default_course_ids or [] if c not in assigned]
        return MemberStats(courses_enrolled=len(assigned))

    @staticmethod
    def _to_response(
        member: OrganizationMember,
        department_name: str | None = None,
        stats: MemberStats | None = None,
    ) -> MemberResponse:
        return MemberResponse(
            id=member.id,
            organization_id=member.organization_id,
            user_id=member.user_id,
            email=member.email,
            name=member.name,
            role=member.role,
            status=member.status,
            department_id=member.department_id,
            department_name=department_name,
            assigned_course_ids=list(member.assigned_course_ids or []),
            invited_at=member.invited_at,
            joined_at=member.joined_at,
            stats=stats or MemberStats(),
        )

    async def _find_by_email(self, organization_id: str, email: str) -> OrganizationMember | None:
        result = await self.db.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.email == email,
            )
        )
        return result.scalar_one_or_none()

    async def _get_member(self, organization_id: str, member_id: str) -> OrganizationMember:
        if not is_valid_id(member_id):
            raise MemberNotFoundError("Member not found in this organization")

        result = await self.db.execute(
            select(OrganizationMember).where(
                OrganizationMember.id == member_id,
                OrganizationMember.organization_id == organization_id,
            )
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise MemberNotFoundError("Member not found in this organization")
        return member

    async def _department_name(self, organization_id: str, department_id: str) -> str | None:
        result = await self.db.execute(
            select(Department.name).where(
                Department.id == department_id,
                Department.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_department(self, organization_id: str, department_id: str) -> Department:
        if not is_valid_id(department_id):
            raise MemberDepartmentNotFoundError("Department not found")

        result = await self.db.execute(
            select(Department).where(
                Department.id == department_id,
                Department.organization_id == organization_id,
            )
        )
        department = result.scalar_one_or_none()
        if department is None:
            raise MemberDepartmentNotFoundError("Department not found")
        return department
