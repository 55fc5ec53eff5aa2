# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Certificate service for course completion certificates.

This module provides the CertificateService class for:
- Issuing a certificate for a completed enrollment
- Looking up an enrollment's certificate
- Public lookup by certificate_id
- Invalidating certificates when their course structure changes

A certificate records the module and lesson counts it was earned
against. Reads compare those counts with the current course and persist
the invalidation when they differ.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.course.structure import count_lessons
from upskill.infrastructure.database.models import (
    Certificate,
    Course,
    Enrollment,
    Organization,
    OrganizationMember,
    User,
    is_valid_id,
)
from upskill.models.certificate import (
    CertificateEnvelope,
    CertificateLookupResponse,
    CertificateResponse,
    PublicCertificateResponse,
)
from upskill.models.common import EnrollmentStatus
from upskill.utils.datetime import utc_now

logger = logging.getLogger(__name__)

CONTENT_CHANGED = "Course content has been updated since certification"
COURSE_REMOVED = "Course no longer exists"


class CertificateServiceError(Exception):
    """Base exception for certificate service errors."""

    pass


class InvalidEnrollmentIdError(CertificateServiceError):
    """Raised when an enrollment id is malformed."""

    pass


class CertificateNotFoundError(CertificateServiceError):
    """Raised when certificate is not found."""

    pass


class EnrollmentNotFoundError(CertificateServiceError):
    """Raised when enrollment is not found."""

    pass


class RelatedDataNotFoundError(CertificateServiceError):
    """Raised when the enrollment's user, course or organization is gone."""

    pass


class EnrollmentNotCompletedError(CertificateServiceError):
    """Raised when a certificate is requested for an unfinished course."""

    pass


def course_shape(modules: list[dict[str, Any]] | None) -> tuple[int, int]:
    """Module and lesson counts of a course structure."""
    return len(modules or []), count_lessons(modules)


class CertificateService:
    """Service for issuing and reading certificates."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize certificate service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def issue(self, enrollment_id: str) -> CertificateEnvelope:
        """Issue a certificate for a completed enrollment.

        Issuing twice for the same enrollment returns the existing
        certificate with created=False.

        Args:
            enrollment_id: Enrollment ID.

        Returns:
            The certificate and whether it was created now.

        Raises:
            InvalidEnrollmentIdError: If the id is malformed.
            EnrollmentNotFoundError: If the enrollment does not exist.
            EnrollmentNotCompletedError: If the course is not completed.
            RelatedDataNotFoundError: If the user, course or organization is gone.
        """
        self._check_enrollment_id(enrollment_id)

        existing = await self._find_by_enrollment(enrollment_id)
        if existing is not None:
            return CertificateEnvelope(
                certificate=CertificateResponse.model_validate(existing),
                created=False,
            )

        result = await self.db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError("Enrollment not found")

        if enrollment.status != EnrollmentStatus.COMPLETED.value:
            raise EnrollmentNotCompletedError("Certificate can only be issued for completed courses")

        user = await self._get(User, enrollment.user_id)
        course = await self._get(Course, enrollment.course_id)
        organization = await self._get(Organization, enrollment.organization_id)
        if user is None or course is None or organization is None:
            raise RelatedDataNotFoundError("Related data not found")

        result = await self.db.execute(
            select(OrganizationMember.name).where(
                OrganizationMember.organization_id == enrollment.organization_id,
                OrganizationMember.user_id == enrollment.user_id,
            )
        )
        member_name = result.scalar_one_or_none()

        total_modules, total_lessons = course_shape(course.modules)
        now = utc_now()
        certificate = Certificate(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            organization_id=enrollment.organization_id,
            user_name=member_name or user.name or user.email,
            user_avatar_url=user.avatar_url,
            course_title=course.title,
            organization_name=organization.name,
            organization_icon_url=organization.icon_url,
            total_lessons_at_issue=total_lessons,
            total_modules_at_issue=total_modules,
            completed_at=enrollment.completed_at or now,
            issued_at=now,
            is_valid=True,
        )
        self.db.add(certificate)
        await self.db.commit()
        await self.db.refresh(certificate)

        logger.info(
            "Issued certificate: id=%s, enrollment=%s",
            certificate.certificate_id,
            enrollment_id,
        )
        return CertificateEnvelope(
            certificate=CertificateResponse.model_validate(certificate),
            created=True,
        )

    async def get_for_enrollment(self, enrollment_id: str) -> CertificateLookupResponse:
        """Get an enrollment's certificate, checking it against the course.

        Raises:
            InvalidEnrollmentIdError: If the id is malformed.
        """
        self._check_enrollment_id(enrollment_id)

        certificate = await self._find_by_enrollment(enrollment_id)
        if certificate is None:
            return CertificateLookupResponse(certificate=None)

        await self._refresh_validity(certificate)
        return CertificateLookupResponse(certificate=CertificateResponse.model_validate(certificate))

    async def get_public(self, certificate_id: str) -> PublicCertificateResponse:
        """Get a certificate by its public id.

        A certificate whose course was deleted is reported invalid.

        Raises:
            CertificateNotFoundError: If no certificate has this id.
        """
        result = await self.db.execute(
            select(Certificate).where(Certificate.certificate_id == certificate_id)
        )
        certificate = result.scalar_one_or_none()
        if not certificate:
            raise CertificateNotFoundError("Certificate not found")

        await self._refresh_validity(certificate)
        return PublicCertificateResponse(
            certificate_id=certificate.certificate_id,
            user_name=certificate.user_name,
            user_avatar_url=certificate.user_avatar_url,
            course_title=certificate.course_title,
            organization_name=certificate.organization_name,
            organization_icon_url=certificate.organization_icon_url,
            issued_at=certificate.issued_at,
            completed_at=certificate.completed_at,
            is_valid=certificate.is_valid,
            invalidation_reason=certificate.invalidation_reason,
        )

    async def invalidate_for_course(self, course: Course) -> int:
        """Invalidate the course's certificates that no longer match its structure.

        Runs inside the caller's transaction.

        Returns:
            Number of certificates invalidated.
        """
        result = await self.db.execute(
            select(Certificate).where(
                Certificate.course_id == course.id,
                Certificate.is_valid.is_(True),
            )
        )
        shape = course_shape(course.modules)
        invalidated = 0
        for certificate in result.scalars().all():
            if (certificate.total_modules_at_issue, certificate.total_lessons_at_issue) != shape:
                self._invalidate(certificate, CONTENT_CHANGED)
                invalidated += 1

        if invalidated:
            await self.db.flush()
            logger.info(
                "Invalidated certificates: course=%s, count=%d",
                course.id,
                invalidated,
            )
        return invalidated

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _refresh_validity(self, certificate: Certificate) -> None:
        if not certificate.is_valid:
            return

        course = None
        if certificate.course_id:
            course = await self._get(Course, certificate.course_id)

        if course is None:
            self._invalidate(certificate, COURSE_REMOVED)
        elif course_shape(course.modules) != (
            certificate.total_modules_at_issue,
            certificate.total_lessons_at_issue,
        ):
            self._invalidate(certificate, CONTENT_CHANGED)
        else:
            return

        await self.db.commit()
        logger.info(
            "Certificate no longer valid: id=%s, reason=%s",
            certificate.certificate_id,
            certificate.invalidation_reason,
        )

    def _invalidate(self, certificate: Certificate, reason: str) -> None:
        certificate.is_valid = False
        certificate.invalidated_at = utc_now()
        certificate.invalidation_reason = reason

    def _check_enrollment_id(self, enrollment_id: str) -> None:
        if not is_valid_id(enrollment_id):
            raise InvalidEnrollmentIdError("Invalid enrollment ID")

    async def _find_by_enrollment(self, enrollment_id: str) -> Certificate | None:
        result = await self.db.execute(
            select(Certificate).where(Certificate.enrollment_id == enrollment_id)
        )
        return result.scalar_one_or_none()

    async def _get(self, model: Any, row_id: str) -> Any:
        result = await self.db.execute(select(model).where(model.id == row_id))
        return result.scalar_one_or_none()
