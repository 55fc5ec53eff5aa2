# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Certificate domain package.

Course completion certificates, public lookup and invalidation when a
course's structure changes after issue.
"""

from upskill.domains.certificate.service import (
    CertificateNotFoundError,
    CertificateService,
    CertificateServiceError,
    EnrollmentNotCompletedError,
    EnrollmentNotFoundError,
    InvalidEnrollmentIdError,
    RelatedDataNotFoundError,
    course_shape,
)

__all__ = [
    "CertificateService",
    "CertificateServiceError",
    "CertificateNotFoundError",
    "EnrollmentNotCompletedError",
    "EnrollmentNotFoundError",
    "InvalidEnrollmentIdError",
    "RelatedDataNotFoundError",
    "course_shape",
]
