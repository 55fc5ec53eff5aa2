# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Certificate API endpoints.

This module provides endpoints for:
- POST / - Issue a certificate for a completed enrollment
- GET / - Get the certificate of an enrollment
- GET /{certificate_id} - Public certificate lookup, no sign-in required
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.certificate.service import (
    CertificateNotFoundError,
    CertificateService,
    EnrollmentNotCompletedError,
    EnrollmentNotFoundError,
    InvalidEnrollmentIdError,
    RelatedDataNotFoundError,
)
from upskill.models.certificate import (
    CertificateEnvelope,
    CertificateIssueRequest,
    CertificateLookupResponse,
    PublicCertificateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> CertificateService:
    return CertificateService(db=db)


@router.post(
    "",
    response_model=CertificateEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Issue certificate",
)
async def issue_certificate(
    data: CertificateIssueRequest,
    response: Response,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CertificateEnvelope:
    """Issue a certificate for a completed enrollment.

    Returns 200 with the existing certificate when one was already issued.

    Raises:
        HTTPException: 400 for a malformed id or unfinished course, 404 if
            the enrollment or its related data is missing.
    """
    try:
        envelope = await _get_service(db).issue(data.enrollment_id)
    except (InvalidEnrollmentIdError, EnrollmentNotCompletedError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except (EnrollmentNotFoundError, RelatedDataNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    if not envelope.created:
        response.status_code = status.HTTP_200_OK
    return envelope


@router.get(
    "",
    response_model=CertificateLookupResponse,
    summary="Get enrollment certificate",
)
async def get_enrollment_certificate(
    enrollment_id: Annotated[str, Query(min_length=1, description="Enrollment ID")],
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CertificateLookupResponse:
    try:
        return await _get_service(db).get_for_enrollment(enrollment_id)
    except InvalidEnrollmentIdError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get(
    "/{certificate_id}",
    response_model=PublicCertificateResponse,
    summary="Public certificate",
)
async def get_public_certificate(
    certificate_id: str,
    db: AsyncSession = Depends(get_db),
) -> PublicCertificateResponse:
    """Show a certificate to anyone holding its link."""
    try:
        return await _get_service(db).get_public(certificate_id)
    except CertificateNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
