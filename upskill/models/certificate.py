# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion certificate schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from upskill.models.common import ORMModel


class CertificateIssueRequest(BaseModel):
    """Request a certificate for a completed enrollment."""

    enrollment_id: str = Field(..., min_length=1, description="Completed enrollment")


class CertificateResponse(ORMModel):
    """Stored certificate."""

    id: str = Field(description="Record ID")
    certificate_id: str = Field(description="Public certificate ID")
    user_id: str = Field(description="Certified user")
    course_id: str | None = Field(None, description="Course, unset once the course is deleted")
    enrollment_id: str | None = Field(None, description="Enrollment the certificate was issued for")
    organization_id: str = Field(description="Issuing organization")
    user_name: str = Field(description="Learner name at issue time")
    user_avatar_url: str | None = Field(None, description="Learner avatar at issue time")
    course_title: str = Field(description="Course title at issue time")
    organization_name: str = Field(description="Organization name at issue time")
    organization_icon_url: str | None = Field(None, description="Organization icon at issue time")
    total_lessons_at_issue: int = Field(description="Lessons in the course when issued")
    total_modules_at_issue: int = Field(description="Modules in the course when issued")
    issued_at: datetime = Field(description="Issue time")
    completed_at: datetime = Field(description="Course completion time")
    is_valid: bool = Field(description="False once the course content changed")
    invalidated_at: datetime | None = Field(None, description="When the certificate became invalid")
    invalidation_reason: str | None = Field(None, description="Why the certificate became invalid")


class CertificateEnvelope(BaseModel):
    """Issue result."""

    certificate: CertificateResponse
    created: bool = Field(description="False when the enrollment already had a certificate")


class CertificateLookupResponse(BaseModel):
    """Certificate of an enrollment, if one was issued."""

    certificate: CertificateResponse | None = None


class PublicCertificateResponse(BaseModel):
    """Certificate details safe to show without signing in."""

    certificate_id: str
    user_name: str
    user_avatar_url: str | None = None
    course_title: str
    organization_name: str
    organization_icon_url: str | None = None
    issued_at: datetime
    completed_at: datetime
    is_valid: bool
    invalidation_reason: str | None = None
