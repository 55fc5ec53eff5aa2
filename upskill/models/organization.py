# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization, member and department schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from upskill.models.common import MemberRole, MemberStatus, ORMModel


# ============================================================================
# Organizations
# ============================================================================


class OrganizationSettings(BaseModel):
    """Learning policy settings of an organization."""

    allow_employee_self_enrollment: bool = Field(default=False, description="Employees may enroll themselves")
    require_quiz_passing: bool = Field(default=True, description="Quizzes must be passed to complete lessons")
    passing_score: int = Field(default=70, ge=0, le=100, description="Default quiz passing score")


class OrganizationCreateRequest(BaseModel):
    """Request to create an organization."""

    name: str = Field(..., min_length=1, max_length=200, description="Organization name")
    slug: str = Field(..., min_length=2, max_length=100, pattern=r"^[A-Za-z0-9-]+$", description="URL slug")
    icon_url: str | None = Field(None, description="Icon image URL")


class OrganizationUpdateRequest(BaseModel):
    """Partial organization update."""

    name: str | None = Field(None, min_length=1, max_length=200, description="Organization name")
    icon_url: str | None = Field(None, description="Icon image URL")
    settings: OrganizationSettings | None = Field(None, description="Replacement settings")


class OrganizationResponse(ORMModel):
    """Organization details."""

    id: str = Field(description="Organization ID")
    name: str = Field(description="Organization name")
    slug: str = Field(description="URL slug")
    icon_url: str | None = Field(None, description="Icon image URL")
    owner_id: str = Field(description="Owner user ID")
    settings: OrganizationSettings = Field(description="Learning policy settings")
    created_at: datetime | None = Field(None, description="Creation time")


# ============================================================================
# Members
# ============================================================================


class MemberCreateRequest(BaseModel):
    """Request to add one member."""

    email: str | None = Field(None, description="Member email")
    name: str | None = Field(None, description="Member display name")
    role: MemberRole = Field(default=MemberRole.EMPLOYEE, description="Member role")
    department_id: str | None = Field(None, description="Department to place the member in")
    course_ids: list[str] | None = Field(None, description="Courses to assign")


class MemberUpdateRequest(BaseModel):
    """Partial member update.

    department_id may be null or "general" to remove the member from
    their department.
    """

    role: str | None = Field(None, description="admin or employee")
    department_id: str | None = Field(None, description="Department ID, null or 'general' to clear")
    status: str | None = Field(None, description="active, invited or inactive")
    course_ids: list[str] | None = Field(None, description="Replacement assigned course list")


class MemberStats(BaseModel):
    """Learning statistics of a member."""

    courses_enrolled: int = Field(default=0, description="Enrolled or assigned courses")
    courses_completed: int = Field(default=0, description="Completed courses")
    courses_in_progress: int = Field(default=0, description="Courses in progress")
    avg_progress: int = Field(default=0, description="Average progress percentage")


class MemberResponse(ORMModel):
    """Organization member."""

    id: str = Field(description="Member ID")
    organization_id: str = Field(description="Organization ID")
    user_id: str | None = Field(None, description="Linked user, null until the invite is accepted")
    email: str = Field(description="Member email")
    name: str | None = Field(None, description="Display name")
    role: MemberRole = Field(description="Member role")
    status: MemberStatus = Field(description="Membership status")
    department_id: str | None = Field(None, description="Department ID")
    department_name: str | None = Field(None, description="Department name")
    assigned_course_ids: list[str] = Field(default_factory=list, description="Assigned courses")
    invited_at: datetime | None = Field(None, description="Invitation time")
    joined_at: datetime | None = Field(None, description="Join time")
    stats: MemberStats | None = Field(None, description="Learning statistics")


class MemberListResponse(BaseModel):
    """Members of an organization."""

    items: list[MemberResponse] = Field(description="Members")
    total: int = Field(description="Number of members")


class BulkMemberRow(BaseModel):
    """One row of a bulk import."""

    email: str | None = Field(None, description="Member email")
    name: str | None = Field(None, description="Display name")
    role: str | None = Field(None, description="Member role, employee when omitted")
    department: str | None = Field(None, description="Department name")


class BulkImportRequest(BaseModel):
    """Bulk member import."""

    members: list[BulkMemberRow] = Field(default_factory=list, description="Rows to import")


class BulkRowResult(BaseModel):
    """Outcome of one imported row."""

    row: int = Field(description="1-based row number")
    email: str | None = Field(None, description="Row email")
    status: str = Field(description="success, error or skipped")
    message: str | None = Field(None, description="Reason for errors and skips")
    member_id: str | None = Field(None, description="Created member ID")


class BulkImportSummary(BaseModel):
    """Row counts of a bulk import; the counts sum to total."""

    total: int = Field(description="Rows received")
    success: int = Field(description="Rows imported")
    errors: int = Field(description="Rows rejected")
    skipped: int = Field(description="Rows skipped as duplicates")


class BulkImportResponse(BaseModel):
    """Bulk import result."""

    summary: BulkImportSummary = Field(description="Row counts")
    results: list[BulkRowResult] = Field(description="Per-row outcomes")


# ============================================================================
# Departments
# ============================================================================


class DepartmentCreateRequest(BaseModel):
    """Request to create a department."""

    name: str = Field(..., description="Department name, 2-100 characters")
    description: str | None = Field(None, description="Department description")
    default_course_ids: list[str] = Field(default_factory=list, description="Courses for new members")
    auto_enroll: bool = Field(default=True, description="Enroll members into default courses")


class DepartmentUpdateRequest(BaseModel):
    """Partial department update."""

    name: str | None = Field(None, description="Department name, 2-100 characters")
    description: str | None = Field(None, description="Department description")
    default_course_ids: list[str] | None = Field(None, description="Replacement default courses")
    auto_enroll: bool | None = Field(None, description="Enroll members into default courses")


class DepartmentResponse(ORMModel):
    """Department with member count."""

    id: str = Field(description="Department ID")
    organization_id: str = Field(description="Organization ID")
    name: str = Field(description="Department name")
    description: str | None = Field(None, description="Department description")
    default_course_ids: list[str] = Field(default_factory=list, description="Default courses")
    auto_enroll: bool = Field(description="Auto-enroll flag")
    member_count: int = Field(default=0, description="Active and invited members")
    created_at: datetime | None = Field(None, description="Creation time")


class DepartmentUpdateResponse(BaseModel):
    """Department update result."""

    department: DepartmentResponse = Field(description="Updated department")
    enrolled_count: int = Field(default=0, description="Enrollments created by auto-enroll")


class DepartmentListResponse(BaseModel):
    """Departments of an organization."""

    items: list[DepartmentResponse] = Field(description="Departments")
    total: int = Field(description="Number of departments")
