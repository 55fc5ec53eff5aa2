# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization service.

This module provides the OrganizationService class for:
- Creating organizations (the creator becomes an admin member)
- Reading and updating organization details and settings
- Resolving a user's membership and admin rights
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.infrastructure.database.models import (
    DEFAULT_ORGANIZATION_SETTINGS,
    Organization,
    OrganizationMember,
    User,
    is_valid_id,
)
from upskill.models.common import MemberRole, MemberStatus
from upskill.models.organization import (
    OrganizationCreateRequest,
    OrganizationResponse,
    OrganizationUpdateRequest,
)
from upskill.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class OrganizationServiceError(Exception):
    """Base exception for organization service errors."""

    pass


class OrganizationNotFoundError(OrganizationServiceError):
    """Raised when an organization is not found."""

    pass


class SlugExistsError(OrganizationServiceError):
    """Raised when an organization slug is already taken."""

    pass


class OrganizationService:
    """Service for managing organizations.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize organization service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create(self, data: OrganizationCreateRequest, owner: User) -> OrganizationResponse:
        """Create an organization owned by a user.

        Args:
            data: Organization name, slug and icon.
            owner: Creating user; becomes an active admin member.

        Returns:
            Created organization.

        Raises:
            SlugExistsError: If the slug is already taken.
        """
        slug = data.slug.strip().lower()

        result = await self.db.execute(select(Organization.id).where(Organization.slug == slug))
        if result.scalar_one_or_none():
            raise SlugExistsError(f"Organization slug '{slug}' is already taken")

        organization = Organization(
            name=data.name.strip(),
            slug=slug,
            icon_url=data.icon_url,
            owner_id=owner.id,
            settings=dict(DEFAULT_ORGANIZATION_SETTINGS),
        )
        self.db.add(organization)
        await self.db.flush()

        now = utc_now()
        self.db.add(
            OrganizationMember(
                organization_id=organization.id,
                user_id=owner.id,
                email=owner.email,
                name=owner.name,
                role=MemberRole.ADMIN.value,
                status=MemberStatus.ACTIVE.value,
                invited_at=now,
                joined_at=now,
            )
        )
        owner.last_accessed_organization_id = organization.id

        await self.db.commit()
        await self.db.refresh(organization)

        logger.info(
            "Created organization: id=%s, slug=%s, owner=%s",
            organization.id,
            slug,
            owner.id,
        )
        return OrganizationResponse.model_validate(organization)

    async def get(self, organization_id: str) -> OrganizationResponse:
        """Get organization details.

        Raises:
            OrganizationNotFoundError: If the organization does not exist.
        """
        organization = await self._get_organization(organization_id)
        return OrganizationResponse.model_validate(organization)

    async def update(
        self,
        organization_id: str,
        data: OrganizationUpdateRequest,
    ) -> OrganizationResponse:
        """Update name, icon or settings.

        Args:
            organization_id: Organization ID.
            data: Fields to change.

        Returns:
            Updated organization.

        Raises:
            OrganizationNotFoundError: If the organization does not exist.
        """
        organization = await self._get_organization(organization_id)

        if data.name is not None:
            organization.name = data.name.strip()
        if data.icon_url is not None:
            organization.icon_url = data.icon_url
        if data.settings is not None:
            organization.settings = {**(organization.settings or {}), **data.settings.model_dump()}

        await self.db.commit()
        await self.db.refresh(organization)

        logger.info("Updated organization: id=%s", organization_id)
        return OrganizationResponse.model_validate(organization)

    async def get_membership(
        self,
        organization_id: str,
        user_id: str,
    ) -> OrganizationMember | None:
        """Get the membership row of a user in an organization, if any."""
        if not is_valid_id(organization_id):
            return None
        result = await self.db.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def is_admin(self, organization_id: str, user_id: str) -> bool:
        """Check whether a user is an active admin of an organization."""
        member = await self.get_membership(organization_id, user_id)
        return (
            member is not None
            and member.role == MemberRole.ADMIN.value
            and member.status == MemberStatus.ACTIVE.value
        )

    async def _get_organization(self, organization_id: str) -> Organization:
        if not is_valid_id(organization_id):
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")

        result = await self.db.execute(
            select(Organization).where(Organization.id == organization_id)
        )
        organization = result.scalar_one_or_none()
        if not organization:
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")
        return organization
