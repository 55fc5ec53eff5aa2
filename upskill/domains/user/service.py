# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service.

Users are synced lazily from the identity provider: the first request
carrying a verified token creates the User row. Invited organization
memberships waiting for that email are linked at the same time.
"""

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.infrastructure.database.models import OrganizationMember, User, is_valid_id
from upskill.models.common import MemberStatus
from upskill.models.user import UserResponse, UserUpdateRequest
from upskill.utils.datetime import utc_now

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "uk_"


class UserServiceError(Exception):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """Raised when a user is not found."""

    pass


def generate_api_key() -> str:
    """Generate a user API key: uk_ followed by 32 hex characters."""
    return f"{API_KEY_PREFIX}{secrets.token_hex(16)}"


class UserService:
    """Service for platform users.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, user_id: str) -> User:
        """Get a user by internal ID.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        if not is_valid_id(user_id):
            raise UserNotFoundError(f"User {user_id} not found")

        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def get_or_create(
        self,
        external_id: str,
        email: str | None,
        name: str | None = None,
    ) -> User:
        """Resolve the User for an identity-provider account.

        Creates the user on first sight and links pending invitations for
        the same email.

        Args:
            external_id: Identity provider subject.
            email: Account email from the token.
            name: Display name from the token.

        Returns:
            The existing or newly created user.

        Raises:
            UserServiceError: If a new user has no email.
        """
        result = await self.db.execute(select(User).where(User.external_id == external_id))
        user = result.scalar_one_or_none()
        if user:
            return user

        if not email:
            raise UserServiceError("Email claim is required to register a user")

        user = User(
            external_id=external_id,
            email=email.strip().lower(),
            name=name,
            api_key=generate_api_key(),
            credits=0,
        )
        self.db.add(user)
        await self.db.flush()

        linked = await self._link_invitations(user)
        await self.db.commit()

        logger.info(
            "Registered user: id=%s, email=%s, linked_memberships=%d",
            user.id,
            user.email,
            linked,
        )
        return user

    async def update(self, user: User, data: UserUpdateRequest) -> UserResponse:
        """Update profile fields of a user.

        Args:
            user: User to update.
            data: Fields to change; omitted fields are kept.

        Returns:
            Updated user.
        """
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)

        logger.info("Updated user: id=%s", user.id)
        return UserResponse.model_validate(user)

    async def _link_invitations(self, user: User) -> int:
        result = await self.db.execute(
            select(OrganizationMember).where(
                OrganizationMember.email == user.email,
                OrganizationMember.user_id.is_(None),
            )
        )
        members = result.scalars().all()

        now = utc_now()
        for member in members:
            member.user_id = user.id
            member.status = MemberStatus.ACTIVE.value
            member.joined_at = now

        if members:
            await self.db.flush()
        return len(members)
