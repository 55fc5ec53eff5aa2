# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for UserService and OrganizationService."""

import re
from uuid import uuid4

import pytest

from upskill.domains.organization.service import (
    OrganizationNotFoundError,
    OrganizationService,
    SlugExistsError,
)
from upskill.domains.user.service import (
    UserNotFoundError,
    UserService,
    UserServiceError,
    generate_api_key,
)
from upskill.infrastructure.database.models import (
    DEFAULT_ORGANIZATION_SETTINGS,
    Organization,
    OrganizationMember,
    User,
)
from upskill.models.common import MemberRole, MemberStatus
from upskill.models.organization import (
    OrganizationCreateRequest,
    OrganizationSettings,
    OrganizationUpdateRequest,
)
from upskill.models.user import UserUpdateRequest


def _user(**overrides) -> User:
    values = {
        "id": str(uuid4()),
        "external_id": "user_2abc",
        "email": "ada@example.com",
        "name": "Ada",
        "api_key": generate_api_key(),
        "credits": 0,
    }
    values.update(overrides)
    return User(**values)


class TestGenerateApiKey:
    def test_format(self) -> None:
        assert re.fullmatch(r"uk_[0-9a-f]{32}", generate_api_key())

    def test_unique(self) -> None:
        assert generate_api_key() != generate_api_key()


class TestUserService:
    """Tests for UserService."""

    @pytest.mark.asyncio
    async def test_get_or_create_existing(self, mock_db, make_result) -> None:
        user = _user()
        mock_db.execute.return_value = make_result(one=user)

        result = await UserService(mock_db).get_or_create("user_2abc", "ada@example.com")

        assert result is user
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_or_create_links_invitations(self, mock_db, make_result) -> None:
        """Test a first sign-in activates pending memberships for the email."""
        invitation = OrganizationMember(
            id=str(uuid4()),
            organization_id=str(uuid4()),
            email="ada@example.com",
            role=MemberRole.EMPLOYEE.value,
            status=MemberStatus.INVITED.value,
        )
        mock_db.execute.side_effect = [
            make_result(one=None),
            make_result(items=[invitation]),
        ]

        user = await UserService(mock_db).get_or_create("user_2abc", " Ada@Example.com ", "Ada")

        assert user.email == "ada@example.com"
        assert user.api_key.startswith("uk_")
        assert user.id
        assert invitation.user_id == user.id
        assert invitation.status == MemberStatus.ACTIVE.value
        assert invitation.joined_at is not None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_new_user_needs_email(self, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(UserServiceError):
            await UserService(mock_db).get_or_create("user_2abc", None)

    @pytest.mark.asyncio
    async def test_get_by_id_malformed(self, mock_db) -> None:
        with pytest.raises(UserNotFoundError):
            await UserService(mock_db).get_by_id("user_2abc")

        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_only_sets_given_fields(self, mock_db) -> None:
        user = _user()

        result = await UserService(mock_db).update(
            user, UserUpdateRequest(avatar_url="https://cdn.example.com/a.png")
        )

        assert result.avatar_url == "https://cdn.example.com/a.png"
        assert result.name == "Ada"


class TestOrganizationService:
    """Tests for OrganizationService."""

    @pytest.mark.asyncio
    async def test_create_makes_owner_admin(self, mock_db, make_result) -> None:
        owner = _user()
        mock_db.execute.return_value = make_result(one=None)

        result = await OrganizationService(mock_db).create(
            OrganizationCreateRequest(name=" Acme ", slug="Acme-Corp"), owner
        )

        assert result.slug == "acme-corp"
        assert result.name == "Acme"
        assert result.owner_id == owner.id
        assert result.settings.passing_score == DEFAULT_ORGANIZATION_SETTINGS["passing_score"]
        assert owner.last_accessed_organization_id == result.id

        members = [obj for obj in mock_db.added if isinstance(obj, OrganizationMember)]
        assert len(members) == 1
        assert members[0].role == MemberRole.ADMIN.value
        assert members[0].status == MemberStatus.ACTIVE.value
        assert members[0].organization_id == result.id

    @pytest.mark.asyncio
    async def test_create_taken_slug(self, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(one=str(uuid4()))

        with pytest.raises(SlugExistsError):
            await OrganizationService(mock_db).create(
                OrganizationCreateRequest(name="Acme", slug="acme"), _user()
            )

    @pytest.mark.asyncio
    async def test_update_settings(self, mock_db, make_result) -> None:
        organization = Organization(
            id=str(uuid4()),
            name="Acme",
            slug="acme",
            owner_id=str(uuid4()),
            settings=dict(DEFAULT_ORGANIZATION_SETTINGS),
        )
        mock_db.execute.return_value = make_result(one=organization)

        result = await OrganizationService(mock_db).update(
            organization.id,
            OrganizationUpdateRequest(settings=OrganizationSettings(passing_score=85)),
        )

        assert result.settings.passing_score == 85
        assert result.name == "Acme"

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_db, make_result) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(OrganizationNotFoundError):
            await OrganizationService(mock_db).get(str(uuid4()))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("role", "status", "expected"),
        [
            ("admin", "active", True),
            ("admin", "inactive", False),
            ("employee", "active", False),
        ],
    )
    async def test_is_admin(self, mock_db, make_result, role, status, expected) -> None:
        member = OrganizationMember(role=role, status=status, email="ada@example.com")
        mock_db.execute.return_value = make_result(one=member)

        assert await OrganizationService(mock_db).is_admin(str(uuid4()), str(uuid4())) is expected
