# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from upskill.models.common import ORMModel


class UserUpdateRequest(BaseModel):
    """Profile update for the current user."""

    name: str | None = Field(None, max_length=255, description="Display name")
    avatar_url: str | None = Field(None, description="Avatar image URL")
    last_accessed_organization_id: str | None = Field(None, description="Organization last opened")


class UserResponse(ORMModel):
    """Platform user."""

    id: str = Field(description="User ID")
    external_id: str = Field(description="Identity provider subject")
    email: str = Field(description="Email address")
    name: str | None = Field(None, description="Display name")
    avatar_url: str | None = Field(None, description="Avatar image URL")
    credits: int = Field(description="Remaining credits")
    last_accessed_organization_id: str | None = Field(None, description="Organization last opened")
    created_at: datetime | None = Field(None, description="Creation time")
