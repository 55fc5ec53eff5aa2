# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User model.

Users are created the first time an identity-provider account reaches
the API; external_id is the provider's subject claim.
"""

from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from upskill.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """Platform user synced from the identity provider."""

    __tablename__ = "users"

    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    api_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_accessed_organization_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), nullable=True
    )
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
