# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Certificates and unique course/user rollup windows.

Revision ID: 002_certificates
Revises: 001_initial
Create Date: 2025-07-14
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_certificates"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create certificates and constrain rollup windows."""
    op.create_unique_constraint(
        "uq_course_analytics_window",
        "course_analytics",
        ["course_id", "period", "start_date", "end_date"],
    )
    op.create_unique_constraint(
        "uq_user_analytics_window",
        "user_analytics",
        ["user_id", "organization_id", "period", "start_date", "end_date"],
    )

    op.create_table(
        "certificates",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("certificate_id", sa.String(32), nullable=False, unique=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("courses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("enrollments.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("user_avatar_url", sa.Text, nullable=True),
        sa.Column("course_title", sa.String(200), nullable=False),
        sa.Column("organization_name", sa.String(255), nullable=False),
        sa.Column("organization_icon_url", sa.Text, nullable=True),
        sa.Column("total_lessons_at_issue", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_modules_at_issue", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "issued_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_valid", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("invalidated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invalidation_reason", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_certificates_user_course", "certificates", ["user_id", "course_id"])
    op.create_index("ix_certificates_org_issued", "certificates", ["organization_id", "issued_at"])


def downgrade() -> None:
    """Drop certificates and the rollup window constraints."""
    op.drop_table("certificates")
    op.drop_constraint("uq_user_analytics_window", "user_analytics", type_="unique")
    op.drop_constraint("uq_course_analytics_window", "course_analytics", type_="unique")
