"""Create the object store tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from bundlesync.adapters.sqlalchemy.mappings import NAME_LENGTH, BundleType, UTCDateTime

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "namespace",
        sa.Column("name", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("name", name=op.f("pk_namespace")),
    )
    op.create_table(
        "shared_resource",
        sa.Column("namespace", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("name", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("spec", sa.JSON(), nullable=False),
        sa.Column("status", sa.JSON(), nullable=False),
        sa.Column("finalizers", sa.JSON(), nullable=False),
        sa.Column("deletion_timestamp", UTCDateTime(), nullable=True),
        sa.Column("generation", sa.Integer(), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["namespace"],
            ["namespace.name"],
            name=op.f("fk_shared_resource_namespace_namespace"),
        ),
        sa.PrimaryKeyConstraint("namespace", "name", name=op.f("pk_shared_resource")),
    )
    op.create_table(
        "key_value_resource",
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("namespace", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("name", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("data", BundleType(), nullable=False),
        sa.Column("type_tag", sa.String(), nullable=True),
        sa.Column("annotations", sa.JSON(), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["namespace"],
            ["namespace.name"],
            name=op.f("fk_key_value_resource_namespace_namespace"),
        ),
        sa.PrimaryKeyConstraint("kind", "namespace", "name", name=op.f("pk_key_value_resource")),
    )
    op.create_table(
        "change_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("namespace", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("name", sa.String(length=NAME_LENGTH), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("recorded_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_change_event")),
    )
    op.create_index("ix_change_event_kind_id", "change_event", ["kind", "id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_change_event_kind_id", table_name="change_event")
    op.drop_table("change_event")
    op.drop_table("key_value_resource")
    op.drop_table("shared_resource")
    op.drop_table("namespace")
