"""initial schema: users, profiles, properties, tours, service_providers

Revision ID: 20261019_090000
Revises:
Create Date: 2026-10-19 09:00:00

Notes:
- profiles.id mirrors users.id (one profile row per account).
- tours carry a composite (property_id, preferred_date) index for per-listing calendars.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_090000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("id_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_profiles_role", "profiles", ["role"])

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="BWP"),
        sa.Column("property_type", sa.String(length=32), nullable=False, server_default="apartment"),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Float(), nullable=True),
        sa.Column("area", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_properties_id", "properties", ["id"])
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_agent_id", "properties", ["agent_id"])
    op.create_index("ix_properties_status", "properties", ["status"])

    op.create_table(
        "tours",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("preferred_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("viewing_time", sa.String(length=5), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("meeting_point", sa.String(length=255), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        *_timestamps(),
    )
    op.create_index("ix_tours_id", "tours", ["id"])
    op.create_index("ix_tours_property_id", "tours", ["property_id"])
    op.create_index("ix_tours_tenant_id", "tours", ["tenant_id"])
    op.create_index("ix_tours_agent_id", "tours", ["agent_id"])
    op.create_index("ix_tours_status", "tours", ["status"])
    op.create_index("ix_tours_property_date", "tours", ["property_id", "preferred_date"])

    op.create_table(
        "service_providers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("price_range", sa.String(length=100), nullable=True),
        sa.Column("response_time", sa.String(length=100), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("experience", sa.String(length=100), nullable=True),
        sa.Column("languages", sa.JSON(), nullable=False),
        sa.Column("availability", sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_service_providers_id", "service_providers", ["id"])
    op.create_index("ix_service_providers_owner_id", "service_providers", ["owner_id"])
    op.create_index("ix_service_providers_category", "service_providers", ["category"])


def downgrade() -> None:
    op.drop_index("ix_service_providers_category", table_name="service_providers")
    op.drop_index("ix_service_providers_owner_id", table_name="service_providers")
    op.drop_index("ix_service_providers_id", table_name="service_providers")
    op.drop_table("service_providers")

    for name in (
        "ix_tours_property_date",
        "ix_tours_status",
        "ix_tours_agent_id",
        "ix_tours_tenant_id",
        "ix_tours_property_id",
        "ix_tours_id",
    ):
        op.drop_index(name, table_name="tours")
    op.drop_table("tours")

    op.drop_index("ix_properties_status", table_name="properties")
    op.drop_index("ix_properties_agent_id", table_name="properties")
    op.drop_index("ix_properties_owner_id", table_name="properties")
    op.drop_index("ix_properties_id", table_name="properties")
    op.drop_table("properties")

    op.drop_index("ix_profiles_role", table_name="profiles")
    op.drop_table("profiles")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
