"""create application tables

Create applications, organizations and the join tables linking them to
each other and to users. The unique ``application_id`` on both ownership
join tables limits each application to one owner of each kind.

Revision ID: 8c4e2a61f0b5
Revises: 3b1f0c9a7d21
Create Date: 2026-09-14 10:27:45.119804

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8c4e2a61f0b5"
down_revision: Union[str, Sequence[str], None] = "3b1f0c9a7d21"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "applications",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("api_key_id", sa.String(length=255), nullable=False),
        sa.Column("api_key_value", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "application_organizations",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("application_id", sa.String(length=26), nullable=False),
        sa.Column("organization_id", sa.String(length=26), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["application_id"], ["applications.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id"),
    )
    op.create_index(
        op.f("ix_application_organizations_organization_id"),
        "application_organizations",
        ["organization_id"],
    )

    # user_id has no foreign key: identity provider users are not stored locally
    op.create_table(
        "application_users",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("application_id", sa.String(length=26), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["application_id"], ["applications.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id"),
    )
    op.create_index(
        op.f("ix_application_users_user_id"), "application_users", ["user_id"]
    )

    op.create_table(
        "organization_users",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("organization_id", sa.String(length=26), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["organization_id"], ["organizations.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id", "user_id", name="uq_organization_users_org_user"
        ),
    )
    op.create_index(
        op.f("ix_organization_users_organization_id"),
        "organization_users",
        ["organization_id"],
    )
    op.create_index(
        op.f("ix_organization_users_user_id"), "organization_users", ["user_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_organization_users_user_id"), table_name="organization_users")
    op.drop_index(
        op.f("ix_organization_users_organization_id"), table_name="organization_users"
    )
    op.drop_table("organization_users")
    op.drop_index(op.f("ix_application_users_user_id"), table_name="application_users")
    op.drop_table("application_users")
    op.drop_index(
        op.f("ix_application_organizations_organization_id"),
        table_name="application_organizations",
    )
    op.drop_table("application_organizations")
    op.drop_table("organizations")
    op.drop_table("applications")
