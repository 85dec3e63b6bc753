"""create deletions table

Create the deletions table tracking account deletion requests. Each flag
records that one downstream resource type has been purged.

Revision ID: e5d97b3c4a18
Revises: 8c4e2a61f0b5
Create Date: 2026-09-15 16:40:03.772150

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "e5d97b3c4a18"
down_revision: Union[str, Sequence[str], None] = "8c4e2a61f0b5"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FLAG_COLUMNS = (
    "datasets_deleted",
    "layers_deleted",
    "widgets_deleted",
    "user_account_deleted",
    "user_data_deleted",
    "graph_data_deleted",
    "collections_deleted",
    "favourites_deleted",
    "vocabularies_deleted",
    "areas_deleted",
    "stories_deleted",
    "subscriptions_deleted",
    "dashboards_deleted",
    "profiles_deleted",
    "topics_deleted",
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "deletions",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("requestor_user_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        *(
            sa.Column(name, sa.Boolean(), nullable=False, server_default="false")
            for name in FLAG_COLUMNS
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # At most one deletion request per user
    op.create_index("ix_deletions_user_id", "deletions", ["user_id"], unique=True)
    op.create_index(op.f("ix_deletions_status"), "deletions", ["status"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_deletions_status"), table_name="deletions")
    op.drop_index("ix_deletions_user_id", table_name="deletions")
    op.drop_table("deletions")
