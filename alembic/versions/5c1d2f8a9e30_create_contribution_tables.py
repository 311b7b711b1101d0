"""create github users and yearly contributions

Revision ID: 5c1d2f8a9e30
Revises:
Create Date: 2026-10-19 09:12:44.103215

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1d2f8a9e30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "github_users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("total_contributions", sa.Integer(), nullable=False),
        sa.Column(
            "last_contribution_update", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_github_users_id", "github_users", ["id"])
    op.create_index(
        "ix_github_users_total_contributions", "github_users", ["total_contributions"]
    )

    op.create_table(
        "yearly_contributions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("contributions", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["username"], ["github_users.username"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", "year", name="uq_username_year"),
    )
    op.create_index("ix_yearly_contributions_id", "yearly_contributions", ["id"])
    op.create_index(
        "ix_yearly_contributions_username", "yearly_contributions", ["username"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_yearly_contributions_username", table_name="yearly_contributions")
    op.drop_index("ix_yearly_contributions_id", table_name="yearly_contributions")
    op.drop_table("yearly_contributions")
    op.drop_index("ix_github_users_total_contributions", table_name="github_users")
    op.drop_index("ix_github_users_id", table_name="github_users")
    op.drop_table("github_users")
