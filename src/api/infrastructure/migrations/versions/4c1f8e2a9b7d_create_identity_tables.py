"""create identity tables

Create the Roles and Users tables the identity stores read and write with
hand-written SQL. Identifiers are quoted PascalCase to match those
statements.

Revision ID: 4c1f8e2a9b7d
Revises:
Create Date: 2026-10-12 09:41:07.318254

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "4c1f8e2a9b7d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "Roles",
        sa.Column("Id", sa.String(length=450), nullable=False),
        sa.Column("Name", sa.String(length=256), nullable=True),
        sa.Column("NormalizedName", sa.String(length=256), nullable=True),
        sa.Column("ConcurrencyStamp", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("Id"),
    )
    # Role names may repeat, so the lookup index is not unique
    op.create_index("RoleNameIndex", "Roles", ["NormalizedName"], unique=False)

    op.create_table(
        "Users",
        sa.Column("Id", sa.String(length=450), nullable=False),
        sa.Column("UserName", sa.String(length=256), nullable=True),
        sa.Column("NormalizedUserName", sa.String(length=256), nullable=True),
        sa.Column("Email", sa.String(length=256), nullable=True),
        sa.Column("NormalizedEmail", sa.String(length=256), nullable=True),
        sa.Column(
            "EmailConfirmed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("PasswordHash", sa.Text(), nullable=True),
        sa.Column("SecurityStamp", sa.Text(), nullable=True),
        sa.Column("ConcurrencyStamp", sa.Text(), nullable=True),
        sa.Column("PhoneNumber", sa.Text(), nullable=True),
        sa.Column(
            "PhoneNumberConfirmed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "TwoFactorEnabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("LockoutEnd", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "LockoutEnabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "AccessFailedCount", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.PrimaryKeyConstraint("Id"),
    )
    # Backstop for the collision check in user creation
    op.create_index("UserNameIndex", "Users", ["NormalizedUserName"], unique=True)
    op.create_index("EmailIndex", "Users", ["NormalizedEmail"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("EmailIndex", table_name="Users")
    op.drop_index("UserNameIndex", table_name="Users")
    op.drop_table("Users")
    op.drop_index("RoleNameIndex", table_name="Roles")
    op.drop_table("Roles")
