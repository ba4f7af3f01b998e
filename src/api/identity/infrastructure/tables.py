"""Table definitions for the Roles and Users tables.

The stores issue hand-written SQL against these tables; the Core Table
objects exist so the schema is declared once, for migrations and for test
databases, and so result columns can be typed.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

roles_table = Table(
    "Roles",
    metadata,
    Column("Id", String(450), primary_key=True),
    Column("Name", String(256)),
    Column("NormalizedName", String(256)),
    Column("ConcurrencyStamp", Text),
    # Not unique: duplicate role names are the identity manager's concern
    Index("RoleNameIndex", "NormalizedName"),
)

users_table = Table(
    "Users",
    metadata,
    Column("Id", String(450), primary_key=True),
    Column("UserName", String(256)),
    Column("NormalizedUserName", String(256)),
    Column("Email", String(256)),
    Column("NormalizedEmail", String(256)),
    Column("EmailConfirmed", Boolean, nullable=False, default=False),
    Column("PasswordHash", Text),
    Column("SecurityStamp", Text),
    Column("ConcurrencyStamp", Text),
    Column("PhoneNumber", Text),
    Column("PhoneNumberConfirmed", Boolean, nullable=False, default=False),
    Column("TwoFactorEnabled", Boolean, nullable=False, default=False),
    Column("LockoutEnd", DateTime(timezone=True)),
    Column("LockoutEnabled", Boolean, nullable=False, default=False),
    Column("AccessFailedCount", Integer, nullable=False, default=0),
    Index("UserNameIndex", "NormalizedUserName", unique=True),
    Index("EmailIndex", "NormalizedEmail"),
)

# Result types for text() queries over Users; string columns need none
USER_RESULT_TYPES = {
    "EmailConfirmed": Boolean(),
    "PhoneNumberConfirmed": Boolean(),
    "TwoFactorEnabled": Boolean(),
    "LockoutEnd": DateTime(timezone=True),
    "LockoutEnabled": Boolean(),
    "AccessFailedCount": Integer(),
}
