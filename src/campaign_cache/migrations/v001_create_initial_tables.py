"""Create the fundraisingEvent and campaign tables."""

import sqlalchemy as sa
from alembic.operations import Operations

name = "createInitialTables"


def upgrade(op: Operations) -> None:
    op.create_table(
        "fundraisingEvent",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("amountRaisedCurrency", sa.String(3), nullable=False),
        sa.Column("amountRaisedValue", sa.Text(), nullable=True),
        sa.Column("colors", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("goalCurrency", sa.String(3), nullable=False),
        sa.Column("goalValue", sa.Text(), nullable=False),
        sa.Column("causePublicId", sa.Text(), nullable=False),
        sa.Column("causeName", sa.Text(), nullable=False),
        sa.Column("causeSlug", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("causePublicId"),
        sa.UniqueConstraint("slug", "causeSlug"),
    )

    op.create_table(
        "campaign",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=True),
        sa.Column("description", sa.LargeBinary(), nullable=True),
        sa.Column("goalCurrency", sa.String(3), nullable=False),
        sa.Column("goalValue", sa.Text(), nullable=False),
        sa.Column("totalRaisedCurrency", sa.String(3), nullable=False),
        sa.Column("totalRaisedValue", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("userSlug", sa.Text(), nullable=False),
        sa.Column("fundraisingEventId", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["fundraisingEventId"], ["fundraisingEvent.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", "userSlug"),
    )
