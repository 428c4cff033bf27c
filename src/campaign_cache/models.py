"""Table definitions for the cache database.

Column names follow the shared storage layout read by the widget extension,
so they are camelCase. The physical tables are created by the migrations in
campaign_cache.migrations; these definitions are what queries are built from.
"""

from sqlalchemy import (
    Column,
    ForeignKey,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

metadata = MetaData()

fundraising_event = Table(
    "fundraisingEvent",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False),
    Column("slug", Text, nullable=False),
    Column("amountRaisedCurrency", String(3), nullable=False),
    Column("amountRaisedValue", Text),
    Column("colors", Text, nullable=False),
    Column("description", Text),
    Column("goalCurrency", String(3), nullable=False),
    Column("goalValue", Text, nullable=False),
    Column("causePublicId", Text, nullable=False, unique=True),
    Column("causeName", Text, nullable=False),
    Column("causeSlug", Text, nullable=False),
    UniqueConstraint("slug", "causeSlug"),
)

campaign = Table(
    "campaign",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("name", Text, nullable=False),
    Column("slug", Text, nullable=False),
    Column("avatar", Text),
    Column("status", Text),
    Column("description", LargeBinary),
    Column("goalCurrency", String(3), nullable=False),
    Column("goalValue", Text, nullable=False),
    Column("totalRaisedCurrency", String(3), nullable=False),
    Column("totalRaisedValue", Text, nullable=False),
    Column("username", Text, nullable=False),
    Column("userSlug", Text, nullable=False),
    Column("fundraisingEventId", Uuid, ForeignKey("fundraisingEvent.id"), nullable=False),
    UniqueConstraint("slug", "userSlug"),
)
