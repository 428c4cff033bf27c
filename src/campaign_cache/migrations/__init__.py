"""Ordered schema migrations for the cache database."""

from campaign_cache.migrations import v001_create_initial_tables
from campaign_cache.migrations.migrator import LEDGER_TABLE, Migration, Migrator

# Migrations for future versions are appended here, never reordered or renamed.
MIGRATIONS = [
    Migration(v001_create_initial_tables.name, v001_create_initial_tables.upgrade),
]

__all__ = ["LEDGER_TABLE", "MIGRATIONS", "Migration", "Migrator"]
