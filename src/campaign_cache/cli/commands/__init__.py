"""CLI commands for campaign-cache."""

from . import db, sync

__all__ = ["db", "sync"]
