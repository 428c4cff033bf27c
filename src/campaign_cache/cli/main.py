"""Main CLI entry point for campaign-cache."""  # pragma: no cover

from campaign_cache.cli.app import app  # pragma: no cover

# Register commands
from campaign_cache.cli.commands import db, sync  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
