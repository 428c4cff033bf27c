"""campaign-cache - offline cache for fundraising campaign progress."""

__version__ = "0.1.0"
