"""Reconciliation of remote fundraising data into the local cache."""

from campaign_cache.sync.diff import diff_columns
from campaign_cache.sync.reconciler import Outcome, ReconcileResult, Reconciler
from campaign_cache.sync.sync_service import CampaignFailure, RefreshResult, SyncService

__all__ = [
    "CampaignFailure",
    "Outcome",
    "ReconcileResult",
    "Reconciler",
    "RefreshResult",
    "SyncService",
    "diff_columns",
]
