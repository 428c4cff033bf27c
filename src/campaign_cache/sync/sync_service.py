"""Service for refreshing the cache from the remote fundraising API."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from uuid import UUID

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from campaign_cache.api_client import ApiClient
from campaign_cache.config import CacheConfig
from campaign_cache.entities import Campaign, FundraisingEvent
from campaign_cache.exceptions import (
    CampaignCacheError,
    RecordNotFoundError,
    RemoteUnavailableError,
)
from campaign_cache.repository import CampaignRepository, FundraisingEventRepository
from campaign_cache.schemas import CampaignPayload
from campaign_cache.sync.reconciler import Reconciler

# Errors the sync service absorbs at its boundary instead of raising to callers
STORAGE_ERRORS = (CampaignCacheError, SQLAlchemyError)


@dataclass
class CampaignFailure:
    """A campaign whose merged value could not be persisted.

    Attributes:
        campaign_id: Identity of the campaign
        error: The error raised while reading or writing it
    """

    campaign_id: UUID
    error: Exception


@dataclass
class RefreshResult:
    """Best-effort view of the cache after a refresh.

    Attributes:
        event: The reconciled event, or the cached one when the remote was unavailable
        campaigns: Campaigns of the event; merged values even where persisting failed
        remote_error: Set when the remote fetch failed and cached values were returned
        event_error: Set when the event could not be persisted
        failures: Campaigns that could not be persisted
    """

    event: Optional[FundraisingEvent] = None
    campaigns: List[Campaign] = field(default_factory=list)
    remote_error: Optional[RemoteUnavailableError] = None
    event_error: Optional[Exception] = None
    failures: List[CampaignFailure] = field(default_factory=list)

    @property
    def from_cache(self) -> bool:
        return self.remote_error is not None

    @property
    def complete(self) -> bool:
        """True when remote data was fetched and everything was persisted."""
        return self.remote_error is None and self.event_error is None and not self.failures


class SyncService:
    """Refreshes the cached fundraising event and its campaigns.

    The remote source is authoritative; nothing is ever pushed back to it.
    """

    def __init__(
        self,
        config: CacheConfig,
        api_client: ApiClient,
        event_repository: FundraisingEventRepository,
        campaign_repository: CampaignRepository,
        reconciler: Reconciler,
    ):
        self.config = config
        self.api_client = api_client
        self.event_repository = event_repository
        self.campaign_repository = campaign_repository
        self.reconciler = reconciler

    async def cached_event(self) -> Optional[FundraisingEvent]:
        """The locally stored event for the configured slug pair, if any."""
        return await self.event_repository.find_by_unique_key(
            self.config.event_slug, self.config.cause_slug
        )

    async def refresh(self) -> RefreshResult:
        """Fetch the remote cause and reconcile it into the cache.

        Never raises storage or remote errors; they are logged and reported on
        the returned RefreshResult.
        """
        start_time = time.time()

        try:
            cached = await self.cached_event()
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to fetch stored fundraiser: {e}")
            cached = None

        try:
            response = await self.api_client.fetch_cause()
        except Exception as e:
            if isinstance(e, RemoteUnavailableError):
                error = e
            else:
                error = RemoteUnavailableError(str(e))
                error.__cause__ = e
            logger.error(f"Fetching cause failed: {e}")
            return RefreshResult(
                event=cached,
                campaigns=await self._cached_campaigns(cached),
                remote_error=error,
            )

        remote_event = FundraisingEvent.from_response(response.data)
        result = RefreshResult(event=remote_event)
        result.event_error = await self._reconcile_event(remote_event, cached)

        # The event is committed (or has failed) before any campaign references it
        outcomes = await asyncio.gather(
            *(
                self._reconcile_campaign(payload, remote_event.id)
                for payload in response.data.fundraising_event.campaigns
            )
        )
        for campaign, failure in outcomes:
            result.campaigns.append(campaign)
            if failure is not None:
                result.failures.append(failure)

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Refresh completed: event={remote_event.slug} campaigns={len(result.campaigns)} "
            f"failures={len(result.failures)} duration_ms={duration_ms}"
        )
        return result

    async def _cached_campaigns(self, event: Optional[FundraisingEvent]) -> List[Campaign]:
        if event is None:
            return []
        try:
            return await self.campaign_repository.find_children(event.id)
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to fetch stored campaigns: {e}")
            return []

    async def _reconcile_event(
        self, remote_event: FundraisingEvent, cached: Optional[FundraisingEvent]
    ) -> Optional[Exception]:
        try:
            if cached is None:
                await self.reconciler.reconcile(remote_event)
                return None
            try:
                # Diff against the row as stored now, not the copy read before the fetch
                await self.reconciler.update_stored(remote_event)
            except RecordNotFoundError:
                # The cached row vanished or has another identity; insert instead
                logger.warning(f"Stored fundraiser {remote_event.id} missing, inserting instead")
                await self.reconciler.reconcile(remote_event)
            return None
        except STORAGE_ERRORS as e:
            logger.error(f"Updating stored fundraiser failed: {e}")
            return e

    async def _reconcile_campaign(
        self, payload: CampaignPayload, fundraising_event_id: UUID
    ) -> Tuple[Campaign, Optional[CampaignFailure]]:
        merged: List[Campaign] = []

        def merge(stored: Optional[Campaign]) -> Campaign:
            if stored is None:
                campaign = Campaign.from_payload(payload, fundraising_event_id)
            else:
                campaign = stored.merge_remote(payload, fundraising_event_id)
            merged.append(campaign)
            return campaign

        try:
            # Merge into the row as stored at write time so its other fields are current
            result = await self.reconciler.reconcile_with(Campaign, payload.public_id, merge)
        except STORAGE_ERRORS as e:
            campaign = merged[-1] if merged else Campaign.from_payload(payload, fundraising_event_id)
            logger.warning(f"Failed to store campaign {campaign.slug}: {e}")
            return campaign, CampaignFailure(campaign.id, e)
        return result.entity, None
