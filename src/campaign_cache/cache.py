"""Composition root for the cache.

This module owns:
- Opening the database and running migrations
- Wiring repositories, reconciler, observation registry and sync service
- The read, refresh and observe operations offered to the presentation layer

Nothing outside this object opens a connection to the database.
"""

from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_cache.api_client import ApiClient, HttpApiClient
from campaign_cache.config import CacheConfig
from campaign_cache.db import Database, DatabaseType
from campaign_cache.entities import Campaign, FundraisingEvent
from campaign_cache.observation import ObservationRegistry, OnChange, OnError, Subscription
from campaign_cache.repository import CampaignRepository, FundraisingEventRepository
from campaign_cache.sync import Reconciler, RefreshResult, SyncService
from campaign_cache.sync.sync_service import STORAGE_ERRORS


@dataclass
class CampaignCache:
    """Entry point used by the app and the widget.

    Usage:
        async with await CampaignCache.open(config) as cache:
            result = await cache.refresh()
    """

    config: CacheConfig
    database: Database
    event_repository: FundraisingEventRepository
    campaign_repository: CampaignRepository
    reconciler: Reconciler
    observations: ObservationRegistry
    sync_service: SyncService
    api_client: ApiClient
    owns_api_client: bool = False

    @classmethod
    async def open(
        cls,
        config: CacheConfig,
        api_client: Optional[ApiClient] = None,
        db_type: DatabaseType = DatabaseType.FILESYSTEM,
    ) -> "CampaignCache":
        """Open the database and build every component.

        Raises:
            StorageFatalError: If the schema cannot be brought up to date
        """
        database = await Database.open(config, db_type)

        observations = ObservationRegistry(database.read, database.write_lock)
        database.add_commit_hook(observations.on_commit)

        event_repository = FundraisingEventRepository(database)
        campaign_repository = CampaignRepository(database)
        reconciler = Reconciler(database, event_repository, campaign_repository)

        owns_api_client = api_client is None
        if api_client is None:
            api_client = HttpApiClient(config)

        sync_service = SyncService(
            config, api_client, event_repository, campaign_repository, reconciler
        )

        return cls(
            config=config,
            database=database,
            event_repository=event_repository,
            campaign_repository=campaign_repository,
            reconciler=reconciler,
            observations=observations,
            sync_service=sync_service,
            api_client=api_client,
            owns_api_client=owns_api_client,
        )

    async def get_event(self) -> Optional[FundraisingEvent]:
        """The cached event for the configured slug pair, or None."""
        try:
            return await self.sync_service.cached_event()
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to fetch stored fundraiser: {e}")
            return None

    async def get_campaigns(self, fundraising_event_id: UUID) -> List[Campaign]:
        try:
            return await self.campaign_repository.find_children(fundraising_event_id)
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to fetch stored campaigns: {e}")
            return []

    async def get_campaign(self, campaign_id: UUID) -> Optional[Campaign]:
        try:
            return await self.campaign_repository.find_by_id(campaign_id)
        except STORAGE_ERRORS as e:
            logger.error(f"Failed to fetch stored campaign {campaign_id}: {e}")
            return None

    async def refresh(self) -> RefreshResult:
        return await self.sync_service.refresh()

    async def observe_event(
        self,
        on_change: OnChange,
        on_error: Optional[OnError] = None,
        emit_initial: bool = True,
    ) -> Subscription:
        """Get called with the configured event whenever its stored value changes."""
        slug, cause_slug = self.config.event_slug, self.config.cause_slug

        async def query(session: AsyncSession) -> Optional[FundraisingEvent]:
            return await self.event_repository.find_by_unique_key(slug, cause_slug, session)

        return await self.observations.observe(query, on_change, on_error, emit_initial)

    async def close(self) -> None:
        await self.observations.close()
        await self.database.dispose()
        if self.owns_api_client and isinstance(self.api_client, HttpApiClient):
            await self.api_client.aclose()

    async def __aenter__(self) -> "CampaignCache":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
