"""Common test fixtures.

Every test gets its own SQLite file under tmp_path, migrated from scratch, so
WAL mode and foreign keys behave the way they do in the app.
"""

from typing import Any, AsyncGenerator, Callable, Dict, List, Optional
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import event

from campaign_cache.cache import CampaignCache
from campaign_cache.config import CacheConfig
from campaign_cache.db import Database
from campaign_cache.entities import Campaign, FundraisingEvent, Money
from campaign_cache.observation import ObservationRegistry
from campaign_cache.repository import CampaignRepository, FundraisingEventRepository
from campaign_cache.schemas import CampaignResponse, CauseResponse
from campaign_cache.sync import Reconciler, SyncService

EVENT_ID = UUID("9b4f4c0e-6d2a-4d1c-9d71-0b1c6f1f2a01")
CAMPAIGN_ONE_ID = UUID("2f0c7a44-3e5b-4a8e-a0f4-3c5d2b7e9c11")
CAMPAIGN_TWO_ID = UUID("5a6b7c8d-1e2f-4a3b-8c9d-0e1f2a3b4c22")

EVENT_SLUG = "relay-fm-for-st-jude-2022"
CAUSE_SLUG = "st-jude-children-s-research-hospital"


class FakeApiClient:
    """ApiClient double returning canned responses or raising a given error."""

    def __init__(self, cause: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.cause = cause
        self.error = error
        self.calls = 0

    async def fetch_cause(self) -> CauseResponse:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return CauseResponse.model_validate(self.cause)

    async def fetch_campaign(self, owner_slug: str, campaign_slug: str) -> CampaignResponse:
        raise NotImplementedError


def campaign_node(
    public_id: UUID,
    slug: str,
    user_slug: str,
    raised: str = "0.00",
    goal: str = "100.00",
    name: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "publicId": str(public_id),
        "name": name or slug.replace("-", " ").title(),
        "slug": slug,
        "avatar": {"src": f"https://assets.example.com/{user_slug}.png"},
        "goal": {"currency": "USD", "value": goal},
        "totalAmountRaised": {"currency": "USD", "value": raised},
        "user": {"username": user_slug.title(), "slug": user_slug},
    }


def cause_response(
    amount_raised: str = "250.00",
    goal: str = "1000.00",
    campaigns: Optional[List[Dict[str, Any]]] = None,
    event_id: UUID = EVENT_ID,
) -> Dict[str, Any]:
    """Build a GraphQL response body for the cause query."""
    if campaigns is None:
        campaigns = [
            campaign_node(CAMPAIGN_ONE_ID, "podcast-marathon", "myke", raised="150.00"),
            campaign_node(CAMPAIGN_TWO_ID, "game-night", "stephen", raised="100.00"),
        ]
    return {
        "data": {
            "cause": {
                "publicId": "cause-st-jude",
                "name": "St. Jude Children's Research Hospital",
                "slug": CAUSE_SLUG,
            },
            "fundraisingEvent": {
                "publicId": str(event_id),
                "name": "Relay FM for St. Jude 2022",
                "slug": EVENT_SLUG,
                "description": "Podcasters raising money for St. Jude",
                "amountRaised": {"currency": "USD", "value": amount_raised},
                "goal": {"currency": "USD", "value": goal},
                "colors": {"highlight": "#ffcc00", "background": "#1a1a1a"},
                "publishedCampaigns": {"edges": [{"node": node} for node in campaigns]},
            },
        }
    }


def make_event(**overrides) -> FundraisingEvent:
    values: Dict[str, Any] = {
        "id": EVENT_ID,
        "name": "Relay FM for St. Jude 2022",
        "slug": EVENT_SLUG,
        "amount_raised": Money("USD", "250.00"),
        "goal": Money("USD", "1000.00"),
        "cause_public_id": "cause-st-jude",
        "cause_name": "St. Jude Children's Research Hospital",
        "cause_slug": CAUSE_SLUG,
        "colors": ("#ffcc00", "#1a1a1a"),
        "description": "Podcasters raising money for St. Jude",
    }
    values.update(overrides)
    return FundraisingEvent(**values)


def make_campaign(**overrides) -> Campaign:
    values: Dict[str, Any] = {
        "id": CAMPAIGN_ONE_ID,
        "name": "Podcast Marathon",
        "slug": "podcast-marathon",
        "goal": Money("USD", "100.00"),
        "total_raised": Money("USD", "150.00"),
        "username": "Myke",
        "user_slug": "myke",
        "fundraising_event_id": EVENT_ID,
        "avatar": "https://assets.example.com/myke.png",
    }
    values.update(overrides)
    return Campaign(**values)


@pytest.fixture
def app_config(tmp_path) -> CacheConfig:
    """Test configuration pointing at a throwaway data directory."""
    return CacheConfig(
        env="test",
        data_dir=tmp_path / "data",
        event_slug=EVENT_SLUG,
        cause_slug=CAUSE_SLUG,
        log_to_file=False,
    )


@pytest_asyncio.fixture
async def database(app_config: CacheConfig) -> AsyncGenerator[Database, None]:
    database = await Database.open(app_config)
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def observations(database: Database) -> AsyncGenerator[ObservationRegistry, None]:
    registry = ObservationRegistry(database.read, database.write_lock)
    database.add_commit_hook(registry.on_commit)
    yield registry
    await registry.close()


@pytest.fixture
def event_repository(database: Database) -> FundraisingEventRepository:
    return FundraisingEventRepository(database)


@pytest.fixture
def campaign_repository(database: Database) -> CampaignRepository:
    return CampaignRepository(database)


@pytest.fixture
def reconciler(
    database: Database,
    event_repository: FundraisingEventRepository,
    campaign_repository: CampaignRepository,
) -> Reconciler:
    return Reconciler(database, event_repository, campaign_repository)


@pytest.fixture
def api_client() -> FakeApiClient:
    return FakeApiClient(cause=cause_response())


@pytest.fixture
def sync_service(
    app_config: CacheConfig,
    api_client: FakeApiClient,
    event_repository: FundraisingEventRepository,
    campaign_repository: CampaignRepository,
    reconciler: Reconciler,
) -> SyncService:
    return SyncService(app_config, api_client, event_repository, campaign_repository, reconciler)


@pytest_asyncio.fixture
async def sample_event(event_repository: FundraisingEventRepository) -> FundraisingEvent:
    return await event_repository.save(make_event())


@pytest_asyncio.fixture
async def sample_campaign(
    campaign_repository: CampaignRepository, sample_event: FundraisingEvent
) -> Campaign:
    return await campaign_repository.save(make_campaign(fundraising_event_id=sample_event.id))


@pytest_asyncio.fixture
async def cache(
    app_config: CacheConfig, api_client: FakeApiClient
) -> AsyncGenerator[CampaignCache, None]:
    cache = await CampaignCache.open(app_config, api_client=api_client)
    yield cache
    await cache.close()


@pytest.fixture
def statement_log(database: Database) -> Callable[[], List[str]]:
    """Record INSERT/UPDATE/DELETE statements sent to the database.

    Returns a callable giving the statements recorded so far.
    """
    statements: List[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith(("INSERT", "UPDATE", "DELETE")):
            statements.append(statement)

    event.listen(database.engine.sync_engine, "before_cursor_execute", before_cursor_execute)
    return lambda: list(statements)
