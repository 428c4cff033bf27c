"""Tests for the observation registry."""

import asyncio
from dataclasses import replace

import pytest

from campaign_cache.entities import FundraisingEvent, Money
from campaign_cache.observation import ObservationRegistry
from campaign_cache.repository import CampaignRepository, FundraisingEventRepository
from campaign_cache.sync import Reconciler
from conftest import EVENT_ID, make_campaign


def event_query(event_repository: FundraisingEventRepository):
    async def query(session):
        return await event_repository.find_by_id(EVENT_ID, session)

    return query


@pytest.mark.asyncio
async def test_initial_value_delivered(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    received = []
    await observations.observe(event_query(event_repository), received.append)
    await observations.drain()

    assert received == [sample_event]


@pytest.mark.asyncio
async def test_initial_value_can_be_skipped(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    received = []
    subscription = await observations.observe(
        event_query(event_repository), received.append, emit_initial=False
    )
    await observations.drain()

    assert received == []
    assert subscription.last_value == sample_event


@pytest.mark.asyncio
async def test_notified_exactly_when_observed_value_changes(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    campaign_repository: CampaignRepository,
    reconciler: Reconciler,
    sample_event: FundraisingEvent,
):
    received = []
    await observations.observe(event_query(event_repository), received.append, emit_initial=False)

    # A write to another table does not change the observed value
    await campaign_repository.save(make_campaign())
    await observations.drain()
    assert received == []

    # Reconciling an identical value writes nothing
    await reconciler.reconcile(sample_event)
    await observations.drain()
    assert received == []

    updated = replace(sample_event, amount_raised=Money("USD", "300.00"))
    await reconciler.reconcile(updated)
    await observations.drain()
    assert received == [updated]


@pytest.mark.asyncio
async def test_observing_absent_value(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
):
    received = []
    await observations.observe(event_query(event_repository), received.append)
    await observations.drain()
    assert received == [None]

    saved = await event_repository.save(
        FundraisingEvent(
            id=EVENT_ID,
            name="Relay",
            slug="relay",
            amount_raised=Money("USD", "0.00"),
            goal=Money("USD", "1.00"),
            cause_public_id="cause",
            cause_name="Cause",
            cause_slug="cause",
        )
    )
    await observations.drain()
    assert received == [None, saved]


@pytest.mark.asyncio
async def test_async_callbacks_supported(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    received = []

    async def on_change(value):
        received.append(value)

    await observations.observe(event_query(event_repository), on_change)
    await observations.drain()

    assert received == [sample_event]


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_delivery(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    received = []

    def broken(value):
        raise RuntimeError("subscriber bug")

    await observations.observe(event_query(event_repository), broken)
    await observations.observe(event_query(event_repository), received.append)
    await observations.drain()

    assert received == [sample_event]


@pytest.mark.asyncio
async def test_query_error_delivered_to_on_error(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    errors = []
    calls = 0

    async def flaky(session):
        nonlocal calls
        calls += 1
        if calls > 1:
            raise RuntimeError("query failed")
        return await event_repository.find_by_id(EVENT_ID, session)

    await observations.observe(flaky, lambda value: None, errors.append, emit_initial=False)
    await event_repository.save(replace(sample_event, name="Renamed"))
    await observations.drain()

    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)


@pytest.mark.asyncio
async def test_cancel_stops_delivery_and_is_idempotent(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    received = []
    subscription = await observations.observe(
        event_query(event_repository), received.append, emit_initial=False
    )

    subscription.cancel()
    subscription.cancel()
    assert not subscription.active
    assert observations.subscriptions == []

    await event_repository.save(replace(sample_event, name="Renamed"))
    await observations.drain()
    assert received == []


@pytest.mark.asyncio
async def test_cancel_after_close(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
):
    subscription = await observations.observe(event_query(event_repository), lambda value: None)

    await observations.close()
    subscription.cancel()

    assert not subscription.active
    with pytest.raises(RuntimeError):
        await observations.observe(event_query(event_repository), lambda value: None)


@pytest.mark.asyncio
async def test_write_during_initial_fetch_is_delivered(
    observations: ObservationRegistry,
    event_repository: FundraisingEventRepository,
    sample_event: FundraisingEvent,
):
    fetching = asyncio.Event()

    async def slow_query(session):
        value = await event_repository.find_by_id(EVENT_ID, session)
        if not fetching.is_set():
            fetching.set()
            await asyncio.sleep(0.05)
        return value

    received = []
    observing = asyncio.create_task(
        observations.observe(slow_query, received.append, emit_initial=False)
    )
    await fetching.wait()
    await event_repository.update_columns(EVENT_ID, {"amountRaisedValue": "300.00"})
    subscription = await observing
    await observations.drain()

    updated = replace(sample_event, amount_raised=Money("USD", "300.00"))
    assert received == [updated]
    assert subscription.last_value == updated
