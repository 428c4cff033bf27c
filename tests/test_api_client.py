"""Tests for the httpx-backed API client."""

import json

import httpx
import pytest

from campaign_cache.api_client import CAUSE_QUERY, HttpApiClient
from campaign_cache.config import CacheConfig
from campaign_cache.exceptions import RemoteUnavailableError
from conftest import CAMPAIGN_ONE_ID, EVENT_ID, campaign_node, cause_response


def client_for(app_config: CacheConfig, handler) -> HttpApiClient:
    transport = httpx.MockTransport(handler)
    return HttpApiClient(
        app_config, client=httpx.AsyncClient(transport=transport, base_url=app_config.api_url)
    )


@pytest.mark.asyncio
async def test_fetch_cause(app_config: CacheConfig):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(200, json=cause_response())

    async with client_for(app_config, handler) as client:
        response = await client.fetch_cause()

    assert response.data.fundraising_event.public_id == EVENT_ID
    assert len(response.data.fundraising_event.campaigns) == 2
    assert requests[0]["query"] == CAUSE_QUERY
    assert requests[0]["variables"] == {
        "feSlug": app_config.event_slug,
        "causeSlug": app_config.cause_slug,
    }


@pytest.mark.asyncio
async def test_fetch_campaign(app_config: CacheConfig):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        node = {**campaign_node(CAMPAIGN_ONE_ID, "podcast-marathon", "myke"), "status": "Live"}
        return httpx.Response(200, json={"data": {"campaign": node}})

    async with client_for(app_config, handler) as client:
        response = await client.fetch_campaign("myke", "podcast-marathon")

    assert response.data.campaign.public_id == CAMPAIGN_ONE_ID
    assert response.data.campaign.status == "Live"
    assert requests[0]["variables"] == {"vanity": "+myke", "slug": "podcast-marathon"}


@pytest.mark.asyncio
async def test_http_error_status(app_config: CacheConfig):
    async with client_for(app_config, lambda request: httpx.Response(503)) as client:
        with pytest.raises(RemoteUnavailableError):
            await client.fetch_cause()


@pytest.mark.asyncio
async def test_transport_error(app_config: CacheConfig):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with client_for(app_config, handler) as client:
        with pytest.raises(RemoteUnavailableError) as exc_info:
            await client.fetch_cause()

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_graphql_errors(app_config: CacheConfig):
    body = {"data": None, "errors": [{"message": "Not found"}]}

    async with client_for(app_config, lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(RemoteUnavailableError, match="Not found"):
            await client.fetch_cause()


@pytest.mark.asyncio
async def test_invalid_json(app_config: CacheConfig):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    async with client_for(app_config, handler) as client:
        with pytest.raises(RemoteUnavailableError):
            await client.fetch_cause()


@pytest.mark.asyncio
async def test_float_money_rejected(app_config: CacheConfig):
    body = cause_response()
    body["data"]["fundraisingEvent"]["amountRaised"]["value"] = 250.0

    async with client_for(app_config, lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(RemoteUnavailableError, match="Unexpected response shape"):
            await client.fetch_cause()


@pytest.mark.asyncio
async def test_injected_client_left_open(app_config: CacheConfig):
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=cause_response()))
    )

    async with HttpApiClient(app_config, client=http_client):
        pass

    assert not http_client.is_closed
    await http_client.aclose()
