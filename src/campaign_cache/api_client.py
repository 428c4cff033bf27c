"""Client for the fundraising platform's GraphQL API.

The cache only depends on the ``ApiClient`` protocol; ``HttpApiClient`` is the
httpx-backed implementation used by the CLI and the app.
"""

from typing import Any, Dict, Optional, Protocol, Type, TypeVar

from httpx import AsyncClient, HTTPError, Timeout
from loguru import logger
from pydantic import BaseModel, ValidationError

from campaign_cache.config import CacheConfig
from campaign_cache.exceptions import RemoteUnavailableError
from campaign_cache.schemas import CampaignResponse, CauseResponse

ResponseT = TypeVar("ResponseT", bound=BaseModel)

MONEY_FIELDS = "currency value"

CAMPAIGN_FIELDS = f"""
    publicId
    name
    slug
    status
    description
    avatar {{ src }}
    goal {{ {MONEY_FIELDS} }}
    totalAmountRaised {{ {MONEY_FIELDS} }}
    user {{ username slug }}
"""

CAUSE_QUERY = f"""
query get_cause_and_fe_by_slug($feSlug: String!, $causeSlug: String!) {{
  cause(slug: $causeSlug) {{ publicId name slug }}
  fundraisingEvent(slug: $feSlug, causeSlug: $causeSlug) {{
    publicId
    name
    slug
    description
    amountRaised {{ {MONEY_FIELDS} }}
    goal {{ {MONEY_FIELDS} }}
    colors {{ highlight background }}
    publishedCampaigns(limit: 100) {{
      edges {{ node {{
        publicId
        name
        slug
        avatar {{ src }}
        goal {{ {MONEY_FIELDS} }}
        totalAmountRaised {{ {MONEY_FIELDS} }}
        user {{ username slug }}
      }} }}
    }}
  }}
}}
"""

CAMPAIGN_QUERY = f"""
query get_campaign_by_vanity_and_slug($vanity: String!, $slug: String!) {{
  campaign(vanity: $vanity, slug: $slug) {{ {CAMPAIGN_FIELDS} }}
}}
"""


class ApiClient(Protocol):
    """What the sync service needs from the remote source."""

    async def fetch_cause(self) -> CauseResponse: ...

    async def fetch_campaign(self, owner_slug: str, campaign_slug: str) -> CampaignResponse: ...


class HttpApiClient:
    """ApiClient implementation posting GraphQL queries with httpx.

    Any transport, HTTP status, GraphQL or decoding failure is raised as
    RemoteUnavailableError.
    """

    def __init__(self, config: CacheConfig, client: Optional[AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or AsyncClient(
            base_url=config.api_url,
            timeout=Timeout(config.api_timeout, connect=10.0),
        )

    async def fetch_cause(self) -> CauseResponse:
        variables = {"feSlug": self.config.event_slug, "causeSlug": self.config.cause_slug}
        return await self._query(CAUSE_QUERY, variables, CauseResponse)

    async def fetch_campaign(self, owner_slug: str, campaign_slug: str) -> CampaignResponse:
        variables = {"vanity": f"+{owner_slug}", "slug": campaign_slug}
        return await self._query(CAMPAIGN_QUERY, variables, CampaignResponse)

    async def _query(
        self, query: str, variables: Dict[str, Any], response_model: Type[ResponseT]
    ) -> ResponseT:
        try:
            response = await self._client.post("", json={"query": query, "variables": variables})
            response.raise_for_status()
            payload = response.json()
        except HTTPError as e:
            logger.warning(f"Request to {self.config.api_url} failed: {e}")
            raise RemoteUnavailableError(f"Request failed: {e}") from e
        except ValueError as e:
            raise RemoteUnavailableError(f"Response is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise RemoteUnavailableError("Response is not a JSON object")
        if payload.get("errors"):
            raise RemoteUnavailableError(f"API returned errors: {payload['errors']}")

        try:
            return response_model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Could not decode {response_model.__name__}: {e}")
            raise RemoteUnavailableError(f"Unexpected response shape: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
