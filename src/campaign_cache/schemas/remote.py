"""Response shapes of the fundraising platform's GraphQL API.

Only the fields the cache persists are modelled. Money amounts arrive as a
currency code plus a decimal string and stay strings here; converting them to
float would introduce rounding error in totals.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemoteModel(BaseModel):
    """Base for API payloads: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MoneyPayload(RemoteModel):
    currency: str
    value: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def reject_floats(cls, value):
        if isinstance(value, float):
            raise ValueError("money values must be decimal strings, not floats")
        if isinstance(value, int):
            return str(value)
        return value


class AvatarPayload(RemoteModel):
    src: Optional[str] = None


class UserPayload(RemoteModel):
    username: str
    slug: str


class ColorsPayload(RemoteModel):
    highlight: str
    background: str


class CampaignPayload(RemoteModel):
    """A single campaign as listed under a fundraising event or fetched directly."""

    public_id: UUID = Field(alias="publicId")
    name: str
    slug: str
    avatar: Optional[AvatarPayload] = None
    status: Optional[str] = None
    description: Optional[str] = None
    goal: MoneyPayload
    total_amount_raised: MoneyPayload = Field(alias="totalAmountRaised")
    user: UserPayload


class CampaignEdge(RemoteModel):
    node: CampaignPayload


class CampaignConnection(RemoteModel):
    edges: List[CampaignEdge] = Field(default_factory=list)


class CausePayload(RemoteModel):
    public_id: str = Field(alias="publicId")
    name: str
    slug: str


class FundraisingEventPayload(RemoteModel):
    public_id: UUID = Field(alias="publicId")
    name: str
    slug: str
    amount_raised: MoneyPayload = Field(alias="amountRaised")
    goal: MoneyPayload
    colors: ColorsPayload
    description: Optional[str] = None
    published_campaigns: CampaignConnection = Field(
        default_factory=CampaignConnection, alias="publishedCampaigns"
    )

    @property
    def campaigns(self) -> List[CampaignPayload]:
        return [edge.node for edge in self.published_campaigns.edges]


class CauseData(RemoteModel):
    cause: CausePayload
    fundraising_event: FundraisingEventPayload = Field(alias="fundraisingEvent")


class CauseResponse(RemoteModel):
    data: CauseData


class CampaignData(RemoteModel):
    campaign: CampaignPayload


class CampaignResponse(RemoteModel):
    data: CampaignData
