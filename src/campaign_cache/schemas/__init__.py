"""Pydantic models describing payloads returned by the fundraising API."""

from campaign_cache.schemas.remote import (
    AvatarPayload,
    CampaignData,
    CampaignPayload,
    CampaignResponse,
    CauseData,
    CausePayload,
    CauseResponse,
    ColorsPayload,
    FundraisingEventPayload,
    MoneyPayload,
    UserPayload,
)

__all__ = [
    "AvatarPayload",
    "CampaignData",
    "CampaignPayload",
    "CampaignResponse",
    "CauseData",
    "CausePayload",
    "CauseResponse",
    "ColorsPayload",
    "FundraisingEventPayload",
    "MoneyPayload",
    "UserPayload",
]
