"""Domain entities mirrored by the cache.

Entities are frozen dataclasses: they compare by value and every instance handed
to a caller is an independent copy of what is stored.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from campaign_cache.schemas import (
    CampaignPayload,
    CauseData,
    MoneyPayload,
)


@dataclass(frozen=True)
class Money:
    """A currency code paired with an exact decimal string."""

    currency: str
    value: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: MoneyPayload) -> "Money":
        return cls(currency=payload.currency, value=payload.value)

    @property
    def decimal(self) -> Optional[Decimal]:
        """The amount as a Decimal, or None when absent or malformed."""
        if self.value is None:
            return None
        try:
            return Decimal(self.value)
        except InvalidOperation:
            return None


@dataclass(frozen=True)
class FundraisingEvent:
    id: UUID
    name: str
    slug: str
    amount_raised: Money
    goal: Money
    cause_public_id: str
    cause_name: str
    cause_slug: str
    colors: Tuple[str, ...] = field(default_factory=tuple)
    description: Optional[str] = None

    @classmethod
    def from_response(cls, data: CauseData) -> "FundraisingEvent":
        event = data.fundraising_event
        return cls(
            id=event.public_id,
            name=event.name,
            slug=event.slug,
            amount_raised=Money.from_payload(event.amount_raised),
            goal=Money.from_payload(event.goal),
            colors=(event.colors.highlight, event.colors.background),
            description=event.description,
            cause_public_id=data.cause.public_id,
            cause_name=data.cause.name,
            cause_slug=data.cause.slug,
        )

    @property
    def percentage_reached(self) -> Optional[Decimal]:
        """Fraction of the goal raised so far, e.g. Decimal("0.25")."""
        raised = self.amount_raised.decimal
        goal = self.goal.decimal
        if raised is None or not goal:
            return None
        return raised / goal


@dataclass(frozen=True)
class Campaign:
    id: UUID
    name: str
    slug: str
    goal: Money
    total_raised: Money
    username: str
    user_slug: str
    fundraising_event_id: UUID
    avatar: Optional[str] = None
    status: Optional[str] = None
    description: Optional[bytes] = None

    @classmethod
    def from_payload(cls, payload: CampaignPayload, fundraising_event_id: UUID) -> "Campaign":
        return cls(
            id=payload.public_id,
            fundraising_event_id=fundraising_event_id,
            **_remote_campaign_fields(payload),
        )

    def merge_remote(self, payload: CampaignPayload, fundraising_event_id: UUID) -> "Campaign":
        """Return a copy with every field the remote payload supplies taken from it."""
        return replace(
            self,
            fundraising_event_id=fundraising_event_id,
            **_remote_campaign_fields(payload),
        )


def _remote_campaign_fields(payload: CampaignPayload) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "name": payload.name,
        "slug": payload.slug,
        "goal": Money.from_payload(payload.goal),
        "total_raised": Money.from_payload(payload.total_amount_raised),
        "username": payload.user.username,
        "user_slug": payload.user.slug,
    }

    # Optional fields only count as supplied when present in the payload
    supplied = payload.model_fields_set
    if "avatar" in supplied:
        fields["avatar"] = payload.avatar.src if payload.avatar else None
    if "status" in supplied:
        fields["status"] = payload.status
    if "description" in supplied:
        fields["description"] = (
            payload.description.encode("utf-8") if payload.description is not None else None
        )
    return fields
