"""Repository for FundraisingEvent rows."""

import json
from typing import Any, Mapping

from campaign_cache.entities import FundraisingEvent, Money
from campaign_cache.models import fundraising_event
from campaign_cache.repository.repository import Repository, Row


def dump_colors(colors) -> str:
    """Canonical JSON for the colors column so equal tuples always serialize equally."""
    return json.dumps(list(colors), separators=(",", ":"))


class FundraisingEventRepository(Repository[FundraisingEvent]):
    """Repository for the parent fundraisingEvent table."""

    table = fundraising_event
    unique_key = ("slug", "causeSlug")

    def to_row(self, entity: FundraisingEvent) -> Row:
        return {
            "id": entity.id,
            "name": entity.name,
            "slug": entity.slug,
            "amountRaisedCurrency": entity.amount_raised.currency,
            "amountRaisedValue": entity.amount_raised.value,
            "colors": dump_colors(entity.colors),
            "description": entity.description,
            "goalCurrency": entity.goal.currency,
            "goalValue": entity.goal.value,
            "causePublicId": entity.cause_public_id,
            "causeName": entity.cause_name,
            "causeSlug": entity.cause_slug,
        }

    def from_row(self, row: Mapping[str, Any]) -> FundraisingEvent:
        return FundraisingEvent(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            amount_raised=Money(row["amountRaisedCurrency"], row["amountRaisedValue"]),
            goal=Money(row["goalCurrency"], row["goalValue"]),
            colors=tuple(json.loads(row["colors"])),
            description=row["description"],
            cause_public_id=row["causePublicId"],
            cause_name=row["causeName"],
            cause_slug=row["causeSlug"],
        )
