"""Repository for Campaign rows."""

from typing import Any, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_cache.entities import Campaign, Money
from campaign_cache.models import campaign
from campaign_cache.repository.repository import Repository, Row


class CampaignRepository(Repository[Campaign]):
    """Repository for the child campaign table."""

    table = campaign
    unique_key = ("slug", "userSlug")

    def to_row(self, entity: Campaign) -> Row:
        return {
            "id": entity.id,
            "name": entity.name,
            "slug": entity.slug,
            "avatar": entity.avatar,
            "status": entity.status,
            "description": entity.description,
            "goalCurrency": entity.goal.currency,
            "goalValue": entity.goal.value,
            "totalRaisedCurrency": entity.total_raised.currency,
            "totalRaisedValue": entity.total_raised.value,
            "username": entity.username,
            "userSlug": entity.user_slug,
            "fundraisingEventId": entity.fundraising_event_id,
        }

    def from_row(self, row: Mapping[str, Any]) -> Campaign:
        return Campaign(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            avatar=row["avatar"],
            status=row["status"],
            description=row["description"],
            goal=Money(row["goalCurrency"], row["goalValue"]),
            total_raised=Money(row["totalRaisedCurrency"], row["totalRaisedValue"]),
            username=row["username"],
            user_slug=row["userSlug"],
            fundraising_event_id=row["fundraisingEventId"],
        )

    async def find_children(
        self, fundraising_event_id: UUID, session: Optional[AsyncSession] = None
    ) -> List[Campaign]:
        """All campaigns belonging to a fundraising event, in no particular order."""
        query = self.select().where(self.table.c.fundraisingEventId == fundraising_event_id)
        return await self.find_all(query, session)
