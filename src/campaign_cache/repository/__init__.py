from campaign_cache.repository.campaign_repository import CampaignRepository
from campaign_cache.repository.fundraising_event_repository import FundraisingEventRepository
from campaign_cache.repository.repository import Repository

__all__ = [
    "CampaignRepository",
    "FundraisingEventRepository",
    "Repository",
]
