"""
Campaign Query Service — listing, KPI rollups and the dashboard view.

Everything here is scoped to the caller's own, non-archived campaigns;
collaborators see shared campaigns only through per-campaign reads.
"""

import logging
import math
from collections import Counter
from datetime import timedelta
from typing import Optional

from app.config import get_settings
from app.errors import ValidationError
from app.schemas import Campaign, CampaignStatus
from app.stores.base import CampaignStore
from app.utils import utcnow

logger = logging.getLogger(__name__)

# wire name -> store sort key
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "startDate": "start_date",
    "endDate": "end_date",
    "budget": "budget",
    "status": "status",
}

RECENT_LIMIT = 5
ATTENTION_WINDOW = timedelta(days=7)


def _avg(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0


def _activity_entry(campaign: Campaign) -> dict:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "status": campaign.status,
        "createdAt": campaign.created_at.isoformat() if campaign.created_at else None,
        "updatedAt": campaign.updated_at.isoformat() if campaign.updated_at else None,
    }


class CampaignQueryService:
    def __init__(self, campaigns: CampaignStore):
        self.campaigns = campaigns

    async def list(
        self,
        user_id: str,
        status: Optional[str] = None,
        objective: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> dict:
        settings = get_settings()
        if page < 1:
            raise ValidationError.for_field("page", "Page must be a positive integer", page)
        if limit is None:
            limit = settings.default_page_size
        if limit < 1:
            raise ValidationError.for_field("limit", "Limit must be a positive integer", limit)
        limit = min(limit, settings.max_page_size)
        if sort_by not in SORT_FIELDS:
            raise ValidationError.for_field("sortBy", f"sortBy must be one of: {', '.join(SORT_FIELDS)}", sort_by)
        if sort_order not in ("asc", "desc"):
            raise ValidationError.for_field("sortOrder", "sortOrder must be asc or desc", sort_order)

        items, total = await self.campaigns.search(
            user_id,
            status=status,
            objective=objective,
            text=search.strip() if search and search.strip() else None,
            sort_by=SORT_FIELDS[sort_by],
            descending=sort_order == "desc",
            offset=(page - 1) * limit,
            limit=limit,
        )
        total_pages = math.ceil(total / limit) if total else 0
        return {
            "campaigns": items,
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalDocuments": total,
                "hasNextPage": page < total_pages,
                "hasPrevPage": page > 1,
            },
        }

    async def stats(self, user_id: str) -> dict:
        campaigns = await self.campaigns.list_owned(user_id)
        statuses = Counter(c.status for c in campaigns)
        overview = {
            "totalCampaigns": len(campaigns),
            "activeCampaigns": statuses[CampaignStatus.ACTIVE.value],
            "draftCampaigns": statuses[CampaignStatus.DRAFT.value],
            "completedCampaigns": statuses[CampaignStatus.COMPLETED.value],
            "totalBudget": sum(c.budget for c in campaigns),
            "totalSpent": sum(c.metrics.total_spent for c in campaigns),
            "totalImpressions": sum(c.metrics.total_impressions for c in campaigns),
            "totalClicks": sum(c.metrics.total_clicks for c in campaigns),
            "totalConversions": sum(c.metrics.total_conversions for c in campaigns),
            "avgCTR": _avg([c.metrics.ctr for c in campaigns]),
            "avgCPC": _avg([c.metrics.cpc for c in campaigns]),
            "avgROI": _avg([c.metrics.roi for c in campaigns]),
        }
        by_objective = [
            {"objective": objective, "count": count}
            for objective, count in sorted(Counter(c.objective for c in campaigns).items())
        ]
        recent = sorted(campaigns, key=lambda c: c.updated_at or c.created_at, reverse=True)[:RECENT_LIMIT]
        return {
            "overview": overview,
            "byObjective": by_objective,
            "recentActivity": [_activity_entry(c) for c in recent],
        }

    async def dashboard(self, user_id: str) -> dict:
        campaigns = await self.campaigns.list_owned(user_id)
        now = utcnow()
        active = [
            c for c in campaigns
            if c.status == CampaignStatus.ACTIVE.value and c.start_date <= now <= c.end_date
        ]
        recent = sorted(campaigns, key=lambda c: c.created_at or now, reverse=True)[:RECENT_LIMIT]
        attention = sorted(
            (
                c for c in campaigns
                if c.status == CampaignStatus.ACTIVE.value and now <= c.end_date <= now + ATTENTION_WINDOW
            ),
            key=lambda c: c.end_date,
        )
        return {
            "activeCampaigns": active,
            "recentCampaigns": recent,
            "attentionNeeded": attention,
        }
