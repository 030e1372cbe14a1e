"""
Tests for campaign listing, stats and the dashboard view.
"""

from datetime import timedelta

import pytest

from app.errors import ValidationError
from app.schemas import CampaignMetrics
from app.utils import utcnow
from conftest import OTHER, OWNER, build_campaign


@pytest.fixture
def stocked(campaign_store):
    """Twelve campaigns for OWNER (one archived), one for OTHER."""
    now = utcnow()
    for i in range(11):
        campaign_store.put(build_campaign(
            name=f"Campaign {i:02d}",
            budget=100 * (i + 1),
            objective="conversion" if i % 2 else "awareness",
            created_at=now - timedelta(hours=i),
            updated_at=now - timedelta(hours=i),
        ))
    campaign_store.put(build_campaign(name="Old archived", is_archived=True, status="archived"))
    campaign_store.put(build_campaign(user_id=OTHER, name="Not mine"))
    return campaign_store


@pytest.mark.anyio
async def test_list_paginates_newest_first(query_service, stocked):
    result = await query_service.list(OWNER, page=1, limit=5)
    assert [c.name for c in result["campaigns"]] == [f"Campaign {i:02d}" for i in range(5)]
    assert result["pagination"] == {
        "currentPage": 1,
        "totalPages": 3,
        "totalDocuments": 11,
        "hasNextPage": True,
        "hasPrevPage": False,
    }

    last = await query_service.list(OWNER, page=3, limit=5)
    assert len(last["campaigns"]) == 1
    assert last["pagination"]["hasNextPage"] is False
    assert last["pagination"]["hasPrevPage"] is True


@pytest.mark.anyio
async def test_list_uses_default_page_size(query_service, stocked):
    result = await query_service.list(OWNER)
    assert len(result["campaigns"]) == 10


@pytest.mark.anyio
async def test_list_filters_and_sorts(query_service, stocked):
    result = await query_service.list(OWNER, objective="conversion", sort_by="budget", sort_order="asc", limit=50)
    budgets = [c.budget for c in result["campaigns"]]
    assert budgets == sorted(budgets)
    assert {c.objective for c in result["campaigns"]} == {"conversion"}
    assert result["pagination"]["totalDocuments"] == 5


@pytest.mark.anyio
async def test_list_search_matches_name(query_service, stocked):
    result = await query_service.list(OWNER, search="  campaign 07 ")
    assert [c.name for c in result["campaigns"]] == ["Campaign 07"]


@pytest.mark.anyio
async def test_list_excludes_archived_and_foreign(query_service, stocked):
    result = await query_service.list(OWNER, limit=100)
    names = {c.name for c in result["campaigns"]}
    assert "Old archived" not in names
    assert "Not mine" not in names


@pytest.mark.anyio
async def test_list_empty_result(query_service):
    result = await query_service.list(OWNER)
    assert result["campaigns"] == []
    assert result["pagination"]["totalPages"] == 0
    assert result["pagination"]["hasNextPage"] is False


@pytest.mark.anyio
@pytest.mark.parametrize("kwargs", [
    {"page": 0},
    {"limit": 0},
    {"sort_by": "persona"},
    {"sort_order": "sideways"},
])
async def test_list_rejects_bad_parameters(query_service, kwargs):
    with pytest.raises(ValidationError):
        await query_service.list(OWNER, **kwargs)


@pytest.mark.anyio
async def test_stats_rollup(query_service, campaign_store):
    campaign_store.put(build_campaign(
        status="active", budget=300, objective="engagement",
        metrics=CampaignMetrics(total_spent=100, total_impressions=1000, total_clicks=20, ctr=2.0, cpc=5.0),
    ))
    campaign_store.put(build_campaign(status="draft", budget=200, objective="awareness"))
    campaign_store.put(build_campaign(status="completed", budget=500, objective="awareness"))

    stats = await query_service.stats(OWNER)
    overview = stats["overview"]
    assert overview["totalCampaigns"] == 3
    assert overview["activeCampaigns"] == 1
    assert overview["draftCampaigns"] == 1
    assert overview["completedCampaigns"] == 1
    assert overview["totalBudget"] == 1000
    assert overview["totalSpent"] == 100
    assert overview["avgCTR"] == pytest.approx(2.0 / 3)
    assert stats["byObjective"] == [
        {"objective": "awareness", "count": 2},
        {"objective": "engagement", "count": 1},
    ]
    assert len(stats["recentActivity"]) == 3
    assert set(stats["recentActivity"][0]) == {"id", "name", "status", "createdAt", "updatedAt"}


@pytest.mark.anyio
async def test_stats_for_user_without_campaigns(query_service):
    stats = await query_service.stats(OWNER)
    assert stats["overview"]["totalCampaigns"] == 0
    assert stats["overview"]["avgROI"] == 0
    assert stats["byObjective"] == []
    assert stats["recentActivity"] == []


@pytest.mark.anyio
async def test_dashboard_groups(query_service, campaign_store):
    now = utcnow()
    running = campaign_store.put(build_campaign(
        name="Running", status="active",
        start_date=now - timedelta(days=10), end_date=now + timedelta(days=20),
    ))
    ending = campaign_store.put(build_campaign(
        name="Ending soon", status="active",
        start_date=now - timedelta(days=10), end_date=now + timedelta(days=3),
    ))
    campaign_store.put(build_campaign(
        name="Overdue", status="active",
        start_date=now - timedelta(days=20), end_date=now - timedelta(days=1),
    ))
    campaign_store.put(build_campaign(name="Paused", status="paused"))

    view = await query_service.dashboard(OWNER)
    assert {c.id for c in view["activeCampaigns"]} == {running.id, ending.id}
    assert [c.id for c in view["attentionNeeded"]] == [ending.id]
    assert len(view["recentCampaigns"]) == 4
