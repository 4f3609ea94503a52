import pytest

from bimillog.posts.api import hot_lists as hot_lists_api
from bimillog.posts.api import internal as internal_api
from bimillog.posts.api import search as search_api
from bimillog.posts.infra.list_cache import ListCache
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking import schedule
from bimillog.posts.ranking.lists import build_registry
from bimillog.posts.ranking.refresh import build_refresh_jobs
from bimillog.posts.search.resolver import SearchResolver
from bimillog.posts.services.hot_lists import HotListService

_ADMIN = {"X-Admin-Token": "test-admin-token"}


@pytest.fixture
def wired(monkeypatch, stub_repo):
	from bimillog.main import app

	registry = build_registry()
	runtime = schedule.RankingRuntime(
		registry=registry,
		refresh_jobs=build_refresh_jobs(registry, repository=stub_repo),
	)
	app.dependency_overrides[hot_lists_api.get_service] = lambda: HotListService(repository=stub_repo)
	app.dependency_overrides[schedule.get_runtime] = lambda: runtime
	try:
		yield stub_repo
	finally:
		app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_hot_list_endpoint_reads_cache(api_client, wired, post_factory):
	await ListCache().replace_all("realtime", [post_factory(1, member_id=3, member_name="neo")], 60)

	resp = await api_client.get("/api/posts/v1/hot/realtime")

	assert resp.status_code == 200
	body = resp.json()
	assert body["name"] == "realtime"
	assert body["source"] == "cache"
	assert body["items"][0]["id"] == 1
	assert body["items"][0]["member_name"] == "neo"


@pytest.mark.asyncio
async def test_hot_list_unknown_name_is_404(api_client, wired):
	resp = await api_client.get("/api/posts/v1/hot/monthly")

	assert resp.status_code == 404
	assert resp.json()["detail"] == "unknown_hot_list"


@pytest.mark.asyncio
async def test_hot_list_applies_viewer_header(api_client, wired, post_factory):
	wired.blocks = {(7, 10)}
	await ListCache().replace_all(
		"realtime",
		[post_factory(1, member_id=10), post_factory(2, member_id=11)],
		60,
	)

	resp = await api_client.get("/api/posts/v1/hot/realtime", headers={"X-Member-Id": "7"})

	assert [item["id"] for item in resp.json()["items"]] == [2]


@pytest.mark.asyncio
async def test_legend_page_endpoint(api_client, wired, post_factory):
	await ListCache().replace_all("legend", [post_factory(post_id, likes=40) for post_id in range(1, 4)], 60)

	resp = await api_client.get("/api/posts/v1/hot/legend/page", params={"page": 0, "size": 2})

	assert resp.status_code == 200
	body = resp.json()
	assert [item["id"] for item in body["items"]] == [1, 2]
	assert body["total"] == 3
	assert body["has_next"] is True


@pytest.mark.asyncio
async def test_legend_page_applies_viewer_header(api_client, wired, post_factory):
	wired.blocks = {(7, 10)}
	await ListCache().replace_all(
		"legend",
		[post_factory(1, member_id=10, likes=40), post_factory(2, member_id=11, likes=30)],
		60,
	)

	resp = await api_client.get("/api/posts/v1/hot/legend/page", headers={"X-Member-Id": "7"})

	assert [item["id"] for item in resp.json()["items"]] == [2]


@pytest.mark.asyncio
async def test_search_endpoint_reports_strategy(api_client, monkeypatch, post_factory):
	from bimillog.main import app
	from bimillog.posts.domain import models

	class _Repo:
		async def pattern_search(self, field, term, mode, *, page, size, viewer_id=None):
			return models.Page(items=[post_factory(1, title="자유")], page=page, size=size, total=1)

	app.dependency_overrides[search_api.get_resolver] = lambda: SearchResolver(repository=_Repo())
	try:
		resp = await api_client.get("/api/posts/v1/search", params={"q": "자", "type": "title"})
	finally:
		app.dependency_overrides.clear()

	assert resp.status_code == 200
	body = resp.json()
	assert body["strategy"] == "substring"
	assert body["items"][0]["title"] == "자유"


@pytest.mark.asyncio
async def test_search_endpoint_rejects_long_query(api_client):
	resp = await api_client.get("/api/posts/v1/search", params={"q": "x" * 101})

	assert resp.status_code == 422
	assert resp.json()["detail"] == "query_too_long"


@pytest.mark.asyncio
async def test_refresh_requires_admin_token(api_client, wired):
	resp = await api_client.post("/api/posts/v1/internal/ranking/realtime/refresh")

	assert resp.status_code == 403


@pytest.mark.asyncio
async def test_refresh_endpoint_publishes(api_client, wired, post_factory):
	wired.add(post_factory(1))
	await ScoreStore().increment("realtime", 1, 10)

	resp = await api_client.post("/api/posts/v1/internal/ranking/realtime/refresh", headers=_ADMIN)

	assert resp.status_code == 200
	assert resp.json()["outcome"] == "published"
	assert [item.id for item in await ListCache().read_all("realtime")] == [1]


@pytest.mark.asyncio
async def test_engagement_endpoint_updates_scores(api_client):
	resp = await api_client.post(
		"/api/posts/v1/internal/engagement",
		json={"event": "like", "post_id": 12},
		headers=_ADMIN,
	)

	assert resp.status_code == 202
	assert await ScoreStore().score("realtime", 12) == pytest.approx(4.0)
	assert await ScoreStore().score("legend", 12) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_metrics_endpoint(api_client):
	resp = await api_client.get("/metrics")

	assert resp.status_code == 200
	assert "bimillog_" in resp.text
