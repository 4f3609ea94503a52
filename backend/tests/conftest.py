import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from bimillog.infra import postgres
from bimillog.posts.domain import models
from bimillog.settings import settings

_BASE_TIME = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from bimillog.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	original_env = settings.environment
	original_token = settings.admin_token
	original_jobs = settings.ranking_jobs_enabled
	settings.environment = "dev"
	settings.admin_token = "test-admin-token"
	settings.ranking_jobs_enabled = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.admin_token = original_token
		settings.ranking_jobs_enabled = original_jobs


def make_post(post_id: int, *, member_id=None, member_name="익명", likes=0, title=None, is_notice=False):
	return models.ContentSummary(
		id=post_id,
		title=title or f"post {post_id}",
		view_count=post_id * 10,
		like_count=likes,
		comment_count=0,
		member_id=member_id,
		member_name=member_name,
		is_notice=is_notice,
		created_at=_BASE_TIME - timedelta(minutes=post_id),
	)


class StubPostsRepository:
	"""In-memory stand-in for PostsRepository used across unit tests."""

	def __init__(self, posts=None, *, blocks=None):
		self.posts = {post.id: post for post in (posts or [])}
		self.blocks = set(blocks or [])
		self.calls: list[str] = []
		self.fail_with: Exception | None = None

	def add(self, *posts):
		for post in posts:
			self.posts[post.id] = post
		return self

	def _record(self, name):
		self.calls.append(name)
		if self.fail_with is not None:
			raise self.fail_with

	async def batch_get_by_ids(self, ids):
		self._record("batch_get_by_ids")
		return [self.posts[item_id] for item_id in ids if item_id in self.posts]

	async def latest_page(self, size):
		self._record("latest_page")
		rows = sorted(self.posts.values(), key=lambda post: post.id, reverse=True)
		return rows[:size]

	async def notice_posts(self, limit):
		self._record("notice_posts")
		rows = sorted((post for post in self.posts.values() if post.is_notice), key=lambda post: post.id, reverse=True)
		return rows[:limit]

	async def recent_popular(self, limit, *, hours=1):
		self._record("recent_popular")
		rows = [post for post in self.posts.values() if not post.is_notice]
		rows.sort(key=lambda post: post.view_count + post.like_count * 30, reverse=True)
		return rows[:limit]

	async def most_liked(self, limit, *, min_likes):
		self._record("most_liked")
		rows = [post for post in self.posts.values() if post.like_count >= min_likes]
		rows.sort(key=lambda post: post.like_count, reverse=True)
		return rows[:limit]

	async def blocked_member_ids(self, viewer_id, candidates):
		self._record("blocked_member_ids")
		blocked = set()
		for candidate in candidates:
			if (viewer_id, candidate) in self.blocks or (candidate, viewer_id) in self.blocks:
				blocked.add(candidate)
		return blocked

	async def is_blocked_pair(self, viewer_id, author_id):
		return author_id in await self.blocked_member_ids(viewer_id, [author_id])


@pytest.fixture
def post_factory():
	return make_post


@pytest.fixture
def stub_repo():
	return StubPostsRepository()


@pytest_asyncio.fixture
async def api_client():
	from bimillog.main import app

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
