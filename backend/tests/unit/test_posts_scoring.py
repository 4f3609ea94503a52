import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bimillog.posts.infra.list_cache import ListCache
from bimillog.posts.infra.score_store import ScoreStore
from bimillog.posts.ranking.decay import DecayJob
from bimillog.posts.ranking.lists import HotList, build_registry, score_lists
from bimillog.posts.ranking.scoring import Engagement, ScoreRecorder


@pytest.mark.asyncio
async def test_engagement_weights_apply_to_realtime_and_weekly():
	store = ScoreStore()
	recorder = ScoreRecorder(store=store)

	await recorder.record(Engagement.VIEW, 1)
	await recorder.record(Engagement.COMMENT, 1)
	await recorder.record(Engagement.LIKE, 1)

	assert await store.score("realtime", 1) == pytest.approx(9.0)
	assert await store.score("weekly", 1) == pytest.approx(9.0)
	assert await store.score("legend", 1) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_unlike_and_comment_removal_reverse_weights():
	store = ScoreStore()
	recorder = ScoreRecorder(store=store)

	await recorder.record(Engagement.LIKE, 2)
	await recorder.record(Engagement.COMMENT, 2)
	await recorder.record(Engagement.UNLIKE, 2)
	await recorder.record(Engagement.COMMENT_DELETED, 2)

	assert await store.score("realtime", 2) == pytest.approx(0.0)
	assert await store.score("legend", 2) == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_views_do_not_touch_legend():
	store = ScoreStore()
	await ScoreRecorder(store=store).record(Engagement.VIEW, 3)

	assert await store.score("legend", 3) is None


@pytest.mark.asyncio
async def test_remove_post_clears_scores_and_cached_lists(post_factory):
	store = ScoreStore()
	cache = ListCache()
	recorder = ScoreRecorder(store=store, cache=cache)
	await recorder.record(Engagement.LIKE, 4)
	await cache.replace_all("realtime", [post_factory(4), post_factory(5)], 60)
	await cache.replace_all("first_page", [post_factory(4)], 60)

	await recorder.remove_post(4)

	for name in ("realtime", "weekly", "legend"):
		assert await store.score(name, 4) is None
	assert [item.id for item in await cache.read_all("realtime")] == [5]
	assert await cache.read_all("first_page") == []


class _FlakyStore:
	def __init__(self, failures):
		self.failures = failures
		self.calls = 0

	async def increment(self, name, item_id, delta):
		self.calls += 1
		if self.failures > 0:
			self.failures -= 1
			raise RedisConnectionError("redis down")
		return delta


@pytest.mark.asyncio
async def test_increment_retries_then_succeeds():
	store = _FlakyStore(failures=2)
	recorder = ScoreRecorder(store=store, backoff_seconds=0)

	await recorder.record(Engagement.VIEW, 1)

	# two failures on realtime, then realtime and weekly succeed
	assert store.calls == 4


@pytest.mark.asyncio
async def test_increment_gives_up_after_three_attempts():
	store = _FlakyStore(failures=100)
	recorder = ScoreRecorder(store=store, backoff_seconds=0)

	await recorder.record(Engagement.VIEW, 1)

	assert store.calls == 6


@pytest.mark.asyncio
async def test_decay_job_decays_realtime(fake_redis):
	spec = build_registry()[HotList.REALTIME]
	store = ScoreStore()
	await store.increment("realtime", 1, 100)
	await store.increment("realtime", 2, 1.02)

	remaining = await DecayJob(spec, store=store).run_once()

	assert remaining == 1
	assert await store.score("realtime", 1) == pytest.approx(95.0)
	assert await store.score("realtime", 2) is None


@pytest.mark.asyncio
async def test_decay_job_uses_weekly_factor():
	spec = build_registry()[HotList.WEEKLY]
	store = ScoreStore()
	await store.increment("weekly", 1, 100)

	await DecayJob(spec, store=store).run_once()

	assert await store.score("weekly", 1) == pytest.approx(90.0)


def test_legend_is_never_decayed():
	registry = build_registry()

	assert [spec.name for spec in score_lists(registry) if spec.decays] == [HotList.REALTIME, HotList.WEEKLY]
	with pytest.raises(ValueError):
		DecayJob(registry[HotList.LEGEND])


@pytest.mark.asyncio
async def test_decay_job_failure_is_reported():
	class _BrokenStore:
		async def decay_and_prune(self, name, factor, floor):
			raise RedisConnectionError("redis down")

	spec = build_registry()[HotList.REALTIME]

	assert await DecayJob(spec, store=_BrokenStore()).run_once() is None
