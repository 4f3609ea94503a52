import pytest

from bimillog.posts.domain import models
from bimillog.posts.domain.exceptions import QueryValidationError
from bimillog.posts.search import guards
from bimillog.posts.search.resolver import SearchResolver
from bimillog.posts.search.strategy import (
	MatchMode,
	SearchField,
	SearchPolicy,
	Strategy,
	build_prefix_tsquery,
	like_pattern,
	plan_search,
)

_POLICY = SearchPolicy()


class _SearchRepo:
	def __init__(self, posts, *, fulltext_ids=None, fulltext_error=None):
		self.posts = {post.id: post for post in posts}
		self.fulltext_ids = fulltext_ids or []
		self.fulltext_error = fulltext_error
		self.calls = []

	async def full_text_search(self, field, term, *, limit, viewer_id=None):
		self.calls.append(("fulltext", field, term, limit))
		if self.fulltext_error is not None:
			raise self.fulltext_error
		return self.fulltext_ids[:limit]

	async def pattern_search(self, field, term, mode, *, page, size, viewer_id=None):
		self.calls.append(("pattern", field, term, mode))
		if field is SearchField.AUTHOR:
			matches = [post for post in self.posts.values() if _matches(post.member_name, term, mode)]
		else:
			matches = [post for post in self.posts.values() if _matches(post.title, term, mode)]
		window = matches[page * size : (page + 1) * size]
		return models.Page(items=window, page=page, size=size, total=len(matches))

	async def batch_get_by_ids(self, ids):
		self.calls.append(("batch", list(ids)))
		return [self.posts[item_id] for item_id in reversed(ids) if item_id in self.posts]


def _matches(value, term, mode):
	if mode is MatchMode.PREFIX:
		return value.startswith(term)
	return term in value


def test_author_never_uses_fulltext():
	for term in ("a", "ab", "abc", "abcd", "abcdefgh"):
		plan = plan_search(SearchField.AUTHOR, term, size=20, policy=_POLICY)
		assert plan.fulltext is False


def test_author_prefix_threshold():
	assert plan_search(SearchField.AUTHOR, "abc", size=20, policy=_POLICY).primary is Strategy.SUBSTRING
	assert plan_search(SearchField.AUTHOR, "abcd", size=20, policy=_POLICY).primary is Strategy.PREFIX


def test_title_plans_by_length():
	short = plan_search(SearchField.TITLE, "ab", size=20, policy=_POLICY)
	long = plan_search(SearchField.TITLE_CONTENT, "abc", size=20, policy=_POLICY)

	assert short.primary is Strategy.SUBSTRING
	assert long.primary is Strategy.FULLTEXT
	assert long.fallback_mode is MatchMode.SUBSTRING
	assert long.candidate_limit == 200


def test_candidate_limit_is_capped():
	plan = plan_search(SearchField.TITLE, "hello", size=100, policy=SearchPolicy(candidate_cap=500))

	assert plan.candidate_limit == 500


def test_field_parsing():
	assert SearchField.parse("TITLE_CONTENT") is SearchField.TITLE_CONTENT
	assert SearchField.parse("titleContent") is SearchField.TITLE_CONTENT
	assert SearchField.parse("WRITER") is SearchField.AUTHOR
	with pytest.raises(QueryValidationError):
		SearchField.parse("comments")


def test_prefix_tsquery_and_like_escaping():
	assert build_prefix_tsquery("spring boot") == "spring:* & boot:*"
	assert build_prefix_tsquery("!!!") is None
	assert like_pattern("50%_off", MatchMode.SUBSTRING) == "%50\\%\\_off%"
	assert like_pattern("kim", MatchMode.PREFIX) == "kim%"


def test_guards_normalise_and_reject():
	assert guards.normalize_query("  hello    world ") == "hello world"
	with pytest.raises(QueryValidationError):
		guards.ensure_query_allowed("")
	with pytest.raises(QueryValidationError):
		guards.ensure_query_allowed("x" * 101)
	with pytest.raises(QueryValidationError):
		guards.ensure_page_allowed(-1, 20)
	with pytest.raises(QueryValidationError):
		guards.ensure_page_allowed(0, 0)
	with pytest.raises(QueryValidationError):
		guards.ensure_page_allowed(0, 101)


@pytest.mark.asyncio
async def test_single_character_title_goes_straight_to_substring(post_factory):
	repo = _SearchRepo([post_factory(1, title="자유게시판"), post_factory(2, title="공지"), post_factory(3, title="남자")])
	resolver = SearchResolver(repository=repo, policy=_POLICY)

	result = await resolver.search("title", "자", page=0, size=20)

	assert result.strategy is Strategy.SUBSTRING
	assert {item.id for item in result.page.items} == {1, 3}
	assert all(call[0] != "fulltext" for call in repo.calls)


@pytest.mark.asyncio
async def test_fulltext_hits_are_hydrated_in_candidate_order(post_factory):
	posts = [post_factory(post_id, title=f"spring {post_id}") for post_id in range(1, 6)]
	repo = _SearchRepo(posts, fulltext_ids=[5, 3, 1, 2, 4])
	resolver = SearchResolver(repository=repo, policy=_POLICY)

	result = await resolver.search(SearchField.TITLE, "spring", page=0, size=3)

	assert result.strategy is Strategy.FULLTEXT
	assert [item.id for item in result.page.items] == [5, 3, 1]
	assert result.page.total == 5
	assert result.page.has_next is True


@pytest.mark.asyncio
async def test_fulltext_empty_falls_back_to_substring(post_factory):
	repo = _SearchRepo([post_factory(1, title="springboot tips")], fulltext_ids=[])
	resolver = SearchResolver(repository=repo, policy=_POLICY)

	result = await resolver.search(SearchField.TITLE, "boot", page=0, size=20)

	assert result.strategy is Strategy.FULLTEXT_FALLBACK
	assert [item.id for item in result.page.items] == [1]
	assert [call[0] for call in repo.calls] == ["fulltext", "pattern"]
	assert repo.calls[1][3] is MatchMode.SUBSTRING


@pytest.mark.asyncio
async def test_fulltext_error_falls_back_to_substring(post_factory):
	repo = _SearchRepo([post_factory(1, title="spring")], fulltext_error=RuntimeError("tsquery syntax"))
	resolver = SearchResolver(repository=repo, policy=_POLICY)

	result = await resolver.search(SearchField.TITLE_CONTENT, "spring", page=0, size=20)

	assert result.strategy is Strategy.FULLTEXT_FALLBACK
	assert [item.id for item in result.page.items] == [1]


@pytest.mark.asyncio
async def test_author_prefix_search(post_factory):
	repo = _SearchRepo(
		[
			post_factory(1, member_id=1, member_name="kimchi"),
			post_factory(2, member_id=2, member_name="bokkimchi"),
		]
	)
	resolver = SearchResolver(repository=repo, policy=_POLICY)

	result = await resolver.search("author", "kimc", page=0, size=20)

	assert result.strategy is Strategy.PREFIX
	assert [item.id for item in result.page.items] == [1]


@pytest.mark.asyncio
async def test_resolver_rejects_bad_input():
	resolver = SearchResolver(repository=_SearchRepo([]), policy=_POLICY)

	with pytest.raises(QueryValidationError):
		await resolver.search("title", "   ")
	with pytest.raises(QueryValidationError):
		await resolver.search("nope", "hello")
	with pytest.raises(QueryValidationError):
		await resolver.search("title", "hello", page=0, size=500)
