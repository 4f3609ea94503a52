"""Search strategy selection for post search.

The plan for a query depends only on its shape (field selector, term length and
page size), so it is computed by a pure function and executed separately by the
resolver. Each field selector maps to a planner in ``_PLANNERS``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from bimillog.posts.domain.exceptions import QueryValidationError
from bimillog.settings import settings

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)
_FIELD_ALIASES = {"titlecontent": "title_content", "writer": "author"}


class SearchField(str, Enum):
	TITLE = "title"
	TITLE_CONTENT = "title_content"
	AUTHOR = "author"

	@classmethod
	def parse(cls, value: "str | SearchField") -> "SearchField":
		if isinstance(value, cls):
			return value
		key = str(value).strip().lower()
		try:
			return cls(_FIELD_ALIASES.get(key, key))
		except ValueError as exc:
			raise QueryValidationError("unsupported_search_field") from exc


class MatchMode(str, Enum):
	PREFIX = "prefix"
	SUBSTRING = "substring"


class Strategy(str, Enum):
	FULLTEXT = "fulltext"
	PREFIX = "prefix"
	SUBSTRING = "substring"
	FULLTEXT_FALLBACK = "fulltext_fallback"


@dataclass(frozen=True, slots=True)
class SearchPolicy:
	fulltext_min_length: int = 3
	prefix_threshold: int = 4
	candidate_cap: int = 1000
	candidate_multiplier: int = 10

	@classmethod
	def from_settings(cls) -> "SearchPolicy":
		return cls(
			fulltext_min_length=settings.search_fulltext_min_length,
			prefix_threshold=settings.search_author_prefix_threshold,
			candidate_cap=settings.search_candidate_cap,
		)

	def candidate_limit(self, size: int) -> int:
		return min(size * self.candidate_multiplier, self.candidate_cap)


@dataclass(frozen=True, slots=True)
class SearchPlan:
	"""What to run for a query.

	``fulltext`` plans carry a candidate limit and fall back to ``fallback_mode``
	when the full-text step yields nothing or fails. Pattern plans run
	``fallback_mode`` directly.
	"""

	fulltext: bool
	fallback_mode: MatchMode
	candidate_limit: Optional[int] = None

	@property
	def primary(self) -> Strategy:
		if self.fulltext:
			return Strategy.FULLTEXT
		return Strategy.PREFIX if self.fallback_mode is MatchMode.PREFIX else Strategy.SUBSTRING


def _plan_author(term: str, size: int, policy: SearchPolicy) -> SearchPlan:
	if len(term) >= policy.prefix_threshold:
		return SearchPlan(fulltext=False, fallback_mode=MatchMode.PREFIX)
	return SearchPlan(fulltext=False, fallback_mode=MatchMode.SUBSTRING)


def _plan_text(term: str, size: int, policy: SearchPolicy) -> SearchPlan:
	if len(term) >= policy.fulltext_min_length:
		return SearchPlan(
			fulltext=True,
			fallback_mode=MatchMode.SUBSTRING,
			candidate_limit=policy.candidate_limit(size),
		)
	return SearchPlan(fulltext=False, fallback_mode=MatchMode.SUBSTRING)


_PLANNERS: dict[SearchField, Callable[[str, int, SearchPolicy], SearchPlan]] = {
	SearchField.TITLE: _plan_text,
	SearchField.TITLE_CONTENT: _plan_text,
	SearchField.AUTHOR: _plan_author,
}


def plan_search(field: SearchField, term: str, *, size: int, policy: SearchPolicy | None = None) -> SearchPlan:
	"""Return the search plan for a normalised term."""

	return _PLANNERS[field](term, size, policy or SearchPolicy.from_settings())


def build_prefix_tsquery(term: str) -> Optional[str]:
	"""Turn a term into a ``to_tsquery`` expression with trailing wildcards.

	Returns ``None`` when the term has no word characters, in which case the
	full-text step has nothing to look for.
	"""

	tokens = _TOKEN_RE.findall(term)
	if not tokens:
		return None
	return " & ".join(f"{token}:*" for token in tokens)


def like_pattern(term: str, mode: MatchMode) -> str:
	"""Build an ILIKE pattern, escaping wildcard characters in the term."""

	escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
	if mode is MatchMode.PREFIX:
		return f"{escaped}%"
	return f"%{escaped}%"


__all__ = [
	"MatchMode",
	"SearchField",
	"SearchPlan",
	"SearchPolicy",
	"Strategy",
	"build_prefix_tsquery",
	"like_pattern",
	"plan_search",
]
