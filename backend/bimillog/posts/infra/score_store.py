"""Redis sorted-set helpers for post popularity scores."""

from __future__ import annotations

import logging

from bimillog.infra.redis import redis_client
from bimillog.posts.domain.models import ScoreEntry

_LOG = logging.getLogger(__name__)

_SCORE_KEY = "post:score:{name}"

# Multiplies every score by ARGV[1] and drops members that end up below ARGV[2].
_DECAY_SCRIPT = """
local rows = redis.call('ZRANGE', KEYS[1], 0, -1, 'WITHSCORES')
local factor = tonumber(ARGV[1])
local floor = tonumber(ARGV[2])
for i = 1, #rows, 2 do
    local member = rows[i]
    local score = tonumber(rows[i + 1]) * factor
    if score < floor then
        redis.call('ZREM', KEYS[1], member)
    else
        redis.call('ZADD', KEYS[1], string.format('%.17g', score), member)
    end
end
return redis.call('ZCARD', KEYS[1])
"""


def score_key(name: str) -> str:
    return _SCORE_KEY.format(name=name)


class ScoreStore:
    """Named score sets keyed by post id."""

    async def increment(self, name: str, item_id: int, delta: float) -> float:
        value = await redis_client.zincrby(score_key(name), float(delta), str(item_id))
        return float(value)

    async def top_range(self, name: str, start: int, end: int) -> list[ScoreEntry]:
        """Return the inclusive ``start..end`` window ordered by descending score.

        Equal scores are ordered by ascending item id. Redis orders them by
        member string, so the score band spanning the window is re-read and
        sorted numerically.
        """

        if start < 0 or end < start:
            return []
        key = score_key(name)
        rows = await redis_client.zrevrange(key, start, end, withscores=True)
        if not rows:
            return []
        high = float(rows[0][1])
        low = float(rows[-1][1])
        pipe = redis_client.pipeline(transaction=True)
        pipe.zcount(key, f"({high!r}", "+inf")
        pipe.zrevrangebyscore(key, high, low, withscores=True)
        above, band = await pipe.execute()
        ordered = sorted(((int(member), float(score)) for member, score in band), key=lambda row: (-row[1], row[0]))
        offset = max(start - int(above), 0)
        window = ordered[offset : offset + (end - start + 1)]
        return [
            ScoreEntry(item_id=item_id, score=score, rank=start + index + 1)
            for index, (item_id, score) in enumerate(window)
        ]

    async def remove_member(self, name: str, item_id: int) -> None:
        await redis_client.zrem(score_key(name), str(item_id))

    async def score(self, name: str, item_id: int) -> float | None:
        value = await redis_client.zscore(score_key(name), str(item_id))
        return None if value is None else float(value)

    async def size(self, name: str) -> int:
        return int(await redis_client.zcard(score_key(name)))

    async def decay_and_prune(self, name: str, factor: float, floor: float) -> int:
        """Scale every score by ``factor`` and prune entries strictly below ``floor``.

        Runs as a single Lua script so concurrent increments never interleave with
        a half-applied pass. Returns the number of surviving members.
        """

        if not 0.0 < factor < 1.0:
            raise ValueError("decay factor must be between 0 and 1 (exclusive)")
        remaining = await redis_client.eval(_DECAY_SCRIPT, 1, score_key(name), str(factor), str(floor))
        _LOG.debug(
            "posts.score_store.decayed",
            extra={"list": name, "factor": factor, "floor": floor, "remaining": remaining},
        )
        return int(remaining)


__all__ = ["ScoreStore", "score_key"]
