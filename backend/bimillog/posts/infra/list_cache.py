"""Redis list cache holding materialised hot lists."""

from __future__ import annotations

import json
import logging
from typing import Sequence
from uuid import uuid4

from pydantic import ValidationError

from bimillog.infra.redis import redis_client
from bimillog.posts.domain.models import ContentSummary

_LOG = logging.getLogger(__name__)

_LIST_KEY = "post:list:{name}"

# Entries are serialised with ``id`` first, so ARGV[1] is the '{"id":<n>,' prefix.
_REMOVE_SCRIPT = """
local rows = redis.call('LRANGE', KEYS[1], 0, -1)
local prefix = ARGV[1]
local removed = 0
for i = 1, #rows do
    if string.sub(rows[i], 1, #prefix) == prefix then
        removed = removed + redis.call('LREM', KEYS[1], 0, rows[i])
    end
end
return removed
"""


def list_key(name: str) -> str:
    return _LIST_KEY.format(name=name)


class ListCache:
    """Whole-list replace and read for cached post summaries."""

    async def replace_all(self, name: str, items: Sequence[ContentSummary], ttl_seconds: int) -> int:
        """Swap the cached list for ``items`` atomically.

        Entries are written to a temporary key and renamed over the live key in
        one MULTI block. An empty ``items`` leaves the cache untouched.
        """

        if not items:
            return 0
        key = list_key(name)
        tmp_key = f"{key}:tmp:{uuid4().hex}"
        payload = [item.model_dump_json() for item in items]
        pipe = redis_client.pipeline(transaction=True)
        pipe.rpush(tmp_key, *payload)
        pipe.expire(tmp_key, int(ttl_seconds))
        pipe.rename(tmp_key, key)
        await pipe.execute()
        return len(payload)

    async def read_all(self, name: str) -> list[ContentSummary]:
        raw_items = await redis_client.lrange(list_key(name), 0, -1)
        items: list[ContentSummary] = []
        for raw in raw_items:
            try:
                items.append(ContentSummary.model_validate_json(raw))
            except (ValidationError, ValueError):
                _LOG.warning("posts.list_cache.corrupt_entry", extra={"list": name})
        return items

    async def exists(self, name: str) -> bool:
        return bool(await redis_client.exists(list_key(name)))

    async def remove_item(self, name: str, item_id: int) -> int:
        """Drop ``item_id`` from the cached list, keeping the remaining order and TTL.

        The scan and the removal run in one script, so a snapshot renamed in
        concurrently is either fully scanned or not touched.
        """

        prefix = '{"id":' + json.dumps(int(item_id)) + ","
        removed = await redis_client.eval(_REMOVE_SCRIPT, 1, list_key(name), prefix)
        return int(removed)


__all__ = ["ListCache", "list_key"]
