from typing import Optional
from inkmatch.domain.models.match import CustomerQuery, MatchResultSet
import hashlib
import json

def _h(query: CustomerQuery, limit: int) -> str:
    """
    Short stable hash of the query payload and limit.
    Used to generate unique cache keys for different searches.
    """
    payload = query.model_dump(mode="json", exclude={"customer_id"})
    s = json.dumps({"q": payload, "k": limit}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(s.encode()).hexdigest()[:16]

class MatchCacheRepo:
    """
    Adapter for caching ranked match results in Redis.
    No business logic here, just cache access (get/set).
    """
    def __init__(self, redis, key_prefix: str = "match"):
        self.cache = redis
        self.prefix = key_prefix

    def key(self, version: str, query: CustomerQuery, limit: int) -> str:
        """
        Combines API version, prefix and a hash of the query so v1/v2 results never collide.
        """
        return f"{version}:{self.prefix}:{_h(query, limit)}"

    async def get(self, key: str) -> Optional[MatchResultSet]:
        if raw := await self.cache.get(key):
            return MatchResultSet.model_validate_json(raw)
        return None

    async def set(self, key: str, result: MatchResultSet, ttl: int) -> None:
        await self.cache.set(key, result.model_dump_json(), ex=ttl)
