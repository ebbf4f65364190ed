# inkmatch/domain/services/match_ranker_svc.py
import time
import logging
from datetime import datetime, timezone
from typing import List, Optional

from inkmatch.core.config import Settings
from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.artist import GeoPoint
from inkmatch.domain.models.match import CustomerQuery, MatchHistoryEntry, MatchResult, MatchResultSet
from inkmatch.domain.repositories.artist_repo import ArtistRepo
from inkmatch.domain.repositories.history_repo import MatchHistoryRepo
from inkmatch.domain.repositories.match_cache_repo import MatchCacheRepo
from inkmatch.domain.services.constants import HISTORY_TOP_K
from inkmatch.domain.services.geo import bounding_box
from inkmatch.domain.services.scoring_svc import score_artist

logger = logging.getLogger(__name__)


class GeoIndex:
    """Spatial candidate lookup only: ids of active artists inside the query's bounding box."""

    def __init__(self, artist_repo: ArtistRepo):
        self.artist_repo = artist_repo

    async def candidates(self, center: GeoPoint, radius_km: float) -> List[str]:
        box = bounding_box(center, radius_km)
        ids = await self.artist_repo.ids_in_box(box)
        logger.debug("geo_index box=%s candidates=%s", tuple(round(v, 4) for v in box), len(ids))
        return ids


def rank_key(result: MatchResult):
    """Score desc, then artist score desc, then distance asc, then id for full determinism."""
    distance = result.distance_km if result.distance_km is not None else float("inf")
    return (-result.score, -result.breakdown.artist, distance, result.artist_id)


class MatchRanker:
    """
    findMatches: geo candidates -> per-artist scoring -> threshold -> ordering.

    High-level flow:
      1) Try the Redis result cache (when configured).
      2) Bounding-box candidate lookup via GeoIndex.
      3) Hydrate artist profiles and score each one (pure, in-process).
      4) Drop artists beyond the radius and scores <= min_match_score,
         sort by rank_key, truncate.
      5) Cache the result set and append an audit entry (both best-effort).
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        *,
        redis=None,
        geo_index: Optional[GeoIndex] = None,
    ):
        self.settings = settings
        self.artist_repo = ArtistRepo(store)
        self.geo_index = geo_index or GeoIndex(self.artist_repo)
        self.history_repo = MatchHistoryRepo(store)
        self.cache = MatchCacheRepo(redis, key_prefix=settings.match_cache_prefix) if redis is not None else None

    async def find_matches(self, query: CustomerQuery, *, version: str = "v1") -> MatchResultSet:
        t0 = time.perf_counter()
        limit = query.limit or self.settings.match_result_limit

        # ---- 1) Result cache (fast path) -----------------------------------
        cache_key = self.cache.key(version, query, limit) if self.cache else None
        if self.cache:
            try:
                if cached := await self.cache.get(cache_key):
                    logger.info("matches cache_hit key=%s items=%s", cache_key, cached.count)
                    return cached
            except Exception as e:
                logger.warning("matches cache.get error key=%s err=%s", cache_key, e)

        # ---- 2) Candidates --------------------------------------------------
        ids = await self.geo_index.candidates(query.location, query.max_radius_km)
        if not ids:
            logger.info("matches no candidates radius_km=%s", query.max_radius_km)
            return await self._finish(query, MatchResultSet(items=[], count=0, candidates=0), cache_key, t0)

        # ---- 3) Score -------------------------------------------------------
        artists = await self.artist_repo.get_many(ids)
        scored = [score_artist(query, a) for a in artists]

        # ---- 4) Radius, threshold, order, truncate -------------------------
        # the box is a square around the circle; its corners are out of range
        in_range = [r for r in scored if r.distance_km is not None and r.distance_km <= query.max_radius_km]
        kept = [r for r in in_range if r.score > self.settings.min_match_score]
        kept.sort(key=rank_key)
        items = kept[:limit]
        logger.info(
            "matches scored candidates=%s in_range=%s kept=%s returned=%s threshold=%s",
            len(scored), len(in_range), len(kept), len(items), self.settings.min_match_score,
        )

        result = MatchResultSet(items=items, count=len(items), candidates=len(ids))
        return await self._finish(query, result, cache_key, t0)

    async def _finish(self, query: CustomerQuery, result: MatchResultSet, cache_key: Optional[str], t0: float) -> MatchResultSet:
        # ---- 5) Cache + audit (never fail the search) ----------------------
        if self.cache:
            try:
                await self.cache.set(cache_key, result, ttl=self.settings.match_cache_ttl)
            except Exception as e:
                logger.warning("matches cache.set error key=%s err=%s", cache_key, e)

        if query.customer_id and self.settings.save_match_history:
            try:
                await self.history_repo.add(self._history_entry(query, result))
            except Exception as e:
                logger.warning("matches history save failed customer_id=%s err=%s", query.customer_id, e)

        logger.info("matches done items=%s total_time=%.3fs", result.count, time.perf_counter() - t0)
        return result

    @staticmethod
    def _history_entry(query: CustomerQuery, result: MatchResultSet) -> MatchHistoryEntry:
        d = query.descriptor
        return MatchHistoryEntry(
            customer_id=query.customer_id,
            style=d.style,
            complexity=d.complexity,
            is_colorful=d.is_colorful,
            motifs=list(d.motifs),
            max_radius_km=query.max_radius_km,
            budget=query.budget,
            match_count=result.count,
            top_matches=[
                {"artist_id": m.artist_id, "score": m.score, "breakdown": m.breakdown.model_dump()}
                for m in result.items[:HISTORY_TOP_K]
            ],
            created_at=datetime.now(timezone.utc),
        )
