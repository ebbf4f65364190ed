# inkmatch/api/v1/routers/matches.py
from fastapi import APIRouter, Depends
from typing import Annotated
import time
import logging

from inkmatch.api.deps import ranker_dep
from inkmatch.core.versioning import resolve_version
from inkmatch.domain.models.match import CustomerQuery
from inkmatch.domain.services.match_ranker_svc import MatchRanker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["matches"])

VersionDep = Annotated[str, Depends(resolve_version)]

@router.post("/matches")
async def find_matches(
    query: CustomerQuery,
    version: VersionDep,
    ranker: MatchRanker = Depends(ranker_dep),
):
    """
    Ranked artists for a customer's design, budget and location.
    Pipeline: result cache → bounding-box candidates → per-artist scoring → threshold → sort → cache.
    """
    logger.info(
        "Request: find_matches style=%s radius_km=%s budget=%s-%s limit=%s version=%s",
        query.descriptor.style, query.max_radius_km, query.budget.min, query.budget.max, query.limit, version,
    )
    start_time = time.perf_counter()

    res = await ranker.find_matches(query, version=version)

    logger.info(
        "Response: find_matches count=%s candidates=%s elapsed_time=%.4fs",
        res.count, res.candidates, time.perf_counter() - start_time,
    )
    return res.model_dump(mode="json")
