# inkmatch/api/deps.py
from fastapi import Depends, Request
from inkmatch.core.config import Settings, get_settings
from inkmatch.db.redis import get_redis
from inkmatch.db.store import DocumentStore
from inkmatch.domain.services.match_ranker_svc import MatchRanker
from inkmatch.domain.services.messaging_svc import Messenger
from inkmatch.domain.services.negotiation_svc import NegotiationCoordinator

# Backing store chosen at startup (Mongo or in-memory), see core/lifespan
def store_dep(request: Request) -> DocumentStore:
    return request.app.state.store

def messenger_dep(request: Request) -> Messenger:
    return request.app.state.messenger

# Redis client or None
def redis_dep():
    return get_redis()

def settings_dep() -> Settings:
    return get_settings()

def ranker_dep(
    store: DocumentStore = Depends(store_dep),
    redis = Depends(redis_dep),
    settings: Settings = Depends(settings_dep),
) -> MatchRanker:
    return MatchRanker(store, settings, redis=redis)

def coordinator_dep(
    store: DocumentStore = Depends(store_dep),
    messenger: Messenger = Depends(messenger_dep),
    redis = Depends(redis_dep),
    settings: Settings = Depends(settings_dep),
) -> NegotiationCoordinator:
    return NegotiationCoordinator(store, messenger, settings, redis=redis)
