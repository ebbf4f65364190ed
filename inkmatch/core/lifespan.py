# inkmatch/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from inkmatch.db import mongo, redis as r
from inkmatch.db.store import InMemoryDocumentStore, MongoDocumentStore
from inkmatch.domain.services.messaging_svc import LogMessenger, StoreMessenger
from inkmatch.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo when configured, otherwise an in-process store (local runs)
    if settings.MONGO_URI:
        await mongo.connect(settings)
        store = MongoDocumentStore(mongo.get_db())
        messenger = StoreMessenger(store)
    else:
        logger.warning("No MONGO_URI provided, using the in-memory document store")
        store = InMemoryDocumentStore()
        messenger = LogMessenger()

    # Redis optional (match cache + slot locks)
    await r.connect(settings)

    app.state.store = store
    app.state.messenger = messenger

    # Application runs
    yield

    # --- Shutdown ---
    await r.disconnect()
    if settings.MONGO_URI:
        await mongo.disconnect()
        logger.info("Mongo disconnected")
