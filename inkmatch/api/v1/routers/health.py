# inkmatch/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter, Depends
from inkmatch.api.deps import redis_dep, settings_dep, store_dep
from inkmatch.db.store import MongoDocumentStore

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


@router.get("/health")
async def health(store = Depends(store_dep), redis = Depends(redis_dep), settings = Depends(settings_dep)):
    """
    Tolerant health check:
    - ping Mongo when it backs the store ('memory' for the in-process store)
    - Redis 'skipped' when not configured
    """
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
    }

    # --- Store ---
    if isinstance(store, MongoDocumentStore):
        try:
            await store.db.command("ping")
            checks["store"] = "ok"
        except Exception as e:
            checks["store"] = f"error: {e}"
    else:
        checks["store"] = "memory"

    # --- Redis (tolerant) ---
    try:
        if redis:
            await redis.ping()
            checks["redis"] = "ok"
        else:
            checks["redis"] = "skipped"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "ok" if all(checks[k] in ("ok", "skipped", "memory") for k in ("store", "redis")) else "error"
    return {"status": status, "checks": checks, "timestamp": int(time.time())}
