from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError
from inkmatch.core.config import get_settings
from inkmatch.core.errors import InkMatchError
from inkmatch.core.lifespan import lifespan
from inkmatch.core.logging import configure_logging
from inkmatch.api.v1.routers.health import router as health_router
from inkmatch.api.v1.routers.matches import router as matches_router
from inkmatch.api.v1.routers.bookings import router as bookings_router
from inkmatch.api.v1.routers.artists import router as artists_router
import logging

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://app.inkmatch.io,https://admin.inkmatch.io"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,                        # keep False for a simple preflight
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],                            # or ["content-type","x-api-version"]
    max_age=86400,
)

# ------- Errors -------
@app.exception_handler(InkMatchError)
async def inkmatch_error_handler(request: Request, exc: InkMatchError):
    level = logging.WARNING if exc.status_code >= 500 else logging.INFO
    logger.log(level, "%s %s -> %s code=%s msg=%s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "details": exc.details, "retryable": exc.retryable},
    )

# domain models built inside a handler (e.g. a counter offer proposing nothing)
@app.exception_handler(PydanticValidationError)
async def model_validation_handler(request: Request, exc: PydanticValidationError):
    logger.info("%s %s -> 422 invalid model errors=%s", request.method, request.url.path, exc.error_count())
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid request",
            "code": "validation_error",
            "details": {"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
            "retryable": False,
        },
    )

# ------- Routes -------
app.include_router(health_router)
app.include_router(matches_router)           # findMatches
app.include_router(bookings_router)          # booking negotiation
app.include_router(artists_router)           # profiles, portfolio, schedule
