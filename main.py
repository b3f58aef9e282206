"""FastAPI entry point for the reading progress service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from errors.exceptions import NotFoundError, StoreError, ValidationError
from services.fact_store import get_fact_store
from services.middleware import RequestIdMiddleware, configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the fact store connection pool."""
    store = get_fact_store()
    await store.start()
    yield
    await store.close()


app = FastAPI(
    title="Reading Progress Service",
    description="Progress, scoring and HOTS grading engine for reading comprehension",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


# ── Error mapping ───────────────────────────────────────────
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "validation", "field": exc.field, "detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"error": "content unavailable", "entity": exc.entity_type, "id": exc.entity_id},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Fact store failure: %s", exc)
    return JSONResponse(status_code=502, content={"error": "store", "detail": exc.detail})


# ── Register routers ────────────────────────────────────────
from api.analytics import router as analytics_router  # noqa: E402
from api.answers import router as answers_router  # noqa: E402
from api.grading import router as grading_router  # noqa: E402
from api.health import router as health_router  # noqa: E402
from api.progress import router as progress_router  # noqa: E402

app.include_router(health_router)
app.include_router(answers_router)
app.include_router(progress_router)
app.include_router(grading_router)
app.include_router(analytics_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
    )
