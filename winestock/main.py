"""
Wine Stock — FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from winestock.core.config import get_settings
from winestock.core.errors import WineStockError
from winestock.core.redis_client import close_redis
from winestock.db.database import engine, Base
from winestock.middleware.auth import JWTAuthMiddleware
from winestock.middleware.rate_limiter import SlidingWindowRateLimiter
from winestock.api import auth, wine, history, health

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("winestock")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables (no migration tool; schema is created in place)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    yield
    # Shutdown
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Wine Stock Service",
    description="Wine stock ledger with an append-only audit history.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

# ── Auth / Rate Limiting ──────────────────────────────────────────────────────
app.add_middleware(JWTAuthMiddleware)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(SlidingWindowRateLimiter)

# ── CORS (outermost) ──────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Prometheus Metrics ────────────────────────────────────────────────────────
if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


# ── Error envelopes ───────────────────────────────────────────────────────────
@app.exception_handler(WineStockError)
async def _domain_exc(_req: Request, exc: WineStockError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def _http_exc(_req: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _validation_exc(_req: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def _unhandled_exc(req: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", req.method, req.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(auth.router)
app.include_router(wine.router)
app.include_router(history.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
