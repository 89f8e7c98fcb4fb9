"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from settings_cloud.backups.routes import router as settings_router
from settings_cloud.config import Settings, get_settings
from settings_cloud.data.routes import router as data_router
from settings_cloud.db.session import dispose_engine, init_db
from settings_cloud.errors import BackendUnavailable
from settings_cloud.limiter import limiter
from settings_cloud.metrics import router as metrics_router

log = logging.getLogger(__name__)

VERSION = "2.0.0"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: Settings) -> logging.Logger:
    """Route the settings_cloud logger tree to stderr and, if log_file is set, a file."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    package_log = logging.getLogger("settings_cloud")
    package_log.setLevel(level)
    for handler in list(package_log.handlers):
        package_log.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler()]
    log_file = settings.log_file.strip()
    open_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            open_error = e
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_log.addHandler(handler)

    if open_error is not None:
        package_log.warning("Could not open log file %s: %s", log_file, open_error)
    elif log_file:
        package_log.info("Logging to file %s", log_file)
    return package_log


setup_logging(get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, release the pool on shutdown."""
    log.info("Startup: initializing database")
    await init_db()
    log.info("Startup complete")
    yield
    await dispose_engine()
    log.info("Shutdown")


app = FastAPI(title="Settings Cloud API", version=VERSION, lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET", "HEAD", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Version"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
    """Storage failures are retryable: 503 with Retry-After."""
    log.error("Backend unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage temporarily unavailable"},
        headers={"Retry-After": "5"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Return generic 500 without leaking stack trace or internals."""
    if isinstance(exc, HTTPException):
        raise exc
    log.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(settings_router)
app.include_router(data_router)
app.include_router(metrics_router)


@app.get("/health")
@limiter.exempt
def health() -> JSONResponse:
    """Health check for Docker and the reverse proxy. Exempt from rate limiting."""
    return JSONResponse(content={"status": "ok"})


@app.get("/")
@limiter.exempt
def root():
    """Redirect to the configured landing page, else list the endpoints."""
    redirect_url = get_settings().api_root_redirect_url.strip()
    if redirect_url:
        if redirect_url.startswith(("http://", "https://")):
            return RedirectResponse(redirect_url, status_code=308)
        log.debug("Ignoring invalid redirect URL: %s", redirect_url)
    return JSONResponse(
        content={
            "message": "Settings Cloud",
            "version": VERSION,
            "endpoints": [
                "/health",
                "/v1/settings",
                "/v2/manifest",
                "/v2/data/{key}",
                "/v2/sync",
            ],
        }
    )
