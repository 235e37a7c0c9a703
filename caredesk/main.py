import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401
from .cache import cache, get_redis_client
from .config import ALLOWED_ORIGINS, ENVIRONMENT, LOG_LEVEL, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.csv_import.router import router as csv_import_router
from .domain.linking.router import router as linking_router
from .domain.masters.router import router as masters_router
from .domain.patterns.router import router as patterns_router
from .domain.records.router import router as records_router
from .domain.schedules.router import router as schedules_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 CareDesk API starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Care records schema ready")
    except SQLAlchemyError as e:
        if "already exists" in str(e):
            logger.info("Schema already created by another worker")
        else:
            logger.error(f"❌ Could not create the care records schema: {e}")

    try:
        get_redis_client()
        logger.info("✅ Redis cache reachable")
    except Exception as e:
        logger.warning(f"⚠️ Redis unavailable, pattern and config caching disabled: {e}")

    yield
    logger.info("👋 CareDesk API stopped")


app = FastAPI(title="CareDesk API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with ctx, input and url dropped; msg carries the ctx error text"""
    errors = []
    for error in exc.errors():
        item = {key: value for key, value in error.items() if key not in ("ctx", "input", "url")}
        if error.get("ctx", {}).get("error") is not None:
            item["msg"] = str(error["ctx"]["error"])
        errors.append(item)
    return errors


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("🔒 Security headers enabled")
else:
    logger.warning(f"⚠️ Security headers disabled (environment: {ENVIRONMENT})")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Routes
app.include_router(masters_router)
app.include_router(patterns_router)
app.include_router(schedules_router)
app.include_router(records_router)
app.include_router(linking_router)
app.include_router(csv_import_router)


@app.get("/")
def root():
    return {"message": "CareDesk API is running"}


@app.get("/health")
def health():
    return {"status": "healthy", "cache": "enabled" if cache.available else "disabled"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
