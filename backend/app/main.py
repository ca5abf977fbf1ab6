import hmac
import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from app.api.routes import router
from app.config import settings
from app.database import get_db, init_db
from app.exceptions import ShipRegistryError
from app.schemas.error import ErrorResponse

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables at startup."""
    init_db()
    logger.info("Ship registry %s ready (database: %s)", settings.VERSION, settings.DATABASE_URL.split("://")[0])
    yield


app = FastAPI(
    title="Ship Registry",
    description="Record management for starships: filtered listing, counting and CRUD.",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS origins from settings (supports comma-separated env var)
cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API key authentication middleware
class APIKeyMiddleware(BaseHTTPMiddleware):
    """Simple API key check. If SHIP_REGISTRY_API_KEY is unset, all requests pass."""

    async def dispatch(self, request: Request, call_next):
        if settings.SHIP_REGISTRY_API_KEY is not None:
            # Allow health check and OpenAPI docs without auth
            if request.url.path not in ("/health", "/docs", "/openapi.json", "/redoc"):
                api_key = request.headers.get("X-API-Key")
                if not hmac.compare_digest(api_key or "", settings.SHIP_REGISTRY_API_KEY):
                    return JSONResponse(
                        status_code=401,
                        content=ErrorResponse(detail="Invalid or missing API key", code="unauthorized").model_dump(),
                    )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)

app.include_router(router, prefix=settings.API_PREFIX)


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(ShipRegistryError)
async def ship_registry_error_handler(request: Request, exc: ShipRegistryError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_error(exc).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Unparseable parameters and bodies are bad requests, same as failed field rules
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(detail=detail or "Malformed request", code="bad_request").model_dump(),
    )


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(detail="An unexpected error occurred.", code="internal_error").model_dump(),
    )


@app.get("/health", tags=["system"])
def health(db: Session = Depends(get_db)) -> dict:
    """Health check with DB latency measurement."""
    t0 = time.time()
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"
    latency_ms = round((time.time() - t0) * 1000, 1)

    return {
        "status": "ok",
        "version": settings.VERSION,
        "database": {"status": db_status, "latency_ms": latency_ms},
    }
