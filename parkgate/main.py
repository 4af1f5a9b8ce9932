# parkgate/main.py
"""
FastAPI application entry point.
Includes security middleware, error handlers, the device socket, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from parkgate.routers import devices, health, ledger, parking
from parkgate.database import SessionLocal, create_tables
from parkgate.config import settings
from parkgate.services.connection_registry import clear_all_connection_ids, registry, run_connection_sweeper
from parkgate.services.errors import ParkingError
from parkgate.services.notification_gateway import gateway
from parkgate.utils.logger import get_logger
import time
import asyncio

logger = get_logger(__name__)

app = FastAPI(
    title="ParkGate API",
    description="Automated parking facility: booth validation, capacity ledger, tariffs and booth devices.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow dashboard on same LAN to call the API) ──────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard IP in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for HTTP endpoints.
    Booth validation calls come from booth controllers that are provisioned with the key;
    health and docs stay open. Set API_KEY in .env. Leave empty to disable auth.
    """
    open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Error Handlers ───────────────────────────────────────────────────────────
@app.exception_handler(ParkingError)
async def parking_error_handler(request: Request, exc: ParkingError):
    """Rejections are rendered as the booth screen message, barrier closed."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_screen())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(parking.router, prefix="/api/v1", tags=["🚗 Parking"])
app.include_router(ledger.router,  prefix="/api/v1", tags=["🅿️  Ledger"])
app.include_router(devices.router, prefix="/api/v1", tags=["📟 Booth Devices"])
app.include_router(health.router,  prefix="/api/v1", tags=["💚 Health"])

_sweeper_task = None


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    global _sweeper_task
    logger.info("🚀 ParkGate starting up...")
    create_tables()
    logger.info("✅ Database tables ready")

    db = SessionLocal()
    try:
        clear_all_connection_ids(db)
    finally:
        db.close()

    if settings.ENABLE_CONNECTION_SWEEPER:
        _sweeper_task = asyncio.create_task(
            run_connection_sweeper(registry, SessionLocal, settings.CONNECTION_SWEEP_INTERVAL_SECONDS)
        )
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 ParkGate shutting down...")
    if _sweeper_task is not None:
        _sweeper_task.cancel()
    await gateway.drain()
