# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import passes, verification, scanner, health
from app.database import create_tables
from app.config import settings
from app.services.gate_scanner import gate_scanner
from app.services.pass_encoder import normalize_base_path, resolve_origin
from app.utils.token_parser import VERIFY_SEGMENT
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

BASE_PATH = normalize_base_path(settings.BASE_PATH)

app = FastAPI(
    title="Community Visitor Pass API",
    description="Visitor invitations, QR passes and gate verification for residents and guards.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (resident app + guard tablets call the API from the browser) ──────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the resident app origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for the API.
    Verification links (/verify-visitor/...) stay open; they are opened by
    whoever scans the visitor's QR code.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        path = request.url.path
        if path in open_paths or path.startswith(f"{BASE_PATH}/{VERIFY_SEGMENT}/") or not settings.API_KEY:
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


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(passes.router,       prefix="/api/v1", tags=["🎫 Visitor Passes"])
app.include_router(verification.router, prefix="/api/v1", tags=["✅ Verification"])
app.include_router(scanner.router,      prefix="/api/v1", tags=["📷 Gate Scanner"])
app.include_router(health.router,       prefix="/api/v1", tags=["💚 Health"])

# Verification links printed into QR codes: <origin><BASE_PATH>/verify-visitor/<token>
app.include_router(verification.public_router, prefix=BASE_PATH, tags=["✅ Verification"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Visitor Pass Backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🔗 Pass links: {resolve_origin()}{BASE_PATH}/{VERIFY_SEGMENT}/<token>")
    logger.info(f"📷 Gate scanner camera: {settings.SCANNER_CAMERA_SOURCE}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Visitor Pass Backend shutting down...")
    if gate_scanner.is_active:
        gate_scanner.cancel()
