"""ClearCause API - FastAPI app with modular routers"""
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from pathlib import Path
import sys
import time
import logging

# Ensure project root is in path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

import config
from core.errors import ErrorCode, PlatformError
from database import init_db, close_db, check_db_health
from services import auth_service
from services.audit_service import request_meta

# Routers
from api import auth
from api.core import RouterConfig
from api.routers import admin, auth as auth_routes, campaigns, categories, charity, donations, feedback, files, notifications, reviews, users
from api.utils.responses import error, success
from api.websockets import manager, register_event_forwarding

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

config.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)


# === Lifespan ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await init_db()
        await auth_service.ensure_bootstrap_admin(config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
        logger.info("Database initialized")
    except Exception as e:
        logger.critical(f"Failed to initialize database: {e}")

    register_event_forwarding()

    yield

    # Shutdown
    await close_db()


# === App Setup ===

app = FastAPI(title="ClearCause API", lifespan=lifespan)

app.mount("/uploads", StaticFiles(directory=str(config.UPLOADS_DIR)), name="uploads")


# === Middleware ===

@app.middleware("http")
async def context_middleware(request: Request, call_next):
    """Expose client details to the audit log and time the request"""
    start_time = time.time()
    token = request_meta.set({
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    })

    logger.info(f"➡️  {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"❌ Request failed: {request.method} {request.url.path} - {duration:.2f}s - {e}")
        raise
    finally:
        request_meta.reset(token)

    duration = time.time() - start_time
    if duration > config.SLOW_REQUEST_THRESHOLD:
        logger.warning(f"🐢 Slow request: {request.method} {request.url.path} {duration:.2f}s")

    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials="*" not in config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error handlers ===

@app.exception_handler(PlatformError)
async def platform_error_handler(request: Request, exc: PlatformError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc!r}")
    return error(exc.message, exc.code.value, exc.status_code, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "input"
    return error(f"{field}: {first.get('msg', 'Invalid value')}", ErrorCode.VALIDATION_ERROR.value, 400,
                 {"field": field})


_HTTP_CODES = {
    401: ErrorCode.UNAUTHORIZED, 403: ErrorCode.FORBIDDEN, 404: ErrorCode.NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT, 413: ErrorCode.FILE_TOO_LARGE, 429: ErrorCode.RATE_LIMIT_EXCEEDED,
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_CODES.get(exc.status_code, ErrorCode.INVALID_INPUT if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR)
    return error(str(exc.detail), code.value, exc.status_code)


# === Setup Routers ===

router_config = RouterConfig(
    get_current_user=auth.get_current_user,
    get_optional_user=auth.get_optional_user,
    require_role=auth.require_role,
)

for module in (auth_routes, users, campaigns, categories, donations, charity, reviews, feedback, admin, files, notifications):
    app.include_router(module.setup_routes(router_config))


# === Health ===

@app.get("/health")
async def health():
    if await check_db_health():
        return success({"status": "ok", "database": "ok"})
    return error("Database unavailable", ErrorCode.DATABASE_ERROR.value, 503)


# === Realtime ===

@app.websocket("/ws/campaigns/{campaign_id}")
async def campaign_updates(websocket: WebSocket, campaign_id: str):
    """Push donation and status events for one campaign"""
    await manager.connect(websocket, campaign_id)
    try:
        while True:
            # Clients only listen; reading keeps the socket open and surfaces disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket, campaign_id)
