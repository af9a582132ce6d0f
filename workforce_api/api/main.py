from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workforce_api.core.deps import get_tenant_id, is_module_enabled
from workforce_api.core.enums import ModuleKey
from workforce_api.core.errors import WorkforceError
from workforce_api.core.logging import configure_logging, correlation_id_var, tenant_id_var, user_id_var
from workforce_api.core.security import get_token_claims
from workforce_api.core.settings import get_app_settings
from workforce_api.db.run_migrations import main as run_alembic
from workforce_api.db.seed import seed_all
from workforce_api.schemas.common import ErrorInfo, ErrorResponse, MessageResponse, TenantEcho
from workforce_api.schemas.realtime import WsEnvelope
from workforce_api.services.realtime import broadcast_manager

# Routers
from workforce_api.api.routes.auth import router as auth_router
from workforce_api.api.routes.users import router as users_router
from workforce_api.api.routes.roles import router as roles_router
from workforce_api.api.routes.businesses import router as businesses_router
from workforce_api.api.routes.employees import router as employees_router
from workforce_api.api.routes.scheduling import router as scheduling_router
from workforce_api.api.routes.reports import router as reports_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "System", "description": "System and operational endpoints."},
    {"name": "Health", "description": "Liveness and readiness probes."},
    {"name": "Auth", "description": "Authentication and token endpoints."},
    {"name": "Users", "description": "User administration endpoints."},
    {"name": "Roles", "description": "Role administration endpoints."},
    {"name": "Businesses", "description": "Business signup and module installation."},
    {"name": "Employees", "description": "Positions and employee assignments."},
    {"name": "Scheduling", "description": "Schedules, shifts, open-shift claiming, availability and swaps."},
    {"name": "Reports", "description": "Exportable business reports (CSV/Excel/PDF)."},
    {
        "name": "WebSocket",
        "description": "WebSocket usage, endpoints, and connection details.",
    },
]

WEBSOCKET_ENDPOINTS: List[Dict[str, Any]] = [
    {
        "path": "/ws/scheduling",
        "summary": "Real-time scheduling changes of the business (server push).",
        "query": ["token"],
        "headers": ["X-Tenant-ID"],
        "messages": {
            "client_to_server": ["ping"],
            "server_to_client": [
                "scheduling.schedule.published",
                "scheduling.schedule.updated",
                "scheduling.schedule.deleted",
                "scheduling.shift.created",
                "scheduling.shift.updated",
                "scheduling.shift.deleted",
                "scheduling.shift.assigned",
                "scheduling.shift.claimed",
                "scheduling.swap.requested",
                "scheduling.swap.approved",
                "scheduling.swap.denied",
                "scheduling.swap.cancelled",
            ],
        },
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and business id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    tenant = request.headers.get("X-Tenant-ID")
    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(tenant)
    token_user = user_id_var.set(None)
    request.state.correlation_id = corr
    request.state.tenant_id = tenant

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        tenant_id_var.reset(token_tenant)
        user_id_var.reset(token_user)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    corr = getattr(request.state, "correlation_id", None)
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=corr,
        tenant_id=getattr(request.state, "tenant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    headers = {"X-Correlation-ID": corr} if corr else None
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"), headers=headers)


@app.exception_handler(WorkforceError)
async def workforce_error_handler(request: Request, exc: WorkforceError):
    """Render domain errors raised by services with their own status code and type."""
    if exc.status_code >= 500:
        logger.error("Domain error %s: %s", exc.error_type, exc.message)
    else:
        logger.info("Request rejected (%s): %s", exc.error_type, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details or None,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    response = _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=json.loads(json.dumps(exc.errors(), default=str)),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    This ensures the database schema is up to date. Seeding is opt-in via settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/tenant",
    response_model=TenantEcho,
    summary="Business Health Echo",
    description="Echoes the business context to verify header handling.",
    tags=["Health"],
)
async def tenant_health_echo(tenant_id=Depends(get_tenant_id)) -> TenantEcho:
    """Echo the X-Tenant-ID business id."""
    return TenantEcho(tenant_id=tenant_id)


# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for WebSocket endpoints, including authentication and message types.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """
    Describe how to connect to WebSocket endpoints in this service.

    Returns:
        JSON object with usage notes and the endpoint list.
    """
    return {
        "usage": (
            "Connect with a valid access token as a 'token' query parameter and include the 'X-Tenant-ID' header. "
            "The server pushes JSON envelopes { type, payload, at, user_id?, channel? } whenever scheduling "
            "data of the business changes. Send 'ping' to receive 'pong'."
        ),
        "security": {
            "token": "Access JWT with 'sub' (user id) and 'tenant_id' matching the X-Tenant-ID header.",
            "header": "X-Tenant-ID: UUID",
            "close_codes": {
                "4401": "missing or invalid token",
                "4403": "business mismatch or scheduling module not installed",
            },
        },
        "endpoints": WEBSOCKET_ENDPOINTS,
        "notes": "WebSocket endpoints are not represented in OpenAPI schema; refer to this endpoint for usage.",
    }


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(roles_router)
api_v1.include_router(businesses_router)
api_v1.include_router(employees_router)
api_v1.include_router(scheduling_router)
api_v1.include_router(reports_router)

# Attach api_v1 to app
app.include_router(api_v1)


async def _authorize_websocket(websocket: WebSocket) -> Optional[Tuple[str, str]]:
    """
    Check the 'token' query param against the 'X-Tenant-ID' header of an accepted socket.

    Closes the socket with 4401 (missing/invalid token) or 4403 (business mismatch or
    scheduling module not enabled) and returns None on failure; returns
    (business_id, user_id) otherwise.
    """
    tenant_id = websocket.headers.get("x-tenant-id")
    claims = get_token_claims(websocket.query_params.get("token"))
    if claims is None or not tenant_id or not claims.get("sub"):
        await websocket.close(code=4401)
        return None
    if str(claims.get("tenant_id")) != str(tenant_id):
        await websocket.close(code=4403)
        return None
    if not await is_module_enabled(tenant_id, ModuleKey.SCHEDULING.value):
        logger.info("Rejected scheduling socket: module not installed for business %s", tenant_id)
        await websocket.close(code=4403)
        return None
    return str(tenant_id), str(claims["sub"])


def _is_ping(message: str) -> bool:
    if message.strip().lower() == "ping":
        return True
    try:
        data = json.loads(message)
    except ValueError:
        return False
    return isinstance(data, dict) and data.get("type") == "ping"


# PUBLIC_INTERFACE
@app.websocket("/ws/scheduling")
async def ws_scheduling(websocket: WebSocket):
    """
    WebSocket endpoint for real-time scheduling updates of one business.

    Security:
      - Query param 'token' must be a valid access JWT.
      - Header 'X-Tenant-ID' must match the token's tenant_id.
      - The scheduling module must be enabled for the business (4403 otherwise).
    Messages:
      - Server -> Client: 'scheduling.<event>' envelopes (shift.claimed, schedule.published, ...)
      - Client -> Server: 'ping' (plain or {"type": "ping"}) answered with 'pong'; other messages ignored.
    """
    await websocket.accept()
    auth = await _authorize_websocket(websocket)
    if auth is None:
        return
    tenant_id, user_id = auth

    topic = broadcast_manager.scheduling_topic(tenant_id)
    await broadcast_manager.connect(topic, websocket)
    await websocket.send_json(
        WsEnvelope(type="scheduling.connected", payload={"topic": topic}, user_id=user_id).model_dump(mode="json")
    )

    try:
        while True:
            message = await websocket.receive_text()
            if _is_ping(message):
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await broadcast_manager.disconnect(topic, websocket)
    except Exception:
        logger.exception("Error on ws_scheduling connection")
        await broadcast_manager.disconnect(topic, websocket)
        await websocket.close()
