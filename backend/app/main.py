"""
Marketing Campaign Generator — FastAPI Backend
Personas, campaigns and AI-assisted content drafting.
All data persisted to PostgreSQL.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import access
from app.auth import resolve_token
from app.config import get_settings
from app.database import async_session, check_db_connection, init_db
from app.dependencies import connection_manager, get_generation_capability
from app.errors import AppError, from_pydantic
from app.routers import auth, campaigns, content, personas
from app.services.ai_service import GenerationCapability
from app.services.notifier import campaign_room
from app.services.persona_service import PersonaService, load_seed_file
from app.stores.sql import SqlCampaignStore, SqlPersonaStore
from app.utils import safe_error_detail

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()


async def _seed_predefined_personas():
    """Insert predefined personas from the seed file when none exist yet."""
    if not settings.seed_predefined_personas:
        return
    seeds = load_seed_file(settings.personas_seed_file or None)
    inserted = await PersonaService(SqlPersonaStore(async_session)).seed_predefined(seeds)
    if inserted:
        logger.info(f"Bootstrap: seeded {inserted} predefined personas")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Marketing Campaign Generator...")
    try:
        await init_db()
        await _seed_predefined_personas()
        logger.info("Database initialized, all tables ready.")
    except Exception as e:
        logger.error(f"Startup failed (DB/init): {e}", exc_info=True)
        # Still yield so app can serve /api/health (degraded) and logs are visible
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Marketing Campaign Generator",
    description="Persona-targeted marketing campaigns with AI-generated content",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error envelope ────────────────────────────────────────────────────

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=from_pydantic(exc).to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=500, content={"success": False, "message": safe_error_detail(exc)})


# ── Routers ───────────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api")
app.include_router(personas.router, prefix="/api")
app.include_router(campaigns.router, prefix="/api")
app.include_router(content.router, prefix="/api")


@app.get("/api/health")
async def health_check(capability: GenerationCapability = Depends(get_generation_capability)):
    db_ok = await check_db_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "service": "Marketing Campaign Generator",
        "database": "connected" if db_ok else "disconnected",
        "generation": "available" if capability.is_available() else "unavailable",
    }


# ── Real-time notifications ───────────────────────────────────────────

@app.websocket("/ws")
async def notifications_socket(websocket: WebSocket):
    """
    Push channel. Clients connect with ?token=<jwt>, are joined to their user
    room, and may send {"event": "join:campaign" | "leave:campaign", "campaignId": ...}
    or {"event": "ping"}.
    """
    try:
        actor = await resolve_token(websocket.query_params.get("token"), async_session)
    except AppError as e:
        await websocket.close(code=4001, reason=e.message)
        return

    await connection_manager.connect(websocket, actor.user_id)
    campaign_store = SqlCampaignStore(async_session)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"event": "error", "data": {"message": "Messages must be JSON"}})
                continue
            event = message.get("event") if isinstance(message, dict) else None
            campaign_id = str(message.get("campaignId") or "").lower() if isinstance(message, dict) else ""

            if event == "ping":
                await websocket.send_json({"event": "pong", "data": {"userId": actor.user_id}})
            elif event == "join:campaign" and campaign_id:
                campaign = await campaign_store.get(campaign_id)
                if campaign and access.campaign_readable(campaign, actor.user_id):
                    connection_manager.join(websocket, campaign_room(campaign_id))
                    await websocket.send_json({"event": "joined:campaign", "data": {"campaignId": campaign_id}})
                else:
                    await websocket.send_json({"event": "error", "data": {"message": "Access denied to this campaign"}})
            elif event == "leave:campaign" and campaign_id:
                connection_manager.leave(websocket, campaign_room(campaign_id))
                await websocket.send_json({"event": "left:campaign", "data": {"campaignId": campaign_id}})
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {actor.user_id}")
    finally:
        connection_manager.disconnect(websocket)
