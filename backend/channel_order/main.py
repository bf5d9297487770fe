"""
FastAPI entry point for the channel/category ordering authority.

Serves the two reorder endpoints the client-side drag engine persists to,
plus the create/delete flows and a per-server event socket that pushes
channel.* and category.* updates to connected clients.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from channel_order.api import categories, channels, health, servers
from channel_order.config import settings
from channel_order.database import Base, engine, get_db
from channel_order.websocket.handlers import server_ws_handler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="channel_order",
    description="Channel and category ordering authority",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# allow_origins=["*"] is incompatible with allow_credentials=True. When the
# wildcard is present (dev), switch to allow_origin_regex=".*" instead.
_cors_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
_cors_regex = ".*" if len(_cors_origins) < len(settings.CORS_ORIGINS) else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_origin_regex=_cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router)
app.include_router(servers.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
app.include_router(channels.router, prefix="/api")

# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------


@app.websocket("/ws/servers/{server_id}")
async def server_websocket_endpoint(websocket: WebSocket, server_id: int, db: Session = Depends(get_db)) -> None:
    await server_ws_handler(websocket, server_id, db)


# ---------------------------------------------------------------------------
# Custom exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
