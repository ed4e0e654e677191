"""HTTP query surface and WebSocket live-view push"""

import asyncio
import json
import logging
import sqlite3
import time
from typing import Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..models import HistoryQuery, StatusReport
from .. import config

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Connected to Fish Monitoring Server"


def create_app(context) -> FastAPI:
    """Build the FastAPI application around an AppContext"""
    app = FastAPI(title="Hiu Paus Monitoring")
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(sqlite3.Error)
    async def database_error(request: Request, exc: sqlite3.Error):
        logger.error(f"Query failed on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/status", response_model=StatusReport)
    async def status():
        return context.status()

    @app.get("/api/data/latest")
    async def latest():
        row = await asyncio.to_thread(context.database.get_latest)
        return row or {}

    @app.get("/api/data/history")
    async def history(limit: int = Query(100, ge=1, le=1000),
                      offset: int = Query(0, ge=0),
                      device_id: Optional[str] = None):
        return await asyncio.to_thread(
            context.database.get_history, limit, offset, device_id
        )

    @app.get("/api/data/statistics")
    async def statistics(hours: float = Query(24, gt=0),
                         device_id: Optional[str] = None):
        return await asyncio.to_thread(
            context.database.get_statistics, hours, device_id
        )

    @app.websocket("/ws")
    async def live_view(websocket: WebSocket):
        await websocket.accept()
        broadcaster = context.broadcaster
        broadcaster.add(websocket)
        try:
            await broadcaster.send(websocket, "welcome", {
                "message": WELCOME_MESSAGE,
                "timestamp": int(time.time() * 1000),
            })
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    logger.warning("Ignoring binary frame from live-view client")
                    continue
                await _handle_client_event(context, websocket, text)
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.discard(websocket)

    return app


async def _handle_client_event(context, websocket: WebSocket, text: str):
    """Handle one event sent by a live-view client"""
    try:
        envelope = json.loads(text)
        event = envelope["event"]
        data = envelope.get("data")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Ignoring malformed client event: {e}")
        return

    if event == "get_history":
        try:
            query = HistoryQuery.model_validate(data or {})
        except ValidationError as e:
            logger.warning(f"Invalid history request: {e}")
            query = HistoryQuery(limit=config.HISTORY_DEFAULT_LIMIT)
        try:
            rows = await asyncio.to_thread(
                context.database.get_recent, query.limit, query.device_id
            )
        except sqlite3.Error as e:
            logger.error(f"History fetch error: {e}")
            rows = []
        await context.broadcaster.send(websocket, "history", rows)
    elif event == "command":
        await context.commands.handle(data)
    else:
        logger.debug(f"Unhandled client event: {event}")
