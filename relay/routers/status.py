# relay/routers/status.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - /health and /status
-----------------------------------------
Read-only local HTTP view of a running relay, meant for monitoring
scripts on the same host:

    GET /health  -> liveness + configured model
    GET /status  -> live sessions (identity, timestamps, turn count) and the
                   active settings

Conversation contents and prompts are never exposed here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, FastAPI, Request

from relay.core.config import Settings
from relay.runtime_state import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Lightweight health check."""
    settings: Settings = request.app.state.settings
    return {"status": "ok", "model": settings.llm.model}


@router.get("/status")
async def relay_status(request: Request) -> Dict[str, Any]:
    settings: Settings = request.app.state.settings
    store: SessionStore = request.app.state.store
    return {
        "sessions": len(store),
        "active": store.snapshot()["sessions"],
        "model": settings.llm.model,
        "allowed_user": settings.bot.allowed_user_id,
        "strict_commands": settings.strict_commands,
        "max_history_turns": settings.max_history_turns,
    }


def create_status_app(store: SessionStore, settings: Settings) -> FastAPI:
    """
    Application factory for the status API.

    The store and settings are shared with the running relay through
    ``app.state``.
    """
    app = FastAPI(
        title="Matrix Ollama Relay",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
    )
    app.state.store = store
    app.state.settings = settings
    app.include_router(router)

    logger.info("Status API created (model=%s)", settings.llm.model)
    return app
