"""
FastAPI application entry point for the restaurants backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from backend.config import Settings, get_settings
from backend.dependencies import AuthClient
from backend.routes import router
from backend.storage import StorageClient


def create_app(
    settings: Optional[Settings] = None,
    db=None,
    storage: Optional[StorageClient] = None,
    auth: Optional[AuthClient] = None,
) -> FastAPI:
    """
    Builds the app. Clients left as None are created from settings on the
    first request that needs them.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Restaurants Backend (FastAPI)", version="0.1.0")
    app.state.settings = settings
    app.state.db = db
    app.state.storage = storage
    app.state.auth = auth
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
