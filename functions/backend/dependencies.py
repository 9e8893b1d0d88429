"""
Dependency wiring for the FastAPI app.

Clients live on app.state. create_app() takes them as arguments; any that
are not supplied are built from settings on first use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import firebase_admin
from fastapi import Depends, HTTPException, Request
from firebase_admin import auth as firebase_auth
from firebase_admin import firestore

from backend.config import Settings
from backend.storage import (
    CosStorageClient,
    FirebaseStorageClient,
    InMemoryStorageClient,
    StorageClient,
)

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class AuthClient(Protocol):
    """Verifies Firebase ID tokens and returns their decoded claims."""

    def verify_id_token(self, id_token: str) -> dict:
        ...


@dataclass
class FirebaseAuthClient:
    app: object = None

    def verify_id_token(self, id_token: str) -> dict:
        return firebase_auth.verify_id_token(id_token, app=self.app)


def get_firebase_app(settings: Settings):
    """Return the default Firebase app, initializing it from settings once."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {
            key: value
            for key, value in {
                "projectId": settings.firebase_project_id,
                "storageBucket": settings.firebase_storage_bucket,
            }.items()
            if value
        }
        return firebase_admin.initialize_app(options=options or None)


def build_db_client(settings: Settings):
    return firestore.client(app=get_firebase_app(settings))


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.storage_backend == "memory":
        return InMemoryStorageClient()
    if settings.storage_backend == "s3":
        return CosStorageClient(
            bucket=settings.s3_bucket or "",
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url,
        )
    return FirebaseStorageClient(
        bucket_name=settings.firebase_storage_bucket,
        app=get_firebase_app(settings),
    )


def build_auth_client(settings: Settings) -> AuthClient:
    return FirebaseAuthClient(app=get_firebase_app(settings))


def _state_client(request: Request, name: str, build: Callable[[Settings], object]):
    state = request.app.state
    client = getattr(state, name, None)
    if client is None:
        client = build(state.settings)
        setattr(state, name, client)
    return client


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request):
    return _state_client(request, "db", build_db_client)


def get_storage_client(request: Request) -> StorageClient:
    return _state_client(request, "storage", build_storage_client)


def get_auth_client(request: Request) -> AuthClient:
    return _state_client(request, "auth", build_auth_client)


def _id_token(request: Request, settings: Settings) -> Optional[str]:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(settings.session_cookie_name) or None


def get_optional_user(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Optional[CurrentUser]:
    """The signed-in user, or None for anonymous or invalid credentials."""
    token = _id_token(request, settings)
    if not token:
        return None
    try:
        claims = auth_client.verify_id_token(token)
    except firebase_auth.CertificateFetchError as e:
        logger.error("Could not fetch ID token certificates: %s", e)
        raise HTTPException(
            status_code=503, detail="Sign-in is temporarily unavailable"
        ) from e
    except (ValueError, firebase_auth.InvalidIdTokenError) as e:
        logger.info("Rejected ID token: %s", e)
        return None
    return CurrentUser(
        uid=claims["uid"], email=claims.get("email"), name=claims.get("name")
    )


def require_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Sign in to continue")
    return user
