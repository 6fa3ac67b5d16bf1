"""
FastAPI dependency injection.
Provides DB sessions, artifact store, finalization emitter, API key
validation and the acting identity.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.config import settings
from fiscal_review.emitters.base import FinalizationEmitter
from fiscal_review.emitters.declaration_emitter import DeclarationEmitter
from fiscal_review.models.database import get_session
from fiscal_review.models.enums import Role
from fiscal_review.observability.logging import bind_request_identity
from fiscal_review.storage.artifact_store import ArtifactStore


# ── Singleton instances ──────────────────────────────────────
_artifact_store: Optional[ArtifactStore] = None


def get_artifact_store() -> ArtifactStore:
    """Get or create the artifact store singleton."""
    global _artifact_store
    if _artifact_store is None:
        _artifact_store = ArtifactStore()
    return _artifact_store


def get_emitter(store: ArtifactStore = Depends(get_artifact_store)) -> FinalizationEmitter:
    """Emitter used to produce the final signed document."""
    return DeclarationEmitter(store)


async def get_db() -> AsyncSession:
    """Yield an async DB session."""
    async for session in get_session():
        yield session


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key


# ── Identity ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """The acting user, as asserted by the authenticating gateway."""
    user_id: str
    display_name: Optional[str]
    role: Role


async def get_identity(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Identity:
    """Resolve identity headers. Authentication itself happens upstream."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id or X-User-Role header",
        )
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role: {x_user_role}",
        )
    bind_request_identity(x_user_id, role.value)
    return Identity(user_id=x_user_id, display_name=x_user_name, role=role)


def require_role(*roles: Role):
    """Dependency factory restricting an endpoint to the given roles."""

    async def _check(identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{identity.role.value}' may not perform this action",
            )
        return identity

    return _check
