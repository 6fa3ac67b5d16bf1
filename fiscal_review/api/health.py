"""
Service status for load balancers and operators.

`/health` answers 200 while the process is up and reports whether the
review database answers. `/health/ready` only says yes once it does.
"""

from fastapi import APIRouter
from sqlalchemy import text

from fiscal_review.config import settings
from fiscal_review.models.database import async_session_factory

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Process status, version, panel quorum and database reachability."""
    db_ok = False
    db_error = None
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            db_ok = result.scalar() == 1
    except Exception as e:
        db_ok = False
        db_error = str(e)[:200]

    response = {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "panel_quorum": settings.PANEL_QUORUM,
        "database": "connected" if db_ok else "unreachable",
    }
    if db_error:
        response["database_error"] = db_error

    return response


@router.get("/health/ready")
async def readiness_check():
    # Reviews cannot be recorded without the database
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"ready": True}
    except Exception:
        return {"ready": False}
