import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlmodel import Session

from bookstore_cart.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()

HEALTH_CHECK_KEY = "health-check"


async def guest_storage_status(request: Request) -> str:
    store = request.app.state.local_store
    try:
        await store.get(HEALTH_CHECK_KEY)
    except Exception as e:
        logger.error(f"Health check guest storage read failed: {e}")
        return "failed"
    return "ok"


@router.get("/check")
async def health_check(request: Request, session: Session = Depends(get_session)):
    """Report whether carts can be read: the database for signed-in users,
    the local store for guests."""
    database = "ok"
    try:
        session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database ping failed: {e}")
        database = "failed"

    guest_storage = await guest_storage_status(request)
    healthy = database == "ok" and guest_storage == "ok"

    return {
        "status": "ok" if healthy else "degraded",
        "database": database,
        "guest_storage": guest_storage,
        "remote_store_enabled": request.app.state.settings.remote_store_enabled,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
