import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from apps.api.services.database import ping

router = APIRouter(prefix="/api", tags=["health"])

logger = logging.getLogger(__name__)


@router.get("/health", summary="Public health probe")
async def health(request: Request) -> dict[str, str]:
    payload = {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        return payload

    try:
        await ping(engine)
    except SQLAlchemyError as exc:
        logger.warning("Database ping failed: %s", exc)
        payload["status"] = "degraded"
        payload["database"] = "unavailable"
    else:
        payload["database"] = "ok"
    return payload
