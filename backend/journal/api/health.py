from datetime import datetime, timezone

from fastapi import APIRouter

from journal.core.config import app_config

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "environment": app_config.env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
