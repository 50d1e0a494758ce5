# backend/mindfulness/api/endpoints/health.py
import structlog
from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])
logger = structlog.get_logger(__name__)


@router.get("/")
async def read_root():
    return {"message": "Mindfulness backend is running"}


@router.get("/health")
async def health_check(request: Request):
    """
    Process liveness plus a MongoDB ping.
    """
    mongo_ok = False
    mongo_error = None
    try:
        await request.app.state.mongo.ping()
        mongo_ok = True
    except Exception as e:
        logger.warning("Health check ping failed", error=str(e))
        mongo_error = str(e)

    body = {"status": "ok" if mongo_ok else "degraded", "mongo": mongo_ok}
    if mongo_error and not request.app.state.settings.is_production:
        body["mongoError"] = mongo_error
    return body
