from fastapi import APIRouter

from app.ai.config import load_ai_config
from app.core.config import settings
from app.schemas.analysis import REPORT_SCHEMA_VERSION

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {
        "status": "healthy",
        "schema_version": REPORT_SCHEMA_VERSION,
        "oracle_configured": settings.oracle_enabled and load_ai_config().has_credentials,
    }
