"""
Health Check Router
Service liveness and reachability of the AI service
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.utils.ai_client import AIClient, get_ai_client

router = APIRouter()


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/ai")
async def ai_service_status(ai_client: AIClient = Depends(get_ai_client)):
    result = await ai_client.test_connection()
    return {
        "status": "healthy" if result["success"] else "degraded",
        "ai_service": result,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
