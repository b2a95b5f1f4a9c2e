"""Liveness route"""
from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Root endpoint to verify the app is running"""
    return {
        "ok": True,
        "message": "TurnTable AI API is running",
        "endpoints": ["/auth/login", "/api/review-reply", "/api/google/poll", "/api/sales-ai"],
    }
