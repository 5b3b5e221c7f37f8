"""API v1 router configuration."""

from fastapi import APIRouter

from .metrics import router as metrics_router

# Create the main API router
api_router = APIRouter()

# Health check endpoint
@api_router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "message": "Home-Care Metrics API is running"}

# Include routers
api_router.include_router(metrics_router, prefix="/admin", tags=["metrics"])
