"""Health and metrics endpoints."""

from fastapi import APIRouter

from easytax import __version__

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/metrics")
async def metrics():
    """Basic metrics endpoint for observability."""
    return {"service": "easytax", "version": __version__}
