"""System health endpoints."""

import time
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel
import psutil
import logging

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    uptime: float
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    scan_workers: int
    scans_queued: int

@router.get("/health")
async def get_system_health(request: Request) -> SystemHealth:
    """Get system health status.

    Returns:
        SystemHealth object containing process and scan queue metrics
    """
    try:
        queue = request.app.state.scan_queue
        return SystemHealth(
            status="healthy" if queue.running else "degraded",
            uptime=time.monotonic() - STARTED_AT,
            cpu_usage=psutil.cpu_percent(),
            memory_usage=psutil.virtual_memory().percent,
            disk_usage=psutil.disk_usage('/').percent,
            scan_workers=len(queue.workers),
            scans_queued=queue.queue.qsize()
        )
    except Exception as e:
        logger.error(f"Error collecting system health: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error collecting system health: {str(e)}"
        )
