"""
Admin API Routes - expiration scheduler control
"""
from fastapi import APIRouter, Depends

from freight_auction.core.dependencies import get_scheduler
from freight_auction.services import ExpirationScheduler

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/scheduler")
async def scheduler_status(scheduler: ExpirationScheduler = Depends(get_scheduler)):
    """Scheduler state and the outcome of its last sweep"""
    return scheduler.status()


@router.post("/scheduler/sweep")
def run_sweep(scheduler: ExpirationScheduler = Depends(get_scheduler)):
    """
    Run one expiration sweep now, as the system identity

    Safe alongside the background loop and other replicas: closing is
    idempotent.
    """
    report = scheduler.sweep()
    return report.to_dict()
