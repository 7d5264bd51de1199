"""
Background worker closing auctions whose bidding window has elapsed

Each tick finds ACTIVE auctions with ``end_time <= now`` and drives every
one through ``AuctionService.close_auction`` with the system identity.
Several replicas may run this loop at once: the close path itself is
idempotent, so no external lock is taken.
"""
import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from freight_auction.core import metrics
from freight_auction.core.clock import Clock, utcnow
from freight_auction.core.errors import AuctionEngineError
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.services.auction_service import TRIGGER_SCHEDULER, AuctionService
from freight_auction.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    started_at: datetime
    found: int = 0
    closed: List[str] = field(default_factory=list)
    already_closed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0

    def to_dict(self):
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


class ExpirationScheduler:
    """Background worker for closing expired auctions"""

    def __init__(
        self,
        ledger: LedgerStore,
        auction_service: AuctionService,
        dispatcher: Optional[NotificationDispatcher] = None,
        interval_seconds: float = 30,
        maintenance_interval_seconds: float = 3600,
        retention_days: int = 30,
        batch_size: Optional[int] = None,
        clock: Clock = utcnow,
    ):
        self.ledger = ledger
        self.auction_service = auction_service
        self.dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self.maintenance_interval_seconds = maintenance_interval_seconds
        self.retention_days = retention_days
        self.batch_size = batch_size
        self.clock = clock

        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.last_sweep: Optional[SweepReport] = None
        self.last_maintenance_at: Optional[datetime] = None
        self.sweeps = 0

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self):
        """Start the background worker"""
        if self.running:
            logger.warning("⚠️  Expiration scheduler already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info(f"✅ Expiration scheduler started (interval: {self.interval_seconds}s)")

    async def stop(self):
        """Stop the background worker"""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("🛑 Expiration scheduler stopped")

    async def _run(self):
        """Main worker loop"""
        next_maintenance = time.monotonic()

        while self.running:
            try:
                await asyncio.to_thread(self.sweep)

                if self.dispatcher is not None and time.monotonic() >= next_maintenance:
                    await asyncio.to_thread(self.run_maintenance)
                    next_maintenance = time.monotonic() + self.maintenance_interval_seconds

                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"❌ Error in expiration scheduler: {e}")
                await asyncio.sleep(self.interval_seconds)

    # ========================================================================
    # WORK
    # ========================================================================

    def sweep(self) -> SweepReport:
        """
        Close every auction whose window has elapsed

        One auction failing to close is logged and counted; the rest of
        the batch is still processed and the failed one is picked up again
        on the next tick.
        """
        started = time.perf_counter()
        now = self.clock()
        report = SweepReport(started_at=now)

        with self.ledger.session() as db:
            expired_ids = self.ledger.expired_auction_ids(db, now, limit=self.batch_size)
        report.found = len(expired_ids)

        if expired_ids:
            logger.info(f"⏰ Closing {len(expired_ids)} expired auctions...")

        for auction_id in expired_ids:
            try:
                result = self.auction_service.close_auction(auction_id, user_id=None, trigger=TRIGGER_SCHEDULER)
            except AuctionEngineError as e:
                metrics.scheduler_close_failures_total.inc()
                report.failed[auction_id] = e.kind
                logger.error(f"❌ Failed to close auction {auction_id}: {e}", extra={"auction_id": auction_id})
                continue
            except Exception as e:
                metrics.scheduler_close_failures_total.inc()
                report.failed[auction_id] = type(e).__name__
                logger.exception(f"❌ Unexpected error closing auction {auction_id}: {e}", extra={"auction_id": auction_id})
                continue

            if result.closed:
                report.closed.append(auction_id)
            else:
                report.already_closed.append(auction_id)

        elapsed = time.perf_counter() - started
        report.duration_ms = round(elapsed * 1000, 2)
        metrics.scheduler_sweep_duration_seconds.observe(elapsed)

        if expired_ids:
            logger.info(
                f"✅ Sweep done: {len(report.closed)} closed, "
                f"{len(report.already_closed)} already closed, {len(report.failed)} failed",
                extra={"duration_ms": report.duration_ms},
            )

        self.sweeps += 1
        self.last_sweep = report
        return report

    def run_maintenance(self) -> int:
        """Delete read notifications older than the retention period"""
        if self.dispatcher is None:
            return 0

        now = self.clock()
        deleted = self.dispatcher.purge_read_notifications(now - timedelta(days=self.retention_days))
        self.last_maintenance_at = now
        return deleted

    def status(self) -> dict:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "sweeps": self.sweeps,
            "last_sweep": self.last_sweep.to_dict() if self.last_sweep else None,
            "last_maintenance_at": self.last_maintenance_at.isoformat() if self.last_maintenance_at else None,
        }
