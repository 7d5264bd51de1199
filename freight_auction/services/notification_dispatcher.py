"""
Notification Dispatcher

Consumes events from committed auction/bid transitions:

1. Persists one Notification row per event (its own transaction)
2. Hands push delivery to a thread pool, best-effort

Nothing here raises back into the caller: the transition that produced the
events is already committed, so dispatch failures are logged and counted.
"""
import logging
from concurrent.futures import Executor
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from freight_auction.core import metrics
from freight_auction.core.clock import Clock, utcnow
from freight_auction.core.errors import AuctionEngineError, NotificationNotFoundError
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.infrastructure.push import ExpoPushTransport
from freight_auction.models import Notification, Profile
from freight_auction.services.events import AuctionEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Stores notifications and forwards them to the push transport"""

    def __init__(
        self,
        ledger: LedgerStore,
        transport: Optional[ExpoPushTransport] = None,
        executor: Optional[Executor] = None,
        clock: Clock = utcnow,
    ):
        self.ledger = ledger
        self.transport = transport
        self.executor = executor
        self.clock = clock

    # ========================================================================
    # DISPATCH
    # ========================================================================

    def dispatch(self, events: Iterable[AuctionEvent]) -> List[str]:
        """
        Persist and push a batch of events, in order

        Returns:
            Ids of the stored notifications (empty if storing failed)
        """
        events = list(events)
        if not events:
            return []

        try:
            stored = self.ledger.transaction(
                lambda db: self._store(db, events),
                operation="dispatch_notifications",
            )
        except (AuctionEngineError, SQLAlchemyError) as e:
            logger.error(f"❌ Failed to store {len(events)} notifications: {e}")
            for event in events:
                metrics.notifications_dispatched_total.labels(type=event.type.value, status="failed").inc()
            return []

        for notification_id, event, token in stored:
            metrics.notifications_dispatched_total.labels(type=event.type.value, status="stored").inc()

            if self.transport is None or not token:
                continue

            if self.executor is not None:
                self.executor.submit(self._deliver, notification_id, event, token)
            else:
                self._deliver(notification_id, event, token)

        logger.info(f"📨 Dispatched {len(stored)} notifications")
        return [notification_id for notification_id, _, _ in stored]

    def _store(self, db, events: List[AuctionEvent]):
        user_ids = {event.user_id for event in events}
        tokens: Dict[str, Optional[str]] = dict(
            db.execute(select(Profile.id, Profile.push_token).where(Profile.id.in_(user_ids))).all()
        )

        now = self.clock()
        rows = []
        for event in events:
            notification = Notification(
                user_id=event.user_id,
                auction_id=event.auction_id,
                type=event.type,
                message=event.message,
                data=dict(event.data),
                is_read=False,
                created_at=now,
            )
            db.add(notification)
            rows.append((notification, event))

        db.flush()
        return [(notification.id, event, tokens.get(event.user_id)) for notification, event in rows]

    def _deliver(self, notification_id: str, event: AuctionEvent, token: str):
        """Send one push message; failures are logged, never raised"""
        data = {
            "auction_id": event.auction_id,
            "type": event.type.value,
            "notification_id": notification_id,
            **event.data,
        }
        try:
            self.transport.send(token, event.push_title, event.message, data)
            metrics.notifications_dispatched_total.labels(type=event.type.value, status="pushed").inc()
        except Exception as e:
            metrics.notifications_dispatched_total.labels(type=event.type.value, status="push_failed").inc()
            logger.warning(
                f"⚠️  Push delivery failed for notification {notification_id}: {e}",
                extra={"user_id": event.user_id, "auction_id": event.auction_id},
            )

    def shutdown(self, wait: bool = True):
        """Stop the delivery pool and release the transport"""
        if self.executor is not None:
            self.executor.shutdown(wait=wait)
        if self.transport is not None:
            self.transport.close()

    # ========================================================================
    # INBOX
    # ========================================================================

    def list_notifications(self, user_id: str, unread_only: bool = False, limit: int = 50, offset: int = 0) -> List[Notification]:
        """A user's notifications, newest first"""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).offset(offset)

        with self.ledger.session() as db:
            return list(db.execute(query).scalars().all())

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """
        Mark one notification as read

        Raises:
            NotificationNotFoundError: Unknown id, or owned by another user
        """
        def work(db):
            notification = db.get(Notification, notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotificationNotFoundError(f"Notification {notification_id} not found")
            notification.is_read = True
            return notification

        return self.ledger.transaction(work, operation="mark_notification_read")

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read; returns the count"""
        def work(db):
            result = db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
            return result.rowcount

        return self.ledger.transaction(work, operation="mark_all_notifications_read")

    def purge_read_notifications(self, older_than: datetime) -> int:
        """Delete read notifications created before ``older_than``"""
        def work(db):
            result = db.execute(
                delete(Notification).where(
                    Notification.is_read.is_(True),
                    Notification.created_at < older_than,
                )
            )
            return result.rowcount

        deleted = self.ledger.transaction(work, operation="purge_notifications")
        if deleted:
            logger.info(f"🧹 Purged {deleted} read notifications older than {older_than.isoformat()}")
        return deleted
