"""
Prometheus metrics for monitoring
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# ==================== Auction Metrics ====================

auctions_created_total = Counter(
    'auctions_created_total',
    'Total auctions created',
    ['vehicle_type']
)

auctions_cancelled_total = Counter(
    'auctions_cancelled_total',
    'Total auctions cancelled by their consigner'
)

auctions_closed_total = Counter(
    'auctions_closed_total',
    'Total auctions closed',
    ['trigger', 'outcome']  # trigger: manual|scheduler, outcome: winner|no_bids
)

# ==================== Bid Metrics ====================

bids_placed_total = Counter(
    'bids_placed_total',
    'Total bids placed'
)

bids_cancelled_total = Counter(
    'bids_cancelled_total',
    'Total bids cancelled'
)

# ==================== Store Metrics ====================

transaction_retries_total = Counter(
    'transaction_retries_total',
    'Transactions retried after a transient conflict',
    ['operation']
)

# ==================== Notification Metrics ====================

notifications_dispatched_total = Counter(
    'notifications_dispatched_total',
    'Notifications dispatched',
    ['type', 'status']  # status: stored|pushed|push_failed|failed
)

# ==================== Scheduler Metrics ====================

scheduler_sweep_duration_seconds = Histogram(
    'scheduler_sweep_duration_seconds',
    'Time to run one expiration sweep',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
)

scheduler_close_failures_total = Counter(
    'scheduler_close_failures_total',
    'Auctions the scheduler failed to close in a sweep'
)


def record_auction_closed(trigger: str, has_winner: bool):
    """Record a committed close"""
    outcome = "winner" if has_winner else "no_bids"
    auctions_closed_total.labels(trigger=trigger, outcome=outcome).inc()


def get_metrics():
    """Get current metrics in Prometheus format"""
    return generate_latest()


__all__ = [
    "CONTENT_TYPE_LATEST",
    "get_metrics",
    "record_auction_closed",
]
