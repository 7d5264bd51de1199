"""
API Routes Tests

Exercises every endpoint against the SQLite-backed services from conftest:
- Auctions (create, list, get, cancel, close, place bid)
- Bids (cancel)
- Notifications (inbox, mark read)
- Admin and operational endpoints (scheduler, health, metrics)
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import CONSIGNER, DRIVER_X, DRIVER_Y, OTHER_CONSIGNER
from freight_auction.core import dependencies
from freight_auction.infrastructure.cache import AuctionDetailsCache
from freight_auction.main import app


def as_user(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def auction_payload(clock):
    return {
        "title": "Deliver 40 boxes to Pune",
        "description": "Fragile electronics, two-person loading",
        "vehicle_type": "mini_truck",
        "start_time": clock.now.isoformat(),
        "end_time": (clock.now + timedelta(hours=1)).isoformat(),
        "consignment_date": (clock.now + timedelta(days=2)).isoformat(),
    }


@pytest.fixture
def auction_id(client, auction_payload):
    response = client.post("/api/v1/auctions", json=auction_payload, headers=as_user(CONSIGNER))
    assert response.status_code == 201
    return response.json()["auction_id"]


# ============================================================================
# AUCTION TESTS
# ============================================================================
class TestAuctionRoutes:

    def test_create_auction(self, client, auction_id):
        response = client.get(f"/api/v1/auctions/{auction_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["auction"]["title"] == "Deliver 40 boxes to Pune"
        assert data["auction"]["status"] == "active"
        assert data["auction"]["created_by"] == CONSIGNER
        assert data["bids"] == []

    def test_drivers_cannot_create_auctions(self, client, auction_payload):
        response = client.post("/api/v1/auctions", json=auction_payload, headers=as_user(DRIVER_X))

        assert response.status_code == 403
        assert response.json()["error"] == "RoleForbidden"

    def test_short_auction_is_rejected(self, client, auction_payload, clock):
        auction_payload["end_time"] = (clock.now + timedelta(minutes=4)).isoformat()

        response = client.post("/api/v1/auctions", json=auction_payload, headers=as_user(CONSIGNER))

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidDuration"

    def test_missing_fields(self, client, auction_payload):
        del auction_payload["title"]

        response = client.post("/api/v1/auctions", json=auction_payload, headers=as_user(CONSIGNER))

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidFields"

    def test_missing_caller(self, client, auction_payload):
        response = client.post("/api/v1/auctions", json=auction_payload)

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

    def test_unknown_auction(self, client):
        response = client.get("/api/v1/auctions/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "AuctionNotFound"

    def test_list_auctions(self, client, auction_id):
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": "120.50"}, headers=as_user(DRIVER_X))

        response = client.get("/api/v1/auctions", params={"status": "active"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["auctions"][0]["id"] == auction_id
        assert data["auctions"][0]["bid_count"] == 1
        assert Decimal(data["auctions"][0]["lowest_bid"]) == Decimal("120.50")

        assert client.get("/api/v1/auctions", params={"status": "completed"}).json()["total"] == 0

    def test_cancel_auction(self, client, auction_id):
        response = client.post(f"/api/v1/auctions/{auction_id}/cancel", headers=as_user(OTHER_CONSIGNER))
        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

        response = client.post(f"/api/v1/auctions/{auction_id}/cancel", headers=as_user(CONSIGNER))
        assert response.status_code == 200
        assert response.json() == {"auction_id": auction_id, "status": "cancelled"}

        response = client.post(f"/api/v1/auctions/{auction_id}/cancel", headers=as_user(CONSIGNER))
        assert response.status_code == 409
        assert response.json()["error"] == "AuctionNotActive"

    def test_close_auction(self, client, auction_id):
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X))
        winning = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": 90}, headers=as_user(DRIVER_Y)
        ).json()

        response = client.post(f"/api/v1/auctions/{auction_id}/close", headers=as_user(CONSIGNER))

        assert response.status_code == 200
        data = response.json()
        assert data["closed"] is True
        assert data["status"] == "completed"
        assert data["winner_id"] == DRIVER_Y
        assert data["winning_bid_id"] == winning["bid_id"]
        assert Decimal(data["winning_amount"]) == Decimal("90")

        again = client.post(f"/api/v1/auctions/{auction_id}/close", headers=as_user(CONSIGNER)).json()
        assert again["closed"] is False
        assert again["winner_id"] == DRIVER_Y


# ============================================================================
# BID TESTS
# ============================================================================
class TestBidRoutes:

    def test_place_bid(self, client, auction_id):
        response = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": "150.00"}, headers=as_user(DRIVER_X)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["is_winning_bid"] is True
        assert data["created"] is True

        duplicate = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": "150.00"}, headers=as_user(DRIVER_X)
        ).json()
        assert duplicate["bid_id"] == data["bid_id"]
        assert duplicate["created"] is False

    @pytest.mark.parametrize("amount", ["abc", -5, 0, "10.001", 1000000.01])
    def test_invalid_amounts(self, client, auction_id, amount):
        response = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": amount}, headers=as_user(DRIVER_X)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidAmount"

    def test_consigners_cannot_bid(self, client, auction_id):
        response = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(OTHER_CONSIGNER)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "RoleForbidden"

    def test_bid_on_expired_auction(self, client, auction_id, clock):
        clock.advance(hours=2)

        response = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "AuctionExpired"

    def test_cancel_bid(self, client, auction_id):
        first = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X)
        ).json()
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 90}, headers=as_user(DRIVER_Y))

        response = client.delete(f"/api/v1/bids/{first['bid_id']}", headers=as_user(DRIVER_Y))
        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

        response = client.delete(f"/api/v1/bids/{first['bid_id']}", headers=as_user(DRIVER_X))
        assert response.status_code == 200
        assert response.json() == {"bid_id": first["bid_id"], "auction_id": auction_id, "cancelled": True}

        response = client.delete(f"/api/v1/bids/{first['bid_id']}", headers=as_user(DRIVER_X))
        assert response.status_code == 404
        assert response.json()["error"] == "BidNotFound"

    def test_winning_bid_cannot_be_cancelled(self, client, auction_id):
        bid = client.post(
            f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X)
        ).json()

        response = client.delete(f"/api/v1/bids/{bid['bid_id']}", headers=as_user(DRIVER_X))

        assert response.status_code == 409
        assert response.json()["error"] == "CannotCancelWinningBid"


# ============================================================================
# NOTIFICATION TESTS
# ============================================================================
class TestNotificationRoutes:

    def test_inbox(self, client, auction_id):
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X))
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 90}, headers=as_user(DRIVER_Y))

        response = client.get("/api/v1/notifications", headers=as_user(DRIVER_X))
        assert response.status_code == 200
        types = [n["type"] for n in response.json()["notifications"]]
        assert "outbid" in types
        assert "auction_created" in types

        outbid = next(n for n in response.json()["notifications"] if n["type"] == "outbid")
        response = client.post(f"/api/v1/notifications/{outbid['id']}/read", headers=as_user(DRIVER_X))
        assert response.status_code == 200
        assert response.json()["is_read"] is True

        response = client.post("/api/v1/notifications/read-all", headers=as_user(DRIVER_X))
        assert response.json() == {"updated": len(types) - 1}

        unread = client.get("/api/v1/notifications", params={"unread_only": True}, headers=as_user(DRIVER_X))
        assert unread.json()["total"] == 0

    def test_other_users_notification(self, client, auction_id):
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X))
        notification = client.get("/api/v1/notifications", headers=as_user(CONSIGNER)).json()["notifications"][0]

        response = client.post(f"/api/v1/notifications/{notification['id']}/read", headers=as_user(DRIVER_X))

        assert response.status_code == 404
        assert response.json()["error"] == "NotificationNotFound"


# ============================================================================
# ADMIN AND OPERATIONAL TESTS
# ============================================================================
class TestAdminRoutes:

    def test_manual_sweep(self, client, auction_id, clock):
        client.post(f"/api/v1/auctions/{auction_id}/bids", json={"amount": 100}, headers=as_user(DRIVER_X))
        clock.advance(hours=1)

        response = client.post("/api/v1/admin/scheduler/sweep")

        assert response.status_code == 200
        assert response.json()["closed"] == [auction_id]
        assert client.get(f"/api/v1/auctions/{auction_id}").json()["auction"]["winner_id"] == DRIVER_X

        status = client.get("/api/v1/admin/scheduler").json()
        assert status["running"] is False
        assert status["sweeps"] == 1

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["cache"] == "disabled"

    def test_health_reports_cache(self, client):
        fake_redis = MagicMock()
        fake_redis.get.return_value = None
        app.dependency_overrides[dependencies.get_cache] = lambda: AuctionDetailsCache(fake_redis)

        data = client.get("/health").json()

        assert data["cache"] == "healthy"
        assert data["cache_hit_rate"] == 0.0

    def test_metrics(self, client, auction_id):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "auctions_created_total" in response.text

    def test_trace_id_header(self, client):
        response = client.get("/health", headers={"X-Trace-ID": "trace-123"})

        assert response.headers["X-Trace-ID"] == "trace-123"
