"""
Admin donation endpoints: listing with filters and pagination, detail,
audit events and the status override.
"""
from datetime import datetime

import pytest

from charitydesk.extensions import db
from charitydesk.models import PaymentEvent
from tests.conftest import login, make_donation, make_user


@pytest.fixture
def admin_client(client):
    make_user("admin@example.org", role="admin", name="Site Admin")
    login(client, "admin@example.org")
    return client


@pytest.fixture
def seeded(app):
    rows = [
        make_donation("ws_001", amount=100, status="completed", donor="Akinyi",
                      created_at=datetime(2024, 1, 10, 9, 0)),
        make_donation("ws_002", amount=250, status="pending", donor="Baraka",
                      created_at=datetime(2024, 1, 20, 23, 30)),
        make_donation("ws_003", amount=500, status="failed", donor="Chebet", phone="254799000111",
                      created_at=datetime(2024, 2, 5, 12, 0)),
    ]
    return rows


def names(resp):
    return [d["donor"] for d in resp.get_json()["donations"]]


class TestListing:
    def test_requires_admin(self, client, seeded):
        assert client.get("/payments/donations").status_code == 401
        make_user("donor@example.org")
        login(client, "donor@example.org")
        assert client.get("/payments/donations").status_code == 403

    def test_newest_first(self, admin_client, seeded):
        resp = admin_client.get("/payments/donations")
        assert resp.status_code == 200
        assert names(resp) == ["Chebet", "Baraka", "Akinyi"]
        assert resp.get_json()["pagination"] == {"total": 3, "page": 1, "pages": 1}

    def test_status_filter(self, admin_client, seeded):
        assert names(admin_client.get("/payments/donations?status=pending")) == ["Baraka"]
        assert len(names(admin_client.get("/payments/donations?status=all"))) == 3

    def test_search_by_name_phone_or_amount(self, admin_client, seeded):
        assert names(admin_client.get("/payments/donations?search=bara")) == ["Baraka"]
        assert names(admin_client.get("/payments/donations?search=799000")) == ["Chebet"]
        assert names(admin_client.get("/payments/donations?search=100")) == ["Akinyi"]

    def test_date_range_is_inclusive(self, admin_client, seeded):
        resp = admin_client.get("/payments/donations?start_date=2024-01-10&end_date=2024-01-20")
        assert names(resp) == ["Baraka", "Akinyi"]

    def test_bad_date_is_400(self, admin_client, seeded):
        assert admin_client.get("/payments/donations?start_date=yesterday").status_code == 400

    def test_pagination(self, admin_client, seeded):
        resp = admin_client.get("/payments/donations?page=2&limit=2")
        assert names(resp) == ["Akinyi"]
        assert resp.get_json()["pagination"] == {"total": 3, "page": 2, "pages": 2}

    def test_anonymous_donor_is_hidden(self, admin_client):
        make_donation("ws_009", donor="Secret Giver", anonymous=True)
        assert names(admin_client.get("/payments/donations")) == ["Anonymous"]


class TestDetailAndOverride:
    def test_detail(self, admin_client, seeded):
        resp = admin_client.get(f"/payments/donations/{seeded[0].id}")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["checkout_request_id"] == "ws_001"

    def test_detail_404(self, admin_client):
        assert admin_client.get("/payments/donations/999").status_code == 404

    def test_override_and_events(self, admin_client, seeded):
        donation_id = seeded[2].id
        resp = admin_client.post(f"/payments/donations/{donation_id}/status",
                                 json={"status": "completed", "receipt_number": "QMANUAL", "note": "paid at desk"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "completed"
        assert data["receipt_number"] == "QMANUAL"

        events = admin_client.get(f"/payments/donations/{donation_id}/events").get_json()["data"]
        assert [(e["kind"], e["from_status"], e["to_status"]) for e in events] == \
            [("override", "failed", "completed")]
        event = db.session.get(PaymentEvent, events[0]["id"])
        assert event.actor is not None

    def test_override_rejects_unknown_status(self, admin_client, seeded):
        resp = admin_client.post(f"/payments/donations/{seeded[0].id}/status", json={"status": "refunded"})
        assert resp.status_code == 400
        assert PaymentEvent.query.count() == 0
