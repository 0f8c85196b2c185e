"""
Shared pytest fixtures for all test modules.

Every test gets a fresh app on an in-memory SQLite database with the
gateway pointed at https://gateway.test; HTTP calls to it are patched per test.
"""
import pytest
from unittest.mock import MagicMock

from charitydesk import create_app
from charitydesk.config import TestConfig
from charitydesk.extensions import db as _db
from charitydesk.models import User, Donation, Cause


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


# ---------------------------------------------------------------------------
# Helpers, not fixtures, so any test file can import and call them directly.
# ---------------------------------------------------------------------------
PASSWORD = "correct-horse"


def make_user(email="donor@example.org", role="donor", name="Wanjiku Donor", status="active") -> User:
    user = User(name=name, email=email, role=role, status=status)
    user.set_password(PASSWORD)
    _db.session.add(user)
    _db.session.commit()
    return user


def login(client, email, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


def make_cause(title="School fees", goal=50_000, active=True, current=0) -> Cause:
    cause = Cause(title=title, description="Term fees for the children", goal_amount=goal,
                  current_amount=current, active=active, images=[])
    _db.session.add(cause)
    _db.session.commit()
    return cause


def make_donation(checkout_id="ws_001", amount=100, status="pending", user=None, cause=None,
                  donor="Wanjiku Donor", phone="254712345678", **extra) -> Donation:
    donation = Donation(
        donor=donor,
        phone=phone,
        amount=amount,
        status=status,
        payment_method="mpesa",
        checkout_request_id=checkout_id,
        merchant_request_id="m_" + checkout_id,
        user_id=user.id if user else None,
        cause_id=cause.id if cause else None,
        **extra,
    )
    _db.session.add(donation)
    _db.session.commit()
    return donation


def fake_response(status=200, json_data=None, reason="OK"):
    """Stand-in for a requests.Response."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.reason = reason
    if json_data is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = json_data
    return resp


TOKEN_OK = {"access_token": "tok_abcdefghijkl", "expires_in": "3599"}

STK_ACCEPTED = {
    "MerchantRequestID": "m_001",
    "CheckoutRequestID": "ws_001",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


def stk_callback(checkout_id="ws_001", result_code=0, receipt="QAX123", amount=100,
                 transaction_date=20240115102345, phone=254712345678):
    stk = {
        "MerchantRequestID": "m_" + checkout_id,
        "CheckoutRequestID": checkout_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0
        else "Request cancelled by user",
    }
    if result_code == 0:
        stk["CallbackMetadata"] = {"Item": [
            {"Name": "Amount", "Value": amount},
            {"Name": "MpesaReceiptNumber", "Value": receipt},
            {"Name": "Balance"},
            {"Name": "TransactionDate", "Value": transaction_date},
            {"Name": "PhoneNumber", "Value": phone},
        ]}
    return {"Body": {"stkCallback": stk}}
