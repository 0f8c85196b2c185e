"""
Tests for callback reconciliation and the webhook's acknowledge-and-log policy.
"""
from unittest.mock import patch

import pytest

from charitydesk.errors import InvalidTransition, MalformedCallback, RecordNotFound
from charitydesk.extensions import db
from charitydesk.models import Donation, PaymentEvent
from charitydesk.services.reconciliation import (
    AcknowledgeAndLog, apply_callback, override_status, parse_callback,
)
from tests.conftest import make_cause, make_donation, make_user, stk_callback

OK = {"ResultCode": 0, "ResultDesc": "Success"}
INVALID = {"ResultCode": 0, "ResultDesc": "Invalid callback received"}
FAILED = {"ResultCode": 1, "ResultDesc": "Failed"}


def event_kinds():
    return [e.kind for e in PaymentEvent.query.order_by(PaymentEvent.id).all()]


# ---------------------------------------------------------------------------
# parse_callback
# ---------------------------------------------------------------------------
class TestParseCallback:
    def test_success_metadata_is_extracted(self):
        result = parse_callback(stk_callback(receipt="QAX123", amount=150))
        assert result.checkout_request_id == "ws_001"
        assert result.succeeded
        assert result.status == "completed"
        assert result.receipt_number == "QAX123"
        assert result.transaction_date == "20240115102345"
        assert result.amount == 150

    def test_failure_has_no_receipt(self):
        result = parse_callback(stk_callback(result_code=1032))
        assert result.status == "failed"
        assert result.receipt_number is None

    def test_string_result_code_is_accepted(self):
        body = stk_callback(result_code=0)
        body["Body"]["stkCallback"]["ResultCode"] = "0"
        assert parse_callback(body).succeeded

    @pytest.mark.parametrize("body", [
        None,
        [],
        {},
        {"Body": {}},
        {"Body": {"stkCallback": "nope"}},
        {"Body": {"stkCallback": {"ResultCode": 0}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": "ws_001", "ResultCode": "abc"}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": "ws_001", "ResultCode": 0.7}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": "ws_001", "ResultCode": "0.7"}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": "ws_001", "ResultCode": False}}},
        {"Body": {"stkCallback": {"CheckoutRequestID": "ws_001", "ResultCode": None}}},
    ])
    def test_malformed_bodies_raise(self, body):
        with pytest.raises(MalformedCallback):
            parse_callback(body)


# ---------------------------------------------------------------------------
# apply_callback
# ---------------------------------------------------------------------------
class TestApplyCallback:
    def test_success_completes_pending_donation(self, app):
        donation = make_donation("ws_001")
        apply_callback(stk_callback("ws_001", receipt="QAX123"))

        donation = db.session.get(Donation, donation.id)
        assert donation.status == "completed"
        assert donation.receipt_number == "QAX123"
        assert donation.transaction_date == "20240115102345"
        assert donation.completed_at is not None
        assert event_kinds() == ["callback_applied"]

    def test_failure_marks_donation_failed(self, app):
        donation = make_donation("ws_002")
        apply_callback(stk_callback("ws_002", result_code=1032))

        donation = db.session.get(Donation, donation.id)
        assert donation.status == "failed"
        assert donation.receipt_number is None
        assert donation.completed_at is None

    def test_completed_donation_counts_towards_cause(self, app):
        cause = make_cause(current=1000)
        make_donation("ws_001", amount=250, cause=cause)
        apply_callback(stk_callback("ws_001"))
        assert db.session.get(type(cause), cause.id).current_amount == 1250

    def test_unknown_checkout_is_logged_then_raised(self, app):
        with pytest.raises(RecordNotFound):
            apply_callback(stk_callback("ws_missing"))
        event = PaymentEvent.query.one()
        assert event.kind == "callback_unmatched"
        assert event.donation_id is None
        assert event.checkout_request_id == "ws_missing"

    def test_duplicate_success_is_a_no_op(self, app):
        cause = make_cause(current=0)
        make_donation("ws_001", amount=100, cause=cause)
        apply_callback(stk_callback("ws_001", receipt="QAX123"))
        apply_callback(stk_callback("ws_001", receipt="QAX123"))

        assert Donation.query.one().status == "completed"
        assert db.session.get(type(cause), cause.id).current_amount == 100
        assert event_kinds() == ["callback_applied", "callback_duplicate"]

    def test_duplicate_failure_is_a_no_op(self, app):
        make_donation("ws_001")
        apply_callback(stk_callback("ws_001", result_code=1))
        apply_callback(stk_callback("ws_001", result_code=1))
        assert Donation.query.one().status == "failed"

    def test_terminal_state_cannot_change(self, app):
        make_donation("ws_001")
        apply_callback(stk_callback("ws_001", receipt="QAX123"))
        with pytest.raises(InvalidTransition):
            apply_callback(stk_callback("ws_001", result_code=1032))

        donation = Donation.query.one()
        assert donation.status == "completed"
        assert donation.receipt_number == "QAX123"
        assert event_kinds()[-1] == "callback_rejected"

    def test_different_receipt_on_completed_is_rejected(self, app):
        make_donation("ws_001")
        apply_callback(stk_callback("ws_001", receipt="QAX123"))
        with pytest.raises(InvalidTransition):
            apply_callback(stk_callback("ws_001", receipt="QZZ999"))
        assert Donation.query.one().receipt_number == "QAX123"

    def test_completion_notifies_admin_and_donor(self, app):
        user = make_user("payer@example.org")
        make_donation("ws_001", user=user)
        with patch("charitydesk.services.reconciliation.email_donation_received") as admin_mail, \
                patch("charitydesk.services.reconciliation.email_donation_receipt") as receipt_mail:
            apply_callback(stk_callback("ws_001"))
        admin_mail.assert_called_once()
        receipt_mail.assert_called_once()
        assert receipt_mail.call_args[0][1] == "payer@example.org"

    def test_failure_sends_no_mail(self, app):
        make_donation("ws_001")
        with patch("charitydesk.services.reconciliation.email_donation_received") as admin_mail:
            apply_callback(stk_callback("ws_001", result_code=1032))
        admin_mail.assert_not_called()


# ---------------------------------------------------------------------------
# Operator override
# ---------------------------------------------------------------------------
class TestOverride:
    def test_override_bypasses_guard_and_is_logged(self, app):
        make_donation("ws_001", status="failed")
        donation = override_status(Donation.query.one(), "completed", actor="7",
                                   receipt_number="QMANUAL", note="confirmed by phone")
        assert donation.status == "completed"
        assert donation.receipt_number == "QMANUAL"
        assert donation.completed_at is not None

        event = PaymentEvent.query.one()
        assert (event.kind, event.from_status, event.to_status, event.actor) == \
            ("override", "failed", "completed", "7")
        assert event.payload == {"note": "confirmed by phone"}

    def test_unknown_status_is_refused(self, app):
        make_donation("ws_001")
        with pytest.raises(ValueError):
            override_status(Donation.query.one(), "refunded")


# ---------------------------------------------------------------------------
# AcknowledgeAndLog
# ---------------------------------------------------------------------------
class TestAcknowledgeAndLog:
    def test_success(self, app):
        make_donation("ws_001")
        assert AcknowledgeAndLog().handle(stk_callback("ws_001")) == (OK, 200)

    def test_malformed_is_acknowledged(self, app):
        assert AcknowledgeAndLog().handle({"Body": {}}) == (INVALID, 200)

    def test_unknown_checkout_is_acknowledged(self, app):
        assert AcknowledgeAndLog().handle(stk_callback("ws_missing")) == (OK, 200)

    def test_refused_transition_is_acknowledged(self, app):
        make_donation("ws_001", status="completed", receipt_number="QAX123")
        assert AcknowledgeAndLog().handle(stk_callback("ws_001", result_code=1)) == (OK, 200)

    def test_unexpected_error_is_500(self, app):
        with patch("charitydesk.services.reconciliation.parse_callback", side_effect=RuntimeError("boom")):
            assert AcknowledgeAndLog().handle(stk_callback()) == (FAILED, 500)


# ---------------------------------------------------------------------------
# POST /mpesa/callback
# ---------------------------------------------------------------------------
class TestCallbackEndpoint:
    def test_success_settles_donation(self, client):
        make_donation("ws_001")
        resp = client.post("/mpesa/callback", json=stk_callback("ws_001", receipt="QAX123"))
        assert resp.status_code == 200
        assert resp.get_json() == OK
        donation = Donation.query.one()
        assert donation.status == "completed"
        assert donation.receipt_number == "QAX123"

    def test_malformed_body_is_acknowledged_without_changes(self, client):
        make_donation("ws_001")
        resp = client.post("/mpesa/callback", json={"Body": {"nothing": "here"}})
        assert resp.status_code == 200
        assert resp.get_json() == INVALID
        assert Donation.query.one().status == "pending"

    def test_fractional_result_code_does_not_settle(self, client):
        cause = make_cause(current=0)
        make_donation("ws_001", cause=cause)
        body = stk_callback("ws_001")
        body["Body"]["stkCallback"]["ResultCode"] = 0.7
        resp = client.post("/mpesa/callback", json=body)
        assert resp.status_code == 200
        assert resp.get_json() == INVALID
        assert Donation.query.one().status == "pending"
        assert db.session.get(type(cause), cause.id).current_amount == 0

    def test_non_json_body_is_acknowledged(self, client):
        resp = client.post("/mpesa/callback", data="not json", content_type="text/plain")
        assert resp.status_code == 200
        assert resp.get_json() == INVALID

    def test_duplicate_delivery_answers_success(self, client):
        make_donation("ws_001")
        body = stk_callback("ws_001")
        assert client.post("/mpesa/callback", json=body).get_json() == OK
        resp = client.post("/mpesa/callback", json=body)
        assert resp.status_code == 200
        assert resp.get_json() == OK

    def test_unknown_checkout_answers_success(self, client):
        resp = client.post("/mpesa/callback", json=stk_callback("ws_missing"))
        assert resp.status_code == 200
        assert resp.get_json() == OK

    def test_unexpected_error_answers_500(self, client):
        make_donation("ws_001")
        with patch("charitydesk.services.reconciliation.parse_callback", side_effect=RuntimeError("boom")):
            resp = client.post("/mpesa/callback", json=stk_callback("ws_001"))
        assert resp.status_code == 500
        assert resp.get_json() == FAILED
        assert Donation.query.one().status == "pending"

    def test_no_login_or_csrf_token_needed(self, app, client):
        app.config["WTF_CSRF_ENABLED"] = True
        make_donation("ws_001")
        resp = client.post("/mpesa/callback", json=stk_callback("ws_001"))
        assert resp.status_code == 200
        assert Donation.query.one().status == "completed"
        # everything else still requires the token
        assert client.post("/auth/login", json={"email": "x@example.org", "password": "x"}).status_code == 400
