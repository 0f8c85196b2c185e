"""Settle pending donations from the gateway's STK callback.

The push and the callback are correlated only by ``CheckoutRequestID``.
Transitions are monotonic: ``pending -> completed | failed``. A repeat of the
same terminal outcome is a no-op; anything else from a terminal state is
rejected. Every outcome lands in the ``payment_event`` log.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
import logging
import re

from ..extensions import db
from ..errors import MalformedCallback, RecordNotFound, InvalidTransition
from ..models.donation import Donation, DONATION_STATUSES, TERMINAL_STATUSES
from ..models.payment_event import PaymentEvent
from .donation_notifications import email_donation_received, email_donation_receipt

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"-?\d+")


@dataclass
class CallbackResult:
    checkout_request_id: str
    result_code: int
    result_desc: Optional[str] = None
    receipt_number: Optional[str] = None
    transaction_date: Optional[str] = None
    amount: Optional[float] = None
    items: list = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.result_code == 0

    @property
    def status(self) -> str:
        return "completed" if self.succeeded else "failed"


def _result_code(raw: Any) -> int:
    # whole numbers only; int() would truncate 0.7 to a success code
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and _INT_RE.fullmatch(raw.strip()):
        return int(raw)
    raise MalformedCallback(f"Callback ResultCode is not an integer: {raw!r}")


def parse_callback(body: Any) -> CallbackResult:
    """Pull the fields we need out of ``Body.stkCallback``."""
    stk = body.get("Body") if isinstance(body, dict) else None
    stk = stk.get("stkCallback") if isinstance(stk, dict) else None
    if not isinstance(stk, dict):
        raise MalformedCallback("Invalid callback body structure")

    checkout_id = stk.get("CheckoutRequestID")
    if not checkout_id or not isinstance(checkout_id, str):
        raise MalformedCallback("Callback has no CheckoutRequestID")
    result_code = _result_code(stk.get("ResultCode"))

    result = CallbackResult(checkout_request_id=checkout_id, result_code=result_code,
                            result_desc=stk.get("ResultDesc"))
    if not result.succeeded:
        return result

    meta = stk.get("CallbackMetadata")
    items = meta.get("Item") if isinstance(meta, dict) else None
    result.items = [i for i in (items or []) if isinstance(i, dict)]
    for item in result.items:
        name, value = item.get("Name"), item.get("Value")
        if name == "MpesaReceiptNumber":
            result.receipt_number = str(value) if value is not None else None
        elif name == "TransactionDate":
            result.transaction_date = str(value) if value is not None else None
        elif name == "Amount":
            result.amount = value
    return result


def _event(donation: Optional[Donation], checkout_id: str, kind: str, *,
           from_status=None, to_status=None, actor="gateway", payload=None):
    db.session.add(PaymentEvent(
        donation_id=donation.id if donation else None,
        checkout_request_id=checkout_id,
        kind=kind,
        from_status=from_status,
        to_status=to_status,
        actor=actor,
        payload=payload,
    ))


def _notify_completed(donation: Donation):
    # mail failures are logged inside send_email and never undo the settlement
    email_donation_received(donation)
    user = donation.user
    if user is not None and user.email:
        email_donation_receipt(donation, user.email)


def apply_callback(body: Any) -> Donation:
    """Parse and apply one callback. Raises the callback-side errors for the policy to absorb."""
    result = parse_callback(body)
    checkout_id = result.checkout_request_id

    donation = Donation.query.filter_by(checkout_request_id=checkout_id).first()
    if donation is None:
        _event(None, checkout_id, "callback_unmatched", to_status=result.status, payload=body)
        db.session.commit()
        raise RecordNotFound(f"No donation for checkout {checkout_id}")

    previous = donation.status
    if donation.is_terminal:
        same = previous == result.status and (
            not result.succeeded or donation.receipt_number == result.receipt_number
        )
        kind = "callback_duplicate" if same else "callback_rejected"
        _event(donation, checkout_id, kind, from_status=previous, to_status=result.status, payload=body)
        db.session.commit()
        if same:
            log.info("Duplicate callback for donation %s (%s); nothing to do", donation.id, previous)
            return donation
        raise InvalidTransition(f"Donation {donation.id} is already {previous}; refusing {result.status}")

    donation.status = result.status
    if result.succeeded:
        donation.receipt_number = result.receipt_number
        donation.transaction_date = result.transaction_date
        donation.completed_at = datetime.utcnow()
        if donation.cause is not None:
            donation.cause.current_amount = (donation.cause.current_amount or 0) + donation.amount
    _event(donation, checkout_id, "callback_applied", from_status=previous, to_status=result.status, payload=body)
    db.session.commit()
    log.info("Donation %s %s -> %s (receipt=%s)", donation.id, previous, donation.status, donation.receipt_number)

    if result.succeeded:
        _notify_completed(donation)
    return donation


def override_status(donation: Donation, status: str, *, actor: str | None = None,
                    receipt_number: str | None = None, note: str | None = None) -> Donation:
    """Operator override; bypasses the transition guard but is always logged."""
    if status not in DONATION_STATUSES:
        raise ValueError(f"Unknown donation status: {status}")
    previous = donation.status
    donation.status = status
    if receipt_number is not None:
        donation.receipt_number = receipt_number
    if status == "completed" and donation.completed_at is None:
        donation.completed_at = datetime.utcnow()
    _event(donation, donation.checkout_request_id, "override", from_status=previous, to_status=status,
           actor=actor, payload={"note": note} if note else None)
    db.session.commit()
    log.warning("Donation %s status overridden %s -> %s by %s", donation.id, previous, status, actor)
    return donation


class AcknowledgeAndLog:
    """Answer policy for the gateway webhook.

    The gateway retries anything that is not HTTP 200, so malformed payloads,
    unknown checkout ids and refused transitions are acknowledged and logged.
    Only unexpected exceptions answer 500, so those get redelivered.
    """

    absorbed = (MalformedCallback, RecordNotFound, InvalidTransition)

    OK = {"ResultCode": 0, "ResultDesc": "Success"}
    INVALID = {"ResultCode": 0, "ResultDesc": "Invalid callback received"}
    FAILED = {"ResultCode": 1, "ResultDesc": "Failed"}

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or log

    def handle(self, body: Any) -> tuple[dict, int]:
        try:
            apply_callback(body)
            return dict(self.OK), 200
        except self.absorbed as e:
            return self.acknowledge(e, body)
        except Exception:
            db.session.rollback()
            self.log.exception("M-Pesa callback error")
            return dict(self.FAILED), 500

    def acknowledge(self, exc: Exception, body: Any) -> tuple[dict, int]:
        if isinstance(exc, MalformedCallback):
            self.log.error("M-Pesa callback error: %s | body=%r", exc, body)
            return dict(self.INVALID), 200
        # unknown checkout ids and refused transitions need an operator's eye
        self.log.warning("M-Pesa callback acknowledged without update: %s", exc)
        return dict(self.OK), 200
