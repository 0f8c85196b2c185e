from __future__ import annotations
import base64, math, re
from datetime import datetime
from typing import Optional
import logging

import requests
from flask import current_app

from ..extensions import db
from ..errors import Unauthenticated, UpstreamAuthError, GatewayRequestError
from ..models.donation import Donation
from ..models.payment_event import PaymentEvent
from .settings_service import mpesa_config

log = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"

_PHONE_JUNK = re.compile(r"[\s\-().+]")


# -----------------
# Request building
# -----------------

def normalize_phone(phone: str, country_code: str = "254") -> str:
    """'0712 345-678' / '+254712345678' / '712345678' -> '254712345678'."""
    formatted = _PHONE_JUNK.sub("", phone or "")
    if formatted.startswith("0"):
        formatted = country_code + formatted[1:]
    if not formatted.startswith(country_code):
        formatted = country_code + formatted
    return formatted


def round_amount(amount) -> int:
    # half-up, so 100.5 -> 101 (round() would give 100)
    return int(math.floor(float(amount) + 0.5))


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def generate_password(shortcode: str, pass_key: str, ts: str) -> str:
    return base64.b64encode(f"{shortcode}{pass_key}{ts}".encode()).decode("utf-8")


def _timeout() -> int:
    return int(current_app.config.get("MPESA_TIMEOUT", 20))


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if isinstance(data, dict) and data.get("errorMessage"):
        return data["errorMessage"]
    return resp.reason or f"HTTP {resp.status_code}"


def _json(resp: requests.Response, error_cls, prefix: str) -> dict:
    """Body of a 2xx answer; anything but a JSON object is a gateway fault."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        log.error("%s: non-JSON body (status=%s)", prefix, resp.status_code)
        raise error_cls(f"{prefix}: invalid response from gateway")
    return data


# -----------------
# Token provider
# -----------------

def get_access_token(config: Optional[dict] = None) -> str:
    """Client-credential exchange. Not cached: every call re-authenticates."""
    config = config or mpesa_config()
    auth = base64.b64encode(f"{config['consumerKey']}:{config['consumerSecret']}".encode()).decode("utf-8")
    resp = requests.get(
        f"{config['baseUrl']}{TOKEN_PATH}",
        params={"grant_type": "client_credentials"},
        headers={"Authorization": f"Basic {auth}"},
        timeout=_timeout(),
    )
    log.info("M-Pesa token request status=%s", resp.status_code)
    if not resp.ok:
        msg = _error_message(resp)
        log.error("M-Pesa token request failed %s | %s", resp.status_code, msg)
        raise UpstreamAuthError(f"Failed to get access token: {msg}")
    token = _json(resp, UpstreamAuthError, "Failed to get access token").get("access_token")
    if not token:
        raise UpstreamAuthError("Failed to get access token: no access_token in response")
    return token


def check_connection() -> dict:
    """Report whether credentials work without raising."""
    try:
        token = get_access_token()
        return {"success": True, "message": "M-Pesa connection successful", "token": token[:10] + "..."}
    except Exception as e:
        log.warning("M-Pesa connection test failed: %s", e)
        return {"success": False, "message": str(e) or "Connection failed"}


# -----------------
# Push initiation
# -----------------

def initiate_stk_push(user, phone: str, amount, reference: str | None = None,
                      description: str | None = None, *, donor: str | None = None,
                      anonymous: bool = False, cause_id: int | None = None) -> dict:
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthenticated("Not authenticated")

    token = get_access_token()
    config = mpesa_config()

    ts = timestamp()
    password = generate_password(config["shortcode"], config["passKey"], ts)
    formatted_phone = normalize_phone(phone, current_app.config.get("MPESA_COUNTRY_CODE", "254"))
    payment_amount = round_amount(amount)

    payload = {
        "BusinessShortCode": config["shortcode"],
        "Password": password,
        "Timestamp": ts,
        "TransactionType": "CustomerPayBillOnline",
        "Amount": payment_amount,
        "PartyA": formatted_phone,
        "PartyB": config["shortcode"],
        "PhoneNumber": formatted_phone,
        "CallBackURL": config["callbackUrl"],
        "AccountReference": reference or current_app.config.get("MPESA_ACCOUNT_REFERENCE", "HrtFdn"),
        "TransactionDesc": description or current_app.config.get("MPESA_TRANSACTION_DESC"),
    }
    resp = requests.post(
        f"{config['baseUrl']}{STK_PUSH_PATH}",
        json=payload,
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        timeout=_timeout(),
    )
    log.info("M-Pesa STK push status=%s", resp.status_code)
    if not resp.ok:
        msg = _error_message(resp)
        log.error("M-Pesa STK push failed %s | %s | ref=%s amount=%s",
                  resp.status_code, msg, payload["AccountReference"], payment_amount)
        raise GatewayRequestError(f"STK Push failed: {msg}")

    data = _json(resp, GatewayRequestError, "STK Push failed")
    # without the checkout id no callback could ever settle the record
    if not data.get("CheckoutRequestID"):
        log.error("M-Pesa STK push accepted without CheckoutRequestID: %r", data)
        raise GatewayRequestError("STK Push failed: no CheckoutRequestID in response")
    donation = Donation(
        donor=(donor or "").strip() or getattr(user, "name", None) or "M-Pesa Donor",
        phone=formatted_phone,
        amount=payment_amount,
        anonymous=bool(anonymous),
        status="pending",
        payment_method="mpesa",
        user_id=getattr(user, "id", None),
        cause_id=cause_id,
        checkout_request_id=data.get("CheckoutRequestID"),
        merchant_request_id=data.get("MerchantRequestID"),
    )
    db.session.add(donation)
    db.session.flush()
    db.session.add(PaymentEvent(
        donation_id=donation.id,
        checkout_request_id=donation.checkout_request_id,
        kind="initiated",
        to_status="pending",
        actor=str(donation.user_id) if donation.user_id is not None else None,
        payload=data,
    ))
    db.session.commit()
    log.info("Donation %s pending checkout=%s", donation.id, donation.checkout_request_id)
    return {**data, "donation_id": donation.id}


# -----------------
# Status poll
# -----------------

def query_stk_status(checkout_request_id: str) -> dict:
    """Ask the gateway about a push. Advisory only; records are left untouched."""
    token = get_access_token()
    config = mpesa_config()
    ts = timestamp()
    payload = {
        "BusinessShortCode": config["shortcode"],
        "Password": generate_password(config["shortcode"], config["passKey"], ts),
        "Timestamp": ts,
        "CheckoutRequestID": checkout_request_id,
    }
    resp = requests.post(
        f"{config['baseUrl']}{STK_QUERY_PATH}",
        json=payload,
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        timeout=_timeout(),
    )
    log.info("M-Pesa STK query status=%s checkout=%s", resp.status_code, checkout_request_id)
    if not resp.ok:
        raise GatewayRequestError(f"Status check failed: {_error_message(resp)}")
    return _json(resp, GatewayRequestError, "Status check failed")
