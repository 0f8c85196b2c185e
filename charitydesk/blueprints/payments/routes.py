from flask import jsonify
from flask_login import login_required, current_user
from flask_babel import gettext as _

from ...errors import ValidationError
from ...models.cause import Cause
from ...security import roles_required
from ...services.mpesa_service import initiate_stk_push, query_stk_status, check_connection, round_amount
from ..utils import json_body, required_str, optional_str, number, boolean, get_or_404
from . import payments_bp


# -----------------
# Start payment: push a prompt to the donor's phone
# -----------------

@payments_bp.route("/mpesa/stk-push", methods=["POST"])
@login_required
def stk_push():
    data = json_body()
    phone = required_str(data, "phone", 32)
    amount = number(data, "amount")
    if round_amount(amount) < 1:
        raise ValidationError(_("Amount must be at least 1."))

    cause_id = number(data, "cause_id", required=False)
    if cause_id is not None:
        cause_id = int(cause_id)
        cause = get_or_404(Cause, cause_id, "Cause")
        if not cause.active:
            raise ValidationError(_("This cause is no longer accepting donations."))

    result = initiate_stk_push(
        current_user,
        phone,
        amount,
        reference=optional_str(data, "reference") or None,
        description=optional_str(data, "description") or None,
        donor=optional_str(data, "donor"),
        anonymous=bool(boolean(data, "anonymous", False)),
        cause_id=cause_id,
    )
    return jsonify(result), 200


# -----------------
# Status poll (advisory; does not touch the donation)
# -----------------

@payments_bp.route("/mpesa/status/<checkout_request_id>")
@login_required
def stk_status(checkout_request_id):
    return jsonify(query_stk_status(checkout_request_id))


@payments_bp.route("/mpesa/test-connection", methods=["POST"])
@roles_required("admin")
def test_connection():
    return jsonify(check_connection())
