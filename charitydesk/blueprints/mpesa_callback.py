from flask import Blueprint, request, jsonify, current_app
from ..extensions import csrf
from ..services.reconciliation import AcknowledgeAndLog

mpesa_callback_bp = Blueprint("mpesa_callback", __name__, url_prefix="/mpesa/callback")


@mpesa_callback_bp.route("", methods=["POST"])
@csrf.exempt
def callback():
    # The gateway does not authenticate; the checkout id is the only link to a donation.
    body = request.get_json(silent=True, force=True)
    payload, status = AcknowledgeAndLog(current_app.logger).handle(body)
    return jsonify(payload), status
