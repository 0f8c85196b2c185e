import math
from flask import jsonify, request
from flask_babel import gettext as _
from sqlalchemy import desc, or_

from ...errors import ValidationError
from ...models.donation import Donation, DONATION_STATUSES
from ...security import roles_required, current_user_id
from ...services.reconciliation import override_status
from ..utils import json_body, required_str, optional_str, get_or_404, iso_datetime, page_args
from . import payments_bp


@payments_bp.route("/donations")
@roles_required("admin")
def donations_list():
    qry = Donation.query

    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        conds = [Donation.donor.ilike(like), Donation.phone.like(like)]
        if search.isdigit():
            conds.append(Donation.amount == int(search))
        qry = qry.filter(or_(*conds))

    status = (request.args.get("status") or "").strip().lower()
    if status and status != "all":
        qry = qry.filter(Donation.status == status)

    if request.args.get("start_date"):
        qry = qry.filter(Donation.created_at >= iso_datetime(request.args["start_date"], "start_date"))
    if request.args.get("end_date"):
        qry = qry.filter(Donation.created_at <= iso_datetime(request.args["end_date"], "end_date", end_of_day=True))

    page, limit = page_args(default_limit=10)
    total = qry.count()
    rows = (qry.order_by(desc(Donation.created_at), desc(Donation.id))
               .offset((page - 1) * limit).limit(limit).all())
    return jsonify({
        "donations": [d.to_dict() for d in rows],
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit)},
    })


@payments_bp.route("/donations/<int:donation_id>")
@roles_required("admin")
def donation_detail(donation_id):
    donation = get_or_404(Donation, donation_id, "Donation")
    return jsonify({"data": donation.to_dict()})


@payments_bp.route("/donations/<int:donation_id>/events")
@roles_required("admin")
def donation_events(donation_id):
    donation = get_or_404(Donation, donation_id, "Donation")
    return jsonify({"data": [e.to_dict() for e in donation.events]})


@payments_bp.route("/donations/<int:donation_id>/status", methods=["POST"])
@roles_required("admin")
def donation_override(donation_id):
    donation = get_or_404(Donation, donation_id, "Donation")
    data = json_body()
    status = required_str(data, "status").lower()
    if status not in DONATION_STATUSES:
        raise ValidationError(_("Status must be one of: %(choices)s", choices=", ".join(DONATION_STATUSES)))
    override_status(
        donation,
        status,
        actor=current_user_id(),
        receipt_number=optional_str(data, "receipt_number") or None,
        note=optional_str(data, "note") or None,
    )
    return jsonify({"data": donation.to_dict()})
