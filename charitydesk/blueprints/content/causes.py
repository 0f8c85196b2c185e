from flask import jsonify
from flask_login import login_required
from sqlalchemy import desc

from ...extensions import db
from ...models.cause import Cause
from ...models.donation import Donation
from ...security import current_user_id
from ..utils import json_body, required_str, optional_str, number, boolean, images, get_or_404

from . import content_bp


def _listing(rows):
    return jsonify({"success": True, "count": len(rows), "data": [c.to_dict() for c in rows]})


@content_bp.route("/causes", methods=["POST"])
@login_required
def cause_create():
    data = json_body()
    cause = Cause(
        title=required_str(data, "title", 200),
        description=required_str(data, "description"),
        goal_amount=number(data, "goal_amount", minimum=0),
        current_amount=0,
        images=images(data),
        created_by=current_user_id(),
        active=True,
    )
    db.session.add(cause)
    db.session.commit()
    return jsonify({"success": True, "data": cause.to_dict()}), 201


@content_bp.route("/causes")
def causes_list():
    return _listing(Cause.query.order_by(desc(Cause.created_at), desc(Cause.id)).all())


@content_bp.route("/causes/active")
def causes_active():
    rows = Cause.query.filter_by(active=True).order_by(desc(Cause.created_at), desc(Cause.id)).all()
    return _listing(rows)


@content_bp.route("/causes/mine")
@login_required
def causes_mine():
    rows = Cause.query.filter_by(created_by=current_user_id()).order_by(desc(Cause.created_at)).all()
    return _listing(rows)


@content_bp.route("/causes/<int:cause_id>")
def cause_detail(cause_id):
    return jsonify({"success": True, "data": get_or_404(Cause, cause_id, "Cause").to_dict()})


@content_bp.route("/causes/<int:cause_id>", methods=["PATCH", "PUT"])
@login_required
def cause_update(cause_id):
    cause = get_or_404(Cause, cause_id, "Cause")
    data = json_body()
    # empty strings leave text fields alone
    title = optional_str(data, "title")
    if title:
        cause.title = title
    description = optional_str(data, "description")
    if description:
        cause.description = description
    goal = number(data, "goal_amount", required=False, minimum=0)
    if goal is not None:
        cause.goal_amount = goal
    current = number(data, "current_amount", required=False, minimum=0)
    if current is not None:
        cause.current_amount = current
    active = boolean(data, "active")
    if active is not None:
        cause.active = active
    db.session.commit()
    return jsonify({"success": True, "data": cause.to_dict()})


@content_bp.route("/causes/<int:cause_id>", methods=["DELETE"])
@login_required
def cause_delete(cause_id):
    cause = get_or_404(Cause, cause_id, "Cause")
    # donations outlive the cause they were made to
    Donation.query.filter_by(cause_id=cause.id).update({"cause_id": None})
    db.session.delete(cause)
    db.session.commit()
    return jsonify({"success": True, "message": "Cause deleted successfully"})


@content_bp.route("/causes/<int:cause_id>/images", methods=["POST"])
@login_required
def cause_add_images(cause_id):
    cause = get_or_404(Cause, cause_id, "Cause")
    cause.images = list(cause.images or []) + images(json_body(), required=True)
    db.session.commit()
    return jsonify({"success": True, "data": cause.images})


@content_bp.route("/causes/<int:cause_id>/amount", methods=["POST"])
@login_required
def cause_add_amount(cause_id):
    cause = get_or_404(Cause, cause_id, "Cause")
    cause.current_amount = (cause.current_amount or 0) + number(json_body(), "amount")
    db.session.commit()
    return jsonify({"success": True, "data": cause.to_dict()})
