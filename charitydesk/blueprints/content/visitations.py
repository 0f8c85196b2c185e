from flask import jsonify
from flask_login import login_required
from flask_babel import gettext as _

from ...extensions import db
from ...errors import ValidationError
from ...models.visitation import Visitation, BUDGET_PARTS
from ...security import current_user_id
from ..utils import json_body, required_str, optional_str, number, images, iso_date, get_or_404

from . import content_bp


def _budget(data: dict) -> dict:
    raw = data.get("budget")
    if not isinstance(raw, dict):
        raise ValidationError(_("budget must be an object with %(parts)s", parts=", ".join(BUDGET_PARTS)))
    return {part: number(raw, part, minimum=0) for part in BUDGET_PARTS}


def _ordered(rows):
    return sorted(rows, key=lambda v: (v.visit_date, v.id))


def _listing(rows):
    return jsonify({"success": True, "count": len(rows), "data": [v.to_dict() for v in rows]})


@content_bp.route("/visitations", methods=["POST"])
@login_required
def visitation_create():
    data = json_body()
    children = number(data, "number_of_children", minimum=0)
    visit = Visitation(
        home_name=required_str(data, "home_name", 200),
        visit_date=iso_date(data.get("visit_date"), "visit_date"),
        number_of_children=int(children),
        status=required_str(data, "status", 30),
        notes=optional_str(data, "notes") or "",
        images=images(data),
        created_by=current_user_id(),
    )
    visit.set_budget(_budget(data))
    db.session.add(visit)
    db.session.commit()
    return jsonify({"success": True, "data": visit.to_dict()}), 201


@content_bp.route("/visitations")
def visitations_list():
    return _listing(_ordered(Visitation.query.all()))


@content_bp.route("/visitations/mine")
@login_required
def visitations_mine():
    return _listing(_ordered(Visitation.query.filter_by(created_by=current_user_id()).all()))


@content_bp.route("/visitations/<int:visit_id>")
def visitation_detail(visit_id):
    return jsonify({"success": True, "data": get_or_404(Visitation, visit_id, "Visitation").to_dict()})


@content_bp.route("/visitations/<int:visit_id>", methods=["PATCH", "PUT"])
@login_required
def visitation_update(visit_id):
    visit = get_or_404(Visitation, visit_id, "Visitation")
    data = json_body()
    home_name = optional_str(data, "home_name")
    if home_name:
        visit.home_name = home_name
    if data.get("visit_date"):
        visit.visit_date = iso_date(data["visit_date"], "visit_date")
    children = number(data, "number_of_children", required=False, minimum=0)
    if children is not None:
        visit.number_of_children = int(children)
    status = optional_str(data, "status")
    if status:
        visit.status = status
    notes = optional_str(data, "notes")
    if notes is not None:
        visit.notes = notes
    if data.get("budget") is not None:
        visit.set_budget(_budget(data))
    db.session.commit()
    return jsonify({"success": True, "data": visit.to_dict()})


@content_bp.route("/visitations/<int:visit_id>", methods=["DELETE"])
@login_required
def visitation_delete(visit_id):
    visit = get_or_404(Visitation, visit_id, "Visitation")
    db.session.delete(visit)
    db.session.commit()
    return jsonify({"success": True, "message": "Visitation deleted successfully"})


@content_bp.route("/visitations/<int:visit_id>/images", methods=["POST"])
@login_required
def visitation_add_images(visit_id):
    visit = get_or_404(Visitation, visit_id, "Visitation")
    visit.images = list(visit.images or []) + images(json_body(), required=True)
    db.session.commit()
    return jsonify({"success": True, "data": visit.images})


@content_bp.route("/visitations/<int:visit_id>/images")
def visitation_images(visit_id):
    visit = get_or_404(Visitation, visit_id, "Visitation")
    return jsonify({"success": True, "data": list(visit.images or [])})
