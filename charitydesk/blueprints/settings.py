from flask import Blueprint, jsonify
from flask_babel import gettext as _

from ..errors import ValidationError
from ..security import roles_required, current_user_id
from ..services.settings_service import (
    all_settings, effective_settings, update_settings, reset_settings, masked,
)
from .utils import json_body

settings_bp = Blueprint("settings", __name__, url_prefix="/settings")


@settings_bp.route("")
@roles_required("admin")
def settings_all():
    return jsonify({t: masked(values) for t, values in all_settings().items()})


@settings_bp.route("/<setting_type>")
@roles_required("admin")
def settings_get(setting_type):
    return jsonify({"type": setting_type, **masked(effective_settings(setting_type))})


@settings_bp.route("/<setting_type>", methods=["PUT", "PATCH"])
@roles_required("admin")
def settings_update(setting_type):
    values = json_body().get("settings")
    if not isinstance(values, dict):
        raise ValidationError(_("settings must be an object"))
    _row, created = update_settings(setting_type, values, updated_by=current_user_id())
    message = "Settings created successfully" if created else "Settings updated successfully"
    return jsonify({"success": True, "message": message}), (201 if created else 200)


@settings_bp.route("/<setting_type>", methods=["DELETE"])
@roles_required("admin")
def settings_reset(setting_type):
    defaults = reset_settings(setting_type)
    return jsonify({
        "success": True,
        "message": "Settings reset to environment defaults",
        "defaults": masked(defaults),
    })
