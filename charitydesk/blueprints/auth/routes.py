import logging
from flask import jsonify, session
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from flask_babel import gettext as _
from ...extensions import db
from ...errors import ValidationError, Unauthenticated
from ...models.user import User
from ..utils import json_body, required_str, optional_str
from . import auth_bp

log = logging.getLogger(__name__)


# -----------------
# Register (donor accounts only; admins come from create.py)
# -----------------

@auth_bp.route("/register", methods=["POST"])
def register():
    data = json_body()
    email = required_str(data, "email", 255).lower()
    name = required_str(data, "name", 120)
    password = required_str(data, "password")
    if len(password) < 8:
        raise ValidationError(_("Password must be at least 8 characters."))

    if User.query.filter_by(email=email).first():
        raise ValidationError(_("Email is already registered. Try logging in."))

    user = User(name=name, email=email, phone=optional_str(data, "phone") or None, role="donor")
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    log.info("Registered donor %s", user.id)
    return jsonify({"user": user.to_dict()}), 201


# -----------------
# Login / Logout
# -----------------

@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    email = required_str(data, "email").lower()
    password = required_str(data, "password")

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        log.warning("Failed login for %s", email)
        raise Unauthenticated(_("Invalid email or password."))
    if not login_user(user, remember=bool(data.get("remember"))):
        raise Unauthenticated(_("This account is suspended."))

    user.mark_login()
    db.session.commit()
    if user.language:
        session["lang"] = user.language
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    session.pop("lang", None)
    return jsonify({"ok": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


# JSON clients echo this back in the X-CSRFToken header
@auth_bp.route("/csrf")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
