import logging
from flask import jsonify, request
from werkzeug.exceptions import HTTPException
from flask_wtf.csrf import CSRFError
from ...extensions import db
from ...errors import CharityDeskError
from . import errors_bp

log = logging.getLogger(__name__)


# Domain errors carry their own status code
@errors_bp.app_errorhandler(CharityDeskError)
def err_domain(e: CharityDeskError):
    if e.status_code >= 500:
        log.error("%s on %s: %s", type(e).__name__, request.path, e.message)
    return jsonify(e.to_dict()), e.status_code

# CSRF: 400 Bad Request
@errors_bp.app_errorhandler(CSRFError)
def err_csrf(e):
    return jsonify({"error": e.description}), 400

# 404: Not Found
@errors_bp.app_errorhandler(404)
def err_404(e):
    return jsonify({"error": "Not found", "path": request.path}), 404

# Fallback for uncaught HTTPException (code/desc as JSON)
@errors_bp.app_errorhandler(HTTPException)
def err_http(e: HTTPException):
    return jsonify({"error": e.name, "description": e.description}), e.code

# Last-resort: any other Exception
@errors_bp.app_errorhandler(Exception)
def err_unexpected(e):
    # if a DB action caused this, rollback so app isn’t stuck in bad transaction
    db.session.rollback()
    log.exception("Unhandled error on %s", request.path)
    # generic 500, no internals
    return jsonify({"error": "Internal server error"}), 500
