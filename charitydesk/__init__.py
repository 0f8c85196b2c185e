import os
from pathlib import Path
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from flask import Flask, request, session, jsonify
from flask_login import current_user  # for locale selector
from flask_babel import gettext as _
import json_log_formatter
from .extensions import db, migrate, login_manager, csrf, mail, babel
from .config import Config
from .errors import Unauthenticated
from .models.user import User
from . import models  # noqa: F401  (register every table with the metadata)

# Blueprints
from .blueprints.errors import errors_bp
from .blueprints.auth import auth_bp
from .blueprints.payments import payments_bp
from .blueprints.content import content_bp
from .blueprints.settings import settings_bp
from .blueprints.mpesa_callback import mpesa_callback_bp

TEXT_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"

# request headers that carry gateway or session credentials
_SENSITIVE_HEADERS = {"authorization", "cookie", "x-csrftoken"}


def _scrub_event(event, hint):
    headers = (event.get("request") or {}).get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in _SENSITIVE_HEADERS:
                headers[name] = "[Filtered]"
    return event


# Optional: Sentry
def _init_sentry(app):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration(), SqlalchemyIntegration()],
            traces_sample_rate=app.config.get("SENTRY_TRACES_SAMPLE_RATE", 0.0),
            environment=os.getenv("ENV", "development"),
            release=app.config.get("APP_VERSION") or os.getenv("GIT_COMMIT"),
            send_default_pii=False,
            before_send=_scrub_event,
        )
        app.logger.info("Sentry initialized.")
    except Exception as e:
        app.logger.warning(f"Sentry init failed: {e}")


def _init_logging(app):
    level_name = app.config.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    # app.logger is the "charitydesk" logger; service modules log to its children
    app.logger.setLevel(level)
    for handler in list(app.logger.handlers):
        app.logger.removeHandler(handler)
        handler.close()

    if app.config.get("LOG_JSON", False):
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers = [logging.StreamHandler()]
    if app.config.get("LOG_TO_FILE", True):
        log_dir = Path(app.config.get("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        # Rotating file handler (5MB x 5)
        handlers.append(RotatingFileHandler(
            log_dir / app.config.get("LOG_FILENAME", "charitydesk.log"),
            maxBytes=5_000_000, backupCount=5, encoding="utf-8",
        ))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        app.logger.addHandler(handler)

    # requests/urllib3 debug lines would echo gateway URLs and headers
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
    app.logger.info("Logging initialized (level=%s, json=%s).", level_name, bool(app.config.get("LOG_JSON")))


def _init_login(app):
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    # JSON API: no login page to redirect to
    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated(_("Authentication required."))


def _register_blueprints(app):
    app.register_blueprint(errors_bp)  # error handlers
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(payments_bp, url_prefix="/payments")
    app.register_blueprint(content_bp, url_prefix="/api")
    app.register_blueprint(settings_bp)
    app.register_blueprint(mpesa_callback_bp)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    if not app.config.get("TESTING"):
        # instance/config.py may override anything for a deployment
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
        app.config.from_pyfile("config.py", silent=True)

    # Logging must come first so extension and blueprint setup is captured
    _init_logging(app)
    _init_sentry(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    mail.init_app(app)

    # ---- Babel init (locale from session/user/Accept-Language) ----
    def _select_locale():
        return (
            session.get("lang")
            or (getattr(current_user, "language", None) if getattr(current_user, "is_authenticated", False) else None)
            or request.accept_languages.best_match(app.config.get("LANGUAGES", ["en"]))
            or "en"
        )
    babel.init_app(app, locale_selector=_select_locale)

    _init_login(app)
    _register_blueprints(app)

    @app.route("/health")
    def health():
        return jsonify({
            "ok": True,
            "version": app.config.get("APP_VERSION"),
            "time": datetime.utcnow().isoformat(),
        })

    return app
