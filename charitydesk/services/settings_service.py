from __future__ import annotations
from datetime import datetime
from typing import Mapping
import logging

from flask import current_app

from ..extensions import db
from ..errors import ConfigurationError, ValidationError
from ..models.setting import SettingOverride

log = logging.getLogger(__name__)

# settings key -> app config (environment) key, per settings type
SETTING_FIELDS: dict[str, dict[str, str]] = {
    "general": {
        "siteName": "SITE_NAME",
        "siteDescription": "SITE_DESCRIPTION",
        "contactEmail": "CONTACT_EMAIL",
        "contactPhone": "CONTACT_PHONE",
    },
    "mpesa": {
        "baseUrl": "MPESA_API_URL",
        "consumerKey": "MPESA_CONSUMER_KEY",
        "consumerSecret": "MPESA_CONSUMER_SECRET",
        "shortcode": "MPESA_SHORTCODE",
        "passKey": "MPESA_PASSKEY",
        "callbackUrl": "MPESA_CALLBACK_URL",
    },
    "email": {
        "resendApiKey": "RESEND_API_KEY",
        "emailFrom": "EMAIL_FROM",
        "emailFromName": "EMAIL_FROM_NAME",
    },
    "sms": {
        "smsApiUrl": "SMS_API_URL",
        "smsApiKey": "SMS_API_KEY",
        "smsSenderId": "SMS_SENDER_ID",
    },
}

SECRET_KEYS = {"consumerSecret", "passKey", "resendApiKey", "smsApiKey"}


def _check_type(setting_type: str):
    if setting_type not in SETTING_FIELDS:
        raise ValidationError(f"Unknown settings type: {setting_type}")


def resolve(setting_type: str, stored_overrides: Mapping | None, environment_defaults: Mapping) -> dict:
    """Merge one settings type: a non-empty stored override beats the environment default."""
    _check_type(setting_type)
    stored_overrides = stored_overrides or {}
    effective = {}
    for key, env_key in SETTING_FIELDS[setting_type].items():
        value = stored_overrides.get(key)
        if value in (None, ""):
            value = environment_defaults.get(env_key) or ""
        effective[key] = value
    return effective


def environment_defaults(setting_type: str) -> dict:
    """Defaults for a settings type, keyed by settings key."""
    return resolve(setting_type, None, current_app.config)


def _stored(setting_type: str) -> SettingOverride | None:
    return SettingOverride.query.filter_by(type=setting_type).first()


def effective_settings(setting_type: str) -> dict:
    _check_type(setting_type)
    row = _stored(setting_type)
    return resolve(setting_type, row.values if row else None, current_app.config)


def all_settings() -> dict:
    return {t: effective_settings(t) for t in SETTING_FIELDS}


def mpesa_config() -> dict:
    """Resolved gateway settings; every key is required."""
    cfg = effective_settings("mpesa")
    for key, env_key in SETTING_FIELDS["mpesa"].items():
        if not cfg.get(key):
            raise ConfigurationError(f"Missing configuration: {key} (env: {env_key})")
    cfg["baseUrl"] = cfg["baseUrl"].rstrip("/")
    return cfg


def update_settings(setting_type: str, values: Mapping, *, updated_by: str | None = None) -> tuple[SettingOverride, bool]:
    """Create or patch the stored override for a type. Returns (row, created)."""
    _check_type(setting_type)
    unknown = sorted(set(values) - set(SETTING_FIELDS[setting_type]))
    if unknown:
        raise ValidationError(f"Unknown {setting_type} settings: {', '.join(unknown)}")
    wrong = sorted(k for k, v in values.items() if v is not None and not isinstance(v, str))
    if wrong:
        raise ValidationError(f"{setting_type} settings must be strings: {', '.join(wrong)}")

    row = _stored(setting_type)
    created = row is None
    if created:
        row = SettingOverride(type=setting_type, values={})
        db.session.add(row)
    # JSON columns only notice reassignment
    row.values = {**(row.values or {}), **{k: (v or "") for k, v in values.items()}}
    row.updated_by = updated_by
    row.updated_at = datetime.utcnow()
    db.session.commit()
    log.info("Settings %s %s by %s (keys=%s)", setting_type,
             "created" if created else "updated", updated_by, sorted(values))
    return row, created


def reset_settings(setting_type: str) -> dict:
    _check_type(setting_type)
    row = _stored(setting_type)
    if row:
        db.session.delete(row)
        db.session.commit()
        log.info("Settings %s reset to environment defaults", setting_type)
    return environment_defaults(setting_type)


def mask(value: str, show: int = 6) -> str:
    if not value:
        return ""
    if len(value) <= show + 4:
        return "…"
    return value[:show] + "…" + value[-4:]


def masked(values: Mapping) -> dict:
    return {k: (mask(v) if k in SECRET_KEYS else v) for k, v in values.items()}
