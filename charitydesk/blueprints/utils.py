import math
from datetime import date, datetime
from flask import request
from flask_babel import gettext as _
from ..errors import ValidationError, ResourceNotFound
from ..extensions import db


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(_("Expected a JSON object."))
    return data


def get_or_404(model, obj_id, label: str):
    obj = db.session.get(model, obj_id)
    if obj is None:
        raise ResourceNotFound(_("%(thing)s not found", thing=label))
    return obj


def required_str(data: dict, key: str, max_len: int | None = None) -> str:
    value = (data.get(key) or "")
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        raise ValidationError(_("%(field)s is required", field=key))
    if max_len and len(value) > max_len:
        raise ValidationError(_("%(field)s is too long", field=key))
    return value


def optional_str(data: dict, key: str):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(_("%(field)s must be a string", field=key))
    return value.strip()


def number(data: dict, key: str, *, required=True, minimum=None):
    value = data.get(key)
    if value is None or value == "":
        if required:
            raise ValidationError(_("%(field)s is required", field=key))
        return None
    # bools are ints in python; reject them explicitly
    if isinstance(value, bool):
        raise ValidationError(_("%(field)s must be a number", field=key))
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(_("%(field)s must be a number", field=key))
    # "1e400", NaN and Infinity parse as floats but are not amounts
    if not math.isfinite(value):
        raise ValidationError(_("%(field)s must be a finite number", field=key))
    if minimum is not None and value < minimum:
        raise ValidationError(_("%(field)s must be at least %(min)s", field=key, min=minimum))
    return value


def boolean(data: dict, key: str, default=None):
    value = data.get(key, default)
    if value is None or isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def iso_date(value, key: str) -> date:
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError(_("%(field)s must be an ISO date (YYYY-MM-DD)", field=key))


def iso_datetime(value, key: str, *, end_of_day=False) -> datetime:
    d = iso_date(value, key)
    if end_of_day:
        return datetime(d.year, d.month, d.day, 23, 59, 59, 999999)
    return datetime(d.year, d.month, d.day)


def images(data: dict, key: str = "images", *, required=False) -> list[dict]:
    """Validate a list of CDN image refs: [{"url": ..., "public_id": ...}]."""
    raw = data.get(key)
    if raw is None:
        if required:
            raise ValidationError(_("%(field)s is required", field=key))
        return []
    if not isinstance(raw, list):
        raise ValidationError(_("%(field)s must be a list", field=key))
    out = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError(_("Each image needs url and public_id"))
        url = item.get("url")
        public_id = item.get("public_id") or item.get("publicId")
        if not url or not public_id:
            raise ValidationError(_("Each image needs url and public_id"))
        out.append({"url": str(url), "public_id": str(public_id)})
    return out


def page_args(default_limit=10, max_limit=100) -> tuple[int, int]:
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    return max(page, 1), min(max(limit, 1), max_limit)
