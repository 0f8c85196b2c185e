from datetime import datetime
from ..extensions import db


class SettingOverride(db.Model):
    """Operator-supplied overrides for one settings type; env config fills the gaps."""
    __tablename__ = "setting_override"

    id = db.Column(db.Integer, primary_key=True)
    # general|mpesa|email|sms
    type = db.Column(db.String(20), unique=True, nullable=False, index=True)
    values = db.Column(db.JSON, nullable=False, default=dict)
    updated_by = db.Column(db.String(64))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
