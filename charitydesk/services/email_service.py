from flask import current_app
from flask_mail import Message
from ..extensions import mail
from .settings_service import effective_settings
import logging

log = logging.getLogger(__name__)


def _sender():
    """(name, address) from the email settings, else MAIL_DEFAULT_SENDER."""
    cfg = effective_settings("email")
    addr = cfg.get("emailFrom") or current_app.config.get("MAIL_DEFAULT_SENDER") or current_app.config.get("MAIL_USERNAME")
    if not addr:
        return None
    name = cfg.get("emailFromName")
    return (name, addr) if name else addr


def send_email(*, to, subject, body, html=None, reply_to=None) -> bool:
    try:
        if not to:
            log.warning("send_email: missing recipient")
            return False
        recipients = [to] if isinstance(to, str) else list(to)

        sender = _sender()
        if not sender:
            log.error("send_email: no sender configured")
            return False

        msg = Message(subject=subject, recipients=recipients, sender=sender, reply_to=reply_to)
        msg.body = body
        if html:
            msg.html = html

        if current_app.config.get("MAIL_SUPPRESS_SEND"):
            log.info("[MAIL_SUPPRESS_SEND=1] would send: %s | %s", recipients, subject)
            return True

        mail.send(msg)
        log.info("Email sent to %s | subject=%s", recipients, subject)
        return True
    except Exception as e:
        log.exception("send_email failed: %s", e)
        return False
