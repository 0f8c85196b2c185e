from functools import wraps
from flask_login import current_user
from flask_babel import gettext as _
from .errors import Unauthenticated, Forbidden


def roles_required(*roles):
    """Allow the view only for logged-in users holding one of ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                raise Unauthenticated(_("Authentication required."))
            if getattr(current_user, "role", None) not in roles:
                raise Forbidden(_("You are not allowed to do that."))
            return view(*args, **kwargs)
        return wrapped
    return decorator


def current_user_id():
    return str(current_user.id) if current_user.is_authenticated else None
