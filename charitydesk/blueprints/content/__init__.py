from flask import Blueprint

content_bp = Blueprint("content", __name__)

# Import route modules to register their endpoints
from . import causes        # noqa: E402,F401
from . import news          # noqa: E402,F401
from . import visitations   # noqa: E402,F401
from . import gallery       # noqa: E402,F401
