"""Exception taxonomy shared by services and blueprints.

Every error carries the HTTP status the ``errors`` blueprint answers with.
The callback-side errors (``MalformedCallback``, ``RecordNotFound``,
``InvalidTransition``) never reach that handler: the callback blueprint
acknowledges them with HTTP 200 through ``AcknowledgeAndLog``.
"""


class CharityDeskError(Exception):
    status_code = 400

    def __init__(self, message: str = "", *, payload: dict | None = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"error": self.message or self.__class__.__name__, **self.payload}


class ValidationError(CharityDeskError):
    status_code = 400


class Unauthenticated(CharityDeskError):
    status_code = 401


class Forbidden(CharityDeskError):
    status_code = 403


class ResourceNotFound(CharityDeskError):
    status_code = 404


class ConfigurationError(CharityDeskError):
    status_code = 500


class UpstreamAuthError(CharityDeskError):
    """Token exchange with the payment gateway failed."""
    status_code = 502


class GatewayRequestError(CharityDeskError):
    """Push or status-query submission was rejected by the gateway."""
    status_code = 502


# --- callback side ---

class MalformedCallback(CharityDeskError):
    pass


class RecordNotFound(CharityDeskError):
    status_code = 404


class InvalidTransition(CharityDeskError):
    status_code = 409
