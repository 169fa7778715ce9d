"""Error taxonomy shared by services and routers.

Every error carries the HTTP status the boundary should answer with. They
subclass ``ValueError`` so callers that only care about "bad request vs.
everything else" can keep catching ``ValueError``.
"""


class ShulPayError(ValueError):
    """Base class for expected, user-visible failures."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ShulPayError):
    status_code = 400


class NotFoundError(ShulPayError):
    status_code = 404


class ProcessorNotReadyError(ShulPayError):
    """Processor exists but is inactive or missing credentials."""

    status_code = 400


class AuthorizationError(ShulPayError):
    status_code = 401


class PermissionDeniedError(ShulPayError):
    status_code = 403


class ConflictError(ShulPayError):
    status_code = 409


class GatewayError(ShulPayError):
    """The payment gateway was unreachable or rejected an API call."""

    status_code = 502

    def __init__(self, message: str, response_code: str | None = None):
        super().__init__(message)
        self.response_code = response_code


class PersistenceError(ShulPayError):
    status_code = 500
