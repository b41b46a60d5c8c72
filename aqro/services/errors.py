# aqro/services/errors.py
"""
Business-rule failures raised by the service layer.
main.py turns them into {"message": ..., **context} responses.
Best-effort notification failures never reach this hierarchy.
"""


class ServiceError(Exception):
    """Base class for errors that map onto a 4xx/5xx response."""
    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"message": self.message, **self.context}


class NotFoundError(ServiceError):
    status_code = 404


class InvalidStateError(ServiceError):
    """The container (or actor) is not in the state the operation requires."""
    status_code = 400


class AuthorizationError(ServiceError):
    status_code = 403


class QRCodeGenerationError(ServiceError):
    status_code = 503
