"""Domain exceptions raised by the service layer.

Each exception carries the HTTP status the API answers with; the app
factory registers a single handler for :class:`WeldTrackError`.
"""


class WeldTrackError(Exception):
    """Base exception for weld tracking rule violations."""
    status_code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(WeldTrackError):
    """Raised when input fails a domain rule."""
    status_code = 422


class NotFoundError(WeldTrackError):
    """Raised when a referenced entity does not exist."""
    status_code = 404


class ConflictError(WeldTrackError):
    """Raised when an operation is blocked by the current state."""
    status_code = 409
