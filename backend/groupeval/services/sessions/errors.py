"""Error kinds raised by the session services.

Each error carries a stable ``kind`` string and the HTTP status the API
layer answers with, so routes never need to map them by hand.
"""


class SessionError(Exception):
    kind = 'error'
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class ValidationError(SessionError):
    kind = 'validation_error'
    status_code = 400


class NotFound(SessionError):
    kind = 'not_found'
    status_code = 404


class SessionFull(SessionError):
    kind = 'session_full'
    status_code = 409


class SessionInactive(SessionError):
    kind = 'session_inactive'
    status_code = 409


class AlreadySubmitted(SessionError):
    kind = 'already_submitted'
    status_code = 409


class NoAvailableSlot(SessionError):
    kind = 'no_available_slot'
    status_code = 409


class InternalError(SessionError):
    kind = 'internal'
    status_code = 500
