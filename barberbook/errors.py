# barberbook/errors.py

"""
Error taxonomy for the scheduling core.

Every error carries a stable machine-readable `kind` and the HTTP status it
maps to. Routes let these propagate; the handler in main.py renders them as
{"kind": ..., "message": ...}.
"""


class BookingError(Exception):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(BookingError):
    kind = "invalid_request"
    status_code = 400


class NotFound(BookingError):
    kind = "not_found"
    status_code = 404


class Forbidden(BookingError):
    kind = "forbidden"
    status_code = 403


class Conflict(BookingError):
    kind = "conflict"
    status_code = 409


class Internal(BookingError):
    kind = "internal"
    status_code = 500
