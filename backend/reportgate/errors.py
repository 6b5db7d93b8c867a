"""
Categorized failures returned by every fallible operation.

A ``StatusError`` carries three things:

- ``kind``: the external status class, which fixes the HTTP status code
- ``message``: a caller-safe string that is serialized as the response body
- ``cause``: the underlying exception, kept for logs and alerts only

``StatusError`` is a single tagged type. Callers branch on ``kind`` (and, for bad
requests, ``reason``) rather than on subclasses.
"""

from enum import Enum

from sqlalchemy.exc import NoResultFound

INTERNAL_SERVER_ERROR_MESSAGE = "internal server error"


class StatusKind(str, Enum):
    BAD_REQUEST = "bad_request"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_IMPLEMENTED = "not_implemented"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    HTTPS_REQUIRED = "https_required"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    StatusKind.BAD_REQUEST: 400,
    StatusKind.METHOD_NOT_ALLOWED: 405,
    StatusKind.NOT_IMPLEMENTED: 501,
    StatusKind.INTERNAL_SERVER_ERROR: 500,
    # Plain HTTP is refused, never redirected
    StatusKind.HTTPS_REQUIRED: 418,
}


class BadRequestReason(str, Enum):
    MALFORMED_REQUEST = "malformed_request"
    CHALLENGE_NOT_FOUND = "challenge_not_found"
    CHALLENGE_USED = "challenge_used"
    CHALLENGE_EXPIRED = "challenge_expired"
    INVALID_PROOF = "invalid_proof"


class StatusError(Exception):
    def __init__(
        self,
        kind: StatusKind,
        message: str,
        *,
        cause: BaseException | None = None,
        reason: BadRequestReason | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.reason = reason

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @property
    def is_internal(self) -> bool:
        return self.kind is StatusKind.INTERNAL_SERVER_ERROR

    def to_response_body(self) -> dict:
        return {"message": self.message}

    def __repr__(self) -> str:
        return (
            f"StatusError(kind={self.kind.value!r}, message={self.message!r}, "
            f"reason={self.reason.value if self.reason else None!r}, cause={self.cause!r})"
        )


def bad_request(
    message: str,
    reason: BadRequestReason = BadRequestReason.MALFORMED_REQUEST,
    *,
    cause: BaseException | None = None,
) -> StatusError:
    """Client error. The message is sent back as-is."""
    return StatusError(StatusKind.BAD_REQUEST, message, cause=cause, reason=reason)


def internal_server_error(cause: BaseException) -> StatusError:
    """
    Server fault. The caller only ever sees a generic message.

    The real cause stays on the error for operator-side logging.
    """
    return StatusError(
        StatusKind.INTERNAL_SERVER_ERROR, INTERNAL_SERVER_ERROR_MESSAGE, cause=cause
    )


def method_not_allowed(method: str) -> StatusError:
    return StatusError(StatusKind.METHOD_NOT_ALLOWED, f"unsupported method: {method}")


def not_implemented() -> StatusError:
    return StatusError(StatusKind.NOT_IMPLEMENTED, "not implemented")


def https_required() -> StatusError:
    return StatusError(
        StatusKind.HTTPS_REQUIRED, "unsupported protocol HTTP; only HTTPS is supported"
    )


def challenge_not_found() -> StatusError:
    return bad_request("not found", BadRequestReason.CHALLENGE_NOT_FOUND)


def challenge_used() -> StatusError:
    return bad_request("challenge already used", BadRequestReason.CHALLENGE_USED)


def challenge_expired() -> StatusError:
    return bad_request("challenge expired", BadRequestReason.CHALLENGE_EXPIRED)


def invalid_proof() -> StatusError:
    return bad_request("invalid proof of work", BadRequestReason.INVALID_PROOF)


def from_database_error(exc: BaseException) -> StatusError:
    """Convert an exception raised by the persistence layer into a StatusError."""
    if isinstance(exc, StatusError):
        return exc
    if isinstance(exc, NoResultFound):
        return bad_request("not found", BadRequestReason.CHALLENGE_NOT_FOUND, cause=exc)
    return internal_server_error(exc)
