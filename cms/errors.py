"""Error kinds raised by the CMS handlers.

Each error carries the HTTP status it maps to and a short message that is safe
to show to the browser. GitHub's own error bodies never end up in ``message``.
"""

from __future__ import annotations

from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_409_CONFLICT,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)


class CMSError(Exception):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(CMSError):
    status_code = HTTP_400_BAD_REQUEST


class InvalidEncoding(BadRequest):
    def __init__(self, message: str = "Invalid contentBase64") -> None:
        super().__init__(message)


class Unauthenticated(CMSError):
    status_code = HTTP_401_UNAUTHORIZED


class Forbidden(CMSError):
    status_code = HTTP_403_FORBIDDEN


class Conflict(CMSError):
    status_code = HTTP_409_CONFLICT


class PayloadTooLarge(CMSError):
    status_code = HTTP_413_REQUEST_ENTITY_TOO_LARGE


class ServerMisconfigured(CMSError):
    status_code = HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamFailure(CMSError):
    status_code = HTTP_502_BAD_GATEWAY
