"""Response helpers shared by every route: JSON bodies and the fixed headers."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from litestar import Response
from litestar.status_codes import HTTP_200_OK, HTTP_204_NO_CONTENT

from cms.errors import BadRequest

if TYPE_CHECKING:
    from litestar import Request

    from cms.config import Settings

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


def cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Vary": "Origin",
    }


def response_headers(settings: Settings) -> dict[str, str]:
    return {**cors_headers(settings.frontend_origin), **SECURITY_HEADERS}


def json_response(body: dict[str, Any], settings: Settings, status_code: int = HTTP_200_OK) -> Response:
    return Response(
        content=body,
        status_code=status_code,
        media_type="application/json",
        headers=response_headers(settings),
    )


def error_response(message: str, settings: Settings, status_code: int) -> Response:
    return json_response({"error": message}, settings, status_code)


def empty_response(settings: Settings, status_code: int = HTTP_204_NO_CONTENT) -> Response:
    return Response(content=None, status_code=status_code, headers=response_headers(settings))


def text_response(text: str, settings: Settings, status_code: int) -> Response:
    return Response(
        content=text,
        status_code=status_code,
        media_type="text/plain",
        headers=response_headers(settings),
    )


async def read_json_object(request: Request) -> dict[str, Any]:
    """Decode the request body, which must be a JSON object."""
    raw = await request.body()
    try:
        data = json.loads(raw or b"null")
    except ValueError as exc:
        raise BadRequest("Bad request") from exc
    if not isinstance(data, dict):
        raise BadRequest("Bad request")
    try:
        # Lone surrogates decode from JSON escapes but cannot be sent on as UTF-8.
        json.dumps(data, ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise BadRequest("Bad request") from exc
    return data
