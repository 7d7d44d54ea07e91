"""OAuth code exchange for the admin page login."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from litestar import Request, Response, post

from cms.auth import authorize
from cms.config import Settings
from cms.deps import GitHubDep, SettingsDep
from cms.errors import BadRequest, Forbidden, Unauthenticated
from cms.github import GitHubClient
from cms.responses import json_response, read_json_object

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}
OPAQUE_ORIGIN = "null"


def url_origin(url: str) -> str | None:
    """``scheme://host[:port]`` of ``url``, with the default port dropped.

    URLs with a scheme other than http(s) have the opaque origin ``"null"``;
    ``None`` means ``url`` is not an absolute URL at all.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if not scheme:
        return None
    if scheme not in _DEFAULT_PORTS:
        return OPAQUE_ORIGIN
    if not parts.hostname:
        return None
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    origin = f"{scheme}://{host}"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        origin += f":{port}"
    return origin


async def exchange_code(code: str, redirect_uri: str, settings: Settings, github: GitHubClient) -> str:
    """Return a GitHub access token for ``code``, for allowlisted users only."""
    origin = url_origin(redirect_uri)
    if origin is None:
        raise BadRequest("Bad request")
    if origin != settings.frontend_origin:
        raise Forbidden("Invalid redirectUri origin")

    access_token = await github.exchange_code(code, redirect_uri)
    if access_token is None:
        raise Unauthenticated("OAuth exchange failed")

    identity = await authorize(github, access_token, settings.allowed_users)
    logger.info("Issued CMS login for %s", identity.login)
    return access_token


@post("/api/github/exchange")
async def github_exchange(request: Request, settings: SettingsDep, github: GitHubDep) -> Response:
    body = await read_json_object(request)
    code = body.get("code")
    redirect_uri = body.get("redirectUri")
    if not code or not redirect_uri or not isinstance(code, str) or not isinstance(redirect_uri, str):
        raise BadRequest("Missing code or redirectUri")

    access_token = await exchange_code(code, redirect_uri, settings, github)
    return json_response({"access_token": access_token}, settings)
