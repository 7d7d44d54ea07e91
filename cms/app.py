"""GitHub OAuth exchange and commit endpoint for the bleach.fish admin page."""

from __future__ import annotations

import logging

import httpx
from litestar import Litestar, Request, Response, get, route
from litestar.connection import ASGIConnection
from litestar.datastructures import State
from litestar.di import Provide
from litestar.enums import HttpMethod
from litestar.exceptions import HTTPException, MethodNotAllowedException, NotFoundException
from litestar.handlers.base import BaseRouteHandler
from litestar.logging.config import LoggingConfig
from litestar.status_codes import HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND, HTTP_500_INTERNAL_SERVER_ERROR

from cms.commit import cms_commit
from cms.config import Settings, load_dotenv_file
from cms.deps import SettingsDep, provide_github, provide_settings
from cms.errors import CMSError, Forbidden
from cms.exchange import github_exchange
from cms.responses import empty_response, error_response, json_response, text_response

logger = logging.getLogger(__name__)

load_dotenv_file()


def _origin_rejected(method: str, origin: str | None, settings: Settings) -> bool:
    return method != "GET" and bool(origin) and origin != settings.frontend_origin


def check_origin(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    """Browser traffic must come from the configured front end, GETs aside."""
    settings: Settings = connection.app.state.settings
    if _origin_rejected(connection.scope["method"], connection.headers.get("Origin"), settings):
        raise Forbidden("Origin not allowed")


@get("/_health/")
async def health(settings: SettingsDep) -> Response:
    return json_response({"status": "ok"}, settings)


@route(["/_health/", "/api/github/exchange", "/api/cms/commit"], http_method=[HttpMethod.OPTIONS])
async def preflight(settings: SettingsDep) -> Response:
    return empty_response(settings)


def handle_cms_error(request: Request, exc: CMSError) -> Response:
    return error_response(exc.message, request.app.state.settings, exc.status_code)


def handle_http_error(request: Request, exc: HTTPException) -> Response:
    return error_response(exc.detail, request.app.state.settings, exc.status_code)


def handle_unexpected(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response("Internal server error", request.app.state.settings, HTTP_500_INTERNAL_SERVER_ERROR)


def handle_unrouted(request: Request, _: Exception) -> Response:
    """Requests that matched no route: preflights still succeed, the rest 404."""
    settings: Settings = request.app.state.settings
    if _origin_rejected(request.method, request.headers.get("Origin"), settings):
        return error_response("Origin not allowed", settings, HTTP_403_FORBIDDEN)
    if request.method == HttpMethod.OPTIONS:
        return empty_response(settings)
    return text_response("Not found", settings, HTTP_404_NOT_FOUND)


def create_app(settings: Settings | None = None, http_client: httpx.AsyncClient | None = None) -> Litestar:
    settings = settings or Settings.from_env()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.github_timeout)

    async def close_http_client(app: Litestar) -> None:
        if owns_client:
            await client.aclose()

    return Litestar(
        # Litestar gives /_health an automatic OPTIONS handler unless preflight is registered first.
        route_handlers=[preflight, health, github_exchange, cms_commit],
        guards=[check_origin],
        dependencies={
            "settings": Provide(provide_settings, sync_to_thread=False),
            "github": Provide(provide_github, sync_to_thread=False),
        },
        exception_handlers={
            CMSError: handle_cms_error,
            NotFoundException: handle_unrouted,
            MethodNotAllowedException: handle_unrouted,
            HTTPException: handle_http_error,
            Exception: handle_unexpected,
        },
        state=State({"settings": settings, "http_client": client}),
        on_shutdown=[close_http_client],
        logging_config=LoggingConfig(
            root={"level": "INFO", "handlers": ["queue_listener"]},
            loggers={"cms": {"level": settings.log_level, "propagate": True}},
        ),
    )


app = create_app()
