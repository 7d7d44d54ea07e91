"""Who may publish: bearer token parsing, identity check and the allowlist."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cms.errors import Forbidden, Unauthenticated

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cms.github import GitHubClient, Identity

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_USER = "bleach2004"


def load_allowlist(value: str | None) -> frozenset[str]:
    """Parse a comma-separated list of GitHub logins.

    Never returns an empty set: with nothing configured only the site owner
    may publish.
    """
    users = frozenset(part.strip().lower() for part in (value or "").split(",") if part.strip())
    return users or frozenset({DEFAULT_ALLOWED_USER})


def is_allowed(login: str, allowlist: Iterable[str]) -> bool:
    return login.lower() in {user.lower() for user in allowlist}


def bearer_token(header: str | None) -> str | None:
    if not header or not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


async def authorize(github: GitHubClient, access_token: str, allowlist: Iterable[str]) -> Identity:
    """Check ``access_token`` against GitHub right now and gate on the allowlist."""
    identity = await github.resolve_identity(access_token)
    if identity is None:
        raise Unauthenticated("Invalid GitHub access token")
    if not is_allowed(identity.login, allowlist):
        logger.warning("Rejected GitHub user %s", identity.login)
        raise Forbidden("User not allowed")
    return identity
