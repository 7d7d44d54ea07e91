"""Create, update and delete site content through the GitHub Contents API.

A commit request runs through a fixed series of gates, each of which either
passes its result on or raises a ``CMSError``:

    parse (path, base, content, size) -> authenticate -> authorize
        -> read existing blob -> write | delete

Nothing that touches GitHub runs before the request has been validated
locally, and nothing that writes runs before the caller's token has been
checked against GitHub on this very request.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

from litestar import Request, Response, post

from cms.auth import authorize, bearer_token
from cms.config import Settings
from cms.deps import GitHubDep, SettingsDep
from cms.errors import BadRequest, Forbidden, ServerMisconfigured, Unauthenticated
from cms.github import GitHubClient, Identity
from cms.paths import (
    allowed_patterns_message,
    check_size,
    compact_base64,
    content_size,
    is_allowed_path,
    normalize_path,
)
from cms.responses import json_response, read_json_object

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 120
DEFAULT_WRITE_MESSAGE = "Add post"
DEFAULT_DELETE_MESSAGE = "Delete post"


@dataclass(frozen=True)
class CommitRequest:
    path: str
    message: str
    delete: bool = False
    content: str | None = None
    content_base64: str | None = None

    def encoded_content(self) -> str:
        """Payload as the base64 string the Contents API expects."""
        if self.content_base64 is not None:
            return self.content_base64
        return base64.b64encode((self.content or "").encode("utf-8")).decode("ascii")


def _commit_message(raw: Any, delete: bool) -> str:
    default = DEFAULT_DELETE_MESSAGE if delete else DEFAULT_WRITE_MESSAGE
    message = raw.strip()[:MAX_MESSAGE_LENGTH].strip() if isinstance(raw, str) else ""
    return message or default


def parse_commit_request(body: dict[str, Any], settings: Settings) -> CommitRequest:
    path = normalize_path(body.get("path"))
    if path is None:
        raise BadRequest("Invalid path")
    if not is_allowed_path(path, settings):
        raise Forbidden(allowed_patterns_message(settings))

    delete = body.get("delete") in (True, "true")
    message = _commit_message(body.get("message"), delete)
    if delete:
        return CommitRequest(path=path, message=message, delete=True)

    content = body.get("content")
    content_base64 = body.get("contentBase64")
    if not isinstance(content_base64, str):
        content_base64 = None
    if not isinstance(content, str):
        content = None
    if content is None and content_base64 is None:
        raise BadRequest("Missing content or contentBase64")

    if content_base64 is not None:
        content_base64, size = compact_base64(content_base64)
        content = None
    else:
        size = content_size(content, None)
    check_size(size, settings.max_content_bytes)
    return CommitRequest(path=path, message=message, content=content, content_base64=content_base64)


async def authenticate(authorization: str | None, settings: Settings, github: GitHubClient) -> Identity:
    access_token = bearer_token(authorization)
    if access_token is None:
        raise Unauthenticated("Missing Authorization Bearer token")
    return await authorize(github, access_token, settings.allowed_users)


async def apply_commit(commit: CommitRequest, identity: Identity, settings: Settings, github: GitHubClient) -> dict[str, Any]:
    if not settings.repo_configured:
        logger.error("GITHUB_REPO_OWNER, GITHUB_REPO_NAME and GITHUB_REPO_TOKEN must be set")
        raise ServerMisconfigured("Server repository configuration is missing")

    existing = await github.get_file_state(commit.path)

    if commit.delete:
        if not existing.exists:
            logger.info("%s deleted %s, which was already missing", identity.login, commit.path)
            return {"ok": True, "path": commit.path, "alreadyMissing": True, "commitSha": None}
        result = await github.delete_file(commit.path, commit.message, existing.sha)
        logger.info("%s deleted %s in %s", identity.login, commit.path, result.commit_sha)
        return {"ok": True, "deletedBy": identity.login, "path": commit.path, "commitSha": result.commit_sha}

    result = await github.put_file(commit.path, commit.encoded_content(), commit.message, existing.sha)
    logger.info(
        "%s %s %s in %s",
        identity.login,
        "updated" if existing.exists else "created",
        commit.path,
        result.commit_sha,
    )
    return {"ok": True, "committedBy": identity.login, "path": commit.path, "commitSha": result.commit_sha}


@post("/api/cms/commit")
async def cms_commit(request: Request, settings: SettingsDep, github: GitHubDep) -> Response:
    body = await read_json_object(request)
    commit = parse_commit_request(body, settings)
    identity = await authenticate(request.headers.get("Authorization"), settings, github)
    return json_response(await apply_commit(commit, identity, settings, github), settings)
