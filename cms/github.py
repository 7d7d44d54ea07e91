"""Thin async client for the GitHub endpoints the CMS relies on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from cms.errors import Conflict, UpstreamFailure

if TYPE_CHECKING:
    from cms.config import Settings

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_AGENT = "bleach-fish-cms"

# GitHub answers a stale or missing blob SHA with one of these.
CONFLICT_STATUSES = (409, 422)


@dataclass(frozen=True)
class Identity:
    login: str


@dataclass(frozen=True)
class FileState:
    sha: str | None

    @property
    def exists(self) -> bool:
        return self.sha is not None


@dataclass(frozen=True)
class CommitResult:
    commit_sha: str | None


def _json_object(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _commit_result(resp: httpx.Response) -> CommitResult:
    commit = _json_object(resp).get("commit")
    sha = commit.get("sha") if isinstance(commit, dict) else None
    return CommitResult(commit_sha=sha if isinstance(sha, str) else None)


class GitHubClient:
    def __init__(self, http: httpx.AsyncClient, settings: Settings) -> None:
        self.http = http
        self.settings = settings

    def _headers(self, token: str | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def contents_url(self, path: str) -> str:
        owner = quote(self.settings.repo_owner, safe="")
        repo = quote(self.settings.repo_name, safe="")
        return f"{API_URL}/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"

    async def exchange_code(self, code: str, redirect_uri: str) -> str | None:
        """Trade an OAuth ``code`` for an access token, or ``None`` on any failure."""
        try:
            resp = await self.http.post(
                TOKEN_URL,
                json={
                    "client_id": self.settings.github_client_id,
                    "client_secret": self.settings.github_client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            )
        except httpx.HTTPError as exc:
            logger.warning("OAuth token request failed: %s", exc.__class__.__name__)
            return None

        data = _json_object(resp)
        token = data.get("access_token")
        if not resp.is_success or data.get("error") or not isinstance(token, str) or not token:
            logger.warning(
                "OAuth exchange rejected by GitHub (status=%s, error=%s)",
                resp.status_code,
                data.get("error"),
            )
            return None
        return token

    async def resolve_identity(self, access_token: str) -> Identity | None:
        try:
            resp = await self.http.get(f"{API_URL}/user", headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            logger.warning("GitHub profile request failed: %s", exc.__class__.__name__)
            return None
        if resp.status_code != 200:
            return None
        login = _json_object(resp).get("login")
        if not isinstance(login, str) or not login:
            return None
        return Identity(login=login)

    async def get_file_state(self, path: str) -> FileState:
        try:
            resp = await self.http.get(
                self.contents_url(path),
                params={"ref": self.settings.repo_branch},
                headers=self._headers(self.settings.repo_token),
            )
        except httpx.HTTPError as exc:
            logger.error("Contents lookup for %s failed: %s", path, exc.__class__.__name__)
            raise UpstreamFailure("Failed to check existing file") from exc

        if resp.status_code == 404:
            return FileState(sha=None)
        if resp.status_code != 200:
            logger.error("Contents lookup for %s returned %s", path, resp.status_code)
            raise UpstreamFailure("Failed to check existing file")
        sha = _json_object(resp).get("sha")
        if not isinstance(sha, str) or not sha:
            # A directory listing comes back as a JSON array with no sha.
            logger.error("Contents lookup for %s did not return a file", path)
            raise UpstreamFailure("Failed to check existing file")
        return FileState(sha=sha)

    async def _write(self, method: str, path: str, payload: dict[str, Any], failure: str) -> CommitResult:
        try:
            resp = await self.http.request(
                method,
                self.contents_url(path),
                json=payload,
                headers=self._headers(self.settings.repo_token),
            )
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc.__class__.__name__)
            raise UpstreamFailure(failure) from exc

        if resp.status_code in CONFLICT_STATUSES:
            logger.warning("%s %s conflicted upstream (status=%s)", method, path, resp.status_code)
            raise Conflict("File changed upstream; reload and retry")
        if not resp.is_success:
            logger.error("%s %s returned %s", method, path, resp.status_code)
            raise UpstreamFailure(failure)
        return _commit_result(resp)

    async def put_file(self, path: str, content_base64: str, message: str, sha: str | None) -> CommitResult:
        """Create ``path``, or update it when ``sha`` names the current blob."""
        payload: dict[str, Any] = {
            "message": message,
            "content": content_base64,
            "branch": self.settings.repo_branch,
        }
        if sha:
            payload["sha"] = sha
        return await self._write("PUT", path, payload, "GitHub commit failed")

    async def delete_file(self, path: str, message: str, sha: str) -> CommitResult:
        payload = {"message": message, "sha": sha, "branch": self.settings.repo_branch}
        return await self._write("DELETE", path, payload, "GitHub delete failed")
