"""Shared fixtures: an app wired to an in-memory GitHub."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field

import httpx
import pytest
from litestar.testing import AsyncTestClient

from cms.app import create_app
from cms.config import Settings

OWNER = "bleach2004"
REPO = "bleach.fish"
CONTENTS_PREFIX = f"/repos/{OWNER}/{REPO}/contents/"


@dataclass
class FakeGitHub:
    """Records every request and answers like the parts of GitHub we use."""

    users: dict[str, str] = field(default_factory=lambda: {"good-token": "Bleach2004", "other-token": "someone"})
    codes: dict[str, str] = field(default_factory=lambda: {"good-code": "good-token", "other-code": "other-token"})
    files: dict[str, tuple[str, str]] = field(default_factory=dict)
    status_overrides: dict[str, int] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    commits: int = 0

    def add_file(self, path: str, text: str, sha: str = "blob-1") -> None:
        self.files[path] = (sha, base64.b64encode(text.encode()).decode())

    def read(self, path: str) -> bytes:
        return base64.b64decode(self.files[path][1])

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]

    def _commit(self) -> str:
        self.commits += 1
        return f"commit-{self.commits}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method in self.status_overrides:
            return httpx.Response(self.status_overrides[request.method], json={"message": "boom"})

        if request.url.host == "github.com":
            code = json.loads(request.content)["code"]
            if code not in self.codes:
                return httpx.Response(200, json={"error": "bad_verification_code"})
            return httpx.Response(200, json={"access_token": self.codes[code], "token_type": "bearer"})

        if request.url.path == "/user":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if token not in self.users:
                return httpx.Response(401, json={"message": "Bad credentials"})
            return httpx.Response(200, json={"login": self.users[token], "id": 1})

        path = request.url.path.removeprefix(CONTENTS_PREFIX)
        if request.method == "GET":
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            sha, content = self.files[path]
            return httpx.Response(200, json={"sha": sha, "path": path, "content": content})

        payload = json.loads(request.content)
        current = self.files.get(path)
        if (current and current[0]) != payload.get("sha"):
            return httpx.Response(409, json={"message": "sha does not match"})
        if request.method == "PUT":
            self.files[path] = (f"blob-{self.commits + 2}", payload["content"])
            return httpx.Response(201 if current is None else 200, json={"commit": {"sha": self._commit()}})
        if request.method == "DELETE":
            del self.files[path]
            return httpx.Response(200, json={"commit": {"sha": self._commit()}, "content": None})
        return httpx.Response(405)


@pytest.fixture()
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        github_client_id="test-client-id",
        github_client_secret="test-client-secret",
        repo_owner=OWNER,
        repo_name=REPO,
        repo_token="repo-token",
    )


@pytest.fixture()
async def http_client(github):
    async with httpx.AsyncClient(transport=httpx.MockTransport(github.handler)) as client:
        yield client


@pytest.fixture()
async def client(settings, http_client):
    async with AsyncTestClient(app=create_app(settings, http_client)) as client:
        yield client
