"""Tests for the allowlist gate and identity resolution."""

from __future__ import annotations

import httpx
import pytest

from cms.auth import DEFAULT_ALLOWED_USER, authorize, bearer_token, is_allowed, load_allowlist
from cms.config import Settings
from cms.errors import Forbidden, Unauthenticated
from cms.github import GitHubClient, Identity


@pytest.mark.parametrize("value", [None, "", "   ", " , ,"])
def test_empty_allowlist_falls_back_to_owner(value):
    assert load_allowlist(value) == frozenset({DEFAULT_ALLOWED_USER})


def test_allowlist_is_lowercased_and_trimmed():
    assert load_allowlist(" Alice, BOB ,,carol") == frozenset({"alice", "bob", "carol"})


def test_is_allowed_is_case_insensitive():
    assert is_allowed("Bleach2004", {"bleach2004"})
    assert is_allowed("bleach2004", {"Bleach2004"})
    assert not is_allowed("bleach2005", {"bleach2004"})


@pytest.mark.parametrize(
    ("header", "token"),
    [
        ("Bearer abc", "abc"),
        ("Bearer ", None),
        ("bearer abc", None),
        ("token abc", None),
        ("", None),
        (None, None),
    ],
)
def test_bearer_token(header, token):
    assert bearer_token(header) == token


def _github(handler) -> GitHubClient:
    return GitHubClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), Settings())


async def test_resolve_identity_sends_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"login": "Bleach2004", "id": 7})

    identity = await _github(handler).resolve_identity("tok")
    assert identity == Identity(login="Bleach2004")
    assert seen[0].url == "https://api.github.com/user"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].headers["Accept"] == "application/vnd.github+json"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"message": "Bad credentials"}),
        httpx.Response(500, text="oops"),
        httpx.Response(200, json={"id": 7}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_resolve_identity_collapses_failures_to_none(response):
    assert await _github(lambda request: response).resolve_identity("tok") is None


async def test_resolve_identity_network_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    assert await _github(handler).resolve_identity("tok") is None


async def test_authorize_rejects_invalid_token():
    github = _github(lambda request: httpx.Response(401))
    with pytest.raises(Unauthenticated):
        await authorize(github, "tok", {"bleach2004"})


async def test_authorize_rejects_unlisted_user():
    github = _github(lambda request: httpx.Response(200, json={"login": "mallory"}))
    with pytest.raises(Forbidden):
        await authorize(github, "tok", {"bleach2004"})


async def test_authorize_returns_identity():
    github = _github(lambda request: httpx.Response(200, json={"login": "BLEACH2004"}))
    assert await authorize(github, "tok", {"bleach2004"}) == Identity(login="BLEACH2004")
