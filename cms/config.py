"""Process configuration, read once from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from cms.auth import load_allowlist

DEFAULT_FRONTEND_ORIGIN = "https://bleach.fish"
DEFAULT_BRANCH = "main"
DEFAULT_POSTS_BASE_PATH = "site/src/posts"
DEFAULT_SONGS_BASE_PATH = "site/src/music"
DEFAULT_ART_BASE_PATH = "site/public/art"
DEFAULT_MAX_CONTENT_BYTES = 200_000
DEFAULT_GITHUB_TIMEOUT = 20.0


def load_dotenv_file(directory: Path | None = None) -> Path | None:
    """Load a ``.env`` file from the package directory or the repo root.

    Values already present in the environment win. Returns the file that was
    read, if any.
    """
    here = directory or Path(__file__).parent
    env_file = here / ".env"
    if not env_file.is_file():
        env_file = here.parent / ".env"
    if not env_file.is_file():
        return None
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())
    return env_file


def _get(environ: Mapping[str, str], key: str, default: str = "") -> str:
    value = (environ.get(key) or "").strip()
    return value or default


def _positive_int(raw: str, default: int) -> int:
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _positive_float(raw: str, default: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    github_client_id: str = ""
    github_client_secret: str = ""
    frontend_origin: str = DEFAULT_FRONTEND_ORIGIN
    repo_owner: str = ""
    repo_name: str = ""
    repo_branch: str = DEFAULT_BRANCH
    repo_token: str = ""
    allowed_users: frozenset[str] = load_allowlist("")
    posts_base_path: str = DEFAULT_POSTS_BASE_PATH
    songs_base_path: str = DEFAULT_SONGS_BASE_PATH
    art_base_path: str = DEFAULT_ART_BASE_PATH
    max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES
    github_timeout: float = DEFAULT_GITHUB_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            github_client_id=_get(env, "GITHUB_CLIENT_ID"),
            github_client_secret=_get(env, "GITHUB_CLIENT_SECRET"),
            frontend_origin=_get(env, "FRONTEND_ORIGIN", DEFAULT_FRONTEND_ORIGIN),
            repo_owner=_get(env, "GITHUB_REPO_OWNER"),
            repo_name=_get(env, "GITHUB_REPO_NAME"),
            repo_branch=_get(env, "GITHUB_REPO_BRANCH", DEFAULT_BRANCH),
            repo_token=_get(env, "GITHUB_REPO_TOKEN"),
            allowed_users=load_allowlist(_get(env, "ALLOWED_GITHUB_USERS")),
            posts_base_path=_get(env, "ALLOWED_POSTS_BASE_PATH", DEFAULT_POSTS_BASE_PATH),
            songs_base_path=_get(env, "ALLOWED_SONGS_BASE_PATH", DEFAULT_SONGS_BASE_PATH),
            art_base_path=_get(env, "ALLOWED_ART_BASE_PATH", DEFAULT_ART_BASE_PATH),
            max_content_bytes=_positive_int(
                _get(env, "MAX_CONTENT_BYTES"), DEFAULT_MAX_CONTENT_BYTES
            ),
            github_timeout=_positive_float(_get(env, "GITHUB_TIMEOUT"), DEFAULT_GITHUB_TIMEOUT),
            log_level=_get(env, "LOG_LEVEL", "INFO").upper(),
        )

    @property
    def repo_configured(self) -> bool:
        return bool(self.repo_owner and self.repo_name and self.repo_token)
