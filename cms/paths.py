"""Validation of repository paths and payload sizes.

Everything here is pure: callers turn a ``None``/``False`` result or a raised
error into a rejected request.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import TYPE_CHECKING

from cms.errors import InvalidEncoding, PayloadTooLarge

if TYPE_CHECKING:
    from cms.config import Settings

ART_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "gif", "avif")

_ART_SUFFIX = re.compile(r"\.(?:%s)$" % "|".join(ART_EXTENSIONS), re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def normalize_path(raw: object) -> str | None:
    if not isinstance(raw, str):
        return None
    path = raw.strip().lstrip("/")
    if not path or ".." in path:
        return None
    return path


def _normalize_base(base: str) -> str:
    return base.strip().strip("/")


def is_allowed_markdown_path(path: str, base: str) -> bool:
    return path.startswith(f"{_normalize_base(base)}/") and path.endswith(".md")


def is_allowed_art_path(path: str, base: str) -> bool:
    return path.startswith(f"{_normalize_base(base)}/") and bool(_ART_SUFFIX.search(path))


def is_allowed_path(path: str, settings: Settings) -> bool:
    """True if ``path`` is a post, a song, or a piece of cover art."""
    return (
        is_allowed_markdown_path(path, settings.posts_base_path)
        or is_allowed_markdown_path(path, settings.songs_base_path)
        or is_allowed_art_path(path, settings.art_base_path)
    )


def allowed_patterns_message(settings: Settings) -> str:
    posts = _normalize_base(settings.posts_base_path)
    songs = _normalize_base(settings.songs_base_path)
    art = _normalize_base(settings.art_base_path)
    return (
        f"Path not allowed. Only {posts}/*.md, {songs}/*.md, "
        f"or {art}/*.{{{','.join(ART_EXTENSIONS)}}} is permitted."
    )


def compact_base64(value: str) -> tuple[str, int]:
    """Strip whitespace and restore missing ``=`` padding.

    Returns the compacted string and the number of bytes it decodes to.
    Raises ``InvalidEncoding`` when the result is not valid base64.
    """
    compact = _WHITESPACE.sub("", value)
    remainder = len(compact) % 4
    if remainder == 1:
        raise InvalidEncoding()
    if remainder:
        compact += "=" * (4 - remainder)
    try:
        decoded = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidEncoding() from exc
    return compact, len(decoded)


def content_size(content: str | None, content_base64: str | None) -> int:
    """Byte length of the payload as it will land in the repository."""
    if content_base64 is not None:
        return compact_base64(content_base64)[1]
    return len((content or "").encode("utf-8"))


def check_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise PayloadTooLarge(f"Content too large (>{max_bytes} bytes)")
