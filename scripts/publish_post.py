#!/usr/bin/env python3
"""Publish a diary post through the CMS commit endpoint.

Builds the same Markdown the admin page writes (``id``, ``date``, ``image``
and ``audio`` front matter followed by the body) and commits it to
``<posts base>/<id>.md``.

Environment:
    CMS_COMMIT_URL            commit endpoint, e.g. https://cms.bleach.fish/api/cms/commit
    CMS_GITHUB_TOKEN          token returned by the OAuth exchange
    ALLOWED_POSTS_BASE_PATH   defaults to site/src/posts

Usage:
    python scripts/publish_post.py BODY_FILE [--id ID] [--date DATE]
        [--image URL] [--audio URL] [--message TEXT] [--dry-run]
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import date
from pathlib import Path

import httpx

DEFAULT_POSTS_BASE_PATH = "site/src/posts"


def build_post_markdown(post_id: str, publish_date: str, body: str, image: str = "", audio: str = "") -> str:
    return (
        "---\n"
        f'id: "{post_id}"\n'
        f'date: "{publish_date}"\n'
        f"image: {json.dumps(image)}\n"
        f"audio: {json.dumps(audio)}\n"
        "---\n\n"
        f"{body.strip()}\n"
    )


def post_path(post_id: str, base_path: str = DEFAULT_POSTS_BASE_PATH) -> str:
    return f"{base_path.strip().strip('/')}/{post_id}.md"


def commit_post(commit_url: str, token: str, path: str, content: str, message: str) -> dict:
    """POST the post to the commit endpoint; raises ``RuntimeError`` with the server's message."""
    try:
        resp = httpx.post(
            commit_url,
            json={"path": path, "content": content, "message": message},
            headers={"Authorization": f"Bearer {token}"},
            timeout=30,
        )
    except httpx.HTTPError as exc:
        raise RuntimeError(
            f"Could not reach {commit_url} ({exc.__class__.__name__}); check CMS_COMMIT_URL."
        ) from exc
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not resp.is_success:
        raise RuntimeError(data.get("error") or f"Commit failed with HTTP {resp.status_code}")
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("body_file", type=Path)
    parser.add_argument("--id", dest="post_id", default=date.today().strftime("%y%m%d"))
    parser.add_argument("--date", dest="publish_date", default=date.today().isoformat())
    parser.add_argument("--image", default="")
    parser.add_argument("--audio", default="")
    parser.add_argument("--message", default=None)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    body = args.body_file.read_text(encoding="utf-8")
    markdown = build_post_markdown(args.post_id, args.publish_date, body, args.image, args.audio)
    path = post_path(args.post_id, os.environ.get("ALLOWED_POSTS_BASE_PATH") or DEFAULT_POSTS_BASE_PATH)

    if args.dry_run:
        print(f"Would commit {path}:\n")
        print(markdown)
        return 0

    commit_url = os.environ.get("CMS_COMMIT_URL", "")
    token = os.environ.get("CMS_GITHUB_TOKEN", "")
    if not commit_url or not token:
        print("CMS_COMMIT_URL and CMS_GITHUB_TOKEN must be set.", file=sys.stderr)
        return 1

    try:
        result = commit_post(commit_url, token, path, markdown, args.message or f"Add post {args.post_id}")
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Committed {result.get('path', path)} ({result.get('commitSha')})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
