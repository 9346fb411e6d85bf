"""Local image references: split, read and upload them for a public URL."""

from __future__ import annotations

import logging
import mimetypes
import os
import re

import httpx

from jimeng_client.errors import ValidationError, VendorBusinessError

logger = logging.getLogger(__name__)

_REMOTE_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_remote(reference: str) -> bool:
    return bool(_REMOTE_RE.match(reference))


def local_path(reference: str) -> str:
    """Absolute path for a local reference; relative paths resolve against the cwd."""
    return os.path.abspath(os.path.expanduser(reference))


def split_references(references: list[str]) -> tuple[list[str], list[str]]:
    """Return ``(remote_urls, local_paths)``."""
    remote: list[str] = []
    local: list[str] = []
    for ref in references:
        if is_remote(ref):
            remote.append(ref)
        else:
            local.append(local_path(ref))
    return remote, local


def build_multipart(paths: list[str], field_name: str = "image") -> tuple[bytes, str]:
    """Read local files into a multipart/form-data body.

    Returns the raw body bytes (signed and sent unchanged) and the Content-Type
    header including its boundary.
    """
    files = []
    for path in paths:
        if not os.path.isfile(path):
            raise ValidationError(f"Local image not found: {path}")
        with open(path, "rb") as f:
            content = f.read()
        mime = mimetypes.guess_type(path)[0] or "application/octet-stream"
        files.append((field_name, (os.path.basename(path), content, mime)))
        logger.debug("Prepared upload %s (%d bytes, %s)", path, len(content), mime)

    request = httpx.Request("POST", "https://upload.invalid/", files=files)
    body = request.read()
    return body, request.headers["Content-Type"]


def uploaded_urls(data: dict, expected: int) -> list[str]:
    """Pull public URLs out of an upload response."""
    inner = data.get("data") or {}
    urls = inner.get("image_urls") or inner.get("urls") or []
    urls = [u for u in urls if isinstance(u, str) and u]
    if len(urls) < expected:
        raise VendorBusinessError(
            f"Upload returned {len(urls)} URL(s) for {expected} local image(s)",
            retriable=False,
        )
    return urls
