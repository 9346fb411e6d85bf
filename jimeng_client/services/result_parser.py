"""Vendor response parsing: error envelopes, status tokens and result payloads.

A result query answers with ``{"code": 10000, "data": {...}}`` where ``data``
may carry generated artifacts in any of three places:

1. ``resp_data``, a JSON-encoded string (sometimes already an object) holding
   ``urls`` / ``image_urls`` / ``video_url`` / ``binary_data_base64``.
2. Flat arrays: ``image_urls``, ``urls``, ``binary_data_base64``.
3. ``video_url``, a single string.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import httpx

from jimeng_client.errors import RateLimitError, TransportError, VendorBusinessError
from jimeng_client.schemas.results import ResultPayload
from jimeng_client.schemas.task import TaskStatus

logger = logging.getLogger(__name__)

SUCCESS_CODE = 10000

RATE_LIMIT_CODES = frozenset({50429, 50430})

CONTENT_SAFETY_CODES = {
    50411: "input image failed the content safety review",
    50412: "input text failed the content safety review",
    50413: "input text contains sensitive words or copyrighted content",
    50511: "generated image failed the content safety review",
    50512: "generated content failed the content safety review",
}

_IMAGE_FORMAT_MARKERS = ("Image Decode Error", "image format unsupported", "image url")

_STATUS_TOKENS = {
    "in_queue": TaskStatus.PENDING,
    "pending": TaskStatus.PENDING,
    "processing": TaskStatus.RUNNING,
    "generating": TaskStatus.RUNNING,
    "running": TaskStatus.RUNNING,
    "done": TaskStatus.SUCCEEDED,
    "succeeded": TaskStatus.SUCCEEDED,
    "fail": TaskStatus.FAILED,
    "failed": TaskStatus.FAILED,
    "not_found": TaskStatus.NOT_FOUND,
    "expired": TaskStatus.EXPIRED,
}

_KNOWN_DATA_KEYS = frozenset({
    "status", "resp_data", "image_urls", "urls", "binary_data_base64", "video_url",
    "task_id", "algorithm_base_resp", "request_id", "rephraser_result", "llm_result",
    "infer_ctx", "pe_result", "predict_tags_result", "vlm_result", "aigc_meta_tagged",
})


def normalize_status(token: str | None) -> str:
    """Map a vendor status token to :class:`TaskStatus`; unknown tokens are uppercased."""
    if not token:
        return "UNKNOWN"
    mapped = _STATUS_TOKENS.get(token.lower())
    if mapped is not None:
        return mapped
    return token.upper()


def _dedupe(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if isinstance(v, str) and v))


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def _decode_resp_data(raw: Any, task_id: str | None) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Unparsable resp_data for task %s: %s", task_id, e)
        return {}
    if not isinstance(decoded, dict):
        logger.warning("Unexpected resp_data shape for task %s: %s", task_id, type(decoded).__name__)
        return {}
    return decoded


def extract_payload(data: dict[str, Any] | None, task_id: str | None = None) -> ResultPayload:
    """Merge URLs and base64 blobs from every known response location."""
    if not data:
        return ResultPayload()

    nested = _decode_resp_data(data.get("resp_data"), task_id)

    urls: list[str] = []
    blobs: list[str] = []
    for source in (nested, data):
        urls += _as_list(source.get("urls"))
        urls += _as_list(source.get("image_urls"))
        urls += _as_list(source.get("video_url"))
        blobs += _as_list(source.get("binary_data_base64"))

    payload = ResultPayload(urls=_dedupe(urls), base64_blobs=_dedupe(blobs))
    unknown = sorted(k for k in data if k not in _KNOWN_DATA_KEYS and data[k])
    if payload.is_empty and unknown:
        logger.warning("No artifacts found for task %s; unrecognized fields: %s", task_id, unknown)
    return payload


def content_safety_message(code: int | str | None, vendor_message: str | None = None) -> str | None:
    """Human readable reason for a content-safety code, or None for other codes."""
    reason = CONTENT_SAFETY_CODES.get(_int_code(code))
    if reason is None:
        return None
    detail = f": {vendor_message}" if vendor_message else ""
    return f"Content safety check failed ({code}), {reason}{detail}"


def _int_code(code: Any) -> int | None:
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def parse_response(
    response: httpx.Response,
    *,
    action: str,
    sentinel_fields: tuple[str, ...] = ("code",),
) -> dict[str, Any]:
    """Validate an HTTP response and return its decoded JSON body.

    Raises:
        RateLimitError: HTTP 429 or a concurrency-limit vendor code.
        TransportError: any other non-200 status, or a body that is not JSON.
        VendorBusinessError: HTTP 200 with an error envelope or a non-success code.
    """
    status_code = response.status_code
    if status_code == 429:
        raise RateLimitError(
            f"{action}: rate limited (HTTP 429): {response.text[:500]}",
            status_code=429,
        )
    if status_code != 200:
        raise TransportError(
            f"{action}: HTTP {status_code}: {response.text[:500]}",
            status_code=status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise TransportError(f"{action}: response is not valid JSON", status_code=status_code) from e
    if not isinstance(data, dict):
        raise TransportError(f"{action}: unexpected response body", status_code=status_code)

    error = (data.get("ResponseMetadata") or {}).get("Error")
    if error:
        code = error.get("CodeN") or error.get("Code")
        message = error.get("Message") or "unknown error"
        _raise_vendor_error(action, code, message)

    present = [data[f] for f in sentinel_fields if data.get(f) is not None]
    if present and SUCCESS_CODE not in (_int_code(v) for v in present):
        _raise_vendor_error(action, present[0], data.get("message") or "unknown error")
    return data


def _raise_vendor_error(action: str, code: Any, message: str) -> None:
    int_code = _int_code(code)
    if int_code in RATE_LIMIT_CODES:
        raise RateLimitError(f"{action}: concurrency limit reached: {message} (code {code})", status_code=200, code=code)
    if int_code in CONTENT_SAFETY_CODES:
        raise VendorBusinessError(
            content_safety_message(code, message) or message,
            code=code,
            retriable=False,
        )
    if any(marker in message for marker in _IMAGE_FORMAT_MARKERS):
        raise VendorBusinessError(
            "Unsupported or unreachable image. Provide a publicly accessible JPEG or PNG: "
            f"{message}",
            code=code,
            retriable=False,
        )
    raise VendorBusinessError(f"{action}: vendor error: {message} (code {code})", code=code)
