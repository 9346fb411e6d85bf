"""Volcengine request signing (HMAC-SHA256, V4-style).

Every outbound call is signed over a canonical form of the request::

    POST
    /
    Action=CVSync2AsyncSubmitTask&Version=2022-08-31
    content-type:application/json
    host:visual.volcengineapi.com
    x-content-sha256:<hex sha256 of body>
    x-date:20240101T000000Z

    content-type;host;x-content-sha256;x-date
    <hex sha256 of body>

The signing key is derived from the secret key by chaining HMACs over the date
stamp, region, service and the literal ``request``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping

from jimeng_client.errors import ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "HMAC-SHA256"
SIGNED_HEADERS = "content-type;host;x-content-sha256;x-date"
DEFAULT_CONTENT_TYPE = "application/json"

DEFAULT_ENDPOINT = "https://visual.volcengineapi.com"
DEFAULT_HOST = "visual.volcengineapi.com"
DEFAULT_REGION = "cn-north-1"
DEFAULT_SERVICE = "cv"


@dataclass(frozen=True)
class Credentials:
    """Immutable account and endpoint settings for one client."""

    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    host: str = DEFAULT_HOST
    endpoint: str = DEFAULT_ENDPOINT

    def __post_init__(self) -> None:
        if not self.access_key or not self.secret_key:
            raise ConfigurationError("Missing required credentials: access_key and secret_key")

    def __repr__(self) -> str:
        return (
            f"Credentials(access_key={self.access_key!r}, secret_key='{mask_secret(self.secret_key)}', "
            f"region={self.region!r}, service={self.service!r}, host={self.host!r})"
        )


@dataclass(frozen=True)
class SignedRequest:
    """Headers and URL for one signed call, plus the intermediate strings."""

    url: str
    headers: dict[str, str]
    canonical_request: str
    string_to_sign: str
    signature: str


def mask_secret(secret: str) -> str:
    """Keep the first three characters of a secret for logs."""
    return f"{secret[:3]}...(hidden)"


def format_query(parameters: Mapping[str, str]) -> str:
    """Join query parameters as ``key=value`` pairs sorted by key."""
    return "&".join(f"{key}={parameters[key]}" for key in sorted(parameters))


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = _hmac(secret_key.encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "request")


def format_timestamp(now: datetime) -> str:
    """Compact ISO-8601 basic form in UTC, e.g. ``20240101T000000Z``."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


class RequestSigner:
    """Signs requests for one set of credentials."""

    def __init__(self, credentials: Credentials, *, debug: bool = False):
        self.credentials = credentials
        self.debug = debug

    def sign(
        self,
        query: Mapping[str, str] | str,
        body: str | bytes,
        *,
        method: str = "POST",
        region: str | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
        now: datetime | None = None,
    ) -> SignedRequest:
        """Build the signed headers and URL for a request.

        Args:
            query: Query parameters (sorted here) or an already formatted query string.
            body: Request body. Text is UTF-8 encoded; bytes (multipart uploads) are
                hashed exactly as given.
            method: HTTP method.
            region: Region override for this call; defaults to the credentials' region.
            content_type: Value of the Content-Type header, boundary included.
            now: Clock override; a fresh UTC timestamp is taken when omitted.

        Returns:
            SignedRequest with ``url`` (endpoint + query) and the header map.
        """
        creds = self.credentials
        query_string = query if isinstance(query, str) else format_query(query)
        body_bytes = body.encode("utf-8") if isinstance(body, str) else body
        used_region = region or creds.region

        timestamp = format_timestamp(now or datetime.now(timezone.utc))
        date_stamp = timestamp[:8]
        payload_hash = sha256_hex(body_bytes)

        canonical_headers = (
            f"content-type:{content_type}\n"
            f"host:{creds.host}\n"
            f"x-content-sha256:{payload_hash}\n"
            f"x-date:{timestamp}\n"
        )
        canonical_request = "\n".join([
            method,
            "/",
            query_string,
            canonical_headers,
            SIGNED_HEADERS,
            payload_hash,
        ])

        credential_scope = f"{date_stamp}/{used_region}/{creds.service}/request"
        string_to_sign = "\n".join([
            ALGORITHM,
            timestamp,
            credential_scope,
            sha256_hex(canonical_request.encode("utf-8")),
        ])

        signing_key = derive_signing_key(creds.secret_key, date_stamp, used_region, creds.service)
        signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

        if self.debug:
            logger.debug("Canonical request:\n%s", canonical_request)
            logger.debug("String to sign:\n%s", string_to_sign)
            logger.debug("Signature: %s", signature)

        authorization = (
            f"{ALGORITHM} Credential={creds.access_key}/{credential_scope}, "
            f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
        )
        headers = {
            "X-Date": timestamp,
            "Authorization": authorization,
            "X-Content-Sha256": payload_hash,
            "Content-Type": content_type,
            "Host": creds.host,
        }
        return SignedRequest(
            url=f"{creds.endpoint}?{query_string}",
            headers=headers,
            canonical_request=canonical_request,
            string_to_sign=string_to_sign,
            signature=signature,
        )
