"""Tests for request signing."""

from __future__ import annotations

import hashlib
import hmac
import itertools
import re
from datetime import datetime, timedelta, timezone

import pytest

from jimeng_client import ConfigurationError, Credentials, RequestSigner, format_query
from jimeng_client.signer import derive_signing_key, format_timestamp

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
QUERY = {"Version": "2022-08-31", "Action": "CVSync2AsyncSubmitTask"}
BODY = '{"req_key":"jimeng_t2i_v40","prompt":"a red balloon"}'


@pytest.fixture
def signer(credentials):
    return RequestSigner(credentials)


class TestFormatQuery:
    def test_keys_sorted(self):
        assert format_query(QUERY) == "Action=CVSync2AsyncSubmitTask&Version=2022-08-31"

    def test_order_independent_of_insertion(self):
        params = {"b": "2", "Action": "x", "a": "1", "Version": "v", "Z": "z"}
        expected = "Action=x&Version=v&Z=z&a=1&b=2"
        for perm in itertools.permutations(params.items()):
            assert format_query(dict(perm)) == expected

    def test_empty(self):
        assert format_query({}) == ""


class TestSign:
    def test_deterministic_for_fixed_clock(self, signer):
        first = signer.sign(QUERY, BODY, now=FIXED_NOW)
        second = signer.sign(QUERY, BODY, now=FIXED_NOW)
        assert first.headers == second.headers
        assert first.signature == second.signature

    def test_signature_changes_with_clock(self, signer):
        first = signer.sign(QUERY, BODY, now=FIXED_NOW)
        later = signer.sign(QUERY, BODY, now=FIXED_NOW + timedelta(seconds=1))
        assert first.signature != later.signature

    def test_canonical_request_layout(self, signer):
        payload_hash = hashlib.sha256(BODY.encode("utf-8")).hexdigest()
        signed = signer.sign(QUERY, BODY, now=FIXED_NOW)
        assert signed.canonical_request == (
            "POST\n"
            "/\n"
            "Action=CVSync2AsyncSubmitTask&Version=2022-08-31\n"
            "content-type:application/json\n"
            "host:visual.volcengineapi.com\n"
            f"x-content-sha256:{payload_hash}\n"
            "x-date:20240101T000000Z\n"
            "\n"
            "content-type;host;x-content-sha256;x-date\n"
            f"{payload_hash}"
        )

    def test_string_to_sign_and_signature(self, signer):
        signed = signer.sign(QUERY, BODY, now=FIXED_NOW)
        canonical_hash = hashlib.sha256(signed.canonical_request.encode("utf-8")).hexdigest()
        assert signed.string_to_sign == (
            f"HMAC-SHA256\n20240101T000000Z\n20240101/cn-north-1/cv/request\n{canonical_hash}"
        )

        key = b"SKTEST"
        for part in ("20240101", "cn-north-1", "cv", "request"):
            key = hmac.new(key, part.encode("utf-8"), hashlib.sha256).digest()
        expected = hmac.new(key, signed.string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()
        assert signed.signature == expected
        assert derive_signing_key("SKTEST", "20240101", "cn-north-1", "cv") == key

    def test_headers(self, signer):
        signed = signer.sign(QUERY, BODY, now=FIXED_NOW)
        headers = signed.headers
        assert headers["X-Date"] == "20240101T000000Z"
        assert headers["Host"] == "visual.volcengineapi.com"
        assert headers["Content-Type"] == "application/json"
        assert headers["X-Content-Sha256"] == hashlib.sha256(BODY.encode("utf-8")).hexdigest()
        assert re.fullmatch(
            r"HMAC-SHA256 Credential=AKTEST/20240101/cn-north-1/cv/request, "
            r"SignedHeaders=content-type;host;x-content-sha256;x-date, Signature=[0-9a-f]{64}",
            headers["Authorization"],
        )

    def test_url(self, signer):
        signed = signer.sign(QUERY, BODY, now=FIXED_NOW)
        assert signed.url == (
            "https://visual.volcengineapi.com?Action=CVSync2AsyncSubmitTask&Version=2022-08-31"
        )

    def test_region_override(self, signer):
        default = signer.sign(QUERY, BODY, now=FIXED_NOW)
        other = signer.sign(QUERY, BODY, now=FIXED_NOW, region="cn-beijing")
        assert "/cn-beijing/cv/request" in other.headers["Authorization"]
        assert other.signature != default.signature

    def test_raw_bytes_hashed_as_given(self, signer):
        raw = b"--boundary\r\n\x89PNG\x00\xff\r\n--boundary--\r\n"
        signed = signer.sign(QUERY, raw, now=FIXED_NOW, content_type="multipart/form-data; boundary=boundary")
        assert signed.headers["X-Content-Sha256"] == hashlib.sha256(raw).hexdigest()
        assert "content-type:multipart/form-data; boundary=boundary\n" in signed.canonical_request

    def test_preformatted_query_string(self, signer):
        signed = signer.sign("Action=CVProcess&Version=2022-08-31", BODY, now=FIXED_NOW)
        assert signed.url.endswith("?Action=CVProcess&Version=2022-08-31")


def test_timestamp_converted_to_utc():
    shanghai = timezone(timedelta(hours=8))
    assert format_timestamp(datetime(2024, 1, 1, 8, 30, 5, tzinfo=shanghai)) == "20240101T003005Z"


@pytest.mark.parametrize("access_key, secret_key", [("", "sk"), ("ak", ""), ("", "")])
def test_credentials_require_both_keys(access_key, secret_key):
    with pytest.raises(ConfigurationError):
        Credentials(access_key=access_key, secret_key=secret_key)


def test_credentials_repr_hides_secret():
    creds = Credentials(access_key="AKTEST", secret_key="SKSECRETVALUE")
    assert "SKSECRETVALUE" not in repr(creds)
