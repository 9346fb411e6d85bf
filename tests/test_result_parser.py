"""Tests for status normalization, artifact extraction and envelope classification."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from jimeng_client import RateLimitError, TaskStatus, TransportError, VendorBusinessError
from jimeng_client.services.result_parser import (
    extract_payload,
    normalize_status,
    parse_response,
)


class TestNormalizeStatus:
    @pytest.mark.parametrize("token, expected", [
        ("in_queue", TaskStatus.PENDING),
        ("processing", TaskStatus.RUNNING),
        ("generating", TaskStatus.RUNNING),
        ("done", TaskStatus.SUCCEEDED),
        ("fail", TaskStatus.FAILED),
        ("not_found", TaskStatus.NOT_FOUND),
        ("expired", TaskStatus.EXPIRED),
    ])
    def test_known_tokens(self, token, expected):
        assert normalize_status(token) == expected

    @pytest.mark.parametrize("token", ["weird", "Paused", "cancelled_by_user"])
    def test_unknown_tokens_uppercased(self, token):
        assert normalize_status(token) == token.upper()

    def test_missing_token(self):
        assert normalize_status(None) == "UNKNOWN"

    def test_statuses_compare_as_strings(self):
        assert normalize_status("done") == "SUCCEEDED"


class TestExtractPayload:
    def test_merges_and_dedupes_all_locations(self):
        data = {
            "resp_data": json.dumps({
                "urls": ["https://x/1.mp4", "https://x/2.mp4", "https://x/1.mp4"],
                "binary_data_base64": ["QUJD"],
            }),
            "image_urls": ["https://x/2.mp4", "https://x/3.png"],
            "binary_data_base64": ["QUJD", "REVG"],
            "video_url": "https://x/1.mp4",
        }
        payload = extract_payload(data, "T1")
        assert payload.urls == ["https://x/1.mp4", "https://x/2.mp4", "https://x/3.png"]
        assert payload.base64_blobs == ["QUJD", "REVG"]

    def test_resp_data_already_decoded(self):
        payload = extract_payload({"resp_data": {"urls": ["https://x/1.png"]}})
        assert payload.urls == ["https://x/1.png"]

    def test_video_url_only(self):
        payload = extract_payload({"status": "done", "video_url": "https://x/v.mp4"})
        assert payload.urls == ["https://x/v.mp4"]

    def test_invalid_resp_data_logs_warning_and_keeps_flat_fields(self, caplog):
        with caplog.at_level(logging.WARNING):
            payload = extract_payload({"resp_data": "{not json", "image_urls": ["https://x/1.png"]}, "T9")
        assert payload.urls == ["https://x/1.png"]
        assert "Unparsable resp_data for task T9" in caplog.text

    def test_unrecognized_shape_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            payload = extract_payload({"status": "done", "outputs": [{"href": "https://x"}]}, "T2")
        assert payload.is_empty
        assert "unrecognized fields" in caplog.text

    def test_empty(self):
        assert extract_payload(None).is_empty
        assert extract_payload({}).is_empty


def _response(status_code, body):
    return httpx.Response(status_code, json=body)


class TestParseResponse:
    def test_success(self):
        data = parse_response(_response(200, {"code": 10000, "data": {"task_id": "T1"}}), action="submit")
        assert data["data"]["task_id"] == "T1"

    def test_http_429_is_rate_limit(self):
        with pytest.raises(RateLimitError) as exc:
            parse_response(_response(429, {"message": "slow down"}), action="submit")
        assert exc.value.status_code == 429
        assert exc.value.retriable

    def test_http_500_is_transport(self):
        with pytest.raises(TransportError) as exc:
            parse_response(_response(500, {}), action="submit")
        assert not isinstance(exc.value, RateLimitError)
        assert exc.value.status_code == 500

    def test_non_json_body(self):
        with pytest.raises(TransportError):
            parse_response(httpx.Response(200, text="<html>"), action="submit")

    def test_response_metadata_error(self):
        body = {"ResponseMetadata": {"Error": {"Code": "InvalidAuthorization", "Message": "bad sig"}}}
        with pytest.raises(VendorBusinessError) as exc:
            parse_response(_response(200, body), action="submit")
        assert "bad sig" in str(exc.value)
        assert exc.value.code == "InvalidAuthorization"

    def test_vendor_code(self):
        with pytest.raises(VendorBusinessError) as exc:
            parse_response(_response(200, {"code": 50500, "message": "Internal Error"}), action="poll")
        assert exc.value.code == 50500
        assert exc.value.retriable

    def test_vendor_concurrency_code_is_rate_limit(self):
        with pytest.raises(RateLimitError):
            parse_response(_response(200, {"code": 50429, "message": "API Concurrent Limit"}), action="submit")

    def test_content_safety_not_retriable(self):
        with pytest.raises(VendorBusinessError) as exc:
            parse_response(_response(200, {"code": 50411, "message": "Pre Img Risk Not Pass"}), action="poll")
        assert not exc.value.retriable
        assert "Content safety check failed" in str(exc.value)

    def test_image_format_error_not_retriable(self):
        body = {"code": 50207, "message": "Image Decode Error"}
        with pytest.raises(VendorBusinessError) as exc:
            parse_response(_response(200, body), action="submit")
        assert not exc.value.retriable
        assert "JPEG or PNG" in str(exc.value)

    def test_submit_accepts_status_sentinel(self):
        body = {"status": 10000, "data": {"task_id": "T1"}}
        data = parse_response(_response(200, body), action="submit", sentinel_fields=("code", "status"))
        assert data["data"]["task_id"] == "T1"

    def test_missing_sentinel_passes(self):
        data = parse_response(_response(200, {"data": {"image_urls": ["u"]}}), action="process")
        assert data["data"]["image_urls"] == ["u"]
