"""Jimeng task client: signed submit / poll calls against the Volcengine visual API.

All calls are ``POST {endpoint}?Action=...&Version=2022-08-31`` with a signed
JSON body (multipart for uploads):

- ``CVSync2AsyncSubmitTask`` → task_id
- ``CVSync2AsyncGetResult``  → status + artifacts
- ``CVProcess``              → synchronous image generation
- upload action              → public URLs for local reference images
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from jimeng_client.errors import JimengError, TransportError, ValidationError, VendorBusinessError
from jimeng_client.schemas.results import GenerationResult, TaskResult
from jimeng_client.schemas.task import (
    DEFAULT_PROCESS_REQ_KEY,
    ImageTaskParams,
    ImageToVideoParams,
    PollOptions,
    ProcessImageParams,
    TaskKind,
    TaskStatus,
    TextToVideoParams,
)
from jimeng_client.services import task_runner, uploader
from jimeng_client.services.result_parser import (
    content_safety_message,
    extract_payload,
    normalize_status,
    parse_response,
)
from jimeng_client.services.retry import (
    RetryPolicy,
    Sleep,
    call_with_retry,
    fixed_policy,
    image_policy,
)
from jimeng_client.signer import DEFAULT_CONTENT_TYPE, Credentials, RequestSigner, mask_secret

logger = logging.getLogger(__name__)

ACTION_SUBMIT = "CVSync2AsyncSubmitTask"
ACTION_GET_RESULT = "CVSync2AsyncGetResult"
ACTION_PROCESS = "CVProcess"

_SUBMIT_SENTINELS = ("code", "status")

TaskParams = ImageTaskParams | TextToVideoParams | ImageToVideoParams

_PARAMS_BY_KIND: dict[TaskKind, type] = {
    TaskKind.IMAGE: ImageTaskParams,
    TaskKind.TEXT_TO_VIDEO: TextToVideoParams,
    TaskKind.IMAGE_TO_VIDEO: ImageToVideoParams,
}


@dataclass(frozen=True)
class ClientOptions:
    """Per-client behaviour. Immutable once the client is built."""
    timeout: float = 30.0
    retries: int = 3
    debug: bool = False
    enable_upload: bool = True
    upload_action: str = "CVUploadImages"
    api_version: str = "2022-08-31"
    poll_interval: float = 5.0
    image_max_attempts: int = 60
    video_max_attempts: int = 30
    video_submit_retry_delay: float = 60.0
    poll_retry_delay: float = 5.0


class JimengClient:
    """Async client for Jimeng image and video generation tasks.

    The client holds only immutable credentials and options; each call is
    independent and the caller owns the returned task_id.

    Args:
        credentials: Account keys and endpoint. Construction fails without keys.
        options: Timeouts, retry budget, polling defaults and debug switch.
        http_client: Optional shared ``httpx.AsyncClient``; when omitted a client is
            created and closed per call.
        sleep: Awaitable used for every backoff and polling wait.
    """

    def __init__(
        self,
        credentials: Credentials,
        options: ClientOptions | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.credentials = credentials
        self.options = options or ClientOptions()
        self.signer = RequestSigner(credentials, debug=self.options.debug)
        self._http_client = http_client
        self._sleep: Sleep = sleep or asyncio.sleep

        if self.options.debug:
            logger.debug(
                "JimengClient ready: endpoint=%s region=%s service=%s access_key=%s secret_key=%s",
                credentials.endpoint, credentials.region, credentials.service,
                credentials.access_key, mask_secret(credentials.secret_key),
            )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(body: dict[str, Any]) -> str:
        return json.dumps(body, ensure_ascii=False, separators=(",", ":"))

    async def _post(
        self,
        action: str,
        body: str | bytes,
        *,
        region: str | None = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
        sentinel_fields: tuple[str, ...] = ("code",),
    ) -> dict[str, Any]:
        """Sign and send one call, returning the validated JSON response."""
        query = {"Action": action, "Version": self.options.api_version}
        signed = self.signer.sign(query, body, region=region, content_type=content_type)
        content = body.encode("utf-8") if isinstance(body, str) else body

        if self.options.debug:
            logger.debug("%s request URL: %s", action, signed.url)
            if isinstance(body, str):
                logger.debug("%s request body: %s", action, body)
            else:
                logger.debug("%s request body: <%d bytes %s>", action, len(body), content_type)

        client = self._http_client or httpx.AsyncClient(timeout=self.options.timeout)
        own_client = self._http_client is None
        start = time.monotonic()
        try:
            response = await client.post(signed.url, content=content, headers=signed.headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"{action}: timed out after {self.options.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{action}: network error: {e}") from e
        finally:
            if own_client:
                await client.aclose()

        if self.options.debug:
            logger.debug(
                "%s response HTTP %d in %dms: %s",
                action, response.status_code, int((time.monotonic() - start) * 1000), response.text,
            )
        return parse_response(response, action=action, sentinel_fields=sentinel_fields)

    # ------------------------------------------------------------------
    # Local references
    # ------------------------------------------------------------------

    async def upload_images(self, paths: list[str]) -> list[str]:
        """Upload local image files and return their public URLs."""
        if not self.options.enable_upload:
            raise ValidationError(
                f"Local image references require uploads, which are disabled: {paths}"
            )
        body, content_type = uploader.build_multipart(paths)
        logger.info("Uploading %d local image(s)", len(paths))
        data = await self._post(self.options.upload_action, body, content_type=content_type)
        return uploader.uploaded_urls(data, expected=len(paths))

    async def _resolve_references(self, references: list[str]) -> list[str]:
        """Upload local references and swap in their URLs, keeping the caller's order."""
        local = [i for i, ref in enumerate(references) if not uploader.is_remote(ref)]
        if not local:
            return list(references)
        urls = await self.upload_images([uploader.local_path(references[i]) for i in local])
        resolved = list(references)
        for index, url in zip(local, urls):
            resolved[index] = url
        return resolved

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @staticmethod
    def _require_prompt(prompt: str | None) -> None:
        if not prompt or not prompt.strip():
            raise ValidationError("Missing required parameter: prompt")

    async def _submit(self, kind: TaskKind, body: dict[str, Any], region: str | None, policy: RetryPolicy) -> str:
        encoded = self._encode(body)

        async def op() -> str:
            data = await self._post(ACTION_SUBMIT, encoded, region=region, sentinel_fields=_SUBMIT_SENTINELS)
            task_id = (data.get("data") or {}).get("task_id")
            if not task_id:
                raise VendorBusinessError(f"{ACTION_SUBMIT}: response carried no task_id")
            return str(task_id)

        task_id = await call_with_retry(f"submit {kind.value}", policy, op, self._sleep)
        logger.info("Submitted %s task %s (req_key=%s)", kind.value, task_id, body.get("req_key"))
        return task_id

    async def submit_image_task(self, params: ImageTaskParams) -> str:
        """Submit an image task; retries with exponential backoff (1s base, 10s cap)."""
        self._require_prompt(params.prompt)
        image_urls = await self._resolve_references(params.image_urls) if params.image_urls else None
        body = params.to_body(TaskKind.IMAGE.default_req_key, image_urls=image_urls)
        return await self._submit(TaskKind.IMAGE, body, params.region, image_policy(self.options.retries))

    async def submit_video_task(self, params: TextToVideoParams) -> str:
        """Submit a text-to-video task; one retry after a fixed wait (QPS=1 endpoint)."""
        self._require_prompt(params.prompt)
        body = params.to_body(TaskKind.TEXT_TO_VIDEO.default_req_key)
        policy = fixed_policy(self.options.video_submit_retry_delay)
        return await self._submit(TaskKind.TEXT_TO_VIDEO, body, params.region, policy)

    async def submit_i2v_task(self, params: ImageToVideoParams) -> str:
        """Submit an image-to-video task; at least one image reference is required."""
        references = params.references()
        if not references:
            raise ValidationError("Missing required parameter: image_url or image_urls")
        image_urls = await self._resolve_references(references)
        body = params.to_body(TaskKind.IMAGE_TO_VIDEO.default_req_key, image_urls=image_urls)
        policy = fixed_policy(self.options.video_submit_retry_delay)
        return await self._submit(TaskKind.IMAGE_TO_VIDEO, body, params.region, policy)

    async def submit_task(self, kind: TaskKind, params: TaskParams) -> str:
        expected = _PARAMS_BY_KIND[kind]
        if not isinstance(params, expected):
            raise ValidationError(
                f"{kind.value} tasks take {expected.__name__}, got {type(params).__name__}"
            )
        if kind is TaskKind.IMAGE:
            return await self.submit_image_task(params)
        if kind is TaskKind.TEXT_TO_VIDEO:
            return await self.submit_video_task(params)
        return await self.submit_i2v_task(params)

    # ------------------------------------------------------------------
    # Result query
    # ------------------------------------------------------------------

    async def get_task_result(
        self,
        task_id: str,
        kind: TaskKind = TaskKind.TEXT_TO_VIDEO,
        req_key: str | None = None,
        options: PollOptions | None = None,
    ) -> TaskResult:
        """Query a task once and normalize its status and artifacts.

        A content-safety rejection comes back as a FAILED result rather than an
        exception. Other vendor and transport errors are raised after one retry.
        """
        options = options or PollOptions()
        body: dict[str, Any] = {"req_key": req_key or kind.default_req_key, "task_id": task_id}
        req_json = options.req_json_payload()
        if req_json:
            body["req_json"] = self._encode(req_json)
        encoded = self._encode(body)

        async def op() -> dict[str, Any]:
            return await self._post(ACTION_GET_RESULT, encoded, region=options.region)

        try:
            data = await call_with_retry(
                f"get_result {task_id}",
                fixed_policy(self.options.poll_retry_delay),
                op,
                self._sleep,
            )
        except VendorBusinessError as e:
            if content_safety_message(e.code) is None:
                raise
            logger.warning("Task %s rejected by content safety: %s", task_id, e)
            return TaskResult(task_id=task_id, status=TaskStatus.FAILED, message=e.message)

        task_data = data.get("data") or {}
        status = normalize_status(task_data.get("status"))
        payload = extract_payload(task_data, task_id)
        message = None
        if status == TaskStatus.FAILED:
            message = f"{kind.value} task failed: {data.get('message') or 'no reason given'}"
        return TaskResult(
            task_id=task_id,
            status=status,
            payload=payload,
            message=message,
            raw_response=data,
        )

    # ------------------------------------------------------------------
    # Generate and wait
    # ------------------------------------------------------------------

    async def run_to_completion(
        self,
        kind: TaskKind,
        params: TaskParams,
        *,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
    ) -> GenerationResult:
        """Submit a task of any kind and poll until it finishes."""
        if max_attempts is None:
            max_attempts = self.options.video_max_attempts if kind.is_video else self.options.image_max_attempts
        poll_options = PollOptions(region=params.region)
        if isinstance(params, ImageTaskParams):
            poll_options = PollOptions(region=params.region, return_url=params.return_url)

        async def submit() -> str:
            return await self.submit_task(kind, params)

        async def poll(task_id: str) -> TaskResult:
            return await self.get_task_result(task_id, kind, params.req_key, poll_options)

        return await task_runner.run_to_completion(
            kind,
            submit,
            poll,
            max_attempts=max_attempts,
            interval=self.options.poll_interval if poll_interval is None else poll_interval,
            sleep=self._sleep,
        )

    async def generate_image(self, params: ImageTaskParams, **kwargs: Any) -> GenerationResult:
        return await self.run_to_completion(TaskKind.IMAGE, params, **kwargs)

    async def generate_video(self, params: TextToVideoParams, **kwargs: Any) -> GenerationResult:
        return await self.run_to_completion(TaskKind.TEXT_TO_VIDEO, params, **kwargs)

    async def generate_i2v_video(self, params: ImageToVideoParams, **kwargs: Any) -> GenerationResult:
        return await self.run_to_completion(TaskKind.IMAGE_TO_VIDEO, params, **kwargs)

    # ------------------------------------------------------------------
    # Direct (synchronous) processing
    # ------------------------------------------------------------------

    async def process_image(self, params: ProcessImageParams) -> GenerationResult:
        """Generate an image in a single call through ``CVProcess``."""
        self._require_prompt(params.prompt)
        encoded = self._encode(params.to_body(DEFAULT_PROCESS_REQ_KEY))

        async def op() -> dict[str, Any]:
            return await self._post(ACTION_PROCESS, encoded, region=params.region)

        try:
            data = await call_with_retry("process_image", image_policy(self.options.retries), op, self._sleep)
        except JimengError as e:
            return GenerationResult(success=False, error=str(e), error_type=type(e).__name__)

        payload = extract_payload(data.get("data"))
        if payload.is_empty:
            return GenerationResult(
                success=False,
                error="No image generated or unexpected response format",
                error_type="VendorBusinessError",
                raw_response=data,
            )
        return GenerationResult(
            success=True,
            status=TaskStatus.SUCCEEDED,
            image_urls=payload.urls,
            binary_data_base64=payload.base64_blobs,
            raw_response=data,
        )
