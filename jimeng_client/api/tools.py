"""Tool endpoints for image and video generation for agents and scripts.

Every endpoint answers with the same envelope::

    {"status": "success" | "error", "message": ..., "data" | "error": ..., "timestamp": ...}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from jimeng_client.api.deps import get_client
from jimeng_client.errors import ConfigurationError, JimengError, ValidationError
from jimeng_client.schemas.results import GenerationResult
from jimeng_client.schemas.task import (
    DEFAULT_IMAGE_REQ_KEY,
    DEFAULT_T2V_REQ_KEY,
    ImageTaskParams,
    PollOptions,
    TaskKind,
    TextToVideoParams,
)
from jimeng_client.services import uploader
from jimeng_client.services.task_client import JimengClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tools", tags=["tools"])

RATIO_MAPPING: dict[str, tuple[int, int]] = {
    "4:3": (2304, 1728),
    "3:4": (1728, 2304),
    "16:9": (2560, 1440),
    "9:16": (1440, 2560),
}

# Phrases that ask for the finished video instead of a task_id.
SYNC_INTENT_PHRASES = ("一次输出", "同步输出", "等待结果", "wait for the result", "wait for result")

_STATUS_CODES: dict[type[JimengError], int] = {
    ConfigurationError: 503,
    ValidationError: 400,
}


def typography_prompt(text: str, illustration: str, color: str) -> str:
    """Poster-style prompt: the text as the title over a gradient with light illustrations."""
    return (
        f"字体设计：\"{text}\"，黑色字体，斜体，带阴影。干净的背景，白色到{color}渐变。"
        f"点缀浅灰色、半透明{illustration}等元素插图做配饰插画。"
    )


def wants_sync(prompt: str, async_mode: bool, intent_sync: bool) -> bool:
    return not async_mode or intent_sync or any(p in prompt for p in SYNC_INTENT_PHRASES)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ok(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {"status": "success", "message": message, "data": data, "timestamp": _now()}


def _error(message: str, error: str, *, status_code: int = 502, **extra: Any) -> JSONResponse:
    body = {"status": "error", "message": message, "error": error, **extra, "timestamp": _now()}
    return JSONResponse(status_code=status_code, content=body)


def _from_exception(message: str, e: JimengError) -> JSONResponse:
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(e, cls)), 502)
    return _error(message, str(e), status_code=status_code)


def _no_credentials() -> JSONResponse:
    return _error(
        "API keys not configured",
        "JIMENG_ACCESS_KEY and JIMENG_SECRET_KEY are not set",
        status_code=503,
        help="Set the variables in the environment or in ~/.jimeng-ai-mcp/.env",
    )


def _failed(message: str, result: GenerationResult) -> JSONResponse:
    return _error(
        message,
        result.error or "unknown error",
        task_id=result.task_id,
        status_detail=result.status,
        error_type=result.error_type,
    )


class GenerateImageRequest(BaseModel):
    text: str
    illustration: str
    color: str
    ratio: Literal["4:3", "3:4", "16:9", "9:16"]
    model: str | None = None


class ImageToImageRequest(BaseModel):
    prompt: str
    references: list[str] = Field(min_length=1)
    model: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    size: int | None = Field(default=None, gt=0)
    return_url: bool = True


class GenerateVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    async_mode: bool = Field(default=True, alias="async")
    intent_sync: bool = False
    duration: int | None = None
    aspect_ratio: str | None = None


class SubmitVideoRequest(BaseModel):
    prompt: str


class GetVideoTaskRequest(BaseModel):
    task_id: str
    req_key: str | None = None
    kind: TaskKind = TaskKind.TEXT_TO_VIDEO


@router.post("/generate-image")
async def generate_image(req: GenerateImageRequest, client: JimengClient | None = Depends(get_client)):
    """Generate a typography poster image from text, illustration keywords and a color."""
    if client is None:
        return _no_credentials()
    width, height = RATIO_MAPPING[req.ratio]
    prompt = typography_prompt(req.text, req.illustration, req.color)
    params = ImageTaskParams(
        prompt=prompt, width=width, height=height, force_single=True, req_key=req.model,
    )
    try:
        result = await client.generate_image(params)
    except (ConfigurationError, ValidationError) as e:
        return _from_exception("Image generation failed", e)

    if not result.success or not result.image_urls:
        return _failed("Image generation failed", result)

    return _ok("Image generated", {
        "text": req.text,
        "illustration": req.illustration,
        "color": req.color,
        "ratio": req.ratio,
        "dimensions": f"{width}×{height}",
        "prompt": prompt,
        "llm_prompt": ((result.raw_response or {}).get("data") or {}).get("rephraser_result") or prompt,
        "model": req.model or DEFAULT_IMAGE_REQ_KEY,
        "image_url": result.image_urls[0],
        "image_urls": result.image_urls,
        "task_id": result.task_id,
        "status_detail": result.status,
    })


@router.post("/image-to-image")
async def image_to_image(req: ImageToImageRequest, client: JimengClient | None = Depends(get_client)):
    """Edit or vary reference images (public URLs or local paths)."""
    if client is None:
        return _no_credentials()
    remote, local = uploader.split_references(req.references)
    params = ImageTaskParams(
        prompt=req.prompt,
        req_key=req.model,
        width=req.width,
        height=req.height,
        size=req.size,
        return_url=req.return_url,
        image_urls=req.references,
        force_single=False,
    )
    try:
        result = await client.generate_image(params)
    except (ConfigurationError, ValidationError) as e:
        return _from_exception("Image-to-image failed", e)

    if not result.success or not (result.image_urls or result.binary_data_base64):
        return _failed("Image-to-image failed", result)

    return _ok("Image-to-image completed", {
        "prompt": req.prompt,
        "model": req.model or DEFAULT_IMAGE_REQ_KEY,
        "width": req.width,
        "height": req.height,
        "size": req.size,
        "remote_references": remote,
        "local_references": local,
        "image_urls": result.image_urls,
        "binary_data_base64": result.binary_data_base64,
        "task_id": result.task_id,
        "status_detail": result.status,
    })


@router.post("/generate-video")
async def generate_video(req: GenerateVideoRequest, client: JimengClient | None = Depends(get_client)):
    """Text-to-video. Returns a task_id unless the caller asks to wait for the video."""
    if client is None:
        return _no_credentials()
    params = TextToVideoParams(
        prompt=req.prompt,
        req_key=DEFAULT_T2V_REQ_KEY,
        duration=req.duration,
        aspect_ratio=req.aspect_ratio,
    )
    sync = wants_sync(req.prompt, req.async_mode, req.intent_sync)
    logger.info("generate-video: sync=%s", sync)

    try:
        if not sync:
            task_id = await client.submit_video_task(params)
            return _ok("Video task submitted", {
                "prompt": req.prompt,
                "task_id": task_id,
                "help": "Call get-video-task with this task_id to fetch the result",
            })
        result = await client.generate_video(params)
    except JimengError as e:
        return _from_exception("Video generation failed", e)

    if not result.success or not result.video_urls:
        return _failed("Video generation failed", result)

    return _ok("Video generated", {
        "prompt": req.prompt,
        "video_urls": result.video_urls,
        "video_url": result.video_urls[0],
        "video_base64_list": result.binary_data_base64,
        "task_id": result.task_id,
    })


@router.post("/submit-video-task")
async def submit_video_task(req: SubmitVideoRequest, client: JimengClient | None = Depends(get_client)):
    """Submit a text-to-video task and return its task_id immediately."""
    if client is None:
        return _no_credentials()
    try:
        task_id = await client.submit_video_task(
            TextToVideoParams(prompt=req.prompt, req_key=DEFAULT_T2V_REQ_KEY)
        )
    except JimengError as e:
        return _from_exception("Video task submission failed", e)
    return _ok("Video task submitted", {
        "prompt": req.prompt,
        "task_id": task_id,
        "help": "Call get-video-task with this task_id to fetch the result",
    })


@router.post("/get-video-task")
async def get_video_task(req: GetVideoTaskRequest, client: JimengClient | None = Depends(get_client)):
    """Query a video task once."""
    if client is None:
        return _no_credentials()
    try:
        result = await client.get_task_result(
            req.task_id, req.kind, req.req_key, PollOptions(return_url=True)
        )
    except JimengError as e:
        return _from_exception("Video task query failed", e)

    if result.message and not result.payload.urls:
        return _error(
            "Video task failed", result.message, task_id=req.task_id, status_detail=result.status,
        )
    return _ok("Video task status", {
        "task_id": req.task_id,
        "status": result.status,
        "video_urls": result.payload.urls,
        "video_base64_list": result.payload.base64_blobs,
    })
