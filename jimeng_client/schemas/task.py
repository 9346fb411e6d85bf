"""Pydantic v2 schemas for task submission parameters."""

from __future__ import annotations

import enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_IMAGE_REQ_KEY = "jimeng_t2i_v40"
DEFAULT_T2V_REQ_KEY = "jimeng_vgfm_t2v_l20"
DEFAULT_I2V_REQ_KEY = "jimeng_vgfm_i2v_l20"
DEFAULT_PROCESS_REQ_KEY = "jimeng_high_aes_general_v21_L"


class TaskKind(str, enum.Enum):
    """Task families accepted by the async submit endpoint."""

    IMAGE = "image"
    TEXT_TO_VIDEO = "video-text-to-video"
    IMAGE_TO_VIDEO = "video-image-to-video"

    @property
    def is_video(self) -> bool:
        return self is not TaskKind.IMAGE

    @property
    def default_req_key(self) -> str:
        return {
            TaskKind.IMAGE: DEFAULT_IMAGE_REQ_KEY,
            TaskKind.TEXT_TO_VIDEO: DEFAULT_T2V_REQ_KEY,
            TaskKind.IMAGE_TO_VIDEO: DEFAULT_I2V_REQ_KEY,
        }[self]


class TaskStatus(str, enum.Enum):
    """Normalized task statuses. Unknown vendor tokens are kept as uppercase strings."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"


TERMINAL_STATUSES = frozenset({
    TaskStatus.SUCCEEDED,
    TaskStatus.FAILED,
    TaskStatus.NOT_FOUND,
    TaskStatus.EXPIRED,
})


class _TaskParams(BaseModel):
    """Common fields. Unknown fields are forwarded to the vendor as-is."""

    model_config = ConfigDict(extra="allow")

    # Client-side only, never sent in the body.
    local_fields: ClassVar[frozenset[str]] = frozenset({"region"})

    req_key: str | None = None
    region: str | None = None
    seed: int | None = None

    def to_body(self, default_req_key: str, **overrides: Any) -> dict[str, Any]:
        """Sparse request body: unset optional fields are omitted, never sent as null."""
        body = self.model_dump(exclude_none=True, exclude=set(self.local_fields))
        body.update({k: v for k, v in overrides.items() if v is not None})
        body["req_key"] = self.req_key or default_req_key
        return body


class ImageTaskParams(_TaskParams):
    """Text-to-image (optionally with reference images) via the async task API.

    ``image_urls`` may mix public URLs and local file paths; local paths are
    uploaded before submission.
    """

    local_fields: ClassVar[frozenset[str]] = frozenset({"region", "return_url"})

    prompt: str = ""
    negative_prompt: str | None = None
    image_urls: list[str] | None = None
    width: int | None = None
    height: int | None = None
    size: int | None = None
    scale: float | None = None
    force_single: bool | None = None
    return_url: bool = True


class TextToVideoParams(_TaskParams):
    prompt: str = ""
    aspect_ratio: str | None = None
    frames: int | None = None
    duration: int | None = None


class ImageToVideoParams(_TaskParams):
    """Image-to-video. ``image_urls`` takes priority over ``image_url``."""

    local_fields: ClassVar[frozenset[str]] = frozenset({"region", "image_url"})

    image_url: str | None = None
    image_urls: list[str] | None = None
    prompt: str | None = None
    aspect_ratio: str = "16:9"
    frames: int | None = None

    def references(self) -> list[str]:
        if self.image_urls:
            return list(self.image_urls)
        if self.image_url:
            return [self.image_url]
        return []


class ProcessImageParams(_TaskParams):
    """Synchronous image generation through the direct-process action."""

    local_fields: ClassVar[frozenset[str]] = frozenset({"region"})

    prompt: str = ""
    negative_prompt: str | None = None
    width: int = 512
    height: int = 512
    return_url: bool = True


class PollOptions(BaseModel):
    """Options for a single result query.

    ``return_url`` and ``req_json`` are serialized into the vendor's ``req_json``
    string field; ``region`` overrides the signing region for this call only.
    """

    region: str | None = None
    return_url: bool | None = None
    req_json: dict[str, Any] = Field(default_factory=dict)

    def req_json_payload(self) -> dict[str, Any]:
        payload = dict(self.req_json)
        if self.return_url is not None:
            payload.setdefault("return_url", self.return_url)
        return payload
