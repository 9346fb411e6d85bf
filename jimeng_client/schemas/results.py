"""Result records returned by the client."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class ResultPayload:
    """Generated artifacts: public URLs and inline base64 blobs, deduplicated."""
    urls: list[str] = field(default_factory=list)
    base64_blobs: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.urls and not self.base64_blobs


@dataclass
class TaskResult:
    """Outcome of one result query."""
    task_id: str
    status: str
    payload: ResultPayload = field(default_factory=ResultPayload)
    message: str | None = None
    raw_response: dict[str, Any] | None = None


@dataclass
class GenerationResult:
    """Outcome of a generate-and-wait call or a direct process call."""
    success: bool
    task_id: str | None = None
    status: str | None = None
    image_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    binary_data_base64: list[str] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None
    raw_response: dict[str, Any] | None = None

    def to_dict(self, include_raw: bool = False) -> dict[str, Any]:
        data = asdict(self)
        if not include_raw:
            data.pop("raw_response")
        return data
