"""Request and result schemas."""

from jimeng_client.schemas.results import GenerationResult, ResultPayload, TaskResult
from jimeng_client.schemas.task import (
    ImageTaskParams,
    ImageToVideoParams,
    PollOptions,
    ProcessImageParams,
    TaskKind,
    TaskStatus,
    TextToVideoParams,
)

__all__ = [
    "GenerationResult",
    "ImageTaskParams",
    "ImageToVideoParams",
    "PollOptions",
    "ProcessImageParams",
    "ResultPayload",
    "TaskKind",
    "TaskResult",
    "TaskStatus",
    "TextToVideoParams",
]
