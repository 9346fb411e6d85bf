"""Async client for the Jimeng (Volcengine visual) image and video generation API."""

from jimeng_client.errors import (
    ConfigurationError,
    JimengError,
    PollTimeoutError,
    RateLimitError,
    TransportError,
    ValidationError,
    VendorBusinessError,
)
from jimeng_client.schemas import (
    GenerationResult,
    ImageTaskParams,
    ImageToVideoParams,
    PollOptions,
    ProcessImageParams,
    ResultPayload,
    TaskKind,
    TaskResult,
    TaskStatus,
    TextToVideoParams,
)
from jimeng_client.services.task_client import ClientOptions, JimengClient
from jimeng_client.signer import Credentials, RequestSigner, SignedRequest, format_query

__version__ = "1.1.0"

__all__ = [
    "ClientOptions",
    "ConfigurationError",
    "Credentials",
    "GenerationResult",
    "ImageTaskParams",
    "ImageToVideoParams",
    "JimengClient",
    "JimengError",
    "PollOptions",
    "PollTimeoutError",
    "ProcessImageParams",
    "RateLimitError",
    "RequestSigner",
    "ResultPayload",
    "SignedRequest",
    "TaskKind",
    "TaskResult",
    "TaskStatus",
    "TextToVideoParams",
    "TransportError",
    "ValidationError",
    "VendorBusinessError",
    "format_query",
]
