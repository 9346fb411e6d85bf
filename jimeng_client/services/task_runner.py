"""Generic submit → poll driver shared by image and video tasks.

Async task pattern:
1. submit → vendor task_id
2. poll every ``interval`` seconds, at most ``max_attempts`` times
3. stop on a terminal status, or give up and hand back the task_id
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from jimeng_client.errors import (
    ConfigurationError,
    JimengError,
    PollTimeoutError,
    ValidationError,
)
from jimeng_client.schemas.results import GenerationResult, TaskResult
from jimeng_client.schemas.task import TERMINAL_STATUSES, TaskKind, TaskStatus
from jimeng_client.services.retry import Sleep

logger = logging.getLogger(__name__)

SubmitFn = Callable[[], Awaitable[str]]
PollFn = Callable[[str], Awaitable[TaskResult]]


def _failure(error: Exception | str, **kwargs) -> GenerationResult:
    if isinstance(error, Exception):
        return GenerationResult(success=False, error=str(error), error_type=type(error).__name__, **kwargs)
    return GenerationResult(success=False, error=error, **kwargs)


def _success(kind: TaskKind, result: TaskResult) -> GenerationResult:
    urls = result.payload.urls
    return GenerationResult(
        success=True,
        task_id=result.task_id,
        status=result.status,
        image_urls=[] if kind.is_video else urls,
        video_urls=urls if kind.is_video else [],
        binary_data_base64=result.payload.base64_blobs,
        raw_response=result.raw_response,
    )


async def run_to_completion(
    kind: TaskKind,
    submit: SubmitFn,
    poll: PollFn,
    *,
    max_attempts: int,
    interval: float,
    sleep: Sleep,
) -> GenerationResult:
    """Submit a task and poll until it finishes or the attempt budget is spent.

    Configuration and validation errors propagate; every other failure is
    returned as an unsuccessful :class:`GenerationResult`.
    """
    start = time.monotonic()
    try:
        task_id = await submit()
    except (ConfigurationError, ValidationError):
        raise
    except JimengError as e:
        logger.error("%s submission failed: %s", kind.value, e)
        return _failure(e)

    logger.info("%s task submitted: %s, polling every %.0fs (max %d)", kind.value, task_id, interval, max_attempts)

    last_status: str | None = None
    last_error: JimengError | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = await poll(task_id)
        except JimengError as e:
            if not e.retriable:
                logger.error("Task %s poll failed permanently: %s", task_id, e)
                return _failure(e, task_id=task_id, status=last_status)
            last_error = e
            logger.warning("Poll %d/%d for task %s failed: %s", attempt, max_attempts, task_id, e)
        else:
            last_status = result.status
            logger.debug("Task %s poll %d/%d: %s", task_id, attempt, max_attempts, result.status)

            if result.status == TaskStatus.SUCCEEDED:
                if result.payload.is_empty:
                    logger.error("Task %s succeeded without result data", task_id)
                    return _failure(
                        "Vendor reported success but returned no result data",
                        task_id=task_id,
                        status=result.status,
                        error_type="VendorBusinessError",
                        raw_response=result.raw_response,
                    )
                logger.info(
                    "Task %s succeeded after %d polls (%.1fs)",
                    task_id, attempt, time.monotonic() - start,
                )
                return _success(kind, result)

            if result.status in TERMINAL_STATUSES:
                return _failure(
                    result.message or f"{kind.value} task ended with status {result.status}",
                    task_id=task_id,
                    status=result.status,
                    error_type="TaskFailed",
                    raw_response=result.raw_response,
                )

        if attempt < max_attempts:
            await sleep(interval)

    timeout = PollTimeoutError(task_id, max_attempts, last_status)
    logger.warning("%s", timeout)
    if last_error is not None:
        return _failure(
            f"{timeout}. Last poll error: {last_error}",
            task_id=task_id,
            status=last_status,
            error_type=type(timeout).__name__,
        )
    return _failure(timeout, task_id=task_id, status=last_status)
