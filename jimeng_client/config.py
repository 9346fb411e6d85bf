"""Client configuration using Pydantic Settings.

The only place that reads the environment; the client itself receives explicit
credentials and options.
"""

import logging
import os
import sys
from functools import lru_cache

from pydantic_settings import BaseSettings

from jimeng_client.services.task_client import ClientOptions, JimengClient
from jimeng_client.signer import (
    DEFAULT_ENDPOINT,
    DEFAULT_HOST,
    DEFAULT_REGION,
    DEFAULT_SERVICE,
    Credentials,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

HOME_ENV_FILE = os.path.join(os.path.expanduser("~"), ".jimeng-ai-mcp", ".env")


class Settings(BaseSettings):
    """Jimeng client settings.

    Loaded from environment variables, ``./.env`` or ``~/.jimeng-ai-mcp/.env``
    (the local file wins).
    """

    # --- Credentials (required) ---
    JIMENG_ACCESS_KEY: str = ""
    JIMENG_SECRET_KEY: str = ""

    # --- Endpoint ---
    JIMENG_ENDPOINT: str = DEFAULT_ENDPOINT
    JIMENG_HOST: str = DEFAULT_HOST
    JIMENG_REGION: str = DEFAULT_REGION
    JIMENG_SERVICE: str = DEFAULT_SERVICE

    # --- Behaviour ---
    JIMENG_TIMEOUT: float = 30.0
    JIMENG_RETRIES: int = 3
    JIMENG_DEBUG: bool = False
    JIMENG_ENABLE_UPLOAD: bool = True
    JIMENG_UPLOAD_ACTION: str = "CVUploadImages"

    # --- Polling ---
    JIMENG_POLL_INTERVAL: float = 5.0
    JIMENG_IMAGE_MAX_ATTEMPTS: int = 60
    JIMENG_VIDEO_MAX_ATTEMPTS: int = 30

    @property
    def has_credentials(self) -> bool:
        return bool(self.JIMENG_ACCESS_KEY and self.JIMENG_SECRET_KEY)

    def to_credentials(self) -> Credentials:
        """Raises ConfigurationError when either key is missing."""
        return Credentials(
            access_key=self.JIMENG_ACCESS_KEY,
            secret_key=self.JIMENG_SECRET_KEY,
            region=self.JIMENG_REGION,
            service=self.JIMENG_SERVICE,
            host=self.JIMENG_HOST,
            endpoint=self.JIMENG_ENDPOINT,
        )

    def to_options(self) -> ClientOptions:
        return ClientOptions(
            timeout=self.JIMENG_TIMEOUT,
            retries=self.JIMENG_RETRIES,
            debug=self.JIMENG_DEBUG,
            enable_upload=self.JIMENG_ENABLE_UPLOAD,
            upload_action=self.JIMENG_UPLOAD_ACTION,
            poll_interval=self.JIMENG_POLL_INTERVAL,
            image_max_attempts=self.JIMENG_IMAGE_MAX_ATTEMPTS,
            video_max_attempts=self.JIMENG_VIDEO_MAX_ATTEMPTS,
        )

    def create_client(self, **kwargs) -> JimengClient:
        return JimengClient(self.to_credentials(), self.to_options(), **kwargs)

    model_config = {
        "env_file": (HOME_ENV_FILE, ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()


def configure_logging(debug: bool = False) -> None:
    """Send log output to stderr so it never mixes with result payloads."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
