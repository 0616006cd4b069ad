"""
Runtime configuration for the image generator
Reads the Hugging Face credential from the environment (or a .env file)
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from errors import ConfigurationError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

API_URL = "https://api-inference.huggingface.co/models/stabilityai/stable-diffusion-xl-base-1.0"

# Vite-prefixed name kept for .env files shared with the web front-end
API_KEY_VARIABLES = ("HUGGINGFACE_API_KEY", "VITE_HUGGINGFACE_API_KEY")

MAX_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 3.0


@dataclass(frozen=True)
class Settings:
    api_key: str
    endpoint_url: str = API_URL
    max_attempts: int = MAX_ATTEMPTS
    retry_delay_seconds: float = RETRY_DELAY_SECONDS

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "No API key provided. Set the HUGGINGFACE_API_KEY environment variable."
            )
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.retry_delay_seconds < 0:
            raise ConfigurationError("retry_delay_seconds must not be negative")

    def __repr__(self) -> str:
        return (
            f"Settings(api_key='***', endpoint_url={self.endpoint_url!r}, "
            f"max_attempts={self.max_attempts}, retry_delay_seconds={self.retry_delay_seconds})"
        )


def find_api_key() -> Optional[str]:
    """Return the first non-empty credential found in the environment."""
    for name in API_KEY_VARIABLES:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def load_settings() -> Settings:
    """
    Build the process-wide settings.

    Raises:
        ConfigurationError: if no API key is configured
    """
    settings = Settings(api_key=find_api_key() or "")
    logger.info(f"Loaded settings for endpoint: {settings.endpoint_url}")
    return settings
