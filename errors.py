"""
Error types raised while turning a prompt into an image
"""

from typing import Optional

DEFAULT_FAILURE_MESSAGE = "Failed to generate image"
EMPTY_PROMPT_MESSAGE = "Please enter a prompt"
INVALID_IMAGE_MESSAGE = "The image service returned data that is not an image"


class ImageGeneratorError(Exception):
    """Base class for every error this app raises on purpose."""


class ConfigurationError(ImageGeneratorError):
    """The app cannot start a request, e.g. the API key is missing."""


class ValidationError(ImageGeneratorError):
    """The user input was rejected before any network call."""

    def __init__(self, message: str = EMPTY_PROMPT_MESSAGE):
        super().__init__(message)


class RequestFailed(ImageGeneratorError):
    """The inference endpoint returned an error response."""

    def __init__(self, message: str = DEFAULT_FAILURE_MESSAGE, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ModelLoadingError(RequestFailed):
    """The backend model is still warming up and the call should be retried."""


def user_message(error: BaseException) -> str:
    """Plain text shown on the error banner for any failure."""
    message = str(error).strip()
    return message or DEFAULT_FAILURE_MESSAGE
