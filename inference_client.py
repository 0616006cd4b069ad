"""
Hugging Face Inference API client
Provides the payload builder and the single POST used to generate an image
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from errors import DEFAULT_FAILURE_MESSAGE, INVALID_IMAGE_MESSAGE, ModelLoadingError, RequestFailed
from settings import Settings

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

POSITIVE_SUFFIX = (
    "professional photography, photorealistic, 8k uhd, high detail, "
    "masterpiece, realistic lighting, natural colors"
)
NEGATIVE_PROMPT = (
    "cartoon, anime, illustration, painting, drawing, artificial, "
    "rendered, low quality, blurry, grainy"
)
LOADING_MARKER = "loading"
DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class GenerationParameters:
    """Fixed generation parameters sent with every request."""
    negative_prompt: str = NEGATIVE_PROMPT
    num_inference_steps: int = 75
    guidance_scale: int = 9
    width: int = 1024
    height: int = 1024

    def to_dict(self) -> Dict[str, Any]:
        return {
            "negative_prompt": self.negative_prompt,
            "num_inference_steps": self.num_inference_steps,
            "guidance_scale": self.guidance_scale,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class ImageResponse:
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE


def build_payload(prompt: str, parameters: Optional[GenerationParameters] = None) -> Dict[str, Any]:
    """Combine the raw prompt with the stylistic suffix and fixed parameters."""
    parameters = parameters or GenerationParameters()
    return {
        "inputs": f"{prompt}, {POSITIVE_SUFFIX}",
        "parameters": parameters.to_dict(),
    }


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def parse_error_body(response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON error payload, falling back to an empty dict."""
    try:
        data = response.json()
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def is_model_loading(error_data: Dict[str, Any]) -> bool:
    """True when the backend says the model is still being loaded."""
    error = error_data.get("error")
    if isinstance(error, str):
        return LOADING_MARKER in error
    if isinstance(error, list):
        return any(isinstance(item, str) and LOADING_MARKER in item for item in error)
    return False


def error_message(error_data: Dict[str, Any]) -> str:
    """Backend error text; list errors are joined with commas."""
    error = error_data.get("error")
    if isinstance(error, list):
        error = ", ".join(str(item) for item in error)
    return str(error or DEFAULT_FAILURE_MESSAGE)


def decode_image(data: bytes, content_type: Optional[str]) -> ImageResponse:
    """
    Check that a success body really is an image.

    Raises:
        RequestFailed: the bytes cannot be opened as an image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning(f"Success response is not a decodable image ({content_type}): {e}")
        raise RequestFailed(INVALID_IMAGE_MESSAGE)

    mime_type = (content_type or "").split(";")[0].strip()
    if not mime_type.startswith("image/"):
        mime_type = Image.MIME.get(image_format, DEFAULT_MIME_TYPE)
    return ImageResponse(data=data, mime_type=mime_type)


def error_from_response(response: httpx.Response) -> RequestFailed:
    """Turn a non-success response into the matching exception."""
    error_data = parse_error_body(response)
    message = error_message(error_data)

    if is_model_loading(error_data):
        estimated = error_data.get("estimated_time")
        if estimated is not None:
            logger.info(f"Model is loading, estimated time: {estimated}s")
        return ModelLoadingError(message, status_code=response.status_code)

    return RequestFailed(message, status_code=response.status_code)


async def request_image(
    client: httpx.AsyncClient,
    settings: Settings,
    prompt: str,
    parameters: Optional[GenerationParameters] = None
) -> ImageResponse:
    """
    Issue one generation request and return the image bytes.

    Args:
        client: Open async HTTP client
        settings: Endpoint and credential configuration
        prompt: Raw user prompt (the stylistic suffix is appended here)
        parameters: Override for the fixed generation parameters

    Raises:
        ModelLoadingError: the backend is still warming up
        RequestFailed: any other non-success response, or a body that is not an image
        httpx.HTTPError: network level failures
    """
    payload = build_payload(prompt, parameters)

    logger.debug(f"POST {settings.endpoint_url} with prompt of length: {len(prompt)}")
    response = await client.post(
        settings.endpoint_url,
        json=payload,
        headers=build_headers(settings.api_key),
    )

    if not response.is_success:
        error = error_from_response(response)
        logger.warning(f"Image request failed with status {response.status_code}: {error}")
        raise error

    content_type = response.headers.get("content-type")
    logger.debug(f"Received {len(response.content)} bytes of {content_type}")

    return decode_image(response.content, content_type)


def create_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Async client without a request timeout; the retry budget bounds the wait."""
    return httpx.AsyncClient(timeout=None, transport=transport)
