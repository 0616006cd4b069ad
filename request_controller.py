"""
Image request controller
Owns the generation state machine and drives one retrying request cycle
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import httpx

from errors import DEFAULT_FAILURE_MESSAGE, ConfigurationError, ValidationError, user_message
from inference_client import GenerationParameters, create_client, request_image
from retry import run_with_retry
from settings import Settings

logger = logging.getLogger(__name__)


class RequestStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class DisplayHandle:
    """Local reference to downloaded image bytes, ready to be rendered."""
    data: bytes
    mime_type: str
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    released: bool = False

    def release(self):
        self.data = b""
        self.released = True

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/")[-1]
        return "jpg" if subtype == "jpeg" else subtype


@dataclass(frozen=True)
class GenerationState:
    status: RequestStatus = RequestStatus.IDLE
    image: Optional[DisplayHandle] = None
    error: Optional[str] = None
    attempt: int = 0
    max_attempts: int = 0

    @property
    def is_loading(self) -> bool:
        return self.status is RequestStatus.LOADING

    @classmethod
    def idle(cls) -> "GenerationState":
        return cls()

    @classmethod
    def loading(cls, attempt: int, max_attempts: int) -> "GenerationState":
        return cls(status=RequestStatus.LOADING, attempt=attempt, max_attempts=max_attempts)

    @classmethod
    def succeeded(cls, image: DisplayHandle) -> "GenerationState":
        return cls(status=RequestStatus.SUCCEEDED, image=image)

    @classmethod
    def failed(cls, message: str) -> "GenerationState":
        return cls(status=RequestStatus.FAILED, error=message)


StateListener = Callable[[GenerationState], None]


class ImageRequestController:
    """Turns a prompt into either a displayed image or a user-facing error"""

    def __init__(
        self,
        settings: Settings,
        parameters: Optional[GenerationParameters] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if settings is None or not settings.api_key:
            raise ConfigurationError("No API key configured for image generation")
        self.settings = settings
        self.parameters = parameters or GenerationParameters()
        self._sleep = sleep
        self._transport = transport
        self._state = GenerationState.idle()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: GenerationState):
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _release_image(self):
        if self._state.image is not None:
            logger.debug(f"Releasing display handle {self._state.image.handle_id}")
            self._state.image.release()

    def reset(self):
        """Go back to idle, dropping any displayed image."""
        if self.is_loading:
            logger.warning("Cannot reset while a generation is in progress")
            return
        self._release_image()
        self._set_state(GenerationState.idle())

    async def generate(self, prompt: str) -> bool:
        """
        Run one request cycle for the prompt.

        Returns:
            True if an image was produced, False otherwise (including when
            a cycle is already running and this call was ignored)
        """
        if self.is_loading:
            logger.warning("Generation already in progress, ignoring new request")
            return False

        self._release_image()

        if not prompt or not prompt.strip():
            self._set_state(GenerationState.failed(str(ValidationError())))
            return False

        max_attempts = self.settings.max_attempts
        self._set_state(GenerationState.loading(1, max_attempts))
        logger.info(f"Generating image for prompt: {prompt[:60]}")

        try:
            image = await self._fetch_image(prompt, max_attempts)
            logger.info(f"Image generated: {len(image.data)} bytes ({image.mime_type})")
            self._set_state(GenerationState.succeeded(image))
            return True
        except Exception as e:
            message = user_message(e)
            logger.error(f"Image generation failed: {message}")
            self._set_state(GenerationState.failed(message))
            return False
        finally:
            # The loading indicator never outlives the cycle, even on cancellation
            if self.is_loading:
                self._set_state(GenerationState.failed(DEFAULT_FAILURE_MESSAGE))

    async def _fetch_image(self, prompt: str, max_attempts: int) -> DisplayHandle:
        def on_retry(attempt: int, error: BaseException):
            self._set_state(replace(self._state, attempt=attempt + 1))

        async with create_client(self._transport) as client:
            result = await run_with_retry(
                lambda attempt: request_image(client, self.settings, prompt, self.parameters),
                max_attempts=max_attempts,
                delay_seconds=self.settings.retry_delay_seconds,
                sleep=self._sleep,
                on_retry=on_retry,
            )
        return DisplayHandle(data=result.data, mime_type=result.mime_type)
