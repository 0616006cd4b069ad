"""Scripted HTTP backends and response factories for controller tests."""

from __future__ import annotations

import io
from collections.abc import Callable

import httpx
from PIL import Image


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


PNG_BYTES = _png_bytes()
LOADING_MESSAGE = "Model stabilityai/stable-diffusion-xl-base-1.0 is currently loading"

ResponseFactory = Callable[[], httpx.Response]


class ScriptedBackend:
    """MockTransport handler replaying steps in order; the last step repeats.

    A step is either a callable returning a fresh response or an exception
    instance raised from inside the transport.
    """

    def __init__(self, *steps: ResponseFactory | Exception) -> None:
        self.steps = list(steps)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps[min(len(self.requests), len(self.steps)) - 1]
        if isinstance(step, Exception):
            raise step
        return step()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def image_response() -> httpx.Response:
    return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})


def loading_response() -> httpx.Response:
    return httpx.Response(503, json={"error": LOADING_MESSAGE, "estimated_time": 20.0})


def error_response(message: str | None = "Internal Server Error", status: int = 500) -> ResponseFactory:
    def factory() -> httpx.Response:
        body = {"error": message} if message is not None else {}
        return httpx.Response(status, json=body)

    return factory


def not_an_image_response() -> httpx.Response:
    return httpx.Response(200, json={"warning": "queued"})
