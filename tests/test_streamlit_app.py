"""Page tests driving the Streamlit script through AppTest without network access."""

from __future__ import annotations

import httpx
import pytest
from streamlit.testing.v1 import AppTest

import request_controller
import settings as settings_module
from request_controller import RequestStatus
from settings import Settings
from tests.helpers import ScriptedBackend, image_response, not_an_image_response

APP_PATH = "../streamlit_image_generator.py"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
    monkeypatch.delenv("VITE_HUGGINGFACE_API_KEY", raising=False)
    return monkeypatch


@pytest.fixture
def use_backend(clean_env: pytest.MonkeyPatch):
    """Route the page's HTTP client to a scripted backend with no retry delay."""

    def install(backend: ScriptedBackend) -> ScriptedBackend:
        clean_env.setattr(
            settings_module,
            "load_settings",
            lambda: Settings(api_key="hf_test_key", retry_delay_seconds=0.0),
        )
        clean_env.setattr(
            request_controller,
            "create_client",
            lambda transport=None: httpx.AsyncClient(transport=backend.transport()),
        )
        return backend

    return install


def button(at: AppTest, label: str):
    return next(b for b in at.button if b.label == label)


def test_missing_api_key_shows_configuration_error(clean_env) -> None:
    at = AppTest.from_file(APP_PATH).run()

    assert not at.exception
    assert len(at.error) == 1
    assert "HUGGINGFACE_API_KEY" in at.error[0].value
    assert len(at.button) == 0


def test_initial_page_shows_form_and_placeholder(clean_env) -> None:
    clean_env.setenv("HUGGINGFACE_API_KEY", "hf_test_key")

    at = AppTest.from_file(APP_PATH).run()

    assert not at.exception
    assert at.title[0].value == "🖼️ AI Image Generator"
    assert at.text_input[0].label == "Enter your prompt"
    assert button(at, "Generate").disabled is False
    assert len(at.error) == 0
    assert any("Generated image will appear here" in m.value for m in at.markdown)


def test_blank_prompt_shows_banner_without_request(use_backend) -> None:
    backend = use_backend(ScriptedBackend(image_response))
    at = AppTest.from_file(APP_PATH).run()

    button(at, "Generate").click().run()

    assert not at.exception
    assert backend.calls == 0
    assert [e.value for e in at.error] == ["Please enter a prompt"]
    assert button(at, "Generate").disabled is False
    assert at.metric[0].value == "0"


def test_generate_renders_image_and_download(use_backend) -> None:
    backend = use_backend(ScriptedBackend(image_response))
    at = AppTest.from_file(APP_PATH).run()

    at.text_input[0].input("a fox")
    button(at, "Generate").click().run(timeout=10)

    assert not at.exception
    assert backend.calls == 1
    assert at.session_state["controller"].state.status is RequestStatus.SUCCEEDED
    assert len(at.image) == 1
    assert len(at.download_button) == 1
    assert len(at.error) == 0
    assert button(at, "Generate").disabled is False
    assert at.metric[0].value == "1"


def test_non_image_success_body_shows_banner_instead_of_crashing(use_backend) -> None:
    backend = use_backend(ScriptedBackend(not_an_image_response))
    at = AppTest.from_file(APP_PATH).run()

    at.text_input[0].input("a fox")
    button(at, "Generate").click().run(timeout=10)

    assert not at.exception
    assert backend.calls == 5
    assert [e.value for e in at.error] == ["The image service returned data that is not an image"]
    assert len(at.image) == 0

    at.run()
    assert not at.exception


def test_clear_returns_to_placeholder(use_backend) -> None:
    use_backend(ScriptedBackend(image_response))
    at = AppTest.from_file(APP_PATH).run()
    at.text_input[0].input("a fox")
    button(at, "Generate").click().run(timeout=10)

    button(at, "🗑️ Clear").click().run()

    assert not at.exception
    assert at.session_state["controller"].state.status is RequestStatus.IDLE
    assert len(at.image) == 0
    assert any("Generated image will appear here" in m.value for m in at.markdown)
