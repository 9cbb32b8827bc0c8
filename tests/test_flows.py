from pathlib import Path

import pytest

from chatgateway import flows
from chatgateway.config import DEFAULT_SAMPLE_IMAGE, Settings, load_settings
from chatgateway.errors import InvalidMediaError
from chatgateway.schemas import DispatchMode
from chatgateway.tools import DATE_TIME_TOOL

from conftest import FAKE_JPEG


class TestFlows:
    """Test the demo request builders."""

    def test_city_guide_streams(self, settings):
        request = flows.city_guide_request(settings)
        assert request.mode == DispatchMode.STREAMING
        assert request.text == "I am visiting Montreal, CA can you give me 10 places I must visit"
        assert request.tools == ()

    def test_city_is_configurable(self):
        request = flows.city_guide_request(Settings(stream_city="Lisbon, PT"))
        assert "Lisbon, PT" in request.text

    def test_image_request_attaches_jpeg(self, settings):
        request = flows.image_request(settings)
        assert request.mode == DispatchMode.BLOCKING
        assert request.text == "Can you please explain what you see in the following image?"
        assert request.media.mime_type == "image/jpeg"
        assert request.media.data == FAKE_JPEG

    def test_image_request_missing_file(self, tmp_path):
        with pytest.raises(InvalidMediaError):
            flows.image_request(Settings(sample_image_path=tmp_path / "missing.jpg"))

    def test_blog_post_default_topic(self, settings):
        request = flows.blog_post_request(settings)
        assert request.text == "Write me a blog post about AI"
        assert request.system == flows.BLOG_POST_SYSTEM_MESSAGE

    @pytest.mark.parametrize("topic, expected", [("Rust", "Rust"), ("  ", "AI"), (None, "AI")])
    def test_blog_post_topic(self, settings, topic, expected):
        assert flows.blog_post_request(settings, topic).text == f"Write me a blog post about {expected}"

    def test_tomorrow_request_registers_date_tool(self, settings):
        request = flows.tomorrow_request(settings)
        assert request.text == "What day is tomorrow?"
        assert request.tools == (DATE_TIME_TOOL,)
        assert request.mode == DispatchMode.BLOCKING

    def test_chat_request(self):
        assert flows.chat_request("hi").mode == DispatchMode.BLOCKING
        assert flows.chat_request("hi", DispatchMode.STREAMING).mode == DispatchMode.STREAMING


class TestSettings:
    """Test environment-driven configuration."""

    ENV_VARS = [
        "OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL", "CHAT_TIMEOUT_SECONDS",
        "CHAT_MAX_OUTPUT_TOKENS", "STREAM_CITY", "POST_TOPIC", "IMAGE_PROMPT",
        "SAMPLE_IMAGE_PATH", "TOOLS_PROMPT", "FACT_SUBJECT", "STARTUP_FACT", "LOG_LEVEL",
    ]

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        # keep a developer's .env out of the picture
        monkeypatch.setattr("chatgateway.config.load_dotenv", lambda *args, **kwargs: False)
        for name in self.ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        settings = load_settings()
        assert settings.api_key is None
        assert settings.model == "gpt-4o-mini"
        assert settings.timeout == 60.0
        assert settings.max_output_tokens is None
        assert settings.sample_image_path == DEFAULT_SAMPLE_IMAGE
        assert settings.startup_fact is False
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        monkeypatch.setenv("CHAT_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("CHAT_MAX_OUTPUT_TOKENS", "300")
        monkeypatch.setenv("POST_TOPIC", "Python")
        monkeypatch.setenv("SAMPLE_IMAGE_PATH", "/tmp/cat.jpg")
        monkeypatch.setenv("STARTUP_FACT", "yes")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.api_key == "sk-env"
        assert settings.model == "gpt-4o"
        assert settings.timeout == 12.5
        assert settings.max_output_tokens == 300
        assert settings.post_topic == "Python"
        assert settings.sample_image_path == Path("/tmp/cat.jpg")
        assert settings.startup_fact is True
        assert settings.log_level == "DEBUG"

    def test_blank_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("OPENAI_MODEL", "   ")
        monkeypatch.setenv("STREAM_CITY", "")
        settings = load_settings()
        assert settings.model == "gpt-4o-mini"
        assert settings.stream_city == "Montreal, CA"


def test_bundled_sample_image_exists():
    assert DEFAULT_SAMPLE_IMAGE.is_file()
    assert DEFAULT_SAMPLE_IMAGE.read_bytes()[:2] == b"\xff\xd8"
