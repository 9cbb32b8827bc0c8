import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# bundled sample used by the /image demo unless SAMPLE_IMAGE_PATH says otherwise
DEFAULT_SAMPLE_IMAGE = Path(__file__).parent / "resources" / "sample.jpg"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = 60.0
    max_output_tokens: Optional[int] = None
    # demo prompt parameters
    stream_city: str = "Montreal, CA"
    post_topic: str = "AI"
    image_prompt: str = "Can you please explain what you see in the following image?"
    sample_image_path: Path = DEFAULT_SAMPLE_IMAGE
    tools_prompt: str = "What day is tomorrow?"
    fact_subject: str = "large language model APIs"
    startup_fact: bool = False
    log_level: str = "INFO"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings() -> Settings:
    """
    Build Settings from the environment (and a local .env file if present).
    Unset variables fall back to the dataclass defaults.
    """
    load_dotenv()
    defaults = Settings()

    max_tokens = _env("CHAT_MAX_OUTPUT_TOKENS")
    timeout = _env("CHAT_TIMEOUT_SECONDS")
    image_path = _env("SAMPLE_IMAGE_PATH")
    startup_fact = _env("STARTUP_FACT")

    return Settings(
        api_key=_env("OPENAI_API_KEY"),
        base_url=_env("OPENAI_BASE_URL"),
        model=_env("OPENAI_MODEL") or defaults.model,
        timeout=float(timeout) if timeout else defaults.timeout,
        max_output_tokens=int(max_tokens) if max_tokens else None,
        stream_city=_env("STREAM_CITY") or defaults.stream_city,
        post_topic=_env("POST_TOPIC") or defaults.post_topic,
        image_prompt=_env("IMAGE_PROMPT") or defaults.image_prompt,
        sample_image_path=Path(image_path) if image_path else defaults.sample_image_path,
        tools_prompt=_env("TOOLS_PROMPT") or defaults.tools_prompt,
        fact_subject=_env("FACT_SUBJECT") or defaults.fact_subject,
        startup_fact=(startup_fact or "").lower() in _TRUE_VALUES,
        log_level=(_env("LOG_LEVEL") or defaults.log_level).upper(),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
