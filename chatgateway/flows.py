from typing import Optional

from chatgateway.config import Settings
from chatgateway.media import load_media
from chatgateway.schemas import DispatchMode, PromptRequest
from chatgateway.tools import DATE_TIME_TOOL

# each builder turns configuration (and optional user input) into a ready-to-send PromptRequest

BLOG_POST_SYSTEM_MESSAGE = (
    "You are a technical blogger. Write an engaging, well-structured blog post "
    "with a title, a short introduction, 3-5 sections with headings and a conclusion. "
    "Keep it under 800 words."
)


def city_guide_request(settings: Settings) -> PromptRequest:
    return PromptRequest(
        text=f"I am visiting {settings.stream_city} can you give me 10 places I must visit",
        mode=DispatchMode.STREAMING,
    )


def image_request(settings: Settings) -> PromptRequest:
    """
    Describe the configured sample image.
    Raises InvalidMediaError if the file can't be read.
    """
    media = load_media(settings.sample_image_path, mime_type="image/jpeg")
    return PromptRequest(text=settings.image_prompt, media=media)


def blog_post_request(settings: Settings, topic: Optional[str] = None) -> PromptRequest:
    topic = (topic or "").strip() or settings.post_topic
    return PromptRequest(
        text=f"Write me a blog post about {topic}",
        system=BLOG_POST_SYSTEM_MESSAGE,
    )


def tomorrow_request(settings: Settings) -> PromptRequest:
    return PromptRequest(text=settings.tools_prompt, tools=(DATE_TIME_TOOL,))


def fact_request(settings: Settings) -> PromptRequest:
    return PromptRequest(text=f"Tell me an interesting fact about {settings.fact_subject}")


def chat_request(message: str, mode: DispatchMode = DispatchMode.BLOCKING) -> PromptRequest:
    return PromptRequest(text=message, mode=mode)
