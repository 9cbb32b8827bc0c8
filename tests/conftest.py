from __future__ import annotations

from pathlib import Path
from typing import Iterator, Optional

import pytest
from fastapi.testclient import TestClient

from chatgateway.config import Settings
from chatgateway.gateway import ChatGateway
from chatgateway.main import create_app
from chatgateway.schemas import FinalAnswer, PromptRequest, ToolInvocationRound

# bytes only need to be non-empty, nothing decodes them
FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


class StubProvider:
    """
    Scriptable ChatProvider.

    ``replies`` are consumed in order by ``complete``; an entry may be a reply
    object or a callable ``(request, tool_round) -> reply``. With no scripted
    reply left it echoes the prompt back.
    """

    def __init__(
        self,
        replies: Optional[list] = None,
        fragments: Optional[list[str]] = None,
        stream_error: Optional[Exception] = None,
        complete_error: Optional[Exception] = None,
    ):
        self.replies = list(replies or [])
        self.fragments = list(fragments or [])
        self.stream_error = stream_error
        self.complete_error = complete_error
        self.complete_calls: list[tuple[PromptRequest, Optional[ToolInvocationRound]]] = []
        self.stream_calls: list[PromptRequest] = []
        self.fragments_sent = 0
        self.stream_closed = False

    @property
    def remote_calls(self) -> int:
        return len(self.complete_calls) + len(self.stream_calls)

    def complete(self, request, tool_round=None):
        self.complete_calls.append((request, tool_round))
        if self.complete_error is not None:
            raise self.complete_error
        if self.replies:
            reply = self.replies.pop(0)
            return reply(request, tool_round) if callable(reply) else reply
        return FinalAnswer(text=f"echo: {request.text}")

    def stream(self, request) -> Iterator[str]:
        self.stream_calls.append(request)
        try:
            for fragment in self.fragments:
                self.fragments_sent += 1
                yield fragment
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.stream_closed = True


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def gateway(provider: StubProvider) -> ChatGateway:
    return ChatGateway(provider)


@pytest.fixture
def sample_image(tmp_path: Path) -> Path:
    path = tmp_path / "sample.jpg"
    path.write_bytes(FAKE_JPEG)
    return path


@pytest.fixture
def settings(sample_image: Path) -> Settings:
    return Settings(api_key="sk-test", sample_image_path=sample_image, log_level="DEBUG")


@pytest.fixture
def client(settings: Settings, gateway: ChatGateway) -> Iterator[TestClient]:
    app = create_app(settings=settings, gateway=gateway)
    with TestClient(app) as c:
        yield c
