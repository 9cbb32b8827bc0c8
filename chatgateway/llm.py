import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol

import httpx
import openai
from openai import OpenAI

from chatgateway.config import Settings
from chatgateway.errors import GatewayTimeoutError, RemoteUnavailableError
from chatgateway.media import to_data_url
from chatgateway.schemas import FinalAnswer, PromptRequest, ProviderReply, ToolCall, ToolInvocationRound, ToolSpec

logger = logging.getLogger(__name__)


class ChatProvider(Protocol):
    """What the gateway needs from a remote chat model."""

    def complete(self, request: PromptRequest, tool_round: Optional[ToolInvocationRound] = None) -> ProviderReply:
        ...

    def stream(self, request: PromptRequest) -> Iterator[str]:
        ...


def build_client(settings: Settings) -> OpenAI:
    """
    Create the single SDK client shared by every request.
    Retries are disabled: a failed call is reported to the caller as is.
    """
    return OpenAI(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
        max_retries=0,
    )


@contextmanager
def _translate_errors():
    """Map SDK/transport exceptions onto the gateway's error kinds."""
    try:
        yield
    except (openai.APITimeoutError, httpx.TimeoutException) as e:
        raise GatewayTimeoutError(f"Provider call timed out: {e}") from e
    except openai.APIConnectionError as e:
        raise RemoteUnavailableError(f"Cannot reach provider: {e}") from e
    except openai.APIStatusError as e:
        raise RemoteUnavailableError(f"Provider returned {e.status_code}: {e.message}") from e
    except (openai.APIError, httpx.HTTPError) as e:
        raise RemoteUnavailableError(f"Provider call failed: {e}") from e


def _tool_schema(tool: ToolSpec) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": tool.name,
        "description": tool.description,
        "parameters": tool.parameters,
    }


class OpenAIProvider:
    """
    ChatProvider backed by the OpenAI Responses API.

    Holds a reference to an already built client so one connection pool is
    reused across requests.
    """

    def __init__(self, client: OpenAI, model: str, max_output_tokens: Optional[int] = None):
        self._client = client
        self._model = model
        self._max_output_tokens = max_output_tokens

    @property
    def model(self) -> str:
        return self._model

    def _build_input(self, request: PromptRequest, tool_round: Optional[ToolInvocationRound]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [{"type": "input_text", "text": request.text}]
        if request.media is not None:
            content.append({"type": "input_image", "image_url": to_data_url(request.media)})

        items: List[Dict[str, Any]] = [{"role": "user", "content": content}]
        if tool_round is not None:
            # replay the model's call and attach our output to it
            items.append({
                "type": "function_call",
                "call_id": tool_round.call_id,
                "name": tool_round.name,
                "arguments": json.dumps(tool_round.arguments),
            })
            items.append({
                "type": "function_call_output",
                "call_id": tool_round.call_id,
                "output": tool_round.result,
            })
        return items

    def build_payload(self, request: PromptRequest, tool_round: Optional[ToolInvocationRound] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._model,
            "input": self._build_input(request, tool_round),
        }
        if request.system:
            payload["instructions"] = request.system
        if self._max_output_tokens:
            payload["max_output_tokens"] = self._max_output_tokens
        if request.tools:
            payload["tools"] = [_tool_schema(t) for t in request.tools]
            payload["parallel_tool_calls"] = False
            if tool_round is not None:
                payload["tool_choice"] = "none"
        return payload

    def complete(self, request: PromptRequest, tool_round: Optional[ToolInvocationRound] = None) -> ProviderReply:
        payload = self.build_payload(request, tool_round)
        with _translate_errors():
            resp = self._client.responses.create(**payload)
        return self._parse_reply(resp)

    def _parse_reply(self, resp: Any) -> ProviderReply:
        for item in getattr(resp, "output", None) or []:
            if getattr(item, "type", None) != "function_call":
                continue
            try:
                args = json.loads(item.arguments or "{}")
            except json.JSONDecodeError as e:
                raise RemoteUnavailableError(f"Malformed arguments for tool {item.name!r}: {item.arguments!r}") from e
            if not isinstance(args, dict):
                raise RemoteUnavailableError(f"Tool arguments must be an object, got {item.arguments!r}")
            return ToolCall(call_id=item.call_id, name=item.name, arguments=args)

        return FinalAnswer(text=resp.output_text or "")

    def stream(self, request: PromptRequest) -> Iterator[str]:
        """
        Yield text deltas as the provider produces them.

        Closing the generator exits the SDK stream context, which closes the
        underlying HTTP response.
        """
        payload = self.build_payload(request)
        with _translate_errors():
            with self._client.responses.stream(**payload) as stream:
                for event in stream:
                    if event.type == "response.output_text.delta":
                        yield event.delta
                    elif event.type in ("error", "response.failed"):
                        raise RemoteUnavailableError(f"Provider stream failed: {getattr(event, 'message', event.type)}")
