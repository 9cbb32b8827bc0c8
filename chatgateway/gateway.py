import logging
from typing import Generator, Iterator, List, Optional, Union

from chatgateway.config import Settings
from chatgateway.errors import RemoteUnavailableError, UnknownToolError, UnsupportedCombinationError
from chatgateway.llm import ChatProvider, OpenAIProvider, build_client
from chatgateway.media import validate_media
from chatgateway.schemas import DispatchMode, FinalAnswer, PromptRequest, ToolCall, ToolInvocationRound

logger = logging.getLogger(__name__)


class ChatGateway:
    """
    Single entry point turning a PromptRequest into either a complete answer
    (blocking) or a live fragment stream (streaming).

    The gateway keeps no per-request state, so one instance is shared by all
    concurrent callers. Nothing is retried here: every failure is raised to
    the caller as a GatewayError subclass.
    """

    def __init__(self, provider: ChatProvider):
        self._provider = provider

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    def dispatch(self, request: PromptRequest) -> Union[str, Generator[str, None, None]]:
        if request.mode == DispatchMode.STREAMING:
            return self.dispatch_streaming(request)
        return self.dispatch_blocking(request)

    def dispatch_blocking(self, request: PromptRequest, trace: Optional[List[ToolInvocationRound]] = None) -> str:
        """
        Send the prompt and return the model's final text.

        If the first reply asks for one of ``request.tools``, the tool runs
        locally and a second call carries its result back to the model. Only
        one such round is performed.

        :param request: prompt to send
        :param trace: optional caller-owned list the tool round is appended to
        :return: the answer text
        :rtype: str
        """
        if request.media is not None:
            validate_media(request.media)

        logger.info(f"Blocking dispatch (tools={[t.name for t in request.tools]}, media={request.media is not None})")
        logger.debug(f"Prompt: {request.text!r}")

        reply = self._provider.complete(request)
        if isinstance(reply, FinalAnswer):
            return reply.text

        tool_round = self._run_tool(request, reply)
        if trace is not None:
            trace.append(tool_round)

        second = self._provider.complete(request, tool_round=tool_round)
        if not isinstance(second, FinalAnswer):
            raise RemoteUnavailableError(f"Provider requested another tool ({second.name!r}) after the tool round")
        return second.text

    def _run_tool(self, request: PromptRequest, call: ToolCall) -> ToolInvocationRound:
        tool = request.find_tool(call.name)
        if tool is None:
            raise UnknownToolError(f"Model requested unknown tool {call.name!r}", tool_name=call.name)

        logger.info(f"Invoking tool {call.name} with {call.arguments}")
        result = tool.invoke(dict(call.arguments))
        return ToolInvocationRound(call_id=call.call_id, name=call.name, arguments=dict(call.arguments), result=str(result))

    def dispatch_streaming(self, request: PromptRequest) -> Generator[str, None, None]:
        """
        Validate the request now and return a lazy fragment generator.

        The remote call opens on the first pull. Calling ``close()`` on the
        returned generator cancels the stream and closes the connection.
        """
        if request.tools:
            raise UnsupportedCombinationError("Streaming dispatch does not support tools")
        if request.media is not None:
            validate_media(request.media)

        logger.info(f"Streaming dispatch (media={request.media is not None})")
        logger.debug(f"Prompt: {request.text!r}")
        return self._relay(self._provider.stream(request))

    def _relay(self, fragments: Iterator[str]) -> Generator[str, None, None]:
        count = 0
        finished = False
        try:
            for fragment in fragments:
                count += 1
                yield fragment
            finished = True
        finally:
            if not finished:
                logger.info(f"Stream stopped after {count} fragments")
            close = getattr(fragments, "close", None)
            if close is not None:
                close()
        logger.info(f"Stream completed ({count} fragments)")


def build_gateway(settings: Settings) -> ChatGateway:
    """Create the process-wide gateway around one shared SDK client."""
    client = build_client(settings)
    return ChatGateway(OpenAIProvider(client, settings.model, settings.max_output_tokens))
