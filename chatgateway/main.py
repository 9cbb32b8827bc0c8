import logging
from contextlib import asynccontextmanager
from typing import Generator, Iterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from chatgateway import flows
from chatgateway.config import Settings, configure_logging, load_settings
from chatgateway.errors import ErrorKind, GatewayError
from chatgateway.gateway import ChatGateway, build_gateway
from chatgateway.schemas import AnswerResponse, AnswerTrace, ChatInput, DispatchMode, ToolInvocationRound

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.UNSUPPORTED_COMBINATION: 400,
    ErrorKind.INVALID_MEDIA: 422,
    ErrorKind.UNKNOWN_TOOL: 502,
    ErrorKind.REMOTE_UNAVAILABLE: 502,
    ErrorKind.TIMEOUT: 504,
}


def _log_startup_fact(gateway: ChatGateway, settings: Settings) -> None:
    try:
        fact = gateway.dispatch_blocking(flows.fact_request(settings))
    except GatewayError as e:
        logger.warning(f"Startup fact skipped ({e.kind.value}): {e.message}")
        return
    logger.info(f"Startup fact: {fact}")


def get_gateway(request: Request) -> ChatGateway:
    return request.app.state.gateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _stream_response(fragments: Generator[str, None, None]) -> StreamingResponse:
    """
    Pull the first fragment before answering so failures that happen before
    any output still get a proper error status. Later failures are logged
    and end the stream; what was already sent stays sent.
    """
    try:
        first = next(fragments, None)
    except GatewayError:
        fragments.close()
        raise

    def body() -> Iterator[str]:
        try:
            if first is None:
                return
            yield first
            for fragment in fragments:
                yield fragment
        except GatewayError as e:
            logger.error(f"Stream aborted ({e.kind.value}): {e.message}")
        finally:
            fragments.close()

    return StreamingResponse(body(), media_type="text/plain")


def create_app(settings: Optional[Settings] = None, gateway: Optional[ChatGateway] = None) -> FastAPI:
    """
    Build the web app. The gateway (and its single SDK client) is created once
    at startup unless one is injected, e.g. by tests.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        if getattr(app.state, "gateway", None) is None:
            app.state.gateway = build_gateway(settings)
        if settings.startup_fact:
            await run_in_threadpool(_log_startup_fact, app.state.gateway, settings)
        yield

    app = FastAPI(title="chatgateway", lifespan=lifespan) #the object uvicorn runs
    app.state.settings = settings
    app.state.gateway = gateway

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        status = ERROR_STATUS.get(exc.kind, 500)
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind.value}): {exc.message}")
        return JSONResponse(status_code=status, content={"error": exc.kind.value, "detail": exc.message})

    @app.get("/health")
    def health(settings: Settings = Depends(get_settings)):
        return {"ok": True, "model": settings.model}

    @app.get("/stream")
    def stream(gateway: ChatGateway = Depends(get_gateway), settings: Settings = Depends(get_settings)):
        return _stream_response(gateway.dispatch_streaming(flows.city_guide_request(settings)))

    @app.get("/image", response_class=PlainTextResponse)
    def image(gateway: ChatGateway = Depends(get_gateway), settings: Settings = Depends(get_settings)):
        return gateway.dispatch_blocking(flows.image_request(settings))

    @app.get("/posts/new", response_class=PlainTextResponse)
    def new_post(
        topic: Optional[str] = None,
        gateway: ChatGateway = Depends(get_gateway),
        settings: Settings = Depends(get_settings),
    ):
        return gateway.dispatch_blocking(flows.blog_post_request(settings, topic))

    @app.get("/tools", response_class=PlainTextResponse)
    def tools(gateway: ChatGateway = Depends(get_gateway), settings: Settings = Depends(get_settings)):
        return gateway.dispatch_blocking(flows.tomorrow_request(settings))

    # free-form prompts
    @app.post("/chat", response_model=AnswerResponse)
    def chat(body: ChatInput, gateway: ChatGateway = Depends(get_gateway)):
        tool_calls: list[ToolInvocationRound] = []
        answer = gateway.dispatch_blocking(flows.chat_request(body.message), trace=tool_calls)
        return AnswerResponse(answer=answer, trace=AnswerTrace(mode=DispatchMode.BLOCKING, tool_calls=tool_calls))

    @app.post("/chat/stream")
    def chat_stream(body: ChatInput, gateway: ChatGateway = Depends(get_gateway)):
        request = flows.chat_request(body.message, mode=DispatchMode.STREAMING)
        return _stream_response(gateway.dispatch_streaming(request))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
