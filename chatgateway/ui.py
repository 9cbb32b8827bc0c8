from typing import Iterator, List, Optional, Tuple

import gradio as gr

from chatgateway import flows
from chatgateway.config import Settings, configure_logging, load_settings
from chatgateway.errors import GatewayError
from chatgateway.gateway import ChatGateway, build_gateway
from chatgateway.schemas import ToolInvocationRound

TRACE_LABELS = {
    "get_tomorrow_date": "Local tool: tomorrow's date",
}


def error_markdown(err: GatewayError) -> str:
    return f"**Error ({err.kind.value})**: {err.message}"


def run_city_guide(gateway: ChatGateway, settings: Settings) -> Iterator[str]:
    """
    Stream the city guide, yielding the accumulated answer after every
    fragment so the UI updates incrementally.
    """
    text = ""
    try:
        for fragment in gateway.dispatch_streaming(flows.city_guide_request(settings)):
            text += fragment
            yield text
    except GatewayError as e:
        # keep what was already shown, append the error under it
        yield (text + "\n\n" if text else "") + error_markdown(e)


def run_image(gateway: ChatGateway, settings: Settings) -> str:
    try:
        return gateway.dispatch_blocking(flows.image_request(settings))
    except GatewayError as e:
        return error_markdown(e)


def run_blog_post(gateway: ChatGateway, settings: Settings, topic: Optional[str]) -> str:
    try:
        return gateway.dispatch_blocking(flows.blog_post_request(settings, topic))
    except GatewayError as e:
        return error_markdown(e)


def run_tomorrow(gateway: ChatGateway, settings: Settings) -> Tuple[str, str]:
    tool_calls: List[ToolInvocationRound] = []
    try:
        answer = gateway.dispatch_blocking(flows.tomorrow_request(settings), trace=tool_calls)
    except GatewayError as e:
        answer = error_markdown(e)
    return answer, trace_markdown(tool_calls)


def trace_markdown(tool_calls) -> str:
    """
    Turn the tool rounds of one request into a short Markdown timeline.
    """
    if not tool_calls:
        return "_No tool was called._"

    lines = []
    for tc in tool_calls:
        desc = TRACE_LABELS.get(tc.name, "")
        line = f"- ✓ **{tc.name}**"
        if desc:
            line += f" — {desc}"
        lines.append(line + f" → `{tc.result}`")
    return "\n".join(lines)


def build_ui(gateway: ChatGateway, settings: Settings):
    def stream_city():
        yield from run_city_guide(gateway, settings)

    def describe_image():
        return run_image(gateway, settings)

    def write_post(topic):
        return run_blog_post(gateway, settings, topic)

    def ask_tomorrow():
        return run_tomorrow(gateway, settings)

    with gr.Blocks(title="Chat Gateway Demos") as demo: #creates a gradio UI page
        gr.Markdown("# Chat Gateway Demos")

        with gr.Tab("Streaming"):
            gr.Markdown(f"Ten places to visit in **{settings.stream_city}**, streamed as it is generated.")
            city_btn = gr.Button("Ask")
            city_out = gr.Markdown()
            city_btn.click(stream_city, inputs=None, outputs=city_out)

        with gr.Tab("Image"):
            gr.Markdown(f"{settings.image_prompt}\n\nImage: `{settings.sample_image_path.name}`")
            image_btn = gr.Button("Describe")
            image_out = gr.Markdown()
            image_btn.click(describe_image, inputs=None, outputs=image_out)

        with gr.Tab("Blog post"):
            topic = gr.Textbox(value=settings.post_topic, label="Topic")
            post_btn = gr.Button("Write")
            post_out = gr.Markdown()
            post_btn.click(write_post, inputs=topic, outputs=post_out)
            topic.submit(write_post, inputs=topic, outputs=post_out)

        with gr.Tab("Tools"):
            gr.Markdown(settings.tools_prompt)
            tools_btn = gr.Button("Ask")
            with gr.Row():
                with gr.Column(scale=3):
                    tools_out = gr.Markdown()
                with gr.Column(scale=2):
                    gr.Markdown("Tool calls:")
                    tools_trace = gr.Markdown(value="_Waiting for input…_")
            tools_btn.click(ask_tomorrow, inputs=None, outputs=[tools_out, tools_trace])
    return demo


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings)
    build_ui(build_gateway(settings), settings).launch(server_name="0.0.0.0", server_port=7860)
