from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator


class DispatchMode(str, Enum):
    BLOCKING = "blocking"
    STREAMING = "streaming"


class Media(BaseModel):
    """A single binary attachment tagged with its MIME type (e.g. image/jpeg)."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str


class ToolSpec(BaseModel):
    """
    A local capability the model may ask us to run.

    ``parameters`` is the JSON schema advertised to the provider, ``invoke``
    receives the decoded arguments and must return the string handed back to
    the model.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    invoke: Callable[[Dict[str, Any]], str]


class PromptRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str #the user prompt
    system: Optional[str] = None #optional instructions sent alongside the prompt
    media: Optional[Media] = None
    tools: Tuple[ToolSpec, ...] = () #order is kept when advertised to the provider
    mode: DispatchMode = DispatchMode.BLOCKING

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt text must not be empty")
        return v

    @model_validator(mode="after")
    def _unique_tool_names(self) -> "PromptRequest":
        names = [t.name for t in self.tools]
        if len(names) != len(set(names)):
            raise ValueError(f"tool names must be unique within a request, got {names}")
        return self

    def find_tool(self, name: str) -> Optional[ToolSpec]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None


# first-phase provider reply: either the answer itself or a request to run a tool

class FinalAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    call_id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


ProviderReply = Union[FinalAnswer, ToolCall]


class ToolInvocationRound(BaseModel):
    """One tool round: what the model asked for and what we sent back."""
    call_id: str
    name: str
    arguments: Dict[str, Any]
    result: str


# HTTP payloads

class ChatInput(BaseModel):
    message: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)] #current user prompt


class AnswerTrace(BaseModel):
    mode: DispatchMode
    tool_calls: List[ToolInvocationRound] = Field(default_factory=list) #tools used while answering


class AnswerResponse(BaseModel):
    answer: str #model's response
    trace: AnswerTrace #metadata for debugging
