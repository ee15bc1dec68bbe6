# File generated from its async equivalent, toolchat/aio/_transport.py
from typing import Any, Generator, Protocol, Self, Sequence
from dataclasses import dataclass, field
import logging
import openai
from openai import OpenAI, Stream
from openai.types.chat import (
    ChatCompletionChunk,
    ChatCompletionMessageToolCallUnion,
)
from .._common import (
    FUNCTION_CALL_AUTO,
    Conversation,
    FunctionDeclaration,
    FunctionCallPolicy,
    FunctionCallRequest,
    CompletionResponse,
    ResponseFragment,
    TransportError,
    tool_choice_for_chat_completions_api,
)
from ..config import ToolChatSettings

__all__ = [
    "CompletionStream",
    "CompletionTransport",
    "OpenAIChatTransport",
    "OpenAIChatStream",
]

logger = logging.getLogger(__name__)


class CompletionStream(Protocol):
    """
    A streamed model reply: a finite, ordered sequence of fragments that can be
    consumed once, plus the function call aggregated across all of them.
    """

    def __iter__(self) -> Generator[ResponseFragment, None, None]: ...

    def function_call(self) -> FunctionCallRequest | None:
        """
        The aggregated function call. Only valid once the stream is exhausted.
        """
        ...


class CompletionTransport(Protocol):
    """
    Boundary to the language model provider.
    """

    def send_request(
        self,
        conversation: Conversation,
        declarations: Sequence[FunctionDeclaration],
        function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO,
    ) -> CompletionResponse: ...

    def send_streaming_request(
        self,
        conversation: Conversation,
        declarations: Sequence[FunctionDeclaration],
        function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO,
    ) -> CompletionStream: ...


class OpenAIChatTransport:
    """
    Completion transport backed by the OpenAI Chat Completions API.
    """

    def __init__(self, client: OpenAI, model: str, **request_options: Any):
        self.client = client
        self.model = model
        self.request_options = request_options

    @classmethod
    def from_settings(cls, settings: ToolChatSettings, **request_options: Any) -> Self:
        api_key = settings.openai_api_key
        client = OpenAI(
            api_key=api_key.get_secret_value() if api_key else None,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
        )
        return cls(client, settings.chat_model_id, **request_options)

    def request_params(
        self,
        conversation: Conversation,
        declarations: Sequence[FunctionDeclaration],
        function_call: FunctionCallPolicy,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            **self.request_options,
            "model": self.model,
            "messages": conversation.chat_messages(),
        }
        # The API rejects `tool_choice` without `tools`.
        if declarations:
            tools = [d.tool_def_for_chat_completions_api() for d in declarations]
            params["tools"] = tools
            params["tool_choice"] = tool_choice_for_chat_completions_api(function_call)
        return params

    def send_request(
        self,
        conversation: Conversation,
        declarations: Sequence[FunctionDeclaration],
        function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO,
    ) -> CompletionResponse:
        params = self.request_params(conversation, declarations, function_call)
        try:
            completion = self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise TransportError(f"Chat completion request failed: {e}") from e

        if not completion.choices:
            raise TransportError("Chat completion response has no choices.")
        message = completion.choices[0].message
        return CompletionResponse(
            text=message.content,
            function_call=first_function_call(message.tool_calls or []),
        )

    def send_streaming_request(
        self,
        conversation: Conversation,
        declarations: Sequence[FunctionDeclaration],
        function_call: FunctionCallPolicy = FUNCTION_CALL_AUTO,
    ) -> "OpenAIChatStream":
        params = self.request_params(conversation, declarations, function_call)
        try:
            stream = self.client.chat.completions.create(**params, stream=True)
        except openai.OpenAIError as e:
            raise TransportError(f"Chat completion request failed: {e}") from e
        return OpenAIChatStream(stream)


def first_function_call(
    calls: Sequence[ChatCompletionMessageToolCallUnion],
) -> FunctionCallRequest | None:
    """
    Only one function call is handled per round. Custom tool calls are ignored.
    """
    for call in calls:
        if call.type == "function":
            return FunctionCallRequest.from_any_call(call)
    return None


@dataclass(slots=True)
class _ToolCallBuffer:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class OpenAIChatStream:
    """
    Flattens a stream of chat completion chunks into text fragments, collecting
    function call deltas on the side.
    """

    def __init__(self, stream: Stream[ChatCompletionChunk]):
        self._stream = stream
        self._calls: dict[int, _ToolCallBuffer] = {}
        self._started = False
        self._exhausted = False

    def __iter__(self) -> Generator[ResponseFragment, None, None]:
        if self._started:
            raise RuntimeError("A completion stream can only be consumed once.")
        self._started = True
        try:
            for chunk in self._stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                for call in delta.tool_calls or []:
                    buffer = self._calls.setdefault(call.index, _ToolCallBuffer())
                    if call.id:
                        buffer.id = call.id
                    if (func := call.function) is not None:
                        if func.name:
                            buffer.name = func.name
                        buffer.arguments.append(func.arguments or "")
                if delta.content:
                    yield ResponseFragment(delta.content)
            self._exhausted = True
        except openai.OpenAIError as e:
            raise TransportError(f"Chat completion stream failed: {e}") from e
        finally:
            if not self._exhausted:
                # Abandoned mid-stream: release the connection.
                self._stream.close()

    def function_call(self) -> FunctionCallRequest | None:
        if not self._exhausted:
            raise RuntimeError("Consume the stream before reading its function call.")
        for index in sorted(self._calls):
            buffer = self._calls[index]
            if buffer.name:
                return FunctionCallRequest.from_qualified_name(
                    buffer.name, "".join(buffer.arguments), id=buffer.id
                )
        return None
