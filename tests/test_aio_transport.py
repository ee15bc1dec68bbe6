from typing import Any, Callable
from contextlib import aclosing
import asyncio
import json
import httpx
import pytest
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionChunk
from toolchat.aio import (
    Conversation,
    FunctionCallRequest,
    FunctionDeclaration,
    OpenAIChatStream,
    OpenAIChatTransport,
    ParameterDeclaration,
    ResponseFragment,
    TransportError,
)

DATE = FunctionDeclaration(namespace="TimePlugin", name="Date", description="Date.")
ECHO = FunctionDeclaration(
    namespace="Test", name="Echo", parameters=(ParameterDeclaration(name="x"),)
)


def make_transport(
    handler: Callable[[httpx.Request], httpx.Response],
) -> OpenAIChatTransport:
    client = AsyncOpenAI(
        api_key="test-key",
        base_url="http://openai.test/v1",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return OpenAIChatTransport(client, "gpt-test", temperature=0)


def completion(message: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-test",
        "choices": [{"index": 0, "finish_reason": "stop", "message": message}],
    }


def chunk_data(delta: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 0,
        "model": "gpt-test",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


def chunk(delta: dict[str, Any]) -> str:
    return f"data: {json.dumps(chunk_data(delta))}\n\n"


def sse_response(*deltas: dict[str, Any]) -> httpx.Response:
    body = "".join(chunk(d) for d in deltas) + "data: [DONE]\n\n"
    return httpx.Response(
        200, content=body.encode(), headers={"content-type": "text/event-stream"}
    )


def make_conversation() -> Conversation:
    conversation = Conversation(system_prompt="You are helpful.")
    conversation.add_user_message("What day is today?")
    return conversation


def test_send_request_with_forced_function():
    requests: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/chat/completions"
        requests.append(json.loads(request.content))
        tool_call = {
            "id": "call_1",
            "type": "function",
            "function": {"name": "TimePlugin-Date", "arguments": "{}"},
        }
        message = {"role": "assistant", "content": None, "tool_calls": [tool_call]}
        return httpx.Response(200, json=completion(message))

    async def main():
        transport = make_transport(handler)
        response = await transport.send_request(
            make_conversation(), [DATE, ECHO], "TimePlugin-Date"
        )
        assert response.text is None
        assert response.function_call == FunctionCallRequest(
            id="call_1", namespace="TimePlugin", name="Date", arguments="{}"
        )

    asyncio.run(main())

    body = requests[0]
    assert body["model"] == "gpt-test"
    assert body["temperature"] == 0
    assert body["messages"] == [
        {"role": "system", "content": "You are helpful."},
        {"role": "user", "content": "What day is today?"},
    ]
    assert [t["function"]["name"] for t in body["tools"]] == [
        "TimePlugin-Date",
        "Test-Echo",
    ]
    assert body["tool_choice"] == {
        "type": "function",
        "function": {"name": "TimePlugin-Date"},
    }


def test_send_request_text_without_functions():
    requests: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        message = {"role": "assistant", "content": "It's Sunday."}
        return httpx.Response(200, json=completion(message))

    async def main():
        transport = make_transport(handler)
        response = await transport.send_request(make_conversation(), [])
        assert response.text == "It's Sunday."
        assert response.function_call is None

    asyncio.run(main())
    assert "tools" not in requests[0]
    assert "tool_choice" not in requests[0]


def test_send_request_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Slow down"}})

    async def main():
        transport = make_transport(handler)
        with pytest.raises(TransportError):
            await transport.send_request(make_conversation(), [DATE])

    asyncio.run(main())


def test_streaming_request():
    requests: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return sse_response(
            {"role": "assistant", "content": "Let me "},
            {"content": "check."},
            {
                "tool_calls": [
                    {
                        "index": 0,
                        "id": "call_9",
                        "type": "function",
                        "function": {"name": "Test-Echo", "arguments": ""},
                    }
                ]
            },
            {"tool_calls": [{"index": 0, "function": {"arguments": '{"x": '}}]},
            {"tool_calls": [{"index": 0, "function": {"arguments": '"1"}'}}]},
        )

    async def main():
        transport = make_transport(handler)
        stream = await transport.send_streaming_request(
            make_conversation(), [DATE, ECHO]
        )
        with pytest.raises(RuntimeError):
            stream.function_call()

        fragments = [fragment async for fragment in stream]
        assert fragments == [ResponseFragment("Let me "), ResponseFragment("check.")]
        call = stream.function_call()
        assert call == FunctionCallRequest(
            id="call_9", namespace="Test", name="Echo", arguments='{"x": "1"}'
        )
        assert call.parsed_arguments() == {"x": "1"}

        with pytest.raises(RuntimeError):
            [fragment async for fragment in stream]

    asyncio.run(main())
    assert requests[0]["stream"] is True
    assert requests[0]["tool_choice"] == "auto"


class RecordingStream:
    def __init__(self, *deltas: dict[str, Any]):
        self.chunks = [
            ChatCompletionChunk.model_validate(chunk_data(d)) for d in deltas
        ]
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def close(self) -> None:
        self.closed = True


def test_abandoned_stream_closes_response():
    async def main():
        response = RecordingStream(
            {"role": "assistant", "content": "Let me "},
            {"content": "check."},
        )
        stream = OpenAIChatStream(response)  # type: ignore
        async with aclosing(aiter(stream)) as fragments:
            async for fragment in fragments:
                assert fragment == ResponseFragment("Let me ")
                break

        assert response.closed
        with pytest.raises(RuntimeError):
            stream.function_call()

    asyncio.run(main())


def test_exhausted_stream_is_left_to_the_client():
    async def main():
        response = RecordingStream({"content": "Done."})
        stream = OpenAIChatStream(response)  # type: ignore
        assert [fragment async for fragment in stream] == [ResponseFragment("Done.")]
        assert not response.closed
        assert stream.function_call() is None

    asyncio.run(main())


def test_streaming_request_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Bad key"}})

    async def main():
        transport = make_transport(handler)
        with pytest.raises(TransportError):
            await transport.send_streaming_request(make_conversation(), [DATE])

    asyncio.run(main())


def test_from_settings():
    from toolchat.config import ToolChatSettings

    settings = ToolChatSettings(
        openai_api_key="sk-test",
        chat_model_id="gpt-test",
        openai_base_url="http://openai.test/v1",
        request_timeout=5,
        _env_file=None,  # pyright: ignore[reportCallIssue]
    )
    transport = OpenAIChatTransport.from_settings(settings)
    assert transport.model == "gpt-test"
    assert transport.client.api_key == "sk-test"
    assert str(transport.client.base_url).startswith("http://openai.test/v1")
