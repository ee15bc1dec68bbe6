from typing import Literal
from dataclasses import dataclass
from enum import StrEnum
from openai.types.chat import ChatCompletionToolChoiceOptionParam
from ._call import FunctionCallRequest
from ._errors import FunctionNotFoundError, InvocationError

__all__ = [
    "FUNCTION_CALL_AUTO",
    "FUNCTION_CALL_NONE",
    "FunctionCallPolicy",
    "tool_choice_for_chat_completions_api",
    "CompletionResponse",
    "ResponseFragment",
    "RoundState",
    "RoundResult",
]

FUNCTION_CALL_AUTO = "auto"
FUNCTION_CALL_NONE = "none"

type FunctionCallPolicy = Literal["auto", "none"] | str
"""
Per-round function call policy: let the model decide ("auto"), forbid calls
("none"), or force the function with the given qualified name.
"""


def tool_choice_for_chat_completions_api(
    policy: FunctionCallPolicy,
) -> ChatCompletionToolChoiceOptionParam:
    """
    `tool_choice` parameter for the Chat Completions API.
    """
    if policy == FUNCTION_CALL_AUTO or policy == FUNCTION_CALL_NONE:
        return policy
    return {"type": "function", "function": {"name": policy}}


@dataclass(slots=True, frozen=True, kw_only=True)
class CompletionResponse:
    """
    One non-streamed model reply. Text and function call are independent: either,
    both or neither may be present.
    """

    text: str | None = None
    function_call: FunctionCallRequest | None = None


@dataclass(slots=True, frozen=True)
class ResponseFragment:
    """
    One incremental piece of a streamed model reply.
    """

    text: str | None = None


class RoundState(StrEnum):
    IDLE = "idle"
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    HANDLING_FUNCTION_CALL = "handling_function_call"


@dataclass(slots=True, frozen=True, kw_only=True)
class RoundResult:
    """
    What a round surfaced to the caller.
    """

    prompt: str
    text: str | None = None
    """Assistant text, if the model replied with any."""
    function_call: FunctionCallRequest | None = None
    function_result: str | None = None
    """Normalized output of the called function, if it produced any."""
    error: FunctionNotFoundError | InvocationError | None = None
    """Recovered failure while handling the function call."""
    turns_appended: int = 0
