from typing import Annotated, Any, Literal
from dataclasses import dataclass
import pydantic

__all__ = [
    "StructuredResponse",
    "PlainText",
    "InvocationOutcome",
    "as_outcome",
    "outcome_text",
]


@dataclass(slots=True, frozen=True, kw_only=True)
class StructuredResponse:
    """
    Outcome of a function backed by a remote API: the response body plus some
    metadata about it.
    """

    content: str | None
    status_code: int | None = None
    content_type: str | None = None
    type: Literal["structured"] = "structured"


@dataclass(slots=True, frozen=True)
class PlainText:
    """
    Outcome of a local function.
    """

    text: str
    type: Literal["text"] = "text"


type InvocationOutcome = Annotated[
    StructuredResponse | PlainText, pydantic.Discriminator("type")
]


def as_outcome(value: Any) -> InvocationOutcome:
    """
    Lift a function's return value to an InvocationOutcome.
    """
    if isinstance(value, str):
        return PlainText(value)
    if isinstance(value, (StructuredResponse, PlainText)):
        return value
    raise TypeError(
        f"Expected str, StructuredResponse or PlainText, got {type(value).__name__}"
    )


def outcome_text(outcome: InvocationOutcome) -> str:
    """
    Normalize an outcome to the string that goes into the conversation.
    """
    match outcome:
        case StructuredResponse(content=content):
            return content or ""
        case PlainText(text=text):
            return text
