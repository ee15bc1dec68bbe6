from typing import Annotated, Iterator, Literal, Sequence, overload
from dataclasses import dataclass
import pydantic
from openai.types.chat import ChatCompletionMessageParam

__all__ = [
    "UserMessage",
    "AssistantMessage",
    "FunctionResult",
    "Turn",
    "Conversation",
]


@dataclass(slots=True, frozen=True)
class UserMessage:
    text: str
    kind: Literal["user"] = "user"


@dataclass(slots=True, frozen=True)
class AssistantMessage:
    text: str
    kind: Literal["assistant"] = "assistant"


@dataclass(slots=True, frozen=True)
class FunctionResult:
    """
    Normalized output of a function the model called. Sent back to the model as an
    assistant message, since chat transports generally only know user/assistant.
    """

    text: str
    namespace: str = ""
    name: str = ""
    kind: Literal["function_result"] = "function_result"


type Turn = Annotated[
    UserMessage | AssistantMessage | FunctionResult, pydantic.Discriminator("kind")
]


class Conversation(Sequence[Turn]):
    """
    Append-only, ordered log of turns. The whole log is sent on every request.
    """

    def __init__(self, turns: Sequence[Turn] = (), *, system_prompt: str | None = None):
        self.system_prompt = system_prompt
        self._turns: list[Turn] = list(turns)

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def add_user_message(self, text: str) -> UserMessage:
        turn = UserMessage(text)
        self.append(turn)
        return turn

    def add_assistant_message(self, text: str) -> AssistantMessage:
        turn = AssistantMessage(text)
        self.append(turn)
        return turn

    def add_function_result(
        self, text: str, namespace: str = "", name: str = ""
    ) -> FunctionResult:
        turn = FunctionResult(text, namespace=namespace, name=name)
        self.append(turn)
        return turn

    @overload
    def __getitem__(self, index: int) -> Turn: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Turn]: ...

    def __getitem__(self, index: int | slice) -> Turn | Sequence[Turn]:
        if isinstance(index, slice):
            return tuple(self._turns[index])
        return self._turns[index]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._turns!r})"

    def chat_messages(self) -> list[ChatCompletionMessageParam]:
        """
        The full log as `messages` for the Chat Completions API.
        """
        messages: list[ChatCompletionMessageParam] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        for turn in self._turns:
            match turn:
                case UserMessage(text=text):
                    messages.append({"role": "user", "content": text})
                case AssistantMessage(text=text) | FunctionResult(text=text):
                    messages.append({"role": "assistant", "content": text})
        return messages
