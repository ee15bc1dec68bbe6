from typing import Any, Self
from dataclasses import dataclass
import json
from openai.types.chat import ChatCompletionMessageFunctionToolCall
from ._declaration import qualified_name, split_qualified_name
from ._errors import MalformedArgumentsError

__all__ = ["FunctionCallRequest", "AnyFunctionCall"]

type AnyFunctionCall = FunctionCallRequest | ChatCompletionMessageFunctionToolCall


@dataclass(slots=True, frozen=True, kw_only=True)
class FunctionCallRequest:
    """
    A function call the model asked for. `arguments` is the raw JSON text the model
    produced, so it must be treated as untrusted.
    """

    id: str = ""
    namespace: str
    name: str
    arguments: str = "{}"

    @property
    def key(self) -> tuple[str, str]:
        return self.namespace, self.name

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.namespace, self.name)

    def parsed_arguments(self) -> dict[str, Any]:
        """
        Decode the arguments into a mapping of parameter name to value.
        """
        try:
            arguments = json.loads(self.arguments or "{}")
        except json.JSONDecodeError as e:
            raise MalformedArgumentsError(
                f"Arguments for {self.qualified_name} are not valid JSON: {e}",
                namespace=self.namespace,
                name=self.name,
            ) from e
        if not isinstance(arguments, dict):
            raise MalformedArgumentsError(
                f"Arguments for {self.qualified_name} must be a JSON object, "
                f"got {type(arguments).__name__}.",
                namespace=self.namespace,
                name=self.name,
            )
        return arguments

    @classmethod
    def from_qualified_name(cls, name: str, arguments: str, id: str = "") -> Self:
        namespace, name = split_qualified_name(name)
        return cls(id=id, namespace=namespace, name=name, arguments=arguments)

    @classmethod
    def from_any_call(cls, call: AnyFunctionCall) -> Self:
        if isinstance(call, ChatCompletionMessageFunctionToolCall):
            func = call.function
            return cls.from_qualified_name(func.name, func.arguments, id=call.id)
        if isinstance(call, FunctionCallRequest):
            return call  # pyright: ignore[reportReturnType]
        raise TypeError(f"Unsupported function call type: {type(call)}")
