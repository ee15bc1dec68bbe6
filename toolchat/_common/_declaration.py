from typing import Any
import re
import pydantic
from pydantic import BaseModel
from openai.types.chat import ChatCompletionFunctionToolParam
from openai.types.shared_params import FunctionDefinition

__all__ = [
    "QUALIFIED_NAME_SEPARATOR",
    "ParameterDeclaration",
    "FunctionDeclaration",
    "qualified_name",
    "split_qualified_name",
]

QUALIFIED_NAME_SEPARATOR = "-"

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def qualified_name(namespace: str, name: str) -> str:
    """
    Name of a function as the model sees it, e.g. `TimePlugin-Date`.
    """
    if not namespace:
        return name
    return f"{namespace}{QUALIFIED_NAME_SEPARATOR}{name}"


def split_qualified_name(name: str) -> tuple[str, str]:
    """
    Inverse of `qualified_name()`. Names without a separator have no namespace.
    """
    namespace, sep, rest = name.partition(QUALIFIED_NAME_SEPARATOR)
    if not sep:
        return "", name
    return namespace, rest


class ParameterDeclaration(BaseModel):
    """
    One named parameter of a function, as published to the model.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True


class FunctionDeclaration(BaseModel):
    """
    A common data structure describing a registered function, from which we derive
    the function tool definition for the Chat Completions API.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    namespace: str = ""
    name: str
    description: str = ""
    parameters: tuple[ParameterDeclaration, ...] = ()
    json_schema: dict[str, Any] | None = None
    """
    Exact JSON schema for the parameters, when one is known. Otherwise the schema
    is built from `parameters`.
    """
    strict: bool = False

    @pydantic.field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _NAME_PATTERN.match(value):
            raise ValueError(f"Invalid function name {value!r}: use [A-Za-z0-9_]")
        return value

    @pydantic.field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        if value and not _NAME_PATTERN.match(value):
            raise ValueError(f"Invalid namespace {value!r}: use [A-Za-z0-9_]")
        return value

    @property
    def key(self) -> tuple[str, str]:
        return self.namespace, self.name

    @property
    def qualified_name(self) -> str:
        return qualified_name(self.namespace, self.name)

    @classmethod
    def from_json_schema(
        cls,
        namespace: str,
        name: str,
        description: str,
        schema: dict[str, Any],
        strict: bool = False,
    ) -> "FunctionDeclaration":
        """
        Build a declaration whose parameter list is derived from an object schema.
        """
        required = set(schema.get("required", ()))
        parameters = tuple(
            ParameterDeclaration(
                name=param,
                type=_type_tag(prop),
                description=prop.get("description", ""),
                required=param in required,
            )
            for param, prop in schema.get("properties", {}).items()
        )
        return cls(
            namespace=namespace,
            name=name,
            description=description,
            parameters=parameters,
            json_schema=schema,
            strict=strict,
        )

    def parameters_json_schema(self) -> dict[str, Any]:
        if self.json_schema is not None:
            return self.json_schema
        properties: dict[str, Any] = {}
        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type}
            if param.description:
                prop["description"] = param.description
            properties[param.name] = prop
        return {
            "type": "object",
            "properties": properties,
            "required": [p.name for p in self.parameters if p.required],
        }

    def tool_def_for_chat_completions_api(self) -> ChatCompletionFunctionToolParam:
        """
        Tool definition for the `tools` array in the Chat Completions API
        """
        function: FunctionDefinition = {
            "name": self.qualified_name,
            "description": self.description,
            "parameters": self.parameters_json_schema(),
            "strict": self.strict,
        }
        return {"type": "function", "function": function}


def _type_tag(prop: dict[str, Any]) -> str:
    kind = prop.get("type")
    if isinstance(kind, str):
        return kind
    # e.g. Optional fields: {"anyOf": [{"type": "integer"}, {"type": "null"}]}
    for option in prop.get("anyOf", ()):
        if option.get("type") not in (None, "null"):
            return option["type"]
    return "string"
