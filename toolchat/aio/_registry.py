from typing import Any, Iterable, NamedTuple, Protocol, Sequence, cast
import logging
from openai.types.chat import ChatCompletionFunctionToolParam
from ._function import BaseFunctionModel
from .._common import (
    FunctionDeclaration,
    FunctionCallRequest,
    AnyFunctionCall,
    InvocationOutcome,
    FunctionNotFoundError,
    InvocationError,
    DuplicateRegistrationError,
    as_outcome,
)

__all__ = ["InvocableFunction", "RegisteredFunction", "FunctionRegistry"]

logger = logging.getLogger(__name__)


class InvocableFunction(Protocol):
    async def __call__(
        self, arguments: dict[str, Any], /
    ) -> InvocationOutcome | str: ...


class RegisteredFunction(NamedTuple):
    unit: InvocableFunction
    declaration: FunctionDeclaration


class FunctionRegistry(dict[tuple[str, str], RegisteredFunction]):
    """
    Functions the model may call, keyed by (namespace, name). Registration order is
    the order declarations are published in.

    Build it once at startup; it's treated as read-only afterwards.
    """

    def __init__(
        self,
        entries: Iterable[RegisteredFunction] = (),
        *,
        strict: bool = False,
    ):
        super().__init__()
        self.strict = strict
        self.import_plugin(entries)

    @classmethod
    def from_list(
        cls, functions: Sequence[type[BaseFunctionModel]], *, strict: bool = False
    ) -> "FunctionRegistry":
        """
        Create from a list of function classes, each under its own namespace.
        """
        registry = cls(strict=strict)
        for function in functions:
            registry.add_function(function)
        if len(registry) != len(functions):
            raise ValueError(
                f"Cannot create {cls.__name__}: duplicate function names in {functions}"
            )
        return registry

    def register(
        self,
        namespace: str,
        unit: InvocableFunction,
        declaration: FunctionDeclaration,
    ) -> None:
        """
        Add a function, or replace the one with the same key (keeping its position).
        """
        if declaration.namespace != namespace:
            raise ValueError(
                f"Declaration namespace {declaration.namespace!r} doesn't match "
                f"{namespace!r}"
            )
        key = declaration.key
        if self.strict and key in self:
            raise DuplicateRegistrationError(
                f"Function {declaration.qualified_name} is already registered."
            )
        self[key] = RegisteredFunction(unit, declaration)
        logger.debug("Registered function %s", declaration.qualified_name)

    def add_function(self, function: type[BaseFunctionModel]):
        """
        Register a function class under its `model_function_namespace`.
        Can either be used alone, or as a decorator over a function class.
        """
        declaration = function.model_function_declaration()
        namespace, unit = declaration.namespace, function.model_function_invoke
        self.register(namespace, unit, declaration)
        # Drop the return type, so decorated classes keep their own type.
        return cast(..., function)  # pyright: ignore[reportInvalidTypeForm]

    def import_functions(
        self, namespace: str, functions: Iterable[type[BaseFunctionModel]]
    ) -> None:
        """
        Register a local plugin: several function classes under one namespace.
        """
        for function in functions:
            declaration = function.model_function_declaration(namespace)
            self.register(namespace, function.model_function_invoke, declaration)

    def import_plugin(self, entries: Iterable[RegisteredFunction]) -> None:
        """
        Register prebuilt entries, e.g. from a remote plugin loader.
        """
        for unit, declaration in entries:
            self.register(declaration.namespace, unit, declaration)

    def list_declarations(self) -> list[FunctionDeclaration]:
        return [entry.declaration for entry in self.values()]

    def tool_definitions(self) -> list[ChatCompletionFunctionToolParam]:
        """
        Tool definitions for the `tools` array parameter in the Chat Completions API.
        """
        return [d.tool_def_for_chat_completions_api() for d in self.list_declarations()]

    def resolve(self, namespace: str, name: str) -> InvocableFunction | None:
        """
        Look up a function. Never raises: unknown keys give None.
        """
        entry = self.get((namespace, name))
        return entry.unit if entry is not None else None

    async def invoke(
        self, unit: InvocableFunction, arguments: dict[str, Any]
    ) -> InvocationOutcome:
        """
        Run a resolved function. Failures of any kind surface as InvocationError.
        """
        try:
            result = await unit(arguments)
        except InvocationError:
            raise
        except Exception as e:
            logger.exception("Function %r raised an unexpected error", unit)
            raise InvocationError(f"{type(e).__name__}: {e}") from e
        try:
            return as_outcome(result)
        except TypeError as e:
            raise InvocationError(str(e)) from e

    async def run_function_call(self, call: AnyFunctionCall) -> InvocationOutcome:
        """
        Parse, resolve, and invoke a function call from the model.
        """
        call = FunctionCallRequest.from_any_call(call)
        unit = self.resolve(call.namespace, call.name)
        if unit is None:
            raise FunctionNotFoundError(call.namespace, call.name)
        try:
            return await self.invoke(unit, call.parsed_arguments())
        except InvocationError as e:
            e.namespace, e.name = call.namespace, call.name
            raise

    def __contains__(  # pyright: ignore[reportIncompatibleMethodOverride]
        self, item: object
    ) -> bool:
        if isinstance(item, type) and issubclass(item, BaseFunctionModel):
            item = item.model_function_declaration().key
        return super().__contains__(item)
