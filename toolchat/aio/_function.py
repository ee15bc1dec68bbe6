from typing import Any, Callable, ClassVar
from textwrap import dedent
import pydantic
from .._common import (
    FunctionDeclaration,
    InvocationOutcome,
    InvocationError,
    MalformedArgumentsError,
    as_outcome,
)

__all__ = ["BaseFunctionModel"]


class BaseFunctionModel(pydantic.BaseModel):
    """
    Pydantic BaseModel for defining a local function the model can call.
    The model fields are the function's parameters; a call is handled by validating
    the arguments into an instance and running its `model_function_handler()`.
    """

    model_config = pydantic.ConfigDict(use_attribute_docstrings=True)

    # Things for subclasses to customize/override
    # ----------------------------------------------------------------------------------

    model_function_namespace: ClassVar[str] = ""
    """
    Class config: Namespace (plugin name) used when registered with `add_function()`.
    """

    model_function_strict: ClassVar[bool] = False
    """
    Class config: Whether to enable `strict` mode in the function definition.
    """

    model_function_custom_name: ClassVar[str | None] = None
    """
    Class config: Use a custom name, instead of the class name, for the function
    definition. This takes precedence over the name generator, if one is set.
    """

    model_function_name_generator: ClassVar[Callable[[str], str] | None] = None
    """
    Class config: Function to generate a function name from the class name.
    """

    model_function_custom_description: ClassVar[str | None] = None
    """
    Class config: Custom description to use instead of the class docstring.
    """

    model_function_custom_json_schema: ClassVar[dict[str, Any] | None] = None
    """
    Class config: Use a custom JSON schema instead of letting Pydantic generate one.
    """

    async def model_function_handler(self) -> InvocationOutcome | str:
        """
        Subclasses should override this with the handling logic for the function.
        """
        raise NotImplementedError(f"{type(self).__name__}.model_function_handler()")

    @classmethod
    def model_function_json_schema(cls) -> dict[str, Any]:
        """
        Get the JSON schema to be used in the function definition.
        """
        return cls.model_function_custom_json_schema or cls.model_json_schema()

    # Things to be used, not overridden
    # ----------------------------------------------------------------------------------

    @classmethod
    def model_function_name(cls) -> str:
        """
        Name of the function.
        Order of priority: Custom name, name generator, class name.
        """
        custom = cls.model_function_custom_name
        generate = cls.model_function_name_generator
        return custom or (generate and generate(cls.__name__)) or cls.__name__

    @classmethod
    def model_function_declaration(
        cls, namespace: str | None = None
    ) -> FunctionDeclaration:
        """
        Declaration of this function, under `namespace` or the class's own namespace.
        """
        schema = dict(cls.model_function_json_schema())

        schema.pop("title", None)  # Because we have function name.
        description = schema.pop("description", "")  # Because we pass it separately.
        description = cls.model_function_custom_description or description
        description = dedent(description).strip()

        if namespace is None:
            namespace = cls.model_function_namespace
        return FunctionDeclaration.from_json_schema(
            namespace,
            cls.model_function_name(),
            description,
            schema,
            strict=cls.model_function_strict,
        )

    @classmethod
    async def model_function_invoke(
        cls, arguments: dict[str, Any]
    ) -> InvocationOutcome:
        """
        Validate arguments into an instance of this class, and run its handler.
        """
        try:
            self = cls.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise MalformedArgumentsError(
                str(e),
                namespace=cls.model_function_namespace,
                name=cls.model_function_name(),
            ) from e

        result = await self.model_function_handler()
        try:
            return as_outcome(result)
        except TypeError as e:
            raise InvocationError(
                f"{cls.__name__} handler returned an unsupported value: {e}",
                namespace=cls.model_function_namespace,
                name=cls.model_function_name(),
            ) from e
