from typing import Any, Literal
import asyncio
import pytest
from toolchat.aio import (
    BaseFunctionModel,
    FunctionCallRequest,
    FunctionDeclaration,
    FunctionNotFoundError,
    FunctionRegistry,
    DuplicateRegistrationError,
    InvocationError,
    MalformedArgumentsError,
    PlainText,
    RegisteredFunction,
    StructuredResponse,
)


class GetWeather(BaseFunctionModel):
    """Get the weather somewhere."""

    model_function_namespace = "Weather"
    model_function_custom_name = "get_weather"

    city: str
    """City to get the weather for."""

    state: Literal["California", "New York", "Texas"] = "California"
    """State where the city is. Only a few are available."""

    async def model_function_handler(self) -> str:
        return f"It's currently 30 degrees in {self.city}, {self.state}."


class StockPrice(BaseFunctionModel):
    model_function_namespace = "Finance"
    model_function_custom_description = "Get the stock price for a company."
    model_function_custom_json_schema = {
        "type": "object",
        "properties": {
            "ticker": {"type": "string", "description": "Ticker symbol."},
            "exchange": {"type": "string", "enum": ["NASDAQ", "NYSE"]},
        },
        "required": ["ticker"],
    }

    ticker: str
    exchange: Literal["NASDAQ", "NYSE"] = "NASDAQ"

    async def model_function_handler(self):
        return PlainText(f"{self.ticker} is currently trading at $100.")


class NotImplementedFunction(BaseFunctionModel):
    model_function_namespace = "Broken"


class BadReturn(BaseFunctionModel):
    model_function_namespace = "Broken"

    async def model_function_handler(self):
        return 42  # type: ignore


async def echo(arguments: dict[str, Any]) -> StructuredResponse:
    return StructuredResponse(content=repr(arguments), status_code=200)


def echo_entry(namespace: str = "Remote", name: str = "echo") -> RegisteredFunction:
    declaration = FunctionDeclaration(namespace=namespace, name=name)
    return RegisteredFunction(echo, declaration)


def test_config():
    class RegularFunction(BaseFunctionModel):
        """A docstring"""

        pass

    assert RegularFunction.model_function_name() == "RegularFunction"
    schema = RegularFunction.model_function_json_schema()
    assert schema["properties"] == {}
    declaration = RegularFunction.model_function_declaration()
    assert declaration.description == "A docstring"
    assert declaration.namespace == ""
    assert declaration.qualified_name == "RegularFunction"

    class BaseFunction(BaseFunctionModel):
        model_function_name_generator = lambda name: name.upper()

    assert BaseFunction.model_function_name() == "BASEFUNCTION"

    class Function(BaseFunction):
        """A docstring"""

        model_function_custom_name = "custom_function_name"
        model_function_custom_description = "custom description"
        model_function_custom_json_schema = {"type": "object", "properties": {}}

    assert Function.model_function_name() == "custom_function_name"
    declaration = Function.model_function_declaration("Plugin")
    assert declaration.description == "custom description"
    assert declaration.qualified_name == "Plugin-custom_function_name"


def test_declarations_follow_registration_order():
    registry = FunctionRegistry.from_list([GetWeather, StockPrice])
    registry.import_plugin([echo_entry()])

    names = [d.qualified_name for d in registry.list_declarations()]
    assert names == ["Weather-get_weather", "Finance-StockPrice", "Remote-echo"]

    weather = registry.list_declarations()[0]
    assert weather.description == "Get the weather somewhere."
    assert [(p.name, p.type, p.required) for p in weather.parameters] == [
        ("city", "string", True),
        ("state", "string", False),
    ]
    assert weather.parameters[0].description == "City to get the weather for."

    stock = registry.list_declarations()[1]
    assert stock.description == "Get the stock price for a company."
    schema = StockPrice.model_function_custom_json_schema
    assert stock.parameters_json_schema() == schema


def test_tool_definitions():
    registry = FunctionRegistry.from_list([GetWeather])
    registry.import_plugin([echo_entry()])
    weather, remote = registry.tool_definitions()

    assert weather["type"] == "function"
    assert weather["function"]["name"] == "Weather-get_weather"
    assert weather["function"]["parameters"]["required"] == ["city"]
    assert remote["function"]["parameters"] == {
        "type": "object",
        "properties": {},
        "required": [],
    }


def test_resolve():
    registry = FunctionRegistry.from_list([GetWeather])

    first = registry.resolve("Weather", "get_weather")
    assert first is not None
    assert registry.resolve("Weather", "get_weather") is first
    assert registry.resolve("Weather", "GetWeather") is None
    assert registry.resolve("Nope", "get_weather") is None
    assert GetWeather in registry
    assert ("Weather", "get_weather") in registry
    assert StockPrice not in registry


def test_register_replaces_unless_strict():
    registry = FunctionRegistry([echo_entry(name="a"), echo_entry(name="b")])
    replacement = echo_entry(name="a")
    registry.register("Remote", replacement.unit, replacement.declaration)
    assert [d.name for d in registry.list_declarations()] == ["a", "b"]

    strict = FunctionRegistry([echo_entry()], strict=True)
    with pytest.raises(DuplicateRegistrationError):
        strict.import_plugin([echo_entry()])

    with pytest.raises(ValueError):
        declaration = FunctionDeclaration(namespace="Remote", name="c")
        registry.register("Other", echo, declaration)

    with pytest.raises(ValueError):
        FunctionRegistry.from_list([GetWeather, GetWeather])


def test_add_function_decorator():
    registry = FunctionRegistry()

    @registry.add_function
    class Ping(BaseFunctionModel):
        """Ping."""

        model_function_namespace = "Net"

        async def model_function_handler(self) -> str:
            return "pong"

    assert Ping.model_function_name() == "Ping"
    assert Ping in registry

    async def main():
        outcome = await registry.run_function_call(
            FunctionCallRequest(namespace="Net", name="Ping")
        )
        assert outcome == PlainText("pong")

    asyncio.run(main())


def test_import_functions_under_namespace():
    registry = FunctionRegistry()
    registry.import_functions("Tools", [GetWeather, StockPrice])
    assert list(registry) == [("Tools", "get_weather"), ("Tools", "StockPrice")]


def test_run_function_call():
    async def main():
        registry = FunctionRegistry.from_list(
            [GetWeather, StockPrice, NotImplementedFunction, BadReturn]
        )
        registry.import_plugin([echo_entry()])

        def make_call(name: str, arguments: str = "{}") -> FunctionCallRequest:
            return FunctionCallRequest.from_qualified_name(name, arguments)

        outcome = await registry.run_function_call(
            make_call("Weather-get_weather", '{"city": "Austin", "state": "Texas"}')
        )
        assert outcome == PlainText("It's currently 30 degrees in Austin, Texas.")

        outcome = await registry.run_function_call(
            make_call("Finance-StockPrice", '{"ticker": "AAPL"}')
        )
        assert outcome == PlainText("AAPL is currently trading at $100.")

        call = make_call("Remote-echo", '{"a": 1}')
        outcome = await registry.run_function_call(call)
        assert outcome == StructuredResponse(content="{'a': 1}", status_code=200)

        with pytest.raises(FunctionNotFoundError):
            await registry.run_function_call(make_call("Weather-INVALID"))
        with pytest.raises(MalformedArgumentsError):
            await registry.run_function_call(
                make_call("Weather-get_weather", '{"city": "Austin", "state": "Ohio"}')
            )
        with pytest.raises(InvocationError) as info:
            await registry.run_function_call(make_call("Broken-NotImplementedFunction"))
        assert isinstance(info.value.__cause__, NotImplementedError)
        assert info.value.name == "NotImplementedFunction"
        with pytest.raises(InvocationError):
            await registry.run_function_call(make_call("Broken-BadReturn"))

    asyncio.run(main())


def test_invoke_plain_string_unit():
    async def shout(arguments: dict[str, Any]) -> str:
        return str(arguments["text"]).upper()

    async def main():
        registry = FunctionRegistry()
        outcome = await registry.invoke(shout, {"text": "hi"})
        assert outcome == PlainText("HI")
        with pytest.raises(InvocationError) as info:
            await registry.invoke(shout, {})
        assert isinstance(info.value.__cause__, KeyError)

    asyncio.run(main())
