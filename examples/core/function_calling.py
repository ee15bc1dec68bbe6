# File generated from its async equivalent, examples/aio/function_calling.py
import httpx
from toolchat.config import ToolChatSettings, configure_logging, get_settings
from toolchat.core import (
    TIME_PLUGIN,
    FunctionCallingLoop,
    FunctionRegistry,
    MalformedArgumentsError,
    OpenAIChatTransport,
    OpenAPIPluginLoader,
    RoundResult,
)

DATE_PROMPT = "What day is today?"
SHOPPING_PROMPT = "What computer tablets are available for under $200?"


def main():
    settings = get_settings()
    configure_logging(settings.log_level)

    with httpx.Client(timeout=settings.request_timeout) as http_client:
        registry = build_registry(settings, http_client)
        transport = OpenAIChatTransport.from_settings(settings)
        loop = FunctionCallingLoop(transport, registry)

        # First force a specific function by its qualified name, then let the
        # model choose.
        for prompt, function_call in [
            (DATE_PROMPT, "TimePlugin-Date"),
            (SHOPPING_PROMPT, "auto"),
        ]:
            print(f"User message: {prompt}")
            result = loop.run_round(prompt, function_call=function_call)
            if result.text:
                print(result.text)
            print_function_call(result)

            print(f"User message: {prompt}")
            result = loop.run_streaming_round(
                prompt, function_call=function_call, on_text=print_delta
            )
            print()
            print_function_call(result)


def build_registry(
    settings: ToolChatSettings, http_client: httpx.Client
) -> FunctionRegistry:
    registry = FunctionRegistry()
    registry.import_functions("TimePlugin", TIME_PLUGIN)

    loader = OpenAPIPluginLoader(http_client)
    shopping = loader.load("KlarnaShoppingPlugin", settings.shopping_plugin_url)
    registry.import_plugin(shopping)
    return registry


def print_delta(text: str) -> None:
    print(text, end="", flush=True)


def print_function_call(result: RoundResult) -> None:
    if (call := result.function_call) is None:
        return
    print(f"Function name: {call.name}")
    print(f"Plugin name: {call.namespace}")
    print("Arguments: ")
    try:
        for key, value in call.parsed_arguments().items():
            print(f"- {key}: {value}")
    except MalformedArgumentsError:
        print(f"- {call.arguments}")

    if result.error is not None:
        print(f"Error: {result.error}")
    elif result.function_result:
        print(result.function_result)


if __name__ == "__main__":
    main()
