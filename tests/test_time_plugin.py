from datetime import datetime, timedelta, timezone
import asyncio
import pytest
from toolchat.aio import (
    FunctionCallRequest,
    FunctionRegistry,
    InvocationError,
    MalformedArgumentsError,
    TIME_PLUGIN,
    time_plugin,
)

NOW = datetime(2031, 1, 12, 21, 15, 7, tzinfo=timezone(timedelta(hours=3), "EAT"))


@pytest.fixture
def registry(monkeypatch: pytest.MonkeyPatch) -> FunctionRegistry:
    monkeypatch.setattr(time_plugin, "local_now", lambda: NOW)
    return FunctionRegistry.from_list(TIME_PLUGIN)


def run(registry: FunctionRegistry, name: str, arguments: str = "{}") -> str:
    call = FunctionCallRequest(namespace="TimePlugin", name=name, arguments=arguments)
    outcome = asyncio.run(registry.run_function_call(call))
    return outcome.text  # type: ignore


def test_declarations():
    registry = FunctionRegistry.from_list(TIME_PLUGIN)
    declarations = registry.list_declarations()
    assert len(declarations) == 18
    assert declarations[0].qualified_name == "TimePlugin-Date"
    assert all(d.namespace == "TimePlugin" for d in declarations)

    days_ago = registry.resolve("TimePlugin", "DaysAgo")
    assert days_ago is not None
    [param] = registry[("TimePlugin", "DaysAgo")].declaration.parameters
    assert (param.name, param.type, param.required) == ("input", "integer", True)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Date", "Sunday, 12 January, 2031"),
        ("Today", "Sunday, 12 January, 2031"),
        ("Now", "Sunday, January 12, 2031 09:15 PM"),
        ("UtcNow", "Sunday, January 12, 2031 06:15 PM"),
        ("Time", "09:15 PM"),
        ("Year", "2031"),
        ("Month", "January"),
        ("MonthNumber", "01"),
        ("Day", "12"),
        ("DayOfWeek", "Sunday"),
        ("Hour", "9 PM"),
        ("HourNumber", "21"),
        ("Minute", "15"),
        ("Second", "07"),
        ("TimeZoneOffset", "+03:00"),
        ("TimeZoneName", "EAT"),
    ],
)
def test_functions_without_arguments(
    registry: FunctionRegistry, name: str, expected: str
):
    assert run(registry, name) == expected


def test_days_ago(registry: FunctionRegistry):
    assert run(registry, "DaysAgo", '{"input": 1}') == "Saturday, 11 January, 2031"
    assert run(registry, "DaysAgo", '{"input": 0}') == "Sunday, 12 January, 2031"
    assert run(registry, "DaysAgo", '{"input": "3"}') == "Thursday, 09 January, 2031"

    with pytest.raises(MalformedArgumentsError):
        run(registry, "DaysAgo", '{"input": "soon"}')
    with pytest.raises(MalformedArgumentsError):
        run(registry, "DaysAgo")
    with pytest.raises(InvocationError):
        run(registry, "DaysAgo", '{"input": 99999999}')


def test_date_matching_last_day_name(registry: FunctionRegistry):
    args = '{"input": "Friday"}'
    assert run(registry, "DateMatchingLastDayName", args) == "Friday, 10 January, 2031"
    # Today never matches itself.
    args = '{"input": "Sunday"}'
    assert run(registry, "DateMatchingLastDayName", args) == "Sunday, 05 January, 2031"

    with pytest.raises(MalformedArgumentsError):
        run(registry, "DateMatchingLastDayName", '{"input": "Funday"}')
