from __future__ import annotations

import asyncio
import json

import pytest
from pydantic import BaseModel

from fakes import run_async

from promptstream import (
    AssembledToolCall,
    InvalidToolArgumentsError,
    ToolAlreadyRegisteredError,
    ToolExecutionError,
    ToolRegistry,
    ToolTimeoutError,
    UnknownToolError,
    tool,
)


class WeatherArgs(BaseModel):
    city: str


class SleepArgs(BaseModel):
    seconds: float


def weather_registry(calls: list[str] | None = None) -> ToolRegistry:
    registry = ToolRegistry()

    def get_weather(args: WeatherArgs) -> dict:
        if calls is not None:
            calls.append(args.city)
        return {"city": args.city, "temp_c": 18}

    registry.register_function(
        "get_weather", WeatherArgs, get_weather, description="Current weather for a city."
    )
    return registry


def call(arguments: str, *, name: str = "get_weather", call_id: str = "call_1") -> AssembledToolCall:
    return AssembledToolCall(call_id=call_id, tool_name=name, arguments=arguments)


def test_dispatch_runs_handler_and_builds_tool_result():
    registry = weather_registry()

    message = run_async(registry.try_dispatch(call('{"city":"Paris"}')))

    assert message.role == "tool"
    assert message.call_id == "call_1"
    assert message.name == "get_weather"
    assert json.loads(message.content) == {"city": "Paris", "temp_c": 18}
    assert message.is_error is False


def test_schema_mismatch_never_invokes_handler():
    calls: list[str] = []
    registry = weather_registry(calls)

    with pytest.raises(InvalidToolArgumentsError) as info:
        run_async(registry.try_dispatch(call('{"city":42}')))

    assert calls == []
    assert info.value.call_id == "call_1"
    assert info.value.tool_name == "get_weather"
    assert info.value.raw_arguments == '{"city":42}'


def test_malformed_json_is_invalid_arguments():
    calls: list[str] = []
    registry = weather_registry(calls)

    with pytest.raises(InvalidToolArgumentsError, match="not valid JSON"):
        run_async(registry.try_dispatch(call('{"city": "Par')))

    assert calls == []


def test_non_object_arguments_are_rejected():
    with pytest.raises(InvalidToolArgumentsError, match="JSON object"):
        weather_registry().validate(call('["Paris"]'))


def test_unknown_tool():
    registry = weather_registry()

    with pytest.raises(UnknownToolError) as info:
        run_async(registry.try_dispatch(call("{}", name="unregistered_tool", call_id="c9")))

    assert info.value.tool_name == "unregistered_tool"
    assert info.value.call_id == "c9"


def test_empty_arguments_validate_as_empty_object():
    class NoArgs(BaseModel):
        pass

    registry = ToolRegistry()
    registry.register_function("ping", NoArgs, lambda args: "pong")

    message = run_async(registry.try_dispatch(call("", name="ping")))

    assert message.content == "pong"


def test_duplicate_registration_rejected_unless_overwrite():
    registry = weather_registry()

    with pytest.raises(ToolAlreadyRegisteredError):
        registry.register_function("get_weather", WeatherArgs, lambda args: "x")

    registry.register_function("get_weather", WeatherArgs, lambda args: "sunny", overwrite=True)
    assert run_async(registry.try_dispatch(call('{"city":"Rome"}'))).content == "sunny"


def test_registry_lookup_and_unregister():
    registry = weather_registry()

    assert registry.has("get_weather")
    assert registry.names() == ["get_weather"]
    assert registry.get("get_weather").name == "get_weather"

    registry.unregister("get_weather")

    assert not registry.has("get_weather")
    with pytest.raises(UnknownToolError):
        registry.get("get_weather")


def test_specs_describe_registered_tools():
    [spec] = weather_registry().specs()

    assert spec.name == "get_weather"
    assert spec.description == "Current weather for a city."
    assert spec.parameters_schema["required"] == ["city"]


def test_async_handlers_and_decorator():
    @tool(args_model=WeatherArgs)
    async def forecast(args: WeatherArgs) -> WeatherArgs:
        """Tomorrow's forecast."""
        await asyncio.sleep(0)
        return args

    registry = ToolRegistry()
    registry.register(forecast)

    message = run_async(registry.try_dispatch(call('{"city":"Oslo"}', name="forecast")))

    assert forecast.spec.description == "Tomorrow's forecast."
    assert json.loads(message.content) == {"city": "Oslo"}


def test_handler_failure_is_execution_error():
    registry = ToolRegistry()

    def explode(args: WeatherArgs) -> str:
        raise RuntimeError("backend unavailable")

    registry.register_function("get_weather", WeatherArgs, explode)

    with pytest.raises(ToolExecutionError, match="backend unavailable") as info:
        run_async(registry.try_dispatch(call('{"city":"Paris"}')))

    assert info.value.call_id == "call_1"
    [record] = registry.recent_calls()
    assert record.ok is False


def test_timeout_precedence():
    async def slow(args: SleepArgs) -> str:
        await asyncio.sleep(args.seconds)
        return "done"

    registry = ToolRegistry(default_timeout=5)
    registry.register_function("slow", SleepArgs, slow, timeout=0.01)

    async def scenario():
        with pytest.raises(ToolTimeoutError):
            await registry.try_dispatch(call('{"seconds": 1}', name="slow"))
        return await registry.try_dispatch(
            call('{"seconds": 0.05}', name="slow", call_id="c2"), timeout=2
        )

    message = run_async(scenario())
    assert message.content == "done"
    assert [r.error for r in registry.recent_calls()] == ["timeout", None]


def test_handler_timeout_error_is_execution_error_not_deadline():
    async def upstream(args: WeatherArgs) -> str:
        raise TimeoutError("upstream weather service timed out")

    with_deadline = ToolRegistry()
    with_deadline.register_function("get_weather", WeatherArgs, upstream, timeout=5)
    without_deadline = ToolRegistry()
    without_deadline.register_function("get_weather", WeatherArgs, upstream)

    async def scenario(registry: ToolRegistry):
        with pytest.raises(ToolExecutionError) as info:
            await registry.try_dispatch(call('{"city":"Paris"}'))
        return info.value

    for registry in (with_deadline, without_deadline):
        error = run_async(scenario(registry))
        assert type(error) is ToolExecutionError
        assert "upstream weather service timed out" in str(error)
        [record] = registry.recent_calls()
        assert record.error != "timeout"


def test_error_message_reports_failure_to_model():
    registry = weather_registry()
    bad = call('{"city":42}')

    with pytest.raises(InvalidToolArgumentsError) as info:
        registry.validate(bad)
    message = registry.error_message(bad, info.value)

    assert message.role == "tool"
    assert message.call_id == "call_1"
    assert message.is_error is True
    assert "get_weather" in message.content


def test_dispatch_many_keeps_call_order():
    async def delayed(args: SleepArgs) -> str:
        await asyncio.sleep(args.seconds)
        return str(args.seconds)

    registry = ToolRegistry(max_concurrency=2)
    registry.register_function("delayed", SleepArgs, delayed)
    calls = [
        call('{"seconds": 0.03}', name="delayed", call_id="a"),
        call('{"seconds": 0.0}', name="delayed", call_id="b"),
        call('{"seconds": 0.01}', name="delayed", call_id="c"),
    ]

    messages = run_async(registry.dispatch_many(calls))

    assert [m.call_id for m in messages] == ["a", "b", "c"]
    assert [m.content for m in messages] == ["0.03", "0.0", "0.01"]


def test_dispatch_many_can_return_errors():
    registry = weather_registry()
    calls = [call('{"city":"Paris"}', call_id="a"), call("{}", name="nope", call_id="b")]

    results = run_async(registry.dispatch_many(calls, return_exceptions=True))

    assert results[0].call_id == "a"
    assert isinstance(results[1], UnknownToolError)


def test_invalid_max_concurrency():
    with pytest.raises(ValueError):
        ToolRegistry(max_concurrency=0)
