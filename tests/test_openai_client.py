from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from anygpt.config import ClientConfig
from anygpt.llm.errors import (
    ApiError,
    ErrorKind,
    InvalidEndpoint,
    NetworkError,
    NoData,
    RateLimited,
    RequestCancelled,
    Timeout,
)
from tests.utils import ScriptedHandler, completion_payload, fail, reply

INVALID_KEY_ERROR = {
    "error": {
        "message": "Invalid API key provided",
        "type": "invalid_request_error",
        "code": "invalid_api_key",
    }
}


@pytest.mark.asyncio
async def test_success_returns_first_choice_content(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload("Rewritten text")))
    client, delays = make_client(handler)

    result = await client.generate("Hello", "sk-test", model="gpt-4o-mini", system_prompt="You are helpful.")

    assert result.text == "Rewritten text"
    assert result.degraded is False
    assert result.truncated is False
    assert result.attempts == 1
    assert result.usage is not None and result.usage.total_tokens == 18
    assert result.model == "gpt-4o-mini"
    assert delays == []


@pytest.mark.asyncio
async def test_request_wire_format(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)

    await client.generate(
        "Hello",
        "sk-test",
        model="gpt-4o",
        system_prompt="You are helpful.",
        config=ClientConfig(temperature=0, max_output_tokens=0),
    )

    request = handler.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert request.headers["Content-Type"] == "application/json"
    assert handler.bodies[0] == {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": "Hello"},
        ],
        "temperature": 0.7,
        "max_tokens": 500,
    }


@pytest.mark.asyncio
async def test_configured_sampling_values_are_sent(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)

    await client.generate("Hi", "sk", config=ClientConfig(temperature=1.3, max_output_tokens=64))

    assert handler.bodies[0]["temperature"] == 1.3
    assert handler.bodies[0]["max_tokens"] == 64


@pytest.mark.asyncio
async def test_long_input_is_truncated_and_flagged(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)
    config = ClientConfig(max_input_length=4000)

    result = await client.generate("a" * 10000, "sk", config=config)

    user_message = handler.bodies[0]["messages"][1]
    assert user_message["role"] == "user"
    assert len(user_message["content"]) == 4000
    assert result.truncated is True


@pytest.mark.asyncio
async def test_input_at_limit_is_unchanged(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)
    text = "b" * 100

    result = await client.generate(text, "sk", config=ClientConfig(max_input_length=100))

    assert handler.bodies[0]["messages"][1]["content"] == text
    assert result.truncated is False


@pytest.mark.asyncio
async def test_empty_input_and_credential_are_sent_as_is(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)

    await client.generate("", "")

    assert handler.bodies[0]["messages"][1]["content"] == ""
    assert handler.requests[0].headers["Authorization"].rstrip() == "Bearer"


@pytest.mark.asyncio
async def test_rate_limited_exhausts_retries_with_backoff(make_client) -> None:
    handler = ScriptedHandler(reply(429, {"error": {"message": "slow down"}}))
    client, delays = make_client(handler)
    config = ClientConfig(max_retries=2, base_retry_delay_seconds=0.5)

    with pytest.raises(RateLimited) as excinfo:
        await client.generate("Hello", "sk", config=config)

    assert excinfo.value.kind is ErrorKind.RATE_LIMITED
    assert len(handler.requests) == config.max_retries + 1
    assert delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_backoff_follows_configured_base(make_client) -> None:
    handler = ScriptedHandler(reply(429))
    client, delays = make_client(handler)

    with pytest.raises(RateLimited):
        await client.generate("Hello", "sk", config=ClientConfig(max_retries=4, base_retry_delay_seconds=0.25))

    assert len(handler.requests) == 5
    assert delays == [0.25, 0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_client_error_fails_immediately_with_server_message(make_client) -> None:
    handler = ScriptedHandler(reply(400, {"error": {"message": "Unsupported parameter: 'max_tokens'"}}))
    client, delays = make_client(handler)

    with pytest.raises(ApiError) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.api_message == "Unsupported parameter: 'max_tokens'"
    assert excinfo.value.status_code == 400
    assert len(handler.requests) == 1
    assert delays == []


@pytest.mark.asyncio
async def test_unauthorized_uses_generic_api_error(make_client) -> None:
    handler = ScriptedHandler(reply(401, INVALID_KEY_ERROR))
    client, _ = make_client(handler)

    with pytest.raises(ApiError) as excinfo:
        await client.generate("Hello", "sk-bad")

    assert excinfo.value.message == "API Error: Invalid API key provided"
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_client_error_without_json_uses_raw_body(make_client) -> None:
    handler = ScriptedHandler(reply(404, content=b"no such route"))
    client, _ = make_client(handler)

    with pytest.raises(ApiError) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.api_message == "no such route"


@pytest.mark.asyncio
async def test_error_despite_success_status(make_client) -> None:
    handler = ScriptedHandler(reply(200, INVALID_KEY_ERROR))
    client, _ = make_client(handler)

    with pytest.raises(ApiError) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.api_message == "Invalid API key provided"
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_empty_choices_return_raw_body(make_client) -> None:
    body = b'{"choices":[]}'
    handler = ScriptedHandler(reply(200, content=body))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == '{"choices":[]}'
    assert result.degraded is True


@pytest.mark.asyncio
async def test_partial_body_without_choices_returns_raw_body(make_client) -> None:
    body = json.dumps({"id": "test", "object": "chat.completion"}).encode()
    handler = ScriptedHandler(reply(200, content=body))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == body.decode()
    assert result.degraded is True


@pytest.mark.asyncio
async def test_non_json_success_body_is_returned_raw(make_client) -> None:
    handler = ScriptedHandler(reply(200, content=b"This is not valid JSON"))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == "This is not valid JSON"
    assert result.degraded is True


@pytest.mark.asyncio
async def test_unexpected_shape_is_returned_raw(make_client) -> None:
    body = json.dumps({"choices": [{"index": 0, "message": {"role": "assistant", "content": ["a", "b"]}}]}).encode()
    handler = ScriptedHandler(reply(200, content=body))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.degraded is True
    assert result.text == body.decode()


@pytest.mark.asyncio
async def test_empty_string_content_is_returned(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload("")))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == ""
    assert result.degraded is False


@pytest.mark.asyncio
async def test_unknown_fields_are_ignored(make_client) -> None:
    payload = completion_payload("ok", system_fingerprint="fp_123", service_tier="default")
    payload["choices"][0]["logprobs"] = None
    handler = ScriptedHandler(reply(200, payload))
    client, _ = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == "ok"
    assert result.degraded is False


@pytest.mark.asyncio
async def test_empty_success_body_is_no_data(make_client) -> None:
    handler = ScriptedHandler(reply(200, content=b""))
    client, _ = make_client(handler)

    with pytest.raises(NoData):
        await client.generate("Hello", "sk")


@pytest.mark.asyncio
async def test_undecodable_success_body_is_no_data(make_client) -> None:
    handler = ScriptedHandler(reply(200, content=b"\xff\xfe\xfa\x00"))
    client, _ = make_client(handler)

    with pytest.raises(NoData):
        await client.generate("Hello", "sk")
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried_then_succeeds(make_client) -> None:
    handler = ScriptedHandler(reply(503), reply(200, completion_payload("recovered")))
    client, delays = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == "recovered"
    assert result.attempts == 2
    assert delays == [0.5]


@pytest.mark.asyncio
async def test_server_error_exhausts_retries(make_client) -> None:
    handler = ScriptedHandler(reply(500))
    client, _ = make_client(handler)

    with pytest.raises(NetworkError) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.detail == "server error: 500"
    assert excinfo.value.retryable is True
    assert len(handler.requests) == 3


@pytest.mark.asyncio
async def test_unexpected_status_is_not_retried(make_client) -> None:
    handler = ScriptedHandler(reply(302))
    client, delays = make_client(handler)

    with pytest.raises(NetworkError) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.detail == "unexpected status: 302"
    assert excinfo.value.retryable is False
    assert len(handler.requests) == 1
    assert delays == []


@pytest.mark.asyncio
async def test_timeout_is_retried_and_surfaces_as_timeout(make_client) -> None:
    handler = ScriptedHandler(fail(httpx.ReadTimeout, "read timed out"))
    client, delays = make_client(handler)

    with pytest.raises(Timeout) as excinfo:
        await client.generate("Hello", "sk")

    assert excinfo.value.message == "Request timed out"
    assert len(handler.requests) == 3
    assert delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_configured_timeout_is_sent_with_request(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler)

    await client.generate("Hello", "sk", config=ClientConfig(timeout_seconds=7))

    timeouts = handler.requests[0].extensions["timeout"]
    assert timeouts == {"connect": 7, "read": 7, "write": 7, "pool": 7}


@pytest.mark.asyncio
async def test_slow_body_hits_attempt_timeout(make_client) -> None:
    body = json.dumps(completion_payload("x" * 64)).encode("utf-8")
    calls: list[httpx.Request] = []

    async def trickle():
        for index in range(len(body)):
            await asyncio.sleep(0.02)
            yield body[index : index + 1]

    async def trickling_handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=trickle())

    client, delays = make_client(trickling_handler)
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(Timeout):
        await client.generate("Hello", "sk", config=ClientConfig(timeout_seconds=0.2, max_retries=1))

    assert loop.time() - started < 2
    assert len(calls) == 2
    assert delays == [0.5]


@pytest.mark.asyncio
async def test_slow_headers_hit_attempt_timeout(make_client) -> None:
    async def stalled_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(60)
        return httpx.Response(200, json=completion_payload())

    client, delays = make_client(stalled_handler)

    with pytest.raises(Timeout):
        await client.generate("Hello", "sk", config=ClientConfig(timeout_seconds=0.05, max_retries=0))
    assert delays == []


@pytest.mark.asyncio
async def test_connection_failure_is_retried(make_client) -> None:
    handler = ScriptedHandler(
        fail(httpx.ConnectError, "connection refused"),
        fail(httpx.ReadError, "connection reset"),
        reply(200, completion_payload("third time lucky")),
    )
    client, delays = make_client(handler)

    result = await client.generate("Hello", "sk")

    assert result.text == "third time lucky"
    assert result.attempts == 3
    assert delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_mixed_retryable_failures_report_last_error(make_client) -> None:
    handler = ScriptedHandler(reply(429), reply(502), fail(httpx.ConnectTimeout, "connect timed out"))
    client, _ = make_client(handler)

    with pytest.raises(Timeout):
        await client.generate("Hello", "sk")
    assert len(handler.requests) == 3


@pytest.mark.asyncio
async def test_non_retryable_error_after_retry_propagates_immediately(make_client) -> None:
    handler = ScriptedHandler(reply(429), reply(400, {"error": {"message": "bad request"}}), reply(200, completion_payload()))
    client, delays = make_client(handler)

    with pytest.raises(ApiError):
        await client.generate("Hello", "sk")
    assert len(handler.requests) == 2
    assert delays == [0.5]


@pytest.mark.asyncio
async def test_zero_retries_makes_a_single_attempt(make_client) -> None:
    handler = ScriptedHandler(reply(429))
    client, delays = make_client(handler)

    with pytest.raises(RateLimited):
        await client.generate("Hello", "sk", config=ClientConfig(max_retries=0))
    assert len(handler.requests) == 1
    assert delays == []


@pytest.mark.asyncio
@pytest.mark.parametrize("base_url", ["not a url", "ftp://api.test/v1", "https://"])
async def test_invalid_endpoint_is_fatal(make_client, base_url: str) -> None:
    handler = ScriptedHandler(reply(200, completion_payload()))
    client, _ = make_client(handler, base_url=base_url)

    with pytest.raises(InvalidEndpoint):
        await client.generate("Hello", "sk")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_validate_credential_sends_probe(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload("Hello!")))
    client, _ = make_client(handler)

    assert await client.validate_credential("sk-good") is True

    body = handler.bodies[0]
    assert body["model"] == "gpt-3.5-turbo"
    assert body["messages"][0]["content"] == "You are a test."
    assert body["messages"][1]["content"] == "Hi"
    assert handler.requests[0].headers["Authorization"] == "Bearer sk-good"


@pytest.mark.asyncio
async def test_validate_credential_propagates_classified_error(make_client) -> None:
    handler = ScriptedHandler(reply(401, INVALID_KEY_ERROR))
    client, _ = make_client(handler)

    with pytest.raises(ApiError) as excinfo:
        await client.validate_credential("sk-bad")
    assert excinfo.value.api_message == "Invalid API key provided"


@pytest.mark.asyncio
async def test_validate_credential_uses_retry_policy(make_client) -> None:
    handler = ScriptedHandler(reply(429), reply(200, completion_payload()))
    client, delays = make_client(handler)

    assert await client.validate_credential("sk") is True
    assert delays == [0.5]


@pytest.mark.asyncio
async def test_cancel_during_retry_delay_stops_the_call(make_client) -> None:
    waiting = asyncio.Event()
    delays: list[float] = []

    async def blocking_sleep(delay: float) -> None:
        delays.append(delay)
        waiting.set()
        await asyncio.sleep(60)

    handler = ScriptedHandler(reply(429))
    client, _ = make_client(handler, sleep=blocking_sleep)

    task = asyncio.create_task(client.generate("Hello", "sk"))
    await asyncio.wait_for(waiting.wait(), timeout=5)
    client.cancel_in_flight()

    with pytest.raises(RequestCancelled) as excinfo:
        await task
    assert excinfo.value.kind is ErrorKind.CANCELLED
    assert len(handler.requests) == 1
    assert delays == [0.5]


@pytest.mark.asyncio
async def test_cancel_during_request_stops_the_call(make_client) -> None:
    started = asyncio.Event()
    calls: list[httpx.Request] = []

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        started.set()
        await asyncio.sleep(60)
        return httpx.Response(200, json=completion_payload())

    client, _ = make_client(slow_handler)
    task = asyncio.create_task(client.generate("Hello", "sk"))
    await asyncio.wait_for(started.wait(), timeout=5)
    client.cancel_in_flight()

    with pytest.raises(RequestCancelled):
        await task
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_cancel_without_outstanding_call_is_noop(make_client) -> None:
    handler = ScriptedHandler(reply(200, completion_payload("fine")))
    client, _ = make_client(handler)

    client.cancel_in_flight()
    result = await client.generate("Hello", "sk")
    client.cancel_in_flight()
    client.cancel_in_flight()

    assert result.text == "fine"


@pytest.mark.asyncio
async def test_concurrent_calls_are_independent(make_client) -> None:
    async def echo_handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        user_text = body["messages"][1]["content"]
        await asyncio.sleep(0.01 if user_text == "first" else 0)
        return httpx.Response(200, json=completion_payload(f"echo: {user_text}"))

    client, _ = make_client(echo_handler)

    first, second = await asyncio.gather(
        client.generate("first", "sk"),
        client.generate("second", "sk"),
    )

    assert first.text == "echo: first"
    assert second.text == "echo: second"


@pytest.mark.asyncio
async def test_outer_task_cancellation_is_not_converted(make_client) -> None:
    started = asyncio.Event()

    async def slow_handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(60)
        return httpx.Response(200, json=completion_payload())

    client, _ = make_client(slow_handler)
    task = asyncio.create_task(client.generate("Hello", "sk"))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_cancel_reaches_older_call_after_newer_one_finishes(make_client) -> None:
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        user_text = json.loads(request.content)["messages"][1]["content"]
        if user_text == "slow":
            started.set()
            await asyncio.sleep(60)
        return httpx.Response(200, json=completion_payload(f"echo: {user_text}"))

    client, _ = make_client(handler)
    slow = asyncio.create_task(client.generate("slow", "sk"))
    await asyncio.wait_for(started.wait(), timeout=5)

    fast = await client.generate("fast", "sk")
    assert fast.text == "echo: fast"

    client.cancel_in_flight()
    with pytest.raises(RequestCancelled):
        await slow


@pytest.mark.asyncio
async def test_cancel_targets_newest_running_call(make_client) -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content)["messages"][1]["content"])
        await asyncio.sleep(60)
        return httpx.Response(200, json=completion_payload())

    client, _ = make_client(handler)
    first = asyncio.create_task(client.generate("first", "sk"))
    second = asyncio.create_task(client.generate("second", "sk"))
    while len(seen) < 2:
        await asyncio.sleep(0.01)

    client.cancel_in_flight()
    with pytest.raises(RequestCancelled):
        await second
    assert not first.done()

    client.cancel_in_flight()
    with pytest.raises(RequestCancelled):
        await first
