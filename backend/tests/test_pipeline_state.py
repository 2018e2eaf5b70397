from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from iris_app.errors import EncodingError, ParseError, RequestFailed
from iris_app.language import FAILURE_MESSAGES
from iris_app.pipeline.image import CapturedImage
from iris_app.pipeline import state as state_module
from iris_app.pipeline.state import Cancelled, Done, Failed, Idle, PipelineController


async def drain(controller: PipelineController) -> list[str]:
    await controller.close()
    return [state.name async for state in controller.receive()]


async def wait_for_calls(calls: list, count: int) -> None:
    while len(calls) < count:
        await asyncio.sleep(0)


def blocking_handler(calls: list, shape_a, texts: list[str]):
    """First request hangs until cancelled; later ones answer with ``texts``."""

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            await asyncio.Event().wait()
        return httpx.Response(200, json=shape_a(texts[len(calls) - 2]))

    return handler


@pytest.mark.asyncio
async def test_capture_runs_to_done(make_service, shape_a, capture: CapturedImage) -> None:
    service = make_service(lambda request: httpx.Response(200, json=shape_a("Stairs ahead, five steps down")))
    controller = PipelineController(service)

    final = await controller.capture_received(capture)

    assert isinstance(final, Done)
    assert final.result.text == "Stairs ahead, five steps down"
    assert controller.state == final
    assert await drain(controller) == ["idle", "preprocessing", "requesting", "done"]


@pytest.mark.asyncio
async def test_unauthorised_response_drives_failed(make_service, capture: CapturedImage) -> None:
    service = make_service(lambda request: httpx.Response(401, json={"error": "bad key"}))
    controller = PipelineController(service)

    final = await controller.capture_received(capture)

    assert isinstance(final, Failed)
    assert isinstance(final.error, RequestFailed)
    assert final.error.status_code == 401
    assert final.message == FAILURE_MESSAGES["English"]
    assert "401" not in final.message
    assert await drain(controller) == ["idle", "preprocessing", "requesting", "failed"]


@pytest.mark.asyncio
async def test_malformed_response_drives_failed(make_service, capture: CapturedImage) -> None:
    service = make_service(lambda request: httpx.Response(200, json={"unexpected": True}))
    controller = PipelineController(service)

    final = await controller.capture_received(capture)

    assert isinstance(final, Failed)
    assert isinstance(final.error, ParseError)


@pytest.mark.asyncio
async def test_undecodable_capture_fails_before_any_request(make_service) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    controller = PipelineController(make_service(handler))

    final = await controller.capture_received(CapturedImage(data=b"\x00not-a-photo"))

    assert isinstance(final, Failed)
    assert isinstance(final.error, EncodingError)
    assert calls == []
    assert await drain(controller) == ["idle", "preprocessing", "failed"]


@pytest.mark.asyncio
async def test_oversized_capture_drives_failed(make_service, oversized_capture: CapturedImage) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    controller = PipelineController(make_service(handler), locale="fr_FR")

    cycle = await controller.begin_capture(oversized_capture)
    final = await cycle

    assert isinstance(final, Failed)
    assert isinstance(final.error, EncodingError)
    assert final.message == FAILURE_MESSAGES["French"]
    assert controller.state == final
    assert calls == []
    assert await drain(controller) == ["idle", "preprocessing", "failed"]


@pytest.mark.asyncio
async def test_unexpected_error_still_ends_the_cycle(
    monkeypatch: pytest.MonkeyPatch, make_service, capture: CapturedImage
) -> None:
    def broken_preprocess(*_args):
        raise RuntimeError("codec crashed")

    monkeypatch.setattr(state_module, "preprocess", broken_preprocess)
    controller = PipelineController(make_service(lambda request: httpx.Response(500)))

    final = await controller.capture_received(capture)

    assert isinstance(final, Failed)
    assert isinstance(final.error, RuntimeError)
    assert final.message == FAILURE_MESSAGES["English"]
    assert await drain(controller) == ["idle", "preprocessing", "failed"]


@pytest.mark.asyncio
async def test_locale_selects_prompt_language_and_failure_message(make_service, capture: CapturedImage) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(503, text="overloaded")

    controller = PipelineController(make_service(handler), locale="en_US")

    final = await controller.capture_received(capture, locale="zh-Hans-CN")

    system_text = json.loads(seen[0].content)["messages"][0]["content"][0]["text"]
    assert "Always answer in Chinese." in system_text
    assert isinstance(final, Failed)
    assert final.message == FAILURE_MESSAGES["Chinese"]


@pytest.mark.asyncio
async def test_new_capture_supersedes_the_running_cycle(make_service, shape_a, capture: CapturedImage) -> None:
    calls: list[httpx.Request] = []
    service = make_service(blocking_handler(calls, shape_a, ["fresh"]))
    controller = PipelineController(service)

    first = await controller.begin_capture(capture)
    await wait_for_calls(calls, 1)
    second = await controller.begin_capture(capture)

    assert await first == Cancelled()
    final = await second
    assert isinstance(final, Done)
    assert final.result.text == "fresh"
    assert controller.state == final
    assert service.inflight is None
    assert await drain(controller) == [
        "idle",
        "preprocessing",
        "requesting",
        "cancelled",
        "idle",
        "preprocessing",
        "requesting",
        "done",
    ]


@pytest.mark.asyncio
async def test_cancel_signal_stops_the_request(make_service, shape_a, capture: CapturedImage) -> None:
    calls: list[httpx.Request] = []
    service = make_service(blocking_handler(calls, shape_a, []))
    controller = PipelineController(service)

    cycle = await controller.begin_capture(capture)
    await wait_for_calls(calls, 1)

    assert await controller.cancel() is True
    assert await cycle == Cancelled()
    assert controller.state == Cancelled()
    assert service.inflight is None
    assert await drain(controller) == ["idle", "preprocessing", "requesting", "cancelled"]


@pytest.mark.asyncio
async def test_direct_service_cancel_moves_cycle_to_cancelled(make_service, shape_a, capture: CapturedImage) -> None:
    calls: list[httpx.Request] = []
    service = make_service(blocking_handler(calls, shape_a, []))
    controller = PipelineController(service)

    cycle = await controller.begin_capture(capture)
    await wait_for_calls(calls, 1)
    service.cancel()

    assert await cycle == Cancelled()
    assert controller.state == Cancelled()


@pytest.mark.asyncio
async def test_cancel_when_idle_is_a_no_op(make_service) -> None:
    controller = PipelineController(make_service(lambda request: httpx.Response(500)))

    assert await controller.cancel() is False
    assert await controller.cancel() is False
    assert controller.state == Idle()
    assert await drain(controller) == ["idle"]


@pytest.mark.asyncio
async def test_terminal_state_returns_to_idle_on_next_capture(make_service, shape_a, capture: CapturedImage) -> None:
    texts = iter(["Exit sign on the left", "Bench to your right"])
    service = make_service(lambda request: httpx.Response(200, json=shape_a(next(texts))))
    controller = PipelineController(service)

    await controller.capture_received(capture)
    final = await controller.capture_received(capture)

    assert final.result.text == "Bench to your right"
    assert await drain(controller) == [
        "idle",
        "preprocessing",
        "requesting",
        "done",
        "idle",
        "preprocessing",
        "requesting",
        "done",
    ]


@pytest.mark.asyncio
async def test_closed_controller_rejects_captures(make_service, capture: CapturedImage) -> None:
    controller = PipelineController(make_service(lambda request: httpx.Response(500)))
    await controller.close()

    with pytest.raises(RuntimeError):
        await controller.begin_capture(capture)
