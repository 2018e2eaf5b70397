"""Main FastAPI application entry point."""

from __future__ import annotations

import asyncio
import base64
import binascii
import contextlib
import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .instructions import SYSTEM_INSTRUCTIONS_VERSION
from .language import resolve
from .pipeline.image import CapturedImage
from .pipeline.protocol import CLIENT_CANCEL, CLIENT_CAPTURE, CLIENT_STOP, ClientCapture, error_event, event_for
from .pipeline.service import DescriptionService
from .pipeline.state import PipelineController
from .settings import settings


logger = logging.getLogger("iris")

EVENT_FLUSH_TIMEOUT = 1.0

app = FastAPI(title="Iris Backend", version="0.1.0")


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(
        "Iris backend starting; provider=%s; locale=%s (%s); instructions v%s",
        settings.provider.value,
        settings.locale,
        resolve(settings.locale),
        SYSTEM_INSTRUCTIONS_VERSION,
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health endpoint to confirm the service is up."""
    return {"status": "ok"}


@app.get("/api/client-config")
async def client_config() -> dict[str, object]:
    """Expose non-secret settings the client may want to display."""
    return {
        "provider": settings.provider.value,
        "locale": settings.locale,
        "language": resolve(settings.locale),
        "instructionsVersion": SYSTEM_INSTRUCTIONS_VERSION,
    }


def _decode_b64_payload(message: dict, field_name: str = "data_b64") -> bytes:
    data_b64 = message.get(field_name)
    if not isinstance(data_b64, str) or not data_b64:
        raise ValueError(f"Missing {field_name}")
    try:
        return base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload in {field_name}") from exc


def _parse_capture(message: dict) -> ClientCapture:
    locale = message.get("locale")
    if locale is not None and not isinstance(locale, str):
        raise ValueError("locale must be a string")
    return ClientCapture(jpeg=_decode_b64_payload(message), locale=(locale or "").strip() or None)


async def _forward_pipeline_events(ws: WebSocket, controller: PipelineController) -> None:
    async for state in controller.receive():
        await ws.send_json(event_for(state))


@app.websocket("/ws/describe")
async def websocket_endpoint(ws: WebSocket) -> None:
    """Run one capture-to-description pipeline for the connected client."""
    await ws.accept()

    locale = ws.query_params.get("locale", "").strip() or settings.locale
    try:
        service = DescriptionService(settings)
    except Exception as exc:
        logger.exception("Failed to configure description service: %s", exc)
        await ws.send_json(error_event("The description service is not configured"))
        await ws.close(code=1011)
        return

    controller = PipelineController(
        service,
        locale=locale,
        scale=settings.image_scale,
        quality=settings.image_quality,
        instructions=settings.system_instructions,
    )
    forward_task = asyncio.create_task(_forward_pipeline_events(ws, controller))

    try:
        while True:
            try:
                message = await ws.receive_json()
            except WebSocketDisconnect:
                break
            except (ValueError, TypeError):
                await ws.send_json(error_event("Malformed JSON message"))
                continue

            if not isinstance(message, dict):
                await ws.send_json(error_event("Messages must be JSON objects"))
                continue

            message_type = str(message.get("type", "")).strip()
            try:
                if message_type == CLIENT_CAPTURE:
                    capture = _parse_capture(message)
                    await controller.begin_capture(CapturedImage(data=capture.jpeg), locale=capture.locale)
                elif message_type == CLIENT_CANCEL:
                    await controller.cancel()
                elif message_type == CLIENT_STOP:
                    break
                else:
                    await ws.send_json(error_event(f"Unsupported message type: {message_type}"))
            except ValueError as exc:
                await ws.send_json(error_event(str(exc)))
    except Exception as exc:
        logger.exception("Unexpected error in /ws/describe: %s", exc)
        with contextlib.suppress(RuntimeError):
            await ws.send_json(error_event("Describe session error"))
    finally:
        await controller.close()
        # Let queued state events flush before tearing the forwarder down.
        await asyncio.wait({forward_task}, timeout=EVENT_FLUSH_TIMEOUT)
        forward_task.cancel()
        try:
            await forward_task
        except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            pass
        await service.aclose()
        with contextlib.suppress(RuntimeError):
            await ws.close()
