from __future__ import annotations

import random
import struct
import zlib
from io import BytesIO
from typing import Callable

import httpx
import pytest
from PIL import Image

from iris_app.pipeline.image import CapturedImage
from iris_app.pipeline.service import DescriptionService
from iris_app.settings import Settings


def build_settings(**overrides) -> Settings:
    values = {
        "provider": "cloudflare",
        "cloudflare_account_id": "acct-123",
        "cloudflare_api_key": "cf-secret",
        "openrouter_api_key": "or-secret",
        "locale": "en",
    }
    values.update(overrides)
    return Settings(**values)


def shape_a_body(text: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> dict:
    return {
        "result": {
            "response": text,
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }
    }


def shape_b_body(text: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> dict:
    return {
        "choices": [{"message": {"content": text}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


@pytest.fixture
def capture() -> CapturedImage:
    # Noise keeps JPEG sizes realistic for a camera still.
    rng = random.Random(7)
    image = Image.frombytes("RGB", (640, 480), rng.randbytes(640 * 480 * 3))
    return CapturedImage.from_pil(image)


@pytest.fixture
def make_service() -> Callable[..., DescriptionService]:
    def factory(handler, **overrides) -> DescriptionService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return DescriptionService(build_settings(**overrides), client=client)

    return factory


@pytest.fixture
def shape_a() -> Callable[..., dict]:
    return shape_a_body


@pytest.fixture
def shape_b() -> Callable[..., dict]:
    return shape_b_body


@pytest.fixture
def settings_for() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def oversized_capture() -> CapturedImage:
    """Small PNG whose IHDR claims 20000x10000, past Pillow's decompression bomb limit."""
    buffer = BytesIO()
    Image.new("RGB", (64, 64), "gray").save(buffer, format="PNG")
    data = bytearray(buffer.getvalue())
    # Signature (8) + chunk length (4), then b"IHDR" and its 13 data bytes, then the CRC.
    ihdr = bytes(data[12:16]) + struct.pack(">II", 20000, 10000) + bytes(data[24:29])
    data[12:29] = ihdr
    data[29:33] = struct.pack(">I", zlib.crc32(ihdr) & 0xFFFFFFFF)
    return CapturedImage(data=bytes(data))
