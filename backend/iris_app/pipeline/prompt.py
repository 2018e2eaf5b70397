"""Chat message structures and prompt assembly for one photo."""

from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..instructions import DEFAULT_SYSTEM_INSTRUCTIONS, LANGUAGE_PLACEHOLDER
from .image import EncodedPayload


class ImageURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class ContentPart(BaseModel):
    """One text or image part of a chat message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text", "image_url"]
    text: Optional[str] = None
    image_url: Optional[ImageURL] = None


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user"]
    content: Tuple[ContentPart, ...]


Prompt = Tuple[ChatMessage, ...]


def render_instructions(language_name: str, instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS) -> str:
    if LANGUAGE_PLACEHOLDER not in instructions:
        raise ValueError(f"System instructions must contain the {LANGUAGE_PLACEHOLDER} placeholder")
    return instructions.replace(LANGUAGE_PLACEHOLDER, language_name)


def build(
    language_name: str,
    payload: EncodedPayload,
    instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS,
) -> Prompt:
    """Return the system and user messages for one description request."""
    system = ChatMessage(
        role="system",
        content=(ContentPart(type="text", text=render_instructions(language_name, instructions)),),
    )
    user = ChatMessage(
        role="user",
        content=(ContentPart(type="image_url", image_url=ImageURL(url=payload.data_url)),),
    )
    return (system, user)
