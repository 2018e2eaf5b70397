"""Message protocol definitions for the Iris describe WebSocket.

A client sends captured photos and cancel signals. The server answers with
one message per pipeline state change: plain status updates while a cycle
runs, then either the description, a localised failure sentence, or a
silent cancellation status.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from .providers import TokenUsage
from .state import Done, Failed, PipelineState


# Types of events sent by the client
CLIENT_CAPTURE = "client.capture"
CLIENT_CANCEL = "client.cancel"
CLIENT_STOP = "client.stop"

# Types of events sent by the server
SERVER_STATUS = "server.status"
SERVER_DESCRIPTION = "server.description"
SERVER_ERROR = "server.error"


@dataclass
class ClientCapture:
    """Represents a photo from the client.

    ``jpeg`` holds the encoded still as delivered by the camera; ``locale``
    overrides the connection locale for this capture only.
    """

    jpeg: bytes
    locale: Optional[str] = None


@dataclass
class ServerStatus:
    """Represents a state change with nothing to render (e.g. requesting, cancelled)."""

    state: str


@dataclass
class ServerDescription:
    """Represents a finished description to be shown or spoken."""

    text: str
    usage: TokenUsage
    state: str = Done.name


@dataclass
class ServerError:
    """Represents an error message to the client."""

    message: str
    state: Optional[str] = None


def event_for(state: PipelineState) -> dict[str, Any]:
    """Encode a pipeline state as the JSON event sent to the client."""
    if isinstance(state, Done):
        body = ServerDescription(text=state.result.text, usage=state.result.usage)
        return {"type": SERVER_DESCRIPTION, **asdict(body)}
    if isinstance(state, Failed):
        return {"type": SERVER_ERROR, **asdict(ServerError(message=state.message, state=state.name))}
    # Idle, in-progress and cancelled states carry nothing to render.
    return {"type": SERVER_STATUS, **asdict(ServerStatus(state=state.name))}


def error_event(message: str) -> dict[str, Any]:
    return {"type": SERVER_ERROR, "message": message}
