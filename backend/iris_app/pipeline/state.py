"""State machine that sequences one capture-to-description cycle."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, ClassVar, Union

from ..errors import DescriptionCancelled, EncodingError, ParseError, RequestFailed, TransportError
from ..instructions import DEFAULT_SYSTEM_INSTRUCTIONS
from ..language import failure_message, resolve
from .image import DEFAULT_QUALITY, DEFAULT_SCALE, CapturedImage, preprocess
from .prompt import build
from .providers import DescriptionResult
from .service import DescriptionService, InflightHandle


logger = logging.getLogger("iris")


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Preprocessing:
    name: ClassVar[str] = "preprocessing"
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Requesting:
    handle: InflightHandle
    name: ClassVar[str] = "requesting"
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Done:
    result: DescriptionResult
    name: ClassVar[str] = "done"
    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Failed:
    """A cycle ended with an error; ``message`` is the only user-facing part."""

    error: Exception
    message: str
    name: ClassVar[str] = "failed"
    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Cancelled:
    name: ClassVar[str] = "cancelled"
    terminal: ClassVar[bool] = True


PipelineState = Union[Idle, Preprocessing, Requesting, Done, Failed, Cancelled]

CYCLE_ERRORS = (EncodingError, RequestFailed, ParseError, TransportError)


class PipelineController:
    """Owns the live ``PipelineState`` and at most one running cycle.

    Starting and cancelling cycles is serialised through a lock: a new
    capture only proceeds once the previous cycle has been interrupted and
    its task has finished. A cycle commits a state only while it is still
    the tracked cycle, so results arriving after a cancel are dropped.
    """

    def __init__(
        self,
        service: DescriptionService,
        *,
        locale: str = "en",
        scale: float = DEFAULT_SCALE,
        quality: float = DEFAULT_QUALITY,
        instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS,
    ) -> None:
        self.locale = locale
        self.scale = scale
        self.quality = quality
        self.instructions = instructions
        self._service = service
        self._state: PipelineState = Idle()
        self._events: asyncio.Queue[PipelineState | None] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._cycle: asyncio.Task[PipelineState] | None = None
        self._closed = False
        self._events.put_nowait(self._state)

    @property
    def state(self) -> PipelineState:
        return self._state

    async def begin_capture(self, image: CapturedImage, *, locale: str | None = None) -> asyncio.Task[PipelineState]:
        """Start a new cycle for ``image`` and return its task."""
        async with self._lock:
            if self._closed:
                raise RuntimeError("PipelineController is closed")
            await self._interrupt()
            if self._state.terminal:
                self._transition(Idle())
            self._transition(Preprocessing())
            cycle = asyncio.create_task(self._run_cycle(image, locale or self.locale))
            self._cycle = cycle
            return cycle

    async def capture_received(self, image: CapturedImage, *, locale: str | None = None) -> PipelineState:
        """Run a full cycle for ``image`` and return the state it ended in."""
        cycle = await self.begin_capture(image, locale=locale)
        return await cycle

    async def cancel(self) -> bool:
        """Handle an external cancel signal. Returns False when nothing was running."""
        async with self._lock:
            self._service.cancel()
            return await self._interrupt()

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            await self._interrupt()
            self._closed = True
            await self._events.put(None)

    async def receive(self) -> AsyncIterator[PipelineState]:
        while True:
            state = await self._events.get()
            if state is None:
                return
            yield state

    async def _interrupt(self) -> bool:
        cycle = self._cycle
        self._cycle = None
        if cycle is None or cycle.done():
            return False
        logger.info("Interrupting %s cycle", self._state.name)
        self._service.cancel()
        cycle.cancel()
        await asyncio.wait({cycle})
        self._transition(Cancelled())
        return True

    async def _run_cycle(self, image: CapturedImage, locale: str) -> PipelineState:
        cycle = asyncio.current_task()
        language = resolve(locale)
        try:
            payload = await asyncio.to_thread(preprocess, image, self.scale, self.quality)
            prompt = build(language, payload, self.instructions)
            handle = await self._service.submit(prompt)
            if not self._commit(cycle, Requesting(handle)):
                handle.cancel()
                return Cancelled()
            result = await self._service.wait(handle)
            return self._finish(cycle, Done(result))
        except DescriptionCancelled:
            return self._finish(cycle, Cancelled())
        except CYCLE_ERRORS as exc:
            logger.warning("Description cycle failed: %s", exc)
            return self._finish(cycle, Failed(exc, failure_message(language)))
        except asyncio.CancelledError:
            if self._cycle is cycle:
                raise
            return Cancelled()
        except Exception as exc:
            logger.exception("Description cycle crashed")
            return self._finish(cycle, Failed(exc, failure_message(language)))

    def _commit(self, cycle: asyncio.Task | None, state: PipelineState) -> bool:
        if cycle is None or self._cycle is not cycle:
            logger.debug("Dropping %s from a superseded cycle", state.name)
            return False
        self._transition(state)
        return True

    def _finish(self, cycle: asyncio.Task | None, state: PipelineState) -> PipelineState:
        if self._commit(cycle, state):
            self._cycle = None
        return state

    def _transition(self, state: PipelineState) -> None:
        self._state = state
        self._events.put_nowait(state)
