"""Single-flight client for the vision-language provider.

``DescriptionService`` owns at most one outstanding request. Submitting a
new prompt cancels the tracked request and waits for it to wind down before
the new one is started, so two responses can never race each other.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from time import monotonic
from typing import Mapping, Optional, Tuple

import httpx
from pydantic import BaseModel

from ..errors import DescriptionCancelled, RequestFailed, TransportError
from ..settings import Settings, settings
from .prompt import ChatMessage, Prompt
from .providers import DescriptionResult, ProviderKind, adapter_for


logger = logging.getLogger("iris")

BODY_SNIPPET_CHARS = 200


class GenerationRequest(BaseModel):
    """JSON body posted to the provider."""

    model: Optional[str] = None
    messages: Tuple[ChatMessage, ...]
    max_tokens: int
    # Deterministic sampling is required, not a tunable default.
    temperature: float = 0


@dataclass(frozen=True)
class OutboundRequest:
    url: str
    headers: Mapping[str, str] = field(repr=False)
    body: bytes = field(repr=False)


class InflightHandle:
    """Reference to the one provider request currently allowed to run."""

    def __init__(self, request_id: int, task: asyncio.Task[DescriptionResult]) -> None:
        self.request_id = request_id
        self.task = task

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        return self.task.cancel()

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        return f"InflightHandle(request_id={self.request_id}, {state})"


class DescriptionService:
    """Sends prompts to the configured provider, one at a time."""

    def __init__(self, config: Settings = settings, *, client: httpx.AsyncClient | None = None) -> None:
        self.provider: ProviderKind = config.provider
        self.base_url = config.provider_base_url()
        self.model = config.provider_model()
        self.max_tokens = config.max_tokens
        self._api_key = config.provider_api_key()
        self._adapter = adapter_for(self.provider)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)
        self._inflight: InflightHandle | None = None
        self._request_count = 0
        if not self._api_key:
            logger.warning("No API key configured for provider %s", self.provider.value)

    @property
    def inflight(self) -> InflightHandle | None:
        return self._inflight

    def build_request(self, prompt: Prompt) -> OutboundRequest:
        payload = GenerationRequest(
            model=self.model,
            messages=tuple(prompt),
            max_tokens=self.max_tokens,
        )
        return OutboundRequest(
            url=self.base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            body=payload.model_dump_json(exclude_none=True).encode("utf-8"),
        )

    async def submit(self, prompt: Prompt) -> InflightHandle:
        """Start a request for ``prompt``, superseding any outstanding one."""
        request = self.build_request(prompt)
        while self._inflight is not None:
            prior = self._inflight
            logger.info("Cancelling superseded request %s", prior.request_id)
            self.cancel()
            await asyncio.wait({prior.task})

        self._request_count += 1
        request_id = self._request_count
        task = asyncio.create_task(self._execute(request, request_id))
        handle = InflightHandle(request_id, task)
        self._inflight = handle
        task.add_done_callback(lambda _task: self._release(handle))
        return handle

    async def wait(self, handle: InflightHandle) -> DescriptionResult:
        """Await ``handle`` and translate its cancellation into ``DescriptionCancelled``."""
        try:
            return await handle.task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            raise DescriptionCancelled(handle.request_id) from None
        finally:
            self._release(handle)

    async def send(self, prompt: Prompt) -> DescriptionResult:
        handle = await self.submit(prompt)
        return await self.wait(handle)

    def cancel(self) -> bool:
        """Cancel the outstanding request, if any. Safe to call repeatedly."""
        handle = self._inflight
        self._inflight = None
        if handle is None:
            return False
        return handle.cancel()

    async def aclose(self) -> None:
        handle = self._inflight
        self.cancel()
        if handle is not None:
            await asyncio.wait({handle.task})
        if self._owns_client:
            await self._client.aclose()

    def _release(self, handle: InflightHandle) -> None:
        if self._inflight is handle:
            self._inflight = None
        task = handle.task
        if task.done() and not task.cancelled():
            # Mark the outcome as retrieved for requests nobody waits on.
            task.exception()

    async def _execute(self, request: OutboundRequest, request_id: int) -> DescriptionResult:
        started = monotonic()
        try:
            response = await self._client.post(request.url, headers=request.headers, content=request.body)
        except httpx.TransportError as exc:
            logger.warning("Request %s to %s failed: %s", request_id, self.provider.value, exc)
            raise TransportError(f"Unable to reach {self.provider.value}: {exc}") from exc
        elapsed = monotonic() - started
        logger.info(
            "Request %s to %s answered %s in %.2fs",
            request_id,
            self.provider.value,
            response.status_code,
            elapsed,
        )

        if response.status_code != 200:
            snippet = response.text[:BODY_SNIPPET_CHARS]
            logger.warning("Request %s rejected with %s: %s", request_id, response.status_code, snippet)
            raise RequestFailed(response.status_code, snippet)

        result = self._adapter.normalize(response.content)
        logger.info(
            "Request %s tokens input=%s output=%s total=%s",
            request_id,
            result.usage.prompt_tokens,
            result.usage.completion_tokens,
            result.usage.total_tokens,
        )
        return result
