"""Live update channel over server-sent events.

Keeps one streaming ``GET {base}/sse/events?token=...`` open with ``httpx``
and hands each parsed event to ``on_event`` exactly once.

When the stream fails or ends, the channel reconnects after
``reconnect_interval * attempt`` seconds, up to ``max_retries`` attempts.
A successful open resets the attempt counter.  Once the attempts are used
up the channel stays disconnected until ``reconnect()`` is called.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
from pydantic import ValidationError

from app.models.enums import ChannelStatus
from app.models.events import LiveEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[LiveEvent], Any]
StatusHandler = Callable[[ChannelStatus], None]


class StreamOpenError(Exception):
    """The event stream answered with a non-200 status."""


async def iter_sse_messages(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event_name, data)`` pairs from an SSE line stream.

    Fields other than ``event`` and ``data`` are ignored, as are comment
    lines.  Messages without data are not dispatched.
    """
    event_name = ""
    data_lines: list[str] = []

    async for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if data_lines:
                yield event_name or "message", "\n".join(data_lines)
            event_name = ""
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        yield event_name or "message", "\n".join(data_lines)


class LiveUpdateChannel:
    """Reconnecting SSE subscription to backend push events."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None],
        on_event: EventHandler | None = None,
        on_status: StatusHandler | None = None,
        reconnect_interval: float = 5.0,
        max_retries: int = 5,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/sse/events"
        self._token_provider = token_provider
        self.on_event = on_event
        self.on_status = on_status
        self.reconnect_interval = reconnect_interval
        self.max_retries = max_retries
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=None)
        )
        self._sleep = sleep

        self.status = ChannelStatus.disconnected
        self.retries = 0
        self.retries_exhausted = False
        self.connect_attempts = 0
        self.last_event: LiveEvent | None = None
        self._task: asyncio.Task[None] | None = None

    # -- status ------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_status(self, status: ChannelStatus) -> None:
        if status == self.status:
            return
        self.status = status
        if self.on_status is not None:
            try:
                self.on_status(status)
            except Exception:
                logger.exception("live_status_handler_failed")

    # -- control -----------------------------------------------------------

    def start(self) -> None:
        """Start the reader task if it is not already running."""
        if self.is_running:
            return
        self.retries_exhausted = False
        self._task = asyncio.create_task(self._run())

    def reconnect(self) -> None:
        """Reset the attempt counter and connect again."""
        self.close()
        self.retries = 0
        self.start()

    def close(self) -> None:
        """Cancel the reader task and any pending reconnect."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._set_status(ChannelStatus.disconnected)

    async def aclose(self) -> None:
        task = self._task
        self.close()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._owns_client:
            await self._client.aclose()

    # -- reader ------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            self._set_status(ChannelStatus.connecting)
            self.connect_attempts += 1
            try:
                await self._consume()
                logger.info("live_stream_ended")
            except (httpx.HTTPError, StreamOpenError) as exc:
                logger.warning(
                    "live_stream_failed",
                    extra={"error": str(exc), "retries": self.retries},
                )
            self._set_status(ChannelStatus.disconnected)

            if self.retries >= self.max_retries:
                self.retries_exhausted = True
                logger.warning(
                    "live_reconnect_gave_up", extra={"max_retries": self.max_retries}
                )
                return
            self.retries += 1
            delay = self.reconnect_interval * self.retries
            logger.info(
                "live_reconnect_scheduled",
                extra={"attempt": self.retries, "delay_seconds": delay},
            )
            await self._sleep(delay)

    async def _consume(self) -> None:
        token = self._token_provider()
        params = {"token": token} if token else None
        async with self._client.stream(
            "GET", self.url, params=params, headers={"Accept": "text/event-stream"}
        ) as response:
            if response.status_code != 200:
                raise StreamOpenError(f"HTTP {response.status_code}")
            self.retries = 0
            self._set_status(ChannelStatus.connected)
            logger.info("live_stream_opened")
            async for name, data in iter_sse_messages(response.aiter_lines()):
                await self._dispatch(name, data)

    async def _dispatch(self, name: str, data: str) -> None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("live_event_malformed", extra={"event": name, "data": data[:200]})
            return
        if not isinstance(payload, dict):
            logger.warning("live_event_malformed", extra={"event": name, "data": data[:200]})
            return

        if name != "message":
            payload["type"] = name
        try:
            event = LiveEvent.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "live_event_unrecognized",
                extra={"event": name, "error": str(exc).splitlines()[0]},
            )
            return

        self.last_event = event
        if self.on_event is None:
            return
        try:
            result = self.on_event(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("live_event_handler_failed", extra={"event": event.type.value})
