"""
Client for the live notification stream.

RealtimeStreamClient keeps one push channel open per session, forwards
`notification` frames to listeners and re-opens the channel after failures
with capped exponential backoff:

    disconnected -> connecting -> connected -> (error -> reconnecting -> connecting)*

The channel itself sits behind StreamTransport / StreamHandle so the state
machine can be driven by a fake transport in tests. HttpxStreamTransport is
the production implementation.

All methods must be called from the event loop thread. Connection errors are
never raised to the caller; they show up as `is_connected` and
`connection_error`.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, List, Optional

import httpx
from pydantic import ValidationError

from config import config
from constants import ConnectionState, FrameTypes
from logging_config import get_logger
from models.notification import NotificationModel
from models.stream import ConnectedFrame, HeartbeatFrame, NotificationFrame

logger = get_logger("stream_client")

CONNECT_TIMEOUT = 10.0  # seconds
CONNECTION_LOST = "Connection lost"
RETRIES_EXHAUSTED = "Failed to reconnect after multiple attempts"

NotificationListener = Callable[[NotificationModel], None]


class StreamOpenError(Exception):
    """Raised by a transport when the stream cannot be opened."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ============================================================================
# Transport
# ============================================================================


class StreamHandle(ABC):
    """An open push channel."""

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """Yield raw lines in arrival order. Returning means the server closed the stream."""

    @abstractmethod
    async def close(self) -> None:
        pass


class StreamTransport(ABC):
    @abstractmethod
    async def open(self, url: str, credential: str) -> StreamHandle:
        """Open the channel or raise."""


class HttpxStreamHandle(StreamHandle):
    def __init__(self, response: httpx.Response, owned_client: Optional[httpx.AsyncClient] = None):
        self._response = response
        self._owned_client = owned_client

    async def lines(self) -> AsyncIterator[str]:
        async for line in self._response.aiter_lines():
            yield line

    async def close(self) -> None:
        await self._response.aclose()
        if self._owned_client is not None:
            await self._owned_client.aclose()


class HttpxStreamTransport(StreamTransport):
    """Opens the stream with a streaming GET and a bearer token."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, connect_timeout: float = CONNECT_TIMEOUT):
        self._client = client
        self._connect_timeout = connect_timeout

    async def open(self, url: str, credential: str) -> StreamHandle:
        owned = self._client is None
        # No read timeout: the server may be silent between heartbeats
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(self._connect_timeout, read=None))
        headers = {
            "Authorization": f"Bearer {credential}",
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        try:
            request = client.build_request("GET", url, headers=headers)
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            if owned:
                await client.aclose()
            raise StreamOpenError(f"Could not open stream: {e}") from e
        except BaseException:
            # Cancelled mid-handshake: still release the pool we created
            if owned:
                await client.aclose()
            raise

        if response.status_code != 200:
            await response.aclose()
            if owned:
                await client.aclose()
            raise StreamOpenError(
                f"Stream rejected with status {response.status_code}",
                status_code=response.status_code,
            )
        return HttpxStreamHandle(response, client if owned else None)


# ============================================================================
# Client
# ============================================================================


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Seconds to wait before reconnect number `attempt + 1`."""
    return min(base_delay * (2 ** attempt), max_delay)


class RealtimeStreamClient:
    def __init__(
        self,
        url: Optional[str] = None,
        credential: Optional[str] = None,
        transport: Optional[StreamTransport] = None,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        call_later: Optional[Callable] = None,
        on_state_change: Optional[Callable[[str], None]] = None,
    ):
        self.url = url or config.STREAM_URL
        self.max_attempts = config.STREAM_MAX_RECONNECT_ATTEMPTS if max_attempts is None else max_attempts
        self.base_delay = config.STREAM_BASE_DELAY_SECONDS if base_delay is None else base_delay
        self.max_delay = config.STREAM_MAX_DELAY_SECONDS if max_delay is None else max_delay

        self._credential = credential
        self._transport = transport or HttpxStreamTransport()
        self._call_later = call_later
        self._on_state_change = on_state_change
        self._listeners: List[NotificationListener] = []

        self.state = ConnectionState.DISCONNECTED
        self.connection_error: Optional[str] = None
        self.reconnect_attempt = 0
        self.last_heartbeat: Optional[float] = None

        self._task: Optional[asyncio.Task] = None
        self._closing: List[asyncio.Task] = []  # cancelled tasks still closing their channel
        self._timer = None

    # --- Observable state ---

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    def add_listener(self, listener: NotificationListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: NotificationListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- Public controls ---

    def connect(self):
        """Open the channel, replacing any existing one. No-op without a credential."""
        if not self._credential:
            logger.debug("No credential available, not connecting")
            return

        self._cancel_timer()
        self._cancel_task()
        self._closing = [t for t in self._closing if not t.done()]
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run(list(self._closing)))

    def disconnect(self):
        self._cancel_timer()
        self._cancel_task()
        self.connection_error = None
        self.reconnect_attempt = 0
        self._set_state(ConnectionState.DISCONNECTED)

    def reconnect(self):
        """Manual retry: resets the attempt counter and connects immediately."""
        self.reconnect_attempt = 0
        self.connect()

    def set_credential(self, credential: Optional[str]):
        self._credential = credential
        if credential:
            self.connect()
        else:
            self.disconnect()

    async def aclose(self):
        """Disconnect and wait until the channel is closed."""
        self.disconnect()
        closing, self._closing = self._closing, []
        if closing:
            await asyncio.wait(closing)

    # --- Internals ---

    def _set_state(self, state: str):
        if state == self.state:
            return
        logger.debug(f"Stream state {self.state} -> {state}")
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_task(self):
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            self._closing.append(task)

    def _schedule(self, delay: float, callback):
        call_later = self._call_later or asyncio.get_running_loop().call_later
        return call_later(delay, callback)

    async def _run(self, closing: List[asyncio.Task]):
        if closing:
            # Channels being torn down finish closing before a new one opens
            await asyncio.wait(closing)
        try:
            handle = await self._transport.open(self.url, self._credential)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Stream connection failed: {e}")
            self._on_failure()
            return

        try:
            self._on_open()
            async for line in handle.lines():
                self._handle_line(line)
            logger.warning("Stream closed by server")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Stream connection lost: {e}")
        finally:
            await self._close_handle(handle)
        self._on_failure()

    async def _close_handle(self, handle: StreamHandle):
        try:
            await handle.close()
        except Exception as e:
            logger.debug(f"Error while closing stream: {e}")

    def _owns_current_task(self) -> bool:
        return asyncio.current_task() is self._task

    def _on_open(self):
        if not self._owns_current_task():
            return
        logger.info("Stream connection opened", extra={"data": {"url": self.url}})
        self.reconnect_attempt = 0
        self.connection_error = None
        self._set_state(ConnectionState.CONNECTED)

    def _on_failure(self):
        if not self._owns_current_task():
            return
        self._task = None
        self.connection_error = CONNECTION_LOST
        self._set_state(ConnectionState.ERROR)

        if self.reconnect_attempt >= self.max_attempts:
            logger.error(
                RETRIES_EXHAUSTED,
                extra={"data": {"attempts": self.reconnect_attempt, "url": self.url}},
            )
            self.connection_error = RETRIES_EXHAUSTED
            self._set_state(ConnectionState.DISCONNECTED)
            return

        delay = backoff_delay(self.reconnect_attempt, self.base_delay, self.max_delay)
        self.reconnect_attempt += 1
        self._set_state(ConnectionState.RECONNECTING)
        self._timer = self._schedule(delay, self._on_reconnect_timer)
        logger.info(f"Reconnecting in {delay:g}s ({self.reconnect_attempt}/{self.max_attempts})")

    def _on_reconnect_timer(self):
        self._timer = None
        logger.info(f"Attempting to reconnect ({self.reconnect_attempt}/{self.max_attempts})...")
        self.connect()

    def _handle_line(self, line: str):
        line = line.strip()
        # Blank lines end SSE events; ":" lines are SSE comments
        if not line or line.startswith(":"):
            return
        if line.startswith("data:"):
            line = line[len("data:"):].strip()
        elif line.startswith(("event:", "id:", "retry:")):
            return

        try:
            frame = json.loads(line)
        except ValueError:
            logger.warning("Dropping malformed stream frame", extra={"data": {"frame": line[:200]}})
            return
        if not isinstance(frame, dict) or "type" not in frame:
            logger.warning("Dropping stream frame without type", extra={"data": {"frame": line[:200]}})
            return

        frame_type = frame["type"]
        try:
            if frame_type == FrameTypes.CONNECTED:
                logger.info(f"Stream connected: {ConnectedFrame.model_validate(frame).message}")
            elif frame_type == FrameTypes.NOTIFICATION:
                self._dispatch(NotificationFrame.model_validate(frame).notification)
            elif frame_type == FrameTypes.HEARTBEAT:
                self.last_heartbeat = HeartbeatFrame.model_validate(frame).timestamp
            else:
                logger.debug(f"Ignoring stream frame of unknown type {frame_type!r}")
        except ValidationError as e:
            logger.warning(
                f"Dropping invalid {frame_type} frame",
                extra={"data": {"errors": e.errors(include_url=False)}},
            )

    def _dispatch(self, notification: NotificationModel):
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.error(
                    "Notification listener failed",
                    exc_info=True,
                    extra={"data": {"notification_id": notification.id}},
                )
