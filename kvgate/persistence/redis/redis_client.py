# kvgate/persistence/redis/redis_client.py

"""
Connection handle that is **fork-aware** and asyncio-native.

Why a state machine?
--------------------
• The handle is shared by every caller in the process, so callers need a
  single place to ask "may I send a command right now?".

• Lifecycle transitions (connect, ready, error, close, reconnecting) are
  observable through explicit subscriptions instead of ad-hoc listeners.

• Gunicorn / Uvicorn workers often `fork()` after import time. A handle
  created in the parent must not be reused by the child.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import ClassVar

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from .config import ConnectionConfig
from .errors import StoreConnectionError

log = logging.getLogger("RedisClient")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"
    ERRORED = "errored"


class LifecycleEvent(str, Enum):
    CONNECT = "connect"
    READY = "ready"
    ERROR = "error"
    CLOSE = "close"
    RECONNECTING = "reconnecting"


LifecycleCallback = Callable[[LifecycleEvent, Exception | None], Awaitable[None] | None]
ClientFactory = Callable[[ConnectionConfig], Redis]

_STATE_EVENTS = {
    ConnectionState.CONNECTING: LifecycleEvent.CONNECT,
    ConnectionState.READY: LifecycleEvent.READY,
    ConnectionState.ERRORED: LifecycleEvent.ERROR,
    ConnectionState.CLOSED: LifecycleEvent.CLOSE,
    ConnectionState.RECONNECTING: LifecycleEvent.RECONNECTING,
}

# States in which a command may wait in the offline queue
_PENDING_STATES = frozenset(
    {ConnectionState.CONNECTING, ConnectionState.RECONNECTING, ConnectionState.ERRORED}
)


def create_redis_client(config: ConnectionConfig) -> Redis:
    """
    Build the redis-py asyncio client for a configuration.

    redis-py's own retry loop is disabled: connection establishment is
    retried by RedisManager according to config.retry_strategy, and commands
    are never retried by this layer.
    """
    return Redis(
        host=config.host,
        port=config.port,
        password=config.password,
        db=config.db,
        decode_responses=True,
        encoding="utf-8",
        socket_connect_timeout=config.connect_timeout,
        retry=Retry(NoBackoff(), 0),
    )


class ConnectionHandle:
    """
    Wraps the live redis-py client together with its connection state.

    States: DISCONNECTED, CONNECTING, READY, RECONNECTING, CLOSED, ERRORED.
    The handle is mutated only by RedisManager; the command facade only
    calls acquire() to obtain the client for a single command.
    """

    # seconds between INFO polls while the server is still loading its dataset
    _LOADING_POLL_CAP: ClassVar[float] = 1.0

    def __init__(
        self,
        config: ConnectionConfig,
        client_factory: ClientFactory | None = None,
    ):
        self.config = config
        self._client_factory = client_factory or create_redis_client
        self._client: Redis | None = None
        self._state = ConnectionState.DISCONNECTED
        self._last_error: Exception | None = None
        self._failed_attempts = 0
        self._subscribers: dict[LifecycleEvent, list[LifecycleCallback]] = {
            event: [] for event in LifecycleEvent
        }
        self._changed = asyncio.Condition()
        self._pid = os.getpid()

    # ---------- introspection ----------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def failed_attempts(self) -> int:
        """Total failed connection attempts over the handle's lifetime."""
        return self._failed_attempts

    @property
    def client(self) -> Redis | None:
        """Raw redis-py client (None until first activation or after close)."""
        return self._client

    # ---------- subscriptions ----------------------------------------------

    def subscribe(
        self, event: LifecycleEvent, callback: LifecycleCallback
    ) -> Callable[[], None]:
        """
        Register a callback for a lifecycle event.

        The callback receives the event and the error that caused it (only
        set for ERROR and for CLOSE after a failure). It may be sync or async.

        Returns:
            A callable that removes the subscription
        """
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    async def _notify(self, event: LifecycleEvent, error: Exception | None) -> None:
        for callback in list(self._subscribers[event]):
            try:
                result = callback(event, error)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                log.error(
                    "Redis lifecycle callback for '%s' failed: %s",
                    event.value,
                    exc,
                    exc_info=True,
                )

    # ---------- life-cycle (driven by RedisManager) ------------------------

    async def transition(
        self, state: ConnectionState, error: Exception | None = None
    ) -> None:
        """
        Move to a new state, wake queued commands and notify subscribers.

        Raises:
            StoreConnectionError: the handle is CLOSED (a closed handle is final)
        """
        async with self._changed:
            previous = self._state
            if previous is ConnectionState.CLOSED and state is not ConnectionState.CLOSED:
                raise StoreConnectionError(
                    f"Redis handle is closed; cannot move to {state.value}",
                    state=previous.value,
                )
            self._state = state
            if state is ConnectionState.ERRORED:
                self._failed_attempts += 1
            if error is not None:
                self._last_error = error
            self._changed.notify_all()

        if error is not None:
            log.warning(
                "Redis %s -> %s (%s): %s",
                previous.value,
                state.value,
                self.config.safe_url,
                error,
            )
        else:
            log.info("Redis %s -> %s (%s)", previous.value, state.value, self.config.safe_url)

        event = _STATE_EVENTS.get(state)
        if event is not None:
            await self._notify(event, error)

    async def open(self) -> None:
        """
        Open the transport and run the optional ready check.

        Raises whatever the transport raises; the caller decides on retries.
        """
        self._check_pid()
        if self._client is None:
            self._client = self._client_factory(self.config)
        # close() may drop self._client while we are waiting on the server
        client = self._client
        await client.ping()
        if self.config.enable_ready_check:
            await self._wait_until_loaded(client)

    async def _wait_until_loaded(self, client: Redis) -> None:
        """Poll INFO persistence until the server has finished loading its dataset."""
        while True:
            if self._state is ConnectionState.CLOSED:
                return
            info = await client.info("persistence")
            if not int(info.get("loading", 0)):
                return
            eta = float(info.get("loading_eta_seconds", 1))
            log.info("Redis is loading the dataset in memory (eta %ss)", eta)
            await asyncio.sleep(min(max(eta, 0.1), self._LOADING_POLL_CAP))

    async def close(self, error: Exception | None = None) -> None:
        """Release the transport and move to CLOSED. No-op when already closed."""
        if self._state is ConnectionState.CLOSED:
            log.debug("Redis handle already closed")
            return

        client, self._client = self._client, None
        if client is not None and self._pid == os.getpid():
            try:
                await client.aclose()
            except Exception as exc:
                log.warning("Error while closing Redis client: %s", exc)

        await self.transition(ConnectionState.CLOSED, error)

    # ---------- access helpers ---------------------------------------------

    async def acquire(self) -> Redis:
        """
        Return the client for one command.

        When the handle is (re)connecting and the offline queue is enabled,
        waits for READY; otherwise fails fast with StoreConnectionError.
        """
        self._check_pid()
        if self._state is ConnectionState.READY and self._client is not None:
            return self._client

        if self._state not in _PENDING_STATES or not self.config.enable_offline_queue:
            raise StoreConnectionError(
                f"Redis connection is {self._state.value}", state=self._state.value
            )

        limit = self.config.max_retries_per_request
        start = self._failed_attempts

        def settled() -> bool:
            if self._state in (ConnectionState.READY, ConnectionState.CLOSED):
                return True
            return limit is not None and self._failed_attempts - start > limit

        log.debug("Queueing Redis command until connection is ready")
        async with self._changed:
            await self._changed.wait_for(settled)

        if self._state is ConnectionState.READY and self._client is not None:
            return self._client
        if self._state is ConnectionState.CLOSED:
            raise StoreConnectionError(
                "Redis connection closed while command was queued",
                state=self._state.value,
            )
        raise StoreConnectionError(
            f"Redis reconnection failed {self._failed_attempts - start} times "
            "while command was queued",
            state=self._state.value,
        )

    def _check_pid(self) -> None:
        pid = os.getpid()
        if pid != self._pid:
            # process forked – the inherited socket belongs to the parent
            log.error("Redis handle created in PID %s used in PID %s", self._pid, pid)
            raise StoreConnectionError(
                f"Redis handle belongs to PID {self._pid}; create a new manager in PID {pid}",
                state=self._state.value,
            )

    def __repr__(self) -> str:
        return f"ConnectionHandle({self.config.safe_url}, state={self._state.value})"
