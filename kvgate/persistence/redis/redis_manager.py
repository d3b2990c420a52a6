"""
Redis Manager for kvgate connection lifecycle management.

Owns the single ConnectionHandle of the process: creates it, activates it
with retry/backoff, recovers it after steady-state drops and releases it on
shutdown. Every command goes through RedisManager.run() so that transport and
protocol failures are mapped to the kvgate error taxonomy in one place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis import exceptions as redis_exceptions
from redis.asyncio import Redis

from .config import ConnectionConfig
from .errors import CommandError, StoreConnectionError
from .keys import KeyPrefixer
from .reconnection import ReconnectionStrategy
from .redis_client import ClientFactory, ConnectionHandle, ConnectionState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures of the transport itself (as opposed to replies carrying an error)
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    redis_exceptions.ConnectionError,
    redis_exceptions.TimeoutError,
    ConnectionError,
    TimeoutError,
    OSError,
)


class RedisManager:
    """
    Application-level owner of the Redis connection handle.

    Construct exactly one per process and pass it to consumers explicitly
    (FastAPI app state, CLI commands, tests).

    Example:
        manager = RedisManager()
        manager.initialize(settings.redis_connection_config())
        await manager.activate()
        ...
        await manager.deactivate()
    """

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory
        self._handle: ConnectionHandle | None = None
        self._keys = KeyPrefixer()
        self._reconnect_task: asyncio.Task | None = None
        self._retry: ReconnectionStrategy | None = None

    # ---------- life-cycle --------------------------------------------------

    def initialize(self, config: ConnectionConfig) -> ConnectionHandle:
        """
        Create the connection handle in DISCONNECTED state.

        The transport is not opened here; call activate() once at startup.
        Calling initialize() again returns the existing handle.
        """
        if self._handle is not None:
            logger.info("Redis handle already initialized - skipping")
            return self._handle

        logger.info(
            f"Setting up Redis handle for {config.safe_url} "
            f"(prefix: '{config.key_prefix}', offline queue: {config.enable_offline_queue})"
        )
        self._handle = ConnectionHandle(config, client_factory=self._client_factory)
        self._keys = KeyPrefixer(prefix=config.key_prefix)
        self._retry = ReconnectionStrategy(config.retry_strategy)
        return self._handle

    async def activate(self) -> None:
        """
        Open the transport, retrying per the configured retry strategy.

        Raises:
            StoreConnectionError: if the strategy gives up (handle is CLOSED
                afterwards) or the handle was already closed
        """
        handle = self.handle
        if handle.state is ConnectionState.READY:
            logger.debug("Redis handle already ready")
            return
        if handle.state is ConnectionState.CLOSED:
            raise StoreConnectionError(
                "Cannot activate a closed Redis handle", state=handle.state.value
            )

        try:
            await self._establish(reconnect=False)
        except StoreConnectionError as e:
            logger.error(f"❌ Redis activation failed: {e}")
            raise

        logger.info(f"✅ Redis ready: {handle.config.safe_url}")

    async def deactivate(self) -> None:
        """
        Close the transport and move the handle to CLOSED.

        Commands waiting in the offline queue are abandoned and fail with
        StoreConnectionError. Idempotent: a second call is a no-op.
        """
        if self._handle is None or self._handle.state is ConnectionState.CLOSED:
            logger.info("Redis handle not active, skipping deactivate")
            return

        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("Shutting down Redis connection...")
        await self._handle.close()
        logger.info("Redis connection shut down successfully")

    async def ping(self) -> str:
        """
        Liveness probe used by the health check.

        Raises:
            StoreConnectionError: if the handle is not READY or the probe fails
        """
        handle = self.handle
        if not handle.is_ready:
            raise StoreConnectionError(
                f"Redis connection is {handle.state.value}", state=handle.state.value
            )
        result = await self.run("PING", lambda redis: redis.ping())
        if result is not True and result != "PONG":
            raise CommandError(f"Unexpected PING reply: {result!r}", command="PING")
        return "PONG"

    # ---------- connection state machine -----------------------------------

    async def _establish(self, *, reconnect: bool) -> None:
        handle = self.handle
        retry = self._retry or ReconnectionStrategy(handle.config.retry_strategy)
        retry.reset()

        if reconnect:
            await handle.transition(ConnectionState.RECONNECTING)

        while True:
            await handle.transition(ConnectionState.CONNECTING)
            try:
                await handle.open()
            except TRANSPORT_ERRORS as exc:
                retry.record_failure()
                await handle.transition(ConnectionState.ERRORED, exc)
                delay = retry.next_delay()
                if delay is None:
                    await handle.close(exc)
                    raise StoreConnectionError(
                        f"Gave up connecting to {handle.config.safe_url} "
                        f"after {retry.attempt_count} attempts: {exc}",
                        state=handle.state.value,
                    ) from exc

                await handle.transition(ConnectionState.RECONNECTING)
                await retry.wait(delay)
                if handle.state is ConnectionState.CLOSED:
                    raise StoreConnectionError(
                        "Redis handle closed while reconnecting",
                        state=handle.state.value,
                    ) from exc
                continue
            except redis_exceptions.RedisError as exc:
                # error reply during the handshake (auth, ACL, SELECT): not retried
                await handle.transition(ConnectionState.ERRORED, exc)
                await handle.close(exc)
                raise StoreConnectionError(
                    f"Redis at {handle.config.safe_url} rejected the connection: {exc}",
                    state=handle.state.value,
                ) from exc

            if handle.state is ConnectionState.CLOSED:
                raise StoreConnectionError(
                    "Redis handle closed while connecting", state=handle.state.value
                )
            retry.reset()
            await handle.transition(ConnectionState.READY)
            return

    async def _reconnect(self) -> None:
        try:
            await self._establish(reconnect=True)
        except StoreConnectionError as e:
            logger.error(f"❌ Redis reconnection abandoned: {e}")

    async def _connection_lost(self, exc: BaseException) -> None:
        """Start the background reconnect loop after a steady-state drop."""
        handle = self.handle
        if handle.state is not ConnectionState.READY:
            return
        error = exc if isinstance(exc, Exception) else None
        await handle.transition(ConnectionState.ERRORED, error)
        self._reconnect_task = asyncio.create_task(
            self._reconnect(), name="kvgate-redis-reconnect"
        )

    # ---------- command dispatch -------------------------------------------

    async def run(self, command: str, call: Callable[[Redis], Awaitable[T]]) -> T:
        """
        Execute one command against the active client.

        Args:
            command: Command name, for logs and errors
            call: Receives the redis-py client and returns the reply awaitable

        Raises:
            StoreConnectionError: handle not ready or transport failure
            CommandError: Redis replied with an error
        """
        handle = self.handle
        redis = await handle.acquire()
        try:
            return await call(redis)
        except redis_exceptions.ResponseError as exc:
            raise CommandError(str(exc), command=command) from exc
        except TRANSPORT_ERRORS as exc:
            logger.error(f"Redis {command} failed on transport: {exc}")
            await self._connection_lost(exc)
            raise StoreConnectionError(
                f"Redis {command} failed: {exc}", state=handle.state.value
            ) from exc
        except redis_exceptions.RedisError as exc:
            raise CommandError(str(exc), command=command) from exc

    # ---------- accessors ---------------------------------------------------

    @property
    def handle(self) -> ConnectionHandle:
        if self._handle is None:
            raise StoreConnectionError(
                "RedisManager not initialized. Call initialize() first.",
                state=ConnectionState.DISCONNECTED.value,
            )
        return self._handle

    @property
    def keys(self) -> KeyPrefixer:
        return self._keys

    def is_initialized(self) -> bool:
        return self._handle is not None

    @property
    def is_ready(self) -> bool:
        return self._handle is not None and self._handle.is_ready

    async def get_health_status(self) -> dict[str, Any]:
        """
        Health information for monitoring.

        Never raises: an unreachable store is reported, not propagated.
        """
        if self._handle is None:
            return {"initialized": False, "message": "Redis not initialized"}

        handle = self._handle
        status: dict[str, Any] = {
            "initialized": True,
            "state": handle.state.value,
            "url": handle.config.safe_url,
            "key_prefix": handle.config.key_prefix,
            "failed_attempts": handle.failed_attempts,
            "retry": self._retry.get_status() if self._retry else None,
            "ping": None,
            "error": str(handle.last_error) if handle.last_error else None,
        }
        try:
            status["ping"] = await self.ping()
            status["error"] = None
        except (StoreConnectionError, CommandError) as e:
            status["error"] = str(e)
        return status
