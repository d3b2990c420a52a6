# kvgate/persistence/redis/ops.py

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from redis.asyncio import Redis

from .errors import CommandError
from .redis_manager import RedisManager
from .serde import ROOT_PATH, dumps_document, loads_document

logger = logging.getLogger("RedisCommands")

Scalar = str | int | float


@dataclass(frozen=True)
class ScoredMember:
    """One entry of a sorted set range read WITHSCORES."""

    member: str
    score: float


def _as_list(values: Scalar | Sequence[Scalar], what: str) -> list[Scalar]:
    """Normalize a single value or an ordered sequence into a non-empty list."""
    if isinstance(values, str | bytes | int | float):
        return [values]
    items = list(values)
    if not items:
        raise ValueError(f"At least one {what} is required")
    return items


def decode_scored_members(reply: Sequence[Any]) -> list[ScoredMember]:
    """
    Decode a ZRANGE ... WITHSCORES reply into ScoredMember pairs.

    Accepts the flattened RESP2 form [member, score, member, score, ...] and
    the nested [[member, score], ...] form that RESP3 servers send.
    """
    if not reply:
        return []
    if isinstance(reply[0], list | tuple):
        return [ScoredMember(member=m, score=float(s)) for m, s in reply]
    if len(reply) % 2:
        raise CommandError(
            f"Malformed WITHSCORES reply of odd length {len(reply)}", command="ZRANGE"
        )
    return [
        ScoredMember(member=reply[i], score=float(reply[i + 1]))
        for i in range(0, len(reply), 2)
    ]


class RedisCommands:
    """
    Typed command facade over the RedisManager's connection handle.

    One method per supported command. Every key argument is prefixed with
    the configured key prefix. Variadic arguments (several keys, members or
    values) are passed as an ordered sequence; a single string is accepted
    as a one-element sequence.

    All methods raise:
        StoreConnectionError: the handle is not ready / transport failed
        CommandError: Redis rejected the command (e.g. WRONGTYPE)

    Example:
        commands = RedisCommands(manager)
        await commands.set("session:42", "alive", ttl=60)
        await commands.zadd("board", 5, "x")
        pairs = await commands.zrange_with_scores("board", 0, -1)
    """

    def __init__(self, manager: RedisManager):
        self._manager = manager

    @property
    def client(self) -> Redis | None:
        """Direct access to the redis-py client (no prefixing, no error mapping)."""
        return self._manager.handle.client

    def _key(self, key: str) -> str:
        return self._manager.keys.key(key)

    def _keys(self, keys: str | Sequence[str]) -> list[str]:
        return self._manager.keys.keys(_as_list(keys, "key"))

    # =========================================================================
    # SECTION: String Operations
    # =========================================================================
    async def set(self, key: str, value: Scalar, ttl: int | None = None) -> str:
        """
        Sets the string value of a key, with optional expiration.

        Args:
            key: The key (prefix applied transparently).
            value: The value to store.
            ttl: Optional time to live in seconds; SETEX is used when given.

        Returns:
            "OK" once Redis acknowledged the write.
        """
        full_key = self._key(key)
        if ttl:
            result = await self._manager.run(
                "SETEX", lambda redis: redis.setex(full_key, ttl, value)
            )
        else:
            result = await self._manager.run(
                "SET", lambda redis: redis.set(full_key, value)
            )
        if not result:
            raise CommandError(f"Write not acknowledged for key '{key}'", command="SET")
        return "OK"

    async def get(self, key: str) -> str | None:
        """Returns the value of a key, or None if the key does not exist."""
        full_key = self._key(key)
        return await self._manager.run("GET", lambda redis: redis.get(full_key))

    async def incr(self, key: str) -> int:
        full_key = self._key(key)
        return await self._manager.run("INCR", lambda redis: redis.incr(full_key))

    async def incrby(self, key: str, increment: int) -> int:
        """Atomically add `increment` (may be negative); missing keys start at 0."""
        full_key = self._key(key)
        return await self._manager.run(
            "INCRBY", lambda redis: redis.incrby(full_key, increment)
        )

    async def decr(self, key: str) -> int:
        full_key = self._key(key)
        return await self._manager.run("DECR", lambda redis: redis.decr(full_key))

    async def decrby(self, key: str, decrement: int) -> int:
        full_key = self._key(key)
        return await self._manager.run(
            "DECRBY", lambda redis: redis.decrby(full_key, decrement)
        )

    # =========================================================================
    # SECTION: Key Operations
    # =========================================================================
    async def delete(self, keys: str | Sequence[str]) -> int:
        """
        Deletes one or more keys.

        Returns:
            Number of keys removed; 0 when none existed.
        """
        full_keys = self._keys(keys)
        return await self._manager.run("DEL", lambda redis: redis.delete(*full_keys))

    async def exists(self, keys: str | Sequence[str]) -> int:
        """
        Checks if one or more keys exist.

        Returns:
            Number of the given keys that exist (a key named twice counts twice).
        """
        full_keys = self._keys(keys)
        return await self._manager.run(
            "EXISTS", lambda redis: redis.exists(*full_keys)
        )

    async def expire(self, key: str, seconds: int) -> int:
        """Returns 1 if the timeout was set, 0 if the key does not exist."""
        full_key = self._key(key)
        result = await self._manager.run(
            "EXPIRE", lambda redis: redis.expire(full_key, seconds)
        )
        return int(result)

    async def ttl(self, key: str) -> int:
        """
        Get remaining Time To Live (TTL) for a key in seconds.

        Returns:
            - TTL in seconds
            - -1 if the key exists but has no associated expire time
            - -2 if the key does not exist
        """
        full_key = self._key(key)
        return await self._manager.run("TTL", lambda redis: redis.ttl(full_key))

    async def keys(self, pattern: str) -> list[str]:
        """
        Lists keys matching a glob pattern, within the configured prefix.

        The prefix is added to the pattern and stripped from the results.
        KEYS blocks the server while it scans; avoid on large databases.
        """
        full_pattern = self._manager.keys.pattern(pattern)
        found = await self._manager.run(
            "KEYS", lambda redis: redis.keys(full_pattern)
        )
        return [self._manager.keys.strip(k) for k in found]

    async def flushdb(self) -> str:
        """Removes every key of the selected database (not only prefixed ones)."""
        logger.warning("FLUSHDB requested on %s", self._manager.handle.config.safe_url)
        await self._manager.run("FLUSHDB", lambda redis: redis.flushdb())
        return "OK"

    async def ping(self) -> str:
        return await self._manager.ping()

    # =========================================================================
    # SECTION: Hash Operations
    # =========================================================================
    async def hset(self, key: str, field: str, value: Scalar) -> int:
        """Returns 1 if the field was created, 0 if it was updated."""
        full_key = self._key(key)
        return await self._manager.run(
            "HSET", lambda redis: redis.hset(full_key, field, value)
        )

    async def hget(self, key: str, field: str) -> str | None:
        full_key = self._key(key)
        return await self._manager.run(
            "HGET", lambda redis: redis.hget(full_key, field)
        )

    async def hgetall(self, key: str) -> dict[str, str]:
        """Returns all fields of a hash; an empty dict when the key is missing."""
        full_key = self._key(key)
        result = await self._manager.run(
            "HGETALL", lambda redis: redis.hgetall(full_key)
        )
        return dict(result or {})

    async def hdel(self, key: str, fields: str | Sequence[str]) -> int:
        full_key = self._key(key)
        names = _as_list(fields, "field")
        return await self._manager.run(
            "HDEL", lambda redis: redis.hdel(full_key, *names)
        )

    # =========================================================================
    # SECTION: List Operations
    # =========================================================================
    async def lpush(self, key: str, values: Scalar | Sequence[Scalar]) -> int:
        """
        Prepends one or more values to a list.

        Values are pushed one after the other, so ["a", "b"] leaves "b" at
        the head.

        Returns:
            Length of the list after the push.
        """
        full_key = self._key(key)
        items = _as_list(values, "value")
        return await self._manager.run(
            "LPUSH", lambda redis: redis.lpush(full_key, *items)
        )

    async def rpush(self, key: str, values: Scalar | Sequence[Scalar]) -> int:
        """Appends one or more values to a list; returns the new length."""
        full_key = self._key(key)
        items = _as_list(values, "value")
        return await self._manager.run(
            "RPUSH", lambda redis: redis.rpush(full_key, *items)
        )

    async def lpop(self, key: str) -> str | None:
        """Removes and returns the first element; None when the list is empty."""
        full_key = self._key(key)
        return await self._manager.run("LPOP", lambda redis: redis.lpop(full_key))

    async def rpop(self, key: str) -> str | None:
        full_key = self._key(key)
        return await self._manager.run("RPOP", lambda redis: redis.rpop(full_key))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """
        Returns a range of elements from a list.

        Args:
            key: The list key.
            start: Start index (0-based; negative counts from the end).
            stop: Stop index, inclusive (-1 is the last element).
        """
        full_key = self._key(key)
        return await self._manager.run(
            "LRANGE", lambda redis: redis.lrange(full_key, start, stop)
        )

    async def llen(self, key: str) -> int:
        full_key = self._key(key)
        return await self._manager.run("LLEN", lambda redis: redis.llen(full_key))

    # =========================================================================
    # SECTION: Set Operations
    # =========================================================================
    async def sadd(self, key: str, members: str | Sequence[str]) -> int:
        """
        Adds one or more members to a set.

        Returns:
            Number of members that were newly added (duplicates are not counted).
        """
        full_key = self._key(key)
        items = _as_list(members, "member")
        return await self._manager.run(
            "SADD", lambda redis: redis.sadd(full_key, *items)
        )

    async def smembers(self, key: str) -> list[str]:
        """Returns all members of a set, in no particular order."""
        full_key = self._key(key)
        result = await self._manager.run(
            "SMEMBERS", lambda redis: redis.smembers(full_key)
        )
        return list(result)

    async def srem(self, key: str, members: str | Sequence[str]) -> int:
        full_key = self._key(key)
        items = _as_list(members, "member")
        return await self._manager.run(
            "SREM", lambda redis: redis.srem(full_key, *items)
        )

    async def sismember(self, key: str, member: str) -> int:
        """Returns 1 if `member` belongs to the set, 0 otherwise."""
        full_key = self._key(key)
        result = await self._manager.run(
            "SISMEMBER", lambda redis: redis.sismember(full_key, member)
        )
        return int(result)

    async def scard(self, key: str) -> int:
        full_key = self._key(key)
        return await self._manager.run("SCARD", lambda redis: redis.scard(full_key))

    async def spop(self, key: str) -> str | None:
        """Removes and returns a random member; None when the set is empty."""
        full_key = self._key(key)
        return await self._manager.run("SPOP", lambda redis: redis.spop(full_key))

    async def srandmember(
        self, key: str, count: int | None = None
    ) -> str | list[str] | None:
        """
        Returns random members without removing them.

        Without `count`: a single member, or None for an empty set.
        With `count`: a list (distinct members when positive, possibly
        repeated when negative; empty for an empty set).
        """
        full_key = self._key(key)
        if count is None:
            return await self._manager.run(
                "SRANDMEMBER", lambda redis: redis.srandmember(full_key)
            )
        result = await self._manager.run(
            "SRANDMEMBER", lambda redis: redis.srandmember(full_key, count)
        )
        return list(result or [])

    async def smove(self, source: str, destination: str, member: str) -> int:
        """Atomically moves `member`; returns 0 if it was not in `source`."""
        src, dst = self._key(source), self._key(destination)
        result = await self._manager.run(
            "SMOVE", lambda redis: redis.smove(src, dst, member)
        )
        return int(result)

    async def sunion(self, keys: str | Sequence[str]) -> list[str]:
        full_keys = self._keys(keys)
        result = await self._manager.run(
            "SUNION", lambda redis: redis.sunion(full_keys)
        )
        return list(result)

    async def sinter(self, keys: str | Sequence[str]) -> list[str]:
        full_keys = self._keys(keys)
        result = await self._manager.run(
            "SINTER", lambda redis: redis.sinter(full_keys)
        )
        return list(result)

    async def sdiff(self, keys: str | Sequence[str]) -> list[str]:
        """Members of the first set that are in none of the following sets."""
        full_keys = self._keys(keys)
        result = await self._manager.run("SDIFF", lambda redis: redis.sdiff(full_keys))
        return list(result)

    # =========================================================================
    # SECTION: Sorted Set Operations
    # =========================================================================
    async def zadd(self, key: str, score: float, member: str) -> int:
        """Returns 1 if the member was added, 0 if only its score was updated."""
        full_key = self._key(key)
        return await self._manager.run(
            "ZADD", lambda redis: redis.zadd(full_key, {member: score})
        )

    async def zrange(self, key: str, start: int, stop: int) -> list[str]:
        """Members ranked between start and stop (inclusive), ascending by score."""
        full_key = self._key(key)
        return await self._manager.run(
            "ZRANGE", lambda redis: redis.zrange(full_key, start, stop)
        )

    async def zrange_with_scores(
        self, key: str, start: int, stop: int
    ) -> list[ScoredMember]:
        full_key = self._key(key)
        # raw command so the reply keeps the wire's member/score alternation
        reply = await self._manager.run(
            "ZRANGE",
            lambda redis: redis.execute_command(
                "ZRANGE", full_key, start, stop, "WITHSCORES"
            ),
        )
        try:
            return decode_scored_members(reply)
        except ValueError as exc:
            raise CommandError(f"Invalid score in reply: {exc}", command="ZRANGE") from exc

    async def zrem(self, key: str, members: str | Sequence[str]) -> int:
        full_key = self._key(key)
        items = _as_list(members, "member")
        return await self._manager.run(
            "ZREM", lambda redis: redis.zrem(full_key, *items)
        )

    # =========================================================================
    # SECTION: JSON Document Operations (requires the RedisJSON module)
    # =========================================================================
    async def set_json(self, key: str, path: str, value: Any) -> str:
        """
        Stores a JSON document (or sub-document at `path`) with JSON.SET.

        Args:
            key: The key.
            path: JSON path, "." or "$" for the root.
            value: Any JSON-serializable value or a pydantic BaseModel.

        Returns:
            "OK"
        """
        full_key = self._key(key)
        try:
            payload = dumps_document(value)
        except (TypeError, ValueError) as exc:
            raise CommandError(f"Cannot encode document: {exc}", command="JSON.SET") from exc
        result = await self._manager.run(
            "JSON.SET",
            lambda redis: redis.execute_command("JSON.SET", full_key, path, payload),
        )
        if result not in ("OK", b"OK", True):
            raise CommandError(
                f"Document not stored for key '{key}' at path '{path}'",
                command="JSON.SET",
            )
        return "OK"

    async def get_json(
        self,
        key: str,
        path: str | None = None,
        model: type[BaseModel] | None = None,
    ) -> Any:
        """
        Reads a JSON document with JSON.GET.

        Args:
            key: The key.
            path: JSON path; defaults to the document root.
            model: Optional BaseModel class to validate the document into.

        Returns:
            The decoded document, or None if the key does not exist.
        """
        full_key = self._key(key)
        json_path = path or ROOT_PATH
        raw = await self._manager.run(
            "JSON.GET",
            lambda redis: redis.execute_command("JSON.GET", full_key, json_path),
        )
        try:
            return loads_document(raw, model)
        except ValueError as exc:
            raise CommandError(f"Cannot decode document: {exc}", command="JSON.GET") from exc
