"""
Store endpoints: thin HTTP wrappers around the RedisCommands facade.

Errors are not handled here; ErrorHandlerMiddleware renders
StoreConnectionError as 503 and CommandError as 400.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from kvgate.api.dependencies.redis_dependencies import get_redis_commands
from kvgate.api.models.store_models import (
    CountResponse,
    ExpireRequest,
    HashFieldRequest,
    IncrementRequest,
    JsonDocumentRequest,
    ListPushRequest,
    ScoredMemberResponse,
    SetMembersRequest,
    SetValueRequest,
    ValueResponse,
    ZAddRequest,
)
from kvgate.core.logging.logger import get_api_logger
from kvgate.persistence.redis.ops import RedisCommands

logger = get_api_logger(__name__)
router = APIRouter(tags=["Store"])


# ---- strings & key meta ---------------------------------------------------


@router.get("/keys", response_model=list[str])
async def list_keys(
    pattern: str = Query(default="*"),
    redis: RedisCommands = Depends(get_redis_commands),
) -> list[str]:
    return await redis.keys(pattern)


@router.get("/keys/{key}", response_model=ValueResponse)
async def get_value(
    key: str, redis: RedisCommands = Depends(get_redis_commands)
) -> ValueResponse:
    return ValueResponse(key=key, value=await redis.get(key))


@router.put("/keys/{key}")
async def set_value(
    key: str,
    body: SetValueRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> dict[str, str]:
    result = await redis.set(key, body.value, ttl=body.ttl)
    logger.debug(f"SET {key} (ttl={body.ttl})")
    return {"key": key, "result": result}


@router.delete("/keys/{key}", response_model=CountResponse)
async def delete_key(
    key: str, redis: RedisCommands = Depends(get_redis_commands)
) -> CountResponse:
    return CountResponse(key=key, count=await redis.delete([key]))


@router.get("/keys/{key}/ttl", response_model=CountResponse)
async def get_ttl(
    key: str, redis: RedisCommands = Depends(get_redis_commands)
) -> CountResponse:
    """Remaining TTL: -1 when no expiry is set, -2 when the key is missing."""
    return CountResponse(key=key, count=await redis.ttl(key))


@router.post("/keys/{key}/expire", response_model=CountResponse)
async def expire_key(
    key: str,
    body: ExpireRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    return CountResponse(key=key, count=await redis.expire(key, body.seconds))


@router.post("/keys/{key}/incr", response_model=CountResponse)
async def increment(
    key: str,
    body: IncrementRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    if body.by == 1:
        value = await redis.incr(key)
    else:
        value = await redis.incrby(key, body.by)
    return CountResponse(key=key, count=value)


# ---- hashes -----------------------------------------------------------------


@router.get("/hashes/{key}", response_model=dict[str, str])
async def get_hash(
    key: str, redis: RedisCommands = Depends(get_redis_commands)
) -> dict[str, str]:
    return await redis.hgetall(key)


@router.put("/hashes/{key}/{field}", response_model=CountResponse)
async def set_hash_field(
    key: str,
    field: str,
    body: HashFieldRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    return CountResponse(key=key, count=await redis.hset(key, field, body.value))


# ---- lists ------------------------------------------------------------------


@router.get("/lists/{key}", response_model=list[str])
async def get_list_range(
    key: str,
    start: int = 0,
    stop: int = -1,
    redis: RedisCommands = Depends(get_redis_commands),
) -> list[str]:
    return await redis.lrange(key, start, stop)


@router.post("/lists/{key}", response_model=CountResponse)
async def push_to_list(
    key: str,
    body: ListPushRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    push = redis.lpush if body.head else redis.rpush
    return CountResponse(key=key, count=await push(key, body.values))


# ---- sets -------------------------------------------------------------------


@router.get("/sets/{key}", response_model=list[str])
async def get_set_members(
    key: str, redis: RedisCommands = Depends(get_redis_commands)
) -> list[str]:
    return sorted(await redis.smembers(key))


@router.post("/sets/{key}", response_model=CountResponse)
async def add_set_members(
    key: str,
    body: SetMembersRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    return CountResponse(key=key, count=await redis.sadd(key, body.members))


# ---- sorted sets ------------------------------------------------------------


@router.get("/zsets/{key}", response_model=list[ScoredMemberResponse])
async def get_sorted_range(
    key: str,
    start: int = 0,
    stop: int = -1,
    redis: RedisCommands = Depends(get_redis_commands),
) -> list[ScoredMemberResponse]:
    pairs = await redis.zrange_with_scores(key, start, stop)
    return [ScoredMemberResponse(member=p.member, score=p.score) for p in pairs]


@router.post("/zsets/{key}", response_model=CountResponse)
async def add_sorted_member(
    key: str,
    body: ZAddRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> CountResponse:
    return CountResponse(key=key, count=await redis.zadd(key, body.score, body.member))


# ---- JSON documents ---------------------------------------------------------


@router.get("/json/{key}", response_model=ValueResponse)
async def get_document(
    key: str,
    path: str | None = None,
    redis: RedisCommands = Depends(get_redis_commands),
) -> ValueResponse:
    return ValueResponse(key=key, value=await redis.get_json(key, path))


@router.put("/json/{key}")
async def set_document(
    key: str,
    body: JsonDocumentRequest,
    redis: RedisCommands = Depends(get_redis_commands),
) -> dict[str, Any]:
    result = await redis.set_json(key, body.path, body.value)
    return {"key": key, "result": result}
