"""
Tests for the RedisCommands facade, run against an in-memory fakeredis server.
"""

import pytest
import pytest_asyncio
from pydantic import BaseModel
from redis import exceptions as redis_exceptions

from kvgate.persistence.redis.errors import CommandError, StoreConnectionError
from kvgate.persistence.redis.ops import (
    RedisCommands,
    ScoredMember,
    decode_scored_members,
)
from kvgate.persistence.redis.redis_manager import RedisManager


@pytest.mark.asyncio
class TestStrings:
    async def test_set_then_get(self, commands):
        assert await commands.set("greeting", "hello") == "OK"
        assert await commands.get("greeting") == "hello"

    async def test_get_missing_key_is_none(self, commands):
        assert await commands.get("nope") is None

    async def test_set_with_ttl_uses_expiry(self, commands):
        await commands.set("session", "alive", ttl=60)

        remaining = await commands.ttl("session")

        assert 0 < remaining <= 60

    async def test_set_with_zero_ttl_is_plain_set(self, commands):
        await commands.set("forever", "v", ttl=0)

        assert await commands.ttl("forever") == -1

    async def test_numbers_are_stored_as_strings(self, commands):
        await commands.set("n", 42)

        assert await commands.get("n") == "42"

    async def test_counters(self, commands):
        assert await commands.incr("hits") == 1
        assert await commands.incr("hits") == 2
        assert await commands.incrby("hits", 10) == 12
        assert await commands.decr("hits") == 11
        assert await commands.decrby("hits", 5) == 6

    async def test_decr_missing_key_starts_at_zero(self, commands):
        assert await commands.decr("fresh") == -1

    async def test_incr_non_integer_is_command_error(self, commands):
        await commands.set("text", "abc")

        with pytest.raises(CommandError) as exc_info:
            await commands.incr("text")

        assert exc_info.value.command == "INCR"


@pytest.mark.asyncio
class TestKeyMeta:
    async def test_delete_counts_only_existing_keys(self, commands):
        await commands.set("a", "1")
        await commands.set("b", "2")

        assert await commands.delete(["a", "b", "missing"]) == 2
        assert await commands.delete("a") == 0

    async def test_exists_counts_repeated_keys(self, commands):
        await commands.set("a", "1")

        assert await commands.exists(["a", "a", "missing"]) == 2
        assert await commands.exists("missing") == 0

    async def test_empty_key_sequence_is_rejected(self, commands):
        with pytest.raises(ValueError):
            await commands.delete([])

    async def test_expire_and_ttl(self, commands):
        await commands.set("k", "v")

        assert await commands.ttl("k") == -1
        assert await commands.expire("k", 100) == 1
        assert 0 < await commands.ttl("k") <= 100

    async def test_expire_missing_key(self, commands):
        assert await commands.expire("missing", 10) == 0
        assert await commands.ttl("missing") == -2

    async def test_keys_matches_pattern(self, commands):
        for key in ("user:1", "user:2", "order:1"):
            await commands.set(key, "x")

        assert sorted(await commands.keys("user:*")) == ["user:1", "user:2"]

    async def test_flushdb_removes_everything(self, commands):
        await commands.set("a", "1")

        assert await commands.flushdb() == "OK"
        assert await commands.keys("*") == []

    async def test_ping(self, commands):
        assert await commands.ping() == "PONG"


@pytest.mark.asyncio
class TestHashes:
    async def test_hset_reports_new_fields(self, commands):
        assert await commands.hset("user:1", "name", "ada") == 1
        assert await commands.hset("user:1", "name", "grace") == 0
        assert await commands.hget("user:1", "name") == "grace"

    async def test_hgetall(self, commands):
        await commands.hset("h", "a", "1")
        await commands.hset("h", "b", 2)

        assert await commands.hgetall("h") == {"a": "1", "b": "2"}

    async def test_hgetall_missing_key_is_empty(self, commands):
        assert await commands.hgetall("missing") == {}

    async def test_hget_missing_field(self, commands):
        assert await commands.hget("missing", "field") is None

    async def test_hdel(self, commands):
        await commands.hset("h", "a", "1")
        await commands.hset("h", "b", "2")

        assert await commands.hdel("h", ["a", "zzz"]) == 1
        assert await commands.hgetall("h") == {"b": "2"}

    async def test_wrong_type_is_command_error(self, commands):
        await commands.set("plain", "value")

        with pytest.raises(CommandError, match="WRONGTYPE"):
            await commands.hget("plain", "field")


@pytest.mark.asyncio
class TestLists:
    async def test_lpush_reverses_order(self, commands):
        assert await commands.lpush("l", ["a", "b"]) == 2

        assert await commands.lrange("l", 0, -1) == ["b", "a"]

    async def test_rpush_keeps_order(self, commands):
        await commands.rpush("l", ["a", "b"])
        assert await commands.rpush("l", "c") == 3

        assert await commands.lrange("l", 0, -1) == ["a", "b", "c"]

    async def test_pop_both_ends(self, commands):
        await commands.rpush("l", ["a", "b", "c"])

        assert await commands.lpop("l") == "a"
        assert await commands.rpop("l") == "c"
        assert await commands.llen("l") == 1

    async def test_pop_empty_list_is_none(self, commands):
        assert await commands.lpop("missing") is None
        assert await commands.rpop("missing") is None

    async def test_lrange_partial(self, commands):
        await commands.rpush("l", ["a", "b", "c", "d"])

        assert await commands.lrange("l", 1, 2) == ["b", "c"]
        assert await commands.lrange("l", -2, -1) == ["c", "d"]

    async def test_empty_push_is_rejected(self, commands):
        with pytest.raises(ValueError):
            await commands.rpush("l", [])


@pytest.mark.asyncio
class TestSets:
    async def test_sadd_counts_new_members(self, commands):
        assert await commands.sadd("s", ["a", "b", "a"]) == 2
        assert await commands.sadd("s", "a") == 0
        assert sorted(await commands.smembers("s")) == ["a", "b"]

    async def test_membership_and_cardinality(self, commands):
        await commands.sadd("s", ["a", "b"])

        assert await commands.sismember("s", "a") == 1
        assert await commands.sismember("s", "z") == 0
        assert await commands.scard("s") == 2

    async def test_srem(self, commands):
        await commands.sadd("s", ["a", "b"])

        assert await commands.srem("s", ["a", "z"]) == 1
        assert await commands.smembers("s") == ["b"]

    async def test_spop_and_srandmember(self, commands):
        await commands.sadd("s", ["a", "b", "c"])

        assert await commands.srandmember("s") in {"a", "b", "c"}
        assert await commands.scard("s") == 3
        popped = await commands.spop("s")
        assert popped in {"a", "b", "c"}
        assert await commands.scard("s") == 2

    async def test_srandmember_with_count(self, commands):
        await commands.sadd("s", ["a", "b", "c"])

        sample = await commands.srandmember("s", 2)

        assert len(sample) == 2
        assert set(sample) <= {"a", "b", "c"}

    async def test_empty_set_reads(self, commands):
        assert await commands.spop("missing") is None
        assert await commands.srandmember("missing") is None
        assert await commands.srandmember("missing", 3) == []
        assert await commands.smembers("missing") == []

    async def test_smove(self, commands):
        await commands.sadd("src", ["a"])

        assert await commands.smove("src", "dst", "a") == 1
        assert await commands.smove("src", "dst", "a") == 0
        assert await commands.smembers("dst") == ["a"]

    async def test_set_algebra(self, commands):
        await commands.sadd("x", ["1", "2", "3"])
        await commands.sadd("y", ["2", "3", "4"])

        assert sorted(await commands.sunion(["x", "y"])) == ["1", "2", "3", "4"]
        assert sorted(await commands.sinter(["x", "y"])) == ["2", "3"]
        assert await commands.sdiff(["x", "y"]) == ["1"]


@pytest.mark.asyncio
class TestSortedSets:
    async def test_zadd_reports_new_members(self, commands):
        assert await commands.zadd("z", 5, "x") == 1
        assert await commands.zadd("z", 7, "x") == 0

    async def test_zrange_orders_by_score(self, commands):
        await commands.zadd("z", 3, "c")
        await commands.zadd("z", 1, "a")
        await commands.zadd("z", 2, "b")

        assert await commands.zrange("z", 0, -1) == ["a", "b", "c"]
        assert await commands.zrange("z", 0, 0) == ["a"]

    async def test_zrange_with_scores(self, commands):
        await commands.zadd("z", 5, "x")
        await commands.zadd("z", 1.5, "y")

        pairs = await commands.zrange_with_scores("z", 0, -1)

        assert pairs == [ScoredMember("y", 1.5), ScoredMember("x", 5.0)]
        assert all(isinstance(p.score, float) for p in pairs)

    async def test_zrange_with_scores_missing_key(self, commands):
        assert await commands.zrange_with_scores("missing", 0, -1) == []

    async def test_zrem(self, commands):
        await commands.zadd("z", 1, "a")
        await commands.zadd("z", 2, "b")

        assert await commands.zrem("z", ["a", "missing"]) == 1
        assert await commands.zrange("z", 0, -1) == ["b"]


@pytest.mark.asyncio
class TestKeyPrefixing:
    async def test_keys_are_stored_with_prefix(self, prefixed_manager, raw_client):
        commands = RedisCommands(prefixed_manager)

        await commands.set("k", "v")

        assert await raw_client.get("app:k") == "v"
        assert await raw_client.get("k") is None
        assert await commands.get("k") == "v"

    async def test_multi_key_commands_prefix_every_key(self, prefixed_manager, raw_client):
        commands = RedisCommands(prefixed_manager)
        await raw_client.sadd("app:x", "1", "2")
        await raw_client.sadd("app:y", "2")
        await raw_client.sadd("y", "1")

        assert await commands.sinter(["x", "y"]) == ["2"]
        assert await commands.exists(["x", "y", "missing"]) == 2

    async def test_smove_prefixes_source_and_destination(
        self, prefixed_manager, raw_client
    ):
        commands = RedisCommands(prefixed_manager)
        await commands.sadd("src", "m")

        await commands.smove("src", "dst", "m")

        assert await raw_client.smembers("app:dst") == {"m"}

    async def test_keys_are_scoped_and_stripped(self, prefixed_manager, raw_client):
        commands = RedisCommands(prefixed_manager)
        await raw_client.set("app:user:1", "x")
        await raw_client.set("other:user:2", "y")

        assert await commands.keys("user:*") == ["user:1"]

    async def test_raw_client_bypasses_prefix(self, prefixed_manager):
        commands = RedisCommands(prefixed_manager)

        await commands.client.set("unprefixed", "v")

        assert await commands.get("unprefixed") is None


@pytest.mark.asyncio
class TestJsonDocuments:
    class Profile(BaseModel):
        name: str
        tags: list[str] = []

    @pytest_asyncio.fixture
    async def json_commands(self, mock_client_factory, make_config):
        manager = RedisManager(client_factory=mock_client_factory)
        manager.initialize(make_config(key_prefix="app:"))
        await manager.activate()
        yield RedisCommands(manager)
        await manager.deactivate()

    async def test_set_json_sends_serialized_document(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = "OK"

        result = await json_commands.set_json("doc", ".", {"a": [1, 2]})

        assert result == "OK"
        mock_redis.execute_command.assert_awaited_once_with(
            "JSON.SET", "app:doc", ".", '{"a": [1, 2]}'
        )

    async def test_set_json_accepts_models(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = "OK"

        await json_commands.set_json("doc", "$", self.Profile(name="ada"))

        payload = mock_redis.execute_command.await_args.args[3]
        assert payload == '{"name":"ada","tags":[]}'

    async def test_set_json_rejected_write(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = None

        with pytest.raises(CommandError):
            await json_commands.set_json("doc", ".", {"a": 1})

    async def test_set_json_unserializable_value(self, json_commands, mock_redis):
        with pytest.raises(CommandError):
            await json_commands.set_json("doc", ".", {"a": object()})

        mock_redis.execute_command.assert_not_awaited()

    async def test_get_json_defaults_to_root_path(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = '{"a": 1}'

        assert await json_commands.get_json("doc") == {"a": 1}
        mock_redis.execute_command.assert_awaited_once_with("JSON.GET", "app:doc", ".")

    async def test_get_json_with_path_and_model(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = '{"name": "ada", "tags": ["x"]}'

        profile = await json_commands.get_json("doc", "$.profile", model=self.Profile)

        assert profile == self.Profile(name="ada", tags=["x"])
        mock_redis.execute_command.assert_awaited_once_with(
            "JSON.GET", "app:doc", "$.profile"
        )

    async def test_get_json_missing_key(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = None

        assert await json_commands.get_json("doc") is None

    async def test_get_json_invalid_payload(self, json_commands, mock_redis):
        mock_redis.execute_command.return_value = "{not json"

        with pytest.raises(CommandError):
            await json_commands.get_json("doc")

    async def test_unknown_module_command_is_command_error(
        self, json_commands, mock_redis
    ):
        mock_redis.execute_command.side_effect = redis_exceptions.ResponseError(
            "unknown command 'JSON.GET'"
        )

        with pytest.raises(CommandError) as exc_info:
            await json_commands.get_json("doc")

        assert exc_info.value.command == "JSON.GET"


@pytest.mark.asyncio
async def test_commands_on_uninitialized_manager_fail():
    with pytest.raises(StoreConnectionError):
        await RedisCommands(RedisManager()).get("k")


class TestDecodeScoredMembers:
    def test_flat_reply(self):
        assert decode_scored_members(["a", "1", "b", "2.5"]) == [
            ScoredMember("a", 1.0),
            ScoredMember("b", 2.5),
        ]

    def test_nested_reply(self):
        assert decode_scored_members([["a", 1.0], ["b", 2.5]]) == [
            ScoredMember("a", 1.0),
            ScoredMember("b", 2.5),
        ]

    def test_empty_reply(self):
        assert decode_scored_members([]) == []

    def test_odd_length_reply(self):
        with pytest.raises(CommandError):
            decode_scored_members(["a", "1", "b"])

    def test_infinite_scores(self):
        pairs = decode_scored_members(["a", "-inf", "b", "+inf"])

        assert pairs[0].score == float("-inf")
        assert pairs[1].score == float("inf")
