from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol, Sequence

from redis import Redis
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    ResponseError,
    TimeoutError as RedisTimeoutError,
)

from .errors import BloomStoreError, ScriptExecutionError, StoreTransportError
from .scripts import SCRIPTS, ScriptKind, script_args

logger = logging.getLogger("shared_bloom.store")

ATOMIC_MODES = ("script", "transaction")


class BitStore(Protocol):
    def get_bit(self, key: str, offset: int) -> int: ...

    def set_bit(self, key: str, offset: int) -> None: ...

    def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any: ...


class AsyncBitStore(Protocol):
    async def get_bit(self, key: str, offset: int) -> int: ...

    async def set_bit(self, key: str, offset: int) -> None: ...

    async def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any: ...


@contextmanager
def translate_errors(key: str) -> Iterator[None]:
    """Map redis-py exceptions onto the bloom error taxonomy."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as exc:
        raise StoreTransportError(f"redis unreachable for key={key}: {exc}") from exc
    except ResponseError as exc:
        raise ScriptExecutionError(str(exc)) from exc
    except RedisError as exc:
        raise BloomStoreError(f"redis error for key={key}: {exc}") from exc


def _check_mode(mode: str) -> str:
    if mode not in ATOMIC_MODES:
        raise ValueError(f"atomic mode must be one of {ATOMIC_MODES}, got {mode!r}")
    return mode


def _first_unset(bits: List[Any]) -> int:
    # Same answer the check script gives: ascending order, stop at the first 0.
    for reply in bits:
        if reply is None:
            raise ScriptExecutionError("FAIL")
        if int(reply) == 0:
            return 0
    return 1


class RedisBitStore:
    """
    Bitmap store on a blocking redis.Redis client.

    mode="script" runs the Lua scripts through EVALSHA (EVAL fallback),
    mode="transaction" uses a MULTI/EXEC pipeline for servers where
    scripting is disabled.
    """

    def __init__(self, redis: Redis, mode: str = "script") -> None:
        self.redis = redis
        self.mode = _check_mode(mode)
        self._scripts: Dict[ScriptKind, Any] = {}
        if self.mode == "script":
            self._scripts = {kind: redis.register_script(lua) for kind, lua in SCRIPTS.items()}

    def get_bit(self, key: str, offset: int) -> int:
        with translate_errors(key):
            return int(self.redis.getbit(key, offset))

    def set_bit(self, key: str, offset: int) -> None:
        with translate_errors(key):
            self.redis.setbit(key, offset, 1)

    def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any:
        with translate_errors(key):
            if self.mode == "script":
                return self._scripts[kind](keys=[key], args=script_args(offsets))
            return self._transaction(kind, key, offsets)

    def _transaction(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> int:
        logger.debug("pipeline %s key=%s bits=%d", kind.value, key, len(offsets))
        with self.redis.pipeline(transaction=True) as pipe:
            for offset in offsets:
                if kind is ScriptKind.CHECK_ALL_SET:
                    pipe.getbit(key, offset)
                else:
                    pipe.setbit(key, offset, 1)
            replies = pipe.execute()
        if kind is ScriptKind.CHECK_ALL_SET:
            return _first_unset(replies)
        return 1


class AsyncRedisBitStore:
    """Same contract as RedisBitStore, on redis.asyncio."""

    def __init__(self, redis: AsyncRedis, mode: str = "script") -> None:
        self.redis = redis
        self.mode = _check_mode(mode)
        self._scripts: Dict[ScriptKind, Any] = {}
        if self.mode == "script":
            self._scripts = {kind: redis.register_script(lua) for kind, lua in SCRIPTS.items()}

    async def get_bit(self, key: str, offset: int) -> int:
        with translate_errors(key):
            return int(await self.redis.getbit(key, offset))

    async def set_bit(self, key: str, offset: int) -> None:
        with translate_errors(key):
            await self.redis.setbit(key, offset, 1)

    async def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any:
        with translate_errors(key):
            if self.mode == "script":
                return await self._scripts[kind](keys=[key], args=script_args(offsets))
            return await self._transaction(kind, key, offsets)

    async def _transaction(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> int:
        logger.debug("pipeline %s key=%s bits=%d", kind.value, key, len(offsets))
        async with self.redis.pipeline(transaction=True) as pipe:
            for offset in offsets:
                if kind is ScriptKind.CHECK_ALL_SET:
                    pipe.getbit(key, offset)
                else:
                    pipe.setbit(key, offset, 1)
            replies = await pipe.execute()
        if kind is ScriptKind.CHECK_ALL_SET:
            return _first_unset(replies)
        return 1
