from __future__ import annotations
import logging
from typing import Any, List, Optional, Tuple

from .errors import UnexpectedResultError
from .hashing import Encoder, HashSequenceGenerator, get_encoder
from .scripts import ScriptKind
from .store import AsyncBitStore, BitStore

logger = logging.getLogger("shared_bloom.filter")

# Redis caps a string at 512 MB, so no bit offset may reach 2**32.
MAX_BITS = 1 << 32


def to_int(raw: Any) -> Optional[int]:
    """Coerce a script reply (int, bytes or str) to int; None if it is not one."""
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


class _BloomBase:
    def __init__(self, m: int, k: int, encode: Optional[Encoder] = None) -> None:
        if m < 1:
            raise ValueError("m must be >= 1")
        if m > MAX_BITS:
            raise ValueError(f"m must be <= {MAX_BITS}")
        if k < 1:
            raise ValueError("k must be >= 1")
        self.m = m
        self.k = k
        self.generator = HashSequenceGenerator(encode or get_encoder("sha256"))

    def offsets(self, val: str) -> List[int]:
        """The k bit positions for val, reduced into [0, m)."""
        return [o % self.m for o in self.generator.offsets(val, self.k)]

    def _prepare(self, key: str, val: str) -> List[int]:
        if not key:
            raise ValueError("key must be a non-empty string")
        if not val:
            raise ValueError("val must be a non-empty string")
        offsets = self.offsets(val)
        logger.debug("key=%s offsets=%s", key, offsets)
        return offsets

    @staticmethod
    def _exist_result(key: str, raw: Any) -> bool:
        resp = to_int(raw)
        if resp == 1:
            return True
        if resp == 0:
            return False
        logger.warning("Unexpected check-all-set reply key=%s resp=%r", key, raw)
        raise UnexpectedResultError(raw)

    @staticmethod
    def _set_result(key: str, raw: Any) -> None:
        if to_int(raw) != 1:
            logger.warning("Unexpected set-all reply key=%s resp=%r", key, raw)
            raise UnexpectedResultError(raw)


class BloomFilter(_BloomBase):
    """
    Bloom filter whose bitmap lives in a shared store.

    m -> bitmap length in bits; k -> offsets per value;
    store -> BitStore (see store.RedisBitStore); encode -> str -> int hash.
    """

    def __init__(self, m: int, k: int, store: BitStore, encode: Optional[Encoder] = None) -> None:
        super().__init__(m, k, encode)
        self.store = store

    def exist(self, key: str, val: str) -> bool:
        offsets = self._prepare(key, val)
        raw = self.store.atomic_eval(ScriptKind.CHECK_ALL_SET, key, offsets)
        return self._exist_result(key, raw)

    def set(self, key: str, val: str) -> None:
        offsets = self._prepare(key, val)
        raw = self.store.atomic_eval(ScriptKind.SET_ALL, key, offsets)
        self._set_result(key, raw)

    def inspect(self, key: str, val: str) -> List[Tuple[int, int]]:
        # Plain GETBITs, not atomic; for debugging only.
        return [(o, self.store.get_bit(key, o)) for o in self._prepare(key, val)]


class AsyncBloomFilter(_BloomBase):
    """asyncio flavour of BloomFilter; cancel by cancelling the awaiting task."""

    def __init__(self, m: int, k: int, store: AsyncBitStore, encode: Optional[Encoder] = None) -> None:
        super().__init__(m, k, encode)
        self.store = store

    async def exist(self, key: str, val: str) -> bool:
        offsets = self._prepare(key, val)
        raw = await self.store.atomic_eval(ScriptKind.CHECK_ALL_SET, key, offsets)
        return self._exist_result(key, raw)

    async def set(self, key: str, val: str) -> None:
        offsets = self._prepare(key, val)
        raw = await self.store.atomic_eval(ScriptKind.SET_ALL, key, offsets)
        self._set_result(key, raw)

    async def inspect(self, key: str, val: str) -> List[Tuple[int, int]]:
        out = []
        for o in self._prepare(key, val):
            out.append((o, await self.store.get_bit(key, o)))
        return out
