import asyncio
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Set

import pytest

from shared_bloom.scripts import ScriptKind

# encode table for the m=64, k=3 walkthrough: "foo" -> [5, 19, 40], "bar" -> [5, 19, 41] after % 64
WALKTHROUGH = {
    "foo": 5,
    "5": 19,
    "19": 40,
    "bar": 69,
    "69": 83,
    "83": 41,
}


def table_encoder(table: Dict[str, int]):
    def encode(value: str) -> int:
        return table[value]
    return encode


class MemoryBitStore:
    """In-process bitmap store honouring the atomic script contract."""

    def __init__(self) -> None:
        self.bits: Dict[str, Set[int]] = defaultdict(set)
        self.lock = threading.Lock()
        self.reads: List[int] = []
        self.fail_with: Optional[Exception] = None
        self.reply: Any = None

    def get_bit(self, key: str, offset: int) -> int:
        with self.lock:
            return 1 if offset in self.bits[key] else 0

    def set_bit(self, key: str, offset: int) -> None:
        with self.lock:
            self.bits[key].add(offset)

    def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any:
        with self.lock:
            if self.fail_with is not None:
                raise self.fail_with
            if self.reply is not None:
                return self.reply
            bitmap = self.bits[key]
            if kind is ScriptKind.CHECK_ALL_SET:
                for offset in offsets:
                    self.reads.append(offset)
                    if offset not in bitmap:
                        return 0
                return 1
            for offset in offsets:
                bitmap.add(offset)
            return 1


class AsyncMemoryBitStore:
    def __init__(self, delay: float = 0.0) -> None:
        self.sync = MemoryBitStore()
        self.delay = delay

    async def get_bit(self, key: str, offset: int) -> int:
        return self.sync.get_bit(key, offset)

    async def set_bit(self, key: str, offset: int) -> None:
        self.sync.set_bit(key, offset)

    async def atomic_eval(self, kind: ScriptKind, key: str, offsets: Sequence[int]) -> Any:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.sync.atomic_eval(kind, key, offsets)


@pytest.fixture
def memory_store():
    return MemoryBitStore()


@pytest.fixture
def async_memory_store():
    return AsyncMemoryBitStore()


@pytest.fixture
def walkthrough_encoder():
    return table_encoder(WALKTHROUGH)
