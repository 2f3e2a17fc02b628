from .bloom import AsyncBloomFilter, BloomFilter
from .errors import (
    BloomStoreError,
    ScriptExecutionError,
    StoreTransportError,
    UnexpectedResultError,
)
from .hashing import HashSequenceGenerator, get_encoder, hashlib_encoder
from .scripts import ScriptKind
from .store import AsyncRedisBitStore, RedisBitStore

__all__ = [
    "AsyncBloomFilter",
    "AsyncRedisBitStore",
    "BloomFilter",
    "BloomStoreError",
    "HashSequenceGenerator",
    "RedisBitStore",
    "ScriptExecutionError",
    "ScriptKind",
    "StoreTransportError",
    "UnexpectedResultError",
    "get_encoder",
    "hashlib_encoder",
]
