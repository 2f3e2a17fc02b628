from __future__ import annotations
import hashlib
from typing import Callable, List

Encoder = Callable[[str], int]

SUPPORTED_HASHES = ("sha256", "sha1", "md5", "blake2b", "sha512")


def hashlib_encoder(name: str) -> Encoder:
    """
    Build a deterministic string -> int encoder from a hashlib algorithm.
    The first 8 digest bytes are read big-endian as an unsigned integer.
    Lone surrogates are passed through so any str hashes.
    """
    if name not in hashlib.algorithms_available:
        raise ValueError(f"unsupported hash algorithm: {name}")

    def encode(value: str) -> int:
        h = hashlib.new(name, value.encode("utf-8", "surrogatepass")).digest()
        return int.from_bytes(h[:8], "big", signed=False)

    encode.__name__ = f"{name}_encode"
    return encode


def get_encoder(name: str) -> Encoder:
    if name not in SUPPORTED_HASHES:
        raise ValueError(f"unsupported hash algorithm: {name} (expected one of {', '.join(SUPPORTED_HASHES)})")
    return hashlib_encoder(name)


class HashSequenceGenerator:
    """
    Chained offsets: the first is encode(val), each next one is the encoding
    of the previous offset's decimal text.
    """

    def __init__(self, encode: Encoder) -> None:
        self.encode = encode

    def offsets(self, val: str, k: int) -> List[int]:
        if k < 1:
            raise ValueError("k must be >= 1")
        out: List[int] = []
        origin = val
        for i in range(k):
            encoded = self.encode(origin)
            out.append(encoded)
            if i == k - 1:
                break
            origin = str(encoded)
        return out
