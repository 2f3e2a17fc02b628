from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for the shared Bloom filter service.
    Values can be overridden via environment variables or a .env file.
    """

    app_name: str = "Shared Bloom Filter"
    environment: str = "dev"

    redis_url: str = "redis://localhost:6379/0"

    # bitmap length (bits) and offsets per value; sized by the operator
    bloom_m: int = 1 << 20
    bloom_k: int = 7
    bloom_hash: str = "sha256"

    # "script" (Lua via EVALSHA) or "transaction" (MULTI/EXEC, no scripting)
    bloom_atomic_mode: Literal["script", "transaction"] = "script"

    bloom_key_prefix: str = "bloom:"

    request_timeout_seconds: float = 3.0

    log_level: str = "INFO"

    class Config:
        env_file = ".env"  # if a .env file exists, it will be read automatically


settings = Settings()
