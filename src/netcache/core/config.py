from __future__ import annotations

import os
from dataclasses import dataclass

from .gate import Validator
from .store import DEFAULT_CAPACITY, validate_capacity
from .waiter import DEFAULT_TIMEOUT_MS


def validate_timeout(timeout_ms) -> float:
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float)) or timeout_ms < 0:
        raise ValueError(f"timeout_ms must be a non-negative number, got {timeout_ms!r}")
    return timeout_ms


@dataclass
class CacheConfig:
    """settings for a `NetworkCache`.

    :param capacity: how many records of each kind to keep.
    :param timeout_ms: default budget for `wait_request()` / `wait_response()`.
    :param request_validator: decides which requests get stored. `None` keeps all.
    :param response_validator: decides which responses get stored. `None` keeps all.
    """
    capacity: int = DEFAULT_CAPACITY
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    request_validator: Validator | None = None
    response_validator: Validator | None = None

    def __post_init__(self):
        validate_capacity(self.capacity)
        validate_timeout(self.timeout_ms)

    @classmethod
    def from_env(cls, **overrides) -> "CacheConfig":
        """build from `NETCACHE_CAPACITY` / `NETCACHE_TIMEOUT_MS`, then apply `overrides`"""
        kwargs = {
            "capacity": int(os.getenv("NETCACHE_CAPACITY", DEFAULT_CAPACITY)),
            "timeout_ms": float(os.getenv("NETCACHE_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)),
        }
        kwargs.update(overrides)
        return cls(**kwargs)
