"""exceptions raised by the network cache.

`None` is the "not found" answer for lookups, so the only errors here are
the ones a caller can act on: a wait that ran out of time and a validator
that blew up while deciding about a candidate.
"""

from __future__ import annotations

import re


class NetworkCacheError(Exception):
    """base class for every error raised by `netcache`"""


class WaitTimeoutError(NetworkCacheError, TimeoutError):
    """no matching record arrived before the wait's deadline.

    :param kind: the record kind that was waited on (`"request"` / `"response"`).
    :param pattern: the compiled pattern the wait was matching against.
    :param timeout_ms: the configured budget in milliseconds.
    """
    kind: str
    pattern: re.Pattern
    timeout_ms: float

    def __init__(self, kind: str, pattern: re.Pattern, timeout_ms: float):
        self.kind = kind
        self.pattern = pattern
        self.timeout_ms = timeout_ms
        super().__init__(
            f"timeout waiting for {kind} matching {pattern.pattern!r} ({timeout_ms:g} ms)"
        )


class ValidatorError(NetworkCacheError):
    """the ingest validator raised instead of returning a decision.

    the candidate is treated as rejected. the original exception is kept
    as `__cause__`.

    :param record: the candidate that was being validated.
    """

    def __init__(self, record):
        self.record = record
        super().__init__(f"validator failed for <{record.url}>")
