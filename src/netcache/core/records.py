"""immutable records for observed network traffic.

only `url` and `captured_at` matter to the cache. everything else is
opaque payload carried along for whoever asked.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


class RecordKind(str, enum.Enum):
    REQUEST = "request"
    RESPONSE = "response"


def now_ms() -> int:
    """wall-clock milliseconds, same unit as `Date.now()` in a browser"""
    return time.time_ns() // 1_000_000


def _freeze(mapping: Mapping | None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Record:
    """base record.

    :param url: full url of the request/response. the only field patterns look at.
    :param captured_at: ms timestamp, stamped by the cache at ingest.
    :param request_id: CDP request id when the record came from a browser.
    :param resource_type: CDP resource type (e.g. `"Document"`, `"Image"`).
    :param headers: read-only header mapping.
    :param extra: anything else the collaborator wants to carry.
    """
    kind = RecordKind.REQUEST

    url: str
    captured_at: int | None = None
    request_id: str | None = None
    resource_type: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # frozen, so go through object.__setattr__
        object.__setattr__(self, "headers", _freeze(self.headers))
        object.__setattr__(self, "extra", _freeze(self.extra))

    def stamped(self, captured_at: int | None = None) -> "Record":
        """return a copy carrying the ingest timestamp"""
        return replace(self, captured_at=now_ms() if captured_at is None else captured_at)


@dataclass(frozen=True)
class RequestRecord(Record):
    """an outgoing request seen by the page.

    :param method: http method.
    :param post_data: request body if the browser exposed one.
    """
    kind = RecordKind.REQUEST

    method: str = "GET"
    post_data: str | None = None


@dataclass(frozen=True)
class ResponseRecord(Record):
    """a response received by the page.

    `body` is text for textual resources and a base64 string for images,
    `None` when no body was captured.
    """
    kind = RecordKind.RESPONSE

    status: int = 0
    mime_type: str | None = None
    body: str | None = None
