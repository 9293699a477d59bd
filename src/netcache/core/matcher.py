"""url pattern matching shared by lookups and waits"""

from __future__ import annotations

import re

Pattern = str | re.Pattern


def compile_pattern(pattern: Pattern) -> re.Pattern:
    """accept a regex string or an already compiled pattern.

    invalid expressions raise `re.error` here, before anything touches the cache.
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


def matches(record, pattern: re.Pattern) -> bool:
    """unanchored search over the record's full url"""
    return pattern.search(record.url) is not None
