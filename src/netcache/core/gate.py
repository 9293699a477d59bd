from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable

from .errors import ValidatorError

logger = logging.getLogger("netcache.IngestGate")

Validator = Callable[[object], bool | Awaitable[bool]]


class IngestGate:
    """decides whether a candidate record may enter the cache.

    the validator may be a plain function or a coroutine function; both
    are awaited the same way. `None` accepts everything.

    :param validator: `(record) -> bool | Awaitable[bool]`
    """
    validator: Validator | None

    def __init__(self, validator: Validator | None = None):
        self.validator = validator

    async def accepts(self, candidate) -> bool:
        """run the validator on `candidate`.

        :raises ValidatorError: the validator raised. chained from the original error.
        """
        if self.validator is None:
            return True
        try:
            decision = self.validator(candidate)
            if inspect.isawaitable(decision):
                decision = await decision
        except Exception as e:
            raise ValidatorError(candidate) from e
        if not decision:
            logger.debug("rejected <%s>", candidate.url)
        return bool(decision)
