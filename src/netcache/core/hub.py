from __future__ import annotations

import itertools
import logging
from typing import Callable, Hashable

logger = logging.getLogger("netcache.NotificationHub")


class Subscription:
    """handle returned by `NotificationHub.subscribe()`.

    :param kind: the kind this subscription listens to.
    :param callback: called with each published record of that kind.
    """
    kind: Hashable
    callback: Callable
    active: bool

    def __init__(self, kind: Hashable, callback: Callable, id_: int):
        self.kind = kind
        self.callback = callback
        self.id = id_
        self.active = True

    def __repr__(self) -> str:
        state = "active" if self.active else "removed"
        return f"<Subscription #{self.id} {getattr(self.kind, 'value', self.kind)} {state}>"


class NotificationHub:
    """synchronous publish/subscribe keyed by record kind.

    `publish()` calls every subscriber registered for the kind, in
    subscription order, before returning. it walks a snapshot taken up
    front, so callbacks may unsubscribe themselves (or anyone else) while
    it runs. a subscriber removed mid-publish is skipped.

    a failing callback is logged and skipped; later subscribers still run.
    """

    def __init__(self):
        self._subscribers: dict[Hashable, list[Subscription]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, kind: Hashable, callback: Callable) -> Subscription:
        sub = Subscription(kind, callback, next(self._ids))
        self._subscribers.setdefault(kind, []).append(sub)
        logger.debug("subscribed %s", sub)
        return sub

    def unsubscribe(self, sub: Subscription):
        """remove `sub`. unknown or already removed handles are ignored."""
        if not sub.active:
            return
        sub.active = False
        subs = self._subscribers.get(sub.kind)
        if subs and sub in subs:
            subs.remove(sub)
        logger.debug("unsubscribed %s", sub)

    def publish(self, kind: Hashable, record):
        for sub in list(self._subscribers.get(kind, ())):
            if not sub.active:
                continue
            try:
                sub.callback(record)
            except Exception:
                logger.warning("subscriber %s failed on %s <%s>", sub, kind, getattr(record, "url", record), exc_info=True)

    def subscriber_count(self, kind: Hashable) -> int:
        return len(self._subscribers.get(kind, ()))
