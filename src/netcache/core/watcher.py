"""feeds a `NetworkCacheRegistry` from nodriver tabs.

listens to CDP `Network` events on each attached tab, turns them into
records and ingests them into that tab's page cache (which forwards to
the browser cache).

response bodies:
- fetched with `Network.getResponseBody` once `LoadingFinished` arrives
- `Image` bodies stay base64, everything else is decoded to text
- no body for 204s and 3xx redirects
- `LoadingFailed` ingests the held response without a body
"""

from __future__ import annotations

import base64
import logging
from typing import Awaitable, Callable

import websockets
from nodriver import Tab, cdp

from .cache import NetworkCache
from .errors import ValidatorError
from .records import RequestRecord, ResponseRecord
from .scope import NetworkCacheRegistry

logger = logging.getLogger("netcache.NetworkCacheWatcher")


def _resource_type(ev) -> str | None:
    type_ = getattr(ev, "type_", None)
    return getattr(type_, "value", type_)


def request_record(ev: cdp.network.RequestWillBeSent) -> RequestRecord:
    """build a `RequestRecord` from a `RequestWillBeSent` event"""
    request = ev.request
    return RequestRecord(
        url=request.url + (request.url_fragment or ""),
        method=request.method,
        headers=dict(request.headers or {}),
        post_data=request.post_data,
        request_id=str(ev.request_id),
        resource_type=_resource_type(ev),
        extra={"frame_id": ev.frame_id, "document_url": ev.document_url},
    )


def response_record(ev: cdp.network.ResponseReceived, body: str | None = None) -> ResponseRecord:
    """build a `ResponseRecord` from a `ResponseReceived` event"""
    response = ev.response
    return ResponseRecord(
        url=response.url,
        status=response.status,
        headers=dict(response.headers or {}),
        mime_type=response.mime_type,
        body=body,
        request_id=str(ev.request_id),
        resource_type=_resource_type(ev),
        extra={"frame_id": ev.frame_id},
    )


def should_capture_body(status: int) -> bool:
    return status != 204 and (status <= 299 or status >= 400)


class NetworkCacheWatcher:
    """attach to nodriver tabs and record their traffic.

    :param registry: where records end up. a fresh one by default.
    :param capture_bodies: fetch response bodies before recording responses.
    """
    registry: NetworkCacheRegistry
    capture_bodies: bool

    def __init__(self,
        registry: NetworkCacheRegistry | None = None,
        *,
        capture_bodies: bool = True,
    ):
        self.registry = registry or NetworkCacheRegistry()
        self.capture_bodies = capture_bodies
        # state
        self.tabs: dict[str, Tab] = {}
        # target_id -> request_id -> held ResponseReceived
        self.pending_responses: dict[str, dict[str, cdp.network.ResponseReceived]] = {}
        self._handlers: dict[str, Callable[[object], Awaitable[None]]] = {}
        self._stopped = False
        self.network_watcher_mappings: dict[type, Callable[[Tab, object], Awaitable[None]]] = {
            cdp.network.RequestWillBeSent: self.on_request_will_be_sent,
            cdp.network.ResponseReceived: self.on_response_received,
            cdp.network.LoadingFinished: self.on_loading_finished,
            cdp.network.LoadingFailed: self.on_loading_failed,
        }

    async def attach(self, tab: Tab) -> NetworkCache:
        """start recording `tab` and return its page cache.

        attaching the same tab twice is a no-op.
        """
        # a stopped watcher comes back to life on the next attach
        self._stopped = False
        target_id = tab.target_id
        cache = self.registry.for_tab(target_id)
        if target_id in self._handlers:
            return cache

        async def handler(ev):
            await self._dispatch_event(tab, ev)

        self.tabs[target_id] = tab
        self._handlers[target_id] = handler
        for ev_type in self.network_watcher_mappings.keys():
            tab.add_handler(ev_type, handler)

        msg = f"failed to enable network for page <{tab.url}>:"
        try:
            await tab.send(cdp.network.enable())
        except websockets.exceptions.ConnectionClosedError:
            logger.debug("%s browser already closed.", msg)
        except Exception as e:
            if "-32001" in str(e):
                logger.warning("%s session not found. (potential timing issue?)", msg)
            else:
                logger.exception(msg)
        logger.debug("attached to page <%s> (%s)", tab.url, target_id)
        return cache

    def detach(self, tab: Tab, *, drop_cache: bool = False):
        """stop recording `tab`.

        :param drop_cache: also forget the tab's page cache.
        """
        target_id = tab.target_id
        handler = self._handlers.pop(target_id, None)
        self.tabs.pop(target_id, None)
        if handler is not None:
            for ev_type in self.network_watcher_mappings.keys():
                tab.remove_handler(ev_type, handler)
        self.pending_responses.pop(target_id, None)
        if drop_cache:
            self.registry.drop_tab(target_id)

    async def stop(self):
        """detach from every tab. safe to call twice."""
        if self._stopped:
            return
        self._stopped = True
        for tab in list(self.tabs.values()):
            self.detach(tab)
        self.pending_responses.clear()

    async def _dispatch_event(self, tab: Tab, ev: object):
        """look up the handler for `ev` and run it with consistent
        exception handling. nothing raised here reaches nodriver."""
        if self._stopped:
            return
        event_type = type(ev)
        handler = self.network_watcher_mappings.get(event_type)
        if handler is None:
            logger.debug("no handler mapped for %s", event_type)
            return
        msg = f"failed to run {handler.__name__} for {event_type.__name__} on <{tab.url}>:"
        try:
            await handler(tab, ev)
        except ValidatorError as e:
            logger.warning("%s %s", msg, e, exc_info=e.__cause__)
        except (
            websockets.exceptions.ConnectionClosedOK,
            websockets.exceptions.ConnectionClosedError,
        ):
            logger.debug("%s target already moved/closed.", msg, exc_info=True)
        except Exception as e:
            se = str(e)
            if "-32000" in se or "-32001" in se:
                logger.warning(msg, exc_info=logger.getEffectiveLevel() <= logging.DEBUG)
            else:
                logger.exception(msg)

    async def on_request_will_be_sent(self, tab: Tab, ev: cdp.network.RequestWillBeSent):
        await self.registry.for_tab(tab.target_id).record_request(request_record(ev))

    async def on_response_received(self, tab: Tab, ev: cdp.network.ResponseReceived):
        if self.capture_bodies and should_capture_body(ev.response.status):
            # hold until the body is available
            self.pending_responses.setdefault(tab.target_id, {})[str(ev.request_id)] = ev
            return
        await self.registry.for_tab(tab.target_id).record_response(response_record(ev))

    async def on_loading_finished(self, tab: Tab, ev: cdp.network.LoadingFinished):
        received = self.pending_responses.get(tab.target_id, {}).pop(str(ev.request_id), None)
        if received is None:
            return
        body = await self.fetch_body(tab, received)
        await self.registry.for_tab(tab.target_id).record_response(response_record(received, body))

    async def on_loading_failed(self, tab: Tab, ev: cdp.network.LoadingFailed):
        received = self.pending_responses.get(tab.target_id, {}).pop(str(ev.request_id), None)
        if received is None:
            return
        logger.debug("loading failed for <%s>: %s", received.response.url, ev.error_text)
        await self.registry.for_tab(tab.target_id).record_response(response_record(received))

    async def fetch_body(self, tab: Tab, ev: cdp.network.ResponseReceived) -> str | None:
        """body of `ev`'s response: base64 for images, text otherwise.

        `None` when chrome no longer has the resource.
        """
        try:
            data, b64 = await tab.send(cdp.network.get_response_body(cdp.network.RequestId(str(ev.request_id))))
        except Exception as e:
            if "-32000" in str(e):
                logger.debug("no body available for <%s>", ev.response.url)
                return None
            raise
        if _resource_type(ev) == "Image":
            return data if b64 else base64.b64encode(data.encode()).decode()
        if b64:
            return base64.b64decode(data).decode("utf-8", errors="replace")
        return data
