import base64
import logging
from types import SimpleNamespace

import pytest

from netcache import NetworkCacheRegistry, NetworkCacheWatcher, cdp
from netcache.core.watcher import request_record, response_record, should_capture_body

pytestmark = [pytest.mark.watcher]


class FakeTab:
    """just enough of `nodriver.Tab` for the watcher"""

    def __init__(self, target_id="tab-1", bodies=None):
        self.target_id = target_id
        self.url = f"https://{target_id}/"
        self.handlers = {}
        self.sent = []
        self.bodies = bodies or {}

    def add_handler(self, ev_type, handler):
        self.handlers.setdefault(ev_type, []).append(handler)

    def remove_handler(self, ev_type, handler):
        self.handlers[ev_type].remove(handler)

    async def send(self, cmd):
        request = next(cmd)
        self.sent.append(request["method"])
        if request["method"] == "Network.getResponseBody":
            body = self.bodies.get(request["params"]["requestId"])
            if body is None:
                raise Exception("{'code': -32000, 'message': 'No resource with given identifier found'}")
            return body
        return None


def request_event(url, request_id="1", method="GET", type_=cdp.network.ResourceType.XHR):
    return SimpleNamespace(
        request_id=request_id,
        request=SimpleNamespace(url=url, url_fragment=None, method=method, headers={"accept": "*/*"}, post_data=None),
        frame_id="frame",
        document_url="https://tab-1/",
        type_=type_,
    )


def response_event(url, request_id="1", status=200, type_=cdp.network.ResourceType.DOCUMENT):
    return SimpleNamespace(
        request_id=request_id,
        response=SimpleNamespace(url=url, status=status, headers={"content-type": "text/html"}, mime_type="text/html"),
        frame_id="frame",
        type_=type_,
    )


def finished_event(request_id="1"):
    return SimpleNamespace(request_id=request_id)


def failed_event(request_id="1"):
    return SimpleNamespace(request_id=request_id, error_text="net::ERR_ABORTED")


@pytest.mark.parametrize("status,expected", [(200, True), (204, False), (301, False), (304, False), (404, True), (500, True)])
def test_should_capture_body(status, expected):
    assert should_capture_body(status) is expected


def test_request_record_fields():
    ev = request_event("https://x/api", method="POST")
    ev.request.url_fragment = "#top"
    record = request_record(ev)
    assert record.url == "https://x/api#top"
    assert record.method == "POST"
    assert record.resource_type == "XHR"
    assert record.headers["accept"] == "*/*"
    assert record.extra["frame_id"] == "frame"


def test_response_record_fields():
    record = response_record(response_event("https://x/", status=404), body="missing")
    assert record.status == 404
    assert record.mime_type == "text/html"
    assert record.resource_type == "Document"
    assert record.body == "missing"


@pytest.mark.asyncio
async def test_attach_registers_handlers_and_enables_network():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    assert cache is watcher.registry.for_tab("tab-1")
    assert tab.sent == ["Network.enable"]
    assert set(tab.handlers) == set(watcher.network_watcher_mappings)
    # second attach is a no-op
    await watcher.attach(tab)
    assert tab.sent == ["Network.enable"]
    assert all(len(h) == 1 for h in tab.handlers.values())


@pytest.mark.asyncio
async def test_requests_are_recorded_in_page_and_browser_cache():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    await watcher.on_request_will_be_sent(tab, request_event("https://x/api/1"))

    assert cache.exist_request(r"api/1").method == "GET"
    assert watcher.registry.exist_request(r"api/1", global_cache=True) is not None


@pytest.mark.asyncio
async def test_response_held_until_loading_finished_with_text_body():
    tab = FakeTab(bodies={"1": (base64.b64encode(b"hello").decode(), True)})
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    await watcher.on_response_received(tab, response_event("https://x/"))
    assert cache.exist_response("x/") is None

    await watcher.on_loading_finished(tab, finished_event())
    assert cache.exist_response("x/").body == "hello"


@pytest.mark.asyncio
async def test_image_body_stays_base64():
    encoded = base64.b64encode(b"\x89PNG").decode()
    tab = FakeTab(bodies={"1": (encoded, True)})
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    await watcher.on_response_received(tab, response_event("https://x/a.png", type_=cdp.network.ResourceType.IMAGE))
    await watcher.on_loading_finished(tab, finished_event())

    assert cache.exist_response(r"a\.png").body == encoded


@pytest.mark.asyncio
async def test_missing_body_records_response_without_body():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    await watcher.on_response_received(tab, response_event("https://x/"))
    await watcher.on_loading_finished(tab, finished_event())

    assert cache.exist_response("x/").body is None


@pytest.mark.asyncio
async def test_loading_failed_records_held_response():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)

    await watcher.on_response_received(tab, response_event("https://x/"))
    await watcher.on_loading_failed(tab, failed_event())

    assert cache.exist_response("x/") is not None
    assert watcher.pending_responses["tab-1"] == {}


@pytest.mark.asyncio
async def test_no_body_statuses_and_disabled_capture_record_immediately():
    tab = FakeTab()
    watcher = NetworkCacheWatcher(capture_bodies=False)
    cache = await watcher.attach(tab)
    await watcher.on_response_received(tab, response_event("https://x/one"))
    assert cache.exist_response("x/one") is not None

    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)
    await watcher.on_response_received(tab, response_event("https://x/empty", status=204))
    assert cache.exist_response("x/empty").body is None
    assert "Network.getResponseBody" not in tab.sent


@pytest.mark.asyncio
async def test_dispatch_logs_validator_failures(caplog):
    class FakeRequestWillBeSent(SimpleNamespace):
        pass

    def broken(record):
        raise RuntimeError("broken")

    registry = NetworkCacheRegistry()
    tab = FakeTab()
    watcher = NetworkCacheWatcher(registry)
    await watcher.attach(tab)
    registry.for_tab("tab-1").configure(request_validator=broken)
    watcher.network_watcher_mappings[FakeRequestWillBeSent] = watcher.on_request_will_be_sent

    ev = FakeRequestWillBeSent(**vars(request_event("https://x/1")))
    with caplog.at_level(logging.WARNING, logger="netcache.NetworkCacheWatcher"):
        await watcher._dispatch_event(tab, ev)

    assert "validator failed" in caplog.text
    assert registry.for_tab("tab-1").requests == []


@pytest.mark.asyncio
async def test_stop_detaches_and_ignores_events():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)
    await watcher.on_response_received(tab, response_event("https://x/"))

    await watcher.stop()
    await watcher.stop()

    assert all(h == [] for h in tab.handlers.values())
    assert watcher.pending_responses == {}
    await watcher._dispatch_event(tab, request_event("https://x/1"))
    assert cache.requests == []


@pytest.mark.asyncio
async def test_detach_can_drop_the_page_cache():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    await watcher.attach(tab)
    await watcher.on_request_will_be_sent(tab, request_event("https://x/1"))

    watcher.detach(tab, drop_cache=True)

    assert watcher.registry.tabs == []
    assert watcher.registry.exist_request("x/1", global_cache=True) is not None


@pytest.mark.asyncio
async def test_attach_after_stop_records_again():
    tab = FakeTab()
    watcher = NetworkCacheWatcher()
    await watcher.attach(tab)
    await watcher.stop()

    cache = await watcher.attach(tab)

    class FakeRequestWillBeSent(SimpleNamespace):
        pass

    watcher.network_watcher_mappings[FakeRequestWillBeSent] = watcher.on_request_will_be_sent
    await watcher._dispatch_event(tab, FakeRequestWillBeSent(**vars(request_event("https://x/1"))))

    assert cache.exist_request("x/1") is not None
    assert all(len(h) == 1 for h in tab.handlers.values())
