import asyncio
import re
import nodriver
from netcache import CacheConfig, NetworkCacheRegistry, NetworkCacheWatcher

API = re.compile(r"/api/")

# keep only api traffic, and only the last 20 of each kind
async def main():
    config = CacheConfig(
        capacity=20,
        request_validator=lambda request: API.search(request.url) is not None,
        response_validator=lambda response: API.search(response.url) is not None,
    )
    watcher = NetworkCacheWatcher(NetworkCacheRegistry(config), capture_bodies=False)
    browser = await nodriver.start(headless=True)
    tab = await browser.get("about:blank")
    await watcher.attach(tab)
    await tab.get("https://httpbin.org/")
    # search every tab's traffic
    request = await watcher.registry.wait_request(API, timeout_ms=15000, global_cache=True)
    print(request.method, request.url)
    await watcher.stop()
    browser.stop()

if __name__ == "__main__":
    asyncio.run(main())
