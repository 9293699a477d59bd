import asyncio
import nodriver
from netcache import NetworkCacheWatcher

URL = "https://example.com"

async def main():
    browser = await nodriver.start(headless=True)
    tab = await browser.get("about:blank")
    watcher = NetworkCacheWatcher()
    cache = await watcher.attach(tab)
    await tab.get(URL)
    # resolves right away if the document response is already cached
    response = await cache.wait_response(r"example\.com/?$", timeout_ms=10000)
    print(response.status, response.mime_type)
    print((response.body or "")[:500])
    await watcher.stop()
    browser.stop()

if __name__ == "__main__":
    asyncio.run(main())
