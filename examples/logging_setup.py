import asyncio
import logging
from netcache import NetworkCache, RequestRecord

# netcache logs stores, rejects and settled waits at DEBUG
async def main():
    logging.basicConfig(level=logging.DEBUG)
    cache = NetworkCache()
    await cache.record_request(RequestRecord(url="https://example.com/"))
    await cache.wait_request(r"example\.com")

if __name__ == "__main__":
    asyncio.run(main())
