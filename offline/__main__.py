import asyncio
import logging

from .client import OfflineSync


async def main():
    sync = OfflineSync()
    try:
        await sync.monitor.run()
    finally:
        await sync.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
