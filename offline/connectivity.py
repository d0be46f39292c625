"""
Online/offline tracking for the offline client.

The monitor fires its callback once per Offline -> Online transition.
Repeated "online" signals while already online do nothing.
"""
import asyncio
import logging
import os
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS = float(os.getenv("CONNECTIVITY_POLL_SECONDS", 5))


class ConnectivityState(str, Enum):
    OFFLINE = "Offline"
    ONLINE = "Online"


def http_probe(client: httpx.AsyncClient, path: str = "/") -> Callable[[], Awaitable[bool]]:
    """Probe that reports online when the API answers without a server error."""

    async def probe() -> bool:
        try:
            response = await client.get(path)
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    return probe


class ConnectivityMonitor:
    def __init__(self, on_online: Callable[[], Awaitable[object]],
                 probe: Optional[Callable[[], Awaitable[bool]]] = None,
                 interval: float = DEFAULT_POLL_SECONDS):
        self.on_online = on_online
        self.probe = probe
        self.interval = interval
        self.state = ConnectivityState.OFFLINE
        self._stopped = False

    @property
    def online(self) -> bool:
        return self.state is ConnectivityState.ONLINE

    async def start(self):
        """Read the current connectivity; if already online, resync once."""
        online = await self.probe() if self.probe else False
        await self.signal(online)

    async def signal(self, online: bool):
        if not online:
            if self.state is ConnectivityState.ONLINE:
                logger.info("Connectivity lost")
            self.state = ConnectivityState.OFFLINE
            return
        if self.state is ConnectivityState.ONLINE:
            return
        # state flips before the callback so signals arriving mid-flush are no-ops
        self.state = ConnectivityState.ONLINE
        logger.info("Connectivity restored")
        try:
            await self.on_online()
        except Exception:
            logger.exception("on_online callback failed")

    async def run(self):
        """Poll the probe until stop() is called."""
        if self.probe is None:
            raise ValueError("run() needs a probe")
        self._stopped = False
        await self.start()
        while not self._stopped:
            await asyncio.sleep(self.interval)
            await self.signal(await self.probe())

    def stop(self):
        self._stopped = True
