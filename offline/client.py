"""
Thought writer for clients with intermittent connectivity.

Writes go straight to the API when possible. When the network is down
(or the monitor already knows we are offline) the payload is appended to
the local queue and uploaded later by the resync dispatcher.
"""
import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx

from errors import NotFound, StorageFault, TrackerError, ValidationFailed

from .connectivity import ConnectivityMonitor, http_probe
from .local_queue import LocalQueue
from .resync import BULK_ENDPOINT, ResyncDispatcher

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


def raise_for_api_error(response: httpx.Response):
    if response.is_success:
        return
    try:
        message = response.json().get("message", response.text)
    except ValueError:
        message = response.text
    if response.status_code == 404:
        raise NotFound(message)
    if response.status_code == 400:
        raise ValidationFailed(message)
    raise TrackerError(message)


class ThoughtClient:
    def __init__(self, client: httpx.AsyncClient, queue: LocalQueue,
                 monitor: Optional[ConnectivityMonitor] = None):
        self.client = client
        self.queue = queue
        self.monitor = monitor

    async def add_thought(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """POST a thought. Returns the updated user, or None if the write was queued."""
        if self.monitor is not None and not self.monitor.online:
            return await self._save_record(payload)
        try:
            response = await self.client.post(BULK_ENDPOINT, json=payload)
        except httpx.TransportError as e:
            logger.info("Network unavailable (%s); queueing thought", e)
            if self.monitor is not None:
                # the next successful probe is then a fresh Offline -> Online transition
                await self.monitor.signal(False)
            return await self._save_record(payload)
        raise_for_api_error(response)
        return response.json()

    async def _save_record(self, payload):
        try:
            await asyncio.to_thread(self.queue.append, payload)
        except StorageFault:
            logger.error("Could not queue thought; write abandoned")
            raise
        return None


class OfflineSync:
    """Wires queue, dispatcher, monitor and writer around one httpx client."""

    def __init__(self, base_url: Optional[str] = None, queue_path: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, **monitor_kwargs):
        base_url = base_url or os.getenv("THOUGHTS_API_URL", DEFAULT_API_URL)
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=10.0)
        self.queue = LocalQueue(queue_path)
        self.dispatcher = ResyncDispatcher(self.queue, self.http)
        self.monitor = ConnectivityMonitor(self.dispatcher.flush, http_probe(self.http), **monitor_kwargs)
        self.writer = ThoughtClient(self.http, self.queue, self.monitor)

    async def aclose(self):
        self.monitor.stop()
        await self.http.aclose()
