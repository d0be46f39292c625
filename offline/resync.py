"""
Drain-and-confirm upload of the local queue.

flush() sends every pending record in one bulk POST and clears the queue
only when the server accepts the whole batch. Any other outcome leaves the
queue as it was, to be retried on the next reconnect. A server that
accepted part of a batch will therefore see those records again.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import httpx

from errors import StorageFault

from .local_queue import LocalQueue

logger = logging.getLogger(__name__)

BULK_ENDPOINT = "/api/thoughts"


class DispatcherState(str, Enum):
    IDLE = "Idle"
    FLUSHING = "Flushing"


class FlushOutcome(str, Enum):
    EMPTY = "empty"          # nothing queued, no request made
    SUBMITTED = "submitted"  # batch accepted, queue cleared
    FAILED = "failed"        # queue untouched
    SKIPPED = "skipped"      # a flush was already in flight


def batch_accepted(response: httpx.Response) -> bool:
    if not response.is_success:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return not (isinstance(body, dict) and "message" in body)


class ResyncDispatcher:
    """
    Args:
        queue: the local queue to drain.
        client: httpx.AsyncClient whose base_url points at the API.
        endpoint: bulk create path.
        on_success: called with the number of submitted records.
    """

    def __init__(self, queue: LocalQueue, client: httpx.AsyncClient,
                 endpoint: str = BULK_ENDPOINT,
                 on_success: Optional[Callable[[int], None]] = None):
        self.queue = queue
        self.client = client
        self.endpoint = endpoint
        self.on_success = on_success
        self.state = DispatcherState.IDLE
        self.last_outcome: Optional[FlushOutcome] = None

    async def flush(self) -> FlushOutcome:
        if self.state is DispatcherState.FLUSHING:
            logger.debug("Flush already in progress; trigger coalesced")
            return FlushOutcome.SKIPPED
        self.state = DispatcherState.FLUSHING
        try:
            outcome = await self._flush()
        finally:
            self.state = DispatcherState.IDLE
        self.last_outcome = outcome
        return outcome

    async def _flush(self) -> FlushOutcome:
        try:
            records = await asyncio.to_thread(self.queue.drain_all)
        except StorageFault:
            return FlushOutcome.FAILED
        if not records:
            return FlushOutcome.EMPTY

        try:
            response = await self.client.post(self.endpoint, json=records)
        except httpx.HTTPError as e:
            logger.warning("Resync of %d records failed: %s", len(records), e)
            return FlushOutcome.FAILED
        if not batch_accepted(response):
            logger.warning("Resync of %d records rejected with HTTP %d: %s",
                           len(records), response.status_code, response.text[:200])
            return FlushOutcome.FAILED

        try:
            # records appended while the request was in flight have later ids and stay
            await asyncio.to_thread(self.queue.clear, len(records))
        except StorageFault:
            logger.error("Batch of %d accepted but local queue could not be cleared", len(records))
            return FlushOutcome.FAILED

        logger.info("All %d saved thoughts have been submitted", len(records))
        if self.on_success is not None:
            self.on_success(len(records))
        return FlushOutcome.SUBMITTED
