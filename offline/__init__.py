"""
Offline client: durable local queue, connectivity monitor and resync
dispatcher for thought writes made while the API is unreachable.
"""
from .client import OfflineSync, ThoughtClient
from .connectivity import ConnectivityMonitor, ConnectivityState, http_probe
from .local_queue import STORE_NAME, LocalQueue
from .resync import DispatcherState, FlushOutcome, ResyncDispatcher

__all__ = [
    "LocalQueue",
    "STORE_NAME",
    "ConnectivityMonitor",
    "ConnectivityState",
    "http_probe",
    "ResyncDispatcher",
    "DispatcherState",
    "FlushOutcome",
    "ThoughtClient",
    "OfflineSync",
]
