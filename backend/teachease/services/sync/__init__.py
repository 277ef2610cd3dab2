"""
Offline-first synchronization

Components:
- Remote sync client: per-record upload, full-collection download, deletes
- Orchestrator: push (sync_all) and pull (fetch_all) passes, two-phase deletes
"""

from .remote_client import RemoteSyncClient, RemoteSyncError, SYNCED_COLLECTIONS
from .orchestrator import SyncOrchestrator, SyncIncompleteError

__all__ = [
    'RemoteSyncClient',
    'RemoteSyncError',
    'SYNCED_COLLECTIONS',
    'SyncOrchestrator',
    'SyncIncompleteError',
]
