"""
Background tasks for TeachEase.
"""

from .sync_tasks import AutoSyncTask

__all__ = ['AutoSyncTask']
