"""
Reconciliation Orchestrator

Runs the two one-way passes between the local store and the remote store:
push (pending local writes up) and pull (whole remote collections down).
Also hosts the two-phase delete flows that touch both sides.
"""

import asyncio
import logging
from typing import Dict, List

from teachease.schemas.records import CollectionName, utc_now
from teachease.schemas.sync import SyncReport, FetchReport, DeleteOutcome, ResetResponse
from teachease.services.auth import NotAuthenticatedError
from teachease.services.storage_service import StorageService
from teachease.services.sync.remote_client import RemoteSyncClient, SYNCED_COLLECTIONS

logger = logging.getLogger(__name__)


class SyncIncompleteError(Exception):
    """A push pass finished but some uploads failed; they remain pending."""

    def __init__(self, report: SyncReport):
        self.report = report
        failed = ", ".join(
            f"{collection}: {len(ids)}" for collection, ids in report.failed.items()
        )
        super().__init__(f"{report.total_failed} record(s) failed to sync ({failed})")


class SyncOrchestrator:
    """Drives sync_all and fetch_all between one store and one remote client.

    Overlapping passes are allowed; every step is an idempotent upsert or a
    set operation on the pending queue.
    """

    def __init__(self, storage: StorageService, remote: RemoteSyncClient):
        self.storage = storage
        self.remote = remote

    async def sync_all(self) -> SyncReport:
        """Upload every pending record, clearing each ID only after its upload succeeds.

        A failed upload stays pending and the pass moves on. A record edited
        locally while its upload was in flight also stays pending. Raises
        SyncIncompleteError after the pass if anything failed, and
        NotAuthenticatedError immediately when nobody is signed in.
        """
        self.remote.auth.require_principal()
        report = SyncReport(started_at=utc_now())
        pending = await self.storage.get_pending_sync()

        for collection in SYNCED_COLLECTIONS:
            ids = pending.get(collection.value) or []
            if not ids:
                continue

            try:
                records = {r.id: r for r in await self.storage.load(collection)}
            except Exception as e:
                logger.error(f"Cannot read local {collection.value}, leaving {len(ids)} pending: {e}")
                for record_id in ids:
                    report.record_failure(collection.value, record_id, e)
                continue

            for record_id in ids:
                record = records.get(record_id)
                if record is None:
                    # Deleted locally before it could sync
                    report.record_skip(collection.value, record_id)
                    await self.storage.clear_pending_sync(collection, record_id)
                    continue

                try:
                    await self.remote.upload(record)
                except NotAuthenticatedError:
                    raise
                except Exception as e:
                    logger.error(f"Failed to sync {collection.value}/{record_id}: {e}")
                    report.record_failure(collection.value, record_id, e)
                    continue

                report.record_upload(collection.value, record_id)
                if await self._unchanged_since_upload(collection, record):
                    await self.storage.clear_pending_sync(collection, record_id)
                else:
                    logger.info(f"{collection.value}/{record_id} changed during upload, left pending")
                    report.record_requeue(collection.value, record_id)

        report.finished_at = utc_now()
        logger.info(
            f"Sync pass finished: {report.total_uploaded} uploaded, "
            f"{report.total_failed} failed, "
            f"{sum(len(ids) for ids in report.skipped.values())} skipped"
        )
        if not report.ok:
            raise SyncIncompleteError(report)
        return report

    async def _unchanged_since_upload(self, collection: CollectionName, uploaded) -> bool:
        """True when the local copy still equals the uploaded snapshot."""
        try:
            records = await self.storage.load(collection)
        except Exception as e:
            logger.error(f"Cannot re-read {collection.value}/{uploaded.id} after upload: {e}")
            return False
        return any(r.id == uploaded.id and r == uploaded for r in records)

    async def backup(self) -> SyncReport:
        return await self.sync_all()

    async def fetch_all(self) -> FetchReport:
        """Download every synced collection and hydrate the store without queuing uploads.

        Subjects deleted on this device only are left out until the
        tombstones are cleared.
        """
        self.remote.auth.require_principal()
        report = FetchReport(started_at=utc_now())

        downloaded = await asyncio.gather(
            *[self.remote.download_all(collection) for collection in SYNCED_COLLECTIONS]
        )
        deleted_subjects = set(await self.storage.get_deleted_subjects())

        for collection, records in zip(SYNCED_COLLECTIONS, downloaded):
            kept = []
            for record in records:
                if collection == CollectionName.SUBJECTS and record.id in deleted_subjects:
                    report.excluded_subjects.append(record.id)
                    continue
                kept.append(record)
            await self.storage.save_many(collection, kept, skip_sync=True)
            report.saved[collection.value] = len(kept)

        report.finished_at = utc_now()
        logger.info(f"Fetch pass finished: {report.saved}, excluded subjects: {report.excluded_subjects}")
        return report

    async def restore_from_cloud(self) -> FetchReport:
        """Forget local-only subject deletions and pull everything again."""
        await self.storage.clear_deleted_subjects()
        return await self.fetch_all()

    # Two-phase deletes: the local commit always stands, the remote step is best effort

    async def delete_student_everywhere(self, student_id: str) -> DeleteOutcome:
        await self.storage.delete_student_cascade(student_id)
        outcome = DeleteOutcome(record_id=student_id, remote_attempted=True)
        try:
            await self.remote.delete_student(student_id)
            outcome.remote_deleted = True
        except Exception as e:
            logger.error(f"Cloud delete of student {student_id} failed: {e}")
            outcome.remote_error = str(e)
        return outcome

    async def delete_subject_locally(self, subject_id: str) -> DeleteOutcome:
        await self.storage.delete_subject(subject_id)
        await self.storage.add_deleted_subject(subject_id)
        logger.info(f"Subject {subject_id} deleted on this device only")
        return DeleteOutcome(record_id=subject_id)

    async def delete_subject_everywhere(self, subject_id: str) -> DeleteOutcome:
        await self.storage.delete_subject(subject_id)
        outcome = DeleteOutcome(record_id=subject_id, remote_attempted=True)
        try:
            await self.remote.delete_subject(subject_id)
            outcome.remote_deleted = True
        except Exception as e:
            # The subject comes back on the next restore
            logger.error(f"Cloud delete of subject {subject_id} failed: {e}")
            outcome.remote_error = str(e)
        return outcome

    async def reset_account(self) -> ResetResponse:
        """Delete all cloud data (best effort), then wipe local storage."""
        result = ResetResponse(remote_cleared=False, local_cleared=False)
        try:
            await self.remote.delete_all_for_principal()
            result.remote_cleared = True
        except Exception as e:
            logger.error(f"Cloud delete error: {e}")
            result.remote_error = str(e)

        await self.storage.clear_all()
        result.local_cleared = True
        return result

    async def pending_summary(self) -> Dict[str, List[str]]:
        return {
            collection: ids
            for collection, ids in (await self.storage.get_pending_sync()).items()
            if ids
        }
