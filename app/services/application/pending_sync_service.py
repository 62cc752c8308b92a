"""
Application service: Reconciliation of locally stored records.

Pushes pending records to the remote service and records the outcome on
each one. A confirmed rejection marks the record failed; a record that
could not be delivered stays pending. Nothing is deleted.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from pydantic import BaseModel

from app.domain.exceptions import SyncFailureError
from app.domain.models import SyncStatus
from app.infrastructure.remote_service_client import RemoteServiceClient, RemoteServiceError
from app.infrastructure.storage.offline_storage import OfflineStorage, RecordCollection

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a reconciliation run, record ids grouped by collection."""
    skipped: bool = False
    interrupted: bool = False
    synced: Dict[str, List[str]] = field(default_factory=dict)
    failed: Dict[str, List[str]] = field(default_factory=dict)
    pending: Dict[str, List[str]] = field(default_factory=dict)

    def record(self, collection: str, record_id: str, status: SyncStatus) -> None:
        bucket = {
            SyncStatus.SYNCED: self.synced,
            SyncStatus.FAILED: self.failed,
            SyncStatus.PENDING: self.pending,
        }[status]
        bucket.setdefault(collection, []).append(record_id)

    @property
    def synced_count(self) -> int:
        return sum(len(ids) for ids in self.synced.values())

    @property
    def failed_count(self) -> int:
        return sum(len(ids) for ids in self.failed.values())


class PendingSyncService:
    """
    Pushes locally stored records to the remote service.

    Follows the application layer pattern: coordinates the storage and the
    remote client, holds no business rules of its own.
    """

    def __init__(
        self,
        storage: OfflineStorage,
        remote_client: RemoteServiceClient,
        connectivity: Callable[[], bool],
    ):
        self.storage = storage
        self.remote_client = remote_client
        self.connectivity = connectivity

    async def push_record(self, collection: RecordCollection, record: BaseModel) -> SyncStatus:
        """
        Push one record and store the resulting status.

        Args:
            collection: Collection the record belongs to
            record: Record to push

        Returns:
            SYNCED on success, FAILED on a confirmed rejection, PENDING when
            the outcome is unknown (network error, server error)
        """
        try:
            await self.remote_client.push(collection.name, record)
        except RemoteServiceError as e:
            if e.is_rejection:
                collection.mark_failed(record.id)
                failure = SyncFailureError(collection.name, record.id, e.message)
                logger.warning(failure.message)
                return SyncStatus.FAILED
            logger.info(f"Could not deliver {collection.name}/{record.id}, keeping it pending: {e.message}")
            return SyncStatus.PENDING

        collection.mark_synced(record.id)
        logger.debug(f"Synced {collection.name}/{record.id}")
        return SyncStatus.SYNCED

    async def sync_pending(self, include_failed: bool = False) -> SyncReport:
        """
        Push every pending record of every syncable collection.

        The run stops at the first record that could not be delivered,
        since the remaining ones would fail the same way.

        Args:
            include_failed: Also retry records previously marked failed

        Returns:
            SyncReport describing what happened to each record
        """
        report = SyncReport()
        if not self.connectivity():
            logger.info("Offline, skipping sync of pending records")
            report.skipped = True
            return report

        for collection in self.storage.record_collections:
            records = collection.get_pending()
            if include_failed:
                records += collection.get_by_index("status", SyncStatus.FAILED)

            for record in records:
                status = await self.push_record(collection, record)
                report.record(collection.name, record.id, status)
                if status == SyncStatus.PENDING:
                    report.interrupted = True
                    break
            if report.interrupted:
                break

        if not report.interrupted:
            self.storage.update_last_sync_time()

        logger.info(
            f"Sync finished: {report.synced_count} synced, {report.failed_count} failed"
            f"{', interrupted' if report.interrupted else ''}"
        )
        return report
