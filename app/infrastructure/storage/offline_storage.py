"""
Infrastructure layer: Offline persistence of field data.

Keyed collections for farmer registrations, map plots, inspections, the
GPS coordinate log and cached auth tokens, on top of an injected
OfflineStore. Every operation runs in its own session and commits before
returning; database errors surface as StorageFailureError.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.domain.exceptions import StorageFailureError
from app.domain.models import (
    AuthToken,
    FarmerRegistration,
    GPSCoordinate,
    MapPlot,
    OfflineInspection,
    SyncStatus,
)
from app.infrastructure.storage.database import OfflineStore
from app.infrastructure.storage.tables import (
    AuthTokenRecord,
    FarmerRecord,
    GPSCoordinateRecord,
    InspectionRecord,
    MapPlotRecord,
    SettingRecord,
)
from app.utils.identifiers import epoch_millis, generate_local_id

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
R = TypeVar("R")

LAST_SYNC_KEY = "lastSync"


def _run(store: OfflineStore, operation: str, fn: Callable[[Session], R], commit: bool = False) -> R:
    """Run fn in a fresh session, committing if asked; wrap database errors."""
    with store.session() as db:
        try:
            result = fn(db)
            if commit:
                db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Offline store {operation} failed: {e}")
            raise StorageFailureError(f"Offline store {operation} failed: {e}") from e


class Collection(Generic[ModelT]):
    """
    Read access and creation for one keyed collection.

    Args:
        store: Open offline store handle
        name: Collection name
        table: SQLAlchemy table class
        model: Pydantic model returned to callers
        id_prefix: Prefix of generated ids
        index_fields: Columns accepted by get_by_index
    """

    tracks_status = False

    def __init__(
        self,
        store: OfflineStore,
        name: str,
        table: Type,
        model: Type[ModelT],
        id_prefix: str,
        index_fields: Sequence[str] = (),
    ):
        self.store = store
        self.name = name
        self.table = table
        self.model = model
        self.id_prefix = id_prefix
        self.index_fields = tuple(index_fields)

    def _to_model(self, row) -> ModelT:
        return self.model.model_validate(row, from_attributes=True)

    def _to_row(self, record: ModelT):
        return self.table(**record.model_dump(mode="json"))

    def create(self, payload: Union[BaseModel, Dict[str, Any]]) -> str:
        """
        Store a new record and return its generated local id.

        The id, creation timestamp and offline flag are stamped here, and
        the status starts as pending for collections that track one.
        """
        data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
        data["id"] = generate_local_id(self.id_prefix)
        data["timestamp"] = epoch_millis()
        data["is_offline"] = True
        if self.tracks_status:
            data["status"] = SyncStatus.PENDING

        record = self.model.model_validate(data)
        _run(self.store, f"create in {self.name}", lambda db: db.add(self._to_row(record)), commit=True)
        logger.debug(f"Stored {self.name} record {record.id}")
        return record.id

    def get_all(self) -> List[ModelT]:
        def query(db: Session) -> List[ModelT]:
            rows = db.execute(select(self.table).order_by(self.table.timestamp)).scalars().all()
            return [self._to_model(row) for row in rows]

        return _run(self.store, f"read of {self.name}", query)

    def get_by_id(self, record_id: str) -> Optional[ModelT]:
        def query(db: Session) -> Optional[ModelT]:
            row = db.get(self.table, record_id)
            return self._to_model(row) if row is not None else None

        return _run(self.store, f"read of {self.name}", query)

    def get_by_index(self, field: str, value: Any) -> List[ModelT]:
        """
        Secondary-index lookup.

        Raises:
            ValueError: If field is not an indexed field of this collection
        """
        if field not in self.index_fields:
            raise ValueError(
                f"'{field}' is not an indexed field of {self.name} "
                f"(indexed: {', '.join(self.index_fields) or 'none'})"
            )
        if isinstance(value, Enum):
            value = value.value

        def query(db: Session) -> List[ModelT]:
            column = getattr(self.table, field)
            rows = db.execute(
                select(self.table).where(column == value).order_by(self.table.timestamp)
            ).scalars().all()
            return [self._to_model(row) for row in rows]

        return _run(self.store, f"index read of {self.name}", query)

    def count(self) -> int:
        return _run(
            self.store,
            f"count of {self.name}",
            lambda db: db.execute(select(func.count()).select_from(self.table)).scalar_one(),
        )

    def clear(self) -> None:
        _run(self.store, f"clear of {self.name}", lambda db: db.execute(delete(self.table)), commit=True)


class RecordCollection(Collection[ModelT]):
    """Collection of syncable records with a pending/synced/failed status."""

    tracks_status = True

    def update(self, record: ModelT) -> None:
        """Full-record upsert keyed by id."""
        _run(self.store, f"update in {self.name}", lambda db: db.merge(self._to_row(record)), commit=True)

    def delete(self, record_id: str) -> None:
        _run(
            self.store,
            f"delete in {self.name}",
            lambda db: db.execute(delete(self.table).where(self.table.id == record_id)),
            commit=True,
        )

    def get_pending(self) -> List[ModelT]:
        return self.get_by_index("status", SyncStatus.PENDING)

    def mark_synced(self, record_id: str) -> bool:
        return self._set_status(record_id, SyncStatus.SYNCED)

    def mark_failed(self, record_id: str) -> bool:
        return self._set_status(record_id, SyncStatus.FAILED)

    def _set_status(self, record_id: str, status: SyncStatus) -> bool:
        """Change only the status column. Returns False if the record is unknown."""
        def apply(db: Session) -> bool:
            row = db.get(self.table, record_id)
            if row is None:
                return False
            row.status = status.value
            return True

        found = _run(self.store, f"status update in {self.name}", apply, commit=True)
        if found:
            logger.debug(f"Marked {self.name}/{record_id} as {status.value}")
        else:
            logger.warning(f"Cannot mark unknown {self.name} record {record_id} as {status.value}")
        return found


class CoordinateLog(Collection[GPSCoordinate]):
    """Append-only log of captured GPS coordinates."""

    def append(self, payload: Union[BaseModel, Dict[str, Any]]) -> GPSCoordinate:
        """Store a coordinate and return the stored entry."""
        return self.get_by_id(self.create(payload))

    def get_recent(self, hours: float = 24, now: Optional[int] = None) -> List[GPSCoordinate]:
        """Coordinates captured within the last `hours` hours."""
        cutoff = (now if now is not None else epoch_millis()) - int(hours * 60 * 60 * 1000)

        def query(db: Session) -> List[GPSCoordinate]:
            rows = db.execute(
                select(self.table)
                .where(self.table.timestamp > cutoff)
                .order_by(self.table.timestamp)
            ).scalars().all()
            return [self._to_model(row) for row in rows]

        return _run(self.store, f"read of {self.name}", query)


class TokenStore:
    """Auth tokens keyed by username, with lazy expiry on read."""

    name = "auth_tokens"

    def __init__(self, store: OfflineStore):
        self.store = store

    def save_token(
        self,
        username: str,
        token: str,
        user_type: str,
        role: str,
        expires_in_seconds: Optional[int] = None,
    ) -> AuthToken:
        ttl = expires_in_seconds if expires_in_seconds is not None else settings.auth_token_ttl_seconds
        auth_token = AuthToken(
            username=username,
            token=token,
            user_type=user_type,
            role=role,
            expires_at=epoch_millis() + ttl * 1000,
        )
        self.put(auth_token)
        return auth_token

    def put(self, auth_token: AuthToken) -> None:
        """Upsert a token as given, expiry included."""
        _run(
            self.store,
            "token write",
            lambda db: db.merge(AuthTokenRecord(**auth_token.model_dump())),
            commit=True,
        )

    def get_token(self, username: str, now: Optional[int] = None) -> Optional[AuthToken]:
        """
        Return the cached token for a user if it has not expired.

        An expired token is deleted on this read and None is returned.
        """
        now = now if now is not None else epoch_millis()

        def read(db: Session) -> Optional[AuthToken]:
            row = db.get(AuthTokenRecord, username)
            if row is None:
                return None
            if row.expires_at > now:
                return AuthToken.model_validate(row, from_attributes=True)
            db.delete(row)
            logger.info(f"Purged expired offline token for '{username}'")
            return None

        return _run(self.store, "token read", read, commit=True)

    def get_valid_tokens(self, now: Optional[int] = None) -> List[AuthToken]:
        now = now if now is not None else epoch_millis()

        def query(db: Session) -> List[AuthToken]:
            rows = db.execute(
                select(AuthTokenRecord).where(AuthTokenRecord.expires_at > now)
            ).scalars().all()
            return [AuthToken.model_validate(row, from_attributes=True) for row in rows]

        return _run(self.store, "token read", query)

    def remove_token(self, username: str) -> None:
        _run(
            self.store,
            "token delete",
            lambda db: db.execute(delete(AuthTokenRecord).where(AuthTokenRecord.username == username)),
            commit=True,
        )

    def count(self) -> int:
        return _run(
            self.store,
            "token count",
            lambda db: db.execute(select(func.count()).select_from(AuthTokenRecord)).scalar_one(),
        )

    def clear(self) -> None:
        _run(self.store, "token clear", lambda db: db.execute(delete(AuthTokenRecord)), commit=True)


class SettingsStore:
    """Small key/value table for bookkeeping values."""

    def __init__(self, store: OfflineStore):
        self.store = store

    def get(self, key: str, default: Any = None) -> Any:
        def read(db: Session) -> Any:
            row = db.get(SettingRecord, key)
            return row.value if row is not None else default

        return _run(self.store, "settings read", read)

    def set(self, key: str, value: Any) -> None:
        _run(self.store, "settings write", lambda db: db.merge(SettingRecord(key=key, value=value)), commit=True)


class OfflineStorage:
    """
    Offline persistence facade.

    Collections are independent; no operation spans more than one of them.
    """

    def __init__(self, store: OfflineStore):
        """
        Initialize the storage with an injected store handle.

        Args:
            store: Offline store; opened here if not open yet
        """
        self.store = store.open()
        self.farmers: RecordCollection[FarmerRegistration] = RecordCollection(
            store, "farmers", FarmerRecord, FarmerRegistration, "farmer",
            index_fields=("farmer_id", "status"),
        )
        self.map_plots: RecordCollection[MapPlot] = RecordCollection(
            store, "map_plots", MapPlotRecord, MapPlot, "plot",
            index_fields=("farmer_id", "status"),
        )
        self.inspections: RecordCollection[OfflineInspection] = RecordCollection(
            store, "inspections", InspectionRecord, OfflineInspection, "inspection",
            index_fields=("status",),
        )
        self.gps_coordinates = CoordinateLog(
            store, "gps_coordinates", GPSCoordinateRecord, GPSCoordinate, "gps",
            index_fields=("timestamp", "source"),
        )
        self.auth_tokens = TokenStore(store)
        self.settings = SettingsStore(store)

        self._record_collections: Dict[str, RecordCollection] = {
            c.name: c for c in (self.farmers, self.map_plots, self.inspections)
        }

    def collection(self, name: str) -> RecordCollection:
        """
        Look up a syncable collection by name.

        Raises:
            ValueError: If no such syncable collection exists
        """
        try:
            return self._record_collections[name]
        except KeyError:
            raise ValueError(
                f"Unknown collection '{name}' "
                f"(expected one of: {', '.join(self._record_collections)})"
            ) from None

    @property
    def record_collections(self) -> List[RecordCollection]:
        return list(self._record_collections.values())

    def mark_synced(self, collection: str, record_id: str) -> bool:
        return self.collection(collection).mark_synced(record_id)

    def mark_failed(self, collection: str, record_id: str) -> bool:
        return self.collection(collection).mark_failed(record_id)

    def get_last_sync_time(self) -> int:
        return self.settings.get(LAST_SYNC_KEY, 0)

    def update_last_sync_time(self, now: Optional[int] = None) -> None:
        self.settings.set(LAST_SYNC_KEY, now if now is not None else epoch_millis())

    def get_stats(self) -> Dict[str, int]:
        return {
            "farmers": self.farmers.count(),
            "map_plots": self.map_plots.count(),
            "inspections": self.inspections.count(),
            "gps_coordinates": self.gps_coordinates.count(),
            "auth_tokens": self.auth_tokens.count(),
        }

    def clear_all(self) -> None:
        """Remove every record from every collection."""
        for collection in (*self.record_collections, self.gps_coordinates, self.auth_tokens):
            collection.clear()
        logger.warning("Cleared all offline data")
