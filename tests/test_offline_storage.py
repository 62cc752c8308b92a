"""
Unit tests for the offline persistence layer.

Tests cover:
- Record creation and lookup
- Durability across closing and re-opening the store
- Secondary index lookups
- Status transitions that leave payload fields untouched
- Token expiry with purge on read
- GPS coordinate log window
- Storage failures
"""
import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from app.domain.exceptions import StorageFailureError
from app.domain.models import (
    CoordinateSource,
    FarmerRegistrationData,
    GPSCoordinateData,
    InspectionData,
    LatLng,
    MapPlotData,
    SyncStatus,
)
from app.infrastructure.storage.database import OfflineStore
from app.infrastructure.storage.offline_storage import OfflineStorage
from app.utils.identifiers import epoch_millis


def farmer_payload(farmer_id="F-001", **overrides) -> FarmerRegistrationData:
    data = dict(
        farmer_id=farmer_id,
        first_name="Mary",
        last_name="Johnson",
        phone_number="+231770000000",
        county="Montserrado",
        farm_size=2.5,
        primary_crop="cocoa",
    )
    data.update(overrides)
    return FarmerRegistrationData(**data)


def plot_payload(farmer_id="F-001") -> MapPlotData:
    return MapPlotData(
        farmer_id=farmer_id,
        coordinates=[LatLng(lat=6.3, lng=-10.8), LatLng(lat=6.3, lng=-10.799), LatLng(lat=6.301, lng=-10.799)],
        area=0.61,
        crop_type="rubber",
    )


# ============================================================
# Record Collection Tests
# ============================================================

class TestRecordCollections:
    """Tests for create/read/update/delete on syncable collections."""

    def test_create_stamps_local_fields(self, storage):
        before = epoch_millis()

        record_id = storage.farmers.create(farmer_payload())
        record = storage.farmers.get_by_id(record_id)

        assert record_id.startswith("farmer_")
        assert record.status == SyncStatus.PENDING
        assert record.is_offline is True
        assert record.timestamp >= before
        assert record.first_name == "Mary"

    def test_get_by_id_unknown(self, storage):
        assert storage.farmers.get_by_id("farmer_0_missing") is None

    def test_get_all(self, storage):
        ids = [storage.farmers.create(farmer_payload(f"F-{i}")) for i in range(3)]
        assert sorted(r.id for r in storage.farmers.get_all()) == sorted(ids)

    def test_plot_coordinates_round_trip(self, storage):
        record_id = storage.map_plots.create(plot_payload())
        record = storage.map_plots.get_by_id(record_id)

        assert record.coordinates[2] == LatLng(lat=6.301, lng=-10.799)
        assert record.crop_type == "rubber"

    def test_update_is_an_upsert(self, storage):
        record_id = storage.inspections.create(
            InspectionData(commodity_id="C-1", inspector_id="I-1", inspection_date=epoch_millis())
        )
        record = storage.inspections.get_by_id(record_id)

        storage.inspections.update(record.model_copy(update={"notes": "Moisture 7%"}))
        storage.inspections.update(record.model_copy(update={"notes": "Moisture 7%"}))

        assert storage.inspections.count() == 1
        assert storage.inspections.get_by_id(record_id).notes == "Moisture 7%"

    def test_delete(self, storage):
        record_id = storage.farmers.create(farmer_payload())
        storage.farmers.delete(record_id)
        assert storage.farmers.get_by_id(record_id) is None


# ============================================================
# Durability Tests
# ============================================================

class TestDurability:
    """Records survive closing and re-opening the store."""

    def test_record_survives_reopen(self, db_path):
        url = f"sqlite:///{db_path}"

        with OfflineStore(url) as store:
            storage = OfflineStorage(store)
            record_id = storage.map_plots.create(plot_payload())
            storage.map_plots.mark_failed(record_id)
            original = storage.map_plots.get_by_id(record_id)

        with OfflineStore(url) as store:
            reopened = OfflineStorage(store).map_plots.get_by_id(record_id)

        assert reopened == original
        assert reopened.status == SyncStatus.FAILED

    def test_closed_store_raises_storage_failure(self, db_path):
        store = OfflineStore(f"sqlite:///{db_path}")
        storage = OfflineStorage(store)
        store.close()

        with pytest.raises(StorageFailureError):
            storage.farmers.get_all()


# ============================================================
# Index Tests
# ============================================================

class TestIndexes:
    """Tests for secondary-index lookups."""

    def test_lookup_by_farmer_id(self, storage):
        storage.map_plots.create(plot_payload("F-001"))
        storage.map_plots.create(plot_payload("F-002"))
        storage.map_plots.create(plot_payload("F-001"))

        plots = storage.map_plots.get_by_index("farmer_id", "F-001")

        assert len(plots) == 2
        assert all(p.farmer_id == "F-001" for p in plots)

    def test_lookup_by_status_enum(self, storage):
        first = storage.farmers.create(farmer_payload("F-1"))
        storage.farmers.create(farmer_payload("F-2"))
        storage.farmers.mark_synced(first)

        assert [r.id for r in storage.farmers.get_by_index("status", SyncStatus.SYNCED)] == [first]
        assert len(storage.farmers.get_pending()) == 1

    def test_lookup_gps_by_source(self, storage):
        storage.gps_coordinates.append(GPSCoordinateData(latitude=6.3, longitude=-10.8, accuracy=4.0))
        storage.gps_coordinates.append(
            GPSCoordinateData(latitude=6.3, longitude=-10.8, accuracy=0.0, source=CoordinateSource.MAP_CLICK)
        )

        clicks = storage.gps_coordinates.get_by_index("source", "map-click")

        assert len(clicks) == 1
        assert clicks[0].source == CoordinateSource.MAP_CLICK

    def test_unknown_index_field(self, storage):
        with pytest.raises(ValueError):
            storage.inspections.get_by_index("commodity_id", "C-1")


# ============================================================
# Sync Status Tests
# ============================================================

class TestSyncStatus:
    """Status changes touch only the status field."""

    def test_mark_synced_leaves_payload_alone(self, storage):
        record_id = storage.farmers.create(farmer_payload())
        before = storage.farmers.get_by_id(record_id)

        assert storage.mark_synced("farmers", record_id) is True
        after = storage.farmers.get_by_id(record_id)

        assert after.status == SyncStatus.SYNCED
        assert after.model_dump(exclude={"status"}) == before.model_dump(exclude={"status"})

    def test_mark_unknown_record(self, storage):
        assert storage.mark_failed("farmers", "farmer_0_missing") is False

    def test_unknown_collection(self, storage):
        with pytest.raises(ValueError):
            storage.mark_synced("parcels", "x")


# ============================================================
# Auth Token Tests
# ============================================================

class TestAuthTokens:
    """Tests for cached tokens and lazy expiry."""

    def test_save_and_get(self, storage):
        storage.auth_tokens.save_token("demo", "token-abc", "farmer", "farmer")

        token = storage.auth_tokens.get_token("demo")

        assert token.token == "token-abc"
        assert token.expires_at > epoch_millis() + 23 * 60 * 60 * 1000

    def test_expired_token_is_purged_on_read(self, storage):
        storage.auth_tokens.save_token("demo", "token-abc", "farmer", "farmer", expires_in_seconds=-1)
        assert storage.auth_tokens.count() == 1

        assert storage.auth_tokens.get_token("demo") is None
        assert storage.auth_tokens.count() == 0

    def test_get_valid_tokens_skips_expired(self, storage):
        storage.auth_tokens.save_token("fresh", "t1", "farmer", "farmer")
        storage.auth_tokens.save_token("stale", "t2", "farmer", "farmer", expires_in_seconds=-1)

        assert [t.username for t in storage.auth_tokens.get_valid_tokens()] == ["fresh"]

    def test_save_replaces_token_for_user(self, storage):
        storage.auth_tokens.save_token("demo", "t1", "farmer", "farmer")
        storage.auth_tokens.save_token("demo", "t2", "farmer", "farmer")

        assert storage.auth_tokens.count() == 1
        assert storage.auth_tokens.get_token("demo").token == "t2"

    def test_remove_token(self, storage):
        storage.auth_tokens.save_token("demo", "t1", "farmer", "farmer")
        storage.auth_tokens.remove_token("demo")
        assert storage.auth_tokens.get_token("demo") is None


# ============================================================
# GPS Log, Settings & Stats Tests
# ============================================================

class TestCoordinateLogAndStats:
    """Tests for the coordinate window, last sync time and statistics."""

    def test_recent_window(self, storage):
        coordinate = storage.gps_coordinates.append(
            GPSCoordinateData(latitude=6.3, longitude=-10.8, accuracy=3.0)
        )

        assert [c.id for c in storage.gps_coordinates.get_recent(hours=1)] == [coordinate.id]
        two_days_later = coordinate.timestamp + 48 * 60 * 60 * 1000
        assert storage.gps_coordinates.get_recent(hours=24, now=two_days_later) == []

    def test_last_sync_time(self, storage):
        assert storage.get_last_sync_time() == 0
        storage.update_last_sync_time(1718000000000)
        assert storage.get_last_sync_time() == 1718000000000

    def test_stats_and_clear_all(self, storage):
        storage.farmers.create(farmer_payload())
        storage.map_plots.create(plot_payload())
        storage.gps_coordinates.append(GPSCoordinateData(latitude=6.3, longitude=-10.8, accuracy=3.0))
        storage.auth_tokens.save_token("demo", "t1", "farmer", "farmer")

        assert storage.get_stats() == {
            "farmers": 1,
            "map_plots": 1,
            "inspections": 0,
            "gps_coordinates": 1,
            "auth_tokens": 1,
        }

        storage.clear_all()

        assert set(storage.get_stats().values()) == {0}

    def test_database_error_becomes_storage_failure(self, storage):
        with patch("sqlalchemy.orm.Session.commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with pytest.raises(StorageFailureError):
                storage.farmers.create(farmer_payload())

        assert storage.farmers.count() == 0
