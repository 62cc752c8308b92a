"""
Application service: Offline-first sync coordinator.

Orchestrates GPS acquisition, durable local writes of every captured
coordinate and field record, opportunistic pushes when the network is
available, and the online-then-offline login fallback.

Expected network and location conditions never raise past this layer
except LocationUnavailableError from acquire_position. Storage failures
always propagate.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from app.config import settings
from app.domain.exceptions import (
    BoundaryNotCompletedError,
    InvalidCoordinateError,
    LocationUnavailableError,
)
from app.domain.models import (
    BoundaryMapping,
    BoundaryStatus,
    CoordinateSource,
    FarmerRegistrationData,
    GPSCoordinate,
    GPSCoordinateData,
    InspectionData,
    LatLng,
    LoginCredentials,
    LoginResult,
    MapPlot,
    MapPlotData,
    PositionFix,
    PositionOptions,
    UserProfile,
)
from app.infrastructure.api_constants import APIConstants
from app.infrastructure.location_provider import LocationProvider
from app.infrastructure.remote_service_client import (
    RemoteLoginResponse,
    RemoteServiceClient,
    RemoteServiceError,
    RemoteUnavailableError,
)
from app.infrastructure.storage.offline_storage import OfflineStorage, RecordCollection
from app.services.application.pending_sync_service import PendingSyncService, SyncReport
from app.services.domain.boundary_metrics import polygon_area_hectares
from app.services.domain.offline_credentials import (
    CredentialPolicy,
    default_credential_policy,
    offline_role,
)
from app.utils.events import EventSubject
from app.utils.geodesy import is_valid_coordinate
from app.utils.identifiers import generate_local_id

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"


def default_position_options() -> PositionOptions:
    return PositionOptions(
        enable_high_accuracy=settings.gps_enable_high_accuracy,
        timeout=settings.gps_timeout_seconds,
        maximum_age=settings.gps_maximum_age_seconds,
    )


def default_watch_options() -> PositionOptions:
    return PositionOptions(
        enable_high_accuracy=settings.gps_enable_high_accuracy,
        timeout=settings.gps_watch_timeout_seconds,
        maximum_age=settings.gps_watch_maximum_age_seconds,
    )


class OfflineSyncCoordinator:
    """
    Offline-first coordinator for field data capture.

    Listeners registered with ``on_gps_update`` / ``on_auth_change`` are
    invoked synchronously, in registration order.
    """

    def __init__(
        self,
        storage: OfflineStorage,
        location_provider: LocationProvider,
        remote_client: RemoteServiceClient,
        connectivity: Callable[[], bool],
        credential_policy: Optional[CredentialPolicy] = None,
    ):
        """
        Initialize the coordinator with its collaborators.

        Args:
            storage: Offline persistence layer
            location_provider: Platform location capability
            remote_client: Remote persistence service client
            connectivity: Callable returning True while the network is available
            credential_policy: Offline login policy (field table by default)
        """
        self.storage = storage
        self.location_provider = location_provider
        self.remote_client = remote_client
        self.connectivity = connectivity
        self.credential_policy = credential_policy or default_credential_policy()
        self.sync_service = PendingSyncService(storage, remote_client, connectivity)

        self.gps_updates: EventSubject[GPSCoordinate] = EventSubject("gps_update")
        self.auth_changes: EventSubject[Optional[UserProfile]] = EventSubject("auth_change")
        self.current_user: Optional[UserProfile] = None

        self._watch_task: Optional[asyncio.Task] = None
        self._watch_generation = 0
        self._watch_unsubscribe: Optional[Callable[[], None]] = None

    def is_online(self) -> bool:
        return bool(self.connectivity())

    def on_gps_update(self, callback: Callable[[GPSCoordinate], None]) -> Callable[[], None]:
        return self.gps_updates.subscribe(callback)

    def on_auth_change(self, callback: Callable[[Optional[UserProfile]], None]) -> Callable[[], None]:
        return self.auth_changes.subscribe(callback)

    # ============================================================
    # GPS
    # ============================================================

    def _record_fix(self, fix: PositionFix, source: CoordinateSource) -> GPSCoordinate:
        if not is_valid_coordinate(fix.latitude, fix.longitude):
            raise LocationUnavailableError(
                f"provider returned an invalid fix ({fix.latitude}, {fix.longitude})"
            )
        return self.storage.gps_coordinates.append(
            GPSCoordinateData(
                latitude=fix.latitude,
                longitude=fix.longitude,
                accuracy=fix.accuracy,
                altitude=fix.altitude,
                source=source,
            )
        )

    async def acquire_position(self, options: Optional[PositionOptions] = None) -> GPSCoordinate:
        """
        Request a single fix, log it and return it.

        Args:
            options: Accuracy, timeout and cached-fix tolerance

        Returns:
            The stored GPSCoordinate (source ``auto``)

        Raises:
            LocationUnavailableError: On denial, timeout or unavailability;
                nothing is stored in that case
        """
        options = options or default_position_options()
        try:
            fix = await asyncio.wait_for(
                self.location_provider.get_current_position(options),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"GPS request timed out after {options.timeout:g}s")
            raise LocationUnavailableError(f"timeout after {options.timeout:g}s") from None
        except LocationUnavailableError as e:
            logger.warning(f"GPS request failed: {e.reason}")
            raise

        coordinate = self._record_fix(fix, CoordinateSource.AUTO)
        self.gps_updates.notify(coordinate)
        return coordinate

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def watch_position(
        self,
        options: Optional[PositionOptions] = None,
        on_update: Optional[Callable[[GPSCoordinate], None]] = None,
    ) -> None:
        """
        Start continuous monitoring; any active watch is stopped first.

        Must be called from a running event loop. ``on_update`` is
        registered for the lifetime of this watch only.
        """
        self.stop_watching()

        options = options or default_watch_options()
        if on_update is not None:
            self._watch_unsubscribe = self.gps_updates.subscribe(on_update)

        self._watch_generation += 1
        self._watch_task = asyncio.get_running_loop().create_task(
            self._run_watch(options, self._watch_generation)
        )
        logger.info("Started GPS watch")

    def stop_watching(self) -> None:
        """Stop monitoring. No-op when idle; no update fires after this returns."""
        self._watch_generation += 1
        task, self._watch_task = self._watch_task, None
        if self._watch_unsubscribe is not None:
            self._watch_unsubscribe()
            self._watch_unsubscribe = None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Stopped GPS watch")

    async def _run_watch(self, options: PositionOptions, generation: int) -> None:
        try:
            async for item in self.location_provider.stream_positions(options):
                if generation != self._watch_generation:
                    break
                if isinstance(item, LocationUnavailableError):
                    logger.warning(f"GPS watch error: {item.reason}")
                    continue
                try:
                    coordinate = self._record_fix(item, CoordinateSource.AUTO)
                except LocationUnavailableError as e:
                    logger.warning(f"GPS watch error: {e.reason}")
                    continue
                if generation != self._watch_generation:
                    break
                self.gps_updates.notify(coordinate)
        except LocationUnavailableError as e:
            logger.warning(f"GPS watch ended: {e.reason}")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("GPS watch stopped by an unexpected error")
            raise

    async def save_click_coordinate(self, latitude: float, longitude: float) -> GPSCoordinate:
        """Log a coordinate picked on the map (exact, accuracy 0)."""
        if not is_valid_coordinate(latitude, longitude):
            raise InvalidCoordinateError(latitude, longitude)
        return self.storage.gps_coordinates.append(
            GPSCoordinateData(
                latitude=latitude,
                longitude=longitude,
                accuracy=0.0,
                source=CoordinateSource.MAP_CLICK,
            )
        )

    def get_recent_coordinates(self, hours: float = 24) -> List[GPSCoordinate]:
        return self.storage.gps_coordinates.get_recent(hours)

    # ============================================================
    # Authentication
    # ============================================================

    async def login(self, credentials: LoginCredentials) -> LoginResult:
        """
        Sign in, online first when the network is available.

        The offline path runs only after the online attempt has finished.
        Tokens are stored before success is reported.

        Args:
            credentials: Username, password and user type

        Returns:
            LoginResult; ``success=False`` carries the reason in ``message``
        """
        if self.is_online():
            try:
                response = await self.remote_client.login(
                    credentials.username,
                    credentials.password,
                    credentials.user_type.value,
                )
            except RemoteUnavailableError as e:
                logger.warning(f"Online login for '{credentials.username}' failed: {e.message}")
                online_error = "Network error"
            except (RemoteServiceError, ValidationError) as e:
                logger.warning(f"Online login for '{credentials.username}' failed: {e}")
                online_error = getattr(e, "message", "Unexpected response from server")
            else:
                if response.success and response.token and response.user:
                    return self._complete_online_login(credentials, response)
                online_error = response.message or "Invalid credentials"
        else:
            online_error = "Device is offline"

        return self._offline_login(credentials, online_error)

    def _complete_online_login(
        self,
        credentials: LoginCredentials,
        response: RemoteLoginResponse,
    ) -> LoginResult:
        remote_user = response.user
        user = UserProfile(
            id=remote_user.id,
            username=remote_user.username,
            user_type=remote_user.user_type,
            role=remote_user.role,
            first_name=remote_user.first_name,
            last_name=remote_user.last_name,
            is_offline=False,
        )
        self.storage.auth_tokens.save_token(
            credentials.username,
            response.token,
            credentials.user_type.value,
            user.role,
        )
        self._set_current_user(user)
        logger.info(f"User '{credentials.username}' signed in online")
        return LoginResult(success=True, token=response.token, user=user, is_offline=False)

    def _offline_login(self, credentials: LoginCredentials, online_error: str) -> LoginResult:
        username = credentials.username
        user_type = credentials.user_type.value

        credential = self.credential_policy.verify(user_type, username, credentials.password)
        if credential is None:
            logger.warning(f"Offline login refused for '{username}' ({online_error})")
            return LoginResult(
                success=False,
                message=(
                    f"Authentication failed. {online_error}. "
                    f"No offline credentials available for this user."
                ),
            )

        stored = self.storage.auth_tokens.get_token(username)
        if stored is not None and stored.user_type == user_type:
            token, role = stored.token, stored.role
        else:
            role = offline_role(user_type)
            token = generate_local_id("offline")
            self.storage.auth_tokens.save_token(username, token, user_type, role)

        user = UserProfile(
            id=APIConstants.OFFLINE_USER_ID,
            username=username,
            user_type=user_type,
            role=role,
            first_name=credential.first_name,
            last_name=credential.last_name,
            is_offline=True,
        )
        self._set_current_user(user)
        logger.info(f"User '{username}' signed in offline ({online_error})")
        return LoginResult(
            success=True,
            token=token,
            user=user,
            message="Authenticated offline",
            is_offline=True,
        )

    def _set_current_user(self, user: Optional[UserProfile]) -> None:
        self.storage.settings.set(CURRENT_USER_KEY, user.model_dump() if user else None)
        self.current_user = user
        self.auth_changes.notify(user)

    def restore_session(self) -> Optional[UserProfile]:
        """
        Reload the signed-in user after a restart.

        Uses the cached profile when its token is still valid, otherwise
        the first valid cached token.
        """
        cached = self.storage.settings.get(CURRENT_USER_KEY)
        if cached:
            user = UserProfile.model_validate(cached)
            if self.storage.auth_tokens.get_token(user.username) is not None:
                self.current_user = user
                self.auth_changes.notify(user)
                return user

        tokens = self.storage.auth_tokens.get_valid_tokens()
        if not tokens:
            return None
        token = tokens[0]
        user = UserProfile(
            id=APIConstants.OFFLINE_USER_ID,
            username=token.username,
            user_type=token.user_type,
            role=token.role,
            is_offline=True,
        )
        self.current_user = user
        self.auth_changes.notify(user)
        return user

    def validate_token(self) -> bool:
        """True while the signed-in user still has an unexpired cached token."""
        if self.current_user is None:
            return False
        return self.storage.auth_tokens.get_token(self.current_user.username) is not None

    async def logout(self) -> None:
        if self.current_user is not None:
            self.storage.auth_tokens.remove_token(self.current_user.username)
            logger.info(f"User '{self.current_user.username}' signed out")
        self._set_current_user(None)

    # ============================================================
    # Field Records
    # ============================================================

    async def _save_and_push(self, collection: RecordCollection, payload: BaseModel) -> str:
        record_id = collection.create(payload)
        if self.is_online():
            record = collection.get_by_id(record_id)
            await self.sync_service.push_record(collection, record)
        return record_id

    async def save_farm_plot(
        self,
        farmer_id: str,
        coordinates: Sequence[Union[LatLng, Dict[str, float]]],
        crop_type: str,
    ) -> str:
        """
        Store a farm plot locally, then try to push it.

        Returns:
            Local id of the plot
        """
        points = [c if isinstance(c, LatLng) else LatLng(**c) for c in coordinates]
        for point in points:
            if not is_valid_coordinate(point.lat, point.lng):
                raise InvalidCoordinateError(point.lat, point.lng)

        payload = MapPlotData(
            farmer_id=farmer_id,
            coordinates=points,
            area=polygon_area_hectares(points),
            crop_type=crop_type,
        )
        return await self._save_and_push(self.storage.map_plots, payload)

    async def save_boundary(self, boundary: BoundaryMapping, farmer_id: str, crop_type: str) -> str:
        """
        Store a completed boundary as a farm plot, then try to push it.

        Raises:
            BoundaryNotCompletedError: If the boundary is not completed
        """
        if boundary.status != BoundaryStatus.COMPLETED:
            raise BoundaryNotCompletedError(
                f"Boundary {boundary.id} is {boundary.status.value}; only completed boundaries can be saved"
            )
        payload = MapPlotData(
            farmer_id=farmer_id,
            coordinates=[LatLng(lat=p.latitude, lng=p.longitude) for p in boundary.points],
            area=boundary.area,
            crop_type=crop_type,
            name=boundary.name,
            perimeter=boundary.perimeter,
            accuracy_level=boundary.accuracy_level,
        )
        return await self._save_and_push(self.storage.map_plots, payload)

    async def save_farmer_registration(self, registration: Union[FarmerRegistrationData, Dict[str, Any]]) -> str:
        payload = FarmerRegistrationData.model_validate(registration)
        return await self._save_and_push(self.storage.farmers, payload)

    async def save_inspection(self, inspection: Union[InspectionData, Dict[str, Any]]) -> str:
        payload = InspectionData.model_validate(inspection)
        return await self._save_and_push(self.storage.inspections, payload)

    def get_farm_plots(self, farmer_id: Optional[str] = None) -> List[MapPlot]:
        if farmer_id:
            return self.storage.map_plots.get_by_index("farmer_id", farmer_id)
        return self.storage.map_plots.get_all()

    async def sync_pending(self, include_failed: bool = False) -> SyncReport:
        return await self.sync_service.sync_pending(include_failed=include_failed)
