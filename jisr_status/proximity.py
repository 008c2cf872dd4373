import asyncio
import logging
import math
from typing import Any, Callable, Protocol

from .const import (
    ARRIVED_TEXT,
    DEFAULT_ARRIVAL_THRESHOLD_KM,
    EARTH_RADIUS_KM,
    LOCATING_TEXT,
    LOCATION_ERROR_TEXT,
    LOCATION_UNAVAILABLE_TEXT,
)
from .errors import FixError, PermissionDeniedError
from .events import Listeners
from .models import AuthorizationStatus, Coordinate, LocationUpdatePolicy, ProximityState

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """Platform positioning service.

    Results come back through ``ProximityManager.authorization_changed``,
    ``location_updated`` and ``location_failed``, on the event loop.
    """

    def request_authorization(self) -> None: ...

    def start_updates(self) -> None: ...

    def stop_updates(self) -> None: ...

    def request_single_fix(self) -> None: ...


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    lat1, lon1, lat2, lon2 = map(
        math.radians, [a.latitude, a.longitude, b.latitude, b.longitude]
    )
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def format_distance(distance_km: float, threshold_km: float = DEFAULT_ARRIVAL_THRESHOLD_KM) -> str:
    if distance_km < threshold_km:
        return ARRIVED_TEXT
    return "%.1f km" % distance_km


class ProximityManager:
    """Tracks location permission and the live distance to a fixed target.

    Permission is requested exactly once, at construction. A denial (or a
    later revocation) is final for the session.
    """

    def __init__(
        self,
        provider: LocationProvider,
        target: Coordinate,
        threshold_km: float = DEFAULT_ARRIVAL_THRESHOLD_KM,
        policy: LocationUpdatePolicy = LocationUpdatePolicy.CONTINUOUS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._provider = provider
        self.threshold_km = threshold_km
        self.policy = policy
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop

        self._state = ProximityState(target_coordinate=target, display_text=LOCATING_TEXT)
        self._streaming = False
        self._listeners = Listeners()
        self.last_fix_error: FixError | None = None

        self._update(authorization=AuthorizationStatus.REQUESTED)
        logger.info("Requesting location permission (policy=%s)", policy.value)
        self._provider.request_authorization()

    # ── Published state ──────────────────────────────────────────────────────

    @property
    def state(self) -> ProximityState:
        return self._state

    @property
    def authorization(self) -> AuthorizationStatus:
        return self._state.authorization

    def add_listener(self, callback: Callable[[ProximityState], None]) -> Callable[[], None]:
        return self._listeners.add(callback)

    # ── Platform callbacks ───────────────────────────────────────────────────

    def authorization_changed(self, granted: bool) -> None:
        current = self._state.authorization

        if granted:
            if current is AuthorizationStatus.GRANTED:
                return
            if current is AuthorizationStatus.DENIED:
                logger.warning("Ignoring location grant after denial; permission is not re-requested")
                return
            logger.info("Location permission granted")
            self._update(authorization=AuthorizationStatus.GRANTED, display_text=LOCATING_TEXT)
            self._start_stream()
            return

        if current is AuthorizationStatus.DENIED:
            return
        logger.warning("Location permission denied (was %s)", current.value)
        self._stop_stream()
        self._update(
            authorization=AuthorizationStatus.DENIED,
            user_coordinate=None,
            distance_km=None,
            display_text=LOCATION_UNAVAILABLE_TEXT,
        )

    def location_updated(self, coordinate: Coordinate) -> None:
        if self._state.authorization is not AuthorizationStatus.GRANTED:
            logger.debug("Ignoring fix while authorization is %s", self._state.authorization.value)
            return

        distance = haversine_km(coordinate, self._state.target_coordinate)
        self.last_fix_error = None
        self._update(
            user_coordinate=coordinate,
            distance_km=distance,
            display_text=format_distance(distance, self.threshold_km),
        )
        logger.debug("Fix %s -> %.3f km to target", coordinate.as_query(), distance)

    def location_failed(self, error: Any) -> None:
        if self._state.authorization is not AuthorizationStatus.GRANTED:
            return
        self.last_fix_error = error if isinstance(error, FixError) else FixError(str(error))
        logger.warning("Position update failed: %s", self.last_fix_error)
        self._update(display_text=LOCATION_ERROR_TEXT)

    def dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        """Run a platform callback on the manager's event loop from any thread."""
        if self._loop is None:
            raise RuntimeError("ProximityManager was created without an event loop")
        self._loop.call_soon_threadsafe(callback, *args)

    # ── Operations ───────────────────────────────────────────────────────────

    def refresh_location(self) -> None:
        status = self._state.authorization
        if status is AuthorizationStatus.DENIED:
            raise PermissionDeniedError("Location permission was denied for this session")
        if status is not AuthorizationStatus.GRANTED:
            logger.debug("Location refresh requested before permission decision")
            return
        if self.policy is LocationUpdatePolicy.SINGLE_SHOT:
            self._provider.request_single_fix()
        elif not self._streaming:
            self._start_stream()

    def stop(self) -> None:
        self._stop_stream()

    # ── Internals ────────────────────────────────────────────────────────────

    def _start_stream(self) -> None:
        if self.policy is LocationUpdatePolicy.SINGLE_SHOT:
            self._provider.request_single_fix()
            return
        if not self._streaming:
            self._provider.start_updates()
            self._streaming = True

    def _stop_stream(self) -> None:
        if self._streaming:
            self._provider.stop_updates()
            self._streaming = False
            logger.info("Location updates stopped")

    def _update(self, **changes: Any) -> None:
        self._state = ProximityState(**{**dict(self._state), **changes})
        self._listeners.notify(self._state)
