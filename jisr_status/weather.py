import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, ValidationError

from .const import (
    COLD_BELOW_CELSIUS,
    DEFAULT_WEATHER_API_URL,
    DEFAULT_WEATHER_TIMEOUT,
    FOG_OR_RAIN_CODE_THRESHOLD,
    HOT_ABOVE_CELSIUS,
    WEATHER_LOADING_TEXT,
)
from .errors import BusyError, DecodeError, NetworkError, WeatherError
from .events import Listeners
from .models import Condition, Coordinate, WeatherSnapshot

logger = logging.getLogger(__name__)


# ── Wire format ──────────────────────────────────────────────────────────────

class _CurrentWeatherPayload(BaseModel):
    temperature: StrictFloat | StrictInt
    weathercode: StrictInt


class _WeatherPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_weather: _CurrentWeatherPayload


def classify(temperature_celsius: float, weather_code: int) -> tuple[Condition, str]:
    """Map a reading to (condition, icon token). First matching rule wins."""
    if weather_code > FOG_OR_RAIN_CODE_THRESHOLD:
        return Condition.FOGGY_OR_RAINY, "fog"
    if temperature_celsius < COLD_BELOW_CELSIUS:
        return Condition.COLD, "snowflake"
    if temperature_celsius > HOT_ABOVE_CELSIUS:
        return Condition.CLEAR, "sun"
    return Condition.MILD, "cloud"


def parse_payload(data: Any) -> WeatherSnapshot:
    try:
        payload = _WeatherPayload.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Unexpected weather payload: {exc.error_count()} error(s)") from exc

    try:
        temperature = float(payload.current_weather.temperature)
    except (OverflowError, ValueError) as exc:
        raise DecodeError("Weather temperature is out of range.") from exc
    if not math.isfinite(temperature):
        raise DecodeError("Weather temperature is not a finite number.")
    code = payload.current_weather.weathercode
    condition, icon = classify(temperature, code)
    return WeatherSnapshot(
        temperature_celsius=temperature,
        weather_code=code,
        condition=condition,
        icon=icon,
        fetched_at=datetime.now(timezone.utc),
    )


# ── Manager ──────────────────────────────────────────────────────────────────

class WeatherStatusManager:
    """Fetches and publishes the current weather for a fixed coordinate.

    At most one request is in flight. A second call for the same coordinate
    joins the pending one; a call for another coordinate is rejected with
    ``BusyError`` unless ``force=True``, which supersedes the pending request.
    Every issued request carries a sequence number and only the latest one
    may publish, so late responses never overwrite newer data.
    """

    def __init__(
        self,
        coordinate: Coordinate,
        api_url: str = DEFAULT_WEATHER_API_URL,
        timeout: float = DEFAULT_WEATHER_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.coordinate = coordinate
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

        self._snapshot: WeatherSnapshot | None = None
        self._loading = False
        self._last_error: str | None = None

        self._sequence = 0
        self._pending: asyncio.Future | None = None
        self._pending_coordinate: Coordinate | None = None
        self._listeners = Listeners()

    # ── Published state ──────────────────────────────────────────────────────

    @property
    def snapshot(self) -> WeatherSnapshot | None:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def display_text(self) -> str:
        if self._snapshot is not None:
            return f"{self._snapshot.temperature_celsius:.0f}°C"
        if self._loading:
            return WEATHER_LOADING_TEXT
        return self._last_error or ""

    def add_listener(self, callback: Callable[["WeatherStatusManager"], None]) -> Callable[[], None]:
        return self._listeners.add(callback)

    # ── Operations ───────────────────────────────────────────────────────────

    async def request_snapshot(
        self, coordinate: Coordinate | None = None, *, force: bool = False
    ) -> WeatherSnapshot:
        coordinate = coordinate or self.coordinate
        pending = self._pending

        if pending is not None and not pending.done() and not force:
            if coordinate == self._pending_coordinate:
                logger.debug("Joining in-flight weather request #%d", self._sequence)
                return await asyncio.shield(pending)
            raise BusyError(
                f"Weather request for {self._pending_coordinate.as_query()} is still in flight"
            )

        self._sequence += 1
        sequence = self._sequence
        self._loading = True
        self._listeners.notify(self)

        task = asyncio.ensure_future(self._fetch(sequence, coordinate))
        self._pending = task
        self._pending_coordinate = coordinate
        return await asyncio.shield(task)

    async def refresh(self, *, force: bool = False) -> WeatherSnapshot | None:
        """Fetch for the configured coordinate; never raises for recoverable errors.

        Returns the published snapshot, which is the previous one if this
        fetch failed.
        """
        try:
            await self.request_snapshot(force=force)
        except WeatherError as exc:
            logger.warning("Weather refresh failed, keeping last snapshot: %s", exc)
        return self._snapshot

    # ── Internals ────────────────────────────────────────────────────────────

    async def _fetch(self, sequence: int, coordinate: Coordinate) -> WeatherSnapshot:
        logger.info("Weather request #%d: %s", sequence, coordinate.as_query())
        try:
            data = await self._get_json(coordinate)
            snapshot = parse_payload(data)
        except WeatherError as exc:
            if sequence == self._sequence:
                self._last_error = str(exc)
            else:
                logger.debug("Dropping error from superseded weather request #%d", sequence)
            raise
        else:
            if sequence == self._sequence:
                self._snapshot = snapshot
                self._last_error = None
                logger.info(
                    "Weather #%d: %.1f°C code=%d -> %s",
                    sequence,
                    snapshot.temperature_celsius,
                    snapshot.weather_code,
                    snapshot.condition.value,
                )
            else:
                logger.info(
                    "Discarding stale weather response #%d (latest is #%d)", sequence, self._sequence
                )
            return snapshot
        finally:
            # Whatever happened, the latest request is no longer in flight
            if sequence == self._sequence and self._loading:
                self._loading = False
                self._listeners.notify(self)

    async def _get_json(self, coordinate: Coordinate) -> Any:
        params = {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "current_weather": "true",
        }
        try:
            if self._client is not None:
                response = await self._client.get(self.api_url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self.api_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Weather service timed out for %s", coordinate.as_query())
            raise NetworkError("Weather service timed out.") from exc
        except httpx.HTTPStatusError as exc:
            logger.error("Weather service HTTP error %s", exc.response.status_code)
            raise NetworkError(
                f"Weather service returned HTTP {exc.response.status_code}."
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Weather service unreachable: %s", exc)
            raise NetworkError("Weather service is unreachable.") from exc

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Weather service returned a non-JSON body")
            raise DecodeError("Weather service returned a non-JSON body.") from exc
