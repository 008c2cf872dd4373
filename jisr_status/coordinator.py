import logging
from collections.abc import Mapping

import httpx

from .config import Settings
from .messaging import ActionMessageComposer, check_channel, map_search_uri
from .models import ActionIntent, IntentKind, ProximityState, RecipientChannel, WeatherSnapshot
from .proximity import LocationProvider, ProximityManager
from .weather import WeatherStatusManager

logger = logging.getLogger(__name__)


class StatusCoordinator:
    """Wires the three components together for presentation code.

    Holds no state of its own beyond the deployment channel and map template;
    every read goes straight to the owning manager.
    """

    def __init__(
        self,
        weather: WeatherStatusManager,
        proximity: ProximityManager,
        composer: ActionMessageComposer,
        channel: RecipientChannel,
        map_uri_template: str,
    ) -> None:
        check_channel(channel)
        self.weather = weather
        self.proximity = proximity
        self.composer = composer
        self.channel = channel
        self.map_uri_template = map_uri_template

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: LocationProvider,
        client: httpx.AsyncClient | None = None,
    ) -> "StatusCoordinator":
        composer = ActionMessageComposer(
            settings.templates,
            timestamp_format=settings.timestamp_format,
            place_name=settings.place_name,
        )
        weather = WeatherStatusManager(
            settings.target,
            api_url=settings.weather_api_url,
            timeout=settings.weather_timeout,
            client=client,
        )
        proximity = ProximityManager(
            provider,
            settings.target,
            threshold_km=settings.arrival_threshold_km,
            policy=settings.location_policy,
        )
        logger.info("Status coordinator ready for %r", settings.place_name)
        return cls(weather, proximity, composer, settings.channel, settings.map_uri_template)

    # ── Published state ──────────────────────────────────────────────────────

    @property
    def weather_snapshot(self) -> WeatherSnapshot | None:
        return self.weather.snapshot

    @property
    def weather_loading(self) -> bool:
        return self.weather.loading

    @property
    def weather_error(self) -> str | None:
        return self.weather.last_error

    @property
    def proximity_state(self) -> ProximityState:
        return self.proximity.state

    # ── Operations ───────────────────────────────────────────────────────────

    async def refresh_weather(self, *, force: bool = False) -> WeatherSnapshot | None:
        return await self.weather.refresh(force=force)

    def new_intent(self, kind: IntentKind, fields: Mapping[str, str]) -> ActionIntent:
        return ActionIntent(kind=kind, fields=dict(fields), channel=self.channel)

    def compose(self, kind: IntentKind, fields: Mapping[str, str]) -> str:
        return self.composer.compose(self.new_intent(kind, fields))

    def map_uri(self) -> str:
        return map_search_uri(self.proximity.state.target_coordinate, self.map_uri_template)

    def close(self) -> None:
        self.proximity.stop()
        logger.info("Status coordinator closed")
