from unittest.mock import MagicMock

import httpx
import pytest
import respx

from jisr_status.config import Settings
from jisr_status.coordinator import StatusCoordinator
from jisr_status.errors import ConfigurationError
from jisr_status.messaging import decode_message_text
from jisr_status.models import (
    AuthorizationStatus,
    Condition,
    Coordinate,
    IntentKind,
    LocationUpdatePolicy,
    RecipientChannel,
)

API_URL = "https://weather.test/v1/forecast"
TARGET = Coordinate(latitude=21.0733, longitude=40.3105)


@pytest.fixture
def settings():
    return Settings(
        target=TARGET,
        recipient_phone="966500000000",
        weather_api_url=API_URL,
        arrival_threshold_km=0.3,
    )


@pytest.fixture
def provider():
    return MagicMock()


@pytest.fixture
def coordinator(settings, provider):
    return StatusCoordinator.from_settings(settings, provider)


def test_from_settings_wires_components(coordinator, provider):
    provider.request_authorization.assert_called_once_with()
    assert coordinator.weather.coordinate == TARGET
    assert coordinator.proximity.threshold_km == 0.3
    assert coordinator.proximity.policy is LocationUpdatePolicy.CONTINUOUS
    assert coordinator.proximity_state.authorization is AuthorizationStatus.REQUESTED
    assert coordinator.weather_snapshot is None
    assert coordinator.weather_loading is False
    assert coordinator.weather_error is None


@respx.mock
async def test_refresh_weather_publishes_through_coordinator(coordinator):
    respx.get(API_URL).mock(
        return_value=httpx.Response(
            200, json={"current_weather": {"temperature": 9.5, "weathercode": 61}}
        )
    )

    snapshot = await coordinator.refresh_weather()

    assert snapshot.condition is Condition.FOGGY_OR_RAINY
    assert coordinator.weather_snapshot == snapshot
    assert coordinator.weather_error is None


@respx.mock
async def test_refresh_weather_failure_surfaces_error(coordinator):
    respx.get(API_URL).mock(side_effect=httpx.ConnectError("refused"))

    assert await coordinator.refresh_weather() is None
    assert coordinator.weather_error == "Weather service is unreachable."


def test_compose_uses_deployment_channel(coordinator):
    uri = coordinator.compose(
        IntentKind.BOOKING,
        {"name": "Ali", "party_size": "2", "timestamp_iso": "2024-01-01T18:00:00"},
    )

    assert uri.startswith("https://wa.me/966500000000?text=")
    assert decode_message_text(uri).endswith("Time: 01/01/2024 18:00")


def test_new_intent_stamps_channel(coordinator):
    intent = coordinator.new_intent(IntentKind.CUSTOM, {"text": "hello"})
    assert intent.channel == coordinator.channel


def test_map_uri_points_at_target(coordinator):
    assert coordinator.map_uri() == "https://maps.apple.com/?q=21.0733,40.3105"


def test_proximity_state_is_exposed(coordinator):
    coordinator.proximity.authorization_changed(True)
    coordinator.proximity.location_updated(Coordinate(latitude=21.0743, longitude=40.3105))

    state = coordinator.proximity_state
    assert state.display_text == "You have arrived"
    assert state.distance_km == pytest.approx(0.111, abs=1e-3)


def test_close_stops_location_updates(coordinator, provider):
    coordinator.proximity.authorization_changed(True)

    coordinator.close()

    provider.stop_updates.assert_called_once_with()


def test_bad_channel_fails_at_wiring(coordinator):
    with pytest.raises(ConfigurationError):
        StatusCoordinator(
            coordinator.weather,
            coordinator.proximity,
            coordinator.composer,
            RecipientChannel(phone_number="123", uri_template="https://wa.me/{phone}?text={text}"),
            coordinator.map_uri_template,
        )
