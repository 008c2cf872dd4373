from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Condition(str, Enum):
    CLEAR = "clear"
    MILD = "mild"
    COLD = "cold"
    FOGGY_OR_RAINY = "foggy_or_rainy"


class AuthorizationStatus(str, Enum):
    UNREQUESTED = "unrequested"
    REQUESTED = "requested"
    GRANTED = "granted"
    DENIED = "denied"


class LocationUpdatePolicy(str, Enum):
    CONTINUOUS = "continuous"
    SINGLE_SHOT = "single_shot"


class IntentKind(str, Enum):
    BOOKING = "booking"
    ORDER = "order"
    SERVICE_REQUEST = "service_request"
    LOST_AND_FOUND = "lost_and_found"
    CUSTOM = "custom"


# Fields each intent kind must carry before it can be rendered.
REQUIRED_FIELDS: dict[IntentKind, tuple[str, ...]] = {
    IntentKind.BOOKING: ("name", "party_size", "timestamp_iso"),
    IntentKind.ORDER: ("item_name", "quantity"),
    IntentKind.SERVICE_REQUEST: ("name", "details"),
    IntentKind.LOST_AND_FOUND: ("name", "item_name", "details"),
    IntentKind.CUSTOM: ("text",),
}


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    def as_query(self) -> str:
        return f"{self.latitude},{self.longitude}"


class WeatherSnapshot(BaseModel):
    """One complete reading of the current weather at the point of interest."""
    model_config = ConfigDict(frozen=True)

    temperature_celsius: float
    weather_code: int
    condition: Condition
    icon: str
    fetched_at: datetime


class ProximityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    authorization: AuthorizationStatus = AuthorizationStatus.UNREQUESTED
    user_coordinate: Coordinate | None = None
    target_coordinate: Coordinate
    distance_km: float | None = Field(default=None, ge=0.0)
    display_text: str = ""

    @model_validator(mode="after")
    def _distance_tracks_position(self) -> "ProximityState":
        if (self.user_coordinate is None) != (self.distance_km is None):
            raise ValueError("user_coordinate and distance_km must be set together")
        return self


class RecipientChannel(BaseModel):
    model_config = ConfigDict(frozen=True)

    phone_number: str
    uri_template: str


class ActionIntent(BaseModel):
    """A user's requested action, before it is rendered into a message."""
    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    fields: dict[str, str] = Field(default_factory=dict)
    channel: RecipientChannel

    @model_validator(mode="after")
    def _check_fields(self) -> "ActionIntent":
        missing = [
            name for name in REQUIRED_FIELDS[self.kind]
            if not self.fields.get(name, "").strip()
        ]
        if missing:
            raise ValueError(
                f"{self.kind.value} intent is missing fields: {', '.join(missing)}"
            )
        if self.kind is IntentKind.BOOKING:
            # Raises ValueError for anything that is not ISO-8601
            datetime.fromisoformat(self.fields["timestamp_iso"])
        return self
