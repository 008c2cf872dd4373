"""
Deployment configuration.

Everything here is read once at startup from the process environment (after
loading an optional ``.env`` file) and is immutable afterwards. Broken values
are a build defect, so they fail fast with ``ConfigurationError``.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .const import (
    DEFAULT_ARRIVAL_THRESHOLD_KM,
    DEFAULT_MAP_URI_TEMPLATE,
    DEFAULT_MESSAGING_URI_TEMPLATE,
    DEFAULT_PLACE_NAME,
    DEFAULT_TARGET_LATITUDE,
    DEFAULT_TARGET_LONGITUDE,
    DEFAULT_TEMPLATES,
    DEFAULT_TIMESTAMP_FORMAT,
    DEFAULT_WEATHER_API_URL,
    DEFAULT_WEATHER_TIMEOUT,
)
from .errors import ConfigurationError
from .models import Coordinate, IntentKind, LocationUpdatePolicy, RecipientChannel

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: Coordinate
    place_name: str = Field(DEFAULT_PLACE_NAME, min_length=1)
    arrival_threshold_km: float = Field(DEFAULT_ARRIVAL_THRESHOLD_KM, gt=0.0)
    location_policy: LocationUpdatePolicy = LocationUpdatePolicy.CONTINUOUS
    recipient_phone: str = Field(..., pattern=r"^\d{6,15}$")
    messaging_uri_template: str = DEFAULT_MESSAGING_URI_TEMPLATE
    map_uri_template: str = DEFAULT_MAP_URI_TEMPLATE
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    templates: dict[IntentKind, str] = Field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    weather_api_url: str = DEFAULT_WEATHER_API_URL
    weather_timeout: float = Field(DEFAULT_WEATHER_TIMEOUT, gt=0.0)
    log_level: str = "INFO"

    @field_validator("recipient_phone", mode="before")
    @classmethod
    def _normalise_phone(cls, value):
        # "+966 55-123 4567" -> "966551234567"
        if isinstance(value, str):
            for char in "+ -()":
                value = value.replace(char, "")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def channel(self) -> RecipientChannel:
        return RecipientChannel(
            phone_number=self.recipient_phone,
            uri_template=self.messaging_uri_template,
        )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load ``.env`` (if present) and build validated ``Settings``.

    Variables already set in the environment win over the file.
    """
    load_dotenv(dotenv_path=env_file)

    templates = {
        kind: os.getenv(f"JISR_TEMPLATE_{kind.name}", DEFAULT_TEMPLATES[kind])
        for kind in IntentKind
    }

    try:
        settings = Settings(
            target=Coordinate(
                latitude=os.getenv("JISR_TARGET_LATITUDE", str(DEFAULT_TARGET_LATITUDE)),
                longitude=os.getenv("JISR_TARGET_LONGITUDE", str(DEFAULT_TARGET_LONGITUDE)),
            ),
            place_name=os.getenv("JISR_PLACE_NAME", DEFAULT_PLACE_NAME),
            arrival_threshold_km=os.getenv(
                "JISR_ARRIVAL_THRESHOLD_KM", str(DEFAULT_ARRIVAL_THRESHOLD_KM)
            ),
            location_policy=os.getenv("JISR_LOCATION_POLICY", LocationUpdatePolicy.CONTINUOUS.value),
            recipient_phone=os.getenv("JISR_RECIPIENT_PHONE"),
            messaging_uri_template=os.getenv(
                "JISR_MESSAGING_URI_TEMPLATE", DEFAULT_MESSAGING_URI_TEMPLATE
            ),
            map_uri_template=os.getenv("JISR_MAP_URI_TEMPLATE", DEFAULT_MAP_URI_TEMPLATE),
            timestamp_format=os.getenv("JISR_TIMESTAMP_FORMAT", DEFAULT_TIMESTAMP_FORMAT),
            templates=templates,
            weather_api_url=os.getenv("WEATHER_API_URL", DEFAULT_WEATHER_API_URL),
            weather_timeout=os.getenv("WEATHER_TIMEOUT", str(DEFAULT_WEATHER_TIMEOUT)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValidationError as exc:
        logger.error("Invalid deployment configuration: %s", exc)
        raise ConfigurationError(f"Invalid deployment configuration: {exc}") from exc

    logger.info(
        "Settings loaded: place=%r target=%s threshold=%.2f km policy=%s",
        settings.place_name,
        settings.target.as_query(),
        settings.arrival_threshold_km,
        settings.location_policy.value,
    )
    return settings
