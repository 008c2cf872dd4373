class JisrStatusError(Exception):
    pass


# ── Weather ──────────────────────────────────────────────────────────────────

class WeatherError(JisrStatusError):
    pass


class NetworkError(WeatherError):
    """Transport-level failure talking to the weather service."""


class DecodeError(WeatherError):
    """The weather service answered with a payload we cannot read."""


class BusyError(WeatherError):
    """A different weather request is already in flight."""


# ── Location ─────────────────────────────────────────────────────────────────

class LocationError(JisrStatusError):
    pass


class PermissionDeniedError(LocationError):
    pass


class FixError(LocationError):
    """A single position update failed; the stream keeps running."""


# ── Deployment / messaging ───────────────────────────────────────────────────

class ConfigurationError(JisrStatusError):
    pass


class EncodingError(JisrStatusError):
    pass
