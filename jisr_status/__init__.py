from .config import Settings, load_settings
from .coordinator import StatusCoordinator
from .errors import (
    BusyError,
    ConfigurationError,
    DecodeError,
    EncodingError,
    FixError,
    JisrStatusError,
    NetworkError,
    PermissionDeniedError,
)
from .messaging import ActionMessageComposer
from .models import (
    ActionIntent,
    AuthorizationStatus,
    Condition,
    Coordinate,
    IntentKind,
    LocationUpdatePolicy,
    ProximityState,
    RecipientChannel,
    WeatherSnapshot,
)
from .proximity import LocationProvider, ProximityManager
from .weather import WeatherStatusManager

__version__ = "1.0.0"
