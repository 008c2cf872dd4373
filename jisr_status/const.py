from .models import IntentKind

# ── Point of interest ─────────────────────────────────────────────────────────

DEFAULT_PLACE_NAME = "Jisr Al-Lawziyah"
DEFAULT_TARGET_LATITUDE = 21.0733
DEFAULT_TARGET_LONGITUDE = 40.3105

# ── Weather ───────────────────────────────────────────────────────────────────

DEFAULT_WEATHER_API_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_WEATHER_TIMEOUT = 10.0

# Open-Meteo WMO codes above this are fog, drizzle, rain, snow or storms
FOG_OR_RAIN_CODE_THRESHOLD = 50
COLD_BELOW_CELSIUS = 15.0
HOT_ABOVE_CELSIUS = 25.0

WEATHER_LOADING_TEXT = "Loading weather..."

# ── Proximity ─────────────────────────────────────────────────────────────────

EARTH_RADIUS_KM = 6371.0
DEFAULT_ARRIVAL_THRESHOLD_KM = 0.5

ARRIVED_TEXT = "You have arrived"
LOCATING_TEXT = "Locating..."
LOCATION_UNAVAILABLE_TEXT = "Location unavailable"
LOCATION_ERROR_TEXT = "Location error"

# ── Deep links ────────────────────────────────────────────────────────────────

DEFAULT_MESSAGING_URI_TEMPLATE = "https://wa.me/{phone}?text={text}"
DEFAULT_MAP_URI_TEMPLATE = "https://maps.apple.com/?q={query}"
DEFAULT_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M"

DEFAULT_TEMPLATES: dict[IntentKind, str] = {
    IntentKind.BOOKING: (
        "New booking at {place}\n"
        "Name: {name}\n"
        "Party size: {party_size}\n"
        "Time: {timestamp}"
    ),
    IntentKind.ORDER: (
        "New order at {place}\n"
        "Item: {item_name}\n"
        "Quantity: {quantity}"
    ),
    IntentKind.SERVICE_REQUEST: (
        "Service request at {place}\n"
        "Name: {name}\n"
        "Request: {details}"
    ),
    IntentKind.LOST_AND_FOUND: (
        "Lost item report at {place}\n"
        "Name: {name}\n"
        "Item: {item_name}\n"
        "Details: {details}"
    ),
    IntentKind.CUSTOM: "{text}",
}
