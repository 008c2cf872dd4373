import pytest
from pydantic import ValidationError

from jisr_status.const import DEFAULT_TEMPLATES
from jisr_status.errors import ConfigurationError, EncodingError
from jisr_status.messaging import (
    ActionMessageComposer,
    decode_message_text,
    encode_query_component,
    map_search_uri,
)
from jisr_status.models import ActionIntent, Coordinate, IntentKind, RecipientChannel

CHANNEL = RecipientChannel(
    phone_number="966500000000",
    uri_template="https://wa.me/{phone}?text={text}",
)

BOOKING_FIELDS = {"name": "Ali", "party_size": "2", "timestamp_iso": "2024-01-01T18:00:00"}


@pytest.fixture
def composer():
    return ActionMessageComposer(DEFAULT_TEMPLATES)


def _intent(kind, fields, channel=CHANNEL):
    return ActionIntent(kind=kind, fields=fields, channel=channel)


# ── compose ──────────────────────────────────────────────────────────────────

def test_booking_round_trip(composer):
    uri = composer.compose(_intent(IntentKind.BOOKING, BOOKING_FIELDS))

    assert uri.startswith("https://wa.me/966500000000?text=")
    assert decode_message_text(uri) == (
        "New booking at Jisr Al-Lawziyah\n"
        "Name: Ali\n"
        "Party size: 2\n"
        "Time: 01/01/2024 18:00"
    )


def test_encoded_text_has_no_raw_reserved_characters(composer):
    uri = composer.compose(_intent(IntentKind.BOOKING, BOOKING_FIELDS))
    encoded = uri.split("?text=", 1)[1]

    for raw in (" ", ":", "\n", "/", "?", "&", "="):
        assert raw not in encoded
    assert "%0A" in encoded
    assert "%3A" in encoded
    assert "%20" in encoded


def test_compose_is_referentially_transparent(composer):
    intent = _intent(IntentKind.ORDER, {"item_name": "Almond honey", "quantity": "3"})
    assert composer.compose(intent) == composer.compose(intent)
    assert composer.compose(intent) == composer.compose(
        _intent(IntentKind.ORDER, {"item_name": "Almond honey", "quantity": "3"})
    )


@pytest.mark.parametrize(
    "kind, fields, expected",
    [
        (
            IntentKind.ORDER,
            {"item_name": "Karak tea", "quantity": "2"},
            "New order at Jisr Al-Lawziyah\nItem: Karak tea\nQuantity: 2",
        ),
        (
            IntentKind.SERVICE_REQUEST,
            {"name": "Sara", "details": "Wheelchair access at the north gate"},
            "Service request at Jisr Al-Lawziyah\nName: Sara\n"
            "Request: Wheelchair access at the north gate",
        ),
        (
            IntentKind.LOST_AND_FOUND,
            {"name": "Omar", "item_name": "Black wallet", "details": "Near the bridge: 5pm"},
            "Lost item report at Jisr Al-Lawziyah\nName: Omar\nItem: Black wallet\n"
            "Details: Near the bridge: 5pm",
        ),
        (IntentKind.CUSTOM, {"text": "مرحبا، هل المكان مفتوح؟"}, "مرحبا، هل المكان مفتوح؟"),
    ],
)
def test_every_kind_round_trips(composer, kind, fields, expected):
    assert decode_message_text(composer.compose(_intent(kind, fields))) == expected


def test_place_name_and_timestamp_format_are_configurable():
    composer = ActionMessageComposer(
        DEFAULT_TEMPLATES, timestamp_format="%Y-%m-%d at %H:%M", place_name="Al Shafa"
    )
    text = decode_message_text(composer.compose(_intent(IntentKind.BOOKING, BOOKING_FIELDS)))
    assert text.startswith("New booking at Al Shafa\n")
    assert text.endswith("Time: 2024-01-01 at 18:00")


def test_extra_fields_are_ignored_by_default_templates(composer):
    fields = dict(BOOKING_FIELDS, note="window seat")
    text = decode_message_text(composer.compose(_intent(IntentKind.BOOKING, fields)))
    assert "window seat" not in text


# ── Intent validation ────────────────────────────────────────────────────────

def test_booking_missing_field_is_rejected():
    with pytest.raises(ValidationError):
        _intent(IntentKind.BOOKING, {"name": "Ali", "party_size": "2"})


def test_blank_field_is_rejected():
    with pytest.raises(ValidationError):
        _intent(IntentKind.CUSTOM, {"text": "   "})


def test_booking_timestamp_must_be_iso():
    with pytest.raises(ValidationError):
        _intent(IntentKind.BOOKING, dict(BOOKING_FIELDS, timestamp_iso="tomorrow at six"))


# ── Configuration errors ─────────────────────────────────────────────────────

def test_missing_template_fails_at_construction():
    templates = {k: v for k, v in DEFAULT_TEMPLATES.items() if k is not IntentKind.ORDER}
    with pytest.raises(ConfigurationError):
        ActionMessageComposer(templates)


def test_malformed_template_fails_at_construction():
    templates = {**DEFAULT_TEMPLATES, IntentKind.CUSTOM: "{text"}
    with pytest.raises(ConfigurationError):
        ActionMessageComposer(templates)


def test_template_with_unknown_field_fails_at_compose():
    templates = {**DEFAULT_TEMPLATES, IntentKind.CUSTOM: "{text} from {table}"}
    composer = ActionMessageComposer(templates)
    with pytest.raises(ConfigurationError):
        composer.compose(_intent(IntentKind.CUSTOM, {"text": "hi"}))


@pytest.mark.parametrize(
    "channel",
    [
        RecipientChannel(phone_number="", uri_template="https://wa.me/{phone}?text={text}"),
        RecipientChannel(phone_number="not-a-number", uri_template="https://wa.me/{phone}?text={text}"),
        RecipientChannel(phone_number="966500000000", uri_template="https://wa.me/{phone}"),
        RecipientChannel(phone_number="966500000000", uri_template=""),
    ],
)
def test_bad_channel_is_configuration_error(composer, channel):
    with pytest.raises(ConfigurationError):
        composer.compose(_intent(IntentKind.CUSTOM, {"text": "hi"}, channel=channel))


# ── Encoding ─────────────────────────────────────────────────────────────────

def test_unreserved_characters_pass_through():
    assert encode_query_component("AZaz09-._~") == "AZaz09-._~"


def test_reserved_characters_are_escaped():
    assert encode_query_component("a b:c/d?e&f=g+h#i") == "a%20b%3Ac%2Fd%3Fe%26f%3Dg%2Bh%23i"


def test_unicode_is_utf8_encoded():
    assert encode_query_component("é") == "%C3%A9"


def test_lone_surrogate_is_encoding_error():
    with pytest.raises(EncodingError):
        encode_query_component("bad \ud800 text")


# ── Map deep link ────────────────────────────────────────────────────────────

def test_map_search_uri():
    coordinate = Coordinate(latitude=21.0733, longitude=40.3105)
    assert map_search_uri(coordinate) == "https://maps.apple.com/?q=21.0733,40.3105"


def test_map_template_without_query_is_configuration_error():
    with pytest.raises(ConfigurationError):
        map_search_uri(Coordinate(latitude=0.0, longitude=0.0), "geo:0,0")


def test_intent_cannot_override_place_name(composer):
    fields = dict(BOOKING_FIELDS, place="Somewhere else")
    text = decode_message_text(composer.compose(_intent(IntentKind.BOOKING, fields)))
    assert text.startswith("New booking at Jisr Al-Lawziyah\n")
