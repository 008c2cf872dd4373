"""
Action intents -> outbound message deep links.

Everything in this module is pure: the same intent always yields the same URI
and nothing here performs I/O. Opening the URI is the platform's job.
"""

import re
import string
from collections.abc import Mapping
from datetime import datetime
from urllib.parse import parse_qs, quote, urlsplit

from .const import DEFAULT_MAP_URI_TEMPLATE, DEFAULT_PLACE_NAME, DEFAULT_TIMESTAMP_FORMAT
from .errors import ConfigurationError, EncodingError
from .models import ActionIntent, Coordinate, IntentKind, RecipientChannel

_PHONE_RE = re.compile(r"^\d{6,15}$")
_CHANNEL_FIELDS = {"phone", "text"}


def _template_fields(template: str) -> set[str]:
    try:
        return {name for _, name, _, _ in string.Formatter().parse(template) if name}
    except ValueError as exc:
        raise ConfigurationError(f"Malformed template {template!r}: {exc}") from exc


def encode_query_component(text: str) -> str:
    """Percent-encode UTF-8 text; only unreserved characters pass through."""
    try:
        return quote(text, safe="", encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Message text is not representable in UTF-8: {exc.reason}") from exc


def decode_message_text(uri: str) -> str:
    """Return the decoded ``text`` query parameter of a messaging URI."""
    query = parse_qs(urlsplit(uri).query, keep_blank_values=True)
    try:
        return query["text"][0]
    except KeyError:
        raise ValueError(f"URI has no text parameter: {uri!r}") from None


def map_search_uri(coordinate: Coordinate, template: str = DEFAULT_MAP_URI_TEMPLATE) -> str:
    if _template_fields(template) != {"query"}:
        raise ConfigurationError(f"Map URI template must contain only {{query}}: {template!r}")
    return template.format(query=quote(coordinate.as_query(), safe=","))


def check_channel(channel: RecipientChannel) -> None:
    if not _PHONE_RE.match(channel.phone_number or ""):
        raise ConfigurationError(f"Invalid recipient phone number: {channel.phone_number!r}")
    if _template_fields(channel.uri_template) != _CHANNEL_FIELDS:
        raise ConfigurationError(
            f"Messaging URI template must contain {{phone}} and {{text}}: {channel.uri_template!r}"
        )


class ActionMessageComposer:
    def __init__(
        self,
        templates: Mapping[IntentKind, str],
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        place_name: str = DEFAULT_PLACE_NAME,
    ) -> None:
        missing = [kind.value for kind in IntentKind if not templates.get(kind)]
        if missing:
            raise ConfigurationError(f"No message template for: {', '.join(missing)}")
        for template in templates.values():
            _template_fields(template)

        self._templates = dict(templates)
        self.timestamp_format = timestamp_format
        self.place_name = place_name

    def render(self, intent: ActionIntent) -> str:
        values = {**intent.fields, "place": self.place_name}
        if intent.kind is IntentKind.BOOKING:
            when = datetime.fromisoformat(intent.fields["timestamp_iso"])
            values["timestamp"] = when.strftime(self.timestamp_format)

        template = self._templates[intent.kind]
        try:
            return template.format_map(values)
        except (KeyError, IndexError, ValueError) as exc:
            raise ConfigurationError(
                f"{intent.kind.value} template cannot be rendered: {exc}"
            ) from exc

    def compose(self, intent: ActionIntent) -> str:
        check_channel(intent.channel)
        text = encode_query_component(self.render(intent))
        return intent.channel.uri_template.format(phone=intent.channel.phone_number, text=text)
