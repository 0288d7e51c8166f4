"""Parsing and validation of form-encoded action input."""

import json
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from route_picker.core.errors import ActionError
from route_picker.models.route import NAME_MAX_LENGTH

# Form bodies arrive as starlette FormData; tests pass plain dicts
FormData = Mapping[str, Any]

# Trailing "(Coordinated Universal Time)" of a browser Date.toString()
_TZ_NAME_SUFFIX = re.compile(r"\s*\([^)]*\)\s*$")
_BROWSER_DATE_FORMAT = "%a %b %d %Y %H:%M:%S GMT%z"

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
# Primary keys are 32-bit signed INTEGER columns
MAX_ID = 2**31 - 1


def form_text(form: FormData, key: str) -> str | None:
    """
    Return a text field of the form, or None when it is absent or empty.

    File uploads are not text and count as absent.
    """
    value = form.get(key)
    if not isinstance(value, str) or value == "":
        return None
    return value


def parse_id(value: str, message: str) -> int:
    """
    Parse a database id sent as a form field.

    Only plain decimal digits are accepted, and the id must fit a primary key.

    Raises:
        ActionError: validation error carrying `message` for anything else
    """
    text = value.strip()
    if not _ID_PATTERN.fullmatch(text) or not 1 <= (parsed := int(text)) <= MAX_ID:
        raise ActionError.validation(message)
    return parsed


def validate_name(raw: str, *, empty_message: str, too_long_message: str) -> str:
    """
    Apply the naming rule shared by routes and groups.

    The name is trimmed, must not be empty and must fit NAME_MAX_LENGTH.

    Returns:
        The trimmed name
    """
    name = raw.strip()
    if not name:
        raise ActionError.validation(empty_message)
    if len(name) > NAME_MAX_LENGTH:
        raise ActionError.validation(too_long_message)
    return name


def parse_timestamp(value: str) -> datetime:
    """
    Parse a date-like string into an aware datetime.

    Accepts ISO 8601, RFC 2822 and the browser `Date.toString()` form
    ("Mon Jan 01 2024 10:00:00 GMT+0000 (Coordinated Universal Time)").
    Naive values are taken as UTC, and the result is always converted to UTC.

    Raises:
        ValueError: If the string is not a recognised date
    """
    text = value.strip()
    parsed: datetime | None = None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass

    if parsed is None:
        try:
            parsed = datetime.strptime(_TZ_NAME_SUFFIX.sub("", text), _BROWSER_DATE_FORMAT)
        except ValueError:
            pass

    if parsed is None:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            msg = f"Unrecognised date: {value!r}"
            raise ValueError(msg) from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    # SQLite stores DateTime without its offset
    return parsed.astimezone(UTC)


def parse_json_field(form: FormData, key: str) -> Any:  # noqa: ANN401
    """
    Decode an optional JSON-encoded form field.

    An absent or empty field decodes to an empty object.

    Raises:
        ActionError: validation error when the field is not valid JSON
    """
    if (raw := form_text(form, key)) is None:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise ActionError.validation(f"Invalid JSON in {key}") from None
