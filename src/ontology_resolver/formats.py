"""
Pure pretty-printing functions used to display raw property values.

Functions are grouped by the data type they format (number, boolean, bytes,
date, geoLocation, string, directory entity). Values that cannot be formatted
produce an empty string rather than raising.
"""

import logging
import math
import re
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Any, Callable

from dateutil import parser as dtp

from .messages import i18n

logger = logging.getLogger(__name__)

HEADINGS = [
    "north",
    "northeast",
    "east",
    "southeast",
    "south",
    "southwest",
    "west",
    "northwest",
]

DURATION_UNITS = [("w", 604800), ("d", 86400), ("h", 3600), ("m", 60), ("s", 1)]

_PHONE_PATTERN = re.compile(r"^([0-9]{3})?[-. ]?([0-9]{3})?[-. ]?([0-9]{4})$")
_SSN_PATTERN = re.compile(r"^([0-9]{3})?[-. ]?([0-9]{2})?[-. ]?([0-9]{4})$")
_POINT_PATTERN = re.compile(r"\s*point(?:\[|\()(.*?),(.*?)(?:\]|\))\s*", re.IGNORECASE)

_to_class_name: dict[str, str] = {}
_from_class_name: dict[str, str] = {}


def _to_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


# number


def number_pretty(number: Any) -> str:
    "Round to at most two decimals and add thousands separators."
    number = _to_number(number)
    if number is None or (isinstance(number, float) and math.isnan(number)):
        return ""
    formatted = f"{number:,.2f}"
    return formatted.rstrip("0").rstrip(".")


def number_pretty_approximate(number: float) -> str:
    "Abbreviate a number: 1000 => 1K, 1000000 => 1M, ..."
    is_negative = number < 0
    abs_value = abs(number)
    for threshold, suffix in (
        (1_000_000_000_000, "numbers.trillion_suffix"),
        (1_000_000_000, "numbers.billion_suffix"),
        (1_000_000, "numbers.million_suffix"),
        (1_000, "numbers.thousand_suffix"),
    ):
        if abs_value >= threshold:
            result = number_pretty(round(abs_value / threshold, 1)) + i18n(suffix)
            break
    else:
        result = number_pretty(abs_value)
    return ("-" if is_negative else "") + result


def number_percent(number: Any) -> str:
    "Transform a 0-1 decimal into a rounded percentage."
    number = _to_number(number)
    if number is None:
        return ""
    return f"{math.floor(number * 100 + 0.5)}%"


def number_heading(value: Any) -> str | None:
    "Convert degrees into a compass heading, e.g. 5.2 => North 5.2°"
    value = _to_number(value)
    if value is None:
        return None
    in_range = math.fmod(value, 360)
    direction = HEADINGS[int(math.floor(in_range / 45 + 0.5)) % 8]
    return f"{i18n('field.heading.' + direction)} {number_pretty(in_range)}°"


def number_duration(value: Any) -> str:
    "Format a number of seconds as a readable duration, e.g. 64 => 1m 4s"
    if isinstance(value, str):
        if not value.strip():
            return ""
        value = _to_number(value)
    if value is None or isinstance(value, bool):
        return ""
    if value == 0:
        return "0s"
    seconds = int(math.floor(value))
    parts = []
    for suffix, size in DURATION_UNITS:
        count, seconds = divmod(seconds, size)
        if count:
            parts.append(f"{count}{suffix}")
    return " ".join(parts)


# boolean


def boolean_pretty(value: Any) -> str:
    "Convert a boolean or T/F/true/false string into a display string."
    if value is None or value == "":
        return ""
    if value == "T":
        value = True
    if value == "F":
        value = False
    if value and value != "false":
        return i18n("boolean.true")
    return i18n("boolean.false")


# bytes


def bytes_pretty(value: Any, precision: int = 1) -> str:
    "Convert a byte count into a human readable size. Terabytes is the largest unit."
    k = 1024
    m = k * 1024
    g = m * 1024
    t = g * 1024
    number = _to_number(value)
    if number is None or number < k:
        return f"{value} {i18n('bytes.suffix')}"
    if number < m:
        return f"{number / k:.{precision}f} {i18n('bytes.kilo')}"
    if number < g:
        return f"{number / m:.{precision}f} {i18n('bytes.mega')}"
    if number < t:
        return f"{number / g:.{precision}f} {i18n('bytes.giga')}"
    return f"{number / t:.{precision}f} {i18n('bytes.tera')}"


# date


@lru_cache(maxsize=1)
def current_timezone() -> tzinfo:
    "The timezone dates are displayed in. Computed once per process."
    return datetime.now().astimezone().tzinfo


def date_local(value: Any) -> datetime | None:
    """
    Convert milliseconds since the epoch, a numeric string, a date string or a
    `datetime` into an aware `datetime` in the display timezone.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=current_timezone())
        return value
    number = _to_number(value)
    if number is not None:
        return datetime.fromtimestamp(number / 1000, tz=current_timezone())
    if isinstance(value, str):
        # the display timezone abbreviation, as written by date_time_string
        display_zone = current_timezone()
        try:
            parsed = dtp.parse(value, tzinfos={display_zone.tzname(None): display_zone})
        except (ValueError, OverflowError):
            logger.warning(f"Unable to parse date: {value}")
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=display_zone)
        return parsed
    logger.warning(f"Unable to parse date: {value}")
    return None


def date_utc(value: Any) -> datetime | None:
    "Convert a date value into an aware `datetime` in UTC."
    local = date_local(value)
    if local is None:
        return None
    return local.astimezone(timezone.utc)


def date_string(value: Any) -> str:
    "Date (no time) in the display timezone."
    local = date_local(value)
    return local.strftime("%Y-%m-%d") if local else ""


def date_time_string(value: Any) -> str:
    "Date and time in the display timezone, followed by the timezone abbreviation."
    local = date_local(value)
    if local is None:
        return ""
    local = local.astimezone(current_timezone())
    abbreviation = local.tzname()
    return local.strftime("%Y-%m-%d %H:%M") + (f" {abbreviation}" if abbreviation else "")


def date_string_utc(value: Any) -> str:
    "Date (no time) in UTC, ignoring the display timezone."
    utc = date_utc(value)
    return utc.strftime("%Y-%m-%d") if utc else ""


def date_time_string_utc(value: Any) -> str:
    utc = date_utc(value)
    return utc.strftime("%Y-%m-%d %H:%M") + " UTC" if utc else ""


def time_string(value: Any) -> str:
    local = date_local(value)
    return local.strftime("%H:%M") if local else ""


def relative_to_date(date: Any, from_date: Any) -> str:
    "Span between two millisecond timestamps: moments, 5 minutes, 4 years, ..."
    date = _to_number(date)
    from_date = _to_number(from_date)
    if date is None or from_date is None:
        return ""
    seconds = abs(from_date - date) / 1000
    days = seconds / 86400
    for count, singular, plural in (
        (int(days // 365), "time.year", "time.years"),
        (int(days // 30), "time.month", "time.months"),
        (int(days), "time.day", "time.days"),
        (int(seconds // 3600), "time.hour", "time.hours"),
        (int(seconds // 60), "time.minute", "time.minutes"),
    ):
        if count > 1:
            return f"{count} {i18n(plural)}"
        if count == 1:
            return i18n(singular)
    return i18n("time.moments")


# geoLocation


def geo_location_parse(value: str) -> dict[str, str] | None:
    "Parse a `point[lat,lon]` string."
    match = _POINT_PATTERN.match(value or "")
    if match:
        return {"latitude": match.group(1), "longitude": match.group(2)}
    return None


def geo_location_pretty(geo: Any, withhold_description: bool = False) -> str | None:
    "Format a geolocation mapping or `point[lat,lon]` string as `lat, lon`."
    if isinstance(geo, str):
        parsed = geo_location_parse(geo)
        return geo_location_pretty(parsed) if parsed else geo

    if isinstance(geo, dict) and "latitude" in geo and "longitude" in geo:
        latitude = _to_number(geo["latitude"])
        longitude = _to_number(geo["longitude"])
        if latitude is None or longitude is None:
            return ""
        latlon = f"{latitude:.3f}, {longitude:.3f}"
        if not withhold_description and geo.get("description"):
            return f"{geo['description']} {latlon}"
        return latlon
    return None


# string


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def string_phone_number(value: Any) -> str:
    "Format US phone numbers: 1234567890 => 123-456-7890"
    text = _text(value)
    match = _PHONE_PATTERN.match(text)
    if match:
        return "-".join(group for group in match.groups() if group)
    return text


def string_ssn(value: Any) -> str:
    "Format SSN-like strings: 123 45 6789 => 123-45-6789"
    text = _text(value)
    match = _SSN_PATTERN.match(text)
    if match:
        return "-".join(group for group in match.groups() if group)
    return text


def uppercase(value: str | None) -> str:
    return (value or "").upper()


def lowercase(value: str | None) -> str:
    return (value or "").lower()


def pretty_print(value: str | None) -> str:
    "Uppercase the first letter of every word."
    return re.sub(
        r"\w[^-\s]*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), value or ""
    )


def normalize_accents(value: str | None) -> str:
    text = value or ""
    for pattern, replacement in (
        ("[áàãâä]", "a"),
        ("[éè¨ê]", "e"),
        ("[íìïî]", "i"),
        ("[óòöôõ]", "o"),
        ("[úùüû]", "u"),
        ("[ç]", "c"),
        ("[ñ]", "n"),
    ):
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    return text


STRING_TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "uppercase": uppercase,
    "lowercase": lowercase,
    "prettyPrint": pretty_print,
    "normalizeAccents": normalize_accents,
    "phoneNumber": string_phone_number,
    "ssn": string_ssn,
}


# directory entities


def directory_entity_pretty(directory_entity: dict[str, Any] | None) -> str:
    "`displayName (Group)` or `displayName (Person)`."
    if directory_entity and directory_entity.get("type"):
        pretty_type = (
            i18n("field.directory.group")
            if directory_entity["type"] == "group"
            else i18n("field.directory.person")
        )
        return f"{directory_entity.get('displayName', '')} ({pretty_type})"
    return ""


# class names


def class_name_to(value: str) -> str:
    "Intern a string as a stable, CSS-safe class name."
    class_name = _to_class_name.get(value)
    if class_name is None:
        class_name = _to_class_name[value] = f"id{len(_to_class_name)}"
    _from_class_name[class_name] = value
    return class_name


def class_name_from(class_name: str) -> str | None:
    original = _from_class_name.get(class_name)
    if original is None:
        logger.error(f"Never created a class for {class_name}")
    return original
