# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
CCSDS epoch handling.

Timestamps are numpy datetime64 values with nanosecond unit, which keeps
sub-microsecond digits that datetime would drop. Parsing accepts the
calendar and day-of-year forms used by Orbit Data Messages.
"""
import re
from datetime import datetime, timezone

import numpy as np

from orbit_data_messages.domain.ccsds_contracts import FormatError


TIMESTAMP_UNIT = "datetime64[ns]"

_ONE_DAY = np.timedelta64(1, "D")

_CALENDAR_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}(?:T\d{2}:\d{2}(?::\d{2}(?:\.\d{1,9})?)?)?$"
)
_DAY_OF_YEAR_RE = re.compile(
    r"^(\d{4})-(\d{3})(?:T(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,9}))?)?)?$"
)


def parse_timestamp(text: str, tag: str = "EPOCH") -> np.datetime64:
    """
    Parse a CCSDS epoch string into a datetime64[ns].

    Accepted forms:
        yyyy-mm-ddTHH:MM:SS[.f...]   (up to 9 fractional digits)
        yyyy-mm-dd HH:MM:SS[.f...]
        yyyy-dddTHH:MM:SS[.f...]     (day of year)
    A trailing 'Z' is accepted and ignored; all epochs are naive UTC-like.

    Raises:
        FormatError: If the text is not a recognised epoch.
    """
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1]
    if len(value) > 10 and value[10] == " ":
        value = value[:10] + "T" + value[11:]

    if _CALENDAR_RE.match(value):
        try:
            return np.datetime64(value, "ns")
        except ValueError as e:
            raise FormatError(tag, text, "timestamp") from e

    m = _DAY_OF_YEAR_RE.match(value)
    if m:
        year, doy, hour, minute, second, frac = m.groups()
        day = int(doy)
        if not 1 <= day <= 366:
            raise FormatError(tag, text, "timestamp")
        ts = np.datetime64(f"{year}-01-01", "ns") + np.timedelta64(day - 1, "D")
        if ts.astype("datetime64[Y]") != np.datetime64(year, "Y"):
            raise FormatError(tag, text, "timestamp")
        ts += np.timedelta64(int(hour or 0), "h") + np.timedelta64(int(minute or 0), "m")
        ts += np.timedelta64(int(second or 0), "s")
        if frac:
            ts += np.timedelta64(int(frac.ljust(9, "0")), "ns")
        return ts

    raise FormatError(tag, text, "timestamp")


def as_timestamp(value, tag: str = "EPOCH") -> np.datetime64:
    """Normalise a datetime, ISO string or datetime64 to datetime64[ns].

    Timezone-aware datetimes are converted to UTC first.
    """
    if isinstance(value, np.datetime64):
        return value.astype(TIMESTAMP_UNIT)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return np.datetime64(value, "ns")
    if isinstance(value, str):
        return parse_timestamp(value, tag)
    raise TypeError(f"Cannot interpret {type(value).__name__} as a timestamp for {tag}")


def now_timestamp() -> np.datetime64:
    """Current UTC time as datetime64[ns]."""
    return np.datetime64(datetime.now(timezone.utc).replace(tzinfo=None), "ns")


def format_timestamp(value) -> str:
    """Render a timestamp as yyyy-mm-ddTHH:MM:SS.ffffff."""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M:%S.%f")
    return str(np.datetime_as_string(as_timestamp(value), unit="us"))


def day_of_year_components(value) -> tuple[int, int, float]:
    """
    Split a timestamp into calendar year, day of year and day fraction.

    The fraction is the time elapsed since midnight divided by one day,
    computed from the nanosecond count so no sub-second digits are lost.

    Returns:
        (year, day_of_year, fraction_of_day) with day_of_year starting at 1.
    """
    ts = as_timestamp(value)
    day_start = ts.astype("datetime64[D]")
    year_start = ts.astype("datetime64[Y]")
    year = int(year_start.astype(int)) + 1970
    day_of_year = int((day_start - year_start.astype("datetime64[D]")) / _ONE_DAY) + 1
    elapsed_ns = int((ts - day_start.astype(TIMESTAMP_UNIT)) / np.timedelta64(1, "ns"))
    return year, day_of_year, elapsed_ns / 86_400e9
