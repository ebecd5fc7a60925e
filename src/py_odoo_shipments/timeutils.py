# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Local-time helpers for order timestamps.

Orders are displayed and measured in a fixed civil offset of UTC-7 with no
daylight saving. The ERP stores timestamps in UTC; the dashboard renders them
as ``DD/MM/YYYY, hh:mm:ss a.m.`` in local time and parses that text back when
it computes elapsed time.
"""

import re
from datetime import datetime, timedelta, timezone

from .exceptions import InvalidTimestampError

LOCAL_TZ = timezone(timedelta(hours=-7), "UTC-07:00")

INVALID_DATE = "Invalid date"

_LOCALIZED_RE = re.compile(
    r"""
    ^\s*
    (?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{4})
    \s*,?\s*
    (?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})
    \s*
    (?P<meridiem>[ap])\.?\s*m\.?
    \s*$
    """,
    re.IGNORECASE | re.VERBOSE,
)

# Intl renderers put non-breaking or narrow spaces before the meridiem.
_SPACES = str.maketrans({"\u00a0": " ", "\u202f": " "})


def as_local(value: datetime) -> datetime:
    """Return ``value`` in LOCAL_TZ; naive datetimes are local wall clock."""
    if value.tzinfo is None:
        return value.replace(tzinfo=LOCAL_TZ)
    return value.astimezone(LOCAL_TZ)


def to_24_hour(hour: int, meridiem: str) -> int:
    """Convert a 12-hour clock reading to 24-hour.

    12 AM is midnight, 12 PM stays noon, any other PM hour gains 12.

    Raises:
        InvalidTimestampError: If ``hour`` is not on a 12-hour dial (1-12).
    """
    if not 1 <= hour <= 12:
        raise InvalidTimestampError(f"Hour {hour} is not valid with {meridiem}")
    meridiem = meridiem.lower()
    if meridiem == "pm" and hour != 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def parse_local_timestamp(value: datetime | str) -> datetime:
    """Parse an order timestamp as local wall-clock time.

    Accepts a ``datetime``, an ISO-8601 string or the localized text
    ``DD/MM/YYYY, HH:MM:SS AM|PM`` (``a.m.``/``p.m.`` also accepted). Whatever
    offset the source carried is discarded: the wall clock is kept and
    LOCAL_TZ is attached.

    Raises:
        InvalidTimestampError: If the value cannot be decomposed or is not a
            valid calendar date and time.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=LOCAL_TZ)
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimestampError(f"Invalid timestamp: {value!r}")

    text = value.translate(_SPACES).strip()
    match = _LOCALIZED_RE.match(text)
    if match:
        parts = {k: int(v) for k, v in match.groupdict().items() if k != "meridiem"}
        hour = to_24_hour(parts["hour"], match.group("meridiem") + "m")
        try:
            return datetime(
                parts["year"],
                parts["month"],
                parts["day"],
                hour,
                parts["minute"],
                parts["second"],
                tzinfo=LOCAL_TZ,
            )
        except ValueError as e:
            raise InvalidTimestampError(f"Invalid timestamp: {value!r} ({e})") from e

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidTimestampError(f"Invalid timestamp: {value!r}") from e
    return parsed.replace(tzinfo=LOCAL_TZ)


def format_local_timestamp(value: datetime) -> str:
    """Render a datetime as ``DD/MM/YYYY, hh:mm:ss a.m.`` in LOCAL_TZ."""
    local = as_local(value)
    hour12 = local.hour % 12 or 12
    meridiem = "a.m." if local.hour < 12 else "p.m."
    return f"{local:%d/%m/%Y}, {hour12:02d}:{local:%M:%S} {meridiem}"


def utc_to_local_display(value) -> str:
    """Convert an ERP UTC timestamp to the local display text.

    The ERP sends ``YYYY-MM-DD HH:MM:SS`` without an offset; that is UTC.
    Missing values arrive as ``False``.

    Raises:
        InvalidTimestampError: If ``value`` is empty or unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidTimestampError(f"Invalid timestamp: {value!r}") from e
    else:
        raise InvalidTimestampError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return format_local_timestamp(parsed)
