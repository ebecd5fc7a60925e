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
"""Business-hours SLA clock for sales orders.

The work schedule is Monday to Friday, 08:00 to 15:00 local time (UTC-7).
Elapsed business time is defined by minute stepping: starting from the
order's (clamped) creation instant, every one-minute step that is still
before "now" and falls inside the schedule counts as one business minute.
``business_minutes_elapsed`` computes that count per calendar day instead of
walking every minute.
"""

from datetime import date, datetime, time, timedelta

from .models import WorkScheduleStatus
from .timeutils import LOCAL_TZ, as_local, parse_local_timestamp

WORKDAY_START = time(8, 0)
WORKDAY_END = time(15, 0)
WORKDAYS = range(0, 5)  # Monday..Friday as date.weekday()

ON_TIME_LIMIT = 120
MODERATE_LIMIT = 360

_STEP = timedelta(minutes=1)


def calendar_elapsed(order_instant: datetime, now: datetime) -> str:
    """Render elapsed wall-clock time as ``min``, ``hrs`` or ``días``.

    All conversions use floor division.
    """
    minutes = (as_local(now) - as_local(order_instant)) // _STEP
    if minutes < 60:
        return f"{minutes} min"
    if minutes < 1440:
        return f"{minutes // 60} hrs"
    return f"{minutes // 1440} días"


def clamp_to_schedule(instant: datetime) -> datetime:
    """Move ``instant`` forward to the next moment inside the schedule.

    Saturdays and Sundays go to the following Monday 08:00, weekday instants
    before 08:00 go to 08:00 the same day and instants at or after 15:00 go
    to 08:00 the next day. Instants inside the window are returned as is.
    """
    instant = as_local(instant)
    weekday = instant.weekday()
    if weekday == 5:
        return _opening(instant.date() + timedelta(days=2))
    if weekday == 6:
        return _opening(instant.date() + timedelta(days=1))
    if instant.time() < WORKDAY_START:
        return _opening(instant.date())
    if instant.time() >= WORKDAY_END:
        return _opening(instant.date() + timedelta(days=1))
    return instant


def business_minutes_elapsed(order_instant: datetime, now: datetime) -> int:
    """Count business minutes between an order and ``now``.

    Returns 0 when the order lies in the future.
    """
    start = as_local(order_instant)
    end = as_local(now)
    if start > end:
        return 0

    start = clamp_to_schedule(start)
    total = 0
    day = start.date()
    while day <= end.date():
        if day.weekday() in WORKDAYS:
            window_open = max(_opening(day), start)
            window_close = min(_closing(day), end)
            total += _steps_within(start, window_open, window_close)
        day += timedelta(days=1)
    return total


def classify(business_minutes: int) -> WorkScheduleStatus:
    """Map elapsed business minutes to a status band.

    Each band includes its lower bound and excludes its upper bound.
    """
    if business_minutes < ON_TIME_LIMIT:
        return WorkScheduleStatus.ON_TIME
    if business_minutes < MODERATE_LIMIT:
        return WorkScheduleStatus.MODERATE
    return WorkScheduleStatus.DELAYED


def order_status(date_order: datetime | str, now: datetime) -> WorkScheduleStatus:
    """Parse an order timestamp and classify its elapsed business time."""
    return classify(business_minutes_elapsed(parse_local_timestamp(date_order), now))


def _opening(day: date) -> datetime:
    return datetime.combine(day, WORKDAY_START, tzinfo=LOCAL_TZ)


def _closing(day: date) -> datetime:
    return datetime.combine(day, WORKDAY_END, tzinfo=LOCAL_TZ)


def _steps_within(origin: datetime, lo: datetime, hi: datetime) -> int:
    """Count steps ``origin + k * _STEP`` (k >= 0) that fall in ``[lo, hi)``."""
    if hi <= lo:
        return 0
    first = -((origin - lo) // _STEP)  # ceil((lo - origin) / _STEP)
    last = -((origin - hi) // _STEP)
    return max(0, last - max(first, 0))
