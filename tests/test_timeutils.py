from datetime import datetime, timedelta, timezone

import pytest

from py_odoo_shipments.exceptions import InvalidTimestampError
from py_odoo_shipments.timeutils import (
    LOCAL_TZ,
    as_local,
    format_local_timestamp,
    parse_local_timestamp,
    to_24_hour,
    utc_to_local_display,
)


def local(*args) -> datetime:
    return datetime(*args, tzinfo=LOCAL_TZ)


def test_local_tz_is_fixed_utc_minus_seven():
    assert LOCAL_TZ.utcoffset(None) == timedelta(hours=-7)
    # No daylight saving: summer and winter share the offset.
    assert local(2024, 1, 15).utcoffset() == local(2024, 7, 15).utcoffset()


@pytest.mark.parametrize(
    "hour, meridiem, expected",
    [(12, "am", 0), (1, "am", 1), (11, "am", 11), (12, "pm", 12), (1, "pm", 13), (11, "PM", 23)],
)
def test_to_24_hour(hour, meridiem, expected):
    assert to_24_hour(hour, meridiem) == expected


@pytest.mark.parametrize("hour, meridiem", [(0, "pm"), (13, "am"), (13, "pm")])
def test_to_24_hour_rejects_hours_off_the_dial(hour, meridiem):
    with pytest.raises(InvalidTimestampError):
        to_24_hour(hour, meridiem)


def test_parse_localized_text():
    """Tests the es-MX rendering used by the dashboard rows."""
    parsed = parse_local_timestamp("15/10/2024, 01:46:10 p.m.")
    assert parsed == local(2024, 10, 15, 13, 46, 10)
    assert parsed.utcoffset() == timedelta(hours=-7)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("15/10/2024, 12:05:00 a.m.", local(2024, 10, 15, 0, 5, 0)),
        ("15/10/2024, 12:05:00 p.m.", local(2024, 10, 15, 12, 5, 0)),
        ("15/10/2024, 09:00:00 AM", local(2024, 10, 15, 9, 0, 0)),
        ("15/10/2024, 09:00:00 PM", local(2024, 10, 15, 21, 0, 0)),
        ("5/3/2024, 7:08:09 pm", local(2024, 3, 5, 19, 8, 9)),
        ("15/10/2024, 01:46:10\u00a0p.\u00a0m.", local(2024, 10, 15, 13, 46, 10)),
        ("15/10/2024, 01:46:10\u202fp.m.", local(2024, 10, 15, 13, 46, 10)),
    ],
)
def test_parse_localized_variants(text, expected):
    assert parse_local_timestamp(text) == expected


def test_parse_iso_keeps_wall_clock():
    """An explicit offset in the source never shifts the wall clock."""
    assert parse_local_timestamp("2024-10-15T13:46:10Z") == local(2024, 10, 15, 13, 46, 10)
    assert parse_local_timestamp("2024-10-15 13:46:10") == local(2024, 10, 15, 13, 46, 10)


def test_parse_datetime_keeps_wall_clock():
    aware = datetime(2024, 10, 15, 13, 46, 10, tzinfo=timezone.utc)
    assert parse_local_timestamp(aware) == local(2024, 10, 15, 13, 46, 10)
    naive = datetime(2024, 10, 15, 13, 46, 10)
    assert parse_local_timestamp(naive) == local(2024, 10, 15, 13, 46, 10)


@pytest.mark.parametrize(
    "value",
    [
        "",
        None,
        "Invalid date",
        "15/10/2024 13:46",
        "31/02/2024, 10:00:00 a.m.",
        "15/13/2024, 10:00:00 a.m.",
        "15/10/2024, 13:00:00 p.m.",
        "15/10/2024, 13:00:00 a.m.",
        "15/10/2024, 00:30:00 p.m.",
        "15/10/2024, 10:61:00 a.m.",
    ],
)
def test_parse_rejects_invalid_values(value):
    with pytest.raises(InvalidTimestampError):
        parse_local_timestamp(value)


def test_invalid_timestamp_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_local_timestamp("not a date")


def test_format_local_timestamp():
    assert format_local_timestamp(local(2024, 10, 15, 13, 46, 10)) == "15/10/2024, 01:46:10 p.m."
    assert format_local_timestamp(local(2024, 10, 15, 0, 5, 0)) == "15/10/2024, 12:05:00 a.m."
    assert format_local_timestamp(local(2024, 10, 15, 12, 0, 0)) == "15/10/2024, 12:00:00 p.m."


def test_utc_to_local_display_converts_from_utc():
    """The ERP sends naive UTC timestamps; 20:46 UTC is 13:46 in UTC-7."""
    assert utc_to_local_display("2024-10-15 20:46:10") == "15/10/2024, 01:46:10 p.m."
    # Crossing midnight moves the calendar date back.
    assert utc_to_local_display("2024-10-15 03:00:00") == "14/10/2024, 08:00:00 p.m."


def test_utc_display_parses_back_to_the_same_instant():
    shown = utc_to_local_display("2024-10-15 20:46:10")
    parsed = parse_local_timestamp(shown)
    assert parsed == datetime(2024, 10, 15, 20, 46, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [False, None, "", "yesterday"])
def test_utc_to_local_display_rejects_missing_values(value):
    with pytest.raises(InvalidTimestampError):
        utc_to_local_display(value)


def test_as_local():
    assert as_local(datetime(2024, 1, 1, 8, 0)) == local(2024, 1, 1, 8, 0)
    converted = as_local(datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc))
    assert converted.hour == 8
    assert converted.tzinfo == LOCAL_TZ
