# pass_trigger/time_utils.py

import time
from datetime import datetime, timezone

# Julian date of the Unix epoch (1970-01-01 00:00 UTC)
UNIX_EPOCH_JD = 2440587.5
SECONDS_PER_DAY = 86400.0


def to_julian(unix_time):
    """
    Converts Unix time (seconds, UTC) to a Julian date with the fractional day.
    """
    return UNIX_EPOCH_JD + unix_time / SECONDS_PER_DAY


def from_julian(julian_date):
    """
    Converts a Julian date back to Unix time, rounded to whole seconds.
    """
    return int(round((julian_date - UNIX_EPOCH_JD) * SECONDS_PER_DAY))


def now_julian(clock=time.time):
    return to_julian(clock())


def julian_to_datetime(julian_date):
    return datetime.fromtimestamp(from_julian(julian_date), tz=timezone.utc)


def seconds_between(start, end):
    """Signed number of seconds from Julian date `start` to `end`."""
    return (end - start) * SECONDS_PER_DAY
