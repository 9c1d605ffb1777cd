# pass_trigger/pass_predictor.py

import logging
import math
from dataclasses import dataclass

import numpy as np

from pass_trigger.orbit_engine import MINUTES_PER_DAY, look_angles, observe, propagate, propagate_many
from pass_trigger.time_utils import SECONDS_PER_DAY

logger = logging.getLogger(__name__)

# Coarse sampling: this many samples per orbit, kept within [MIN_STEP, MAX_STEP] seconds
SAMPLES_PER_ORBIT = 180
MIN_STEP = 15.0
MAX_STEP = 300.0

# Crossings are refined until the bracket is narrower than this (seconds)
TIME_TOLERANCE = 0.1

# Default search horizon: the longer of two orbits and this many days
SEARCH_DAYS = 3.0

# Samples per chunk of the coarse scan
_CHUNK = 2048

# NaN (decayed/invalid) states count as below any threshold
_NOT_VISIBLE = -math.pi / 2.0


@dataclass(frozen=True)
class PassWindow:
    aos: float
    los: float
    tca: float
    max_elevation: float

    @property
    def duration_seconds(self):
        return (self.los - self.aos) * SECONDS_PER_DAY

    @property
    def max_elevation_degrees(self):
        return math.degrees(self.max_elevation)

    @property
    def duration_str(self):
        seconds = self.duration_seconds
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"


def coarse_step(elements):
    """
    Sampling step in days. A fraction of the orbital period, so fast low orbits
    are sampled densely enough not to step over a pass.
    """
    seconds = elements.period_minutes * 60.0 / SAMPLES_PER_ORBIT
    seconds = min(max(seconds, MIN_STEP), MAX_STEP)
    return seconds / SECONDS_PER_DAY


def search_horizon(elements):
    """Default search span in days."""
    period_days = elements.period_minutes / MINUTES_PER_DAY
    if not math.isfinite(period_days):
        return SEARCH_DAYS
    return max(2.0 * period_days, SEARCH_DAYS)


def elevation_at(observer, elements, julian_date):
    elevation = observe(observer, propagate(elements, julian_date)).elevation
    if math.isnan(elevation):
        return _NOT_VISIBLE
    return elevation


def _elevations(observer, elements, julian_dates):
    state = propagate_many(elements, julian_dates)
    _, elevation, _, _ = look_angles(observer, state.time, state.position, state.velocity)
    return np.nan_to_num(elevation, nan=_NOT_VISIBLE)


def _refine(observer, elements, before, after, threshold, rising):
    """
    Bisects [before, after] on elevation - threshold. Returns the first instant
    on the far side of the crossing, i.e. visible for a rise, not visible for a set.
    """
    tolerance = TIME_TOLERANCE / SECONDS_PER_DAY
    while after - before > tolerance:
        middle = 0.5 * (before + after)
        visible = elevation_at(observer, elements, middle) >= threshold
        if visible == rising:
            after = middle
        else:
            before = middle
    return after


def _find_crossing(observer, elements, from_time, threshold, rising, horizon):
    """
    Scans forward from `from_time` in coarse steps for the first rise (rising=True)
    or set (rising=False) through `threshold`. Returns None if none is found
    within `horizon` days.
    """
    step = coarse_step(elements)
    if horizon is None:
        horizon = search_horizon(elements)
    end_time = from_time + horizon

    previous_time = from_time
    previous_visible = elevation_at(observer, elements, from_time) >= threshold
    start = from_time
    while start < end_time:
        times = start + step * np.arange(1, _CHUNK + 1)
        times = times[times <= end_time + step]
        visible = _elevations(observer, elements, times) >= threshold

        flags = np.concatenate(([previous_visible], visible))
        if rising:
            hits = np.flatnonzero(~flags[:-1] & flags[1:])
        else:
            hits = np.flatnonzero(flags[:-1] & ~flags[1:])

        if hits.size:
            i = hits[0]
            before = previous_time if i == 0 else times[i - 1]
            return _refine(observer, elements, before, times[i], threshold, rising)

        previous_time = times[-1]
        previous_visible = bool(visible[-1])
        start = times[-1]

    logger.debug("No %s of satellite %d within %.2f days of JD %.5f",
                 "AOS" if rising else "LOS", elements.satellite_number, horizon, from_time)
    return None


def next_aos(observer, elements, from_time, threshold=0.0, horizon=None):
    """
    Next acquisition of signal after `from_time` (Julian date), or None when no
    rise happens within the search horizon.

    If the satellite is already at or above `threshold` at `from_time`, the
    current pass is skipped and the rise of the following pass is returned.
    """
    return _find_crossing(observer, elements, from_time, threshold, True, horizon)


def next_los(observer, elements, from_time, threshold=0.0, horizon=None):
    """
    Next loss of signal after `from_time`, or None. When the satellite is below
    `threshold` at `from_time` this is the end of the next pass.
    """
    return _find_crossing(observer, elements, from_time, threshold, False, horizon)


def _culmination(observer, elements, aos, los, samples=60):
    times = np.linspace(aos, los, samples)
    elevations = _elevations(observer, elements, times)
    i = int(np.argmax(elevations))

    # golden-section refinement around the best sample
    low = times[max(i - 1, 0)]
    high = times[min(i + 1, samples - 1)]
    ratio = (math.sqrt(5.0) - 1.0) / 2.0
    tolerance = TIME_TOLERANCE / SECONDS_PER_DAY
    while high - low > tolerance:
        a = high - ratio * (high - low)
        b = low + ratio * (high - low)
        if elevation_at(observer, elements, a) < elevation_at(observer, elements, b):
            low = a
        else:
            high = b
    tca = 0.5 * (low + high)
    return tca, elevation_at(observer, elements, tca)


class PassPredictor:
    def __init__(self, observer, threshold=0.0):
        """
        :param observer: Observer (your ground station)
        :param threshold: AOS/LOS elevation in radians
        """
        self.observer = observer
        self.threshold = threshold

    def next_aos(self, elements, from_time, horizon=None):
        return next_aos(self.observer, elements, from_time, self.threshold, horizon)

    def next_los(self, elements, from_time, horizon=None):
        return next_los(self.observer, elements, from_time, self.threshold, horizon)

    def get_next_passes(self, elements, from_time, hours=24, min_elevation=0.0):
        """
        Complete passes whose AOS falls within `hours` of `from_time`.
        Passes culminating below `min_elevation` (radians) are left out.
        """
        end_time = from_time + hours / 24.0
        pass_list = []

        current = from_time
        while current < end_time:
            aos = self.next_aos(elements, current, horizon=end_time - current)
            if aos is None or aos > end_time:
                break
            los = self.next_los(elements, aos)
            if los is None:
                # visible until the end of the search horizon
                break

            tca, max_el = _culmination(self.observer, elements, aos, los)
            if max_el >= min_elevation:
                pass_list.append(PassWindow(aos=aos, los=los, tca=tca, max_elevation=max_el))
            current = los

        return pass_list
