# pass_trigger/scheduler.py

import enum
import logging
import time

from pass_trigger.capture import DEFAULT_COMMAND, CaptureError, CaptureProcess
from pass_trigger.pass_predictor import next_aos, next_los
from pass_trigger.time_utils import julian_to_datetime, now_julian, seconds_between

logger = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = "idle"
    CAPTURING = "capturing"


class PassTrigger:
    """
    Two-state loop: IDLE sleeps until the next AOS, CAPTURING keeps the
    recorder running until LOS. The clock is read again after every sleep,
    so a sleep that overran or a clock step is picked up on the next cycle.
    """

    def __init__(self, engine, recorder, threshold=0.0, capture_command=DEFAULT_COMMAND,
                 min_sleep=60.0, short_poll=1.0, fallback_poll=300.0,
                 clock=time.time, sleep=time.sleep, capture_factory=CaptureProcess):
        """
        :param engine: OrbitEngine for the tracked satellite and station
        :param recorder: DataManager naming capture files and logging passes
        :param threshold: AOS/LOS elevation in radians
        :param min_sleep: Only sleep until AOS when it is further away than this (s)
        :param short_poll: Longest sleep while waiting for an AOS closer than min_sleep (s)
        :param fallback_poll: Re-poll interval when no AOS/LOS is found (s)
        """
        self.engine = engine
        self.recorder = recorder
        self.threshold = threshold
        self.capture_command = capture_command
        self.min_sleep = min_sleep
        self.short_poll = short_poll
        self.fallback_poll = fallback_poll
        self.clock = clock
        self.sleep = sleep
        self.capture_factory = capture_factory
        self.state = State.IDLE

    def now(self):
        return now_julian(self.clock)

    def is_visible(self, julian_date):
        return self.engine.observe_at(julian_date).above(self.threshold)

    def run(self):
        logger.info("Waiting for passes of %s", self.engine.elements.name or self.engine.elements.satellite_number)
        while True:
            self.step()

    def step(self):
        """One cycle: track the pass if the satellite is up, then wait for the next AOS."""
        now = self.now()
        if self.is_visible(now):
            self.track_pass(now)
            now = self.now()
        self.wait_for_aos(now)

    def _start_capture(self, path):
        capture = self.capture_factory(path, self.capture_command)
        try:
            capture.start()
        except CaptureError as e:
            logger.error("%s. Tracking the pass without capture.", e)
            return None
        return capture

    def track_pass(self, now):
        """
        CAPTURING state. Returns once LOS has been reached; the recorder is
        stopped on every way out.
        """
        logger.info("Capture trigger")
        aos = now
        path = self.recorder.capture_path(julian_to_datetime(now))
        self.state = State.CAPTURING
        capture = self._start_capture(path)
        try:
            while True:
                los = next_los(self.engine.observer, self.engine.elements, now, self.threshold)
                if los is None:
                    logger.warning("No LOS found, checking again in %.0f s", self.fallback_poll)
                    self.sleep(self.fallback_poll)
                    now = self.now()
                    if not self.is_visible(now):
                        break
                    continue

                seconds = seconds_between(now, los)
                if seconds > 0:
                    logger.info("Sleep rest of the pass (%.0f s, LOS at %s)",
                                seconds, julian_to_datetime(los).strftime("%H:%M:%S"))
                    self.sleep(seconds)
                now = self.now()
                break
        finally:
            if capture is not None:
                capture.stop()
            self.state = State.IDLE

        logger.info("Wake up, capture stopped")
        self.recorder.log_pass(aos, now, path if capture is not None else None, capture is not None)

    def wait_for_aos(self, now):
        """IDLE state: sleep towards the next AOS."""
        aos = next_aos(self.engine.observer, self.engine.elements, now, self.threshold)
        if aos is None:
            logger.warning("No AOS found within the search horizon, checking again in %.0f s",
                           self.fallback_poll)
            self.sleep(self.fallback_poll)
            return

        seconds = seconds_between(now, aos)
        if seconds > self.min_sleep:
            logger.info("Sleeping for %f hours until next AOS (%s).",
                        seconds / 3600.0, julian_to_datetime(aos).strftime("%H:%M:%S"))
            self.sleep(seconds)
        else:
            self.sleep(max(0.0, min(seconds, self.short_poll)))
