# pass_trigger/main.py

import argparse
import logging
import math
import signal
import sys

from pass_trigger.config import load_config
from pass_trigger.data_manager import DataManager
from pass_trigger.orbit_engine import Observer, OrbitEngine
from pass_trigger.pass_predictor import PassPredictor
from pass_trigger.scheduler import PassTrigger
from pass_trigger.time_utils import julian_to_datetime, now_julian
from pass_trigger.tle_source import TleSource

logger = logging.getLogger("pass_trigger")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pass-trigger",
        description="Start a capture program whenever a satellite is above the horizon",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument("tle_file", help="TLE file path")
    parser.add_argument("satellite_number", help="NORAD catalog number", type=int)
    parser.add_argument("latitude", help="Station latitude [deg north]", type=float)
    parser.add_argument("longitude", help="Station longitude [deg east]", type=float)
    parser.add_argument("-a", "--altitude", help="Station altitude [m] (config if omitted)", type=float)
    parser.add_argument("-c", "--config", help="Configuration file", default=None)
    parser.add_argument("-e", "--min-elevation", help="AOS/LOS elevation [deg] (config if omitted)", type=float)
    parser.add_argument("--capture-command", help="Recorder command, {output} is the file path")
    parser.add_argument("-o", "--output-dir", help="Directory for captures and the pass log")
    parser.add_argument("--tle-url", help="Refresh the TLE file from this URL when stale")
    parser.add_argument("-l", "--list-passes", metavar="HOURS", type=float,
                        help="Print the passes of the next HOURS and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def setup_logging(verbose=False):
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _terminate(signum, frame):
    # SystemExit unwinds through the scheduler, so a running capture is stopped
    raise SystemExit(0)


def print_passes(predictor, elements, hours):
    passes = predictor.get_next_passes(elements, now_julian(), hours=hours)
    if not passes:
        print(f"No passes of {elements.satellite_number} in the next {hours:g} hours.")
        return
    for p in passes:
        print(f"AOS {julian_to_datetime(p.aos):%Y-%m-%d %H:%M:%S}Z  "
              f"TCA {julian_to_datetime(p.tca):%H:%M:%S}Z  "
              f"LOS {julian_to_datetime(p.los):%H:%M:%S}Z  "
              f"max el {p.max_elevation_degrees:5.1f} deg  ({p.duration_str})")


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = load_config(args.config)

    # 1. Orbital elements
    tle_url = args.tle_url or config.get('TLE', 'url') or None
    source = TleSource(args.tle_file, tle_url=tle_url,
                       max_age=config.getfloat('TLE', 'max_age_hours') * 3600)
    source.refresh()
    elements = source.find(args.satellite_number)
    if elements is None:
        logger.error("Specified TLE not found.")
        return 1

    # 2. Ground station
    altitude = args.altitude if args.altitude is not None else config.getfloat('GROUND_STATION', 'altitude')
    observer = Observer.from_degrees(args.latitude, args.longitude, altitude)
    min_elevation = args.min_elevation
    if min_elevation is None:
        min_elevation = config.getfloat('SCHEDULER', 'min_elevation')
    threshold = math.radians(min_elevation)

    if args.list_passes is not None:
        print_passes(PassPredictor(observer, threshold), elements, args.list_passes)
        return 0

    # 3. Scheduler
    engine = OrbitEngine(elements, observer)
    recorder = DataManager(elements.name or str(elements.satellite_number),
                           base_dir=args.output_dir or config.get('CAPTURE', 'data_dir'),
                           extension=config.get('CAPTURE', 'extension'))
    trigger = PassTrigger(
        engine,
        recorder,
        threshold=threshold,
        capture_command=args.capture_command or config.get('CAPTURE', 'command'),
        min_sleep=config.getfloat('SCHEDULER', 'min_sleep_seconds'),
        short_poll=config.getfloat('SCHEDULER', 'short_poll_seconds'),
        fallback_poll=config.getfloat('SCHEDULER', 'fallback_poll_seconds'),
    )

    signal.signal(signal.SIGTERM, _terminate)
    try:
        trigger.run()
    except KeyboardInterrupt:
        logger.info("Stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
