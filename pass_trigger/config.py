# pass_trigger/config.py

import configparser
import logging
import os

from pass_trigger.capture import DEFAULT_COMMAND

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG = os.path.join(BASE_DIR, 'config', 'stations.conf')

DEFAULTS = {
    'GROUND_STATION': {
        'altitude': '0',
    },
    'TLE': {
        'url': '',
        'max_age_hours': '24',
    },
    'CAPTURE': {
        'command': DEFAULT_COMMAND,
        'extension': 'wav',
        'data_dir': 'data',
    },
    'SCHEDULER': {
        'min_elevation': '0',
        'min_sleep_seconds': '60',
        'short_poll_seconds': '1',
        'fallback_poll_seconds': '300',
    },
}


def load_config(path=None):
    """
    Reads the station INI file on top of the built-in defaults.
    A missing file is not an error: the defaults are used.
    """
    config = configparser.ConfigParser(interpolation=None)
    config.read_dict(DEFAULTS)

    path = path or DEFAULT_CONFIG
    if config.read(path):
        logger.debug("Configuration loaded from %s", path)
    else:
        logger.debug("No configuration at %s, using defaults", path)
    return config
