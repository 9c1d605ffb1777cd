# pass_trigger/tle_source.py

import logging
import os
import time

import requests
from skyfield.api import load

from pass_trigger.orbit_engine import OrbitalElements

logger = logging.getLogger(__name__)

MAX_AGE = 86400  # seconds; older files are re-downloaded


class TleSource:
    def __init__(self, tle_file, tle_url=None, max_age=MAX_AGE):
        """
        :param tle_file: Local TLE file (2-line or 3-line with names)
        :param tle_url: Where to refresh the file from; None keeps it local only
        :param max_age: Age in seconds after which the file is considered stale
        """
        self.tle_file = os.path.abspath(tle_file)
        self.tle_url = tle_url
        self.max_age = max_age
        self.ts = load.timescale(builtin=True)

    def is_stale(self):
        if not os.path.exists(self.tle_file):
            logger.warning("No TLE file found at %s", self.tle_file)
            return True
        file_age = time.time() - os.path.getmtime(self.tle_file)
        if file_age > self.max_age:
            logger.info("TLE file is %.1f hours old", file_age / 3600)
            return True
        return False

    def refresh(self):
        """
        Downloads new TLEs when the local file is missing or stale.
        Returns True if the file was replaced. Network failures keep the cached file.
        """
        if not self.tle_url or not self.is_stale():
            return False

        try:
            response = requests.get(self.tle_url, timeout=10)
        except requests.RequestException as e:
            logger.error("TLE download failed: %s. Using cached file if available.", e)
            return False

        if response.status_code != 200:
            logger.error("Failed to download TLEs. HTTP %d", response.status_code)
            return False

        os.makedirs(os.path.dirname(self.tle_file), exist_ok=True)
        with open(self.tle_file, 'wb') as f:
            f.write(response.content)
        logger.info("TLEs updated from %s", self.tle_url)
        return True

    def load(self):
        """All satellites in the file, keyed by catalog number. The first entry of a repeated number wins."""
        satellites = {}
        for sat in load.tle_file(self.tle_file, ts=self.ts):
            satellites.setdefault(sat.model.satnum, sat)
        return satellites

    def find(self, satellite_number):
        """
        Returns the OrbitalElements of `satellite_number`, or None when the file
        cannot be read or does not contain it.
        """
        try:
            satellites = self.load()
        except OSError as e:
            logger.error("Cannot read TLE file %s: %s", self.tle_file, e)
            return None

        sat = satellites.get(int(satellite_number))
        if sat is None:
            logger.error("Satellite %s not found in %s", satellite_number, self.tle_file)
            return None

        logger.info("Satellite %s (%s) found.", sat.name or "?", satellite_number)
        return OrbitalElements.from_satrec(sat.model, name=sat.name or "")
