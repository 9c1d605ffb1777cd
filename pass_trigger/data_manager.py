# pass_trigger/data_manager.py

import csv
import logging
import os
from datetime import datetime, timezone

from pass_trigger.time_utils import julian_to_datetime, seconds_between

logger = logging.getLogger(__name__)

HEADERS = [
    'satellite',
    'aos_utc',
    'los_utc',
    'duration_s',
    'capture_file',
    'captured',
]


class DataManager:
    def __init__(self, satellite_name, base_dir=None, extension="wav"):
        """
        Pass recorder.
        Names one capture file per pass and keeps a CSV log of every pass seen.
        """
        # 1. Setup paths
        if base_dir is None:
            base_dir = os.path.join(os.getcwd(), 'data')
        self.base_dir = os.path.abspath(base_dir)
        self.capture_dir = os.path.join(self.base_dir, 'captures')
        self.log_path = os.path.join(self.base_dir, 'passes.csv')
        self.extension = extension.lstrip(".")

        # 2. Name used in file names (e.g. "ISS_ZARYA")
        self.satellite_name = satellite_name
        self.safe_name = satellite_name.strip().replace(" ", "_").replace("(", "").replace(")", "")

        # Ensure folders exist
        os.makedirs(self.capture_dir, exist_ok=True)

        # 3. Create the log and write headers
        if not os.path.exists(self.log_path):
            self._init_csv()

    def _init_csv(self):
        """Writes the column headers."""
        with open(self.log_path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(HEADERS)

    def capture_path(self, when=None):
        """
        Path for a new capture, e.g. "captures/ISS_ZARYA_20260125_143005.wav".
        """
        when = when or datetime.now(timezone.utc)
        timestamp = when.strftime("%Y%m%d_%H%M%S")
        return os.path.join(self.capture_dir, f"{self.safe_name}_{timestamp}.{self.extension}")

    def log_pass(self, aos, los, capture_file, captured):
        """
        Appends one pass to the log. `aos` and `los` are Julian dates.
        """
        row = [
            self.satellite_name,
            julian_to_datetime(aos).isoformat(),
            julian_to_datetime(los).isoformat(),
            f"{seconds_between(aos, los):.0f}",
            capture_file or '',
            int(bool(captured)),
        ]

        with open(self.log_path, 'a', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(row)
        logger.debug("Pass logged to %s", self.log_path)
