# pass_trigger/capture.py

import logging
import shlex
import subprocess

logger = logging.getLogger(__name__)

# Records mono 48 kHz audio from the default ALSA device until terminated
DEFAULT_COMMAND = "arecord -q -f S16_LE -r 48000 -c 1 -t wav {output}"

# Seconds to wait for the recorder to exit after SIGTERM before killing it
STOP_TIMEOUT = 5.0


class CaptureError(Exception):
    """The capture program could not be started."""


class CaptureProcess:
    def __init__(self, output_path, command=DEFAULT_COMMAND):
        """
        Handle on the external recorder for one pass.
        :param output_path: File the recorder writes to
        :param command: Command line; '{output}' is replaced by the output path
        """
        self.output_path = str(output_path)
        self.command = command
        self.process = None

    @property
    def args(self):
        return [part.replace("{output}", self.output_path) for part in shlex.split(self.command)]

    @property
    def running(self):
        return self.process is not None and self.process.poll() is None

    def start(self):
        if self.process is not None:
            raise CaptureError("Capture already started")
        try:
            self.process = subprocess.Popen(self.args, stdin=subprocess.DEVNULL)
        except (OSError, ValueError) as e:
            raise CaptureError(f"Could not start '{self.command}': {e}") from e
        logger.info("Capture started (pid %d): %s", self.process.pid, self.output_path)
        return self

    def stop(self):
        """
        Terminates the recorder and waits for it; kills it if it does not exit in time.
        Safe to call more than once.
        """
        if self.process is None:
            return None
        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=STOP_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning("Recorder did not exit after %.0fs, killing it", STOP_TIMEOUT)
                self.process.kill()
                self.process.wait()
            except BaseException:
                # interrupted while waiting (second SIGTERM, Ctrl-C): kill before unwinding
                self.process.kill()
                raise
        returncode = self.process.returncode
        logger.info("Capture stopped (exit code %s): %s", returncode, self.output_path)
        return returncode

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


def start_capture(target_path, command=DEFAULT_COMMAND):
    return CaptureProcess(target_path, command).start()


def stop_capture(handle):
    return handle.stop()
