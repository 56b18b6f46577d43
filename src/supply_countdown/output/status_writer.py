"""
Status File Writer for supply-countdown

Writes the latest CountdownResult to a JSON file (default
/dev/shm/supply_countdown.json) for dashboards and other local consumers.

The file is updated atomically (write to temp, rename) to prevent partial
reads. It is output only: the daemon never reads it back on start-up.

Usage:
    writer = StatusWriter('/dev/shm/supply_countdown.json')
    writer.write(countdown_result)
"""

import json
import os
import tempfile
import logging
from pathlib import Path
from typing import Optional

from ..interfaces.countdown_result import CountdownResult

logger = logging.getLogger(__name__)

DEFAULT_STATUS_PATH = "/dev/shm/supply_countdown.json"


class StatusWriter:
    """
    Writes CountdownResult to a status file.

    Updates are atomic (write to temp file, then rename).
    """

    def __init__(self, status_path: Optional[str] = None):
        """
        Args:
            status_path: Path to status file (default: /dev/shm/supply_countdown.json)
        """
        self.status_path = Path(status_path or DEFAULT_STATUS_PATH)
        self.write_count = 0

        self.status_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"StatusWriter initialized: {self.status_path}")

    def write(self, result: CountdownResult) -> bool:
        """
        Write a countdown result.

        Returns:
            True if successful, False on error
        """
        try:
            json_data = result.to_json()

            # Temp file in same directory (required for atomic rename)
            fd, temp_path = tempfile.mkstemp(
                dir=self.status_path.parent,
                prefix='.supply_countdown_',
                suffix='.tmp'
            )

            try:
                with os.fdopen(fd, 'w') as f:
                    f.write(json_data)
                os.replace(temp_path, self.status_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise

            self.write_count += 1
            if self.write_count % 60 == 0:  # ~1 minute at the default display cadence
                logger.debug(
                    f"Status write #{self.write_count}: "
                    f"height={result.current_height}, feed={result.feed_status}"
                )
            return True

        except Exception as e:
            logger.error(f"Failed to write status file: {e}")
            return False

    def clear(self):
        """Remove the status file."""
        try:
            if self.status_path.exists():
                self.status_path.unlink()
                logger.info(f"Cleared status file: {self.status_path}")
        except Exception as e:
            logger.warning(f"Failed to clear status file: {e}")


class StatusReader:
    """
    Reads CountdownResult from the status file.

    Usage:
        reader = StatusReader('/dev/shm/supply_countdown.json')
        result = reader.read()
        if result and not result.reached:
            eta = result.projected_time
    """

    def __init__(self, status_path: Optional[str] = None):
        self.status_path = Path(status_path or DEFAULT_STATUS_PATH)

    def read(self) -> Optional[CountdownResult]:
        """
        Read the current countdown result.

        Returns:
            CountdownResult or None if unavailable
        """
        try:
            if not self.status_path.exists():
                return None
            with open(self.status_path, 'r') as f:
                return CountdownResult.from_json(f.read())
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in status file: {e}")
            return None
        except Exception as e:
            logger.warning(f"Failed to read status file: {e}")
            return None

    @property
    def available(self) -> bool:
        """Check if the status file exists."""
        return self.status_path.exists()
