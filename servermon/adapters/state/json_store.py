"""
JSON state store adapter - Persists the RunRecord of the previous pass.

File structure:
{
  "downServers": [
    {"id": int | str, "isUp": bool, "error": str, "url": str, "date": iso8601}
  ],
  "runTimeStart": iso8601,
  "runTimeEnd": iso8601
}
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Union

from servermon.core.entities import ProbeResult, RunRecord, utc_now
from servermon.core.exceptions import StateError
from servermon.core.ports import RunStateStore

logger = logging.getLogger(__name__)


class AdapterJsonStateStore(RunStateStore):
    """
    Adapter that implements RunStateStore with a single JSON file.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write leaves the previous state intact.
    """

    def __init__(
        self,
        path: Union[str, Path] = "status.json",
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the store.

        Args:
            path: Location of the state file
            clock: Source of "now" for the bootstrap record
        """
        self.path = Path(path)
        self._clock = clock

    def load(self) -> RunRecord:
        """
        Load the last run state.

        Returns:
            RunRecord: Persisted record, or an empty one on first execution

        Raises:
            StateError: If the file exists but is unreadable or malformed
        """
        if not self.path.exists():
            logger.info("State file not found: %s. Starting fresh.", self.path)
            return RunRecord.empty(self._clock())

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateError(f"Invalid JSON in state file {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StateError(f"State file {self.path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise StateError(f"Cannot read state file {self.path}: {e}") from e

        record = record_from_dict(data)
        logger.debug(
            "Loaded state with %d down servers from %s",
            len(record.down_servers),
            self.path,
        )
        return record

    def save(self, record: RunRecord) -> None:
        """
        Atomically replace the state file with ``record``.

        Args:
            record: RunRecord to persist

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record_to_dict(record), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

        logger.debug(
            "Saved state with %d down servers to %s",
            len(record.down_servers),
            self.path,
        )


def record_to_dict(record: RunRecord) -> Dict[str, Any]:
    return {
        "downServers": [
            {
                "id": status.id,
                "isUp": status.is_up,
                "error": status.error,
                "url": status.url,
                "date": status.date.isoformat(),
            }
            for status in record.down_servers
        ],
        "runTimeStart": record.run_time_start.isoformat(),
        "runTimeEnd": record.run_time_end.isoformat(),
    }


def record_from_dict(data: Any) -> RunRecord:
    """
    Validate and decode a persisted state document.

    Args:
        data: Decoded JSON document

    Returns:
        RunRecord: Decoded record

    Raises:
        StateError: If any field is missing or has the wrong type
    """
    if not isinstance(data, dict):
        raise StateError("State must be a JSON object")

    for key in ("downServers", "runTimeStart", "runTimeEnd"):
        if key not in data:
            raise StateError(f"Missing required field '{key}' in state")

    if not isinstance(data["downServers"], list):
        raise StateError("Field 'downServers' must be a list")

    down_servers = [_status_from_dict(entry) for entry in data["downServers"]]

    try:
        return RunRecord(
            down_servers,
            _parse_datetime(data["runTimeStart"], "runTimeStart"),
            _parse_datetime(data["runTimeEnd"], "runTimeEnd"),
        )
    except ValueError as e:
        raise StateError(str(e)) from e


def _status_from_dict(entry: Any) -> ProbeResult:
    if not isinstance(entry, dict):
        raise StateError("Entries of 'downServers' must be objects")

    status_id = entry.get("id")
    # bool is an int subclass but never a valid ID
    if isinstance(status_id, bool) or not isinstance(status_id, (int, str)):
        raise StateError(f"Invalid endpoint id in state: {status_id!r}")
    if not isinstance(entry.get("isUp"), bool):
        raise StateError(f"Field 'isUp' must be a bool for id: {status_id!r}")
    if entry["isUp"]:
        raise StateError(f"Down-list entry claims to be up for id: {status_id!r}")
    if not isinstance(entry.get("error", ""), str):
        raise StateError(f"Field 'error' must be a string for id: {status_id!r}")
    if not isinstance(entry.get("url"), str):
        raise StateError(f"Field 'url' must be a string for id: {status_id!r}")

    return ProbeResult(
        id=status_id,
        is_up=entry["isUp"],
        error=entry.get("error", ""),
        url=entry["url"],
        date=_parse_datetime(entry.get("date"), "date"),
    )


def _parse_datetime(value: Any, field_name: str) -> datetime:
    if not isinstance(value, str):
        raise StateError(f"Field '{field_name}' must be an ISO-8601 string")
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise StateError(f"Invalid timestamp in '{field_name}': {value!r}") from e
