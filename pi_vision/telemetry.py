"""
Telemetry stores for Pi Vision.
Publishes per-frame target results and delivers selector values to listeners.
"""

import logging
import threading
from typing import Any, Callable, Protocol

from . import config
from .errors import TelemetryError
from .vision import TargetResult

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


def result_values(result: TargetResult) -> dict[str, Any]:
    """
    Map a TargetResult to the published key/value pairs.

    Args:
        result: Result for the current frame

    Returns:
        Dict with the count as int and the coordinates as float
    """
    return {
        config.KEY_TARGET_COUNT: int(result.count),
        config.KEY_CENTER_X: float(result.center[0]),
        config.KEY_CENTER_Y: float(result.center[1]),
        config.KEY_OFFSET_X: float(result.offset[0]),
        config.KEY_OFFSET_Y: float(result.offset[1]),
    }


DEFAULT_VALUES = {
    config.KEY_TARGET_COUNT: 0,
    config.KEY_CENTER_X: 0.0,
    config.KEY_CENTER_Y: 0.0,
    config.KEY_OFFSET_X: 0.0,
    config.KEY_OFFSET_Y: 0.0,
}


class TelemetryStore(Protocol):
    """Protocol/interface for the shared key-value store."""

    def publish(self, result: TargetResult) -> None:
        """Write every result key as one update."""
        ...

    def add_listener(self, key: str, callback: Listener) -> None:
        """Call callback(key, value) now if key has a value, and on every later change."""
        ...

    def close(self) -> None:
        ...


class MemoryTable:
    """
    In-process telemetry store.

    All writes go through one lock, so a reader taking a snapshot never sees
    half of a publish. Listeners run on the writing thread after the lock is
    released.
    """

    def __init__(self, name: str = config.TABLE_NAME):
        self.name = name
        self._lock = threading.Lock()
        self._values: dict[str, Any] = dict(DEFAULT_VALUES)
        self._listeners: dict[str, list[Listener]] = {}

    def put_values(self, values: dict[str, Any]) -> None:
        """Set several keys at once and notify their listeners."""
        with self._lock:
            self._values.update(values)
            pending = [
                (callback, key, value)
                for key, value in values.items()
                for callback in self._listeners.get(key, ())
            ]

        for callback, key, value in pending:
            callback(key, value)

    def put(self, key: str, value: Any) -> None:
        self.put_values({key: value})

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def snapshot(self) -> dict[str, Any]:
        """Consistent copy of every key."""
        with self._lock:
            return dict(self._values)

    def publish(self, result: TargetResult) -> None:
        self.put_values(result_values(result))

    def add_listener(self, key: str, callback: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(key, []).append(callback)
            has_value = key in self._values
            value = self._values.get(key)

        if has_value:
            callback(key, value)

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()


class NetworkTablesStore:
    """
    Telemetry store backed by NetworkTables (pyntcore).

    Runs as a server, or as a client that finds the server from the team
    number. Results go to the configured table; listeners may watch any
    absolute key.
    """

    def __init__(self, team: int, server: bool = False, table_name: str = config.TABLE_NAME):
        """
        Start NetworkTables and create the result entries.

        Args:
            team: Team number used to locate the server in client mode
            server: Run a server instead of a client
            table_name: Table receiving the results

        Raises:
            TelemetryError: If pyntcore is not installed
        """
        try:
            import ntcore
        except ImportError:
            raise TelemetryError(
                "pyntcore library not installed. Install with: pip install pyntcore"
            )

        self._ntcore = ntcore
        self.server = server
        self.inst = ntcore.NetworkTableInstance.getDefault()
        if server:
            logger.info("Setting up NetworkTables server")
            self.inst.startServer()
        else:
            logger.info(f"Setting up NetworkTables client for team {team}")
            self.inst.startClient4("pi-vision")
            self.inst.setServerTeam(team)

        self.table = self.inst.getTable(table_name)
        self.entries = {key: self.table.getEntry(key) for key in DEFAULT_VALUES}
        # Every key is an NT double, the count included
        for entry in self.entries.values():
            entry.setDefaultDouble(0.0)

        self._listener_handles = []

    def publish(self, result: TargetResult) -> None:
        values = result_values(result)
        for key, value in values.items():
            self.entries[key].setDouble(float(value))
        self.inst.flush()

    def add_listener(self, key: str, callback: Listener) -> None:
        entry = self.inst.getEntry(key)
        flags = self._ntcore.EventFlags.kImmediate | self._ntcore.EventFlags.kValueAll

        def on_event(event):
            callback(key, event.data.value.value())

        self._listener_handles.append(self.inst.addListener(entry, flags, on_event))

    def close(self) -> None:
        for handle in self._listener_handles:
            self.inst.removeListener(handle)
        self._listener_handles.clear()
        if self.server:
            self.inst.stopServer()
        else:
            self.inst.stopClient()
