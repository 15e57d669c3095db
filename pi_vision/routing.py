"""
Switched camera routing for Pi Vision.

A switched camera is a virtual feed whose physical source is chosen by a
value on a telemetry key. Listener callbacks only enqueue selections; one
router thread applies them, so the routing table has a single writer.
Readers see an immutable snapshot that is replaced on every write.
"""

import logging
import math
import queue
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Request to point a switched camera at another source."""
    switch: str
    value: Any


class CameraRouter:
    """
    Routing table from switched camera names to physical cameras.

    A numeric value selects a camera by index, a string selects it by
    configured name. Anything else leaves the route unchanged.
    """

    def __init__(self, cameras: Sequence):
        """
        Initialize the router.

        Args:
            cameras: Camera handles (anything with a .name), fixed for the process lifetime
        """
        self.cameras = tuple(cameras)
        self.messages: queue.Queue = queue.Queue()
        self._write_lock = threading.Lock()
        self._routes: Mapping[str, Any] = MappingProxyType({})

    def _replace_route(self, switch: str, camera: Any) -> None:
        with self._write_lock:
            routes = dict(self._routes)
            routes[switch] = camera
            self._routes = MappingProxyType(routes)

    def add_switch(self, switch: str) -> None:
        """Register a switched camera with no source selected yet."""
        logger.info(f"Starting switched camera '{switch}'")
        self._replace_route(switch, None)

    def submit(self, switch: str, value: Any) -> None:
        """Queue a selection. Safe to call from any thread."""
        self.messages.put(Selection(switch, value))

    def listener_for(self, switch: str):
        """Telemetry listener callback that feeds selections for one switch."""
        def on_value(key: str, value: Any) -> None:
            self.submit(switch, value)
        return on_value

    def resolve(self, value: Any) -> int | None:
        """
        Turn a selector value into a camera index.

        Returns:
            Index into self.cameras, or None if the value selects nothing
        """
        if isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            index = int(value)
            if 0 <= index < len(self.cameras):
                return index
            return None

        if isinstance(value, str):
            for index, camera in enumerate(self.cameras):
                if camera.name == value:
                    return index
            return None

        return None

    def apply(self, selection: Selection) -> bool:
        """
        Apply one selection to the routing table.

        Only the router thread should call this.

        Returns:
            True if the route changed
        """
        if selection.switch not in self._routes:
            logger.warning(f"Selection for unknown switched camera '{selection.switch}' ignored")
            return False

        index = self.resolve(selection.value)
        if index is None:
            logger.debug(
                f"Switched camera '{selection.switch}': value {selection.value!r} selects no camera"
            )
            return False

        camera = self.cameras[index]
        if self._routes[selection.switch] is camera:
            return False

        self._replace_route(selection.switch, camera)
        logger.info(f"Switched camera '{selection.switch}' now showing '{camera.name}'")
        return True

    def source(self, switch: str) -> Any:
        """Camera currently routed to a switched camera, or None."""
        return self._routes.get(switch)

    def routes(self) -> Mapping[str, Any]:
        """Read-only snapshot of the whole table."""
        return self._routes
