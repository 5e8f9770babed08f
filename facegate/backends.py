"""Registry of display and input-device driver backends."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, TextIO, Union

log = logging.getLogger(__name__)


class BackendType(Enum):
    DISPLAY = "display"
    INDEV = "indev"


class BackendError(RuntimeError):
    """Raised when a backend cannot be selected, initialised or run."""


@dataclass
class SimulatorSettings:
    """Settings shared by every backend."""

    window_width: int = 0
    window_height: int = 0
    maximize: bool = False
    fullscreen: bool = False


@dataclass
class DisplayBackend:
    """A display driver: creates the display and runs the main loop."""

    init_display: Callable[[], Any]
    run_loop: Callable[[], None]
    display: Any = None


@dataclass
class IndevBackend:
    """An input-device driver attached to an existing display."""

    init_indev: Callable[[Any], Any]


@dataclass
class Backend:
    """A named driver backend of a given type."""

    name: str
    type: BackendType
    handle: Union[DisplayBackend, IndevBackend]

    def __post_init__(self) -> None:
        expected = DisplayBackend if self.type is BackendType.DISPLAY else IndevBackend
        if not isinstance(self.handle, expected):
            raise BackendError(f"backend {self.name} of type {self.type.value} has a mismatched handle")


BackendFactory = Callable[[], Backend]


@dataclass
class BackendRegistry:
    """Holds the available backends; the first registered is the default."""

    settings: SimulatorSettings = field(default_factory=SimulatorSettings)
    backends: List[Backend] = field(default_factory=list)
    selected_display: Optional[Backend] = None

    def register(self, factories: Iterable[BackendFactory]) -> None:
        """Create every backend from its factory; a second call does nothing."""
        if self.backends:
            return
        self.backends = [factory() for factory in factories]

    def _require_registered(self) -> None:
        if not self.backends:
            raise BackendError("Please call register first")

    def init_backend(self, name: Optional[str] = None) -> Optional[Backend]:
        """Initialise the named backend, or the default display backend if ``name`` is None.

        Returns the backend initialised, or None when no backend has that name.
        """
        self._require_registered()
        if name is None:
            default = self.backends[0]
            if default.type is not BackendType.DISPLAY:
                raise BackendError(f"The default backend: {default.name} is not a display driver backend")
            name = default.name

        backend = next((b for b in self.backends if b.name == name), None)
        if backend is None:
            return None

        if backend.type is BackendType.DISPLAY:
            handle = backend.handle
            handle.display = handle.init_display()
            if handle.display is None:
                raise BackendError(f"Failed to init display with {backend.name} backend")
            self.selected_display = backend
            log.info("Initialized %s display backend", backend.name)
        else:
            if self.selected_display is None:
                raise BackendError(
                    f"Failed to init indev backend: {backend.name} - display needs to be initialized"
                )
            log.info("Initialized %s indev backend", backend.name)
            backend.handle.init_indev(self.selected_display.handle.display)
        return backend

    def is_supported(self, name: str) -> bool:
        """Report whether a backend of this name (any case) is registered."""
        wanted = name.upper()
        return any(b.name == wanted for b in self.backends)

    def print_supported(self, out: Optional[TextIO] = None) -> None:
        """Write the default backend and the list of supported backends."""
        self._require_registered()
        out = out if out is not None else sys.stdout
        out.write(f"Default backend: {self.backends[0].name}\n")
        out.write("Supported backends: ")
        for backend in self.backends:
            out.write(f"{backend.name} ")
        out.write("\n")

    def run_loop(self) -> None:
        """Enter the main loop of the selected display backend."""
        if self.selected_display is None:
            raise BackendError("No backend has been selected - initialize the backend first")
        self.selected_display.handle.run_loop()