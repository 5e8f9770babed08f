"""Process-wide application state: camera stream, photo capture and fonts."""

from __future__ import annotations

import atexit
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

DEFAULT_CAMERA_STREAM_URL = "tcp://0.0.0.0:8988"
DEFAULT_PHOTO_PATH = "/tmp/captured_photo.jpg"
DEFAULT_FONT_PATH = "fonts/genshin.ttf"

PhotoCallback = Callable[[bool, str], Any]


@dataclass(frozen=True)
class Font:
    """A font face at a given pixel size."""

    path: str
    size: int
    render_mode: str = "bitmap"
    style: str = "normal"


def _default_font_factory(size: int) -> Font:
    return Font(DEFAULT_FONT_PATH, size)


def camera_stream_command(url: str) -> List[str]:
    """Command line that streams the camera as low-latency MPEG-TS to ``url``."""
    return [
        "rpicam-vid", "-t", "0",
        "-n",
        "--width", "790", "--height", "680",
        "--profile", "baseline", "--intra", "1",
        "--framerate", "60",
        "--rotation", "180",
        "--low-latency",
        "--inline",
        "--listen",
        "--ev", "3.0",
        "--verbose", "0",
        "--libav-format", "mpegts",
        "-o", url,
    ]


def capture_photo_command(url: str, filename: str) -> List[str]:
    """Command line that grabs a single frame from the stream at ``url``."""
    return [
        "ffmpeg", "-analyzeduration", "100000",
        "-probesize", "32k",
        "-y",
        "-i", url,
        "-frames:v", "1",
        "-f", "image2",
        "-q:v", "2",
        "-loglevel", "quiet",
        filename,
    ]


class Base:
    """Shared services of the application; use :meth:`instance` for the singleton."""

    _instance: Optional["Base"] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        camera_stream_url: str = DEFAULT_CAMERA_STREAM_URL,
        font_factory: Optional[Callable[[int], Any]] = None,
        font_closer: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.camera_stream_url = camera_stream_url
        self.face_service: Any = None
        self.user_service: Any = None
        self._font_factory = font_factory or _default_font_factory
        self._font_closer = font_closer
        self._fonts: Dict[int, Any] = {}
        self._camera_process: Optional[subprocess.Popen] = None

    @classmethod
    def instance(cls) -> "Base":
        """Return the process-wide instance, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @property
    def camera_stream_pid(self) -> Optional[int]:
        """PID of the running camera stream process, if any."""
        return self._camera_process.pid if self._camera_process is not None else None

    def register_atexit(self) -> None:
        """Stop the camera stream when the interpreter exits."""
        atexit.register(self.stop_camera_stream)

    def start_camera_stream(self) -> None:
        """Launch the camera streaming process in the background."""
        print("starting rpicam-vid...")
        try:
            self._camera_process = subprocess.Popen(camera_stream_command(self.camera_stream_url))
        except OSError as exc:
            print(f"failed to start camera stream: {exc}", file=sys.stderr)
            self._camera_process = None
            return
        print(f"camera stream process started, PID: {self._camera_process.pid}")

    def stop_camera_stream(self) -> None:
        """Send SIGTERM to the camera stream process if one was started."""
        process = self._camera_process
        if process is None:
            return
        print(f"stopping camera stream process (PID: {process.pid})...")
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        self._camera_process = None

    def capture_photo_async(
        self,
        filename: str = DEFAULT_PHOTO_PATH,
        callback: Optional[PhotoCallback] = None,
    ) -> threading.Thread:
        """Grab one frame from the stream in a background thread.

        ``callback(success, filename)`` is called when the capture ends.
        """
        url = self.camera_stream_url

        def work() -> None:
            print(f"capturing photo from stream to: {filename}")
            try:
                result = subprocess.run(capture_photo_command(url, filename))
                success = result.returncode == 0
            except OSError as exc:
                print(f"failed to run ffmpeg: {exc}", file=sys.stderr)
                success = False
            print(f"photo captured: {filename}" if success else "photo capture failed")
            if callback:
                callback(success, filename)

        thread = threading.Thread(target=work, daemon=True)
        thread.start()
        return thread

    def get_font(self, size: int) -> Any:
        """Return the font of ``size`` pixels, creating and caching it on first use."""
        font = self._fonts.get(size)
        if font is None:
            font = self._font_factory(size)
            self._fonts[size] = font
        return font

    def clear_fonts(self) -> None:
        """Release every cached font."""
        if self._font_closer is not None:
            for font in self._fonts.values():
                self._font_closer(font)
        self._fonts.clear()