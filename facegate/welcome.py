"""Behaviour of the welcome screen: panel toggling, face scan and sign-in."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Optional

from .faceid import FaceIdError
from .layout import (
    GREETING_START_Y,
    LOTTIE_SIZE,
    Animation,
    Easing,
    WelcomeView,
    camera_exit,
    camera_slide,
    exit_animations,
    panel_widths,
    try_again_slide,
)

FACE_CAPTURE_PATH = "/tmp/face_capture.jpg"
LOTTIE_SCAN = "./assets/lottie/face_id.json"
LOTTIE_SUCCESS = "./assets/lottie/face_id_check_success.json"
LOTTIE_ERROR = "./assets/lottie/face_id_check_error.json"
LOTTIE_TARGET = "face_id_animation"
GREETING_LABEL = "label_say_hello_to_user"
GREETING_FONT_SIZE = 45

SCAN_DURATION_MS = 2000
SUCCESS_DURATION_MS = 1000
ERROR_DURATION_MS = 2000
PANEL_DURATION_MS = 600


class FaceCheckStatus(Enum):
    """Outcome of the latest face check."""

    CHECKING = "checking"
    SUCCESS = "success"
    ERROR = "error"


class WelcomeFlow:
    """Drives the welcome screen in response to clicks and finished animations."""

    def __init__(self, base: Any, view: WelcomeView) -> None:
        self.base = base
        self.view = view
        self.swapped = False
        self.try_again = False
        self.status = FaceCheckStatus.CHECKING
        self.label_center_y = 0.0
        self.scan_timeout = SCAN_DURATION_MS / 1000
        self._anim_end_count = 0
        self._pending: Optional[threading.Thread] = None

    def on_sign_in_clicked(self) -> None:
        """Toggle between the sign-in panels and the camera view."""
        w1, w2 = panel_widths(self.swapped)
        if self.swapped:
            self.view.player_playing = False
            self.view.play(camera_slide(True))
        else:
            self.view.show("camera_container")
            self.view.play(camera_slide(False))

        for target, width in (("part1", w1), ("part2", w2)):
            self.view.play(
                Animation(
                    target,
                    "width",
                    None,
                    width,
                    PANEL_DURATION_MS,
                    Easing.OVERSHOOT,
                    on_ready=lambda _a: self.on_width_animation_ready(),
                )
            )
        self.swapped = not self.swapped

    def on_width_animation_ready(self) -> None:
        """Called as each panel width animation ends; acts once both have ended."""
        self._anim_end_count += 1
        if not (self._anim_end_count == 2 or self.try_again):
            return
        if not self.try_again:
            self._anim_end_count = 0
        if not self.swapped:
            return
        if self.try_again:
            self.try_again = False
            self.view.play(try_again_slide(False))
        else:
            self.view.player_source = self.base.camera_stream_url
            self.view.player_playing = True
        self._show_lottie(
            LOTTIE_SCAN,
            SCAN_DURATION_MS,
            on_ready=lambda _a: self.on_scan_finished(),
            on_start=lambda _a: self.start_face_recognition(),
        )

    def on_try_again_clicked(self) -> None:
        """Restart the face scan after a failed attempt."""
        self.try_again = True
        self.on_width_animation_ready()

    def start_face_recognition(self) -> None:
        """Capture a photo from the stream and send it to the face service."""
        pending = self.base.capture_photo_async(FACE_CAPTURE_PATH, self._on_photo_captured)
        self._pending = pending if isinstance(pending, threading.Thread) else None

    def _on_photo_captured(self, success: bool, filename: str) -> None:
        if not success:
            return
        self.status = FaceCheckStatus.CHECKING
        try:
            self.base.face_service.login(FACE_CAPTURE_PATH, self._on_login_success, self._on_login_failed)
        except FaceIdError as exc:
            self._on_login_failed(str(exc))

    def _on_login_success(self, user_id: str) -> None:
        print(f"face recognised, user id: {user_id}")
        self.base.user_service.name = user_id
        self.status = FaceCheckStatus.SUCCESS

    def _on_login_failed(self, error: str) -> None:
        print(f"face recognition failed: {error}")
        self.status = FaceCheckStatus.ERROR

    def on_scan_finished(self) -> None:
        """Show the outcome of the scan once its animation has played."""
        if self._pending is not None:
            self._pending.join(timeout=self.scan_timeout)
            self._pending = None
        if self.status is FaceCheckStatus.SUCCESS:
            self._show_lottie(
                LOTTIE_SUCCESS,
                SUCCESS_DURATION_MS,
                on_ready=lambda _a: self.enter_main(),
            )
        else:
            self._show_lottie(
                LOTTIE_ERROR,
                ERROR_DURATION_MS,
                on_start=lambda _a: self.view.play(try_again_slide(True)),
            )

    def enter_main(self) -> None:
        """Stop the camera and play the exit sequence ending on the greeting."""
        self.view.player_playing = False
        self.base.stop_camera_stream()
        exit_anim = camera_exit(self.view.get("camera_container", "y"))
        exit_anim.on_ready = lambda _a: self._on_camera_gone()
        self.view.play(exit_anim)

    def _on_camera_gone(self) -> None:
        self.view.freeze_layout()
        self.view.add_label(GREETING_LABEL, self.greeting(), GREETING_FONT_SIZE)
        self.label_center_y = self.view.get(GREETING_LABEL, "y")
        self.view.set(GREETING_LABEL, "y", GREETING_START_Y)
        for animation in exit_animations(
            self.view.get("part1", "x"),
            self.view.get("part2", "x"),
            self.view.get(GREETING_LABEL, "y"),
            self.label_center_y,
        ):
            self.view.play(animation)

    def greeting(self) -> str:
        """Text greeting the signed-in user."""
        return f"欢迎回来，{self.base.user_service.name}！"

    def _show_lottie(self, path, duration_ms, on_ready=None, on_start=None) -> None:
        self.view.running[:] = [a for a in self.view.running if a.target != LOTTIE_TARGET]
        self.view.lottie = path
        self.view.widgets[LOTTIE_TARGET] = {
            "x": 0,
            "y": 0,
            "width": LOTTIE_SIZE,
            "height": LOTTIE_SIZE,
            "hidden": False,
            "progress": 0.0,
        }
        self.view.play(
            Animation(
                LOTTIE_TARGET,
                "progress",
                0.0,
                1.0,
                duration_ms,
                on_start=on_start,
                on_ready=on_ready,
            )
        )