"""Geometry and animations of the welcome screen, kept as a headless model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

CONTAINER_W = 1400
CONTAINER_H = 750
WELCOME_W = 1400
WELCOME_H = 800

PART1_RATIO_1 = 400
PART2_RATIO_1 = 945
PART1_RATIO_2 = PART2_RATIO_1
PART2_RATIO_2 = PART1_RATIO_1

CAMERA_X = 50
CAMERA_Y = -400
CAMERA_W = 800
CAMERA_H = 690
CAMERA_SHOWN_Y = 10
CAMERA_ENTER_FROM_Y = -600
CAMERA_LEAVE_TO_Y = -800
CAMERA_EXIT_Y = 760

TRY_AGAIN_SHOWN_Y = 150
TRY_AGAIN_HIDDEN_Y = 1000

PART1_EXIT_X = -1000
PART2_EXIT_X = 1500
GREETING_START_Y = -1000

LOTTIE_SIZE = 150

AnimationCallback = Callable[["Animation"], Any]


class Easing(Enum):
    """Timing curve of an animation."""

    LINEAR = "linear"
    EASE_OUT = "ease_out"
    OVERSHOOT = "overshoot"


@dataclass
class Animation:
    """Moves one property of one widget from ``start`` to ``end``.

    A ``start`` of None means "from the widget's current value".
    """

    target: str
    prop: str
    start: Optional[float]
    end: float
    duration_ms: int
    easing: Easing = Easing.LINEAR
    on_start: Optional[AnimationCallback] = None
    on_ready: Optional[AnimationCallback] = None


def panel_widths(swapped: bool) -> Tuple[int, int]:
    """Target widths of the two panels when toggling away from ``swapped``."""
    if swapped:
        return PART1_RATIO_1, PART2_RATIO_1
    return PART1_RATIO_2, PART2_RATIO_2


def camera_slide(swapped: bool) -> Animation:
    """Camera panel animation: slide out if ``swapped``, otherwise slide in from the top."""
    if swapped:
        return Animation("camera_container", "y", CAMERA_SHOWN_Y, CAMERA_LEAVE_TO_Y, 600, Easing.OVERSHOOT)
    return Animation("camera_container", "y", CAMERA_ENTER_FROM_Y, CAMERA_SHOWN_Y, 800, Easing.OVERSHOOT)


def try_again_slide(show: bool) -> Animation:
    """Slide the retry button into view or back out of it."""
    if show:
        return Animation("btn_face_id_try_again", "y", TRY_AGAIN_HIDDEN_Y, TRY_AGAIN_SHOWN_Y, 1000, Easing.OVERSHOOT)
    return Animation("btn_face_id_try_again", "y", TRY_AGAIN_SHOWN_Y, TRY_AGAIN_HIDDEN_Y, 1000, Easing.OVERSHOOT)


def camera_exit(camera_y: float) -> Animation:
    """Drop the camera panel out of the bottom of the screen."""
    return Animation("camera_container", "y", camera_y, CAMERA_EXIT_Y, 600, Easing.EASE_OUT)


def exit_animations(
    part1_x: float, part2_x: float, label_y: float, label_center_y: float
) -> List[Animation]:
    """Panels leave left and right while the greeting drops to the centre."""
    return [
        Animation("part1", "x", part1_x, PART1_EXIT_X, 1000, Easing.EASE_OUT),
        Animation("part2", "x", part2_x, PART2_EXIT_X, 750, Easing.EASE_OUT),
        Animation("label_say_hello_to_user", "y", label_y, label_center_y, 800, Easing.EASE_OUT),
    ]


def _geometry(x: float = 0, y: float = 0, width: float = 0, height: float = 0, hidden: bool = False) -> Dict[str, Any]:
    return {"x": x, "y": y, "width": width, "height": height, "hidden": hidden}


@dataclass
class WelcomeView:
    """State of the welcome screen widgets and the animations playing on them.

    Animations run when :meth:`finish_all` is called: each one takes its end
    value and its ``on_ready`` callback fires, which may start further ones.
    """

    widgets: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    texts: Dict[str, str] = field(default_factory=dict)
    font_sizes: Dict[str, int] = field(default_factory=dict)
    running: List[Animation] = field(default_factory=list)
    flex: bool = True
    player_source: Optional[str] = None
    player_playing: bool = False
    lottie: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.widgets:
            self._build()
        self._relayout()

    def _build(self) -> None:
        self.widgets = {
            "welcome_container": _geometry(width=WELCOME_W, height=WELCOME_H),
            "part1": _geometry(width=PART1_RATIO_1, height=CONTAINER_H),
            "part2": _geometry(width=PART2_RATIO_1, height=CONTAINER_H),
            "camera_container": _geometry(CAMERA_X, CAMERA_Y, CAMERA_W, CAMERA_H, hidden=True),
            "btn_face_id_sign_in": _geometry(width=200, height=70),
            "btn_face_id_try_again": _geometry(y=TRY_AGAIN_HIDDEN_Y, width=200, height=70),
            "btn_sign_in_or_register": _geometry(width=200, height=55),
            "input_username": _geometry(width=340, height=50),
            "input_password": _geometry(width=340, height=50),
        }
        self.texts = {
            "welcome_title": "Welcome Back!",
            "label_face_id_title": "使用Face ID一键登录",
            "btn_face_id_sign_in_label": "一键登录",
            "btn_face_id_try_again_label": "重试",
            "label_sign_title": "登录账号",
            "label_sign_title_2": "输入账号密码或使用快速登录",
            "input_username": "username",
            "input_password": "password",
            "btn_sign_in_or_register_label": "登录",
        }
        self.font_sizes = {
            "welcome_title": 42,
            "label_face_id_title": 16,
            "label_sign_title": 42,
            "label_sign_title_2": 16,
            "input_username": 20,
            "input_password": 20,
            "btn_sign_in_or_register_label": 35,
        }

    def _relayout(self) -> None:
        if not self.flex:
            return
        part1 = self.widgets.get("part1")
        part2 = self.widgets.get("part2")
        if part1 is None or part2 is None:
            return
        part1["x"] = 0
        part2["x"] = part1["x"] + part1["width"]

    def get(self, target: str, prop: str) -> Any:
        """Current value of a widget property."""
        try:
            return self.widgets[target][prop]
        except KeyError as exc:
            raise KeyError(f"{target}.{prop}") from exc

    def set(self, target: str, prop: str, value: Any) -> None:
        """Set a widget property; the row layout is recomputed while flex is on."""
        if target not in self.widgets:
            raise KeyError(target)
        self.widgets[target][prop] = value
        self._relayout()

    def show(self, target: str) -> None:
        self.set(target, "hidden", False)

    def add_label(self, name: str, text: str, font_size: int, y: float = 0) -> None:
        """Create a text label on the screen."""
        self.widgets[name] = _geometry(y=y)
        self.texts[name] = text
        self.font_sizes[name] = font_size

    def freeze_layout(self) -> None:
        """Turn off the row layout so the panels keep their current geometry."""
        self.flex = False

    def play(self, animation: Animation) -> Animation:
        """Start an animation; its start value defaults to the property's current value."""
        if animation.start is None:
            animation.start = self.get(animation.target, animation.prop)
        self.set(animation.target, animation.prop, animation.start)
        self.running.append(animation)
        if animation.on_start is not None:
            animation.on_start(animation)
        return animation

    def finish_all(self) -> List[Animation]:
        """Complete every running animation, including ones started by callbacks."""
        finished: List[Animation] = []
        while self.running:
            animation = self.running.pop(0)
            self.set(animation.target, animation.prop, animation.end)
            finished.append(animation)
            if animation.on_ready is not None:
                animation.on_ready(animation)
        return finished