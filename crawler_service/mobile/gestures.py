"""
Coordinate and timing synthesis for human-looking touch gestures.

Everything here is pure: callers pass a `random.Random` so that a seeded
source pins exact coordinates in tests while production uses fresh entropy.
Every random quantity is drawn uniformly from an explicit bounded interval.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

DIRECTIONS = ("up", "down", "left", "right")
SPEEDS = ("fast", "medium", "slow")
LENGTHS = ("short", "medium", "long")
HANDEDNESS = ("left", "right", "neutral")

SWIPE_DURATION_MS: dict[str, tuple[float, float]] = {
    "fast": (50.0, 100.0),
    "medium": (100.0, 200.0),
    "slow": (200.0, 400.0),
}

SWIPE_DISTANCE_FRACTION: dict[str, tuple[float, float]] = {
    "short": (0.20, 0.35),
    "medium": (0.40, 0.60),
    "long": (0.70, 0.95),
}

# Keep gestures away from OS edge-swipe zones.
SCREEN_EDGE_PADDING = 10
SCREEN_START_PADDING = 50
SCREEN_DRIFT_PX = 40.0
HANDED_BIAS_FRACTION = 0.35

TAP_PADDING = 5
SWIPE_WITHIN_PADDING = 10
SWIPE_FROM_PADDING = 5


@dataclass(frozen=True)
class GestureSpec:
    direction: str
    speed: str = "medium"
    length: str = "medium"
    handedness: str = "neutral"

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS} (got {self.direction!r})")
        if self.speed not in SPEEDS:
            raise ValueError(f"speed must be one of {SPEEDS} (got {self.speed!r})")
        if self.length not in LENGTHS:
            raise ValueError(f"length must be one of {LENGTHS} (got {self.length!r})")
        if self.handedness not in HANDEDNESS:
            raise ValueError(f"handedness must be one of {HANDEDNESS} (got {self.handedness!r})")


class ViewportPosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    LEFT = "left"
    RIGHT = "right"
    IN_FRAME = "in-frame"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Rect":
        return cls(
            x=float(raw.get("x", 0)),
            y=float(raw.get("y", 0)),
            width=float(raw["width"]),
            height=float(raw["height"]),
        )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass(frozen=True)
class SwipePlan:
    x1: int
    y1: int
    x2: int
    y2: int
    duration_ms: int


def _clamp(value: float, low: float, high: float) -> float:
    if low > high:
        return (low + high) / 2
    return max(low, min(high, value))


def _jitter(rng: random.Random, span: float) -> float:
    # Symmetric noise in [-span/2, span/2].
    return (rng.random() - 0.5) * span


def swipe_duration_ms(speed: str, rng: random.Random) -> float:
    low, high = SWIPE_DURATION_MS[speed]
    return rng.uniform(low, high)


def distance_fraction(length: str, rng: random.Random) -> float:
    low, high = SWIPE_DISTANCE_FRACTION[length]
    return rng.uniform(low, high)


def classify_position(element: Rect, frame: Rect) -> ViewportPosition:
    """Where `element` lies relative to `frame`; any overlap counts as in-frame."""
    if element.bottom < frame.y:
        return ViewportPosition.ABOVE
    if element.y > frame.bottom:
        return ViewportPosition.BELOW
    if element.right < frame.x:
        return ViewportPosition.LEFT
    if element.x > frame.right:
        return ViewportPosition.RIGHT
    return ViewportPosition.IN_FRAME


def scroll_direction_for(position: ViewportPosition, *, align_to_top: bool) -> str:
    if position is ViewportPosition.ABOVE:
        return "down"
    if position is ViewportPosition.BELOW:
        return "up"
    if position is ViewportPosition.LEFT:
        return "right"
    if position is ViewportPosition.RIGHT:
        return "left"
    return "up" if align_to_top else "down"


def scroll_length_for(position: ViewportPosition, rng: random.Random) -> str:
    if position in (ViewportPosition.ABOVE, ViewportPosition.BELOW):
        return "medium" if rng.random() > 0.5 else "long"
    if position in (ViewportPosition.LEFT, ViewportPosition.RIGHT):
        return "short" if rng.random() > 0.3 else "medium"
    return "short"


def _handed_start(area: Rect, *, handedness: str, rng: random.Random, variation: float) -> tuple[float, float]:
    center_x, center_y = area.center
    bias = area.width * HANDED_BIAS_FRACTION
    if handedness == "right":
        start_x = center_x + bias + rng.random() * variation
    elif handedness == "left":
        start_x = center_x - bias - rng.random() * variation
    else:
        start_x = center_x + _jitter(rng, variation)
    start_y = center_y + _jitter(rng, min(area.height * 0.25, 100.0))
    return start_x, start_y


def _project_end(
    *,
    start: tuple[float, float],
    direction: str,
    fraction: float,
    limits: Rect,
    drift: float,
    rng: random.Random,
) -> tuple[float, float]:
    start_x, start_y = start
    if direction == "up":
        return start_x + _jitter(rng, drift), start_y - (start_y - limits.y) * fraction
    if direction == "down":
        return start_x + _jitter(rng, drift), start_y + (limits.bottom - start_y) * fraction
    if direction == "left":
        return start_x - (start_x - limits.x) * fraction, start_y + _jitter(rng, drift)
    return start_x + (limits.right - start_x) * fraction, start_y + _jitter(rng, drift)


def _inset(area: Rect, padding: float) -> Rect:
    return Rect(area.x + padding, area.y + padding, area.width - 2 * padding, area.height - 2 * padding)


def _finish(
    start: tuple[float, float],
    end: tuple[float, float],
    *,
    start_bounds: Rect,
    end_bounds: Rect,
    duration_ms: float,
) -> SwipePlan:
    sx = _clamp(start[0], start_bounds.x, start_bounds.right)
    sy = _clamp(start[1], start_bounds.y, start_bounds.bottom)
    ex = _clamp(end[0], end_bounds.x, end_bounds.right)
    ey = _clamp(end[1], end_bounds.y, end_bounds.bottom)
    return SwipePlan(x1=round(sx), y1=round(sy), x2=round(ex), y2=round(ey), duration_ms=round(duration_ms))


def plan_screen_swipe(frame: Rect, spec: GestureSpec, rng: random.Random) -> SwipePlan:
    """Swipe across the whole frame starting near its (handed) center."""
    start_bounds = _inset(frame, SCREEN_START_PADDING)
    limits = _inset(frame, SCREEN_EDGE_PADDING)
    variation = 50.0 if spec.handedness == "neutral" else 30.0
    raw_start = _handed_start(frame, handedness=spec.handedness, rng=rng, variation=variation)
    start = (
        _clamp(raw_start[0], start_bounds.x, start_bounds.right),
        _clamp(raw_start[1], start_bounds.y, start_bounds.bottom),
    )
    fraction = distance_fraction(spec.length, rng)
    duration = swipe_duration_ms(spec.speed, rng)
    end = _project_end(
        start=start,
        direction=spec.direction,
        fraction=fraction,
        limits=limits,
        drift=SCREEN_DRIFT_PX,
        rng=rng,
    )
    return _finish(start, end, start_bounds=start_bounds, end_bounds=limits, duration_ms=duration)


def plan_swipe_within(element: Rect, spec: GestureSpec, rng: random.Random) -> Optional[SwipePlan]:
    """Swipe that both starts and ends inside `element`; None when it is too small to swipe in."""
    usable = _inset(element, SWIPE_WITHIN_PADDING)
    if usable.width <= 20 or usable.height <= 20:
        return None
    variation = min(element.width * 0.1, 30.0)
    raw_start = _handed_start(element, handedness=spec.handedness, rng=rng, variation=variation)
    start = (_clamp(raw_start[0], usable.x, usable.right), _clamp(raw_start[1], usable.y, usable.bottom))
    fraction = distance_fraction(spec.length, rng)
    duration = swipe_duration_ms(spec.speed, rng)
    if spec.direction in ("up", "down"):
        drift = min(usable.width * 0.1, 20.0)
    else:
        drift = min(usable.height * 0.1, 20.0)
    end = _project_end(
        start=start,
        direction=spec.direction,
        fraction=fraction,
        limits=usable,
        drift=drift,
        rng=rng,
    )
    return _finish(start, end, start_bounds=usable, end_bounds=usable, duration_ms=duration)


def plan_swipe_from(element: Rect, frame: Rect, spec: GestureSpec, rng: random.Random) -> Optional[SwipePlan]:
    """Swipe that starts inside `element` and travels toward the frame edge."""
    usable = _inset(element, SWIPE_FROM_PADDING)
    if usable.width <= 10 or usable.height <= 10:
        return None
    limits = _inset(frame, SCREEN_EDGE_PADDING)
    variation = min(element.width * 0.1, 30.0)
    raw_start = _handed_start(element, handedness=spec.handedness, rng=rng, variation=variation)
    # On the element first, then on screen for elements hanging off an edge.
    start = (
        _clamp(_clamp(raw_start[0], usable.x, usable.right), limits.x, limits.right),
        _clamp(_clamp(raw_start[1], usable.y, usable.bottom), limits.y, limits.bottom),
    )
    fraction = distance_fraction(spec.length, rng)
    duration = swipe_duration_ms(spec.speed, rng)
    end = _project_end(
        start=start,
        direction=spec.direction,
        fraction=fraction,
        limits=limits,
        drift=SCREEN_DRIFT_PX,
        rng=rng,
    )
    return _finish(start, end, start_bounds=limits, end_bounds=limits, duration_ms=duration)


def plan_tap_in(element: Rect, rng: random.Random, *, padding: int = TAP_PADDING) -> Optional[tuple[int, int]]:
    """Uniform point inside the padded element box; None when the padded box is empty."""
    usable_width = int(element.width) - padding * 2
    usable_height = int(element.height) - padding * 2
    if usable_width <= 0 or usable_height <= 0:
        return None
    x = int(element.x) + padding + rng.randrange(usable_width)
    y = int(element.y) + padding + rng.randrange(usable_height)
    return x, y


def has_room_above(element: Rect, frame: Rect) -> bool:
    """False when the band above `element` would overlap the element itself."""
    return element.y - SCREEN_EDGE_PADDING > frame.y + SCREEN_EDGE_PADDING


def plan_tap_above(
    element: Rect,
    frame: Rect,
    *,
    handedness: str,
    vertical_offset: float,
    rng: random.Random,
) -> tuple[int, int]:
    """Point in a band above `element`, biased toward the dominant hand."""
    if handedness not in HANDEDNESS:
        raise ValueError(f"handedness must be one of {HANDEDNESS} (got {handedness!r})")
    center_x = element.x + element.width / 2
    band_top = max(frame.y + SCREEN_EDGE_PADDING, element.y - vertical_offset - 50)
    band_bottom = max(band_top + 20, element.y - SCREEN_EDGE_PADDING)

    max_bias = min(element.width * 0.4, frame.width * 0.2)
    if handedness == "right":
        tap_x = center_x + rng.random() * max_bias
    elif handedness == "left":
        tap_x = center_x - rng.random() * max_bias
    else:
        tap_x = center_x + _jitter(rng, max_bias * 0.5)
    tap_y = band_top + rng.random() * max(1.0, band_bottom - band_top)

    limits = _inset(frame, SCREEN_EDGE_PADDING)
    return round(_clamp(tap_x, limits.x, limits.right)), round(_clamp(tap_y, limits.y, limits.bottom))
