from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any, Callable, Optional

from .appium_http_client import AppiumHTTPError, WebDriverElementRef
from .gestures import (
    GestureSpec,
    Rect,
    SwipePlan,
    ViewportPosition,
    classify_position,
    has_room_above,
    plan_screen_swipe,
    plan_swipe_from,
    plan_swipe_within,
    plan_tap_above,
    plan_tap_in,
    scroll_direction_for,
    scroll_length_for,
)
from .recording import RecordingSession, ScreenRecording, temp_media_path, transcode_recording

logger = logging.getLogger(__name__)

SCROLL_SETTLE_MS = (200, 400)


class InteractionSynthesizer:
    """
    Human-looking taps and swipes on top of a device driver.

    `driver` must provide the capability set of `AppiumHTTPClient`
    (geometry/attribute reads, tap, swipe, pause, screenshot, recording).
    All randomness flows through `rng`.
    """

    def __init__(
        self,
        driver: Any,
        *,
        rng: Optional[random.Random] = None,
        temp_dir: Optional[Path] = None,
        transcoder: Callable[[Path], Path] = transcode_recording,
    ) -> None:
        self.driver = driver
        self.rng = rng or random.Random()
        self.temp_dir = temp_dir
        self.transcoder = transcoder
        self.recording = RecordingSession()

    def _frame(self) -> Rect:
        return Rect.from_mapping(self.driver.get_window_rect())

    def _element_rect(self, element: WebDriverElementRef) -> Rect:
        return Rect.from_mapping(self.driver.get_element_rect(element))

    def _perform(self, plan: SwipePlan) -> None:
        logger.debug(
            "[gestures] swipe (%d, %d) -> (%d, %d) in %dms",
            plan.x1,
            plan.y1,
            plan.x2,
            plan.y2,
            plan.duration_ms,
        )
        self.driver.swipe(x1=plan.x1, y1=plan.y1, x2=plan.x2, y2=plan.y2, duration_ms=plan.duration_ms)

    def is_visible(self, element: WebDriverElementRef) -> bool:
        try:
            return self.driver.get_element_attribute(element, "visible") == "true"
        except AppiumHTTPError as e:
            logger.warning("[gestures] visibility check failed for %s: %s", element.element_id, e)
            return False

    def scroll_into_view(
        self,
        element: WebDriverElementRef,
        *,
        align_to_top: bool = True,
        max_attempts: int = 5,
        speed: str = "medium",
        handedness: str = "neutral",
    ) -> bool:
        """
        Swipe the screen until `element` reports visible.

        Returns True as soon as the element is visible and False when
        `max_attempts` swipes did not reveal it. Running out of attempts is not
        an error; the caller decides whether to act on the element anyway.
        """
        for attempt in range(max_attempts):
            if self.is_visible(element):
                logger.debug("[gestures] element visible after %d scroll(s)", attempt)
                return True

            try:
                position = classify_position(self._element_rect(element), self._frame())
            except AppiumHTTPError as e:
                logger.warning("[gestures] could not locate element, assuming in-frame: %s", e)
                position = ViewportPosition.IN_FRAME

            direction = scroll_direction_for(position, align_to_top=align_to_top)
            length = scroll_length_for(position, self.rng)
            logger.debug(
                "[gestures] scroll attempt %d: element is %s, swiping %s",
                attempt + 1,
                position.value,
                direction,
            )
            self.swipe_screen(direction, speed=speed, length=length, handedness=handedness)
            self.driver.pause(self.rng.uniform(*SCROLL_SETTLE_MS))

        logger.warning("[gestures] element still not visible after %d scroll attempts", max_attempts)
        return False

    def tap_random_point_in_element(self, element: WebDriverElementRef, *, ensure_visible: bool = True) -> None:
        if ensure_visible:
            self.scroll_into_view(element)
        point = plan_tap_in(self._element_rect(element), self.rng)
        if point is None:
            logger.warning("[gestures] element too small for a random tap; clicking its center")
            self.driver.click(element)
            return
        self.driver.tap(x=point[0], y=point[1])

    def tap_random_point_above_element(
        self,
        element: WebDriverElementRef,
        *,
        handedness: str = "neutral",
        vertical_offset: float = 50,
        ensure_visible: bool = True,
    ) -> None:
        if ensure_visible:
            self.scroll_into_view(element)
        rect = self._element_rect(element)
        frame = self._frame()
        if not has_room_above(rect, frame):
            logger.warning("[gestures] not enough space above element %s; the tap may land on it", element.element_id)
        x, y = plan_tap_above(
            rect,
            frame,
            handedness=handedness,
            vertical_offset=vertical_offset,
            rng=self.rng,
        )
        logger.debug("[gestures] tapping above element at (%d, %d) with %s bias", x, y, handedness)
        self.driver.tap(x=x, y=y)

    def swipe_screen(
        self,
        direction: str,
        *,
        speed: str = "medium",
        length: str = "medium",
        handedness: str = "neutral",
    ) -> None:
        spec = GestureSpec(direction=direction, speed=speed, length=length, handedness=handedness)
        self._perform(plan_screen_swipe(self._frame(), spec, self.rng))

    def swipe_within_element(
        self,
        element: WebDriverElementRef,
        direction: str,
        *,
        speed: str = "medium",
        length: str = "medium",
        handedness: str = "neutral",
        ensure_visible: bool = True,
    ) -> None:
        spec = GestureSpec(direction=direction, speed=speed, length=length, handedness=handedness)
        if ensure_visible:
            self.scroll_into_view(element)
        plan = plan_swipe_within(self._element_rect(element), spec, self.rng)
        if plan is None:
            logger.warning("[gestures] element too small for an in-element swipe; skipping")
            return
        self._perform(plan)

    def swipe_starting_from_element(
        self,
        element: WebDriverElementRef,
        direction: str,
        *,
        speed: str = "medium",
        length: str = "medium",
        handedness: str = "neutral",
        ensure_visible: bool = True,
    ) -> None:
        spec = GestureSpec(direction=direction, speed=speed, length=length, handedness=handedness)
        if ensure_visible:
            self.scroll_into_view(element)
        plan = plan_swipe_from(self._element_rect(element), self._frame(), spec, self.rng)
        if plan is None:
            logger.warning("[gestures] element too small to start a swipe from; skipping")
            return
        self._perform(plan)

    def save_screenshot(self) -> Path:
        path = temp_media_path("png", temp_dir=self.temp_dir)
        path.write_bytes(self.driver.get_screenshot_png_bytes())
        return path

    def start_screen_recording(self) -> ScreenRecording:
        active = self.recording.active
        if active is not None:
            logger.warning("[gestures] screen recording already started; keeping the current one")
            return active
        self.driver.start_recording_screen()
        return self.recording.begin()

    def save_screen_recording(self, handle: Optional[ScreenRecording] = None) -> Path:
        """
        Stop the active recording and return the path of a transcoded copy.

        The raw capture is left next to it for the caller to clean up. If
        transcoding fails the raw capture is removed before the error propagates.
        """
        self.recording.finish(handle)
        raw_path = temp_media_path("mp4", temp_dir=self.temp_dir)
        raw_path.write_bytes(self.driver.stop_recording_screen())
        try:
            return self.transcoder(raw_path)
        except Exception:
            raw_path.unlink(missing_ok=True)
            raise
