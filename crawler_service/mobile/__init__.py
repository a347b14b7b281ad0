"""
Device side of the crawler, built around Appium.

- `appium_http_client`: WebDriver HTTP client (the driver capability set).
- `interactions`: human-looking taps, swipes and scroll-into-view.
- `instagram_crawler`: the navigation engine walking profiles and reels.

Capabilities are provided explicitly via JSON; there are no hidden defaults.
"""

from .appium_http_client import AppiumHTTPClient, AppiumHTTPError, ElementNotFoundError, WebDriverElementRef
from .interactions import InteractionSynthesizer
from .recording import RecordingStateError, ScreenRecording, TranscodeError

__all__ = [
    "AppiumHTTPClient",
    "AppiumHTTPError",
    "ElementNotFoundError",
    "InteractionSynthesizer",
    "RecordingStateError",
    "ScreenRecording",
    "TranscodeError",
    "WebDriverElementRef",
]
