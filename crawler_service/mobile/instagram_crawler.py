"""
Instagram navigation engine.

Walks search -> profile -> reels -> comments for one root account, detouring
into every profile mentioned in a reel caption. Each visited profile is
screenshotted and analyzed; each reel's comment section is recorded,
uploaded, analyzed and persisted together with the reel.

Required UI anchors are located with `find_element`, which raises
`ElementNotFoundError` when they are missing. Nothing here catches that: a
missing anchor or a failed extraction ends the crawl.
"""

from __future__ import annotations

import logging
import random
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..analysis.media_analysis import AnalysisConfig, AnalysisRequest, ImageInput, MediaAnalysisService, VideoInput
from ..analysis.prompts import COMMENT_SECTION_PROMPT, INSTAGRAM_PROFILE_PROMPT
from ..analysis.schemas import CommentSectionAnalysis, ProfileAnalysis
from ..storage.record_store import normalize_username
from .appium_http_client import WebDriverElementRef
from .interactions import InteractionSynthesizer
from .pacing import random_pause_ms
from .recording import raw_recording_path

logger = logging.getLogger(__name__)

ACCESSIBILITY_ID = "accessibility id"
XPATH = "xpath"
CLASS_NAME = "class name"

Locator = tuple[str, str]

EXPLORE_TAB: Locator = (ACCESSIBILITY_ID, "explore-tab")
SEARCH_INPUT: Locator = (ACCESSIBILITY_ID, "search-text-input")
REELS_TAB: Locator = (ACCESSIBILITY_ID, "Reels")
REELS_THUMBNAIL: Locator = (ACCESSIBILITY_ID, "reels-video-thumbnail")
PROFILE_BACK_BUTTON: Locator = (ACCESSIBILITY_ID, "profile-back-button")
NAVIGATION_BAR: Locator = (ACCESSIBILITY_ID, "navigation-bar")
LIKES_LABEL: Locator = (XPATH, '//*[contains(@name, "likes")]')
COMMENTS_LABEL: Locator = (XPATH, '//*[contains(@name, "comments")]')
SHARES_LABEL: Locator = (XPATH, '//*[contains(@name, "shares")]')
CAPTION_BUTTON: Locator = (XPATH, '//*[contains(@name, "caption-button")]')
CAPTION_TEXT: Locator = (CLASS_NAME, "XCUIElementTypeStaticText")
MENTION_LINKS: Locator = (XPATH, '//XCUIElementTypeLink[contains(@name, "@")]')

PROFILE_ANALYSIS = AnalysisConfig(prompt=INSTAGRAM_PROFILE_PROMPT, shape=ProfileAnalysis)
COMMENT_ANALYSIS = AnalysisConfig(prompt=COMMENT_SECTION_PROMPT, shape=CommentSectionAnalysis)

DEFAULT_REELS_RANGE = (18, 24)
MAX_COMMENT_SCROLLS = 8
COMMENTS_PER_SCROLL = 10
PARALLEL_READS = 4

_COUNT_MULTIPLIERS = {"K": 1_000, "M": 1_000_000}


class UploadFailureError(RuntimeError):
    pass


@dataclass(frozen=True)
class CrawlFrame:
    username: str
    crawl_reels: bool
    depth: int = 0


@dataclass
class ReelExtraction:
    """Everything read off one reel before it is handed to the record store."""

    caption: str = ""
    uploaded_at: str = ""
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    collaborators: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    recording_uri: Optional[str] = None


@dataclass
class CrawlStats:
    profiles_visited: list[str] = field(default_factory=list)
    reels_processed: int = 0


def parse_count(label: Optional[str]) -> int:
    """
    Leading number of an accessibility label like "1,204 likes" or "3.4K comments".

    Labels without a leading number count as 0.
    """
    head = (label or "").strip().split(" ")[0].replace(",", "")
    if not head:
        return 0
    multiplier = _COUNT_MULTIPLIERS.get(head[-1].upper(), 1)
    if multiplier != 1:
        head = head[:-1]
    try:
        return round(float(head) * multiplier)
    except (ValueError, OverflowError):
        return 0


def comment_scroll_bound(comment_count: int) -> int:
    return min(max(comment_count, 0) // COMMENTS_PER_SCROLL, MAX_COMMENT_SCROLLS)


def mention_username(label: Optional[str]) -> str:
    return (label or "").replace("@", "").strip()


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class InstagramCrawler:
    def __init__(
        self,
        driver: Any,
        synthesizer: InteractionSynthesizer,
        analysis_service: MediaAnalysisService,
        record_store: Any,
        uploader: Any,
        *,
        rng: Optional[random.Random] = None,
        reels_range: tuple[int, int] = DEFAULT_REELS_RANGE,
        comment_scrolls: Optional[int] = 1,
        handedness: str = "right",
        max_mention_depth: int = 1,
    ) -> None:
        self.driver = driver
        self.synthesizer = synthesizer
        self.analysis_service = analysis_service
        self.record_store = record_store
        self.uploader = uploader
        self.rng = rng or synthesizer.rng
        self.reels_range = reels_range
        self.comment_scrolls = comment_scrolls
        self.handedness = handedness
        self.max_mention_depth = max_mention_depth
        self.stats = CrawlStats()
        self._visited: set[str] = set()

    # ---- helpers ----

    def _pause(self, category: str) -> None:
        self.driver.pause(random_pause_ms(category, rng=self.rng))

    def _find(self, locator: Locator) -> WebDriverElementRef:
        using, value = locator
        return self.driver.find_element(using=using, value=value)

    def _read_name(self, locator: Locator) -> Optional[str]:
        return self.driver.get_element_attribute(self._find(locator), "name")

    def _tap(self, element: WebDriverElementRef) -> None:
        self.synthesizer.tap_random_point_in_element(element)

    def scroll_count_for(self, comment_count: int) -> int:
        if self.comment_scrolls is None:
            return comment_scroll_bound(comment_count)
        return self.comment_scrolls

    # ---- phases ----

    def crawl(self, initial_username: str) -> CrawlStats:
        logger.info("[crawler] starting crawl for %s", initial_username)
        try:
            self._pause("long")
            self._tap(self._find(EXPLORE_TAB))
            self._pause("short")
            self._tap(self._find(SEARCH_INPUT))
            self._pause("very short")
            self._tap(self._find((XPATH, f'//*[contains(@name, "{initial_username}")]')))
            self._pause("very short")

            root = CrawlFrame(username=initial_username, crawl_reels=True, depth=0)
            self._visited.add(normalize_username(root.username))
            self.crawl_profile(root)
        except Exception:
            logger.exception(
                "[crawler] crawl for %s aborted after %d profile(s) and %d reel(s)",
                initial_username,
                len(self.stats.profiles_visited),
                self.stats.reels_processed,
            )
            raise
        logger.info(
            "[crawler] finished crawl for %s: %d profile(s), %d reel(s)",
            initial_username,
            len(self.stats.profiles_visited),
            self.stats.reels_processed,
        )
        return self.stats

    def analyze_profile(self, frame: CrawlFrame) -> dict[str, Any]:
        screenshot = self.synthesizer.save_screenshot()
        try:
            result = self.analysis_service.analyze(
                AnalysisRequest(media=ImageInput(path=screenshot), config=PROFILE_ANALYSIS)
            )
        finally:
            _unlink_quietly(screenshot)
        account = self.record_store.upsert_profile(result.parsed)
        self.stats.profiles_visited.append(frame.username)
        return account

    def crawl_profile(self, frame: CrawlFrame) -> None:
        logger.info(
            "[crawler] analyzing profile %s (depth=%d, reels=%s)",
            frame.username,
            frame.depth,
            frame.crawl_reels,
        )
        self.analyze_profile(frame)
        if not frame.crawl_reels:
            return

        self._tap(self._find(REELS_TAB))
        self._pause("very short")
        self.crawl_reels(frame)

    def crawl_reels(self, frame: CrawlFrame) -> None:
        low, high = self.reels_range
        limit = self.rng.randint(low, high)
        logger.info("[crawler] crawling %d reel(s) for %s", limit, frame.username)

        self._tap(self._find(REELS_THUMBNAIL))
        for index in range(limit):
            logger.info("[crawler] processing reel %d/%d for %s", index + 1, limit, frame.username)
            self.process_reel(frame)
            self.stats.reels_processed += 1

    def _read_reel_counters(self) -> tuple[int, int, int, WebDriverElementRef]:
        with ThreadPoolExecutor(max_workers=PARALLEL_READS) as pool:
            likes = pool.submit(self._read_name, LIKES_LABEL)
            comments = pool.submit(self._read_name, COMMENTS_LABEL)
            shares = pool.submit(self._read_name, SHARES_LABEL)
            caption_button = pool.submit(self._find, CAPTION_BUTTON)
            return (
                parse_count(likes.result()),
                parse_count(comments.result()),
                parse_count(shares.result()),
                caption_button.result(),
            )

    def _read_caption(self, reel: ReelExtraction, caption_button: WebDriverElementRef) -> None:
        using, value = CAPTION_TEXT
        children = self.driver.find_child_elements(caption_button, using=using, value=value)
        for index, child in enumerate(children):
            text = self.driver.get_element_attribute(child, "name") or ""
            if index == 0:
                reel.uploaded_at = text
            elif index == 1:
                reel.caption = text
            else:
                logger.warning("[crawler] unexpected caption node %d: %r", index, text)

    def process_reel(self, frame: CrawlFrame) -> ReelExtraction:
        self._pause("medium")
        like_count, comment_count, share_count, caption_button = self._read_reel_counters()
        reel = ReelExtraction(
            like_count=like_count,
            comment_count=comment_count,
            share_count=share_count,
            collaborators=[frame.username],
        )
        logger.info(
            "[crawler] reel stats likes=%d comments=%d shares=%d",
            like_count,
            comment_count,
            share_count,
        )
        self._pause("very short")

        self._tap(caption_button)
        self._read_caption(reel, caption_button)
        logger.info("[crawler] caption %r uploaded %r", reel.caption[:50], reel.uploaded_at)
        self._pause("very short")

        self.synthesizer.swipe_within_element(
            caption_button,
            "up",
            speed="slow",
            length="medium",
            handedness=self.handedness,
        )
        self._pause("medium")
        reel.mentions = self.visit_mentions(frame)

        self._pause("very short")
        self._tap(caption_button)
        self._tap(self._find(COMMENTS_LABEL))

        recording_uri = self._record_comments(self.scroll_count_for(comment_count))
        reel.recording_uri = recording_uri

        analysis = self.analysis_service.analyze(
            AnalysisRequest(media=VideoInput(uri=recording_uri), config=COMMENT_ANALYSIS)
        )
        self.record_store.upsert_reel_with_comments(reel, analysis.parsed.comments)

        self.synthesizer.swipe_starting_from_element(
            self._find(NAVIGATION_BAR),
            "down",
            speed="fast",
            length="short",
            handedness=self.handedness,
        )
        self._pause("very long")
        self.synthesizer.swipe_screen("up", speed="fast", length="short", handedness=self.handedness)
        return reel

    def _record_comments(self, scrolls: int) -> str:
        """Record `scrolls` comment-section swipes and return the uploaded recording's URI."""
        logger.info("[crawler] recording comments section (%d scroll(s))", scrolls)
        handle = self.synthesizer.start_screen_recording()
        for _ in range(scrolls):
            self.synthesizer.swipe_screen("up", speed="medium", length="medium", handedness=self.handedness)
            self._pause("short")
        recording = self.synthesizer.save_screen_recording(handle)

        destination = f"{uuid.uuid4().hex[:8]}.mp4"
        try:
            uri = self.uploader.upload_local_file(recording, destination)
        finally:
            _unlink_quietly(recording)
            _unlink_quietly(raw_recording_path(recording))
        if not uri:
            raise UploadFailureError(f"Failed to upload comments recording to {destination}")
        return uri

    def visit_mentions(self, parent: CrawlFrame) -> list[str]:
        """
        Visit every profile linked from the open caption and return the mentioned usernames.

        Mentioned profiles are pushed as child frames on an explicit stack.
        Frames deeper than `max_mention_depth` and usernames already visited in
        this crawl are recorded as mentions but not opened.
        """
        using, value = MENTION_LINKS
        links = self.driver.find_elements(using=using, value=value)
        logger.info("[crawler] found %d mention(s)", len(links))

        mentioned: list[str] = []
        stack: list[tuple[CrawlFrame, WebDriverElementRef]] = []
        for link in links:
            username = mention_username(self.driver.get_element_attribute(link, "name"))
            if not username:
                continue
            mentioned.append(username)
            child = CrawlFrame(username=username, crawl_reels=False, depth=parent.depth + 1)
            if child.depth > self.max_mention_depth:
                logger.warning("[crawler] not following @%s: depth %d exceeds limit", username, child.depth)
                continue
            key = normalize_username(username)
            if key in self._visited:
                logger.warning("[crawler] skipping @%s: already visited", username)
                continue
            self._visited.add(key)
            stack.append((child, link))

        # Visit in display order.
        stack.reverse()
        while stack:
            child, link = stack.pop()
            logger.info("[crawler] visiting mentioned profile @%s", child.username)
            self._tap(link)
            self.crawl_profile(child)
            self._tap(self._find(PROFILE_BACK_BUTTON))
        return mentioned
