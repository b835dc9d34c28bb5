"""
Google Maps result feed driven with Playwright.
Exposes the visible listing cards, scrolls or pages for more, and reports
when the feed has nothing left.
"""

import re
import time
import urllib.parse
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Any

from playwright.sync_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Page,
    TimeoutError as PlaywrightTimeout,
    Error as PlaywrightError,
)

from .config import ScraperConfig, DEBUG_DIR
from .logging_setup import get_logger

logger = get_logger("maps_feed")


class ScraperError(Exception):
    """Base exception for scraper errors."""
    pass


class FeedError(ScraperError):
    """A feed-level navigation step failed."""
    pass


class FeedUnavailableError(FeedError):
    """The results feed never appeared for the query."""
    pass


@dataclass(frozen=True)
class ListingDetails:
    """Fields read from a listing's detail panel. Any of them may be missing."""
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[str] = None
    website: Optional[str] = None


# Multiple selector strategies for resilience
SELECTORS = {
    # Consent dialog buttons (Google cookie consent)
    "consent_buttons": [
        "button:has-text('Accept all')",
        "button:has-text('Reject all')",
        "[aria-label='Accept all']",
        "form[action*='consent'] button",
    ],
    # Scrollable results feed container
    "results_feed": [
        "div[role='feed']",
        ".m6QErb[aria-label]",
    ],
    # Individual business cards in results
    "business_cards": [
        ".Nv2PK",
        "div[role='feed'] div[role='article']",
    ],
    # Clickable name inside a card
    "card_name": [
        ".qBF1Pd",
        ".fontHeadlineSmall",
        "a.hfpxzc",
    ],
    # Spinner shown while more results load
    "loading_indicator": [
        ".YtfLV",
    ],
    # End-of-results marker
    "end_of_list": [
        "span.HlvSq",
        "text=You've reached the end of the list",
    ],
    "next_page": [
        "button[aria-label='Next page']",
        "button[jsaction*='pane.paginationSection.nextPage']",
    ],
    # Detail panel fields
    "business_name": [
        "h1.DUwDvf",
        "div[role='main'] h1",
    ],
    "website_link": [
        "a[data-item-id='authority']",
        "a[aria-label*='Website']",
    ],
    "address": [
        "button[data-item-id='address']",
        "[data-item-id='address']",
    ],
    "phone": [
        "button[data-item-id^='phone:']",
        "[data-item-id*='phone']",
    ],
    "rating": [
        ".F7nice",
    ],
}


def _first_selector(root: Any, selector_list: List[str]) -> Optional[ElementHandle]:
    """Try multiple selectors against a page or element, return first match or None."""
    for selector in selector_list:
        try:
            element = root.query_selector(selector)
            if element:
                return element
        except PlaywrightError:
            continue
    return None


def _query_all_selectors(root: Any, selector_list: List[str]) -> List[ElementHandle]:
    """Try multiple selectors, return all matches from first working selector."""
    for selector in selector_list:
        try:
            elements = root.query_selector_all(selector)
            if elements:
                return elements
        except PlaywrightError:
            continue
    return []


def _text_of(element: Optional[ElementHandle]) -> Optional[str]:
    if element is None:
        return None
    text = element.text_content() or ""
    text = text.strip()
    return text or None


def clean_website_url(href: Optional[str]) -> Optional[str]:
    """Unwrap Google redirect links to the target URL."""
    if not href:
        return None
    if "google.com/url" in href:
        parsed = urllib.parse.urlparse(href)
        params = urllib.parse.parse_qs(parsed.query)
        for key in ("q", "url"):
            if key in params:
                return params[key][0]
    return href


def clean_phone(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    phone = raw.replace("Phone:", "")
    phone = re.sub(r"[^\d+()\-.\s]", "", phone)
    phone = re.sub(r"\s+", "", phone)
    return phone or None


def clean_address(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    address = raw.replace("Address:", "")
    # Leading icon glyphs from the Maps font
    address = re.sub(r"^[^\w]+", "", address.strip())
    return address or None


def search_url(query: str, location: str) -> str:
    full_query = f"{query} in {location}" if location else query
    return f"https://www.google.com/maps/search/{urllib.parse.quote(full_query)}"


class MapsEntry:
    """One listing card currently visible in the feed."""

    def __init__(self, page: Page, card: ElementHandle, name: str, config: ScraperConfig):
        self.page = page
        self.card = card
        self.name = name
        self.config = config

    def reveal(self) -> ListingDetails:
        """Open the detail panel for this card and read its fields."""
        target = _first_selector(self.card, SELECTORS["card_name"]) or self.card
        target.click()
        time.sleep(self.config.detail_pause_ms / 1000)

        return ListingDetails(
            name=self._read_field("business_name"),
            address=clean_address(self._read_field("address", attribute="aria-label")),
            phone=clean_phone(self._read_field("phone", attribute="aria-label")),
            rating=self._read_field("rating"),
            website=clean_website_url(
                self._read_field("website_link", attribute="href", text_fallback=False)
            ),
        )

    def _read_field(self, field: str, attribute: str = None, text_fallback: bool = True) -> Optional[str]:
        """Read one detail panel field. A missing or detached element gives None."""
        try:
            element = _first_selector(self.page, SELECTORS[field])
            if element is None:
                return None
            if attribute:
                value = element.get_attribute(attribute)
                if value or not text_fallback:
                    return value or None
            return _text_of(element)
        except PlaywrightError as e:
            logger.warning(f"Could not read {field} for {self.name}: {e}")
            return None

    def dismiss(self) -> None:
        """Close the detail panel and return to the list."""
        try:
            self.page.keyboard.press("Escape")
            time.sleep(self.config.dismiss_pause_ms / 1000)
        except PlaywrightError as e:
            logger.debug(f"Could not dismiss detail panel for {self.name}: {e}")


class MapsFeed:
    """Feed navigation over a Google Maps search results page."""

    def __init__(self, browser: Browser, config: ScraperConfig = None):
        self.browser = browser
        self.config = config or ScraperConfig()
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def open(self, query: str, location: str) -> None:
        """Navigate to the search and wait for the results feed."""
        self.close()
        url = search_url(query, location)
        try:
            self.context = self.browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                locale="en-US",
            )
            self.context.set_default_timeout(self.config.timeout_ms)
            self.page = self.context.new_page()
            self.page.goto(url, wait_until="domcontentloaded")
            logger.debug(f"Navigated to: {url}")

            self._handle_consent()

            feed = self._wait_for_feed()
            if not feed:
                self._save_debug_dump(f"no_feed_{query}_{location}")
                raise FeedUnavailableError(f"No results feed found for: {query} in {location}")

            time.sleep(self.config.results_settle_ms / 1000)
        except PlaywrightError as e:
            if self.page:
                self._save_debug_dump(f"open_error_{query}_{location}")
            raise FeedUnavailableError(f"Could not open Maps search: {e}") from e

    def close(self) -> None:
        if self.context:
            try:
                self.context.close()
            except PlaywrightError as e:
                logger.warning(f"Error during cleanup: {e}")
        self.context = None
        self.page = None

    def current_visible_entries(self) -> List[MapsEntry]:
        page = self._require_page()
        try:
            self._wait_while_loading()
            cards = _query_all_selectors(page, SELECTORS["business_cards"])
            entries = []
            for card in cards:
                name = _text_of(_first_selector(card, SELECTORS["card_name"]))
                if not name:
                    name = card.get_attribute("aria-label")
                if name:
                    entries.append(MapsEntry(page, card, name.strip(), self.config))
            return entries
        except PlaywrightError as e:
            raise FeedError(f"Could not read listing cards: {e}") from e

    def request_more(self) -> bool:
        """Scroll the feed, or move to the next page when there is no scrollable feed."""
        page = self._require_page()
        try:
            feed = _first_selector(page, SELECTORS["results_feed"])
            if feed:
                feed.evaluate("el => { el.scrollTop = el.scrollHeight; }")
                time.sleep(self.config.scroll_pause_ms / 1000)
                return True

            button = _first_selector(page, SELECTORS["next_page"])
            if button and button.is_enabled():
                logger.info("Moving to next page")
                button.click()
                time.sleep(self.config.scroll_pause_ms / 1000)
                return True

            return False
        except PlaywrightError as e:
            raise FeedError(f"Could not load more results: {e}") from e

    def has_reached_end(self) -> bool:
        page = self._require_page()
        try:
            marker = _first_selector(page, SELECTORS["end_of_list"])
            if marker and marker.is_visible():
                return True
            button = _first_selector(page, SELECTORS["next_page"])
            return bool(button and not button.is_enabled())
        except PlaywrightError as e:
            raise FeedError(f"Could not check for end of results: {e}") from e

    def _require_page(self) -> Page:
        if self.page is None:
            raise FeedError("Feed is not open; call open() first")
        return self.page

    def _handle_consent(self) -> None:
        """Dismiss Google's consent dialog if one is shown."""
        time.sleep(1)  # Brief wait for consent dialog to appear

        for selector in SELECTORS["consent_buttons"]:
            try:
                button = self.page.query_selector(selector)
                if button and button.is_visible():
                    button.click()
                    logger.info(f"Clicked consent button: {selector}")
                    time.sleep(1)
                    return
            except PlaywrightError:
                continue

    def _wait_for_feed(self) -> Optional[ElementHandle]:
        for selector in SELECTORS["results_feed"]:
            try:
                element = self.page.wait_for_selector(
                    selector, timeout=self.config.timeout_ms, state="visible"
                )
                if element:
                    return element
            except PlaywrightTimeout:
                continue
        return None

    def _wait_while_loading(self) -> None:
        for _ in range(self.config.max_loading_waits):
            spinner = _first_selector(self.page, SELECTORS["loading_indicator"])
            if not spinner:
                return
            time.sleep(self.config.loading_wait_ms / 1000)

    def _save_debug_dump(self, context: str) -> None:
        """Save screenshot and HTML for debugging failures."""
        if not (self.config.screenshot_on_failure or self.config.html_dump_on_failure):
            return

        DEBUG_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        safe_context = re.sub(r'[^\w\-]', '_', context)[:50]

        try:
            if self.config.screenshot_on_failure:
                screenshot_path = DEBUG_DIR / f"{timestamp}_{safe_context}.png"
                self.page.screenshot(path=str(screenshot_path), full_page=True)
                logger.debug(f"Saved screenshot: {screenshot_path}")

            if self.config.html_dump_on_failure:
                html_path = DEBUG_DIR / f"{timestamp}_{safe_context}.html"
                html_path.write_text(self.page.content(), encoding="utf-8")
                logger.debug(f"Saved HTML: {html_path}")
        except (PlaywrightError, OSError) as e:
            logger.warning(f"Failed to save debug dump: {e}")
