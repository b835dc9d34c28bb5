"""
Page loading for website evaluation.

Each evaluated site gets its own short-lived browser context, closed as soon
as the evaluation is done so a long discovery session does not accumulate
pages.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from playwright.sync_api import (
    Browser,
    Page,
    Response,
    TimeoutError as PlaywrightTimeout,
    Error as PlaywrightError,
)

from .config import EvaluatorConfig
from .logging_setup import get_logger

logger = get_logger("page_loader")

CERTIFICATE_ERROR_MARKERS = ("err_cert", "ssl", "certificate")

MOBILE_MEDIA_SCRIPT = """
() => window.matchMedia('(max-width: 768px)').matches ||
      document.querySelector('meta[name="viewport"]') !== null
"""

LOAD_TIME_SCRIPT = """
() => {
    const t = window.performance.timing;
    return t.loadEventEnd - t.navigationStart;
}
"""

BODY_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"

FITS_VIEWPORT_SCRIPT = """
() => !document.body || document.body.scrollWidth <= window.innerWidth
"""

# Counts <img> elements that have no usable source, never finished loading,
# or rendered with zero natural size. SVGs, data: URIs and 1px tracking
# pixels are left out.
BROKEN_IMAGES_SCRIPT = """
() => {
    let broken = 0;
    for (const img of Array.from(document.querySelectorAll('img'))) {
        const src = img.getAttribute('src');
        if (!src) {
            broken++;
            continue;
        }
        if (src.toLowerCase().endsWith('.svg') || src.startsWith('data:')) {
            continue;
        }
        if (img.width <= 1 || img.height <= 1) {
            continue;
        }
        if (!img.complete) {
            broken++;
            continue;
        }
        if (img.naturalWidth === 0 || img.naturalHeight === 0) {
            broken++;
        }
    }
    return broken;
}
"""


class PageLoadError(Exception):
    """Navigation to a site failed outright."""

    CERTIFICATE = "certificate"
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"

    def __init__(self, message: str, kind: str = UNREACHABLE):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class SecurityInfo:
    """TLS certificate details of the main document response."""
    valid_from: Optional[float]
    valid_to: Optional[float]
    issuer: Optional[str] = None
    protocol: Optional[str] = None


@dataclass(frozen=True)
class LoadOutcome:
    """What navigation to a site produced."""
    status: Optional[int]
    final_url: str
    security: Optional[SecurityInfo]
    load_time_ms: Optional[int] = None


@dataclass(frozen=True)
class PageSnapshot:
    """Everything the probe battery inspects about one loaded page."""
    outcome: LoadOutcome
    html: str
    body_text: str = ""
    matches_mobile_media: bool = True
    fits_narrow_viewport: bool = True
    broken_images: int = 0


def classify_load_error(error: Exception) -> str:
    """Map a navigation exception to a PageLoadError kind."""
    if isinstance(error, PlaywrightTimeout):
        return PageLoadError.TIMEOUT
    message = str(error).lower()
    if any(marker in message for marker in CERTIFICATE_ERROR_MARKERS):
        return PageLoadError.CERTIFICATE
    return PageLoadError.UNREACHABLE


def _security_from_response(response: Response) -> Optional[SecurityInfo]:
    try:
        details = response.security_details()
    except PlaywrightError:
        return None
    if not details:
        return None
    return SecurityInfo(
        valid_from=details.get("validFrom"),
        valid_to=details.get("validTo"),
        issuer=details.get("issuer"),
        protocol=details.get("protocol"),
    )


class LoadedPage:
    """A site that navigated successfully, open for inspection."""

    def __init__(self, page: Page, outcome: LoadOutcome, config: EvaluatorConfig):
        self.page = page
        self.outcome = outcome
        self.config = config

    def inspect(self) -> PageSnapshot:
        """Collect the snapshot the probes run against."""
        matches_mobile_media = bool(self.page.evaluate(MOBILE_MEDIA_SCRIPT))
        fits_narrow_viewport = self._check_narrow_viewport()
        html = self.page.content()
        body_text = self.page.evaluate(BODY_TEXT_SCRIPT) or ""

        # Give lazy images a moment before judging them
        time.sleep(self.config.image_settle_ms / 1000)
        broken_images = int(self.page.evaluate(BROKEN_IMAGES_SCRIPT) or 0)

        return PageSnapshot(
            outcome=self.outcome,
            html=html,
            body_text=body_text,
            matches_mobile_media=matches_mobile_media,
            fits_narrow_viewport=fits_narrow_viewport,
            broken_images=broken_images,
        )

    def _check_narrow_viewport(self) -> bool:
        self.page.set_viewport_size({
            "width": self.config.narrow_width,
            "height": self.config.narrow_height,
        })
        try:
            time.sleep(self.config.responsive_settle_ms / 1000)
            return bool(self.page.evaluate(FITS_VIEWPORT_SCRIPT))
        finally:
            self.page.set_viewport_size({
                "width": self.config.desktop_width,
                "height": self.config.desktop_height,
            })

    def capture(self, kind: str = "hero") -> Optional[bytes]:
        """JPEG screenshot: 'hero' clips the first desktop screen, 'full' takes the whole page."""
        try:
            if kind == "full":
                return self.page.screenshot(type="jpeg", quality=80, full_page=True)
            return self.page.screenshot(
                type="jpeg",
                quality=80,
                clip={
                    "x": 0,
                    "y": 0,
                    "width": self.config.desktop_width,
                    "height": self.config.desktop_height,
                },
            )
        except PlaywrightError as e:
            logger.warning(f"Screenshot failed for {self.outcome.final_url}: {e}")
            return None


class PlaywrightPageLoader:
    """Loads candidate websites in isolated browser contexts."""

    def __init__(self, browser: Browser, config: EvaluatorConfig = None, user_agent: str = None):
        self.browser = browser
        self.config = config or EvaluatorConfig()
        self.user_agent = user_agent

    @contextmanager
    def load(self, url: str, timeout_ms: int = None) -> Iterator[LoadedPage]:
        """
        Navigate to url and yield the loaded page.
        Raises PageLoadError when navigation itself fails.
        """
        timeout_ms = timeout_ms or self.config.page_timeout_ms
        context = self.browser.new_context(
            user_agent=self.user_agent,
            viewport={
                "width": self.config.desktop_width,
                "height": self.config.desktop_height,
            },
            ignore_https_errors=self.config.ignore_https_errors,
        )
        try:
            context.set_default_timeout(timeout_ms)
            page = context.new_page()
            outcome = self._navigate(page, url, timeout_ms)
            yield LoadedPage(page, outcome, self.config)
        finally:
            try:
                context.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing context for {url}: {e}")

    def _navigate(self, page: Page, url: str, timeout_ms: int) -> LoadOutcome:
        start = time.time()
        try:
            response = page.goto(url, wait_until=self.config.wait_until, timeout=timeout_ms)
        except PlaywrightError as e:
            raise PageLoadError(str(e), classify_load_error(e)) from e

        if response is None:
            raise PageLoadError(f"No response from {url}", PageLoadError.UNREACHABLE)

        wall_ms = int((time.time() - start) * 1000)
        try:
            load_time_ms = int(page.evaluate(LOAD_TIME_SCRIPT) or 0)
        except PlaywrightError:
            load_time_ms = 0
        if load_time_ms <= 0:
            load_time_ms = wall_ms

        return LoadOutcome(
            status=response.status,
            final_url=page.url or response.url,
            security=_security_from_response(response),
            load_time_ms=load_time_ms,
        )
