"""
Shared Chromium session for discovery and evaluation.
"""

from contextlib import contextmanager
from typing import Iterator

from playwright.sync_api import Browser, sync_playwright

from .config import ScraperConfig
from .logging_setup import get_logger

logger = get_logger("browser")

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


@contextmanager
def open_browser(config: ScraperConfig = None) -> Iterator[Browser]:
    """Launch Chromium for the duration of the block."""
    config = config or ScraperConfig()
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=config.headless, args=LAUNCH_ARGS)
        logger.debug(f"Launched Chromium (headless={config.headless})")
        try:
            yield browser
        finally:
            browser.close()
