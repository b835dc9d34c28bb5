"""
Configuration management for leadgrader.
Loads from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
LOG_DIR = PROJECT_ROOT / "logs"
OUTPUT_DIR = PROJECT_ROOT / "output"
DEBUG_DIR = PROJECT_ROOT / "debug"
TEMPLATES_DIR = PROJECT_ROOT / "templates"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class ScraperConfig:
    """Playwright Maps feed configuration."""
    headless: bool = field(default_factory=lambda: _env_bool("LEADGRADER_HEADLESS", True))
    timeout_ms: int = 60000
    results_settle_ms: int = 5000
    scroll_pause_ms: int = 3000
    detail_pause_ms: int = 3000
    dismiss_pause_ms: int = 1000
    loading_wait_ms: int = 2000
    max_loading_waits: int = 5
    viewport_width: int = 1366
    viewport_height: int = 768
    screenshot_on_failure: bool = True
    html_dump_on_failure: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class DiscoveryConfig:
    """Listing discovery limits and termination policy."""
    max_items: int = field(default_factory=lambda: _env_int("LEADGRADER_MAX_ITEMS", 100))
    quality_threshold: int = field(
        default_factory=lambda: _env_int("LEADGRADER_QUALITY_THRESHOLD", 70)
    )
    no_progress_limit: int = 5  # Consecutive sweeps without a new name
    report_batch_size: int = 20


@dataclass
class EvaluatorConfig:
    """Website evaluation thresholds and weights."""
    page_timeout_ms: int = 30000
    wait_until: str = "load"
    # False: Chromium refuses invalid certificates, so an expired one ends in
    # the unreachable path (score 10). True lets such pages load and reach
    # the expired/expiring certificate findings instead.
    ignore_https_errors: bool = False
    desktop_width: int = 1366
    desktop_height: int = 768
    narrow_width: int = 375
    narrow_height: int = 667
    responsive_settle_ms: int = 1000
    image_settle_ms: int = 2000
    capture_screenshots: bool = True

    # Fixed scores (short-circuit and reachable-with-error paths)
    unreachable_score: int = 10
    http_error_score: int = 15
    http_error_status: int = 400
    evaluation_error_penalty: int = 30

    # Performance, security, mobile
    slow_load_ms_threshold: int = 3000
    cert_expiry_warning_days: int = 30
    weight_not_mobile: int = 15
    weight_slow_load: int = 10
    weight_insecure: int = 15
    weight_cert_expired: int = 15
    weight_cert_expiring: int = 5
    weight_mixed_content: int = 5
    weight_not_responsive: int = 15

    # SEO sub-score (folded in as min(seo_penalty_cap, deficit / seo_damping_divisor))
    seo_penalty_cap: int = 20
    seo_damping_divisor: int = 4
    title_min_length: int = 10
    title_max_length: int = 60
    description_min_length: int = 50
    description_max_length: int = 160
    weight_title_missing: int = 10
    weight_title_short: int = 5
    weight_title_long: int = 3
    weight_description_missing: int = 8
    weight_description_short: int = 4
    weight_description_long: int = 3
    weight_h1_missing: int = 8
    weight_h1_multiple: int = 5
    weight_h2_missing: int = 3
    weight_canonical_missing: int = 3
    weight_robots_missing: int = 2
    weight_robots_blocking: int = 10
    weight_schema_missing: int = 5
    weight_open_graph_missing: int = 3
    weight_viewport_missing: int = 5

    # Content signals
    alt_text_threshold_percent: int = 30
    weight_missing_alt: int = 5
    weight_no_social: int = 5
    weight_no_contact: int = 10
    weight_outdated_copyright: int = 5
    broken_image_penalty: int = 3
    broken_image_penalty_cap: int = 15


@dataclass
class RetryConfig:
    """Retry and backoff configuration."""
    max_retries: int = 3
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True


@dataclass
class Config:
    """Main configuration container."""
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    # Categories picked from by --random
    business_categories: List[str] = field(default_factory=lambda: [
        "restaurants",
        "plumbers",
        "lawyers",
        "dentists",
        "real estate agents",
        "home services",
        "construction companies",
        "accountants",
        "small wineries",
        "local bakeries",
    ])

    # Smaller cities, likelier to have businesses with dated websites
    target_locations: List[str] = field(default_factory=lambda: [
        "Greensboro, NC",
        "Greenville, SC",
        "Columbia, SC",
        "Charleston, SC",
        "Boise, ID",
        "McAllen, TX",
        "Fort Myers, FL",
        "Cedar City, UT",
        "St. George, UT",
        "Raleigh, NC",
        "Augusta, GA",
        "Astoria, NY",
        "Bayside, NY",
        "Flushing, NY",
        "Dunedin, FL",
        "Albuquerque, NM",
        "Las Cruces, NM",
    ])


def load_config() -> Config:
    """Load configuration from environment variables."""
    # Ensure directories exist
    for directory in [LOG_DIR, OUTPUT_DIR, DEBUG_DIR]:
        directory.mkdir(parents=True, exist_ok=True)

    return Config()


def validate_config(config: Config) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.discovery.max_items < 1:
        errors.append("max_items must be at least 1")
    if not 0 <= config.discovery.quality_threshold <= 100:
        errors.append("quality_threshold must be between 0 and 100")
    if config.discovery.no_progress_limit < 1:
        errors.append("no_progress_limit must be at least 1")
    if config.discovery.report_batch_size < 1:
        errors.append("report_batch_size must be at least 1")
    if config.evaluator.page_timeout_ms <= 0:
        errors.append("page_timeout_ms must be positive")
    if config.evaluator.seo_damping_divisor <= 0:
        errors.append("seo_damping_divisor must be positive")
    if config.retry.max_retries < 0:
        errors.append("max_retries cannot be negative")

    return errors
