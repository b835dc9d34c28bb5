"""
Shared pytest fixtures for leadgrader tests.
"""

from datetime import datetime, timezone

import pytest

from leadgrader.config import (
    DiscoveryConfig,
    EvaluatorConfig,
    RetryConfig,
)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation clock."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def evaluator_config() -> EvaluatorConfig:
    """Default evaluator configuration without screenshots."""
    return EvaluatorConfig(capture_screenshots=False)


@pytest.fixture
def discovery_config() -> DiscoveryConfig:
    """Discovery configuration independent of the environment."""
    return DiscoveryConfig(
        max_items=100,
        quality_threshold=70,
        no_progress_limit=5,
        report_batch_size=20,
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Retry configuration with no delays for tests."""
    return RetryConfig(
        max_retries=2,
        base_delay_seconds=0,
        max_delay_seconds=0,
        jitter=False,
    )


@pytest.fixture
def sample_html_modern() -> str:
    """A well-built small business homepage that every probe passes."""
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>Acme Plumbing | Trusted Boise Plumbers</title>
        <meta name="description" content="Acme Plumbing offers licensed emergency plumbing, drain cleaning and water heater repair across Boise.">
        <meta name="robots" content="index, follow">
        <link rel="canonical" href="https://acme-plumbing.example/">
        <meta property="og:title" content="Acme Plumbing">
        <meta property="og:description" content="Licensed plumbers in Boise">
        <meta property="og:image" content="https://acme-plumbing.example/og.jpg">
        <script type="application/ld+json">{"@type": "Plumber", "name": "Acme Plumbing"}</script>
    </head>
    <body>
        <h1>Acme Plumbing</h1>
        <h2>Our Services</h2>
        <img src="/van.jpg" alt="Acme service van">
        <p>Call us today at (208) 555-0142.</p>
        <a href="https://www.facebook.com/acmeplumbing">Facebook</a>
        <footer>
            <p>© 2024 Acme Plumbing. All Rights Reserved.</p>
        </footer>
    </body>
    </html>
    """


@pytest.fixture
def sample_html_bare() -> str:
    """A page with none of the SEO or content signals."""
    return "<html><body><p>Welcome</p></body></html>"


@pytest.fixture
def sample_html_outdated() -> str:
    """Older site with a stale footer and mostly undescribed images."""
    return """
    <html>
    <head><title>Joe's Plumbing</title></head>
    <body>
        <h1>Welcome to Joe's Plumbing</h1>
        <img src="/a.jpg">
        <img src="/b.jpg">
        <img src="/c.jpg" alt="Joe">
        <img src="http://cdn.example/d.jpg">
        <div class="copyright">Copyright 2018 Joe's Plumbing</div>
    </body>
    </html>
    """
