"""
Probe battery for website evaluation.

Each probe inspects one loaded page and returns zero or more findings.
Probes are independent and stateless; run_probes() executes them in a
fixed order, which is also the order issues are reported in.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from bs4 import BeautifulSoup

from .config import EvaluatorConfig
from .page_loader import PageSnapshot
from .scoring import Finding, SEO_GROUP

SOCIAL_DOMAINS = [
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "linkedin.com",
]

PHONE_PATTERNS = [
    re.compile(r"(\+\d{1,2}\s)?\(?\d{3}\)?[\s.-]\d{3}[\s.-]\d{4}"),
    re.compile(r"\d{3}-\d{3}-\d{4}"),
]

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

FOOTER_SELECTOR = ".footer, footer, .copyright, [class*=copyright]"

MIXED_CONTENT_SELECTOR = 'img[src^="http:"], script[src^="http:"], link[href^="http:"]'

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class ProbeContext:
    """A snapshot plus its parsed document and the evaluation clock."""
    snapshot: PageSnapshot
    soup: BeautifulSoup
    now: datetime


Probe = Callable[[ProbeContext, EvaluatorConfig], List[Finding]]


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    return content or None


def days_until_expiry(valid_to: float, now: datetime) -> int:
    """Whole days from now until valid_to (epoch seconds), floored."""
    return math.floor((valid_to - now.timestamp()) / SECONDS_PER_DAY)


def check_http_status(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    status = ctx.snapshot.outcome.status
    if status is None or status < config.http_error_status:
        return []
    # The score floor for erroring sites is applied by the evaluator
    return [Finding(
        code="http_error",
        penalty=0,
        message=f"Website returns error {status} - server configuration problems preventing access",
    )]


def check_mobile_viewport(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    if ctx.snapshot.matches_mobile_media:
        return []
    return [Finding(
        code="not_mobile",
        penalty=config.weight_not_mobile,
        message="Mobile users cannot properly view your website - losing 60% of potential customers",
    )]


def check_load_time(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    load_time_ms = ctx.snapshot.outcome.load_time_ms
    if load_time_ms is None or load_time_ms <= config.slow_load_ms_threshold:
        return []
    return [Finding(
        code="slow_load",
        penalty=config.weight_slow_load,
        message=(
            f"Website loads too slowly ({load_time_ms / 1000:.2f}s) - "
            f"visitors leave after {config.slow_load_ms_threshold / 1000:g} seconds"
        ),
    )]


def check_transport_security(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    outcome = ctx.snapshot.outcome
    security = outcome.security

    if security is None or not (outcome.final_url or "").startswith("https://"):
        return [Finding(
            code="insecure",
            penalty=config.weight_insecure,
            message="Website lacks security certificate - Google penalizes unsecure sites in search rankings",
        )]

    if security.valid_to is None:
        return []

    days = days_until_expiry(security.valid_to, ctx.now)
    if days < 0:
        return [Finding(
            code="cert_expired",
            penalty=config.weight_cert_expired,
            message=f"Security certificate expired {abs(days)} days ago - major security risk",
        )]
    if days < config.cert_expiry_warning_days:
        return [Finding(
            code="cert_expiring",
            penalty=config.weight_cert_expiring,
            message=f"Security certificate expires in {days} days - needs immediate renewal",
        )]
    return []


def check_mixed_content(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    if not ctx.soup.select(MIXED_CONTENT_SELECTOR):
        return []
    return [Finding(
        code="mixed_content",
        penalty=config.weight_mixed_content,
        message="Website has security vulnerabilities that browsers warn users about",
    )]


def check_responsive_layout(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    if ctx.snapshot.fits_narrow_viewport:
        return []
    return [Finding(
        code="not_responsive",
        penalty=config.weight_not_responsive,
        message="Website breaks on mobile devices - 70% of users will immediately leave",
    )]


def check_seo(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    """On-page SEO signals. All findings carry the SEO group so the scorer can damp them."""
    soup = ctx.soup
    findings: List[Finding] = []

    def add(code: str, penalty: int, message: str):
        findings.append(Finding(code=code, penalty=penalty, message=message, group=SEO_GROUP))

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag else ""
    if not title:
        add("title_missing", config.weight_title_missing,
            "Missing page title - invisible to Google search results")
    elif len(title) < config.title_min_length:
        add("title_short", config.weight_title_short,
            f"Page title too short ({len(title)} chars) - poor Google search visibility")
    elif len(title) > config.title_max_length:
        add("title_long", config.weight_title_long,
            f"Page title too long ({len(title)} chars) - gets cut off in Google search")

    description = _meta_content(soup, name=re.compile(r"^description$", re.I))
    if not description:
        add("description_missing", config.weight_description_missing,
            "Missing meta description - no preview text in Google search results")
    elif len(description) < config.description_min_length:
        add("description_short", config.weight_description_short,
            f"Meta description too short ({len(description)} chars) - wasted Google search space")
    elif len(description) > config.description_max_length:
        add("description_long", config.weight_description_long,
            f"Meta description too long ({len(description)} chars) - gets cut off in Google")

    h1_count = len(soup.find_all("h1"))
    if h1_count == 0:
        add("h1_missing", config.weight_h1_missing,
            "No main heading (H1) - Google cannot understand page topic")
    elif h1_count > 1:
        add("h1_multiple", config.weight_h1_multiple,
            f"Multiple main headings ({h1_count}) confuse Google about page focus")

    if not soup.find("h2"):
        add("h2_missing", config.weight_h2_missing,
            "No section headings (H2) - poor content structure for Google")

    canonical = soup.find("link", rel="canonical")
    if canonical is None or not canonical.get("href"):
        add("canonical_missing", config.weight_canonical_missing,
            "Missing canonical URL - Google may penalize for duplicate content")

    robots = _meta_content(soup, name=re.compile(r"^robots$", re.I))
    if not robots:
        add("robots_missing", config.weight_robots_missing,
            "Missing robots directive - unclear Google indexing instructions")
    elif "noindex" in robots.lower() or "nofollow" in robots.lower():
        add("robots_blocking", config.weight_robots_blocking,
            f"Website blocked from Google search results: {robots}")

    if not soup.find_all("script", type="application/ld+json"):
        add("schema_missing", config.weight_schema_missing,
            "Missing business schema markup - reduced Google search features")

    og_values = [
        _meta_content(soup, property=prop)
        for prop in ("og:title", "og:description", "og:image")
    ]
    if not all(og_values):
        add("open_graph_missing", config.weight_open_graph_missing,
            "Poor social media sharing - no preview images or text on Facebook/LinkedIn")

    if not _meta_content(soup, name=re.compile(r"^viewport$", re.I)):
        add("viewport_missing", config.weight_viewport_missing,
            "Missing mobile viewport - Google penalizes non-mobile-friendly sites")

    return findings


def check_image_alt_text(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    images = ctx.soup.find_all("img")
    if not images:
        return []
    missing = sum(1 for img in images if not img.get("alt"))
    if missing == 0:
        return []
    percentage = math.floor(missing * 100 / len(images) + 0.5)
    if percentage <= config.alt_text_threshold_percent:
        return []
    return [Finding(
        code="missing_alt",
        penalty=config.weight_missing_alt,
        message=f"{percentage}% of images lack descriptions - hurting Google image search rankings",
    )]


def check_social_links(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    for link in ctx.soup.find_all("a", href=True):
        href = link["href"].lower()
        if any(domain in href for domain in SOCIAL_DOMAINS):
            return []
    return [Finding(
        code="no_social",
        penalty=config.weight_no_social,
        message="No social media links - missing opportunities for customer engagement and referrals",
    )]


def has_phone_number(text: str) -> bool:
    return any(pattern.search(text) for pattern in PHONE_PATTERNS)


def has_email_address(text: str) -> bool:
    return bool(EMAIL_PATTERN.search(text))


def check_contact_channel(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    text = ctx.snapshot.body_text or ctx.soup.get_text(" ")
    if has_phone_number(text) or has_email_address(text) or ctx.soup.find("form"):
        return []
    return [Finding(
        code="no_contact",
        penalty=config.weight_no_contact,
        message="No clear contact method - potential customers cannot reach you easily",
    )]


def latest_footer_year(soup: BeautifulSoup) -> Optional[int]:
    """Highest 4-digit year mentioned in footer or copyright blocks."""
    text = " ".join(el.get_text(" ") for el in soup.select(FOOTER_SELECTOR))
    years = [int(year) for year in YEAR_PATTERN.findall(text)]
    return max(years) if years else None


def check_copyright_year(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    year = latest_footer_year(ctx.soup)
    if year is None or year >= ctx.now.year - 1:
        return []
    return [Finding(
        code="outdated_copyright",
        penalty=config.weight_outdated_copyright,
        message=f"Outdated copyright ({year}) makes business appear inactive or abandoned",
    )]


def check_broken_images(ctx: ProbeContext, config: EvaluatorConfig) -> List[Finding]:
    count = ctx.snapshot.broken_images
    if count <= 0:
        return []
    return [Finding(
        code="broken_images",
        penalty=min(config.broken_image_penalty_cap, count * config.broken_image_penalty),
        message=f"{count} broken images create unprofessional appearance and hurt credibility",
    )]


PROBES: List[Probe] = [
    check_http_status,
    check_mobile_viewport,
    check_load_time,
    check_transport_security,
    check_mixed_content,
    check_responsive_layout,
    check_seo,
    check_image_alt_text,
    check_social_links,
    check_contact_channel,
    check_copyright_year,
    check_broken_images,
]


def run_probes(
    snapshot: PageSnapshot,
    config: EvaluatorConfig = None,
    now: datetime = None,
) -> List[Finding]:
    """Run the full battery against one snapshot, in battery order."""
    config = config or EvaluatorConfig()
    ctx = ProbeContext(
        snapshot=snapshot,
        soup=BeautifulSoup(snapshot.html or "", "html.parser"),
        now=now or datetime.now(timezone.utc),
    )
    findings: List[Finding] = []
    for probe in PROBES:
        findings.extend(probe(ctx, config))
    return findings
