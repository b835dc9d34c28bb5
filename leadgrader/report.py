"""
Report page generator for leadgrader.
Renders one HTML page per low-scoring business using Jinja2 templates.
"""

import base64
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from .config import OUTPUT_DIR, TEMPLATES_DIR
from .discovery import DiscoveredBusiness
from .logging_setup import get_logger

logger = get_logger("report")

REPORTS_DIR = OUTPUT_DIR / "reports"
REPORT_TEMPLATE = "business_report.html"


def screenshot_data_url(screenshot: Optional[bytes]) -> Optional[str]:
    if not screenshot:
        return None
    return f"data:image/jpeg;base64,{base64.b64encode(screenshot).decode('ascii')}"


def score_band(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 50:
        return "medium"
    return "low"


def top_competitors(
    business: DiscoveredBusiness,
    collected: List[DiscoveredBusiness],
    limit: int = 3,
) -> List[Dict]:
    """Highest scoring other businesses of the same run."""
    others = [
        other for other in collected
        if other.evaluation is not None
        and other.listing.name != business.listing.name
    ]
    others.sort(key=lambda other: other.evaluation.score, reverse=True)
    return [
        {
            "name": other.listing.name,
            "url": other.listing.website_url,
            "score": other.evaluation.score,
            "hero_data_url": screenshot_data_url(other.evaluation.screenshot),
        }
        for other in others[:limit]
    ]


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")[:60] or "business"


def generate_report_html(
    business: DiscoveredBusiness,
    competitors: List[Dict],
    templates_dir: Path = TEMPLATES_DIR,
) -> Optional[str]:
    """
    Render the report page for one evaluated business.

    Returns rendered HTML string, or None on error.
    """
    evaluation = business.evaluation
    if evaluation is None:
        return None

    try:
        env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        template = env.get_template(REPORT_TEMPLATE)

        listing = business.listing
        return template.render(
            business_name=listing.name,
            website=listing.website_url,
            address=listing.address,
            phone=listing.phone_number,
            rating=listing.rating,
            category=listing.category,
            location=listing.location,
            score=evaluation.score,
            score_band=score_band(evaluation.score),
            seo_score=evaluation.seo_score,
            issues=evaluation.issues,
            hero_data_url=screenshot_data_url(evaluation.screenshot),
            competitors=competitors,
            generated_date=datetime.now().strftime("%B %d, %Y"),
        )

    except TemplateNotFound as e:
        logger.error(f"Template not found: {e}")
        return None


def generate_report_page(
    business: DiscoveredBusiness,
    collected: List[DiscoveredBusiness],
    output_dir: Path = None,
    templates_dir: Path = TEMPLATES_DIR,
) -> Optional[Path]:
    """
    Generate the report file for one business and return its path.

    Returns None on error.
    """
    output_dir = output_dir or REPORTS_DIR
    try:
        html = generate_report_html(
            business,
            top_competitors(business, collected),
            templates_dir=templates_dir,
        )
        if not html:
            return None

        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        file_path = output_dir / f"{_slug(business.listing.name)}_{timestamp}.html"
        file_path.write_text(html, encoding="utf-8")
        logger.info(f"Report generated for {business.listing.name}: {file_path}")
        return file_path

    except Exception as e:
        logger.error(
            f"Error generating report for {business.listing.name}: {e}",
            exc_info=True,
        )
        return None
