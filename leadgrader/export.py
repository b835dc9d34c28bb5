"""
CSV export for leadgrader.
Writes prospect and no-website lists for a discovery session.
"""

import csv
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import OUTPUT_DIR
from .discovery import DiscoveredBusiness
from .logging_setup import get_logger

logger = get_logger("export")

PROSPECT_FIELDS = [
    "name",
    "phone_number",
    "address",
    "rating",
    "website_url",
    "website_score",
    "seo_score",
    "issues",
    "report_path",
    "category",
    "location",
]

NO_WEBSITE_FIELDS = [
    "name",
    "phone_number",
    "address",
    "rating",
    "category",
    "location",
]


def _sanitize_csv_value(value: Any) -> Any:
    """Prefix risky spreadsheet formulas with a single quote.

    >>> _sanitize_csv_value("=HYPERLINK('https://example.com')")
    "'=HYPERLINK('https://example.com')"
    >>> _sanitize_csv_value("@sum(A1:A2)")
    "'@sum(A1:A2)"
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str) and value.startswith(("=", "+", "-", "@")):
        return f"'{value}"
    return value


def business_row(business: DiscoveredBusiness, report_path: Optional[str] = None) -> Dict[str, Any]:
    """Flatten a discovered business into a CSV row."""
    listing = business.listing
    evaluation = business.evaluation
    if evaluation is not None:
        score = evaluation.score
        issues = "; ".join(evaluation.issues)
    elif business.site_already_evaluated:
        score = "N/A"
        issues = "Website already evaluated for another listing"
    else:
        score = "N/A"
        issues = ""
    return {
        "name": listing.name,
        "phone_number": listing.phone_number,
        "address": listing.address,
        "rating": listing.rating,
        "website_url": listing.website_url,
        "website_score": score,
        "seo_score": evaluation.seo_score if evaluation is not None else None,
        "issues": issues,
        "report_path": report_path,
        "category": listing.category,
        "location": listing.location,
    }


def generate_csv(
    rows: List[Dict[str, Any]],
    output_path: Path = None,
    fieldnames: List[str] = None,
) -> tuple[str, Path]:
    """
    Generate CSV content from rows.
    Returns (csv_content, file_path).
    """
    fieldnames = fieldnames or PROSPECT_FIELDS

    if output_path is None:
        date_str = datetime.utcnow().strftime("%Y-%m-%d")
        output_path = OUTPUT_DIR / f"businesses_{date_str}.csv"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    buffer = StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({name: _sanitize_csv_value(row.get(name)) for name in fieldnames})

    csv_content = buffer.getvalue()
    output_path.write_text(csv_content, encoding="utf-8")
    logger.info(f"Generated CSV with {len(rows)} rows: {output_path}")

    return csv_content, output_path
