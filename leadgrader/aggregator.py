"""
Session aggregation for leadgrader.
Receives low-score batches from discovery, writes their report pages, and
exports the session CSVs once discovery finishes.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .config import OUTPUT_DIR
from .discovery import DiscoveredBusiness, DiscoveryOutcome
from .export import NO_WEBSITE_FIELDS, PROSPECT_FIELDS, business_row, generate_csv
from .logging_setup import get_logger
from .report import generate_report_page

logger = get_logger("aggregator")


def _safe_label(label: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in label).strip("_")[:60] or "session"


class SessionAggregator:
    """Collects the results of one discovery session and writes its outputs."""

    def __init__(self, output_dir: Path = None, label: str = "session", write_reports: bool = True):
        self.output_dir = output_dir or OUTPUT_DIR
        self.label = _safe_label(label)
        self.write_reports = write_reports
        self.report_paths: Dict[str, str] = {}
        self.reported: List[DiscoveredBusiness] = []

    def report_batch(
        self,
        batch: List[DiscoveredBusiness],
        collected: List[DiscoveredBusiness],
    ) -> None:
        """Report sink for discover_businesses()."""
        self.reported.extend(batch)
        if not self.write_reports:
            return
        for business in batch:
            path = generate_report_page(
                business,
                collected,
                output_dir=self.output_dir / "reports",
            )
            if path:
                self.report_paths[business.listing.name] = str(path)

    def finalize(self, outcome: DiscoveryOutcome) -> Dict[str, Optional[Path]]:
        """Write the prospect and no-website CSVs. Returns their paths."""
        stamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        paths: Dict[str, Optional[Path]] = {"prospects": None, "no_website": None}

        evaluated = [b for b in outcome.businesses if b.evaluation is not None]
        evaluated.sort(key=lambda b: b.evaluation.score)
        if evaluated:
            rows = [
                business_row(b, self.report_paths.get(b.listing.name))
                for b in evaluated
            ]
            _, paths["prospects"] = generate_csv(
                rows,
                output_path=self.output_dir / f"{self.label}_prospects_{stamp}.csv",
                fieldnames=PROSPECT_FIELDS,
            )

        no_website = [b for b in outcome.businesses if not b.listing.website_url]
        if no_website:
            _, paths["no_website"] = generate_csv(
                [business_row(b) for b in no_website],
                output_path=self.output_dir / f"{self.label}_no_website_{stamp}.csv",
                fieldnames=NO_WEBSITE_FIELDS,
            )

        logger.info(
            f"Session {self.label}: {len(evaluated)} evaluated, "
            f"{len(no_website)} without website, {len(self.report_paths)} reports"
        )
        return paths
