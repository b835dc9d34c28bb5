"""
Website scoring for leadgrader.
Reduces probe findings into a bounded quality score and an issue list.

Scoring philosophy:
- Every site starts at 100 (or a fixed floor when it errors out)
- Each probe finding subtracts its penalty once
- SEO findings are pooled into a sub-score and folded in with a capped,
  damped contribution so that SEO alone cannot dominate the score
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

SCORE_CEILING = 100
SCORE_FLOOR = 0

SEO_GROUP = "seo"

# SEO deficit is folded in as min(SEO_PENALTY_CAP, deficit / SEO_DAMPING_DIVISOR)
SEO_PENALTY_CAP = 20
SEO_DAMPING_DIVISOR = 4


@dataclass(frozen=True)
class Finding:
    """One penalty-bearing observation produced by a probe."""
    code: str
    penalty: float
    message: str
    group: Optional[str] = None


@dataclass(frozen=True)
class EvaluationResult:
    """Result of website evaluation."""
    url: str
    score: int
    issues: List[str]
    http_status: Optional[int] = None
    final_url: Optional[str] = None
    load_time_ms: Optional[int] = None
    error: Optional[str] = None
    seo_score: Optional[int] = None
    screenshot: Optional[bytes] = field(default=None, repr=False, compare=False)


def clamp_score(score: float) -> int:
    """Round half up and clamp into [SCORE_FLOOR, SCORE_CEILING]."""
    rounded = int(math.floor(score + 0.5))
    return max(SCORE_FLOOR, min(SCORE_CEILING, rounded))


def seo_contribution(
    deficit: float,
    cap: float = SEO_PENALTY_CAP,
    divisor: float = SEO_DAMPING_DIVISOR,
) -> float:
    """Points the SEO sub-score takes off the overall score."""
    if deficit <= 0:
        return 0.0
    return min(cap, deficit / divisor)


def reduce_findings(
    findings: Iterable[Finding],
    base: float = SCORE_CEILING,
    seo_cap: float = SEO_PENALTY_CAP,
    seo_divisor: float = SEO_DAMPING_DIVISOR,
) -> Tuple[int, List[str]]:
    """
    Reduce findings into (score, issues).

    Issues keep the order findings were produced in and are not
    deduplicated. A penalty is applied at most once per finding code.
    """
    score = float(base)
    issues: List[str] = []
    applied = set()
    seo_deficit = 0.0

    for finding in findings:
        issues.append(finding.message)
        if finding.code in applied:
            continue
        applied.add(finding.code)

        if finding.group == SEO_GROUP:
            seo_deficit += finding.penalty
        else:
            score -= finding.penalty

    score -= seo_contribution(seo_deficit, seo_cap, seo_divisor)
    return clamp_score(score), issues


def seo_sub_score(findings: Iterable[Finding]) -> int:
    """SEO sub-score on its own 0-100 scale, shown on report pages and in the CSV."""
    deficit = 0.0
    applied = set()
    for finding in findings:
        if finding.group != SEO_GROUP or finding.code in applied:
            continue
        applied.add(finding.code)
        deficit += finding.penalty
    return clamp_score(SCORE_CEILING - deficit)
