"""
Website evaluator for leadgrader.

Loads a candidate website, runs the probe battery and reduces the findings
to a score. An evaluation ends in one of three ways:

- unreachable: navigation failed, fixed low score and a single diagnostic
- reachable with an HTTP error: score floor of 15, probes still run
- reachable: full battery from a ceiling of 100
"""

from datetime import datetime
from typing import Optional

from .config import EvaluatorConfig
from .logging_setup import get_logger
from .page_loader import PageLoadError
from .probes import run_probes
from .scoring import (
    EvaluationResult,
    Finding,
    SCORE_CEILING,
    clamp_score,
    reduce_findings,
    seo_sub_score,
)

logger = get_logger("evaluator")

UNREACHABLE_MESSAGES = {
    PageLoadError.CERTIFICATE: (
        "Website completely inaccessible - SSL certificate error prevents access"
    ),
    PageLoadError.TIMEOUT: (
        "Website completely inaccessible - server not responding or domain issues"
    ),
    PageLoadError.UNREACHABLE: (
        "Website completely inaccessible - server not responding or domain issues"
    ),
}


def normalize_url(url: str) -> str:
    """Ensure URL has a scheme."""
    if not url:
        return url
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def _unreachable_result(url: str, error: PageLoadError, config: EvaluatorConfig) -> EvaluationResult:
    message = UNREACHABLE_MESSAGES.get(error.kind, UNREACHABLE_MESSAGES[PageLoadError.UNREACHABLE])
    score, issues = reduce_findings(
        [Finding(code=f"load_{error.kind}", penalty=0, message=message)],
        base=config.unreachable_score,
    )
    return EvaluationResult(
        url=url,
        score=score,
        issues=issues,
        error=f"{error.kind}: {error}",
    )


def evaluate_website(
    url: str,
    loader,
    config: EvaluatorConfig = None,
    now: datetime = None,
) -> EvaluationResult:
    """
    Evaluate a website and return a score with issues.

    Higher score = better site. Scores at or below the discovery quality
    threshold mark the business as a prospect.

    Args:
        url: Website URL, scheme optional
        loader: Page loader exposing load(url, timeout_ms) as a context manager
        config: Evaluator thresholds and weights
        now: Clock override for certificate and copyright checks
    """
    config = config or EvaluatorConfig()

    if not url:
        return EvaluationResult(url=url, score=0, issues=["No website URL provided"])

    url = normalize_url(url)
    base = SCORE_CEILING
    outcome = None

    try:
        with loader.load(url, config.page_timeout_ms) as page:
            outcome = page.outcome
            if outcome.status is not None and outcome.status >= config.http_error_status:
                base = config.http_error_score

            snapshot = page.inspect()
            screenshot = page.capture("hero") if config.capture_screenshots else None

        findings = run_probes(snapshot, config, now=now)
        score, issues = reduce_findings(
            findings,
            base=base,
            seo_cap=config.seo_penalty_cap,
            seo_divisor=config.seo_damping_divisor,
        )

    except PageLoadError as e:
        logger.info(f"Unreachable: {url} ({e.kind})")
        return _unreachable_result(url, e, config)

    except Exception as e:
        logger.error(f"Error evaluating website {url}: {e}")
        return EvaluationResult(
            url=url,
            score=clamp_score(base - config.evaluation_error_penalty),
            issues=[f"Error evaluating website: {e}"],
            http_status=outcome.status if outcome else None,
            final_url=outcome.final_url if outcome else None,
            load_time_ms=outcome.load_time_ms if outcome else None,
            error=str(e),
        )

    logger.debug(f"Evaluated {url}: {score}/100 with {len(issues)} issues")
    return EvaluationResult(
        url=url,
        score=score,
        issues=issues,
        http_status=outcome.status,
        final_url=outcome.final_url,
        load_time_ms=outcome.load_time_ms,
        seo_score=seo_sub_score(findings),
        screenshot=screenshot,
    )


def evaluate_with_isolation(
    url: str,
    loader,
    config: EvaluatorConfig = None,
    now: Optional[datetime] = None,
) -> EvaluationResult:
    """
    Evaluate website with full error isolation.
    Never raises exceptions to caller.
    """
    try:
        return evaluate_website(url, loader, config, now=now)
    except Exception as e:
        logger.error(f"Unexpected error evaluating {url}: {e}")
        config = config or EvaluatorConfig()
        return EvaluationResult(
            url=url,
            score=config.unreachable_score,
            issues=[f"Error evaluating website: {e}"],
            error=str(e),
        )
