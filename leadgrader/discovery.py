"""
Listing discovery engine for leadgrader.

Sweeps the visible entries of a result feed, asks the feed for more, and
repeats until the item limit is hit, the feed signals its end, or several
sweeps in a row turn up nothing new. Each new business is opened, its
website evaluated, and low scorers are handed to the report sink in
batches.
"""

import urllib.parse
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple

from .config import DiscoveryConfig, RetryConfig
from .evaluator import normalize_url
from .logging_setup import get_logger, RunContext
from .maps_feed import ListingDetails, ScraperError
from .retry import retry_with_backoff
from .scoring import EvaluationResult

logger = get_logger("discovery")

STOP_MAX_ITEMS = "max_items"
STOP_END_OF_FEED = "end_of_feed"
STOP_NO_PROGRESS = "no_progress"
STOP_FEED_ERROR = "feed_error"


class DiscoveryStartupError(ScraperError):
    """The feed could not be reached at all when the run started."""
    pass


@dataclass(frozen=True)
class BusinessListing:
    """A business as found in the feed. Missing fields are None."""
    name: str
    address: Optional[str] = None
    phone_number: Optional[str] = None
    rating: Optional[str] = None
    website_url: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class DiscoveredBusiness:
    """A listing and, when its website was evaluated, the evaluation."""
    listing: BusinessListing
    evaluation: Optional[EvaluationResult] = None
    site_already_evaluated: bool = False


@dataclass
class DiscoverySessionState:
    """Mutable state of one discovery run. Never shared between runs."""
    seen_names: Set[str] = field(default_factory=set)
    seen_website_urls: Set[str] = field(default_factory=set)
    collected: List[DiscoveredBusiness] = field(default_factory=list)
    no_progress_count: int = 0
    pending_reports: List[DiscoveredBusiness] = field(default_factory=list)


@dataclass
class DiscoveryOutcome:
    """What a finished run hands back to its caller."""
    businesses: List[DiscoveredBusiness]
    stop_reason: str
    iterations: int


ReportSink = Callable[[List[DiscoveredBusiness], List[DiscoveredBusiness]], None]


def normalize_name(name: Optional[str]) -> str:
    """Dedup key for a display name: trimmed and case-folded."""
    return (name or "").strip().casefold()


def canonical_site_url(url: str) -> str:
    """Comparable form of a website URL for same-site detection."""
    parsed = urllib.parse.urlsplit(normalize_url(url))
    path = parsed.path.rstrip("/")
    return urllib.parse.urlunsplit((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.query,
        "",
    ))


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _flush_reports(state: DiscoverySessionState, report_sink: Optional[ReportSink]) -> None:
    """Hand buffered low scorers to the sink. Sink failures are logged, not raised."""
    if not state.pending_reports:
        return
    batch = list(state.pending_reports)
    state.pending_reports.clear()
    if report_sink is None:
        return
    try:
        report_sink(batch, list(state.collected))
        logger.info(f"Handed {len(batch)} low-scoring businesses to reports")
    except Exception as e:
        logger.error(f"Report sink failed for batch of {len(batch)}: {e}")


def _process_entry(
    entry,
    state: DiscoverySessionState,
    evaluate: Callable[[str], EvaluationResult],
    query: str,
    location: str,
    run_ctx: Optional[RunContext],
) -> DiscoveredBusiness:
    """Open one feed entry, build its listing and evaluate its website."""
    name = entry.name.strip()
    try:
        details = entry.reveal() or ListingDetails()
    except Exception as e:
        logger.warning(f"Could not read details for {name}, keeping name only: {e}")
        if run_ctx:
            run_ctx.increment("errors")
        details = ListingDetails()

    if details.name and normalize_name(details.name) != normalize_name(name):
        # Detail panel still shows another business; its fields are not ours
        logger.warning(f"Detail panel shows '{details.name}' instead of '{name}', keeping name only")
        details = ListingDetails()

    listing = BusinessListing(
        name=name,
        address=_optional(details.address),
        phone_number=_optional(details.phone),
        rating=_optional(details.rating),
        website_url=_optional(details.website),
        category=query,
        location=location,
    )

    if not listing.website_url:
        logger.info(f"{name} - no website found")
        if run_ctx:
            run_ctx.increment("no_website")
        return DiscoveredBusiness(listing=listing)

    site_key = canonical_site_url(listing.website_url)
    if site_key in state.seen_website_urls:
        logger.info(f"{name} - website {listing.website_url} already evaluated, skipping")
        if run_ctx:
            run_ctx.increment("duplicate_websites")
        return DiscoveredBusiness(listing=listing, site_already_evaluated=True)

    state.seen_website_urls.add(site_key)
    evaluation = evaluate(listing.website_url)
    if evaluation.final_url:
        state.seen_website_urls.add(canonical_site_url(evaluation.final_url))
    if run_ctx:
        run_ctx.increment("websites_evaluated")

    logger.info(f"Evaluated: {name} | {listing.website_url} | Score: {evaluation.score}/100")
    return DiscoveredBusiness(listing=listing, evaluation=evaluation)


def _sweep(
    entries,
    state: DiscoverySessionState,
    evaluate: Callable[[str], EvaluationResult],
    query: str,
    location: str,
    max_items: int,
    quality_threshold: int,
    config: DiscoveryConfig,
    report_sink: Optional[ReportSink],
    run_ctx: Optional[RunContext],
) -> int:
    """Process every unseen entry. Returns how many new names were found."""
    new_names = 0

    for entry in entries:
        if len(state.collected) >= max_items:
            break

        key = normalize_name(entry.name)
        if not key or key in state.seen_names:
            continue

        state.seen_names.add(key)
        new_names += 1
        if run_ctx:
            run_ctx.increment("entries_seen")

        try:
            business = _process_entry(entry, state, evaluate, query, location, run_ctx)
        except Exception as e:
            logger.error(f"Error processing business {entry.name}: {e}")
            if run_ctx:
                run_ctx.increment("errors")
            continue
        finally:
            try:
                entry.dismiss()
            except Exception as e:
                logger.warning(f"Could not return to list after {entry.name}: {e}")

        state.collected.append(business)
        if run_ctx:
            run_ctx.increment("listings_collected")

        evaluation = business.evaluation
        if evaluation is not None and evaluation.score <= quality_threshold:
            state.pending_reports.append(business)
            if run_ctx:
                run_ctx.increment("low_score")
            if len(state.pending_reports) >= config.report_batch_size:
                _flush_reports(state, report_sink)

    return new_names


def discover_businesses(
    feed,
    evaluate: Callable[[str], EvaluationResult],
    query: str,
    location: str,
    max_items: int = None,
    quality_threshold: int = None,
    config: DiscoveryConfig = None,
    retry_config: RetryConfig = None,
    report_sink: Optional[ReportSink] = None,
    run_ctx: Optional[RunContext] = None,
) -> DiscoveryOutcome:
    """
    Discover businesses for a query/location and evaluate their websites.

    Args:
        feed: Feed navigation (open, current_visible_entries, request_more, has_reached_end)
        evaluate: Total website evaluator, url -> EvaluationResult
        query: Business category (e.g., "plumbers")
        location: Target location (e.g., "Boise, ID")
        max_items: Stop once this many businesses are collected
        quality_threshold: Scores at or below this are sent to the report sink
        config: Discovery configuration
        retry_config: Backoff for feed navigation calls
        report_sink: Receives (low-score batch, businesses collected so far)
        run_ctx: Optional run statistics

    Returns:
        DiscoveryOutcome with the collected businesses and the stop reason

    Raises:
        DiscoveryStartupError if the feed cannot be opened after retries
    """
    config = config or DiscoveryConfig()
    retry_config = retry_config or RetryConfig()
    max_items = config.max_items if max_items is None else max_items
    quality_threshold = config.quality_threshold if quality_threshold is None else quality_threshold
    label = f"{query} in {location}"

    def feed_call(func, name):
        return retry_with_backoff(
            func=func,
            config=retry_config,
            logger=logger,
            operation_name=name,
        )

    try:
        feed_call(lambda: feed.open(query, location), f"open_feed[{label}]")
    except Exception as e:
        raise DiscoveryStartupError(f"Could not open feed for {label}: {e}") from e

    logger.info(f"Discovering: {label} (max {max_items}, threshold {quality_threshold})")
    state = DiscoverySessionState()
    stop_reason = None
    iterations = 0

    try:
        while stop_reason is None:
            if len(state.collected) >= max_items:
                stop_reason = STOP_MAX_ITEMS
                break

            iterations += 1
            try:
                end_marker = feed_call(feed.has_reached_end, "has_reached_end")
                entries = feed_call(feed.current_visible_entries, "current_visible_entries")
            except Exception as e:
                logger.error(f"Feed failed while reading results for {label}: {e}")
                stop_reason = STOP_FEED_ERROR
                break

            new_names = _sweep(
                entries, state, evaluate, query, location,
                max_items, quality_threshold, config, report_sink, run_ctx,
            )

            if new_names:
                state.no_progress_count = 0
            else:
                state.no_progress_count += 1
            logger.debug(
                f"Sweep {iterations}: {len(entries)} visible, {new_names} new, "
                f"{len(state.collected)} collected"
            )

            if len(state.collected) >= max_items:
                stop_reason = STOP_MAX_ITEMS
            elif end_marker:
                stop_reason = STOP_END_OF_FEED
            elif state.no_progress_count >= config.no_progress_limit:
                stop_reason = STOP_NO_PROGRESS
            if stop_reason:
                break

            try:
                requested = feed_call(feed.request_more, "request_more")
            except Exception as e:
                logger.error(f"Feed failed while loading more results for {label}: {e}")
                stop_reason = STOP_FEED_ERROR
                break
            if not requested:
                stop_reason = STOP_END_OF_FEED
    finally:
        _flush_reports(state, report_sink)

    logger.info(
        f"Finished {label}: {len(state.collected)} businesses, "
        f"stopped on {stop_reason} after {iterations} sweeps"
    )
    return DiscoveryOutcome(
        businesses=list(state.collected),
        stop_reason=stop_reason,
        iterations=iterations,
    )


def discover_with_isolation(*args, **kwargs) -> Tuple[Optional[DiscoveryOutcome], Optional[str]]:
    """
    Discover with error isolation - returns outcome and error message.
    Never raises exceptions to caller.
    """
    try:
        return discover_businesses(*args, **kwargs), None
    except Exception as e:
        logger.error(f"Isolated discovery error: {e}")
        return None, str(e)
