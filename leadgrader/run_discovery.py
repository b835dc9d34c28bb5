"""
Discovery run orchestration for leadgrader.

One run searches a business category in a location, evaluates every
listed website, writes report pages for low scorers and exports the
session CSVs.
"""

import argparse
import random
import sys
from typing import Optional

from .aggregator import SessionAggregator
from .browser import open_browser
from .config import Config, load_config, validate_config
from .discovery import DiscoveryOutcome, discover_with_isolation
from .evaluator import evaluate_with_isolation
from .logging_setup import setup_logging, get_logger, RunContext
from .maps_feed import MapsFeed
from .page_loader import PlaywrightPageLoader

logger = get_logger("run_discovery")


def run_discovery(
    config: Config,
    query: str,
    location: str,
    max_items: int = None,
    quality_threshold: int = None,
) -> Optional[DiscoveryOutcome]:
    """
    Run one discovery session and write its outputs.

    Returns the outcome, or None when the session could not start.
    """
    aggregator = SessionAggregator(label=f"{query}_{location}")

    with RunContext(logger, label=f"{query} in {location}") as run_ctx:
        with open_browser(config.scraper) as browser:
            feed = MapsFeed(browser, config.scraper)
            loader = PlaywrightPageLoader(
                browser,
                config.evaluator,
                user_agent=config.scraper.user_agent,
            )
            try:
                outcome, error = discover_with_isolation(
                    feed,
                    lambda url: evaluate_with_isolation(url, loader, config.evaluator),
                    query,
                    location,
                    max_items=max_items,
                    quality_threshold=quality_threshold,
                    config=config.discovery,
                    retry_config=config.retry,
                    report_sink=aggregator.report_batch,
                    run_ctx=run_ctx,
                )
            finally:
                feed.close()

        if error:
            logger.error(f"Discovery failed: {error}")
            run_ctx.increment("errors")
            return None

        aggregator.finalize(outcome)
        return outcome


def evaluate_single(config: Config, url: str) -> int:
    """Evaluate one website and print its score. Returns the score."""
    with open_browser(config.scraper) as browser:
        loader = PlaywrightPageLoader(
            browser,
            config.evaluator,
            user_agent=config.scraper.user_agent,
        )
        result = evaluate_with_isolation(url, loader, config.evaluator)

    print(f"{result.url}: {result.score}/100")
    for issue in result.issues:
        print(f"  - {issue}")
    return result.score


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Local business website grader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m leadgrader.run_discovery "plumbers" "Boise, ID"
  python -m leadgrader.run_discovery --random
  python -m leadgrader.run_discovery --evaluate example.com
  python -m leadgrader.run_discovery --validate
        """
    )

    parser.add_argument("query", nargs="?", help="Business category to search for")
    parser.add_argument("location", nargs="?", help="Location to search in")
    parser.add_argument(
        "--random",
        action="store_true",
        help="Pick a random configured category and location",
    )
    parser.add_argument(
        "--evaluate",
        metavar="URL",
        help="Evaluate a single website and exit",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and exit",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        help="Stop after this many businesses",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        help="Scores at or below this get a report page",
    )
    parser.add_argument(
        "--show-browser",
        action="store_true",
        help="Run Chromium with a visible window",
    )
    parser.add_argument(
        "--no-screenshots",
        action="store_true",
        help="Skip website screenshots",
    )

    args = parser.parse_args()

    setup_logging()
    config = load_config()

    if args.max_items is not None:
        config.discovery.max_items = args.max_items
    if args.threshold is not None:
        config.discovery.quality_threshold = args.threshold
    if args.show_browser:
        config.scraper.headless = False
    if args.no_screenshots:
        config.evaluator.capture_screenshots = False

    errors = validate_config(config)
    if args.validate:
        if errors:
            print("Configuration errors:")
            for error in errors:
                print(f"  - {error}")
            sys.exit(1)
        print("Configuration valid")
        return

    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        logger.error("Cannot proceed with invalid configuration")
        sys.exit(1)

    if args.evaluate:
        evaluate_single(config, args.evaluate)
        return

    if args.random:
        query = random.choice(config.business_categories)
        location = random.choice(config.target_locations)
    elif args.query and args.location:
        query, location = args.query, args.location
    else:
        parser.error("query and location are required unless --random or --evaluate is given")

    outcome = run_discovery(config, query, location)
    if outcome is None:
        sys.exit(1)

    print(
        f"{query} in {location}: {len(outcome.businesses)} businesses, "
        f"stopped on {outcome.stop_reason}"
    )


if __name__ == "__main__":
    main()
