"""
Tests for website evaluation.
"""

from datetime import timedelta

from fakes import FakeLoader, FakePage, make_snapshot
from leadgrader.config import EvaluatorConfig
from leadgrader.evaluator import (
    UNREACHABLE_MESSAGES,
    evaluate_website,
    evaluate_with_isolation,
    normalize_url,
)
from leadgrader.page_loader import PageLoadError, SecurityInfo

URL = "https://acme-plumbing.example"


class TestNormalizeUrl:
    """Tests for URL normalization."""

    def test_adds_https_to_bare_domain(self):
        assert normalize_url("example.com") == "https://example.com"

    def test_preserves_existing_http(self):
        assert normalize_url("http://example.com") == "http://example.com"

    def test_strips_whitespace(self):
        assert normalize_url("  https://example.com ") == "https://example.com"

    def test_handles_empty_string(self):
        assert normalize_url("") == ""

    def test_handles_none(self):
        assert normalize_url(None) is None


class TestReachableSites:

    def test_healthy_site_scores_perfect(self, now, evaluator_config, sample_html_modern):
        loader = FakeLoader({URL: FakePage(make_snapshot(sample_html_modern, now))})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert result.score == 100
        assert result.issues == []
        assert result.http_status == 200
        assert result.final_url == "https://acme-plumbing.example/"
        assert result.error is None
        assert result.seo_score == 100

    def test_bare_domain_is_loaded_over_https(self, now, evaluator_config, sample_html_modern):
        loader = FakeLoader({URL: FakePage(make_snapshot(sample_html_modern, now))})
        result = evaluate_website("acme-plumbing.example", loader, evaluator_config, now=now)
        assert loader.requested == [URL]
        assert result.url == URL

    def test_http_error_starts_from_floor(self, now, evaluator_config, sample_html_modern):
        snapshot = make_snapshot(sample_html_modern, now, status=404)
        loader = FakeLoader({URL: FakePage(snapshot)})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert result.score == 15
        assert result.http_status == 404
        assert result.issues[0].startswith("Website returns error 404")

    def test_http_error_with_other_findings_floors_at_zero(self, now, evaluator_config, sample_html_bare):
        snapshot = make_snapshot(sample_html_bare, now, status=500, matches_mobile_media=False)
        loader = FakeLoader({URL: FakePage(snapshot)})
        result = evaluate_website(URL, loader, evaluator_config, now=now)
        assert result.score == 0

    def test_expired_certificate(self, now, evaluator_config, sample_html_modern):
        security = SecurityInfo(
            valid_from=(now - timedelta(days=400)).timestamp(),
            valid_to=(now - timedelta(days=10)).timestamp(),
        )
        snapshot = make_snapshot(sample_html_modern, now, security=security)
        loader = FakeLoader({URL: FakePage(snapshot)})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert result.score == 85
        assert result.issues == ["Security certificate expired 10 days ago - major security risk"]

    def test_outdated_site_collects_issues_in_order(self, now, evaluator_config, sample_html_outdated):
        snapshot = make_snapshot(sample_html_outdated, now, load_time_ms=4000)
        loader = FakeLoader({URL: FakePage(snapshot)})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert result.issues[0].startswith("Website loads too slowly")
        assert result.issues[-1].startswith("Outdated copyright (2018)")
        assert 0 <= result.score < 70
        # description 8, h2 3, canonical 3, robots 2, schema 5, og 3, viewport 5
        assert result.seo_score == 71

    def test_screenshot_captured_when_enabled(self, now, sample_html_modern):
        page = FakePage(make_snapshot(sample_html_modern, now), screenshot=b"hero")
        loader = FakeLoader({URL: page})
        result = evaluate_website(URL, loader, EvaluatorConfig(), now=now)

        assert page.captures == ["hero"]
        assert result.screenshot == b"hero"

    def test_screenshot_skipped_when_disabled(self, now, evaluator_config, sample_html_modern):
        page = FakePage(make_snapshot(sample_html_modern, now))
        loader = FakeLoader({URL: page})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert page.captures == []
        assert result.screenshot is None

    def test_page_is_released(self, now, evaluator_config, sample_html_modern):
        loader = FakeLoader({URL: FakePage(make_snapshot(sample_html_modern, now))})
        evaluate_website(URL, loader, evaluator_config, now=now)
        assert loader.closed == 1


class TestUnreachableSites:

    def test_certificate_failure(self, evaluator_config):
        loader = FakeLoader({URL: PageLoadError("net::ERR_CERT_DATE_INVALID", PageLoadError.CERTIFICATE)})
        result = evaluate_website(URL, loader, evaluator_config)

        assert result.score == 10
        assert result.issues == [UNREACHABLE_MESSAGES[PageLoadError.CERTIFICATE]]
        assert "SSL certificate" in result.issues[0]

    def test_server_not_responding(self, evaluator_config):
        loader = FakeLoader({URL: PageLoadError("net::ERR_NAME_NOT_RESOLVED")})
        result = evaluate_website(URL, loader, evaluator_config)

        assert result.score == 10
        assert result.issues == [
            "Website completely inaccessible - server not responding or domain issues"
        ]
        assert result.error.startswith("unreachable")
        assert result.seo_score is None

    def test_timeout_is_unreachable(self, evaluator_config):
        loader = FakeLoader({URL: PageLoadError("Timeout 30000ms exceeded", PageLoadError.TIMEOUT)})
        result = evaluate_website(URL, loader, evaluator_config)

        assert result.score == 10
        assert len(result.issues) == 1


class TestEvaluationFaults:

    def test_empty_url(self, evaluator_config):
        result = evaluate_website("", FakeLoader({}), evaluator_config)
        assert result.score == 0
        assert result.issues == ["No website URL provided"]

    def test_fault_after_load_is_degraded(self, now, evaluator_config, sample_html_modern):
        page = FakePage(make_snapshot(sample_html_modern, now), inspect_error=RuntimeError("page crashed"))
        loader = FakeLoader({URL: page})
        result = evaluate_website(URL, loader, evaluator_config, now=now)

        assert result.score == 70
        assert result.issues == ["Error evaluating website: page crashed"]
        assert result.http_status == 200
        assert result.error == "page crashed"

    def test_fault_on_error_page_floors_at_zero(self, now, evaluator_config, sample_html_modern):
        snapshot = make_snapshot(sample_html_modern, now, status=502)
        page = FakePage(snapshot, inspect_error=RuntimeError("detached"))
        result = evaluate_website(URL, FakeLoader({URL: page}), evaluator_config, now=now)
        assert result.score == 0


class TestEvaluateWithIsolation:

    def test_never_raises(self, evaluator_config):
        class ExplodingLoader:
            def load(self, url, timeout_ms=None):
                raise RuntimeError("no browser")

        result = evaluate_with_isolation(URL, ExplodingLoader(), evaluator_config)
        assert 0 <= result.score <= 100
        assert result.issues == ["Error evaluating website: no browser"]

    def test_passes_through_normal_results(self, now, evaluator_config, sample_html_modern):
        loader = FakeLoader({URL: FakePage(make_snapshot(sample_html_modern, now))})
        result = evaluate_with_isolation(URL, loader, evaluator_config, now=now)
        assert result.score == 100
