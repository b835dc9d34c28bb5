"""
Tests for Maps listing parsing helpers and detail panel reads.
"""

from unittest.mock import Mock

import pytest
from playwright.sync_api import Error as PlaywrightError

from leadgrader.config import ScraperConfig
from leadgrader.maps_feed import (
    MapsEntry,
    clean_address,
    clean_phone,
    clean_website_url,
    search_url,
)


def element(text=None, attributes=None, error=None):
    el = Mock()
    if error:
        el.text_content.side_effect = error
        el.get_attribute.side_effect = error
    else:
        el.text_content.return_value = text
        el.get_attribute.side_effect = lambda name: (attributes or {}).get(name)
    return el


def detail_panel(elements):
    page = Mock()
    page.query_selector.side_effect = lambda selector: elements.get(selector)
    return page


@pytest.fixture
def config() -> ScraperConfig:
    return ScraperConfig(detail_pause_ms=0, dismiss_pause_ms=0)


class TestCleaners:

    def test_unwraps_google_redirect(self):
        href = "https://www.google.com/url?q=https://acme.example/&sa=U"
        assert clean_website_url(href) == "https://acme.example/"

    def test_plain_website_unchanged(self):
        assert clean_website_url("https://acme.example/") == "https://acme.example/"
        assert clean_website_url(None) is None

    def test_phone_label_removed(self):
        assert clean_phone("Phone: (208) 555-0142") == "(208)555-0142"

    def test_address_label_removed(self):
        assert clean_address("Address: 12 Main St, Boise, ID") == "12 Main St, Boise, ID"

    def test_search_url(self):
        assert search_url("plumbers", "Boise, ID") == (
            "https://www.google.com/maps/search/plumbers%20in%20Boise%2C%20ID"
        )


class TestMapsEntryReveal:

    def test_reads_all_fields(self, config):
        page = detail_panel({
            "h1.DUwDvf": element("Acme Plumbing"),
            "a[data-item-id='authority']": element(
                "Website", {"href": "https://www.google.com/url?q=https://acme.example/"}
            ),
            "button[data-item-id='address']": element(None, {"aria-label": "Address: 12 Main St"}),
            "button[data-item-id^='phone:']": element(None, {"aria-label": "Phone: (208) 555-0142"}),
            ".F7nice": element("4.7"),
        })
        details = MapsEntry(page, Mock(), "Acme Plumbing", config).reveal()

        assert details.name == "Acme Plumbing"
        assert details.website == "https://acme.example/"
        assert details.address == "12 Main St"
        assert details.phone == "(208)555-0142"
        assert details.rating == "4.7"

    def test_detached_field_gives_none_for_that_field_only(self, config):
        detached = PlaywrightError("Element is not attached to the DOM")
        page = detail_panel({
            "h1.DUwDvf": element("Acme Plumbing"),
            "a[data-item-id='authority']": element("Website", {"href": "https://acme.example/"}),
            "button[data-item-id='address']": element(error=detached),
            "button[data-item-id^='phone:']": element(error=detached),
        })
        details = MapsEntry(page, Mock(), "Acme Plumbing", config).reveal()

        assert details.name == "Acme Plumbing"
        assert details.website == "https://acme.example/"
        assert details.address is None
        assert details.phone is None
        assert details.rating is None

    def test_website_text_is_not_used_as_url(self, config):
        page = detail_panel({
            "a[data-item-id='authority']": element("Website", {}),
        })
        details = MapsEntry(page, Mock(), "Acme", config).reveal()
        assert details.website is None

    def test_dismiss_presses_escape(self, config):
        page = Mock()
        MapsEntry(page, Mock(), "Acme", config).dismiss()
        page.keyboard.press.assert_called_once_with("Escape")
