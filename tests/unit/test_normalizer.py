"""Unit tests for feed item normalization."""

from datetime import datetime

from onefeed.ingestion.interfaces import RawFeedItem
from onefeed.ingestion.normalizer import extract_image, normalize_item, sanitize_link


class TestSanitizeLink:
    """Tests for sanitize_link."""

    def test_plain_link_unchanged(self):
        assert sanitize_link("https://example.com/a") == "https://example.com/a"

    def test_takes_last_pipe_segment(self):
        raw = "https://tracker.example.com/r?id=1|https://example.com/real-article"
        assert sanitize_link(raw) == "https://example.com/real-article"

    def test_strips_whitespace(self):
        assert sanitize_link("a | https://example.com/b  ") == "https://example.com/b"

    def test_empty_and_none(self):
        assert sanitize_link("") == ""
        assert sanitize_link(None) == ""

    def test_trailing_delimiter_gives_empty(self):
        assert sanitize_link("https://example.com/a|") == ""

    def test_idempotent(self):
        once = sanitize_link("x|y|https://example.com/z")
        assert sanitize_link(once) == once


class TestExtractImage:
    """Tests for extract_image fallbacks."""

    def test_item_image_first(self):
        item = RawFeedItem(
            image="https://img.example.com/main.jpg",
            enclosures=["https://img.example.com/enc.jpg"],
            description='<img src="https://img.example.com/body.jpg">',
        )
        assert extract_image(item) == "https://img.example.com/main.jpg"

    def test_first_enclosure(self):
        item = RawFeedItem(enclosures=["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"])
        assert extract_image(item) == "https://img.example.com/1.jpg"

    def test_first_img_in_description(self):
        item = RawFeedItem(
            description='<p>Intro</p><img src="https://img.example.com/a.png"/><img src="https://img.example.com/b.png"/>'
        )
        assert extract_image(item) == "https://img.example.com/a.png"

    def test_content_used_when_no_description(self):
        item = RawFeedItem(content='<div><img alt="x" src="https://img.example.com/c.png"></div>')
        assert extract_image(item) == "https://img.example.com/c.png"

    def test_no_image_anywhere(self):
        item = RawFeedItem(description="<p>No pictures here</p>")
        assert extract_image(item) == ""

    def test_img_without_src(self):
        item = RawFeedItem(description="<img alt='broken'>")
        assert extract_image(item) == ""


class TestNormalizeItem:
    """Tests for normalize_item."""

    def test_builds_record(self):
        published = datetime(2024, 3, 1, 9, 30)
        item = RawFeedItem(
            title="iPhone launch",
            link="https://t.example.com/1|https://www.macthai.com/2024/03/01/iphone/",
            enclosures=["https://img.example.com/iphone.jpg"],
            published_at=published,
        )

        record = normalize_item(item, "MacThai")

        assert record.title == "iPhone launch"
        assert record.link == "https://www.macthai.com/2024/03/01/iphone/"
        assert record.source == "MacThai"
        assert record.image_url == "https://img.example.com/iphone.jpg"
        assert record.published_at == published

    def test_missing_fields_pass_through(self):
        record = normalize_item(RawFeedItem(), "DroidSans")

        assert record.title == ""
        assert record.link == ""
        assert record.image_url == ""
        assert record.published_at is None
        assert record.source == "DroidSans"
