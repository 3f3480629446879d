"""
Unit tests for app/services/instagram_resolver.py.

Page fetches are mocked with canned HTML.
"""

import json
import re
import pytest
from unittest.mock import patch
from bs4 import BeautifulSoup

from app.exceptions import MediaNotFound, UpstreamFetchFailed
from app.models.media import DeliveryMode, MediaRequest, PlatformKind
from app.services.fallback import OutcomeStatus
from app.services.instagram_resolver import (
    INSTAGRAM_CHAIN,
    InstagramResolver,
    extract_from_json_ld,
    extract_from_meta_tags,
    extract_from_shared_data,
)


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def _json_ld(data):
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


class TestSharedData:

    def test_post_image(self, shared_data_html):
        html = shared_data_html({"PostPage": [{"graphql": {"shortcode_media": {
            "is_video": False, "display_url": "https://cdn/photo.jpg",
        }}}]})
        outcome = extract_from_shared_data(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/photo.jpg"

    def test_post_video(self, shared_data_html):
        html = shared_data_html({"PostPage": [{"graphql": {"shortcode_media": {
            "is_video": True, "video_url": "https://cdn/clip.mp4", "display_url": "https://cdn/cover.jpg",
        }}}]})
        outcome = extract_from_shared_data(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/clip.mp4"

    def test_profile_prefers_hd(self, shared_data_html):
        html = shared_data_html({"ProfilePage": [{"graphql": {"user": {
            "profile_pic_url": "https://cdn/small.jpg", "profile_pic_url_hd": "https://cdn/hd.jpg",
        }}}]})
        outcome = extract_from_shared_data(_soup(html), PlatformKind.INSTAGRAM_PROFILE)
        assert outcome.url == "https://cdn/hd.jpg"

    def test_missing_payload(self):
        outcome = extract_from_shared_data(_soup("<html></html>"), PlatformKind.INSTAGRAM_POST)
        assert outcome.status == OutcomeStatus.NOT_FOUND

    def test_wrong_shape_is_parse_error(self, shared_data_html):
        """Test a payload missing graphql is recorded as a parse error, not raised."""
        html = shared_data_html({"PostPage": [{}]})
        result = INSTAGRAM_CHAIN.run(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert result.attempts[0].outcome.status == OutcomeStatus.PARSE_ERROR


class TestJsonLd:

    def test_video_content_url(self):
        html = _json_ld({"@type": "VideoObject", "video": {"contentUrl": "https://cdn/reel.mp4"},
                         "image": "https://cdn/cover.jpg"})
        outcome = extract_from_json_ld(_soup(html), PlatformKind.INSTAGRAM_REEL)
        assert outcome.url == "https://cdn/reel.mp4"

    def test_video_preferred_across_blocks(self):
        html = _json_ld({"image": "https://cdn/first.jpg"}) + _json_ld([{"video": [{"contentUrl": "https://cdn/v.mp4"}]}])
        outcome = extract_from_json_ld(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/v.mp4"

    @pytest.mark.parametrize("image", [
        "https://cdn/img.jpg",
        ["https://cdn/img.jpg", "https://cdn/other.jpg"],
        {"url": "https://cdn/img.jpg"},
        [{"contentUrl": "https://cdn/img.jpg"}],
    ])
    def test_image_shapes(self, image):
        outcome = extract_from_json_ld(_soup(_json_ld({"image": image})), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/img.jpg"

    def test_malformed_block_is_skipped(self):
        """Test a broken ld+json block does not hide a valid one after it."""
        html = '<script type="application/ld+json">{"image": </script>' + _json_ld({"image": "https://cdn/img.jpg"})
        outcome = extract_from_json_ld(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/img.jpg"

    def test_only_malformed_blocks(self):
        html = '<script type="application/ld+json">{not json</script>'
        outcome = extract_from_json_ld(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.status == OutcomeStatus.PARSE_ERROR

    def test_relative_image_skipped_within_block(self):
        html = _json_ld({"image": ["/static/logo.png", "https://cdn/img.jpg"]})
        outcome = extract_from_json_ld(_soup(html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://cdn/img.jpg"

    def test_no_blocks(self):
        outcome = extract_from_json_ld(_soup("<html></html>"), PlatformKind.INSTAGRAM_POST)
        assert outcome.is_found is False


class TestMetaTags:

    def test_og_image_for_post(self, og_image_only_html):
        outcome = extract_from_meta_tags(_soup(og_image_only_html), PlatformKind.INSTAGRAM_POST)
        assert outcome.url == "https://scontent.cdninstagram.com/v/t51/photo.jpg?x=1&y=2"

    def test_og_video_for_reel(self, og_image_only_html):
        """Test reels only accept og:video."""
        outcome = extract_from_meta_tags(_soup(og_image_only_html), PlatformKind.INSTAGRAM_REEL)
        assert outcome.is_found is False

        html = '<meta property="og:video" content="https://cdn/reel.mp4">'
        assert extract_from_meta_tags(_soup(html), PlatformKind.INSTAGRAM_REEL).url == "https://cdn/reel.mp4"


class TestInstagramResolver:

    def test_og_image_only_post(self, instagram_post_url, og_image_only_html):
        """Test a page with only og:image resolves to image/jpeg with a .jpg name."""
        resolver = InstagramResolver(delivery_mode=DeliveryMode.STREAM)
        with patch("app.services.instagram_resolver.fetch_html", return_value=og_image_only_html):
            media = resolver.resolve(MediaRequest(raw_url=instagram_post_url), PlatformKind.INSTAGRAM_POST)

        assert media.source_url == "https://scontent.cdninstagram.com/v/t51/photo.jpg?x=1&y=2"
        assert media.content_type == "image/jpeg"
        assert media.thumbnail_url == media.source_url
        assert re.match(r"^instagram-post-\d+\.jpg$", media.suggested_filename)

    def test_post_video_url_is_mp4(self, instagram_post_url):
        html = _json_ld({"video": {"contentUrl": "https://scontent.cdninstagram.com/o1/v/t16/clip.mp4?x=1"}})
        with patch("app.services.instagram_resolver.fetch_html", return_value=html):
            media = InstagramResolver().resolve(MediaRequest(raw_url=instagram_post_url), PlatformKind.INSTAGRAM_POST)

        assert media.content_type == "video/mp4"
        assert media.thumbnail_url is None
        assert media.suggested_filename.endswith(".mp4")

    def test_profile_title(self):
        html = '<meta property="og:image" content="https://cdn/pic.jpg">'
        url = "https://www.instagram.com/natgeo/"
        with patch("app.services.instagram_resolver.fetch_html", return_value=html):
            media = InstagramResolver().resolve(MediaRequest(raw_url=url), PlatformKind.INSTAGRAM_PROFILE)

        assert media.title == "Profile Photo: @natgeo"
        assert media.content_type == "image/jpeg"

    def test_relative_json_ld_image_falls_through_to_og_image(self, instagram_post_url, og_image_only_html):
        """Test a site-relative JSON-LD image is skipped in favour of og:image."""
        html = _json_ld({"image": "/static/images/ico/logo.png"}) + og_image_only_html
        with patch("app.services.instagram_resolver.fetch_html", return_value=html):
            media = InstagramResolver().resolve(MediaRequest(raw_url=instagram_post_url), PlatformKind.INSTAGRAM_POST)

        assert media.source_url == "https://scontent.cdninstagram.com/v/t51/photo.jpg?x=1&y=2"

    def test_only_relative_urls_is_media_not_found(self, instagram_post_url):
        html = _json_ld({"image": "/static/images/ico/logo.png"}) + '<meta property="og:image" content="/favicon.jpg">'
        with patch("app.services.instagram_resolver.fetch_html", return_value=html):
            with pytest.raises(MediaNotFound):
                InstagramResolver().resolve(MediaRequest(raw_url=instagram_post_url), PlatformKind.INSTAGRAM_POST)

    def test_nothing_found(self, instagram_reel_url):
        with patch("app.services.instagram_resolver.fetch_html", return_value="<html></html>"):
            with pytest.raises(MediaNotFound) as exc_info:
                InstagramResolver().resolve(MediaRequest(raw_url=instagram_reel_url), PlatformKind.INSTAGRAM_REEL)

        assert exc_info.value.message == "Could not extract Instagram reel URL"

    def test_page_fetch_failure(self, instagram_post_url):
        with patch(
            "app.services.instagram_resolver.fetch_html",
            side_effect=UpstreamFetchFailed("Failed to fetch page: HTTP 429 Too Many Requests"),
        ):
            with pytest.raises(MediaNotFound):
                InstagramResolver().resolve(MediaRequest(raw_url=instagram_post_url), PlatformKind.INSTAGRAM_POST)
