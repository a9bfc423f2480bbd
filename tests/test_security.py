# ABOUTME: Tests for input validation and HTML sanitization helpers.
# ABOUTME: Covers profile slugs, emails, control characters, and rich text cleanup.

import pytest

from ward_bulletin.security import (
    sanitize_html,
    sanitize_user_input,
    strip_tags,
    validate_email,
    validate_profile_slug,
)


class TestProfileSlug:
    @pytest.mark.parametrize("slug", ["maple-grove", "ward42", "a"])
    def test_valid(self, slug: str) -> None:
        assert validate_profile_slug(slug)

    @pytest.mark.parametrize(
        "slug", ["", None, "../etc", "Maple", "has space", "under_score", "x" * 51]
    )
    def test_invalid(self, slug: str | None) -> None:
        assert not validate_profile_slug(slug)


class TestEmail:
    def test_valid(self) -> None:
        assert validate_email("clerk@example.com")

    def test_invalid(self) -> None:
        assert not validate_email("clerk@")
        assert not validate_email("no spaces@example.com")
        assert not validate_email("a" * 250 + "@example.com")


class TestSanitize:
    def test_control_characters_removed(self) -> None:
        assert sanitize_user_input("ab\x00c\x07d\ne") == "abcd\ne"

    def test_scripts_and_handlers_removed(self) -> None:
        cleaned = sanitize_html('<p onclick="x()">Hi <script>evil()</script><strong>there</strong></p>')

        assert "<script>" not in cleaned
        assert "onclick" not in cleaned
        assert "<strong>there</strong>" in cleaned

    def test_links_keep_href(self) -> None:
        cleaned = sanitize_html('<a href="https://example.com" style="color:red">site</a>')

        assert cleaned == '<a href="https://example.com">site</a>'

    def test_strip_tags(self) -> None:
        assert strip_tags("<b>Bake</b> sale") == "Bake sale"
        assert strip_tags("Fish & Chips") == "Fish &amp; Chips"
