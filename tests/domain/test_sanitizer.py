"""Tests for the strict markup sanitizer."""

from unittest.mock import patch

import pytest

from src.domain.services import SanitizerService


class TestSanitize:
    """Test suite for SanitizerService.sanitize."""

    @pytest.mark.parametrize("raw,expected", [
        ("<b>123456</b>", "123456"),
        ("<script>alert('xss')</script>This is a comment.", "This is a comment."),
        ("<img src=\"x\" onerror=\"alert('XSS')\">123456<script>alert(1)</script>", "123456"),
        ("\"><img src=x onerror=alert(4)>TestUser<script>alert(5)</script>", "&#34;&gt;TestUser"),
        ("192.168.1.1\"><svg/onload=alert(2)>", "192.168.1.1&#34;&gt;"),
    ])
    def test_known_attack_vectors(self, raw, expected):
        assert SanitizerService.sanitize(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("Plain text stays plain", "Plain text stays plain"),
        ("Tom & Jerry", "Tom &amp; Jerry"),
        ("a < b and c > d", "a &lt; b and c &gt; d"),
        ("It's \"quoted\"", "It&#39;s &#34;quoted&#34;"),
        ("before<!-- hidden -->after", "beforeafter"),
        ("<a href=\"javascript:alert(1)\">click</a>", "click"),
        ("<style>body{display:none}</style>visible", "visible"),
        ("<SCRIPT>alert(1)</SCRIPT>ok", "ok"),
        ("<iframe src=\"https://evil.example\"></iframe>text", "text"),
        ("<div><p>Hi</p></div>", "Hi"),
        ("<p>a</p><p>b</p>", "ab"),
        ("<ul><li>a</li><li>b</li></ul>", "ab"),
    ])
    def test_markup_is_removed_and_text_escaped(self, raw, expected):
        assert SanitizerService.sanitize(raw) == expected

    def test_unclosed_script_drops_remainder(self):
        assert SanitizerService.sanitize("safe<script>alert(1) and more") == "safe"

    def test_output_contains_no_tags(self):
        raw = "<div onclick=\"x()\"><p>Hi <em>there</em></p><img src=y></div>"
        sanitized = SanitizerService.sanitize(raw)
        assert "<" not in sanitized
        assert ">" not in sanitized
        assert sanitized == "Hi there"

    def test_escaped_markup_is_not_unescaped(self):
        """Already-escaped markup stays escaped and cannot become a tag."""
        sanitized = SanitizerService.sanitize("&lt;script&gt;alert(1)&lt;/script&gt;")
        assert "<script" not in sanitized

    @pytest.mark.parametrize("raw", [
        "Tom & Jerry",
        "\"><img src=x>TestUser",
        "It's <b>bold</b>",
    ])
    def test_idempotent(self, raw):
        once = SanitizerService.sanitize(raw)
        assert SanitizerService.sanitize(once) == once

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values_pass_through(self, value):
        assert SanitizerService.sanitize(value) == value


class TestSanitizeFields:
    """Test suite for sanitizing a submission mapping."""

    def test_sanitizes_named_fields_only(self):
        fields = {
            "listing_id": "<b>123456</b>",
            "user_id": "<i>id</i>",
            "username": "<u>bob</u>",
            "comment_text": "<script>x()</script>hello",
            "user_ip": "192.168.1.1\"><svg/onload=alert(2)>",
        }
        sanitized = SanitizerService.sanitize_fields(fields)
        assert sanitized == {
            "listing_id": "123456",
            "user_id": "id",
            "username": "bob",
            "comment_text": "hello",
            "user_ip": "192.168.1.1\"><svg/onload=alert(2)>",
        }

    def test_input_mapping_is_not_modified(self):
        fields = {"username": "<b>bob</b>"}
        SanitizerService.sanitize_fields(fields)
        assert fields == {"username": "<b>bob</b>"}

    def test_user_ip_never_reaches_sanitizer(self):
        fields = {
            "listing_id": "1",
            "user_id": "u",
            "username": "bob",
            "comment_text": "hi",
            "user_ip": "203.0.113.7",
        }
        with patch.object(SanitizerService, "sanitize", wraps=SanitizerService.sanitize) as spy:
            SanitizerService.sanitize_fields(fields)
        sanitized_values = [call.args[0] for call in spy.call_args_list]
        assert "203.0.113.7" not in sanitized_values
        assert sorted(sanitized_values) == sorted(["1", "u", "bob", "hi"])

    def test_non_string_values_are_left_alone(self):
        fields = {"listing_id": 42, "comment_text": None}
        assert SanitizerService.sanitize_fields(fields) == {"listing_id": 42, "comment_text": None}
