"""Tests for slug generation and identifier detection."""

import re

import pytest

from flowhub.templates.slugs import UNTITLED, is_template_id, slug_to_title_guess, to_slug

SLUG_RE = re.compile(r"^[a-z0-9-]*$")

TITLES = [
    "Sales & Marketing",
    "Send Slack Alerts for New Stripe Payments",
    "  leading and trailing  ",
    "Multiple   spaces\tand\ttabs",
    "Émojis 🚀 and accénts",
    "GPT-4 -- summarise e-mails!!",
    "already-a-slug",
    "&&&",
    "C++ / C# code review",
]


class TestToSlug:
    """Tests for to_slug."""

    def test_ampersand_collapses_into_single_hyphen(self):
        assert to_slug("Sales & Marketing") == "sales-marketing"

    def test_punctuation_is_dropped(self):
        assert to_slug("What's new? Weekly digest!") == "whats-new-weekly-digest"

    @pytest.mark.parametrize("title", TITLES)
    def test_slug_shape(self, title):
        """Slugs are non-empty, lowercase and free of stray hyphens."""
        slug = to_slug(title)
        assert slug
        assert SLUG_RE.match(slug)
        assert not slug.startswith("-")
        assert not slug.endswith("-")
        assert "--" not in slug

    @pytest.mark.parametrize("title", TITLES)
    def test_deterministic(self, title):
        assert to_slug(title) == to_slug(title)

    @pytest.mark.parametrize("value", [None, "", 42, ["a title"]])
    def test_invalid_input_is_untitled(self, value):
        assert to_slug(value) == UNTITLED

    def test_nothing_left_is_untitled(self):
        assert to_slug("!!! ???") == UNTITLED
        assert to_slug("&&&") == UNTITLED


class TestSlugToTitleGuess:
    """Tests for slug_to_title_guess."""

    def test_capitalises_words(self):
        assert slug_to_title_guess("send-slack-alerts") == "Send Slack Alerts"

    def test_and_becomes_ampersand(self):
        assert slug_to_title_guess("sales-and-marketing") == "Sales & Marketing"

    def test_and_inside_word_is_kept(self):
        assert slug_to_title_guess("android-backup") == "Android Backup"


class TestIsTemplateId:
    """Tests for is_template_id."""

    def test_uuid_shape(self):
        assert is_template_id("a1b2c3d4-0000-0000-0000-000000000000")

    def test_uppercase_hex(self):
        assert is_template_id("A1B2C3D4-ABCD-EF01-2345-6789ABCDEF01")

    @pytest.mark.parametrize(
        "value",
        [
            "sales-marketing-digest",
            "a1b2c3d4-0000-0000-0000-00000000000",
            "a1b2c3d4-0000-0000-0000-000000000000-extra",
            "g1b2c3d4-0000-0000-0000-000000000000",
            "a1b2c3d4-0000-0000-0000-000000000000\n",
        ],
    )
    def test_rejects_other_strings(self, value):
        assert not is_template_id(value)
