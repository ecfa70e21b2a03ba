"""
Tests for the filler-word filter.
"""

import pytest


def make_filter(level, enabled=True):
    from voxrefine.filler import FillerWordFilter
    return FillerWordFilter(enabled=enabled, level=level)


class TestFillerLevels:
    """Tests for which words each level removes."""

    def test_minimal_removes_hesitation_sounds(self):
        from voxrefine.filler import FilterLevel

        assert make_filter(FilterLevel.MINIMAL).filter("Um, I think we should go.") == "I think we should go."

    def test_moderate_removes_common_fillers(self):
        from voxrefine.filler import FilterLevel

        assert make_filter(FilterLevel.MODERATE).filter("Um, so I think we should go.") == "I think we should go."

    @pytest.mark.parametrize("level,expected", [
        (0, "Well, basically it works."),
        (1, "basically it works."),
        (2, "it works."),
    ])
    def test_levels_widen(self, level, expected):
        assert make_filter(level).filter("Well, basically it works.") == expected

    def test_phrase_fillers_only_when_aggressive(self):
        from voxrefine.filler import FilterLevel

        text = "You know, I mean, it's fine."
        assert make_filter(FilterLevel.MODERATE).filter(text) == text
        assert make_filter(FilterLevel.AGGRESSIVE).filter(text) == "it's fine."

    def test_level_lists(self):
        from voxrefine.filler import FilterLevel, fillers_for_level

        zh, en = fillers_for_level(FilterLevel.MINIMAL)
        assert len(zh) == 8 and len(en) == 7
        zh, en = fillers_for_level(FilterLevel.MODERATE)
        assert len(zh) == 16 and len(en) == 14

    def test_out_of_range_level_clamped(self):
        from voxrefine.filler import FilterLevel

        assert make_filter(7).level is FilterLevel.AGGRESSIVE
        assert make_filter(-1).level is FilterLevel.MINIMAL


class TestFillerPositions:
    """Tests for where fillers are matched."""

    def test_mid_sentence_between_commas(self):
        assert make_filter(0).filter("I was, uh, going home") == "I was, going home"

    def test_after_sentence_end_keeps_punctuation(self):
        assert make_filter(0).filter("Okay. Um, let's start.") == "Okay. let's start."

    def test_consecutive_fillers(self):
        assert make_filter(0).filter("um uh er hello") == "hello"

    def test_case_insensitive(self):
        assert make_filter(0).filter("UM hello there") == "hello there"

    def test_word_boundaries(self):
        """Fillers inside real words are left alone."""
        text = "The umbrella summit had hummus and berries."
        assert make_filter(2).filter(text) == text

    def test_chinese_fillers(self):
        assert make_filter(0).filter("嗯，今天天气很好。啊，我们出去吧。") == "今天天气很好。我们出去吧。"

    def test_chinese_repeated_filler(self):
        assert make_filter(0).filter("嗯嗯，好的") == "好的"


class TestFillerCleanup:
    """Tests for spacing and punctuation cleanup."""

    def test_space_before_punctuation(self):
        assert make_filter(0).filter("Hello , world .") == "Hello, world."

    def test_repeated_terminal_punctuation(self):
        assert make_filter(0).filter("Really!!") == "Really!"
        assert make_filter(0).filter("真的吗？？") == "真的吗？"

    def test_space_after_opening_bracket(self):
        assert make_filter(0).filter("see ( the docs )") == "see (the docs)"


class TestFillerBehavior:
    """Tests for enable switch and idempotence."""

    def test_disabled_is_passthrough(self):
        text = "Um, uh, hello , world"
        assert make_filter(2, enabled=False).filter(text) == text

    def test_empty(self):
        assert make_filter(1).filter("") == ""

    @pytest.mark.parametrize("level", [0, 1, 2])
    @pytest.mark.parametrize("text", [
        "Um, so I think we should go.",
        "um um hello uh world. like you know it works",
        "嗯 那个 就是说 我们 然后 出发吧。额，好。",
        "So so so, okay okay. Right!! well",
        "Hmm... I mean , actually , no .",
    ])
    def test_idempotent(self, level, text):
        filler = make_filter(level)
        once = filler.filter(text)
        assert filler.filter(once) == once


class TestTidySpacing:
    """Tests for the shared spacing cleanup."""

    def test_default_strips_all_whitespace(self):
        from voxrefine.filler import tidy_spacing

        assert tidy_spacing("  hello ,  world !\n") == "hello, world!"

    def test_strip_chars_keeps_layout(self):
        from voxrefine.filler import tidy_spacing

        assert tidy_spacing(" done.\n\t", " ") == "done.\n\t"
