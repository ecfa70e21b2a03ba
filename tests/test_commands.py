"""
Tests for spoken punctuation and formatting commands.
"""

import pytest


def process(text, enabled=True):
    from voxrefine.commands import VoiceCommandProcessor
    return VoiceCommandProcessor(enabled=enabled).process(text)


class TestEnglishCommands:
    """Tests for English command phrases."""

    def test_comma_and_period(self):
        assert process("hello comma world period") == "hello, world."

    def test_case_insensitive(self):
        assert process("Hello COMMA world Period") == "Hello, world."

    def test_question_and_exclamation(self):
        assert process("what time is it question mark") == "what time is it?"
        assert process("watch out exclamation point") == "watch out!"

    def test_colon_not_confused_with_semicolon(self):
        assert process("first semicolon second colon third") == "first; second: third"

    def test_quotes(self):
        assert process("she said quote hello end quote") == 'she said "hello"'

    def test_parentheses(self):
        assert process("call me open paren maybe close paren") == "call me (maybe)"

    def test_longest_phrase_wins(self):
        assert process("wait dot dot dot") == "wait..."
        assert process("the end full stop") == "the end."

    def test_word_boundaries(self):
        text = "the periodic table has commas"
        assert process(text) == text

    def test_hyphen_joins_words(self):
        assert process("well hyphen known") == "well-known"


class TestStructuralCommands:
    """Tests for layout commands."""

    def test_new_line(self):
        assert process("first line new line second line") == "first line\nsecond line"

    def test_new_paragraph(self):
        assert process("one period new paragraph two period") == "one.\n\ntwo."

    def test_tab(self):
        assert process("name tab value") == "name\tvalue"

    def test_trailing_newline_kept(self):
        assert process("done period new line") == "done.\n"


class TestChineseCommands:
    """Tests for Chinese command phrases."""

    def test_full_width_marks(self):
        assert process("今天天气很好逗号我们出去吧句号") == "今天天气很好，我们出去吧。"

    def test_absorbs_surrounding_spaces(self):
        assert process("你好 逗号 世界 问号") == "你好，世界？"

    def test_quotes(self):
        assert process("他说引号你好结束引号") == "他说「你好」"

    def test_mixed_language(self):
        assert process("用 Python 写 comma 然后换行结束") == "用 Python 写, 然后\n结束"


class TestProcessorBehavior:
    """Tests for enable switch and repeat application."""

    def test_disabled_is_passthrough(self):
        assert process("hello comma world period", enabled=False) == "hello comma world period"

    @pytest.mark.parametrize("text", [
        "hello comma world period",
        "他说引号你好结束引号",
        "a new line b tab c",
    ])
    def test_idempotent_on_output(self, text):
        once = process(text)
        assert process(once) == once

    def test_supported_commands(self):
        from voxrefine.commands import VoiceCommandProcessor

        commands = VoiceCommandProcessor.supported_commands()
        assert "comma" in commands["comma"]
        assert "逗号" in commands["comma"]
        assert "new paragraph" in commands["new_paragraph"]
