"""
Spoken punctuation and formatting commands.

Turns phrases like "comma" or "句号" into the marks they name. Chinese
phrases become full-width marks and match anywhere in the text. English
phrases become ASCII marks and only match as whole words, in any case.
"""

import re
from dataclasses import dataclass
from typing import Dict, Match, Pattern, Tuple

from .filler import tidy_spacing


# How a substituted mark absorbs surrounding whitespace
CLOSING = "closing"       # eats the space before: "hello comma" -> "hello,"
OPENING = "opening"       # eats the space after: "open paren x" -> "(x"
ATTACHED = "attached"     # eats both sides: "well hyphen known" -> "well-known"


@dataclass(frozen=True)
class CommandRule:
    category: str
    chinese: Tuple[str, ...]
    chinese_mark: str
    english: Tuple[str, ...]
    english_mark: str
    placement: str = CLOSING


COMMAND_RULES: Tuple[CommandRule, ...] = (
    CommandRule("period", ("句号", "句點"), "。", ("period", "full stop", "dot"), "."),
    CommandRule("comma", ("逗号", "逗號"), "，", ("comma",), ","),
    CommandRule("question", ("问号", "問號"), "？", ("question mark",), "?"),
    CommandRule("exclamation", ("感叹号", "叹号", "感嘆號", "驚嘆號"), "！",
                ("exclamation mark", "exclamation point"), "!"),
    CommandRule("colon", ("冒号", "冒號"), "：", ("colon",), ":"),
    CommandRule("semicolon", ("分号", "分號"), "；", ("semicolon",), ";"),
    CommandRule("open_quote", ("引号", "引號", "开始引号", "開始引號"), "「",
                ("quote", "open quote", "begin quote"), '"', OPENING),
    CommandRule("close_quote", ("结束引号", "結束引號", "关闭引号", "關閉引號"), "」",
                ("close quote", "end quote", "unquote"), '"'),
    CommandRule("open_paren", ("左括号", "左括號", "开括号"), "（",
                ("open paren", "open parenthesis", "left paren"), "(", OPENING),
    CommandRule("close_paren", ("右括号", "右括號", "关括号"), "）",
                ("close paren", "close parenthesis", "right paren"), ")"),
    CommandRule("dash", ("破折号", "破折號"), "——", ("dash",), "—", ATTACHED),
    CommandRule("hyphen", ("连字符", "連字符"), "-", ("hyphen",), "-", ATTACHED),
    CommandRule("ellipsis", ("省略号", "省略號"), "……", ("ellipsis", "dot dot dot"), "..."),
    CommandRule("space", ("空格",), " ", ("space",), " ", ATTACHED),
    # Structural
    CommandRule("new_line", ("换行", "換行", "下一行"), "\n",
                ("new line", "newline", "next line"), "\n", ATTACHED),
    CommandRule("new_paragraph", ("新段落", "另起一段", "新段"), "\n\n",
                ("new paragraph", "next paragraph"), "\n\n", ATTACHED),
    CommandRule("tab", ("制表符", "縮進", "缩进"), "\t", ("tab", "indent"), "\t", ATTACHED),
)


def _normalize(phrase: str) -> str:
    return " ".join(phrase.lower().split())


def _alternation(phrases) -> str:
    ordered = sorted(set(phrases), key=len, reverse=True)
    return "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in ordered)


def _build_tables() -> Tuple[Pattern[str], Dict[str, str], Pattern[str], Dict[str, CommandRule]]:
    chinese_marks: Dict[str, str] = {}
    english_rules: Dict[str, CommandRule] = {}
    for rule in COMMAND_RULES:
        for phrase in rule.chinese:
            chinese_marks[phrase] = rule.chinese_mark
        for phrase in rule.english:
            english_rules[_normalize(phrase)] = rule

    chinese_pattern = re.compile(rf"\s*(?P<cmd>{_alternation(chinese_marks)})\s*")
    english_pattern = re.compile(
        rf"(?P<pre>\s*)\b(?P<cmd>{_alternation(english_rules)})\b(?P<post>\s*)",
        re.IGNORECASE,
    )
    return chinese_pattern, chinese_marks, english_pattern, english_rules


_CHINESE_PATTERN, _CHINESE_MARKS, _ENGLISH_PATTERN, _ENGLISH_RULES = _build_tables()

# Spaces hugging a line break or tab are leftovers from the words around it
_STRUCTURE_SPACING = re.compile(r" *([\n\t]+) *")


def _replace_english(match: Match[str]) -> str:
    rule = _ENGLISH_RULES[_normalize(match.group("cmd"))]
    if rule.placement == OPENING:
        return match.group("pre") + rule.english_mark
    if rule.placement == CLOSING:
        return rule.english_mark + match.group("post")
    return rule.english_mark


class VoiceCommandProcessor:
    """
    Replaces spoken command phrases with punctuation and layout.

    Usage:
        commands = VoiceCommandProcessor(enabled=True)
        commands.process("hello comma world period")  # "hello, world."
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def process(self, text: str) -> str:
        if not self.enabled or not text:
            return text

        result = _CHINESE_PATTERN.sub(lambda m: _CHINESE_MARKS[m.group("cmd")], text)
        result = _ENGLISH_PATTERN.sub(_replace_english, result)
        result = _STRUCTURE_SPACING.sub(r"\1", result)

        # Trim spaces only; leading or trailing newlines and tabs were asked for
        return tidy_spacing(result, " ")

    @staticmethod
    def supported_commands() -> Dict[str, Tuple[str, ...]]:
        """Spoken phrases per category, Chinese first."""
        return {rule.category: rule.chinese + rule.english for rule in COMMAND_RULES}
