"""
Lightweight filler-word removal.

Runs before LLM refinement as a quick, local cleanup. Fillers are removed at
the start of the utterance, right after sentence punctuation (which is kept),
or when they stand alone between spaces. Each aggressiveness level widens
the word list.
"""

import functools
import re
from enum import IntEnum
from typing import List, Optional, Pattern, Tuple


class FilterLevel(IntEnum):
    MINIMAL = 0     # Only obvious hesitation sounds
    MODERATE = 1    # Common fillers
    AGGRESSIVE = 2  # Everything, including hedging phrases

    @classmethod
    def coerce(cls, value: int) -> "FilterLevel":
        """Clamp any stored integer to a valid level."""
        return cls(min(max(int(value), cls.MINIMAL), cls.AGGRESSIVE))


CHINESE_FILLERS: Tuple[str, ...] = (
    # Single character fillers
    "额", "嗯", "啊", "呃", "哦", "噢", "唉", "哎",
    # Two character fillers
    "那个", "这个", "就是", "然后", "所以", "因为", "但是", "可是",
    "其实", "反正", "总之", "大概", "应该", "可能", "好像", "感觉",
    # Common speech fillers
    "就是说", "怎么说", "你知道", "我觉得", "我感觉", "我想说",
    "说实话", "老实说", "坦白说", "不是说", "我是说",
    # Hesitation patterns
    "嗯嗯", "额额", "啊啊", "呃呃", "嗯额", "额嗯",
)

ENGLISH_FILLERS: Tuple[str, ...] = (
    # Single word fillers
    "um", "uh", "er", "ah", "oh", "hmm", "hm", "mm",
    "like", "so", "well", "right", "okay", "ok",
    # Phrases
    "you know", "i mean", "you see", "basically", "actually",
    "literally", "honestly", "seriously", "obviously",
    "kind of", "sort of", "kinda", "sorta",
    "i guess", "i think", "i suppose", "i believe",
    "to be honest", "to be fair", "in fact", "as a matter of fact",
)

MINIMAL_CHINESE = ("额", "嗯", "啊", "呃", "嗯嗯", "额额", "啊啊", "呃呃")
MINIMAL_ENGLISH = ("um", "uh", "er", "ah", "hmm", "hm", "mm")

MODERATE_CHINESE_COUNT = 16
MODERATE_ENGLISH_COUNT = 14


def fillers_for_level(level: FilterLevel) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """(chinese, english) filler lists for an aggressiveness level."""
    if level == FilterLevel.MINIMAL:
        return MINIMAL_CHINESE, MINIMAL_ENGLISH
    if level == FilterLevel.MODERATE:
        return CHINESE_FILLERS[:MODERATE_CHINESE_COUNT], ENGLISH_FILLERS[:MODERATE_ENGLISH_COUNT]
    return CHINESE_FILLERS, ENGLISH_FILLERS


def _alternation(words: Tuple[str, ...]) -> str:
    """Regex alternation, longest first so "嗯嗯" beats "嗯" and "okay" beats "ok"."""
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in ordered)


@functools.lru_cache(maxsize=None)
def _compiled_patterns(level: FilterLevel) -> List[Tuple[Pattern[str], str]]:
    chinese, english = fillers_for_level(level)

    # A run of one or more fillers, each followed by optional separators
    zh_run = rf"(?:(?:{_alternation(chinese)})[，、,\s]*)+"
    en_run = rf"(?:(?:{_alternation(english)})\b[,\s]*)+"

    flags = re.IGNORECASE
    return [
        # Chinese: at start, after punctuation (kept), after whitespace
        (re.compile(rf"^\s*{zh_run}", flags), ""),
        (re.compile(rf"([。！？，、])\s*{zh_run}", flags), r"\1"),
        (re.compile(rf"\s+{zh_run}", flags), " "),
        # English: at start, after sentence end (kept), standalone mid-sentence
        (re.compile(rf"^\s*{en_run}", flags), ""),
        (re.compile(rf"([.!?])\s*{en_run}", flags), r"\1 "),
        (re.compile(rf"\s+{en_run}(?=[\s,.!?]|$)", flags), " "),
    ]


_CLEANUP_RULES: List[Tuple[Pattern[str], str]] = [
    # Collapse runs of spaces (newlines and tabs are structure, keep them)
    (re.compile(r" {2,}"), " "),
    # No space before closing or Chinese punctuation
    (re.compile(r" +([,.!?;:)\]}。，、！？：；）】」』])"), r"\1"),
    # No space after opening punctuation
    (re.compile(r"([（【「『(\[]) +"), r"\1"),
    # Collapse repeated terminal punctuation
    (re.compile(r"([。！？]){2,}"), r"\1"),
    (re.compile(r"([!?])\1+"), r"\1"),
]


def tidy_spacing(text: str, strip_chars: Optional[str] = None) -> str:
    """
    Fix spacing around punctuation after words were removed or replaced.

    Args:
        text: Text to clean
        strip_chars: Characters trimmed from both ends (default: all whitespace)
    """
    for pattern, replacement in _CLEANUP_RULES:
        text = pattern.sub(replacement, text)
    return text.strip(strip_chars)


class FillerWordFilter:
    """
    Removes filler words from transcribed text.

    Usage:
        filler = FillerWordFilter(enabled=True, level=FilterLevel.MODERATE)
        text = filler.filter("Um, so I think we should go.")
    """

    def __init__(self, enabled: bool = True, level: int = FilterLevel.MODERATE):
        self.enabled = enabled
        self.level = FilterLevel.coerce(level)

    def filter(self, text: str) -> str:
        """
        Return `text` without filler words.

        Passes repeat until nothing changes, so filtering twice is the
        same as filtering once.
        """
        if not self.enabled or not text:
            return text

        result = text
        while True:
            updated = self._filter_once(result)
            if updated == result:
                return result
            result = updated

    def _filter_once(self, text: str) -> str:
        for pattern, replacement in _compiled_patterns(self.level):
            text = pattern.sub(replacement, text)
        return tidy_spacing(text)
