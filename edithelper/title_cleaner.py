"""Removal of redundant title phrases and bracket normalization."""

import logging
import re
from typing import Dict, List, Tuple

from .patterns import NEVER, CompiledLexicon, regex

logger = logging.getLogger(__name__)

_TO_PARENS: Dict[str, str] = {"[": "(", "]": ")", "{": "(", "}": ")"}
_PAIRS = {")": "(", "]": "[", "}": "{"}


def fix_spacing(text: str) -> str:
    """Normalize spaces around brackets and commas and drop empty bracket pairs."""
    fixed = re.sub(r"\s+", " ", text)
    fixed = re.sub(r"([\(\[\{])\s+", r"\1", fixed)
    fixed = re.sub(r"\s+([\)\]\},])", r"\1", fixed)
    fixed = re.sub(r"\(\)|\[\]|\{\}", "", fixed)
    fixed = re.sub(r"(?<=[^\s\(\[\{\-/])([\(\[\{])", r" \1", fixed)
    fixed = re.sub(r"\s+", " ", fixed)
    return fixed.strip(" \t-–—|")


def convert_brackets_to_parens(title: str) -> str:
    """Turn matched ``[...]`` and ``{...}`` groups into ``(...)``.

    Unmatched brackets are left alone.
    """
    stack: List[Tuple[int, str]] = []
    converted = list(title)
    for i, ch in enumerate(title):
        if ch in "([{":
            stack.append((i, ch))
        elif ch in _PAIRS:
            if stack and stack[-1][1] == _PAIRS[ch]:
                start, opener = stack.pop()
                if opener != "(":
                    converted[start] = _TO_PARENS[opener]
                    converted[i] = _TO_PARENS[ch]
            else:
                # a stray closer breaks any pairing across it
                stack.clear()
    return "".join(converted)


class TitleCleaner:
    """Removes CleanTitlePhrases entries such as "Original Mix" or "Official Video"."""

    def __init__(self, compiled: CompiledLexicon):
        self.compiled = compiled

    def clean(self, title: str) -> str:
        if not title:
            return title

        phrases = self.compiled.clean_title_phrases
        cleaned = title
        if phrases != NEVER:
            # "(Original Mix)", "[Official Video]"
            cleaned = regex(r"\s*[\(\[\{]\s*" + phrases + r"\s*[\)\]\}]").sub(" ", cleaned)
            # "Song - Official Audio", "Song HQ"
            cleaned = regex(r"(?:\s+[-–—|])?\s*" + phrases).sub(" ", cleaned)

        result = fix_spacing(cleaned)
        if result != title:
            logger.debug(f"Cleaned title {title!r} -> {result!r}")
        return result
