"""Exception-aware title capitalization that recurses into bracket groups."""

import logging
import re
from typing import List, Tuple

from .patterns import CompiledLexicon

logger = logging.getLogger(__name__)

_OPENERS = {"(": ")", "[": "]", "{": "}"}

# lead punctuation / core / trailing punctuation of one whitespace-free word
_WORD_RE = re.compile(r"^(?P<lead>[^\w']*)(?P<core>.*?)(?P<trail>[^\w']*)$", re.DOTALL)

_DOTTED_ACRONYM_RE = re.compile(r"^(?:[^\W\d_]\.)+[^\W\d_]?$")

_COMPOUND_SPLIT_RE = re.compile(r"([\-/])")

_AFTER_COLON_RE = re.compile(r"(:\s+)([^\W\d_])")


def find_bracket_groups(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) of every top-level balanced bracket group.

    ``end`` is exclusive and includes the closing bracket. Brackets without a
    partner are left as plain characters.
    """
    groups: List[Tuple[int, int]] = []
    stack: List[Tuple[int, str]] = []
    for i, ch in enumerate(text):
        if ch in _OPENERS:
            stack.append((i, _OPENERS[ch]))
        elif stack and ch == stack[-1][1]:
            start, _ = stack.pop()
            if not stack:
                groups.append((start, i + 1))
    return groups


class TitleCapitalizer:
    """Title-cases words while honouring the CapKeepUpper/CapKeepLower lexicons."""

    def __init__(self, compiled: CompiledLexicon):
        self.keep_upper = compiled.cap_keep_upper
        self.keep_lower = compiled.cap_keep_lower

    def capitalize(self, title: str) -> str:
        if not title:
            return title
        result, _ = self._capitalize_text(title, first=True)
        return _AFTER_COLON_RE.sub(lambda m: m.group(1) + m.group(2).upper(), result)

    def _capitalize_text(self, text: str, first: bool) -> Tuple[str, bool]:
        pieces: List[str] = []
        pos = 0
        for start, end in find_bracket_groups(text):
            chunk, first = self._capitalize_words(text[pos:start], first)
            pieces.append(chunk)

            # a bracket group is a sub-title of its own
            inner, _ = self._capitalize_text(text[start + 1 : end - 1], first=True)
            pieces.append(text[start] + inner + text[end - 1])
            first = False
            pos = end

        chunk, first = self._capitalize_words(text[pos:], first)
        pieces.append(chunk)
        return "".join(pieces), first

    def _capitalize_words(self, text: str, first: bool) -> Tuple[str, bool]:
        parts = re.split(r"(\s+)", text)
        for i, part in enumerate(parts):
            if not part or part.isspace():
                continue
            word, had_core = self._capitalize_word(part, first)
            parts[i] = word
            if had_core:
                first = False
        return "".join(parts), first

    def _capitalize_word(self, word: str, first: bool) -> Tuple[str, bool]:
        match = _WORD_RE.match(word)
        lead, core, trail = match.group("lead"), match.group("core"), match.group("trail")
        if not core:
            return word, False

        if core.lower() not in self.keep_upper and _COMPOUND_SPLIT_RE.search(core):
            segments = _COMPOUND_SPLIT_RE.split(core)
            for i, segment in enumerate(segments):
                if i % 2 == 0 and segment:
                    segments[i] = self._capitalize_core(segment, first and i == 0)
            return lead + "".join(segments) + trail, True

        # "d.j." keeps its trailing dot in ``trail``; check the whole shape
        if _DOTTED_ACRONYM_RE.match(core + trail[:1]) and "." in core:
            return lead + core.upper() + trail, True

        return lead + self._capitalize_core(core, first) + trail, True

    def _capitalize_core(self, core: str, first: bool) -> str:
        lowered = core.lower()
        if lowered in self.keep_upper:
            return core.upper()
        if not first and lowered in self.keep_lower:
            return lowered
        if _DOTTED_ACRONYM_RE.match(core) and "." in core:
            return core.upper()
        return core[:1].upper() + core[1:].lower()
