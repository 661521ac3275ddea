"""Split a credited artist slot into individual names plus their joiners."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .patterns import NEVER, CompiledLexicon, regex

logger = logging.getLogger(__name__)

# Leftovers of credit phrases that sometimes survive in front of a name
_CREDIT_PREFIX_RE = re.compile(r"^(?:(?:re-?mix(?:ed)?|rmx)\s+)?by\s+", re.IGNORECASE)

_BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}

# Symbol joiners left dangling at either end of a slot: "& Alice", "Alice,"
_EDGE_SYMBOLS_RE = re.compile(r"^[\s,;&/+]+|[\s,;&/+]+$")


@dataclass
class ArtistToken:
    """One artist name; ``joiner`` is the separator text that preceded it."""

    name: str
    joiner: Optional[str] = None


def drop_unmatched_brackets(text: str) -> str:
    """Remove bracket characters that have no partner; balanced text is returned untouched."""
    stack: List[int] = []
    unmatched = set()
    for i, ch in enumerate(text):
        if ch in "([{":
            stack.append(i)
        elif ch in _BRACKET_PAIRS:
            if stack and text[stack[-1]] == _BRACKET_PAIRS[ch]:
                stack.pop()
            else:
                unmatched.add(i)
    unmatched.update(stack)

    if not unmatched:
        return text
    return "".join(ch for i, ch in enumerate(text) if i not in unmatched).strip()


def clean_artist_name(name: str) -> str:
    """Trim a candidate name and strip leftover "by"/"remix by" prefixes and orphan brackets."""
    cleaned = name.strip()
    cleaned = _CREDIT_PREFIX_RE.sub("", cleaned)
    cleaned = drop_unmatched_brackets(cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip(" \t-–—:;,")


def _name_text(raw: str) -> str:
    """The cleaned name in ``raw``, or "" when it holds no word characters."""
    name = clean_artist_name(_EDGE_SYMBOLS_RE.sub("", raw))
    return name if re.search(r"\w", name) else ""


class ArtistSplitter:
    """Tokenizes artist text on splitter tokens while keeping the tokens themselves.

    Each name keeps the joiner that preceded it, so the slot can be rebuilt
    with :meth:`join`.
    """

    def __init__(self, compiled: CompiledLexicon):
        self.compiled = compiled

    def _split_pattern(self, include_featuring: bool) -> "re.Pattern[str]":
        alternatives = [self.compiled.splitters]
        if include_featuring and self.compiled.featuring != NEVER:
            # featuring first so "feat." is never cut short by a shorter splitter
            alternatives.insert(0, self.compiled.featuring)
        return regex(r"\s*(" + "|".join(alternatives) + r")\s*")

    def split(self, text: str, include_featuring: bool = False) -> List[ArtistToken]:
        """Split ``text`` into ordered artist tokens.

        A splitter only counts when a name sits on both sides of it. Otherwise
        its text stays part of the neighbouring name, so "Malcolm X" is one
        artist and joining the tokens gives the original slot back.

        Args:
            text: The credited slot, e.g. ``"Artist A & Artist B"``.
            include_featuring: Also break on Featuring-lexicon tokens.

        Returns:
            Tokens in input order. Text without any splitter yields one token;
            empty text yields none.
        """
        text = _EDGE_SYMBOLS_RE.sub("", text or "")
        if not text:
            return []

        # Back-to-back splitters ("Alice, and Bob") compete for one joiner slot
        runs: List[List["re.Match[str]"]] = []
        for match in self._split_pattern(include_featuring).finditer(text):
            if runs and not _name_text(text[runs[-1][-1].end() : match.start()]):
                runs[-1].append(match)
            else:
                runs.append([match])

        tokens: List[ArtistToken] = []
        name_start = 0
        joiner: Optional[str] = None
        for i, run in enumerate(runs):
            after_end = runs[i + 1][0].start() if i + 1 < len(runs) else len(text)
            chosen = None
            for match in reversed(run):
                if _name_text(text[name_start : match.start()]) and _name_text(
                    text[match.end() : after_end]
                ):
                    chosen = match
                    break
            if chosen is None:
                continue
            self._append(tokens, text[name_start : chosen.start()], joiner)
            joiner = chosen.group(1).strip()
            name_start = chosen.end()
        self._append(tokens, text[name_start:], joiner)

        return tokens

    @staticmethod
    def _append(tokens: List[ArtistToken], raw: str, joiner: Optional[str]) -> None:
        name = _name_text(raw)
        if name:
            tokens.append(ArtistToken(name=name, joiner=joiner if tokens else None))

    def split_names(self, text: str, include_featuring: bool = False) -> List[str]:
        return [token.name for token in self.split(text, include_featuring)]

    @staticmethod
    def join(tokens: List[ArtistToken]) -> str:
        """Rebuild the credited slot from tokens, with normalized spacing."""
        pieces: List[str] = []
        for token in tokens:
            if pieces and token.joiner:
                if token.joiner == ",":
                    pieces.append(", ")
                else:
                    pieces.append(f" {token.joiner} ")
            elif pieces:
                pieces.append(" ")
            pieces.append(token.name)
        return "".join(pieces)
