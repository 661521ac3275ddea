"""Expansion of raw lexicon entries into regular expressions.

Lexicon entries are plain user strings. They are turned into regex fragments
here and joined into one alternation per lexicon; call sites add their own
anchoring around the alternation.
"""

import functools
import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from .lexicon import Lexicon

logger = logging.getLogger(__name__)

CONTEXT_DEFAULT = "default"
CONTEXT_OPTIONAL = "optional"
CONTEXT_BY = "by"

# Alternation that can never match, used when a lexicon has no usable entry
NEVER = r"(?!x)x"

# "remix", "remixed by", "rebuild", "reworked by" ... get an optional hyphen after "re"
_RE_PREFIX_SHAPE = re.compile(r"^re-?(?P<word>[a-z]+?)(?P<ed>ed)?(?P<by>\s+by)?$", re.IGNORECASE)


def compile_token(raw: str, context: str = CONTEXT_DEFAULT) -> Optional[str]:
    """Expand one lexicon entry into a regex fragment.

    Returns None for entries that are empty or do not compile.
    """
    token = (raw or "").strip()
    if not token:
        return None

    shaped = _RE_PREFIX_SHAPE.match(token)
    if shaped:
        body = "re-?" + re.escape(shaped.group("word"))
        if shaped.group("ed"):
            body += "ed"
        if shaped.group("by"):
            body += r"\s+by"
    else:
        body = r"\s+".join(re.escape(part) for part in token.split())

    # Optional "mix" must not fire on the tail of "remix" / "re-mix"
    if context == CONTEXT_OPTIONAL and token.lower() == "mix":
        body = r"(?<!re)(?<!re-)" + body

    # Word guards only on alphanumeric edges: "/", "+", "&" stay literal
    if token[0].isalnum():
        body = r"(?<!\w)" + body
    if token[-1].isalnum():
        body = body + r"(?!\w)"

    try:
        re.compile(body, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Skipping invalid lexicon entry {token!r}: {e}")
        return None

    return body


def compile_alternation(tokens: Iterable[str], context: str = CONTEXT_DEFAULT) -> str:
    """Join the fragments of all usable entries, longest entry first.

    Longest-first ordering lets "featuring" win over "feat" and "vs." over "vs"
    at the same position.
    """
    ordered = sorted(
        (t for t in tokens if t and t.strip()), key=lambda t: len(t.strip()), reverse=True
    )
    fragments: List[str] = []
    for token in ordered:
        fragment = compile_token(token, context)
        if fragment and fragment not in fragments:
            fragments.append(fragment)

    if not fragments:
        return NEVER
    return "(?:" + "|".join(fragments) + ")"


@functools.lru_cache(maxsize=256)
def regex(pattern: str) -> "re.Pattern[str]":
    """Compile a case-insensitive pattern built from lexicon alternations."""
    return re.compile(pattern, re.IGNORECASE | re.UNICODE)


def _word_set(entries: Iterable[str]) -> FrozenSet[str]:
    """Lowercased entries stripped of surrounding punctuation, for whole-word lookups."""
    words = set()
    for entry in entries:
        core = re.sub(r"^[^\w']+|[^\w']+$", "", entry.strip()).lower()
        if core:
            words.add(core)
    return frozenset(words)


@dataclass(frozen=True)
class CompiledLexicon:
    """Immutable matcher snapshot derived from one Lexicon state."""

    splitters: str
    featuring: str
    remix: str
    remix_by: str
    remix_optional: str
    clean_title_phrases: str
    cap_keep_upper: FrozenSet[str]
    cap_keep_lower: FrozenSet[str]

    def remix_keywords(self, optional_only: bool = False) -> str:
        return self.remix_optional if optional_only else self.remix


def compile_lexicon(lexicon: Lexicon) -> CompiledLexicon:
    """Derive all matchers from a lexicon. Pure; call it again after every lexicon commit."""
    compiled = CompiledLexicon(
        splitters=compile_alternation(lexicon.splitters),
        featuring=compile_alternation(lexicon.featuring),
        remix=compile_alternation(lexicon.remix),
        remix_by=compile_alternation(lexicon.remix_by, CONTEXT_BY),
        remix_optional=compile_alternation(lexicon.remix_optional, CONTEXT_OPTIONAL),
        clean_title_phrases=compile_alternation(lexicon.clean_title_phrases),
        cap_keep_upper=_word_set(lexicon.cap_keep_upper),
        cap_keep_lower=_word_set(lexicon.cap_keep_lower),
    )
    logger.debug("Lexicon compiled")
    return compiled
