"""Named, user-editable pattern lists recognising one semantic role each."""

import logging
from dataclasses import dataclass, field, fields
from typing import Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

LEXICON_DELIMITER = "|"

# Lexicon names as they appear in settings and on the command line
SPLITTERS = "splitters"
FEATURING = "featuring"
REMIX = "remix"
REMIX_BY = "remix_by"
REMIX_OPTIONAL = "remix_optional"
CAP_KEEP_UPPER = "cap_keep_upper"
CAP_KEEP_LOWER = "cap_keep_lower"
CLEAN_TITLE_PHRASES = "clean_title_phrases"


def split_lexicon(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Turn a delimiter-joined lexicon string into an ordered list of entries.

    Entries are trimmed; empty entries and repeats are dropped. An iterable of
    strings is accepted as well so YAML lists load the same way.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(LEXICON_DELIMITER)
    else:
        parts = [str(p) for p in raw]

    entries: List[str] = []
    seen = set()
    for part in parts:
        entry = part.strip()
        if not entry or entry.lower() in seen:
            continue
        seen.add(entry.lower())
        entries.append(entry)
    return entries


def join_lexicon(entries: Iterable[str]) -> str:
    """Inverse of :func:`split_lexicon`."""
    return f" {LEXICON_DELIMITER} ".join(entries)


@dataclass
class Lexicon:
    """All pattern lists used by the parsers.

    The lists are only ever replaced wholesale through :meth:`update`, which
    refuses empty input, so a lexicon never ends up without entries.
    """

    splitters: List[str] = field(
        default_factory=lambda: [",", "&", "/", "+", "and", "vs.", "vs", "x"]
    )
    featuring: List[str] = field(
        default_factory=lambda: ["featuring", "feat.", "feat", "ft.", "ft"]
    )
    remix: List[str] = field(default_factory=lambda: ["remix", "rmx"])
    remix_by: List[str] = field(
        default_factory=lambda: ["remix by", "remixed by", "rmx by", "reworked by", "rebuild by"]
    )
    remix_optional: List[str] = field(
        default_factory=lambda: [
            "mix",
            "edit",
            "rework",
            "rebuild",
            "bootleg",
            "dub",
            "flip",
            "vip",
            "version",
        ]
    )
    cap_keep_upper: List[str] = field(
        default_factory=lambda: [
            "DJ",
            "MC",
            "EP",
            "LP",
            "VIP",
            "UK",
            "USA",
            "NYC",
            "BPM",
            "II",
            "III",
            "IV",
            "OK",
        ]
    )
    cap_keep_lower: List[str] = field(
        default_factory=lambda: [
            "a",
            "an",
            "the",
            "and",
            "but",
            "or",
            "nor",
            "of",
            "in",
            "on",
            "at",
            "to",
            "by",
            "for",
            "vs.",
            "vs",
        ]
    )
    clean_title_phrases: List[str] = field(
        default_factory=lambda: [
            "Original Mix",
            "Official Music Video",
            "Official Video",
            "Official Audio",
            "Lyric Video",
            "Free Download",
            "Out Now",
            "HQ",
            "HD",
        ]
    )

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def get(self, name: str) -> List[str]:
        if name not in self.names():
            raise KeyError(f"Unknown lexicon: {name}")
        return list(getattr(self, name))

    def update(self, name: str, raw: Union[str, Iterable[str], None]) -> bool:
        """Replace one lexicon from user input.

        Returns False (and keeps the current entries) when the input holds no
        usable entry.
        """
        if name not in self.names():
            raise KeyError(f"Unknown lexicon: {name}")

        entries = split_lexicon(raw)
        if not entries:
            logger.warning(f"Ignoring empty input for lexicon '{name}'")
            return False

        setattr(self, name, entries)
        return True

    def copy(self) -> "Lexicon":
        return Lexicon(**{name: list(getattr(self, name)) for name in self.names()})

    @classmethod
    def from_strings(cls, data: Optional[Dict[str, Union[str, Iterable[str]]]]) -> "Lexicon":
        """Build a lexicon from "|"-joined strings; missing or empty ones keep their defaults."""
        lexicon = cls()
        for name, raw in (data or {}).items():
            if name not in cls.names():
                logger.warning(f"Ignoring unknown lexicon '{name}'")
                continue
            lexicon.update(name, raw)
        return lexicon

    def to_strings(self) -> Dict[str, str]:
        return {name: join_lexicon(getattr(self, name)) for name in self.names()}
