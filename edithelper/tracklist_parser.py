"""Parsing of a pasted, free-form multi-line tracklist."""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .title_parser import match_duration, match_position
from .utils import collapse_whitespace, normalize_position

logger = logging.getLogger(__name__)

# Words music shops and streaming pages append to every tracklist line
NOISE_WORDS = (
    "video",
    "buy",
    "lyrics",
    "info",
    "stream",
    "download",
    "listen",
    "play",
    "preview",
    "share",
)

_TRAILING_NOISE_RE = re.compile(
    r"(?:[\s\-–—|•·,]*\b(?:" + "|".join(NOISE_WORDS) + r")\b[\s.:]*)+$", re.IGNORECASE
)

# A line holding nothing but a position label: "A1", "2.", "1-04", "[B2]"
_LABEL_ONLY_RE = re.compile(
    r"^\s*(?:(?P<disc>\d{1,2}-\d{1,3})|[\[(]?(?P<pos>[A-Za-z]{0,2}\d{1,3}[A-Za-z]?)[\])]?)[.:]?\s*$"
)

_TRAILING_NUMBER_RE = re.compile(r"(\d+)\D*$")


@dataclass
class TracklistEntry:
    """One parsed tracklist line."""

    position: Optional[str] = None
    title: str = ""
    duration: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TracklistTextParser:
    """Turns pasted text into ordered (position, title, duration) entries."""

    def normalize(self, text: str) -> List[str]:
        """Rejoin lines so that every logical line holds one track.

        Shops often put the position on a line of its own; such a label is
        joined with the lines below it until the next label or the next line
        that carries its own position.
        """
        logical: List[str] = []
        pending: Optional[List[str]] = None

        for raw in (text or "").splitlines():
            line = raw.strip()
            if not line:
                continue

            if _LABEL_ONLY_RE.match(line):
                if pending is not None:
                    logical.append(" ".join(pending))
                pending = [line.rstrip(":")]
                continue

            if pending is not None:
                if len(pending) > 1 and match_position(line):
                    logical.append(" ".join(pending))
                    pending = None
                    logical.append(line)
                else:
                    pending.append(line)
                continue

            logical.append(line)

        if pending is not None:
            logical.append(" ".join(pending))
        return logical

    def parse_line(self, line: str) -> Optional[TracklistEntry]:
        """Parse one logical line; returns None when it holds neither title nor position."""
        text = line.strip()
        stripped = _TRAILING_NOISE_RE.sub("", text).strip()
        if stripped:
            text = stripped

        entry = TracklistEntry()

        label = _LABEL_ONLY_RE.match(text)
        if label:
            entry.position = self._label_position(label)
            return entry

        found = match_position(text)
        if found:
            entry.position, _, end = found
            text = text[end:]

        duration = match_duration(text)
        if duration:
            entry.duration, start, end, _ = duration
            text = text[:start] + text[end:]

        entry.title = collapse_whitespace(text).strip(" -–—|")
        if not entry.title and not entry.position:
            return None
        return entry

    def parse(self, text: str) -> List[TracklistEntry]:
        entries: List[TracklistEntry] = []
        for line in self.normalize(text):
            entry = self.parse_line(line)
            if entry is None:
                logger.debug(f"Dropping tracklist line without title or position: {line!r}")
                continue
            entries.append(entry)
        logger.info(f"Parsed {len(entries)} tracklist entries")
        return entries

    @staticmethod
    def infer_row_offset(entries: List[TracklistEntry]) -> int:
        """Number of blank rows that precede the first entry.

        A tracklist starting at "A3" or "5" is placed as if the earlier tracks
        were already on the release.
        """
        if not entries or not entries[0].position:
            return 0
        match = _TRAILING_NUMBER_RE.search(entries[0].position)
        if not match:
            return 0
        return max(int(match.group(1)) - 1, 0)

    @staticmethod
    def _label_position(label: "re.Match[str]") -> str:
        if label.group("disc"):
            disc, track = label.group("disc").split("-")
            return f"{normalize_position(disc)}-{normalize_position(track)}"
        return normalize_position(label.group("pos"))
