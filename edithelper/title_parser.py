"""Extraction of structured credits from a single free-text track title.

Stages always run in a fixed order (position, duration, main artist,
featuring, remixer). Each stage is an ordered list of matcher strategies tried
until the first one succeeds. Matched text is recorded as spans over the
original title and hidden from later stages; the residual title is built once
at the end from the spans whose removal is enabled.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .artist_splitter import ArtistSplitter, ArtistToken
from .patterns import CompiledLexicon, regex
from .utils import credit_key, normalize_duration, normalize_position

logger = logging.getLogger(__name__)

STAGE_POSITION = "position"
STAGE_DURATION = "duration"
STAGE_MAIN_ARTIST = "main_artist"
STAGE_FEATURING = "featuring"
STAGE_REMIXER = "remixer"

ALL_STAGES = (STAGE_POSITION, STAGE_DURATION, STAGE_MAIN_ARTIST, STAGE_FEATURING, STAGE_REMIXER)

# Leading track position: "A1.", "01 -", "[B2]", "(3)" or a multi-disc "1-04"
POSITION_RE = re.compile(
    r"^\s*(?:(?P<disc>\d{1,2}-\d{1,3})|[\[(]?(?P<pos>[A-Za-z]{0,2}\d{1,3}[A-Za-z]?)[\])]?)"
    r"(?:[.\-\s]+(?=\S)|\s*$)"
)

_DURATION = r"(?:\d{1,2}:)?\d{1,3}:[0-5]\d"

# Bare duration at the very end, together with the separators in front of it
DURATION_TRAILING_RE = re.compile(r"[\s\-–—|,;]*(?<![\d:])(?P<dur>" + _DURATION + r")\s*$")

# "(3:45)" / "[1:02:03]" anywhere in the title
DURATION_BRACKETED_RE = re.compile(r"\s*[\[(]\s*(?P<dur>" + _DURATION + r")\s*[\])]")

# "Artist - Title" / "Artist — Title"; a bare hyphen needs spaces so "Jay-Z" stays whole.
# The dash must sit outside brackets, though a balanced group may be part of the name.
MAIN_ARTIST_RE = re.compile(
    r"^\s*(?P<artist>(?=\S)(?:[^\(\)\[\]]|\([^\(\)\[\]]*\)|\[[^\(\)\[\]]*\])+?)"
    r"(?:\s+-\s+|\s*[–—]\s*)(?=\S)"
)

# Innermost bracket group
GROUP_RE = re.compile(r"[\(\[](?P<inner>[^\(\)\[\]]*)[\)\]]")

# Candidate names never run across these
_CANDIDATE_STOP_RE = re.compile(r"\s[-–—]\s|;|\s*[–—]\s*")

# Boundary for credits found outside brackets: comma, dash, bracket or end
_INLINE_BOUNDARY = r"(?=\s*(?:,|;|\s[-–]\s|[–—]|[\(\)\[\]])|\s*$)"

# Version descriptors that are never remixer names ("Original Mix", "Extended Edit")
NON_CREDIT_WORDS = frozenset(
    {
        "original",
        "extended",
        "radio",
        "club",
        "dub",
        "instrumental",
        "vocal",
        "acoustic",
        "live",
        "album",
        "single",
        "short",
        "long",
        "clean",
        "explicit",
        "main",
        "alternate",
        "alt",
        "vip",
        "edit",
        "mix",
        "version",
        "remaster",
        "remastered",
        "special",
        "full",
        "reprise",
        "bonus",
        "demo",
    }
)


@dataclass
class ExtractionResult:
    """Structured data extracted from one title."""

    position: Optional[str] = None
    duration: Optional[str] = None
    main_artists: List[ArtistToken] = field(default_factory=list)
    featuring_artists: List[str] = field(default_factory=list)
    remixers: List[str] = field(default_factory=list)
    residual_title: str = ""
    methods: Dict[str, str] = field(default_factory=dict)

    @property
    def main_artist_names(self) -> List[str]:
        return [token.name for token in self.main_artists]

    @property
    def found_anything(self) -> bool:
        return bool(
            self.position
            or self.duration
            or self.main_artists
            or self.featuring_artists
            or self.remixers
            or self.methods
        )


@dataclass
class ParseOptions:
    """Caller switches for excising matched text from the residual title.

    Position and duration are always excised.
    """

    remove_main_artist: bool = True
    remove_featuring: bool = True
    remove_remix_credit: bool = True
    optional_remix_only: bool = False


@dataclass
class Span:
    """A matched region of the original title."""

    start: int
    end: int
    stage: str
    remove: bool


@dataclass
class StageMatch:
    """What a strategy found, in view coordinates."""

    start: int
    end: int
    value: Any
    method: str
    remove: bool = True


class TitleSpans:
    """The title as kept/matched regions during one extraction pass.

    Later stages only see the text no earlier stage has claimed. Positions in
    that view are mapped back to the original title, so claims never shift
    each other.
    """

    def __init__(self, text: str):
        self.text = text
        self.spans: List[Span] = []
        self._hidden = [False] * len(text)

    def view(self) -> Tuple[str, List[int]]:
        index = [i for i, hidden in enumerate(self._hidden) if not hidden]
        return "".join(self.text[i] for i in index), index

    def claim(self, index: List[int], start: int, end: int, stage: str, remove: bool) -> None:
        if end <= start:
            return
        orig_start = index[start]
        orig_end = index[end - 1] + 1
        self.spans.append(Span(orig_start, orig_end, stage, remove))
        for i in range(orig_start, orig_end):
            self._hidden[i] = True

    def residual(self) -> str:
        removed = [False] * len(self.text)
        for span in self.spans:
            if span.remove:
                for i in range(span.start, span.end):
                    removed[i] = True

        if not any(removed):
            return self.text.strip()
        return tidy_title("".join(ch for ch, gone in zip(self.text, removed) if not gone))


def tidy_title(text: str) -> str:
    """Collapse what excision leaves behind: stray separators and empty brackets."""
    tidy = re.sub(r"(?<=[\(\[\{])[\s,;:/&+\-–—]+", "", text)
    tidy = re.sub(r"[\s,;:/&+\-–—]+(?=[\)\]\}])", "", tidy)
    tidy = re.sub(r"\(\s*\)|\[\s*\]|\{\s*\}", " ", tidy)
    tidy = re.sub(r"\s+", " ", tidy)
    tidy = re.sub(r"\s+([,;:])", r"\1", tidy)
    return tidy.strip(" \t-–—,;:|/")


def match_position(text: str) -> Optional[Tuple[str, int, int]]:
    """Find a leading track position. Returns (normalized position, start, end)."""
    match = POSITION_RE.match(text)
    if not match:
        return None
    if match.group("disc"):
        disc, track = match.group("disc").split("-")
        value = f"{normalize_position(disc)}-{normalize_position(track)}"
    else:
        value = normalize_position(match.group("pos"))
    return value, match.start(), match.end()


def match_duration(text: str) -> Optional[Tuple[str, int, int, str]]:
    """Find a trailing or bracketed duration. Returns (normalized duration, start, end, method)."""
    match = DURATION_TRAILING_RE.search(text)
    method = "trailing"
    if not match:
        match = DURATION_BRACKETED_RE.search(text)
        method = "bracketed"
    if not match:
        return None
    return normalize_duration(match.group("dur")), match.start(), match.end(), method


@dataclass
class _ParseContext:
    options: ParseOptions
    existing_featuring: frozenset
    existing_remixers: frozenset


Strategy = Callable[[str, _ParseContext], Optional[StageMatch]]


class TitleParser:
    """Rule-based extractor driven by one compiled lexicon snapshot."""

    def __init__(self, compiled: CompiledLexicon, options: Optional[ParseOptions] = None):
        self.compiled = compiled
        self.options = options or ParseOptions()
        self.splitter = ArtistSplitter(compiled)

        # Strategies per stage, in priority order
        self.strategies: Dict[str, List[Tuple[str, Strategy]]] = {
            STAGE_POSITION: [("leading", self._position_leading)],
            STAGE_DURATION: [("duration", self._duration_any)],
            STAGE_MAIN_ARTIST: [("dash", self._main_artist_dash)],
            STAGE_FEATURING: [
                ("bracketed", self._featuring_bracketed),
                ("inline", self._featuring_inline),
            ],
            STAGE_REMIXER: [
                ("bracketed", self._remixer_bracketed),
                ("trailing_keyword", self._remixer_trailing_keyword),
                ("inline_by", self._remixer_inline_by),
            ],
        }

    def parse(
        self,
        title: str,
        stages: Sequence[str] = ALL_STAGES,
        options: Optional[ParseOptions] = None,
        has_existing_artist: bool = False,
        existing_featuring: Iterable[str] = (),
        existing_remixers: Iterable[str] = (),
    ) -> ExtractionResult:
        """Run the selected stages over ``title``.

        Args:
            title: Raw title; it is never modified.
            stages: Stages to run. They always run in pipeline order.
            options: Overrides the parser's default :class:`ParseOptions`.
            has_existing_artist: Skip main-artist extraction, the row already has one.
            existing_featuring: Featuring credits already on the row.
            existing_remixers: Remix credits already on the row.
        """
        for stage in stages:
            if stage not in ALL_STAGES:
                raise ValueError(f"Unknown extraction stage: {stage}")

        ctx = _ParseContext(
            options=options or self.options,
            existing_featuring=frozenset(credit_key(n) for n in existing_featuring),
            existing_remixers=frozenset(credit_key(n) for n in existing_remixers),
        )
        spans = TitleSpans(title or "")
        result = ExtractionResult()

        for stage in ALL_STAGES:
            if stage not in stages:
                continue
            if stage == STAGE_MAIN_ARTIST and has_existing_artist:
                logger.debug("Row already has an artist, skipping main artist extraction")
                continue

            view, index = spans.view()
            for _, strategy in self.strategies[stage]:
                match = strategy(view, ctx)
                if match is None:
                    continue
                spans.claim(index, match.start, match.end, stage, match.remove)
                self._store(result, stage, match.value)
                result.methods[stage] = match.method
                break

        result.residual_title = spans.residual()
        return result

    @staticmethod
    def _store(result: ExtractionResult, stage: str, value: Any) -> None:
        if stage == STAGE_POSITION:
            result.position = value
        elif stage == STAGE_DURATION:
            result.duration = value
        elif stage == STAGE_MAIN_ARTIST:
            result.main_artists = value
        elif stage == STAGE_FEATURING:
            result.featuring_artists = value
        elif stage == STAGE_REMIXER:
            result.remixers = value

    # Position / duration

    def _position_leading(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        found = match_position(view)
        if not found:
            return None
        value, start, end = found
        return StageMatch(start, end, value, "leading")

    def _duration_any(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        found = match_duration(view)
        if not found:
            return None
        value, start, end, method = found
        return StageMatch(start, end, value, method)

    # Main artist

    def _main_artist_dash(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        match = MAIN_ARTIST_RE.match(view)
        if not match:
            return None
        tokens = self.splitter.split(match.group("artist"), include_featuring=True)
        if not tokens:
            return None
        return StageMatch(
            match.start("artist"),
            match.end(),
            tokens,
            "dash",
            remove=ctx.options.remove_main_artist,
        )

    # Featuring

    def _featuring_bracketed(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        feat_re = regex(self.compiled.featuring)
        by_re = regex(self.compiled.remix_by)
        keyword_re = regex(self.compiled.remix_keywords(ctx.options.optional_remix_only))

        for group in GROUP_RE.finditer(view):
            inner = group.group("inner")
            feat = feat_re.search(inner)
            if not feat:
                continue

            rest = inner[feat.end() :]
            end = len(rest)
            stop = _CANDIDATE_STOP_RE.search(rest)
            if stop:
                end = stop.start()

            by = by_re.search(rest, 0, end)
            keyword = keyword_re.search(rest, 0, end)
            if by and (not keyword or by.start() <= keyword.start()):
                end = by.start()
            elif keyword:
                # A remix keyword right after a name: only that first word is featured
                first_word = re.match(r"\s*\S+", rest[: keyword.start()])
                end = first_word.end() if first_word else 0

            candidate = rest[:end]
            names = self._new_names(candidate, ctx.existing_featuring)
            if names is None:
                continue

            base = group.start("inner")
            cand_end = feat.end() + len(candidate.rstrip())
            return StageMatch(
                base + feat.start(),
                base + cand_end,
                names,
                "bracketed",
                remove=ctx.options.remove_featuring,
            )
        return None

    def _featuring_inline(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        pattern = regex(
            self.compiled.featuring + r"\s*(?P<names>[^,;\(\)\[\]]+?)" + _INLINE_BOUNDARY
        )
        match = pattern.search(view)
        if not match:
            return None
        names = self._new_names(match.group("names"), ctx.existing_featuring)
        if names is None:
            return None
        return StageMatch(
            match.start(), match.end(), names, "inline", remove=ctx.options.remove_featuring
        )

    # Remixer

    def _remixer_bracketed(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        """Try each bracket group in turn; within a group "remix by" wins over a bare keyword."""
        for group in GROUP_RE.finditer(view):
            match = self._remix_by_in_group(group, ctx) or self._remix_keyword_in_group(
                group, ctx
            )
            if match:
                return match
        return None

    def _remix_by_in_group(
        self, group: "re.Match[str]", ctx: _ParseContext
    ) -> Optional[StageMatch]:
        inner = group.group("inner")
        match = regex(self.compiled.remix_by + r"\s+(?P<names>.+)").search(inner)
        if not match:
            return None

        candidate = self._truncate_at_featuring(match.group("names"))
        names = self._new_names(candidate, ctx.existing_remixers)
        if names is None:
            return None

        base = group.start("inner")
        end = match.start("names") + len(candidate.rstrip())
        return StageMatch(
            base + match.start(),
            base + end,
            names,
            "bracketed_by",
            remove=ctx.options.remove_remix_credit,
        )

    def _remix_keyword_in_group(
        self, group: "re.Match[str]", ctx: _ParseContext
    ) -> Optional[StageMatch]:
        inner = group.group("inner")
        keyword_re = regex(self.compiled.remix_keywords(ctx.options.optional_remix_only))
        keyword = keyword_re.search(inner)
        if not keyword:
            return None

        # Only the clause that holds the keyword: "Radio Edit - Artist Remix"
        before = re.split(r"\s[-–—]\s|;", inner[: keyword.start()])[-1]
        if before.strip():
            feat = regex(self.compiled.featuring).search(before)
            if feat:
                head = before[: feat.start()]
                if head.strip():
                    before = head
                else:
                    # "feat. Guest Remixer Remix": the first word is the featured guest
                    before = re.sub(r"^\s*\S+", "", before[feat.end() :], count=1)
            candidate = before
        else:
            candidate = self._truncate_at_featuring(inner[keyword.end() :])

        if self._is_version_descriptor(candidate):
            return None
        names = self._new_names(candidate, ctx.existing_remixers)
        if names is None:
            return None

        # "<name> Remix" is the version title and stays in the title
        return StageMatch(group.start(), group.end(), names, "bracketed_keyword", remove=False)

    def _remixer_trailing_keyword(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        keywords = self.compiled.remix_keywords(ctx.options.optional_remix_only)
        pattern = regex(r"(?P<names>[^\-–—\(\)\[\]]+?)\s+" + keywords + r"\s*$")
        match = pattern.search(view)
        if not match:
            return None

        candidate = self._truncate_at_featuring(match.group("names"))
        if self._is_version_descriptor(candidate):
            return None
        names = self._new_names(candidate, ctx.existing_remixers)
        if names is None:
            return None
        return StageMatch(match.start(), match.end(), names, "trailing_keyword", remove=False)

    def _remixer_inline_by(self, view: str, ctx: _ParseContext) -> Optional[StageMatch]:
        pattern = regex(
            self.compiled.remix_by + r"\s+(?P<names>[^,;\(\)\[\]]+?)" + _INLINE_BOUNDARY
        )
        match = pattern.search(view)
        if not match:
            return None

        candidate = self._truncate_at_featuring(match.group("names"))
        names = self._new_names(candidate, ctx.existing_remixers)
        if names is None:
            return None
        end = match.start("names") + len(candidate.rstrip())
        return StageMatch(
            match.start(), end, names, "inline_by", remove=ctx.options.remove_remix_credit
        )

    # Helpers

    def _truncate_at_featuring(self, text: str) -> str:
        feat = regex(self.compiled.featuring).search(text)
        if feat:
            text = text[: feat.start()]
        stop = _CANDIDATE_STOP_RE.search(text)
        if stop:
            text = text[: stop.start()]
        return text

    @staticmethod
    def _is_version_descriptor(candidate: str) -> bool:
        words = re.findall(r"[\w']+", candidate.lower())
        return bool(words) and all(word in NON_CREDIT_WORDS for word in words)

    def _new_names(self, candidate: str, existing: frozenset) -> Optional[List[str]]:
        """Split a candidate into names and drop those already credited.

        Returns None when the candidate holds no name at all, and an empty list
        when every name is already credited, so a re-run still claims the text
        but adds nothing.
        """
        names = self.splitter.split_names(candidate)
        if not names:
            return None

        fresh: List[str] = []
        seen = set(existing)
        for name in names:
            key = credit_key(name)
            if not key or key in seen:
                continue
            seen.add(key)
            fresh.append(name)
        return fresh
