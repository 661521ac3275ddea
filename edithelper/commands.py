"""Commands that edit a whole release through an adapter.

Every command walks the track rows one at a time, writes its changes through
the adapter and records them as one undoable action. Failures are counted per
row; a command always returns a :class:`CommandSummary`.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from .adapter import (
    FIELD_DURATION,
    FIELD_JOIN,
    FIELD_NAME,
    FIELD_POSITION,
    FIELD_ROLE,
    FIELD_TITLE,
    Adapter,
    AdapterError,
    StructuralKind,
    field_id,
)
from .capitalizer import TitleCapitalizer
from .config import HelperConfig, LexiconConfig, save_config
from .history import Action, ActionHistory, FieldChange, RevertOutcome
from .lexicon import Lexicon
from .patterns import CompiledLexicon, compile_lexicon
from .title_cleaner import TitleCleaner, convert_brackets_to_parens
from .title_parser import (
    STAGE_DURATION,
    STAGE_FEATURING,
    STAGE_MAIN_ARTIST,
    STAGE_POSITION,
    STAGE_REMIXER,
    ParseOptions,
    TitleParser,
)
from .tracklist_parser import TracklistEntry, TracklistTextParser

logger = logging.getLogger(__name__)

ROLE_FEATURING = "Featuring"
ROLE_REMIX = "Remix"

# Batches larger than this get a progress bar
PROGRESS_BAR_THRESHOLD = 10

COMMANDS = (
    "extract_duration",
    "extract_position",
    "extract_main_artist",
    "extract_featuring",
    "extract_remixer",
    "capitalize_titles",
    "clean_titles",
    "convert_brackets_to_parens",
    "import_tracklist",
    "revert_last",
    "revert_all",
)


@dataclass
class CommandSummary:
    """Outcome counts of one command."""

    command: str
    processed_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    warnings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"{self.command}: {self.processed_count} processed, {self.skipped_count} skipped, "
            f"{self.failed_count} failed, {self.warnings} warnings"
        )


RowHandler = Callable[[Any, Action], Awaitable[bool]]


class EditHelper:
    """Runs edit commands against one adapter.

    The lexicon can be edited at any time with :meth:`update_lexicon`; the
    changes take effect at the next :meth:`commit_lexicon`. Each command works
    on the compiled snapshot current when it starts.
    """

    def __init__(self, adapter: Adapter, config: Optional[HelperConfig] = None):
        self.adapter = adapter
        self.config = config or HelperConfig()
        self.lexicon: Lexicon = self.config.lexicons.to_lexicon()
        self._compiled: CompiledLexicon = compile_lexicon(self.lexicon)
        self.history = ActionHistory(
            max_actions=self.config.history.max_actions,
            removal_retry_attempts=self.config.history.removal_retry_attempts,
            removal_retry_delay=self.config.history.removal_retry_delay_seconds,
        )
        self.tracklist_parser = TracklistTextParser()

    # Lexicon and settings

    @property
    def compiled(self) -> CompiledLexicon:
        return self._compiled

    def update_lexicon(self, name: str, raw: Any) -> bool:
        """Stage new entries for one lexicon. Empty input is ignored."""
        return self.lexicon.update(name, raw)

    def commit_lexicon(self) -> CompiledLexicon:
        self._compiled = compile_lexicon(self.lexicon)
        self.config.lexicons = LexiconConfig.from_lexicon(self.lexicon)
        logger.info("Lexicon committed")
        return self._compiled

    def save_settings(self, path: str) -> None:
        self.commit_lexicon()
        save_config(self.config, path)

    def parse_options(self, optional_only: bool = False) -> ParseOptions:
        extraction = self.config.extraction
        return ParseOptions(
            remove_main_artist=extraction.remove_main_artist_from_title,
            remove_featuring=extraction.remove_feat_from_title,
            remove_remix_credit=extraction.remove_remix_credit_from_title,
            optional_remix_only=optional_only,
        )

    # Commands

    async def extract_duration(self) -> CommandSummary:
        parser = TitleParser(self._compiled, self.parse_options())
        return await self._run_rows(
            "extract_duration",
            lambda row_id, action: self._extract_scalar(
                row_id, action, parser, STAGE_DURATION, FIELD_DURATION
            ),
        )

    async def extract_position(self) -> CommandSummary:
        parser = TitleParser(self._compiled, self.parse_options())
        return await self._run_rows(
            "extract_position",
            lambda row_id, action: self._extract_scalar(
                row_id, action, parser, STAGE_POSITION, FIELD_POSITION
            ),
        )

    async def extract_main_artist(self) -> CommandSummary:
        parser = TitleParser(self._compiled, self.parse_options())
        return await self._run_rows(
            "extract_main_artist",
            lambda row_id, action: self._extract_main_artist(row_id, action, parser),
        )

    async def extract_featuring(self) -> CommandSummary:
        parser = TitleParser(self._compiled, self.parse_options())
        return await self._run_rows(
            "extract_featuring",
            lambda row_id, action: self._extract_role(
                row_id, action, parser, STAGE_FEATURING, ROLE_FEATURING
            ),
        )

    async def extract_remixer(self, optional_only: bool = False) -> CommandSummary:
        parser = TitleParser(self._compiled, self.parse_options(optional_only))
        return await self._run_rows(
            "extract_remixer",
            lambda row_id, action: self._extract_role(
                row_id, action, parser, STAGE_REMIXER, ROLE_REMIX
            ),
        )

    async def capitalize_titles(self) -> CommandSummary:
        capitalizer = TitleCapitalizer(self._compiled)
        return await self._run_rows(
            "capitalize_titles",
            lambda row_id, action: self._rewrite_title(row_id, action, capitalizer.capitalize),
        )

    async def clean_titles(self) -> CommandSummary:
        cleaner = TitleCleaner(self._compiled)
        return await self._run_rows(
            "clean_titles",
            lambda row_id, action: self._rewrite_title(row_id, action, cleaner.clean),
        )

    async def convert_brackets_to_parens(self) -> CommandSummary:
        return await self._run_rows(
            "convert_brackets_to_parens",
            lambda row_id, action: self._rewrite_title(row_id, action, convert_brackets_to_parens),
        )

    async def import_tracklist(self, text: str) -> CommandSummary:
        """Fill rows from pasted tracklist text, adding rows where the release has too few."""
        kind = "import_tracklist"
        entries = self.tracklist_parser.parse(text)
        if not entries:
            logger.info("Tracklist text holds no tracks, nothing to import")
            return CommandSummary(kind)

        offset = TracklistTextParser.infer_row_offset(entries)
        action = Action(kind)
        rows = await self.adapter.list_rows()

        needed = offset + len(entries)
        while len(rows) < needed:
            anchor = rows[-1] if rows else ""
            try:
                entry = await self.adapter.create_structural_entry(anchor, StructuralKind.TRACK_ROW)
            except AdapterError as e:
                logger.warning(f"Could not add track row {len(rows) + 1}: {e}")
                break
            action.added_structural.append(entry.ref)
            rows.append(entry.ref)

        if offset:
            logger.info(f"Tracklist starts at track {offset + 1}, leaving {offset} rows blank")

        targets = list(zip(rows[offset:], entries))
        summary = await self._run_batch(
            kind,
            targets,
            lambda target, act: self._fill_row(target[0], target[1], act),
            action=action,
        )
        missing = len(entries) - len(targets)
        if missing > 0:
            logger.warning(f"{missing} tracklist entries had no row to go into")
            summary.failed_count += missing
        return summary

    async def revert_last(self) -> CommandSummary:
        return self._revert_summary("revert_last", await self.history.revert_last(self.adapter))

    async def revert_all(self) -> CommandSummary:
        return self._revert_summary("revert_all", await self.history.revert_all(self.adapter))

    async def run(self, command: str, **kwargs: Any) -> CommandSummary:
        """Run a command by name, e.g. ``"extract_remixer"``."""
        if command not in COMMANDS:
            raise ValueError(f"Unknown command: {command}")
        return await getattr(self, command)(**kwargs)

    # Batch machinery

    async def _run_rows(self, kind: str, handler: RowHandler) -> CommandSummary:
        rows = await self.adapter.list_rows()
        return await self._run_batch(kind, rows, handler)

    async def _run_batch(
        self,
        kind: str,
        items: Sequence[Any],
        handler: RowHandler,
        action: Optional[Action] = None,
    ) -> CommandSummary:
        summary = CommandSummary(kind)
        action = action or Action(kind)
        logger.info(f"Starting {kind} on {len(items)} rows")

        progress = None
        iterator: Any = items
        if self.config.ui.show_progress_bar and len(items) > PROGRESS_BAR_THRESHOLD:
            progress = tqdm(items, desc=kind, unit="row")
            iterator = progress

        try:
            for index, item in enumerate(iterator, start=1):
                try:
                    changed = await asyncio.wait_for(
                        handler(item, action), timeout=self.config.adapter.row_timeout_seconds
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"{kind}: row {index} timed out, skipping")
                    summary.failed_count += 1
                    continue
                except AdapterError as e:
                    logger.warning(f"{kind}: row {index} failed ({e.kind}): {e}")
                    summary.failed_count += 1
                    continue

                if changed:
                    summary.processed_count += 1
                else:
                    summary.skipped_count += 1
        finally:
            if progress is not None:
                progress.close()

        if not action.is_empty:
            self.history.push(action)
        logger.info(str(summary))
        return summary

    async def _apply(
        self, action: Action, fid: str, new_value: str, structural_ref: Optional[str] = None
    ) -> bool:
        """Write a field and record the change, reading the old value right before writing."""
        old_value = await self.adapter.get_field_value(fid)
        if old_value == new_value:
            return False
        await self.adapter.set_field_value(fid, new_value)
        action.changes.append(FieldChange(fid, old_value, new_value, structural_ref))
        return True

    async def _add_credit(
        self, row_id: str, kind: StructuralKind, values: Dict[str, str], action: Action
    ) -> None:
        entry = await self.adapter.create_structural_entry(row_id, kind)
        action.added_structural.append(entry.ref)
        for name, value in values.items():
            await self._apply(action, entry.field_ids[name], value, structural_ref=entry.ref)

    async def _credited_names(self, row_id: str, role: str) -> List[str]:
        names = []
        for entry in await self.adapter.list_credits(row_id, StructuralKind.ROLE_CREDIT):
            entry_role = await self.adapter.get_field_value(entry.field_ids[FIELD_ROLE])
            if role.lower() in entry_role.lower():
                names.append(await self.adapter.get_field_value(entry.field_ids[FIELD_NAME]))
        return names

    async def _has_artist(self, row_id: str) -> bool:
        for entry in await self.adapter.list_credits(row_id, StructuralKind.ARTIST_CREDIT):
            if (await self.adapter.get_field_value(entry.field_ids[FIELD_NAME])).strip():
                return True
        return False

    # Row handlers

    async def _extract_scalar(
        self, row_id: str, action: Action, parser: TitleParser, stage: str, target: str
    ) -> bool:
        title_id = field_id(row_id, FIELD_TITLE)
        result = parser.parse(await self.adapter.get_field_value(title_id), stages=(stage,))
        value = result.duration if stage == STAGE_DURATION else result.position
        if not value:
            return False

        changed = await self._apply(action, field_id(row_id, target), value)
        changed = await self._apply(action, title_id, result.residual_title) or changed
        return changed

    async def _extract_main_artist(self, row_id: str, action: Action, parser: TitleParser) -> bool:
        if await self._has_artist(row_id):
            logger.debug(f"Row {row_id} already has an artist")
            return False

        title_id = field_id(row_id, FIELD_TITLE)
        title = await self.adapter.get_field_value(title_id)
        result = parser.parse(title, stages=(STAGE_MAIN_ARTIST,))
        tokens = result.main_artists
        if not tokens:
            return False

        for i, token in enumerate(tokens):
            # Discogs stores the joiner on the artist it follows
            join = tokens[i + 1].joiner if i + 1 < len(tokens) else ""
            await self._add_credit(
                row_id,
                StructuralKind.ARTIST_CREDIT,
                {FIELD_NAME: token.name, FIELD_JOIN: join or ""},
                action,
            )
        await self._apply(action, title_id, result.residual_title)
        return True

    async def _extract_role(
        self, row_id: str, action: Action, parser: TitleParser, stage: str, role: str
    ) -> bool:
        title_id = field_id(row_id, FIELD_TITLE)
        title = await self.adapter.get_field_value(title_id)
        existing = await self._credited_names(row_id, role)
        if stage == STAGE_FEATURING:
            result = parser.parse(title, stages=(stage,), existing_featuring=existing)
            names = result.featuring_artists
        else:
            result = parser.parse(title, stages=(stage,), existing_remixers=existing)
            names = result.remixers

        for name in names:
            await self._add_credit(
                row_id, StructuralKind.ROLE_CREDIT, {FIELD_ROLE: role, FIELD_NAME: name}, action
            )
        title_changed = await self._apply(action, title_id, result.residual_title)
        return bool(names) or title_changed

    async def _rewrite_title(
        self, row_id: str, action: Action, transform: Callable[[str], str]
    ) -> bool:
        title_id = field_id(row_id, FIELD_TITLE)
        title = await self.adapter.get_field_value(title_id)
        return await self._apply(action, title_id, transform(title))

    async def _fill_row(self, row_id: str, entry: TracklistEntry, action: Action) -> bool:
        changed = False
        if entry.position:
            changed = await self._apply(action, field_id(row_id, FIELD_POSITION), entry.position)
        if entry.title:
            changed = (
                await self._apply(action, field_id(row_id, FIELD_TITLE), entry.title) or changed
            )
        if entry.duration:
            changed = (
                await self._apply(action, field_id(row_id, FIELD_DURATION), entry.duration)
                or changed
            )
        return changed

    @staticmethod
    def _revert_summary(kind: str, outcome: RevertOutcome) -> CommandSummary:
        summary = CommandSummary(
            kind,
            processed_count=outcome.fields_restored + outcome.structural_removed,
            failed_count=outcome.failed,
            warnings=outcome.warnings,
        )
        logger.info(str(summary))
        return summary
