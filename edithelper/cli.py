"""Command-line interface for the edit helper."""

import asyncio
import logging
import sys

import click

from edithelper.capitalizer import TitleCapitalizer
from edithelper.commands import COMMANDS, EditHelper
from edithelper.config import HelperConfig, load_config, save_config_template
from edithelper.lexicon import Lexicon
from edithelper.memory_adapter import InMemoryAdapter
from edithelper.patterns import compile_lexicon
from edithelper.title_cleaner import TitleCleaner, convert_brackets_to_parens
from edithelper.title_parser import ALL_STAGES, TitleParser
from edithelper.tracklist_parser import TracklistTextParser
from edithelper.utils import format_duration, parse_duration, setup_logging

COMMAND_CHOICES = [name.replace("_", "-") for name in COMMANDS]


def _load(config, log_level: str) -> HelperConfig:
    """Load configuration and set up logging from it."""
    helper_config = load_config(config) if config else HelperConfig()
    setup_logging(
        level=getattr(logging, log_level.upper()),
        log_file=helper_config.logging.file_path,
        max_bytes=helper_config.logging.max_file_size_mb * 1024 * 1024,
        backup_count=helper_config.logging.backup_count,
        console_output=helper_config.logging.console_output,
    )
    return helper_config


async def _apply_async(helper: EditHelper, commands, tracklist_text, optional_remix: bool):
    """Helper to run commands in order and print their summaries."""
    summaries = []
    for command in commands:
        kwargs = {}
        if command == "import_tracklist":
            kwargs["text"] = tracklist_text
        elif command == "extract_remixer":
            kwargs["optional_only"] = optional_remix
        summaries.append(await helper.run(command, **kwargs))

    print("\n" + "=" * 50)
    print("EDIT RESULTS")
    print("=" * 50)
    for summary in summaries:
        print(
            f"{summary.command}: processed={summary.processed_count} "
            f"skipped={summary.skipped_count} failed={summary.failed_count} "
            f"warnings={summary.warnings}"
        )
    return summaries


@click.group()
@click.version_option("1.0.0")
def cli():
    """Discogs Edit Helper - extract credits and clean up track titles."""
    pass


@cli.command()
@click.argument("title")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option(
    "--stage",
    "-s",
    "stages",
    multiple=True,
    type=click.Choice(ALL_STAGES),
    help="Extraction stage to run (repeatable, default: all)",
)
@click.option("--keep-artist", is_flag=True, help="Leave the main artist in the title")
@click.option("--keep-feat", is_flag=True, help="Leave featuring credits in the title")
@click.option("--keep-remix-credit", is_flag=True, help="Leave 'Remix by' credits in the title")
@click.option("--optional-remix", is_flag=True, help="Use the optional remix lexicon")
@click.option("--log-level", default="WARNING", help="Logging level")
def parse(
    title, config, stages, keep_artist, keep_feat, keep_remix_credit, optional_remix, log_level
):
    """Extract position, duration and credits from one track title."""
    helper_config = _load(config, log_level)
    if keep_artist:
        helper_config.extraction.remove_main_artist_from_title = False
    if keep_feat:
        helper_config.extraction.remove_feat_from_title = False
    if keep_remix_credit:
        helper_config.extraction.remove_remix_credit_from_title = False

    helper = EditHelper(InMemoryAdapter(), helper_config)
    parser = TitleParser(helper.compiled, helper.parse_options(optional_remix))
    result = parser.parse(title, stages=stages or ALL_STAGES)

    print(f"Position:  {result.position or '-'}")
    print(f"Duration:  {result.duration or '-'}")
    artists = ", ".join(
        f"{t.name} [{t.joiner}]" if t.joiner else t.name for t in result.main_artists
    )
    print(f"Artists:   {artists or '-'}")
    print(f"Featuring: {', '.join(result.featuring_artists) or '-'}")
    print(f"Remixers:  {', '.join(result.remixers) or '-'}")
    print(f"Title:     {result.residual_title}")


@cli.command()
@click.argument("title")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--log-level", default="WARNING", help="Logging level")
def capitalize(title, config, log_level):
    """Capitalize a track title."""
    helper_config = _load(config, log_level)
    compiled = compile_lexicon(helper_config.lexicons.to_lexicon())
    print(TitleCapitalizer(compiled).capitalize(title))


@cli.command()
@click.argument("title")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--brackets", is_flag=True, help="Also convert [..] and {..} to (..)")
@click.option("--log-level", default="WARNING", help="Logging level")
def clean(title, config, brackets, log_level):
    """Remove redundant phrases from a track title."""
    helper_config = _load(config, log_level)
    compiled = compile_lexicon(helper_config.lexicons.to_lexicon())
    cleaned = TitleCleaner(compiled).clean(title)
    if brackets:
        cleaned = convert_brackets_to_parens(cleaned)
    print(cleaned)


@cli.command()
@click.argument("tracklist_file", type=click.Path(exists=True))
@click.option("--log-level", default="WARNING", help="Logging level")
def tracklist(tracklist_file, log_level):
    """Parse a pasted tracklist (text file) into positions, titles and durations."""
    _load(None, log_level)
    with open(tracklist_file, "r", encoding="utf-8") as f:
        text = f.read()

    parser = TracklistTextParser()
    entries = parser.parse(text)
    if not entries:
        print("No tracks found")
        sys.exit(1)

    for entry in entries:
        print(f"{entry.position or '-':>6}  {entry.title}  {entry.duration or ''}".rstrip())
    total = sum(parse_duration(entry.duration) for entry in entries if entry.duration)
    if total:
        print(f"\nTotal time: {format_duration(total)}")
    print(f"\nRow offset: {parser.infer_row_offset(entries)}")


@cli.command()
@click.argument("release_file", type=click.Path(exists=True))
@click.option(
    "--command",
    "-x",
    "commands",
    multiple=True,
    required=True,
    type=click.Choice(COMMAND_CHOICES),
    help="Command to run (repeatable, run in the given order)",
)
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option(
    "--tracklist",
    "-t",
    "tracklist_file",
    type=click.Path(exists=True),
    help="Tracklist text for import-tracklist",
)
@click.option("--optional-remix", is_flag=True, help="Use the optional remix lexicon")
@click.option("--output", "-o", help="Where to write the edited release (default: in place)")
@click.option("--log-level", default="INFO", help="Logging level")
def apply(release_file, commands, config, tracklist_file, optional_remix, output, log_level):
    """Run edit commands on a release stored as YAML."""
    helper_config = _load(config, log_level)
    commands = [name.replace("-", "_") for name in commands]

    tracklist_text = ""
    if "import_tracklist" in commands:
        if not tracklist_file:
            print("import-tracklist needs --tracklist")
            sys.exit(1)
        with open(tracklist_file, "r", encoding="utf-8") as f:
            tracklist_text = f.read()

    try:
        adapter = InMemoryAdapter.load(
            release_file,
            structural_timeout=helper_config.adapter.structural_timeout_seconds,
            poll_interval=helper_config.adapter.poll_interval_seconds,
        )
    except ValueError as e:
        print(f"Error reading release file: {e}")
        sys.exit(1)

    helper = EditHelper(adapter, helper_config)

    try:
        asyncio.run(_apply_async(helper, commands, tracklist_text, optional_remix))
    except KeyboardInterrupt:
        logging.info("Editing interrupted by user")
        sys.exit(1)

    adapter.dump(output or release_file)
    print(f"Release written to: {output or release_file}")


@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option(
    "--set",
    "updates",
    multiple=True,
    metavar="NAME=ENTRIES",
    help="Replace a lexicon, entries separated by '|' (repeatable)",
)
@click.option("--save", "save_path", help="Write the settings including lexicon changes")
@click.option("--log-level", default="WARNING", help="Logging level")
def lexicon(config, updates, save_path, log_level):
    """Show or edit the pattern lexicons."""
    helper_config = _load(config, log_level)
    helper = EditHelper(InMemoryAdapter(), helper_config)

    for update in updates:
        name, sep, raw = update.partition("=")
        name = name.strip()
        if not sep or name not in Lexicon.names():
            print(f"Invalid lexicon update '{update}', expected one of {Lexicon.names()}")
            sys.exit(1)
        if not helper.update_lexicon(name, raw):
            print(f"Ignoring empty input for lexicon '{name}'")

    helper.commit_lexicon()
    for name, value in helper.lexicon.to_strings().items():
        print(f"{name}: {value}")

    if save_path:
        helper.save_settings(save_path)
        print(f"Settings saved to: {save_path}")


@cli.command()
@click.option("--output", "-o", default="config_template.yaml", help="Output path for template")
def create_config(output):
    """Create a configuration file template."""
    save_config_template(output)


if __name__ == "__main__":
    cli()
