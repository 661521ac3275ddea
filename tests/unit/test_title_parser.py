"""Unit tests for title_parser.py."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from edithelper.lexicon import Lexicon
from edithelper.patterns import compile_lexicon
from edithelper.title_parser import (
    ALL_STAGES,
    STAGE_DURATION,
    STAGE_FEATURING,
    STAGE_MAIN_ARTIST,
    STAGE_POSITION,
    STAGE_REMIXER,
    ParseOptions,
    TitleParser,
    TitleSpans,
    match_duration,
    match_position,
    tidy_title,
)
from tests.fixtures.test_data import SAMPLE_TITLES


@pytest.fixture
def parser():
    return TitleParser(compile_lexicon(Lexicon()))


class TestSampleTitles:
    """Full-pipeline extraction of the sample titles."""

    @pytest.mark.parametrize("name", sorted(SAMPLE_TITLES))
    def test_sample(self, parser, name):
        sample = SAMPLE_TITLES[name]
        result = parser.parse(sample["title"])

        assert result.position == sample["position"]
        assert result.duration == sample["duration"]
        assert result.main_artist_names == sample["main_artists"]
        assert result.featuring_artists == sample["featuring"]
        assert result.remixers == sample["remixers"]
        assert result.residual_title == sample["residual"]

    def test_example_a(self, parser):
        title = "A1. Artist One - Track Title (feat. Artist Two) 03:45"
        result = parser.parse(title)

        assert result.position == "A1"
        assert result.main_artist_names == ["Artist One"]
        assert result.featuring_artists == ["Artist Two"]
        assert result.duration == "3:45"
        assert result.residual_title == "Track Title"
        assert title == "A1. Artist One - Track Title (feat. Artist Two) 03:45"

    def test_example_b_joiners(self, parser):
        result = parser.parse("Artist A & Artist B - Song (Remix by Artist C)")

        assert [(t.name, t.joiner) for t in result.main_artists] == [
            ("Artist A", None),
            ("Artist B", "&"),
        ]
        assert result.remixers == ["Artist C"]
        assert result.residual_title == "Song"

    def test_methods_record_the_winning_strategy(self, parser):
        result = parser.parse("A1. Artist One - Track Title (feat. Artist Two) 03:45")
        assert result.methods == {
            STAGE_POSITION: "leading",
            STAGE_DURATION: "trailing",
            STAGE_MAIN_ARTIST: "dash",
            STAGE_FEATURING: "bracketed",
        }

    def test_no_match_is_not_an_error(self, parser):
        result = parser.parse("  Plain Song  ")
        assert not result.found_anything
        assert result.residual_title == "Plain Song"

    def test_empty_title(self, parser):
        result = parser.parse("")
        assert result.residual_title == ""
        assert not result.found_anything

    def test_unknown_stage_raises(self, parser):
        with pytest.raises(ValueError):
            parser.parse("Song", stages=("lyrics",))


class TestPositionAndDuration:
    """Test cases for the position and duration stages."""

    @pytest.mark.parametrize(
        "title,position,residual",
        [
            ("01. Song", "1", "Song"),
            ("00 - Intro", "0", "Intro"),
            ("A01 Song", "A1", "Song"),
            ("[B2] Song", "B2", "Song"),
            ("1-04 Disc Song", "1-4", "Disc Song"),
        ],
    )
    def test_positions(self, parser, title, position, residual):
        result = parser.parse(title, stages=(STAGE_POSITION,))
        assert result.position == position
        assert result.residual_title == residual

    @pytest.mark.parametrize(
        "title,duration,residual",
        [
            ("Song 03:45", "3:45", "Song"),
            ("Song - 4:05", "4:05", "Song"),
            ("Song (4:05) Extra", "4:05", "Song Extra"),
            ("Long Mix 1:02:03", "1:02:03", "Long Mix"),
            ("Song [00:59]", "0:59", "Song"),
        ],
    )
    def test_durations(self, parser, title, duration, residual):
        result = parser.parse(title, stages=(STAGE_DURATION,))
        assert result.duration == duration
        assert result.residual_title == residual

    @pytest.mark.parametrize(
        "title,position,duration,residual",
        [
            ("B3 - Some Track (Extended) 6:12", "B3", "6:12", "Some Track (Extended)"),
            ("A1 3:45", "A1", "3:45", ""),
        ],
    )
    def test_position_and_duration_are_order_independent(
        self, parser, title, position, duration, residual
    ):
        first_position = parser.parse(title, stages=(STAGE_POSITION,))
        then_duration = parser.parse(first_position.residual_title, stages=(STAGE_DURATION,))

        first_duration = parser.parse(title, stages=(STAGE_DURATION,))
        then_position = parser.parse(first_duration.residual_title, stages=(STAGE_POSITION,))

        together = parser.parse(title, stages=(STAGE_DURATION, STAGE_POSITION))

        assert first_position.position == then_position.position == together.position == position
        assert then_duration.duration == first_duration.duration == together.duration == duration
        assert (
            then_duration.residual_title
            == then_position.residual_title
            == together.residual_title
            == residual
        )

    def test_position_alone(self, parser):
        result = parser.parse("A1", stages=(STAGE_POSITION,))
        assert result.position == "A1"
        assert result.residual_title == ""

    def test_shared_matchers(self):
        assert match_position("A2. Title") == ("A2", 0, 4)
        assert match_position("Title") is None
        value, start, end, method = match_duration("Title 3:10")
        assert (value, method) == ("3:10", "trailing")
        assert match_duration("No time here") is None


class TestMainArtist:
    """Test cases for the main artist stage."""

    def test_skipped_when_row_has_artist(self, parser):
        result = parser.parse("Artist - Song", has_existing_artist=True)
        assert result.main_artists == []
        assert result.residual_title == "Artist - Song"

    def test_featuring_inside_artist_text_splits(self, parser):
        result = parser.parse("Alpha feat. Beta - Title")
        assert [(t.name, t.joiner) for t in result.main_artists] == [
            ("Alpha", None),
            ("Beta", "feat."),
        ]
        assert result.featuring_artists == []
        assert result.residual_title == "Title"

    def test_hyphenated_names_stay_whole(self, parser):
        result = parser.parse("Jay-Z - Song", stages=(STAGE_MAIN_ARTIST,))
        assert result.main_artist_names == ["Jay-Z"]

    @pytest.mark.parametrize(
        "title",
        [
            "Title (Part 1 - Live)",
            "Song (Radio Edit - Bob Remix)",
            "Song (Original Mix - Remastered)",
            "Song [Live — 1999]",
        ],
    )
    def test_dash_inside_brackets_is_not_an_artist_separator(self, parser, title):
        result = parser.parse(title, stages=(STAGE_MAIN_ARTIST,))
        assert result.main_artists == []
        assert result.residual_title == title

    def test_bracketed_group_can_be_part_of_the_artist(self, parser):
        result = parser.parse("Artist (UK) - Song (Radio Edit - Bob Remix)")
        assert result.main_artist_names == ["Artist (UK)"]
        assert result.remixers == ["Bob"]
        assert result.residual_title == "Song (Radio Edit - Bob Remix)"

    def test_splitter_word_in_artist_name(self, parser):
        result = parser.parse("Malcolm X - Speech", stages=(STAGE_MAIN_ARTIST,))
        assert result.main_artist_names == ["Malcolm X"]
        assert result.residual_title == "Speech"

    def test_em_dash_without_spaces(self, parser):
        result = parser.parse("Artist—Song", stages=(STAGE_MAIN_ARTIST,))
        assert result.main_artist_names == ["Artist"]
        assert result.residual_title == "Song"

    def test_keep_artist_in_title(self, parser):
        options = ParseOptions(remove_main_artist=False)
        title = "A1. Artist One - Track Title (feat. Artist Two) 03:45"
        result = parser.parse(title, options=options)
        assert result.main_artist_names == ["Artist One"]
        assert result.residual_title == "Artist One - Track Title"


class TestFeaturing:
    """Test cases for the featuring stage."""

    def test_keep_featuring_in_title(self, parser):
        options = ParseOptions(remove_featuring=False)
        result = parser.parse("Track Title (feat. Artist Two)", options=options)
        assert result.featuring_artists == ["Artist Two"]
        assert result.residual_title == "Track Title (feat. Artist Two)"

    def test_candidate_stops_before_remix_by(self, parser):
        result = parser.parse("Song (feat. Guest Remix by DJ Foo)")
        assert result.featuring_artists == ["Guest"]
        assert result.remixers == ["DJ Foo"]
        assert result.residual_title == "Song"

    def test_bare_remix_keeps_only_first_word(self, parser):
        result = parser.parse("Song (feat. Guest Other Remix)")
        assert result.featuring_artists == ["Guest"]
        assert result.remixers == ["Other"]
        assert result.residual_title == "Song (Other Remix)"

    def test_multiple_featured_artists(self, parser):
        result = parser.parse("Song (ft. Alpha & Beta)", stages=(STAGE_FEATURING,))
        assert result.featuring_artists == ["Alpha", "Beta"]

    def test_outside_brackets_bounded_by_dash(self, parser):
        result = parser.parse("Track feat. Guest - Extended", stages=(STAGE_FEATURING,))
        assert result.featuring_artists == ["Guest"]
        assert result.methods[STAGE_FEATURING] == "inline"
        assert result.residual_title == "Track - Extended"

    def test_excision_leaves_no_space_before_punctuation(self, parser):
        result = parser.parse("Song feat. Guest, Part 2", stages=(STAGE_FEATURING,))
        assert result.featuring_artists == ["Guest"]
        assert result.residual_title == "Song, Part 2"

    def test_rerun_is_idempotent(self, parser):
        result = parser.parse(
            "Track Title (feat. Artist Two)",
            stages=(STAGE_FEATURING,),
            existing_featuring=["Artist Two (2)"],
        )
        assert result.featuring_artists == []
        assert result.residual_title == "Track Title"

    def test_featuring_word_inside_a_name_is_ignored(self, parser):
        result = parser.parse("Left Behind (Softer)", stages=(STAGE_FEATURING,))
        assert result.featuring_artists == []


class TestRemixer:
    """Test cases for the remixer stage."""

    def test_remix_by_truncated_at_featuring(self, parser):
        result = parser.parse("Song (Remix by Foo feat. Bar)", stages=(STAGE_REMIXER,))
        assert result.remixers == ["Foo"]
        assert result.residual_title == "Song (feat. Bar)"

    def test_keep_remix_credit(self, parser):
        options = ParseOptions(remove_remix_credit=False)
        result = parser.parse("Song (Remix by Foo)", stages=(STAGE_REMIXER,), options=options)
        assert result.remixers == ["Foo"]
        assert result.residual_title == "Song (Remix by Foo)"

    def test_bare_remix_stays_in_title(self, parser):
        result = parser.parse("Song (Alpha & Beta Remix)", stages=(STAGE_REMIXER,))
        assert result.remixers == ["Alpha", "Beta"]
        assert result.residual_title == "Song (Alpha & Beta Remix)"

    def test_keyword_before_names(self, parser):
        result = parser.parse("Song (Remix: Foo)", stages=(STAGE_REMIXER,))
        assert result.remixers == ["Foo"]

    @pytest.mark.parametrize("title", ["Song (Extended Remix)", "Song (Original Mix)"])
    def test_version_descriptors_are_not_remixers(self, parser, title):
        assert parser.parse(title, stages=(STAGE_REMIXER,)).remixers == []

    def test_optional_lexicon(self, parser):
        title = "Song (Artist Name Edit)"
        assert parser.parse(title, stages=(STAGE_REMIXER,)).remixers == []

        options = ParseOptions(optional_remix_only=True)
        result = parser.parse(title, stages=(STAGE_REMIXER,), options=options)
        assert result.remixers == ["Artist Name"]

    def test_one_match_per_group_first_group_wins(self, parser):
        result = parser.parse("Song (Foo Remix) (Remix by Bar)", stages=(STAGE_REMIXER,))
        assert result.remixers == ["Foo"]

    def test_remix_by_wins_inside_a_group(self, parser):
        result = parser.parse("Song (Remix by Bar)", stages=(STAGE_REMIXER,))
        assert result.methods[STAGE_REMIXER] == "bracketed_by"

    def test_trailing_keyword_outside_brackets(self, parser):
        result = parser.parse("Night Drive - Kolsch Remix", stages=(STAGE_REMIXER,))
        assert result.remixers == ["Kolsch"]
        assert result.residual_title == "Night Drive - Kolsch Remix"

    def test_inline_remixed_by(self, parser):
        result = parser.parse("Song remixed by DJ Foo", stages=(STAGE_REMIXER,))
        assert result.remixers == ["DJ Foo"]
        assert result.residual_title == "Song"

    def test_existing_remixer_not_repeated(self, parser):
        result = parser.parse(
            "Song (Foo Remix)", stages=(STAGE_REMIXER,), existing_remixers=["foo"]
        )
        assert result.remixers == []


class TestSpans:
    """Test cases for span bookkeeping and residual cleanup."""

    def test_claims_map_back_to_original_positions(self):
        spans = TitleSpans("ab-cd-ef")
        view, index = spans.view()
        spans.claim(index, 2, 6, "x", remove=True)
        view, index = spans.view()
        assert view == "abef"
        spans.claim(index, 0, 1, "y", remove=False)
        assert spans.residual() == "abef"

    def test_tidy_title(self):
        assert tidy_title("Song ( - ) ") == "Song"
        assert tidy_title("Song (  , Other Mix)") == "Song (Other Mix)"
        assert tidy_title(" - Song  Title -") == "Song Title"
        assert tidy_title("Song , Part 2 ; Reprise") == "Song, Part 2; Reprise"

    def test_stages_always_run_in_pipeline_order(self, parser):
        forward = parser.parse("A1. Artist - Song (feat. Guest) 3:00", stages=ALL_STAGES)
        backward = parser.parse(
            "A1. Artist - Song (feat. Guest) 3:00", stages=tuple(reversed(ALL_STAGES))
        )
        assert forward == backward
