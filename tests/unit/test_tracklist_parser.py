"""Unit tests for tracklist_parser.py."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from edithelper.tracklist_parser import TracklistEntry, TracklistTextParser
from tests.fixtures.test_data import SAMPLE_TRACKLISTS


@pytest.fixture
def parser():
    return TracklistTextParser()


class TestTracklistTextParser:
    """Test cases for TracklistTextParser."""

    def test_simple_tracklist(self, parser):
        entries = parser.parse(SAMPLE_TRACKLISTS["simple"])
        assert [e.to_dict() for e in entries] == [
            {"position": "1", "title": "Alpha - One", "duration": "3:20"},
            {"position": "2", "title": "Beta - Two", "duration": "4:10"},
        ]

    def test_labels_on_their_own_line(self, parser):
        entries = parser.parse(SAMPLE_TRACKLISTS["labels_on_own_line"])
        assert entries == [
            TracklistEntry("A1", "First Song", "3:01"),
            TracklistEntry("A2", "Second Song", "4:02"),
        ]

    def test_shop_noise_is_stripped(self, parser):
        entries = parser.parse(SAMPLE_TRACKLISTS["shop_noise"])
        assert entries == [
            TracklistEntry("1", "Opener", "2:10"),
            TracklistEntry("2", "Closer", "5:55"),
        ]

    def test_multi_disc_positions(self, parser):
        entries = parser.parse(SAMPLE_TRACKLISTS["multi_disc"])
        assert [e.position for e in entries] == ["1-1", "2-1"]
        assert [e.title for e in entries] == ["Disc One Opener", "Disc Two Opener"]

    def test_lines_without_position_or_duration(self, parser):
        entries = parser.parse("Just A Title\n\n   \nAnother One")
        assert entries == [
            TracklistEntry(None, "Just A Title"),
            TracklistEntry(None, "Another One"),
        ]

    def test_label_without_content_keeps_position(self, parser):
        assert parser.parse("B2") == [TracklistEntry("B2", "")]

    def test_empty_text(self, parser):
        assert parser.parse("") == []
        assert parser.parse(None) == []

    def test_noise_only_line_is_kept_as_title(self, parser):
        assert parser.parse_line("Video") == TracklistEntry(None, "Video")

    def test_normalize_closes_group_on_positioned_line(self, parser):
        text = "A1\nFirst Song\nA2. Second Song 4:00"
        assert parser.normalize(text) == ["A1 First Song", "A2. Second Song 4:00"]


class TestRowOffset:
    """Test cases for infer_row_offset."""

    def test_mid_sequence_start(self, parser):
        entries = parser.parse(SAMPLE_TRACKLISTS["mid_sequence"])
        assert TracklistTextParser.infer_row_offset(entries) == 2

    @pytest.mark.parametrize(
        "position,offset",
        [("1", 0), ("A3", 2), ("B1", 0), (None, 0), ("A", 0)],
    )
    def test_offsets(self, position, offset):
        entries = [TracklistEntry(position, "Song")]
        assert TracklistTextParser.infer_row_offset(entries) == offset

    def test_no_entries(self):
        assert TracklistTextParser.infer_row_offset([]) == 0
