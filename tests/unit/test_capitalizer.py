"""Unit tests for capitalizer.py."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from edithelper.capitalizer import TitleCapitalizer, find_bracket_groups
from edithelper.lexicon import Lexicon
from edithelper.patterns import compile_lexicon


@pytest.fixture
def capitalizer():
    return TitleCapitalizer(compile_lexicon(Lexicon()))


class TestFindBracketGroups:
    """Test cases for top-level bracket detection."""

    def test_top_level_groups_only(self):
        text = "a (b [c]) {d}"
        assert find_bracket_groups(text) == [(2, 9), (10, 13)]

    def test_unbalanced_brackets_are_ignored(self):
        assert find_bracket_groups("a (b") == []
        assert find_bracket_groups("a ] b") == []


class TestTitleCapitalizer:
    """Test cases for TitleCapitalizer."""

    def test_featuring_group_with_exceptions(self, capitalizer):
        assert (
            capitalizer.capitalize("a day in the life (feat. dj shadow)")
            == "A Day in the Life (Feat. DJ Shadow)"
        )

    def test_first_word_ignores_lowercase_list(self, capitalizer):
        assert capitalizer.capitalize("the end of it") == "The End of It"

    def test_bracket_group_is_its_own_sub_title(self, capitalizer):
        assert capitalizer.capitalize("song (the remix)") == "Song (The Remix)"

    def test_upper_list_applies_everywhere(self, capitalizer):
        assert capitalizer.capitalize("vip mix by mc someone") == "VIP Mix by MC Someone"

    def test_lowercase_list_entry_with_punctuation(self, capitalizer):
        assert capitalizer.capitalize("alpha VS. beta") == "Alpha vs. Beta"

    def test_default_title_case_lowers_the_rest(self, capitalizer):
        assert capitalizer.capitalize("BIG TUNE") == "Big Tune"

    def test_compounds_capitalize_each_segment(self, capitalizer):
        assert capitalizer.capitalize("hip-hop/soul classics") == "Hip-Hop/Soul Classics"

    def test_compound_first_segment_only_gets_first_word_rule(self, capitalizer):
        assert capitalizer.capitalize("the-end of-the road") == "The-End of-the Road"

    def test_dotted_acronym(self, capitalizer):
        assert capitalizer.capitalize("d.j. food live") == "D.J. Food Live"

    def test_after_colon_is_uppercased(self, capitalizer):
        assert capitalizer.capitalize("intro: the beginning") == "Intro: The Beginning"

    def test_whitespace_runs_are_preserved(self, capitalizer):
        assert capitalizer.capitalize("one  two\tthree") == "One  Two\tThree"

    def test_punctuation_and_apostrophes(self, capitalizer):
        assert capitalizer.capitalize('"don\'t" stop') == '"Don\'t" Stop'
        assert capitalizer.capitalize("2nd chance") == "2nd Chance"

    def test_empty_title(self, capitalizer):
        assert capitalizer.capitalize("") == ""

    @pytest.mark.parametrize(
        "title",
        [
            "a day in the life (feat. dj shadow)",
            "intro: the beginning [dj edit]",
            "hip-hop/soul (the-end of-the road)",
            "d.j. food vs. mc someone",
            "SHOUTING TITLE (uk radio edit)",
        ],
    )
    def test_idempotent(self, capitalizer, title):
        once = capitalizer.capitalize(title)
        assert capitalizer.capitalize(once) == once

    def test_custom_lexicon(self):
        lexicon = Lexicon()
        lexicon.update("cap_keep_upper", "ABBA")
        capitalizer = TitleCapitalizer(compile_lexicon(lexicon))
        assert capitalizer.capitalize("abba tribute dj") == "ABBA Tribute Dj"
