from unittest.mock import MagicMock

import pytest
import regex

from streamhub.exceptions import RegexTimeoutError
from streamhub.models import RankMatch, RankPattern
from streamhub.services import CompiledPattern, RegexFilterEngine


@pytest.fixture
def engine(caches):
    return RegexFilterEngine(caches, timeout=0.5)


class TestParsePattern:
    def test_bare_pattern_is_case_insensitive(self):
        assert RegexFilterEngine.parse_pattern("remux") == ("remux", regex.IGNORECASE, False)

    def test_literal_flags(self):
        assert RegexFilterEngine.parse_pattern("/remux/i") == ("remux", regex.IGNORECASE, False)
        assert RegexFilterEngine.parse_pattern("/^a$/m") == ("^a$", regex.MULTILINE, False)

    def test_negate_flag(self):
        assert RegexFilterEngine.parse_pattern("/remux/n") == ("remux", 0, True)


class TestCompile:
    def test_invalid_pattern_raises(self, engine):
        with pytest.raises(ValueError):
            engine.compile("(unclosed")

    def test_compiled_patterns_are_memoized(self, engine):
        assert engine.compile("remux") is engine.compile("remux")

    def test_compile_all_drops_invalid(self, engine):
        compiled = engine.compile_all(["remux", "(bad", "web"])

        assert [c.source for c in compiled] == ["remux", "web"]


class TestEvaluate:
    def test_match(self, engine):
        assert engine.test("remux", "Movie.2023.REMUX.mkv") is True
        assert engine.test("/remux/", "Movie.2023.REMUX.mkv") is False

    def test_negated(self, engine):
        assert engine.test("/remux/in", "Movie.2023.REMUX.mkv") is False
        assert engine.test("/remux/in", "Movie.2023.WEB.mkv") is True

    def test_empty_text_never_matches(self, engine):
        assert engine.test("remux", None) is False
        assert engine.test("remux", "") is False

    def test_timeout_is_a_non_match(self, engine):
        pattern = MagicMock()
        pattern.search.side_effect = TimeoutError("regex timed out")
        compiled = CompiledPattern(source="slow", pattern=pattern)

        with pytest.raises(RegexTimeoutError):
            engine.search(compiled, "text")
        assert engine.test(compiled, "text") is False

    def test_results_are_memoized(self, engine):
        pattern = MagicMock()
        pattern.search.return_value = object()
        compiled = CompiledPattern(source="counted", pattern=pattern)

        assert engine.test(compiled, "text") is True
        assert engine.test(compiled, "text") is True
        assert pattern.search.call_count == 1

    def test_any_field(self, engine):
        compiled = engine.compile("yts")

        assert engine.test_any(compiled, [None, "Movie.mkv", "YTS"]) is True
        assert engine.test_any(compiled, [None, "Movie.mkv"]) is False


class TestKeywords:
    def test_no_keywords(self):
        assert RegexFilterEngine.keywords_to_pattern([]) is None
        assert RegexFilterEngine.keywords_to_pattern(["  "]) is None

    def test_keywords_match_whole_tokens(self, engine):
        pattern = engine.compile(RegexFilterEngine.keywords_to_pattern(["sample", "dolby vision"]))

        assert engine.test(pattern, "Movie.Sample.mkv") is True
        assert engine.test(pattern, "Movie.Dolby.Vision.mkv") is True
        assert engine.test(pattern, "Movie.Samples.mkv") is False

    def test_keywords_are_escaped(self, engine):
        pattern = engine.compile(RegexFilterEngine.keywords_to_pattern(["h.264"]))

        assert engine.test(pattern, "Movie.h.264.mkv") is True
        assert engine.test(pattern, "Movie.hx264.mkv") is False


class TestRank:
    def test_first_matching_pattern_wins(self, engine):
        patterns = engine.compile_rank_patterns([
            RankPattern("remux", "Remux"),
            RankPattern("bluray", "BluRay"),
        ])

        assert engine.rank(patterns, "Movie.BluRay.REMUX.mkv") == RankMatch("Remux", 0)
        assert engine.rank(patterns, "Movie.BluRay.mkv") == RankMatch("BluRay", 1)
        assert engine.rank(patterns, "Movie.WEB.mkv") is None

    def test_folder_name_is_checked_too(self, engine):
        patterns = engine.compile_rank_patterns([RankPattern("remux", "Remux")])

        assert engine.rank(patterns, "Movie.mkv", "Movie.REMUX.Pack") == RankMatch("Remux", 0)
        assert engine.rank(patterns, None, None) is None
