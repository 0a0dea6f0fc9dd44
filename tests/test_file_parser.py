import pytest

from streamhub.parser import FileParser, format_season_episode, normalise_whitespace


class TestFileParser:
    def test_movie_release(self):
        tags = FileParser.parse("Movie.2023.1080p.BluRay.x264-GRP.mkv")

        assert tags.resolution == "1080p"
        assert tags.quality == "BluRay"
        assert tags.encode == "AVC"
        assert tags.release_group == "GRP"
        assert tags.year == "2023"
        assert tags.season_episode == []

    def test_hdr10_does_not_also_tag_hdr(self):
        tags = FileParser.parse("Movie.2021.2160p.BluRay.HDR10.x265-GRP.mkv")

        assert tags.resolution == "2160p"
        assert tags.quality == "BluRay"
        assert tags.encode == "HEVC"
        assert "HDR10" in tags.visual_tags
        assert "HDR" not in tags.visual_tags

    def test_remux_wins_over_bluray(self):
        tags = FileParser.parse("Movie.2021.2160p.BluRay.REMUX.HEVC-GRP.mkv")

        assert tags.quality == "BluRay REMUX"

    def test_episode_release(self):
        tags = FileParser.parse("Show.Name.S02E05.720p.HDTV.x264-GRP.mkv")

        assert tags.resolution == "720p"
        assert tags.quality == "HDTV"
        assert tags.season == 2
        assert tags.episode == 5
        assert tags.season_episode == ["S02", "E05"]

    def test_languages_in_table_order(self):
        tags = FileParser.parse("Movie.2023.1080p.WEB-DL.ENG.ITA.x264-GRP.mkv")

        assert tags.quality == "WEB-DL"
        assert tags.languages == ["English", "Italian"]

    def test_subtitle_language_is_not_an_audio_language(self):
        tags = FileParser.parse("Movie.2023.1080p.WEB-DL.ENG.SUBS.x264-GRP.mkv")

        assert tags.languages == []

    def test_unparseable_name_is_empty_not_an_error(self):
        tags = FileParser.parse("something")

        assert tags.resolution is None
        assert tags.quality is None
        assert tags.visual_tags == []


class TestFormatSeasonEpisode:
    @pytest.mark.parametrize(
        "seasons,episode,expected",
        [
            ([8, 9, 10], None, ["S08-S10"]),
            ([8], 4, ["S08", "E04"]),
            ([1, 3], None, ["S01", "S03"]),
            ([], 7, ["E07"]),
            ([], None, []),
        ],
    )
    def test_labels(self, seasons, episode, expected):
        assert format_season_episode(seasons, episode) == expected


def test_normalise_whitespace():
    assert normalise_whitespace("  Movie   2023 .mkv.. ") == "Movie 2023 .mkv"


RELEASES = [
    "Movie.2023.1080p.BluRay.x264-GRP.mkv",
    "Movie.2021.2160p.BluRay.HDR10.x265-GRP.mkv",
    "Movie.2021.2160p.BluRay.REMUX.HEVC-GRP.mkv",
    "Show.Name.S02E05.720p.HDTV.x264-GRP.mkv",
    "Movie.2023.1080p.WEB-DL.ENG.ITA.x264-GRP.mkv",
]


class TestRepeatedParsing:
    @pytest.mark.parametrize("filename", RELEASES)
    def test_same_name_same_tags(self, filename):
        assert FileParser.parse(filename) == FileParser.parse(filename)

    @pytest.mark.parametrize("filename", RELEASES)
    def test_rebuilt_name_keeps_title_and_tags(self, filename):
        first = FileParser.parse(filename)
        rebuilt = ".".join(filter(None, [
            first.title.replace(" ", "."),
            first.year,
            "".join(first.season_episode),
            first.resolution,
        ]))
        again = FileParser.parse(rebuilt)

        assert again.title == first.title
        assert again.year == first.year
        assert again.season == first.season
        assert again.episode == first.episode
        assert again.resolution == first.resolution
