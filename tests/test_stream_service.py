import pytest

from streamhub import constants
from streamhub.models import SourceFailure, UserPreferences
from streamhub.services import DefaultFormatter, StreamService, binge_group, format_bytes

TAGS = {
    "resolution": "1080p",
    "quality": "BluRay",
    "encode": "AVC",
    "audio_tags": ["DTS", "AAC"],
    "languages": ["English"],
    "release_group": "GRP",
    "title": "Movie",
    "year": "2023",
}


@pytest.fixture
def make_service():
    def _make(**preferences):
        return StreamService(UserPreferences(**preferences), "StreamHub", "https://hub.example.com")
    return _make


@pytest.mark.parametrize(
    "size,base,expected",
    [
        (None, 1024, "0 B"),
        (500, 1024, "500 B"),
        (1536, 1024, "1.50 KB"),
        (5 * 1024 ** 3, 1024, "5.00 GB"),
        (1500, 1000, "1.50 KB"),
    ],
)
def test_format_bytes(size, base, expected):
    assert format_bytes(size, base) == expected


class TestBingeGroup:
    def test_joins_non_empty_attributes(self, make_record):
        record = make_record(tags=TAGS, indexer="YTS")

        assert binge_group(record) == "1080p|BluRay|AVC|DTS,AAC|English|GRP|YTS"

    def test_proxied_records_are_marked(self, make_record):
        record = make_record(tags={"resolution": "720p"}, proxied=True)

        assert binge_group(record) == "proxied.720p"


class TestFormatter:
    def test_cached_service_name(self, make_record):
        record = make_record(kind=constants.DEBRID, service="realdebrid", cached=True, tags=TAGS)
        name, description = DefaultFormatter("StreamHub").format(record)

        assert name == "[RD⚡] StreamHub 1080p"
        assert "Movie (2023)" in description
        assert description.endswith("🔗 Src")

    def test_p2p_name(self, make_record):
        name, _ = DefaultFormatter("StreamHub").format(make_record())

        assert name == "[P2P] StreamHub"


class TestToWire:
    def test_p2p_sets_only_the_torrent_fields(self, make_service, make_record):
        stream = make_service().to_wire(make_record(info_hash="abc", tags=TAGS, size=1234, filename="Movie.mkv"))
        data = stream.model_dump(exclude_none=True)

        assert data["infoHash"] == "abc"
        assert data["fileIdx"] == 0
        assert "url" not in data
        assert data["behaviorHints"]["videoSize"] == 1234
        assert data["behaviorHints"]["filename"] == "Movie.mkv"
        assert data["behaviorHints"]["bingeGroup"].startswith("1080p|BluRay")

    def test_url_stream(self, make_service, make_record):
        record = make_record(kind=constants.DEBRID, service="torbox", cached=True, url="https://tb.example.com/1", request_headers={"Referer": "x"})
        data = make_service().to_wire(record).model_dump(exclude_none=True)

        assert data["url"] == "https://tb.example.com/1"
        assert "infoHash" not in data
        assert data["behaviorHints"]["proxyHeaders"] == {"request": {"Referer": "x"}}


class TestBuild:
    def test_errors_follow_streams(self, make_service, make_record):
        failure = SourceFailure("broken", "Broken", "HTTP 500")
        streams = make_service().build([make_record("a"), make_record("b")], [failure])

        assert len(streams) == 3
        assert streams[2].name == "[❌] Broken"
        assert streams[2].description == "HTTP 500"
        assert streams[2].externalUrl == "https://hub.example.com"

    def test_error_title_wins(self, make_service):
        stream = make_service().error_stream(SourceFailure("src", "Source", "Invalid account", title="Torrentio"))

        assert stream.name == "[❌] Torrentio"

    def test_hidden_errors(self, make_service, make_record):
        streams = make_service(hide_errors=True).build([make_record()], [SourceFailure("x", "X", "boom")])

        assert len(streams) == 1

    def test_external_downloads(self, make_service, make_record):
        records = [make_record("web", kind=constants.HTTP, url="https://cdn.example.com/a.mkv"), make_record("torrent")]
        streams = make_service(show_external_downloads=True).build(records, [])

        assert len(streams) == 3
        assert streams[0].url == "https://cdn.example.com/a.mkv"
        assert streams[1].url is None
        assert streams[1].externalUrl == "https://cdn.example.com/a.mkv"
        assert streams[2].infoHash is not None

    def test_external_download_copy(self, make_record):
        assert StreamService.external_download(make_record()) is None

        copy = StreamService.external_download(make_record("web", kind=constants.HTTP, url="https://cdn.example.com/a.mkv"))
        assert copy.id == "web-external-download"
        assert copy.kind == constants.EXTERNAL
