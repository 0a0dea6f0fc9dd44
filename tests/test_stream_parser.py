import pytest

from streamhub import constants
from streamhub.exceptions import RecordNormalizationError
from streamhub.models import RawStream, SourceConfig
from streamhub.parser import StreamParser, strip_emoji
from streamhub.sources import PARSERS, get_parser, override_url
from streamhub.sources.presets import JackettioParser, TorrentioParser

FILENAME = "Movie.2023.1080p.BluRay.x264-GRP.mkv"


def make_source(preset="generic", **kwargs):
    return SourceConfig(id=preset, name=preset.title(), manifest_url="https://addon.example.com/manifest.json", preset=preset, **kwargs)


def raw(**fields):
    return RawStream.model_validate(fields)


class TestStreamParser:
    def test_p2p_entry(self):
        parser = StreamParser(make_source())
        record = parser.parse(raw(
            name="Source\n1080p",
            description=f"{FILENAME}\n👤 25 💾 2.1 GB ⚙️ ThePirateBay",
            infoHash="ABCDEF0123",
            fileIdx=1,
        ), 3)

        assert record.id == "generic-3"
        assert record.kind == constants.P2P
        assert record.filename == FILENAME
        assert record.seeders == 25
        assert record.size == int(2.1 * 1024 ** 3)
        assert record.indexer == "ThePirateBay"
        assert record.locator.info_hash == "abcdef0123"
        assert record.locator.file_idx == 1
        assert record.torrent_hash == "abcdef0123"
        assert record.service is None
        assert record.tags.resolution == "1080p"

    def test_cached_debrid_entry(self):
        record = StreamParser(make_source()).parse(raw(
            name="[RD+] Source 1080p",
            description=FILENAME,
            url="https://debrid.example.com/file.mkv",
        ))

        assert record.kind == constants.DEBRID
        assert record.service_id == "realdebrid"
        assert record.cached is True
        assert record.url == "https://debrid.example.com/file.mkv"
        assert record.locator.info_hash is None

    def test_uncached_marker(self):
        record = StreamParser(make_source()).parse(raw(
            name="[RD ⏳] Source",
            description=FILENAME,
            url="https://debrid.example.com/file.mkv",
        ))

        assert record.service_id == "realdebrid"
        assert record.cached is False

    def test_live_and_http_kinds(self):
        parser = StreamParser(make_source())

        assert parser.parse(raw(name="Live", url="https://cdn.example.com/live.m3u8")).kind == constants.LIVE
        assert parser.parse(raw(name="Plain", url="https://cdn.example.com/file.mp4")).kind == constants.HTTP
        assert parser.parse(raw(name="Ext", externalUrl="https://example.com")).kind == constants.EXTERNAL
        assert parser.parse(raw(name="Yt", ytId="abc123")).kind == constants.YOUTUBE

    def test_error_entry(self):
        record = StreamParser(make_source()).parse(raw(name="Source", description="Invalid RealDebrid account"))

        assert record.kind == constants.ERROR
        assert record.error.title == "Generic"
        assert record.error.description == "Invalid RealDebrid account"

    def test_entry_without_locator_raises(self):
        with pytest.raises(RecordNormalizationError):
            StreamParser(make_source()).parse(raw(name="nothing", description="nothing here"))

    def test_hinted_filename_and_size_win(self):
        record = StreamParser(make_source()).parse(raw(
            name="Source",
            description="Some other text 💾 1 GB",
            url="https://cdn.example.com/file.mkv",
            behaviorHints={"filename": FILENAME, "videoSize": 1234},
        ))

        assert record.filename == FILENAME
        assert record.size == 1234

    def test_flag_languages_are_merged(self):
        record = StreamParser(make_source()).parse(raw(
            name="Source",
            description=f"{FILENAME}\n🇬🇧 🇮🇹",
            url="https://cdn.example.com/file.mkv",
        ))

        assert record.tags.languages == ["English", "Italian"]

    def test_duration(self):
        record = StreamParser(make_source()).parse(raw(
            name="Source",
            description=f"{FILENAME}\n⏱️ 1h:32m:10s",
            url="https://cdn.example.com/file.mkv",
        ))

        assert record.duration == (3600 + 32 * 60 + 10) * 1000

    def test_proxy_headers_are_kept(self):
        record = StreamParser(make_source()).parse(raw(
            name="Source",
            url="https://cdn.example.com/file.mkv",
            behaviorHints={"proxyHeaders": {"request": {"Referer": "https://example.com"}}},
        ))

        assert record.request_headers == {"Referer": "https://example.com"}
        assert record.response_headers == {}

    def test_float_video_size_is_whole_bytes(self):
        record = StreamParser(make_source()).parse(raw(
            name="Source",
            url="https://cdn.example.com/file.mkv",
            behaviorHints={"filename": FILENAME, "videoSize": 1234.7},
        ))

        assert record.size == 1234
        assert raw(infoHash="abc", behaviorHints={"videoSize": 1.5e9}).behaviorHints.videoSize == 1500000000

    def test_same_entry_parses_to_same_tags(self):
        entry = raw(
            name="Source\n1080p",
            description=f"{FILENAME}\n🇬🇧 👤 25 💾 2.1 GB",
            infoHash="ABCDEF0123",
        )
        parser = StreamParser(make_source())

        assert parser.parse(entry).tags == parser.parse(entry).tags


def test_strip_emoji():
    assert strip_emoji("📄 Movie.2023.mkv") == "Movie.2023.mkv"


class TestPresets:
    def test_lookup(self):
        assert isinstance(get_parser(make_source("Torrentio")), TorrentioParser)
        assert type(get_parser(make_source("unknown"))) is StreamParser
        assert set(PARSERS) >= {"generic", "torrentio", "mediafusion", "torbox", "easynews", "jackettio"}

    def test_torrentio_folder(self):
        record = get_parser(make_source("torrentio")).parse(raw(
            name="Torrentio\n1080p",
            description=f"Movie Collection\n{FILENAME}\n👤 5",
            infoHash="abc",
        ))

        assert record.folder_name == "Movie Collection"
        assert record.filename == FILENAME

    def test_mediafusion_file_line(self):
        parser = get_parser(make_source("mediafusion"))
        record = parser.parse(raw(
            name="MediaFusion 1080p",
            description=f"📂 Movie Pack ┈➤ {FILENAME}\n💾 1.5 GB\n🔗 ThePirateBay",
            infoHash="abc",
        ))

        assert record.filename == FILENAME
        assert record.folder_name == "Movie Pack"
        assert record.indexer == "ThePirateBay"

    def test_mediafusion_content_warning(self):
        record = get_parser(make_source("mediafusion")).parse(raw(
            name="MediaFusion",
            description="🚫 Content Warning: this title is blocked",
        ))

        assert record.kind == constants.ERROR

    def test_torbox_fields(self):
        record = get_parser(make_source("torbox")).parse(raw(
            name="TorBox",
            description=f"{FILENAME}\nType: Torrent\nSource: YTS | Age: 5d",
            url="https://torbox.example.com/dl/1",
            hash="ABCDEF",
            is_cached=False,
            seeders=10,
            is_your_media=True,
        ))

        assert record.kind == constants.DEBRID
        assert record.service_id == constants.TORBOX_SERVICE
        assert record.cached is False
        assert record.seeders == 10
        assert record.torrent_hash == "abcdef"
        assert record.age == "5d"
        assert record.in_library is True

    def test_torbox_usenet_type(self):
        record = get_parser(make_source("torbox")).parse(raw(
            name="TorBox",
            description=FILENAME,
            url="https://torbox.example.com/dl/2",
            type="usenet",
        ))

        assert record.kind == constants.USENET

    def test_easynews_is_cached_usenet(self):
        record = get_parser(make_source("easynews")).parse(raw(
            name="Easynews",
            description=FILENAME,
            url="https://easynews.example.com/dl/1",
        ))

        assert record.kind == constants.USENET
        assert record.service_id == constants.EASYNEWS_SERVICE
        assert record.cached is True

    def test_jackettio_forced_host(self):
        source = make_source("jackettio", options={"force_host": "public.example.com", "force_protocol": "https"})
        parser = get_parser(source)
        record = parser.parse(raw(name="Jackettio", url="http://10.0.0.5:4000/stream/abc"))

        assert isinstance(parser, JackettioParser)
        assert record.url == "https://public.example.com:4000/stream/abc"
        assert record.source_id == source.instance_id


class TestOverrideUrl:
    def test_keeps_credentials_and_query(self):
        assert override_url("http://user:pw@host:8000/p?q=1", host="new") == "http://user:pw@new:8000/p?q=1"

    def test_port_and_protocol(self):
        assert override_url("https://a.example.com/x", port=8443) == "https://a.example.com:8443/x"
        assert override_url("http://a.example.com/x", protocol="https:") == "https://a.example.com/x"
