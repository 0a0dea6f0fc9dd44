import asyncio
from unittest.mock import AsyncMock, MagicMock

from streamhub import constants
from streamhub.exceptions import SourceError
from streamhub.models import RawStream, SourceConfig
from streamhub.services import StreamAggregator
from streamhub.sources import get_parser


def make_client(id, streams=None, error=None, timeout=5.0, delay=0.0):
    client = MagicMock()
    client.config = SourceConfig(id=id, name=id.title(), manifest_url=f"https://{id}.example.com/manifest.json", timeout=timeout)

    async def get_streams(content_type, content_id):
        if delay:
            await asyncio.sleep(delay)
        if error:
            raise error
        return [RawStream.model_validate(s) for s in streams or []]

    client.get_streams = AsyncMock(side_effect=get_streams)
    return client


def entry(hash):
    return {"name": "Source", "description": "Movie.2023.1080p.BluRay.x264-GRP.mkv", "infoHash": hash}


class TestStreamAggregator:
    def test_records_in_source_order(self):
        slow = make_client("slow", [entry("a")], delay=0.05)
        fast = make_client("fast", [entry("b"), entry("c")])
        aggregator = StreamAggregator([slow, fast], get_parser)

        result = asyncio.run(aggregator.fetch("movie", "tt1"))

        assert [r.source_id for r in result.records] == ["slow", "fast", "fast"]
        assert result.failures == []

    def test_failing_source_becomes_a_failure(self):
        good = make_client("good", [entry("a")])
        bad = make_client("bad", error=SourceError("bad", "Bad", "HTTP 500"))
        aggregator = StreamAggregator([good, bad], get_parser)

        result = asyncio.run(aggregator.fetch("movie", "tt1"))

        assert len(result.records) == 1
        assert len(result.failures) == 1
        assert result.failures[0].source_id == "bad"
        assert result.failures[0].message == "HTTP 500"

    def test_unexpected_exception_becomes_a_failure(self):
        broken = make_client("broken", error=RuntimeError("boom"))
        result = asyncio.run(StreamAggregator([broken], get_parser).fetch("movie", "tt1"))

        assert result.failures[0].message == "boom"

    def test_source_timeout(self):
        slow = make_client("slow", [entry("a")], timeout=0.01, delay=1.0)
        result = asyncio.run(StreamAggregator([slow], get_parser).fetch("movie", "tt1"))

        assert result.records == []
        assert "Timed out" in result.failures[0].message

    def test_error_records_and_bad_entries(self):
        client = make_client("src", [
            entry("a"),
            {"name": "Source", "description": "Invalid RealDebrid account"},
            {"name": "nothing", "description": "no locator"},
        ])
        result = asyncio.run(StreamAggregator([client], get_parser).fetch("movie", "tt1"))

        assert [r.kind for r in result.records] == [constants.P2P]
        assert len(result.failures) == 1
        assert result.failures[0].message == "Invalid RealDebrid account"
        assert result.failures[0].title == "Src"

    def test_unexpected_entry_error_drops_only_that_entry(self):
        client = make_client("src", [entry("a"), entry("b"), entry("c")])

        def parser_factory(config):
            parser = get_parser(config)
            parse = parser.parse

            def _parse(raw, index):
                if index == 1:
                    raise KeyError("behaviorHints")
                return parse(raw, index)

            parser.parse = _parse
            return parser

        result = asyncio.run(StreamAggregator([client], parser_factory).fetch("movie", "tt1"))

        assert [r.info_hash for r in result.records] == ["a", "c"]
        assert result.failures == []

    def test_disabled_clients_are_skipped_by_default(self):
        enabled = make_client("on", [entry("a")])
        disabled = make_client("off", [entry("b")])
        disabled.config.enabled = False

        result = asyncio.run(StreamAggregator([enabled, disabled], get_parser).fetch("movie", "tt1"))

        assert [r.source_id for r in result.records] == ["on"]
        disabled.get_streams.assert_not_called()

    def test_no_sources(self):
        result = asyncio.run(StreamAggregator([], get_parser).fetch("movie", "tt1"))

        assert result.records == []
        assert result.failures == []
