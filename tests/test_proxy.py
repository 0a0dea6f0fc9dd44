import asyncio
from urllib.parse import parse_qsl

import pytest

from streamhub import constants
from streamhub.exceptions import ProxyIpError
from streamhub.models import ProxyConfig
from streamhub.proxy import (
    MediaFlowProxy, ProxyResolver, ProxyStream, StremThruProxy, create_proxy, mask, mask_url
)

from conftest import FakeResponse, FakeSession

PROXY_URL = "https://proxy.example.com"
IP_URL = f"{PROXY_URL}/proxy/ip"
GENERATE_URL = f"{PROXY_URL}/generate_urls"


def make_config(**kwargs):
    settings = {"enabled": True, "id": "mediaflow", "url": PROXY_URL, "credentials": "secret"}
    settings.update(kwargs)
    return ProxyConfig(**settings)


@pytest.fixture
def session():
    return FakeSession()


class TestPublicIp:
    def test_lookup_is_cached(self, session, caches):
        session.routes[IP_URL] = FakeResponse(200, {"ip": "203.0.113.9"})
        proxy = MediaFlowProxy(make_config(), session, caches)

        assert asyncio.run(proxy.get_public_ip()) == "203.0.113.9"
        assert asyncio.run(proxy.get_public_ip()) == "203.0.113.9"
        assert len(session.calls) == 1
        assert session.calls[0][2]["params"] == {"api_password": "secret"}

    def test_configured_ip_skips_the_lookup(self, session, caches):
        proxy = MediaFlowProxy(make_config(public_ip="198.51.100.1"), session, caches)

        assert asyncio.run(proxy.get_public_ip()) == "198.51.100.1"
        assert session.calls == []

    def test_private_host_is_never_asked(self, session, caches):
        proxy = MediaFlowProxy(make_config(url="http://192.168.1.5:8888"), session, caches)

        assert asyncio.run(proxy.get_public_ip()) is None
        assert session.calls == []

    def test_missing_url(self, session, caches):
        assert asyncio.run(MediaFlowProxy(make_config(url=""), session, caches).get_public_ip()) is None

    def test_failures_return_none(self, session, caches):
        session.routes[IP_URL] = FakeResponse(500, {})

        assert asyncio.run(MediaFlowProxy(make_config(), session, caches).get_public_ip()) is None

    def test_stremthru_exposed_ip(self, caches):
        proxy = StremThruProxy(make_config(id="stremthru"), None, caches)

        assert proxy.public_ip_from({"data": {"ip": {"exposed": {"*": "1.1.1.1"}, "machine": "2.2.2.2"}}}) == "1.1.1.1"
        assert proxy.public_ip_from({"data": {"ip": {"exposed": {}, "machine": "2.2.2.2"}}}) == "2.2.2.2"
        assert proxy.public_ip_from({"data": {"ip": {"machine": "2.2.2.2"}}}) == "2.2.2.2"
        assert proxy.public_ip_from({}) is None


class TestResolver:
    def test_disabled_resolves_nothing(self):
        resolver = ProxyResolver(None, make_config(enabled=False))

        assert resolver.enabled is False
        assert asyncio.run(resolver.resolve_ip()) is None

    def test_retries_then_fails(self, session, caches):
        resolver = ProxyResolver(MediaFlowProxy(make_config(), session, caches), make_config())

        with pytest.raises(ProxyIpError):
            asyncio.run(resolver.resolve_ip())
        assert len(session.calls) == 3

    def test_retry_recovers(self, session, caches):
        session.routes[IP_URL] = [FakeResponse(500, {}), FakeResponse(200, {"ip": "203.0.113.9"})]
        resolver = ProxyResolver(MediaFlowProxy(make_config(), session, caches), make_config())

        assert asyncio.run(resolver.resolve_ip()) == "203.0.113.9"
        assert len(session.calls) == 2

    def test_proxied_sources(self, session, caches):
        config = make_config(proxied_sources=["torrentio"])
        resolver = ProxyResolver(MediaFlowProxy(config, session, caches), config)

        assert resolver.proxies_source("torrentio") is True
        assert resolver.proxies_source("torrentio.1a2b3c4d") is True
        assert resolver.proxies_source("mediafusion") is False

    def test_should_proxy(self, session, caches, make_record):
        config = make_config(proxied_services=["realdebrid", constants.NO_SERVICE])
        resolver = ProxyResolver(MediaFlowProxy(config, session, caches), config)

        assert resolver.should_proxy(make_record(kind=constants.DEBRID, service="realdebrid")) is True
        assert resolver.should_proxy(make_record(kind=constants.HTTP)) is True
        assert resolver.should_proxy(make_record(kind=constants.DEBRID, service="torbox")) is False
        assert resolver.should_proxy(make_record(kind=constants.P2P)) is False


class TestApply:
    def test_rewrites_eligible_records(self, session, caches, make_record):
        session.routes[GENERATE_URL] = FakeResponse(200, {"urls": ["http://internal:8888/s/1", "http://internal:8888/s/2"]})
        config = make_config(public_host="proxy.example.com", public_port=443, public_protocol="https")
        resolver = ProxyResolver(MediaFlowProxy(config, session, caches), config)
        records = [
            make_record("one", kind=constants.HTTP, filename="one.mkv"),
            make_record("torrent"),
            make_record("two", kind=constants.HTTP, filename="two.mkv"),
        ]

        result = asyncio.run(resolver.apply(records))

        assert [r.id for r in result] == ["one", "torrent", "two"]
        assert result[0].url == "https://proxy.example.com:443/s/1"
        assert result[2].url == "https://proxy.example.com:443/s/2"
        assert result[0].proxied is True
        assert result[1].proxied is False
        assert len(session.calls) == 1

    def test_failed_batch_drops_eligible_records(self, session, caches, make_record):
        session.routes[GENERATE_URL] = FakeResponse(502, {})
        resolver = ProxyResolver(MediaFlowProxy(make_config(), session, caches), make_config())
        records = [make_record("one", kind=constants.HTTP), make_record("torrent")]

        assert [r.id for r in asyncio.run(resolver.apply(records))] == ["torrent"]

    def test_url_count_mismatch_is_a_failure(self, session, caches):
        session.routes[GENERATE_URL] = FakeResponse(200, {"urls": ["http://proxy/1"]})
        proxy = MediaFlowProxy(make_config(), session, caches)

        urls = asyncio.run(proxy.generate_urls([ProxyStream("https://a/1"), ProxyStream("https://a/2")]))

        assert urls is None

    def test_empty_batch(self, session, caches):
        assert asyncio.run(MediaFlowProxy(make_config(), session, caches).generate_urls([])) == []
        assert session.calls == []


class TestMediaFlowPayload:
    def test_plain_payload(self, caches):
        proxy = MediaFlowProxy(make_config(), None, caches)
        payload = proxy.payload([ProxyStream("https://cdn.example.com/path/file.mkv", request_headers={"Referer": "x"})])

        assert payload["mediaflow_proxy_url"] == PROXY_URL
        assert "api_password" not in payload
        entry = payload["urls"][0]
        assert entry["endpoint"] == "/proxy/stream"
        assert entry["filename"] == "file.mkv"
        assert entry["destination_url"] == "https://cdn.example.com/path/file.mkv"
        assert entry["query_params"] == {"api_password": "secret"}
        assert entry["request_headers"] == {"Referer": "x"}
        assert "response_headers" not in entry

    def test_encrypted_payload(self, caches):
        proxy = MediaFlowProxy(make_config(encrypt=True), None, caches)
        payload = proxy.payload([ProxyStream("https://cdn.example.com/file.mkv", filename="Movie.mkv")])

        assert payload["api_password"] == "secret"
        assert payload["urls"][0]["filename"] == "Movie.mkv"
        assert "query_params" not in payload["urls"][0]


class TestStremThru:
    def test_form_fields(self):
        fields = StremThruProxy.form([
            ProxyStream("https://a/1", filename="one.mkv", request_headers={"Referer": "x", "Origin": "y"}),
            ProxyStream("https://a/2"),
        ])

        assert fields == [
            ("url", "https://a/1"),
            ("req_headers[0]", "Referer: x\nOrigin: y\n"),
            ("filename[0]", "one.mkv"),
            ("url", "https://a/2"),
            ("req_headers[1]", ""),
        ]

    def test_generate(self, session, caches):
        session.routes[f"{PROXY_URL}/v0/proxy"] = FakeResponse(200, {"data": {"items": ["https://p/1", {"url": "https://p/2"}]}})
        proxy = StremThruProxy(make_config(id="stremthru"), session, caches)

        urls = asyncio.run(proxy.generate_urls([ProxyStream("https://a/1"), ProxyStream("https://a/2")]))
        _, _, kwargs = session.calls[0]

        assert urls == ["https://p/1", "https://p/2"]
        assert kwargs["params"] == {"token": "secret"}
        assert dict(parse_qsl(kwargs["data"]))["url"] in ("https://a/1", "https://a/2")
        assert "X-StremThru-Authorization" not in kwargs["headers"]

    def test_encrypted_credentials_use_a_header(self, caches):
        proxy = StremThruProxy(make_config(id="stremthru", encrypt=True), None, caches)

        assert proxy.headers()["X-StremThru-Authorization"] == "Basic secret"

    def test_error_field_fails_the_batch(self, session, caches):
        session.routes[f"{PROXY_URL}/v0/proxy"] = FakeResponse(200, {"error": "bad token"})
        proxy = StremThruProxy(make_config(id="stremthru"), session, caches)

        assert asyncio.run(proxy.generate_urls([ProxyStream("https://a/1")])) is None


def test_create_proxy(caches):
    assert isinstance(create_proxy(make_config(id="stremthru"), None, caches), StremThruProxy)
    with pytest.raises(ValueError):
        create_proxy(make_config(id="socks"), None, caches)


def test_masking():
    assert mask("secretpassword") == f"se{'*' * 10}rd"
    assert mask("abc") == "***"
    assert mask_url("https://proxy.example.com:8443/proxy/ip?api_password=secret") == f"https://pr{'*' * 13}om:8443/proxy/ip"
