#!/usr/bin/env python3
"""
Stream Pipeline Core Module

This module contains the StreamPipeline class that orchestrates a stream
request end to end: proxy ip resolution, per source ip assignment, source
selection, aggregation, then filter, deduplication, ranking, sort, limits,
proxy rewriting and the wire mapping.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import asyncio, ipaddress, logging, time, aiohttp
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from streamhub import __version__, constants
from streamhub.exceptions import ProxyIpError
from streamhub.models import AppConfig, CanonicalStream, SourceConfig, SourceFailure, Stream
from streamhub.proxy import ProxyResolver, create_proxy
from streamhub.services import (
    CacheRegistry,
    Deduplicator,
    RegexFilterEngine,
    StreamAggregator,
    StreamFilter,
    StreamLimiter,
    StreamService,
    StreamSorter,
)
from streamhub.sources import AddonClient, get_parser

# setup the logger
logger = logging.getLogger(__name__)

# seconds between cache statistics log lines
STATS_INTERVAL = 300

"""
Check that an ip may be forwarded upstream
Private, loopback, link local and malformed addresses are never forwarded.

@param ip: str The ip
@return bool: True for a public address
"""
def is_public_ip(ip: Optional[str]) -> bool:

    # nothing to check
    if not ip:
        return False

    # try to parse it
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return address.is_global

"""
The outcome of one stream request

@param streams: list Final records in order
@param errors: list Source failures and error records
"""
@dataclass
class PipelineResult:
    streams: List[CanonicalStream] = field(default_factory=list)
    errors: List[SourceFailure] = field(default_factory=list)

"""
Main application orchestrator class

Owns the HTTP session, the cache registry, the source clients and the
proxy for the lifetime of the app. Every pipeline stage is built once
from the configuration.
"""
class StreamPipeline:
    """Main application class"""

    """
    Initialize the StreamPipeline
    Builds the stages that need no network access.

    @param config: AppConfig Application configuration object
    """
    def __init__(self, config: AppConfig):

        # hold our class options
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self.caches = CacheRegistry(config.cache_max_size)
        self.regex = RegexFilterEngine(self.caches, config.regex_timeout)
        self.clients: List[AddonClient] = []
        self.aggregator: Optional[StreamAggregator] = None
        self.proxy_resolver = ProxyResolver(None, config.proxy)
        self.stats_task = None

        # hold the sources in priority order
        preferences = config.preferences
        self.sources = self.order_sources(config.sources, preferences.sources)
        priorities = [source.instance_id for source in self.sources]

        # setup the stages
        self.stream_filter = StreamFilter(preferences.filters, self.regex)
        self.deduplicator = Deduplicator(preferences.dedup, priorities, preferences.services)
        self.sorter = StreamSorter(preferences, priorities, self.regex)
        self.limiter = StreamLimiter(preferences.limits)
        self.stream_service = StreamService(preferences, config.addon_name, config.public_url)

    """
    Order the enabled sources
    Sources named in the preference list come first in that order, the
    rest follow in configuration order.

    @param sources: list Configured sources
    @param preferred: list Source ids in priority order
    @return list: The enabled sources in priority order
    """
    @staticmethod
    def order_sources(sources: List[SourceConfig], preferred: List[str]) -> List[SourceConfig]:

        # rank each source by its position in the preference list
        def _rank(item):
            position, source = item
            for key in (source.instance_id, source.id):
                if key in preferred:
                    return (preferred.index(key), position)
            return (len(preferred), position)

        enabled = [s for s in sources if s.enabled]
        return [source for _, source in sorted(enumerate(enabled), key=_rank)]

    """
    Initialize the application
    Creates the HTTP session, the source clients and the proxy, then loads
    every source manifest.

    @return None
    """
    async def initialize(self):

        # setup the client timeout, sources and the proxy apply their own
        timeout = aiohttp.ClientTimeout(total=None, connect=30, sock_read=60)

        # setup out TCP connector and its option
        connector = aiohttp.TCPConnector(
            limit=100,
            limit_per_host=20,
            keepalive_timeout=300,
            enable_cleanup_closed=True
        )

        # setup the session
        self.session = aiohttp.ClientSession(timeout=timeout, connector=connector)

        # setup the clients and the aggregator
        self.clients = [AddonClient(source, self.session, self.caches) for source in self.sources]
        self.aggregator = StreamAggregator(self.clients, get_parser)

        # setup the proxy
        if self.config.proxy.enabled:
            self.proxy_resolver = ProxyResolver(create_proxy(self.config.proxy, self.session, self.caches), self.config.proxy)

        # load the manifests and start the stats loop
        await self.load_manifests(self.clients)
        self.stats_task = asyncio.create_task(self._stats_loop())
        logger.info(f"Initialized {len(self.clients)} sources")

    """
    Cleanup resources
    Cancels the stats loop and closes the HTTP session.

    @return None
    """
    async def cleanup(self):

        # if this is a stats task
        if self.stats_task:

            # cancel it
            self.stats_task.cancel()

            # wait for it to finish, and ignore the cancellation errors
            try:
                await self.stats_task
            except asyncio.CancelledError:
                pass

        # log the final cache stats
        self.caches.log_stats()

        # if we have a session... close it
        if self.session:
            await self.session.close()

    """
    Background task logging the cache statistics

    @return None
    """
    async def _stats_loop(self):

        # while we're still looping...
        while True:

            # try to log after the interval
            try:
                await asyncio.sleep(STATS_INTERVAL)
                self.caches.log_stats()

            # whoops, we are in a cancelation...
            except asyncio.CancelledError:
                break

    """
    Load the manifests of the given clients
    A failing source is logged and skipped until its next load.

    @param clients: list Clients to load
    @return None
    """
    async def load_manifests(self, clients: List[AddonClient]):

        # fire them all off
        outcomes = await asyncio.gather(*(client.get_manifest() for client in clients), return_exceptions=True)

        # log the failures
        for client, outcome in zip(clients, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Failed to load the manifest for {client.config.name}: {outcome}")

    """
    Pick the sources to ask, each with the ip it should forward
    Proxied sources forward the proxy ip, the rest the requesting ip when
    it is a public address.

    @param content_type: str Content type
    @param content_id: str Content id
    @param client_ip: str Requesting ip
    @param proxy_ip: str Proxy public ip
    @return list: Request scoped clients
    """
    async def select_sources(self, content_type: str, content_id: str, client_ip: Optional[str], proxy_ip: Optional[str]) -> List[AddonClient]:

        # retry any manifests we are missing
        missing = [client for client in self.clients if client.manifest is None]
        if missing:
            await self.load_manifests(missing)

        # never forward a private requesting ip
        if client_ip and not is_public_ip(client_ip):
            logger.debug(f"Not forwarding the non public client ip {client_ip}")
            client_ip = None

        # pick the supporting sources
        selected = []
        for client in self.clients:
            if not client.supports(constants.STREAM_RESOURCE, content_type, content_id):
                continue
            proxied = proxy_ip is not None and self.proxy_resolver.proxies_source(client.config.instance_id)
            selected.append(client.with_ip(proxy_ip if proxied else client_ip))

        # logging
        logger.info(f"Selected {len(selected)} of {len(self.clients)} sources for {content_type}/{content_id}")
        return selected

    """
    Run the pipeline for a stream request

    @param content_type: str Content type
    @param content_id: str Content id
    @param client_ip: str Requesting ip forwarded to unproxied sources
    @return PipelineResult: Final records and errors
    @throws ProxyIpError: When the proxy public ip cannot be resolved
    """
    async def get_streams(self, content_type: str, content_id: str, client_ip: Optional[str] = None) -> PipelineResult:

        # setup
        start = time.time()

        # the proxy ip gates everything
        proxy_ip = await self.proxy_resolver.resolve_ip()

        # fetch from the sources
        clients = await self.select_sources(content_type, content_id, client_ip, proxy_ip)
        aggregated = await self.aggregator.fetch(content_type, content_id, clients)

        # run the stages
        records = self.stream_filter.filter(aggregated.records, content_type, content_id)
        records = self.deduplicator.deduplicate(records)
        records = self.sorter.prepare(records)
        records = self.sorter.sort(records)
        records = self.limiter.limit(records)
        if self.proxy_resolver.enabled:
            records = await self.proxy_resolver.apply(records)

        # logging
        logger.info(f"Returning {len(records)} streams for {content_type}/{content_id} in {time.time() - start:.2f}s")
        return PipelineResult(records, aggregated.failures)

    """
    Run the pipeline and map the result to outbound streams
    A proxy ip failure becomes a single error stream.

    @param content_type: str Content type
    @param content_id: str Content id
    @param client_ip: str Requesting ip
    @return list: Outbound streams
    """
    async def get_wire_streams(self, content_type: str, content_id: str, client_ip: Optional[str] = None) -> List[Stream]:

        # try to run it
        try:
            result = await self.get_streams(content_type, content_id, client_ip)

        # whoops... no proxy ip, nothing else can go out
        except ProxyIpError as e:
            logger.error(str(e))
            failure = SourceFailure("proxy", self.config.proxy.id, str(e), title=self.config.addon_name)
            return [self.stream_service.error_stream(failure)]

        # map it
        return self.stream_service.build(result.streams, result.errors)

    """
    Build our own manifest
    Advertises the union of the source types and id prefixes.

    @return dict: The manifest
    """
    def manifest(self) -> Dict[str, Any]:

        # gather what the sources support
        types = sorted({t for s in self.sources for t in s.types}) or [constants.MOVIE, constants.SERIES]
        prefixes = sorted({p for s in self.sources for p in s.id_prefixes})

        # build it
        manifest: Dict[str, Any] = {
            "id": "com.kpirnie.streamhub",
            "version": __version__,
            "name": self.config.addon_name,
            "description": f"Streams from {len(self.sources)} sources, filtered and sorted",
            "resources": [constants.STREAM_RESOURCE],
            "types": types,
            "catalogs": [],
            "behaviorHints": {"configurable": False},
        }
        if prefixes:
            manifest["idPrefixes"] = prefixes
        return manifest

    """
    Get the status of the sources and caches

    @return dict: Status information
    """
    def status(self) -> Dict[str, Any]:
        return {
            "status": "running",
            "version": __version__,
            "proxy": {"enabled": self.proxy_resolver.enabled, "id": self.config.proxy.id},
            "sources": {
                client.config.instance_id: {
                    "name": client.config.name,
                    "preset": client.config.preset,
                    "manifest_loaded": client.manifest is not None,
                    "types": client.config.types,
                    "id_prefixes": client.config.id_prefixes,
                }
                for client in self.clients
            },
            "caches": self.caches.stats(),
        }
