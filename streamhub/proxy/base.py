#!/usr/bin/env python3
"""
Proxy Base Module

This module holds the backend agnostic side of the egress proxy: public ip
discovery with caching, batch url generation, and the resolver the pipeline
uses to decide which records get proxied and to rewrite them.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging, aiohttp
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
from streamhub import constants
from streamhub.exceptions import ProxyGenerationError, ProxyIpError
from streamhub.models import CanonicalStream, ProxyConfig
from streamhub.services.cache import CacheRegistry
from streamhub.sources import override_url

# setup the logger
logger = logging.getLogger(__name__)

# hosts we never ask for a public ip
PRIVATE_CIDR = re.compile(r"^(10\.|127\.|172\.(1[6-9]|2[0-9]|3[01])\.|192\.168\.)")

# seconds allowed for a single proxy request
REQUEST_TIMEOUT = 30

"""
Hide the middle of a sensitive value

@param value: str The value
@return str: The value with only its ends visible
"""
def mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:2]}{'*' * (len(value) - 4)}{value[-2:]}"

"""
A url safe to log: masked host, no query string

@param url: str The url
@return str: The loggable url
"""
def mask_url(url: str) -> str:
    parts = urlsplit(url)
    port = f":{parts.port}" if parts.port else ""
    return f"{parts.scheme}://{mask(parts.hostname or '')}{port}{parts.path}"

"""
One url to be proxied
"""
@dataclass
class ProxyStream:
    url: str
    filename: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    response_headers: Dict[str, str] = field(default_factory=dict)

"""
Base class for proxy backends

Subclasses supply the ip endpoint and its response parsing, the request
headers, and the batch url generation call.
"""
class BaseProxy:

    # the public ip discovery endpoint
    ip_endpoint: str = ""

    """
    Initialize the proxy

    @param config: ProxyConfig Proxy settings
    @param session: aiohttp.ClientSession HTTP session for requests
    @param caches: CacheRegistry Registry holding the public ip cache
    """
    def __init__(self, config: ProxyConfig, session: aiohttp.ClientSession, caches: CacheRegistry):

        # setup the internals
        self.config = config
        self.session = session
        self._cache = caches.get(constants.PUBLIC_IP_CACHE)

    @property
    def base_url(self) -> str:
        return self.config.url.rstrip("/")

    def endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @property
    def timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)

    def headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def ip_params(self) -> Dict[str, str]:
        return {}

    def public_ip_from(self, data: Any) -> Optional[str]:
        raise NotImplementedError

    async def _generate(self, streams: List[ProxyStream]) -> List[str]:
        raise NotImplementedError

    """
    Get the public ip the proxy egresses from
    A configured ip is returned as is. Private proxy hosts are never
    asked. Successful lookups are cached.

    @return str: The public ip, or None on any failure
    """
    async def get_public_ip(self) -> Optional[str]:

        # need a url
        if not self.config.url:
            logger.error("Proxy url is missing")
            return None

        # a configured ip wins
        if self.config.public_ip:
            return self.config.public_ip

        # never for a private host
        hostname = urlsplit(self.base_url).hostname or ""
        if PRIVATE_CIDR.match(hostname):
            logger.error("Proxy url is a private ip address, not looking up a public ip")
            return None

        # check the cache
        key = f"{self.config.id}:{self.config.url}:{self.config.credentials}"
        cached = self._cache.get(key)
        if cached:
            logger.debug("Returning cached public ip")
            return cached

        # try to ask the proxy
        url = self.endpoint_url(self.ip_endpoint)
        logger.debug(f"GET {mask_url(url)}")
        try:
            async with self.session.get(url, params=self.ip_params(), headers=self.headers(), timeout=self.timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise ProxyGenerationError(f"HTTP {resp.status}")
                data = await resp.json(content_type=None)
            public_ip = self.public_ip_from(data)

        # whoops... log the error
        except Exception as e:
            logger.error(f"Failed to get public ip: {e}")
            return None

        # cache it if we got one
        if public_ip:
            self._cache.set(key, public_ip, constants.PUBLIC_IP_TTL)
        else:
            logger.error("Proxy did not respond with a public ip")
        return public_ip

    """
    Rewrite a batch of urls through the proxy
    All or nothing: any failure returns None for the whole batch.

    @param streams: list Urls to rewrite
    @return list: Rewritten urls in input order, [] for an empty batch, None on failure
    """
    async def generate_urls(self, streams: List[ProxyStream]) -> Optional[List[str]]:

        # nothing to do
        if not streams:
            return []

        # try to generate them
        try:
            urls = await self._generate(streams)
            if len(urls) != len(streams):
                raise ProxyGenerationError(f"Expected {len(streams)} urls, got {len(urls)}")
            return urls

        # whoops... log the error
        except Exception as e:
            logger.error(f"Failed to generate proxy urls: {e}")
            return None

    """
    POST to the proxy and decode the JSON body

    @param url: str Endpoint url
    @param kwargs: dict Extra request arguments
    @return any: The decoded body
    @throws ProxyGenerationError: On a bad status, invalid JSON or an error field
    """
    async def _post(self, url: str, **kwargs) -> Dict[str, Any]:

        # logging
        logger.debug(f"POST {mask_url(url)}")

        # make the request
        async with self.session.post(url, headers=self.headers(), timeout=self.timeout, **kwargs) as resp:
            if not 200 <= resp.status < 300:
                raise ProxyGenerationError(f"HTTP {resp.status}")
            try:
                data = await resp.json(content_type=None)
            except ValueError as e:
                raise ProxyGenerationError(f"Invalid JSON response from {self.config.id}") from e

        # the backend told us no
        if not isinstance(data, dict):
            raise ProxyGenerationError(f"Unexpected response from {self.config.id}")
        if data.get("error"):
            raise ProxyGenerationError(str(data["error"]))
        return data

"""
Decides which records are proxied and rewrites them

@param proxy: BaseProxy The configured backend, or None when proxying is off
@param config: ProxyConfig Proxy settings
"""
class ProxyResolver:

    def __init__(self, proxy: Optional[BaseProxy], config: ProxyConfig):
        self.proxy = proxy
        self.config = config

    @property
    def enabled(self) -> bool:
        return bool(self.config.enabled and self.proxy is not None)

    """
    Resolve the proxy public ip, retrying

    @param retries: int Attempts before giving up
    @return str: The public ip, or None when proxying is off
    @throws ProxyIpError: When every attempt fails
    """
    async def resolve_ip(self, retries: int = 3) -> Optional[str]:

        # nothing to resolve
        if not self.enabled:
            return None

        # try a few times
        for attempt in range(1, retries + 1):
            public_ip = await self.proxy.get_public_ip()
            if public_ip:
                return public_ip
            logger.warning(f"Public ip lookup failed, attempt {attempt} of {retries}")
        raise ProxyIpError(f"Failed to get the public ip of the {self.config.id} proxy after {retries} attempts")

    """
    Check whether a source's requests go through the proxy

    @param source_id: str Source instance id
    @return bool: True when proxying is on and the source is allowed
    """
    def proxies_source(self, source_id: str) -> bool:
        if not self.enabled:
            return False
        allowed = self.config.proxied_sources
        return not allowed or source_id in allowed or source_id.rsplit(".", 1)[0] in allowed

    """
    Check whether a record should be proxied

    @param record: CanonicalStream The record
    @return bool: True when the record has a url and its source and service are allowed
    """
    def should_proxy(self, record: CanonicalStream) -> bool:

        # needs a url and proxying on
        if not record.url or not self.enabled:
            return False

        # the source must be allowed
        if self.config.proxied_sources and not record.from_source(self.config.proxied_sources):
            return False

        # and so must the service
        services = self.config.proxied_services
        return not services or (record.service_id or constants.NO_SERVICE) in services

    """
    Proxy every eligible record in one batch
    The host, port and protocol override is applied to every generated
    url. When the batch fails the eligible records are dropped and the
    rest are kept.

    @param records: list Records in order
    @return list: Records with the eligible ones rewritten, or dropped on failure
    """
    async def apply(self, records: List[CanonicalStream]) -> List[CanonicalStream]:

        # find the eligible ones
        eligible = [i for i, record in enumerate(records) if self.should_proxy(record)]
        if not eligible:
            return list(records)

        # build and send the batch
        batch = [
            ProxyStream(
                url=records[i].url,
                filename=records[i].filename,
                request_headers=dict(records[i].request_headers),
                response_headers=dict(records[i].response_headers),
            )
            for i in eligible
        ]
        urls = await self.proxy.generate_urls(batch)

        # whoops... drop what needed proxying
        if urls is None:
            logger.error(f"Dropping {len(eligible)} streams that could not be proxied")
            skip = set(eligible)
            return [record for i, record in enumerate(records) if i not in skip]

        # rewrite them
        result = list(records)
        for i, url in zip(eligible, urls):
            if self.config.public_host or self.config.public_port or self.config.public_protocol:
                url = override_url(url, self.config.public_host, self.config.public_port, self.config.public_protocol)
            result[i] = replace(records[i], locator=replace(records[i].locator, url=url), proxied=True)

        # logging
        logger.info(f"Proxied {len(eligible)} streams through {self.config.id}")
        return result
