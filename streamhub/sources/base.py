#!/usr/bin/env python3
"""
Addon Client Module

This module talks to one upstream addon source over HTTP. It fetches and
validates the source manifest and its stream resources, forwarding the
per-request client ip and the source's static headers. Any network,
status or schema problem is raised as a SourceError.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import asyncio, copy, logging, aiohttp
from dataclasses import replace
from typing import Any, Dict, List, Optional
from urllib.parse import quote
from pydantic import ValidationError
from streamhub import __version__, constants
from streamhub.exceptions import SourceError
from streamhub.models import Manifest, RawStream, SourceConfig, StreamResponse
from streamhub.services.cache import CacheRegistry

# setup the logger
logger = logging.getLogger(__name__)

# the user agent we identify with
USER_AGENT = f"KPTV-StreamHub/{__version__}"

"""
Client for one upstream addon source

Holds the source configuration for the lifetime of the app; only the ip
field of the configuration changes between requests.
"""
class AddonClient:

    """
    Initialize the AddonClient

    @param config: SourceConfig Source configuration object
    @param session: aiohttp.ClientSession HTTP session for requests
    @param caches: CacheRegistry Registry holding the manifest and resource caches
    """
    def __init__(self, config: SourceConfig, session: aiohttp.ClientSession, caches: CacheRegistry):

        # setup the internals
        self.config = config
        self.session = session
        self.manifest: Optional[Manifest] = None
        self._manifest_cache = caches.get(constants.MANIFEST_CACHE)
        self._resource_cache = caches.get(constants.RESOURCE_CACHE)

    @property
    def manifest_url(self) -> str:
        return self.config.manifest_url.replace("stremio://", "https://", 1)

    @property
    def base_url(self) -> str:
        """The manifest url without its last path segment"""
        return self.manifest_url.rstrip("/").rsplit("/", 1)[0]

    """
    Build the request headers
    Static source headers plus the client ip forwarding headers.

    @return dict: Headers for an upstream request
    """
    def _headers(self) -> Dict[str, str]:

        # setup the headers
        headers = {"User-Agent": USER_AGENT}
        headers.update(self.config.headers)

        # forward the ip if we have one
        if self.config.ip:
            for header in constants.IP_FORWARD_HEADERS:
                headers[header] = self.config.ip
        return headers

    """
    GET a url and decode its JSON body

    @param url: str Url to fetch
    @return any: The decoded body
    @throws SourceError: On timeout, connection errors, non-2xx status or invalid JSON
    """
    async def _get_json(self, url: str) -> Any:

        # setup the timeout
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        logger.debug(f"GET {url} for {self.config.name}")

        # try to fetch it
        try:
            async with self.session.get(url, headers=self._headers(), timeout=timeout) as resp:

                # make sure we have a valid response
                if not 200 <= resp.status < 300:
                    raise SourceError(self.config.instance_id, self.config.name, f"HTTP {resp.status} from {url}")

                # we do, so return the data
                return await resp.json(content_type=None)

        # whoops... it took too long
        except asyncio.TimeoutError as e:
            raise SourceError(self.config.instance_id, self.config.name, f"Timed out after {self.config.timeout}s") from e

        # whoops... the connection failed
        except aiohttp.ClientError as e:
            raise SourceError(self.config.instance_id, self.config.name, f"Request failed: {e}") from e

        # whoops... the body was not json
        except ValueError as e:
            raise SourceError(self.config.instance_id, self.config.name, f"Invalid JSON response: {e}") from e

    """
    Fetch and validate the manifest
    The validated manifest is cached per url and its stream resource
    declaration is copied into the source configuration.

    @return Manifest: The validated manifest
    @throws SourceError: When the manifest cannot be fetched or validated
    """
    async def get_manifest(self) -> Manifest:

        # check the cache
        manifest = self._manifest_cache.get(self.manifest_url)
        if manifest is None:

            # fetch and validate it
            data = await self._get_json(self.manifest_url)
            try:
                manifest = Manifest.model_validate(data)
            except ValidationError as e:
                raise SourceError(self.config.instance_id, self.config.name, f"Invalid manifest: {e.error_count()} validation errors") from e
            self._manifest_cache.set(self.manifest_url, manifest, constants.MANIFEST_TTL)

        # hold what the source supports
        self.manifest = manifest
        resources = manifest.stream_resources()
        self.config.resources = [constants.STREAM_RESOURCE] if resources else []
        self.config.types = sorted({t for r in resources for t in (r.types or manifest.types)})
        self.config.id_prefixes = sorted({p for r in resources for p in (r.idPrefixes or manifest.idPrefixes or [])})
        return manifest

    """
    Copy the client for one request, forwarding the given ip
    The copy shares the session, caches and loaded manifest.

    @param ip: str Ip to forward, or None
    @return AddonClient: The request scoped client
    """
    def with_ip(self, ip: Optional[str]) -> "AddonClient":
        client = copy.copy(self)
        client.config = replace(self.config, ip=ip)
        return client

    """
    Check whether the source serves a resource for a request
    A matching resource must list the type and, when it declares id
    prefixes, one of them must prefix the id.

    @param resource: str Resource name
    @param content_type: str Requested content type
    @param content_id: str Requested content id
    @return bool: True if the source should be queried
    """
    def supports(self, resource: str, content_type: str, content_id: str) -> bool:

        # without a manifest we can't tell
        if self.manifest is None:
            return False

        # only the stream resource is served
        if resource != constants.STREAM_RESOURCE:
            return False

        # check each stream resource
        for declared in self.manifest.stream_resources():
            types = declared.types or self.manifest.types
            prefixes = declared.idPrefixes or self.manifest.idPrefixes
            if content_type not in types:
                continue
            if not prefixes or any(content_id.startswith(prefix) for prefix in prefixes):
                return True
        return False

    """
    Build a resource url

    @param resource: str Resource name
    @param content_type: str Content type
    @param content_id: str Content id, url encoded in the path
    @param extras: str Optional extra path segment
    @return str: The resource url
    """
    def resource_url(self, resource: str, content_type: str, content_id: str, extras: Optional[str] = None) -> str:
        suffix = f"/{extras}" if extras else ""
        return f"{self.base_url}/{resource}/{content_type}/{quote(content_id, safe='')}{suffix}.json"

    """
    Fetch the streams for a content id
    Entries that fail validation are dropped and logged; a response where
    every entry is invalid is a source failure.

    @param content_type: str Content type
    @param content_id: str Content id
    @param extras: str Optional extra path segment
    @return list: Validated raw stream entries
    @throws SourceError: On request, status or schema failures
    """
    async def get_streams(self, content_type: str, content_id: str, extras: Optional[str] = None) -> List[RawStream]:

        # check the cache
        url = self.resource_url(constants.STREAM_RESOURCE, content_type, content_id, extras)
        cached = self._resource_cache.get(url)
        if cached is not None:
            logger.debug(f"Using cached streams for {self.config.name}")
            return cached

        # fetch and validate the envelope
        data = await self._get_json(url)
        try:
            response = StreamResponse.model_validate(data)
        except ValidationError as e:
            raise SourceError(self.config.instance_id, self.config.name, "Response has no streams array") from e

        # now validate each entry
        streams = []
        for index, entry in enumerate(response.streams):
            try:
                streams.append(RawStream.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Dropping invalid stream {index} from {self.config.name}: {e.error_count()} validation errors")

        # if every single one was bad, the source is broken
        if response.streams and not streams:
            raise SourceError(self.config.instance_id, self.config.name, f"All {len(response.streams)} streams failed validation")

        # cache and return them
        self._resource_cache.set(url, streams, constants.RESOURCE_TTL)
        logger.info(f"Fetched {len(streams)} streams from {self.config.name}")
        return streams
