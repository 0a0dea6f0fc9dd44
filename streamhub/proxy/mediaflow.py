#!/usr/bin/env python3
"""
MediaFlow Proxy Module

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import posixpath
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
from streamhub.exceptions import ProxyGenerationError
from streamhub.proxy.base import BaseProxy, ProxyStream

"""
MediaFlow proxy backend

The api password goes in the query string, or inside the encrypted
payload when encryption is on.
"""
class MediaFlowProxy(BaseProxy):

    ip_endpoint = "/proxy/ip"

    def headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def ip_params(self) -> Dict[str, str]:
        return {"api_password": self.config.credentials}

    def public_ip_from(self, data: Any) -> Optional[str]:
        return data.get("ip") or None

    """
    Build the generate_urls payload

    @param streams: list Urls to rewrite
    @return dict: The JSON payload
    """
    def payload(self, streams: List[ProxyStream]) -> Dict[str, Any]:

        # the base of the payload
        payload: Dict[str, Any] = {"mediaflow_proxy_url": self.base_url, "urls": []}
        if self.config.encrypt:
            payload["api_password"] = self.config.credentials

        # each url
        for stream in streams:
            entry: Dict[str, Any] = {
                "endpoint": "/proxy/stream",
                "filename": stream.filename or posixpath.basename(urlsplit(stream.url).path),
                "destination_url": stream.url,
            }
            if not self.config.encrypt:
                entry["query_params"] = {"api_password": self.config.credentials}
            if stream.request_headers:
                entry["request_headers"] = stream.request_headers
            if stream.response_headers:
                entry["response_headers"] = stream.response_headers
            payload["urls"].append(entry)
        return payload

    async def _generate(self, streams: List[ProxyStream]) -> List[str]:
        data = await self._post(self.endpoint_url("/generate_urls"), json=self.payload(streams))
        if not data.get("urls"):
            raise ProxyGenerationError("No urls were returned from MediaFlow")
        return list(data["urls"])
