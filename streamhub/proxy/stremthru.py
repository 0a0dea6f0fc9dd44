#!/usr/bin/env python3
"""
StremThru Proxy Module

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode
from streamhub.exceptions import ProxyGenerationError
from streamhub.proxy.base import BaseProxy, ProxyStream

"""
StremThru proxy backend

The token goes in the query string, or in an authorization header when
encryption is on. Urls are sent as form fields.
"""
class StremThruProxy(BaseProxy):

    ip_endpoint = "/v0/health/__debug__"

    def headers(self) -> Dict[str, str]:

        # always form encoded
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if self.config.encrypt:
            headers["X-StremThru-Authorization"] = f"Basic {self.config.credentials}"
        return headers

    def public_ip_from(self, data: Any) -> Optional[str]:

        # dig out the ip block
        ip = ((data or {}).get("data") or {}).get("ip") or {}
        exposed = ip.get("exposed")
        if isinstance(exposed, dict):
            return exposed.get("*") or ip.get("machine") or None
        return ip.get("machine") or None

    """
    Build the form fields

    @param streams: list Urls to rewrite
    @return list: (name, value) pairs in order
    """
    @staticmethod
    def form(streams: List[ProxyStream]) -> List[Tuple[str, str]]:

        # each url, its headers and its filename
        fields = []
        for i, stream in enumerate(streams):
            fields.append(("url", stream.url))
            fields.append((f"req_headers[{i}]", "".join(f"{k}: {v}\n" for k, v in stream.request_headers.items())))
            if stream.filename:
                fields.append((f"filename[{i}]", stream.filename))
        return fields

    async def _generate(self, streams: List[ProxyStream]) -> List[str]:

        # the token rides in the query string unless encrypted
        params = {} if self.config.encrypt else {"token": self.config.credentials}
        data = await self._post(self.endpoint_url("/v0/proxy"), params=params, data=urlencode(self.form(streams)))

        # pull out the urls
        items = (data.get("data") or {}).get("items")
        if not items:
            raise ProxyGenerationError("No urls were returned from StremThru")
        return [item if isinstance(item, str) else item.get("url") for item in items]
