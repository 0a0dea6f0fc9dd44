#!/usr/bin/env python3
"""
Proxy Package Initialization

This package contains the egress proxy backends and the resolver the
pipeline uses to route streams through them.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the necessary imports
import aiohttp
from streamhub.models import ProxyConfig
from streamhub.services.cache import CacheRegistry
from .base import BaseProxy, ProxyResolver, ProxyStream, mask, mask_url
from .mediaflow import MediaFlowProxy
from .stremthru import StremThruProxy

# hold the backends
PROXIES = {
    "mediaflow": MediaFlowProxy,
    "stremthru": StremThruProxy,
}

"""
Create the proxy backend for a configuration

@param config: ProxyConfig Proxy settings
@param session: aiohttp.ClientSession HTTP session for requests
@param caches: CacheRegistry Registry holding the public ip cache
@return BaseProxy: The backend
@throws ValueError: For an unknown backend id
"""
def create_proxy(config: ProxyConfig, session: aiohttp.ClientSession, caches: CacheRegistry) -> BaseProxy:
    proxy_class = PROXIES.get(config.id)
    if proxy_class is None:
        raise ValueError(f"Unknown proxy type: {config.id}")
    return proxy_class(config, session, caches)

# hold the necessary modules
__all__ = [
    "BaseProxy",
    "ProxyResolver",
    "ProxyStream",
    "MediaFlowProxy",
    "StremThruProxy",
    "PROXIES",
    "create_proxy",
    "mask",
    "mask_url",
]
