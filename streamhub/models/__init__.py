#!/usr/bin/env python3
"""
Models Package Initialization

This package contains all data model definitions for KPTV StreamHub.
It exports the canonical stream record, configuration models and the
upstream/outbound wire schemas.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""
from .stream import (
    ParsedFile, Service, Locator, RankMatch, StreamError,
    CanonicalStream, SourceFailure, AggregateResult
)
from .config import (
    SourceConfig, SizeLimits, SeederRange, CacheStatusFilter, FilterConfig, SortCriterion, SortConfig,
    RankPattern, DedupConfig, LimitConfig, ProxyConfig, UserPreferences, AppConfig
)
from .wire import (
    Manifest, ManifestResource, RawStream, StreamResponse,
    Stream, BehaviorHints, ProxyHeaders
)

# hold the necessary modules
__all__ = [
    "ParsedFile", "Service", "Locator", "RankMatch", "StreamError",
    "CanonicalStream", "SourceFailure", "AggregateResult",
    "SourceConfig", "SizeLimits", "SeederRange", "CacheStatusFilter", "FilterConfig", "SortCriterion", "SortConfig",
    "RankPattern", "DedupConfig", "LimitConfig", "ProxyConfig", "UserPreferences", "AppConfig",
    "Manifest", "ManifestResource", "RawStream", "StreamResponse",
    "Stream", "BehaviorHints", "ProxyHeaders",
]
