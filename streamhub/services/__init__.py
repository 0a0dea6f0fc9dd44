#!/usr/bin/env python3
"""
Services Package Initialization

This package contains the service layer of KPTV StreamHub: the caches and
regex engine shared across requests, and each stage of the stream
pipeline from aggregation through to the wire mapping.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""
from .cache import Cache, CacheRegistry
from .regex_engine import CompiledPattern, RegexFilterEngine
from .stream_aggregator import StreamAggregator
from .stream_filter import StreamFilter
from .deduplicator import Deduplicator, normalise_filename
from .sorter import StreamSorter
from .limiter import StreamLimiter
from .stream_service import DefaultFormatter, StreamService, binge_group, format_bytes

# hold the necessary modules
__all__ = [
    "Cache",
    "CacheRegistry",
    "CompiledPattern",
    "RegexFilterEngine",
    "StreamAggregator",
    "StreamFilter",
    "Deduplicator",
    "normalise_filename",
    "StreamSorter",
    "StreamLimiter",
    "DefaultFormatter",
    "StreamService",
    "binge_group",
    "format_bytes",
]
