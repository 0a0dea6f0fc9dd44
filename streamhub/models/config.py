#!/usr/bin/env python3
"""
Configuration Data Models Module

This module defines the configuration classes for KPTV StreamHub: the
configured upstream sources, the user preference object driving the
filter, deduplication, sort and limit stages, and the egress proxy.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# add our imports
import hashlib, json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from streamhub import constants

"""
Configuration for an upstream addon source

Constructed once per configuration and reused across requests. Only the
ip field is refreshed per request. The supported resources, types and id
prefixes are learned from the source manifest.
"""
@dataclass
class SourceConfig:
    """Configuration for an upstream addon source"""
    id: str
    name: str
    manifest_url: str
    preset: str = "generic"
    timeout: float = 15.0
    headers: Dict[str, str] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    ip: Optional[str] = None
    resources: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    id_prefixes: List[str] = field(default_factory=list)

    @property
    def instance_id(self) -> str:
        """Source id qualified by a digest of its resolved options"""
        if not self.options:
            return self.id
        digest = hashlib.sha256(json.dumps(self.options, sort_keys=True, default=str).encode()).hexdigest()
        return f"{self.id}.{digest[:8]}"

"""
Minimum and maximum byte size, either bound optional
"""
@dataclass
class SizeLimits:
    min: Optional[int] = None
    max: Optional[int] = None

"""
Minimum and maximum seeder count, either bound optional
"""
@dataclass
class SeederRange:
    min: Optional[int] = None
    max: Optional[int] = None

"""
Cache status exclusion scoped to sources, services and stream kinds

A record with the matching cache status is excluded when it matches any
(or mode) or every (and mode) configured scope. An empty scope never
matches.
"""
@dataclass
class CacheStatusFilter:
    mode: str = "or"
    sources: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    stream_kinds: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.mode not in constants.CACHE_FILTER_MODES:
            raise ValueError(f"Unknown cache filter mode: {self.mode}")

"""
Configuration for record filtering

Every tag category has a deny list (excluded_*) and an allow-only list
(required_*). An empty list disables that check. The seeder ranges apply
to the stream types in seeder_range_kinds, or to every record when empty.
"""
@dataclass
class FilterConfig:
    """Configuration for record filtering"""
    excluded_stream_kinds: List[str] = field(default_factory=list)
    required_stream_kinds: List[str] = field(default_factory=list)
    excluded_resolutions: List[str] = field(default_factory=list)
    required_resolutions: List[str] = field(default_factory=list)
    excluded_qualities: List[str] = field(default_factory=list)
    required_qualities: List[str] = field(default_factory=list)
    excluded_encodes: List[str] = field(default_factory=list)
    required_encodes: List[str] = field(default_factory=list)
    excluded_visual_tags: List[str] = field(default_factory=list)
    required_visual_tags: List[str] = field(default_factory=list)
    excluded_audio_tags: List[str] = field(default_factory=list)
    required_audio_tags: List[str] = field(default_factory=list)
    excluded_audio_channels: List[str] = field(default_factory=list)
    required_audio_channels: List[str] = field(default_factory=list)
    excluded_languages: List[str] = field(default_factory=list)
    required_languages: List[str] = field(default_factory=list)
    excluded_patterns: List[str] = field(default_factory=list)
    required_patterns: List[str] = field(default_factory=list)
    excluded_keywords: List[str] = field(default_factory=list)
    required_keywords: List[str] = field(default_factory=list)
    exclude_cached: bool = False
    exclude_uncached: bool = False
    exclude_cached_from: CacheStatusFilter = field(default_factory=CacheStatusFilter)
    exclude_uncached_from: CacheStatusFilter = field(default_factory=CacheStatusFilter)
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    movie_size: SizeLimits = field(default_factory=SizeLimits)
    series_size: SizeLimits = field(default_factory=SizeLimits)
    resolution_sizes: Dict[str, SizeLimits] = field(default_factory=dict)
    min_seeders: Optional[int] = None
    required_seeders: SeederRange = field(default_factory=SeederRange)
    excluded_seeders: SeederRange = field(default_factory=SeederRange)
    seeder_range_kinds: List[str] = field(default_factory=list)
    season_episode_matching: bool = False

    def __post_init__(self):
        for kind in self.seeder_range_kinds:
            if kind not in constants.SEEDER_RANGE_KINDS:
                raise ValueError(f"Unknown seeder range type: {kind}")

"""
One sort step: a criterion and its direction
"""
@dataclass(frozen=True)
class SortCriterion:
    criterion: str
    direction: str = constants.DESC

    def __post_init__(self):
        if self.criterion not in constants.SORT_CRITERIA:
            raise ValueError(f"Unknown sort criterion: {self.criterion}")
        if self.direction not in constants.SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.direction}")

# the default global ordering, all descending
DEFAULT_SORT = ["cached", "resolution", "quality", "visual_tag", "size", "seeders"]

"""
Ordered sort criteria

The cached and uncached lists, when set, replace the global list for the
cached and the uncached (or service-less) partitions.
"""
@dataclass
class SortConfig:
    criteria: List[SortCriterion] = field(default_factory=lambda: [SortCriterion(c) for c in DEFAULT_SORT])
    cached: List[SortCriterion] = field(default_factory=list)
    uncached: List[SortCriterion] = field(default_factory=list)

"""
A named ranking pattern for the regex sort criterion
"""
@dataclass(frozen=True)
class RankPattern:
    pattern: str
    name: Optional[str] = None

"""
Deduplication settings
"""
@dataclass
class DedupConfig:
    keys: List[str] = field(default_factory=lambda: list(constants.DEDUP_KEYS))
    mode: str = "default"

    def __post_init__(self):
        if self.mode not in constants.DEDUP_MODES:
            raise ValueError(f"Unknown deduplication mode: {self.mode}")
        for key in self.keys:
            if key not in constants.DEDUP_KEYS:
                raise ValueError(f"Unknown deduplication key: {key}")

"""
Result caps, 0 or None disables a cap
"""
@dataclass
class LimitConfig:
    global_limit: Optional[int] = None
    indexer: Optional[int] = None
    release_group: Optional[int] = None
    resolution: Optional[int] = None
    quality: Optional[int] = None
    source: Optional[int] = None
    stream_kind: Optional[int] = None
    service: Optional[int] = None

"""
Egress proxy settings

@param id: str Backend id, mediaflow or stremthru
@param public_ip: str Skip discovery and use this ip
@param proxied_sources: list Source ids to proxy, empty means all
@param proxied_services: list Service ids to proxy, empty means all, 'none' for service-less
@param encrypt: bool Send credentials in the encrypted form the backend supports
@param public_host: str Host override applied to every generated url
"""
@dataclass
class ProxyConfig:
    """Egress proxy settings"""
    enabled: bool = False
    id: str = "mediaflow"
    url: str = ""
    credentials: str = ""
    public_ip: Optional[str] = None
    proxied_sources: List[str] = field(default_factory=list)
    proxied_services: List[str] = field(default_factory=list)
    encrypt: bool = False
    public_host: Optional[str] = None
    public_port: Optional[int] = None
    public_protocol: Optional[str] = None

"""
The user configuration consumed by the pipeline

Priority lists are ordered best first and default to the full vocabulary.
"""
@dataclass
class UserPreferences:
    """The user configuration consumed by the pipeline"""
    filters: FilterConfig = field(default_factory=FilterConfig)
    sort: SortConfig = field(default_factory=SortConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    limits: LimitConfig = field(default_factory=LimitConfig)
    resolutions: List[str] = field(default_factory=lambda: list(constants.RESOLUTIONS))
    qualities: List[str] = field(default_factory=lambda: list(constants.QUALITIES))
    encodes: List[str] = field(default_factory=lambda: list(constants.ENCODES))
    stream_kinds: List[str] = field(default_factory=lambda: list(constants.STREAM_KINDS))
    visual_tags: List[str] = field(default_factory=lambda: list(constants.VISUAL_TAGS))
    audio_tags: List[str] = field(default_factory=lambda: list(constants.AUDIO_TAGS))
    audio_channels: List[str] = field(default_factory=lambda: list(constants.AUDIO_CHANNELS))
    languages: List[str] = field(default_factory=list)
    prioritised_language: Optional[str] = None
    services: List[str] = field(default_factory=lambda: list(constants.SERVICES))
    sources: List[str] = field(default_factory=list)
    rank_patterns: List[RankPattern] = field(default_factory=list)
    preferred_keywords: List[str] = field(default_factory=list)
    hide_errors: bool = False
    show_external_downloads: bool = False

"""
Main application configuration

Top-level configuration containing all sources, preferences, and global settings.
"""
@dataclass
class AppConfig:
    """Main application configuration"""
    sources: List[SourceConfig] = field(default_factory=list)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    addon_name: str = "KPTV StreamHub"
    bind_host: str = "0.0.0.0"
    bind_port: int = 8080
    public_url: str = "http://localhost:8080"
    log_level: str = "INFO"
    default_timeout: float = 15.0
    cache_max_size: int = 1000
    regex_timeout: float = 1.0
