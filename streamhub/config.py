#!/usr/bin/env python3
"""
Configuration Loader Module

This module handles loading and parsing of YAML configuration files
for KPTV StreamHub. It converts raw YAML data into structured
configuration objects, applying a default for every missing key.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import yaml
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional
from streamhub.models import (
    AppConfig, CacheStatusFilter, DedupConfig, FilterConfig, LimitConfig, ProxyConfig, RankPattern,
    SeederRange, SizeLimits, SortConfig, SortCriterion, SourceConfig, UserPreferences
)

# the size and seeder bound sections of the filters
SIZE_SECTIONS = ("movie_size", "series_size")
SEEDER_SECTIONS = ("required_seeders", "excluded_seeders")
CACHE_SECTIONS = ("exclude_cached_from", "exclude_uncached_from")

"""
Parse a min/max size section

@param data: dict Raw section, may be None
@return SizeLimits: The limits
"""
def parse_size_limits(data: Optional[Dict[str, Any]]) -> SizeLimits:
    data = data or {}
    return SizeLimits(min=data.get('min'), max=data.get('max'))

"""
Parse a scoped cache status section

@param data: dict Raw section, may be None
@return CacheStatusFilter: The scoped filter
@throws ValueError: For an unknown mode
"""
def parse_cache_filter(data: Optional[Dict[str, Any]]) -> CacheStatusFilter:
    data = data or {}
    return CacheStatusFilter(
        mode=data.get('mode', 'or'),
        sources=data.get('sources', []),
        services=data.get('services', []),
        stream_kinds=data.get('stream_kinds', [])
    )

"""
Parse the filter section
Every list and flag of FilterConfig may be given under its own name.

@param data: dict Raw filter section
@return FilterConfig: The filter configuration
"""
def parse_filters(data: Dict[str, Any]) -> FilterConfig:

    # the plain fields
    defaults = FilterConfig()
    sections = SIZE_SECTIONS + SEEDER_SECTIONS + CACHE_SECTIONS + ('resolution_sizes',)
    values: Dict[str, Any] = {}
    for f in fields(FilterConfig):
        if f.name in sections:
            continue
        values[f.name] = data.get(f.name, getattr(defaults, f.name))

    # the bound and scope sections
    for name in SIZE_SECTIONS:
        values[name] = parse_size_limits(data.get(name))
    for name in SEEDER_SECTIONS:
        section = data.get(name) or {}
        values[name] = SeederRange(min=section.get('min'), max=section.get('max'))
    for name in CACHE_SECTIONS:
        values[name] = parse_cache_filter(data.get(name))
    values['resolution_sizes'] = {
        resolution: parse_size_limits(limits)
        for resolution, limits in (data.get('resolution_sizes') or {}).items()
    }
    return FilterConfig(**values)

"""
Parse a list of sort criteria
Entries are either a criterion name (descending) or a mapping with a
criterion and a direction.

@param entries: list Raw entries
@return list: SortCriterion entries
@throws ValueError: For an unknown criterion or direction
"""
def parse_criteria(entries: List[Any]) -> List[SortCriterion]:

    # hold them
    criteria = []
    for entry in entries or []:
        if isinstance(entry, str):
            criteria.append(SortCriterion(entry))
        else:
            criteria.append(SortCriterion(entry['criterion'], entry.get('direction', 'desc')))
    return criteria

"""
Parse the preferences section

@param data: dict Raw preferences section
@return UserPreferences: The preferences
"""
def parse_preferences(data: Dict[str, Any]) -> UserPreferences:

    # setup the defaults
    defaults = UserPreferences()

    # setup the sort
    sort_data = data.get('sort', {})
    sort = SortConfig(
        criteria=parse_criteria(sort_data['criteria']) if 'criteria' in sort_data else SortConfig().criteria,
        cached=parse_criteria(sort_data.get('cached', [])),
        uncached=parse_criteria(sort_data.get('uncached', []))
    )

    # setup the dedup and the limits
    dedup_data = data.get('dedup', {})
    dedup = DedupConfig(
        keys=dedup_data.get('keys', DedupConfig().keys),
        mode=dedup_data.get('mode', 'default')
    )
    limit_data = data.get('limits', {})
    limits = LimitConfig(
        global_limit=limit_data.get('global'),
        indexer=limit_data.get('indexer'),
        release_group=limit_data.get('release_group'),
        resolution=limit_data.get('resolution'),
        quality=limit_data.get('quality'),
        source=limit_data.get('source'),
        stream_kind=limit_data.get('stream_kind'),
        service=limit_data.get('service')
    )

    # return the preferences with defaults if necessary
    return UserPreferences(
        filters=parse_filters(data.get('filters', {})),
        sort=sort,
        dedup=dedup,
        limits=limits,
        resolutions=data.get('resolutions', defaults.resolutions),
        qualities=data.get('qualities', defaults.qualities),
        encodes=data.get('encodes', defaults.encodes),
        stream_kinds=data.get('stream_kinds', defaults.stream_kinds),
        visual_tags=data.get('visual_tags', defaults.visual_tags),
        audio_tags=data.get('audio_tags', defaults.audio_tags),
        audio_channels=data.get('audio_channels', defaults.audio_channels),
        languages=data.get('languages', []),
        prioritised_language=data.get('prioritised_language'),
        services=data.get('services', defaults.services),
        sources=data.get('sources', []),
        rank_patterns=[RankPattern(p['pattern'], p.get('name')) for p in data.get('rank_patterns', [])],
        preferred_keywords=data.get('preferred_keywords', []),
        hide_errors=data.get('hide_errors', False),
        show_external_downloads=data.get('show_external_downloads', False)
    )

"""
Parse the proxy section

@param data: dict Raw proxy section
@return ProxyConfig: The proxy configuration
"""
def parse_proxy(data: Dict[str, Any]) -> ProxyConfig:
    return ProxyConfig(
        enabled=data.get('enabled', False),
        id=data.get('id', 'mediaflow'),
        url=data.get('url', ''),
        credentials=data.get('credentials', ''),
        public_ip=data.get('public_ip'),
        proxied_sources=data.get('proxied_sources', []),
        proxied_services=data.get('proxied_services', []),
        encrypt=data.get('encrypt', False),
        public_host=data.get('public_host'),
        public_port=data.get('public_port'),
        public_protocol=data.get('public_protocol')
    )

"""
Build the configuration from parsed YAML data

@param config_data: dict The parsed YAML document
@return AppConfig: Fully populated application configuration object
"""
def parse_config(config_data: Dict[str, Any]) -> AppConfig:

    # setup and hold the sources
    config_data = config_data or {}
    default_timeout = config_data.get('default_timeout', 15.0)
    sources = []
    for source_data in config_data.get('sources', []):
        sources.append(SourceConfig(
            id=source_data.get('id', source_data['name']),
            name=source_data['name'],
            manifest_url=source_data['manifest_url'],
            preset=source_data.get('preset', 'generic'),
            timeout=source_data.get('timeout', default_timeout),
            headers=source_data.get('headers', {}),
            options=source_data.get('options', {}),
            enabled=source_data.get('enabled', True)
        ))

    # return the applications configuration with defaults if necessary
    return AppConfig(
        sources=sources,
        preferences=parse_preferences(config_data.get('preferences', {})),
        proxy=parse_proxy(config_data.get('proxy', {})),
        addon_name=config_data.get('addon_name', 'KPTV StreamHub'),
        bind_host=config_data.get('bind_host', '0.0.0.0'),
        bind_port=config_data.get('bind_port', 8080),
        public_url=config_data.get('public_url', 'http://localhost:8080'),
        log_level=config_data.get('log_level', 'INFO'),
        default_timeout=default_timeout,
        cache_max_size=config_data.get('cache_max_size', 1000),
        regex_timeout=config_data.get('regex_timeout', 1.0)
    )

"""
Load and parse configuration from YAML file

Reads the specified YAML configuration file, validates its existence,
and converts the data into structured configuration objects for use
throughout the application.

@param config_path: str Path to the YAML configuration file
@return AppConfig: Fully populated application configuration object
@throws FileNotFoundError: When the specified config file does not exist
@throws ValueError: For an unknown sort criterion, direction or dedup mode
"""
def load_config(config_path: str) -> AppConfig:

    # load the config file
    config_file = Path(config_path)

    # make sure it actually exists
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # now open it grab the data as yaml
    with open(config_file, 'r') as f:
        config_data = yaml.safe_load(f)

    # parse it
    return parse_config(config_data)
