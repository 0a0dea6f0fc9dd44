#!/usr/bin/env python3
"""
Stream Data Models Module

This module defines the canonical stream record produced once per upstream
result, the structured tag set extracted from its filename, and the small
value types hanging off it.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# add our imports
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from streamhub.constants import UNKNOWN

"""
Structured tags extracted from a release filename
"""
@dataclass(frozen=True)
class ParsedFile:
    """Structured tags extracted from a release filename"""
    resolution: Optional[str] = None
    quality: Optional[str] = None
    encode: Optional[str] = None
    visual_tags: List[str] = field(default_factory=list)
    audio_tags: List[str] = field(default_factory=list)
    audio_channels: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    release_group: Optional[str] = None
    title: Optional[str] = None
    year: Optional[str] = None
    season: Optional[int] = None
    seasons: List[int] = field(default_factory=list)
    episode: Optional[int] = None
    season_episode: List[str] = field(default_factory=list)

"""
Service backing a stream

@param id: str Service id from the known services table
@param cached: bool Whether the service can deliver the content instantly
"""
@dataclass(frozen=True)
class Service:
    id: str
    cached: bool = False

"""
Where a stream can be played from

Exactly one variant is populated for a given stream kind: a direct url,
a torrent info hash with file index and tracker sources, an external url,
or a video platform id.
"""
@dataclass(frozen=True)
class Locator:
    url: Optional[str] = None
    info_hash: Optional[str] = None
    file_idx: Optional[int] = None
    sources: List[str] = field(default_factory=list)
    external_url: Optional[str] = None
    yt_id: Optional[str] = None

"""
Which named ranking pattern matched a record
"""
@dataclass(frozen=True)
class RankMatch:
    name: Optional[str]
    index: int

"""
Error carried by an error-kind record
"""
@dataclass(frozen=True)
class StreamError:
    title: str
    description: str

"""
The canonical stream record

Created once by a stream parser. Filtering and sorting only select and
reorder records; rank preparation and proxy rewriting produce modified
copies through dataclasses.replace.
"""
@dataclass(frozen=True)
class CanonicalStream:
    """The canonical stream record"""
    id: str
    source_id: str
    source_name: str
    kind: str
    locator: Locator = field(default_factory=Locator)
    service: Optional[Service] = None
    filename: Optional[str] = None
    folder_name: Optional[str] = None
    size: Optional[int] = None
    folder_size: Optional[int] = None
    seeders: Optional[int] = None
    age: Optional[str] = None
    indexer: Optional[str] = None
    duration: int = 0
    in_library: bool = False
    personal: bool = False
    tags: ParsedFile = field(default_factory=ParsedFile)
    rank_match: Optional[RankMatch] = None
    keyword_matched: bool = False
    proxied: bool = False
    error: Optional[StreamError] = None
    message: Optional[str] = None
    torrent_hash: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    response_headers: Dict[str, str] = field(default_factory=dict)
    subtitles: List[Dict[str, Any]] = field(default_factory=list)
    not_web_ready: bool = False
    video_hash: Optional[str] = None
    country_whitelist: List[str] = field(default_factory=list)

    @property
    def url(self) -> Optional[str]:
        return self.locator.url

    @property
    def info_hash(self) -> Optional[str]:
        return self.locator.info_hash

    @property
    def service_id(self) -> Optional[str]:
        return self.service.id if self.service else None

    @property
    def cached(self) -> Optional[bool]:
        return self.service.cached if self.service else None

    @property
    def languages(self) -> List[str]:
        """Languages with the empty list reported as the Unknown sentinel"""
        return list(self.tags.languages) or [UNKNOWN]

    def from_source(self, ids: List[str]) -> bool:
        """True when the record came from one of the given configured source ids"""
        return self.source_id in ids or self.source_id.rsplit(".", 1)[0] in ids

"""
A source that failed, or an error record a source returned
"""
@dataclass
class SourceFailure:
    source_id: str
    source_name: str
    message: str
    title: Optional[str] = None

"""
Result of fanning out to all sources

@param records: list Successfully normalized records, in source order
@param failures: list One SourceFailure per failed source or error record
"""
@dataclass
class AggregateResult:
    records: List[CanonicalStream] = field(default_factory=list)
    failures: List[SourceFailure] = field(default_factory=list)
