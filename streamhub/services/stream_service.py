#!/usr/bin/env python3
"""
Stream Service Module

This module maps canonical records to the outbound stream shape. It builds
the display name and description through a formatter, derives the binge
group, renders source failures as error streams, and optionally adds an
external download entry after every url stream.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import logging
from dataclasses import replace
from typing import List, Optional, Tuple
from streamhub import constants
from streamhub.models import (
    BehaviorHints, CanonicalStream, ProxyHeaders, SourceFailure, Stream, UserPreferences
)

# setup the logger
logger = logging.getLogger(__name__)

# the binge group marker for proxied streams
PROXIED_PREFIX = "proxied."

"""
Format a byte count for display

@param size: int Size in bytes
@param base: int 1024 for binary units, 1000 for decimal
@return str: Something like 4.37 GB
"""
def format_bytes(size: Optional[int], base: int = 1024) -> str:

    # nothing to show
    if not size:
        return "0 B"

    # walk up the units
    value = float(size)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if value < base or unit == "TB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= base
    return f"{value:.2f} TB"

"""
Derive the binge group for a record
Identifying attributes joined with a pipe; empty ones are skipped.

@param record: CanonicalStream The record
@return str: The binge group
"""
def binge_group(record: CanonicalStream) -> str:

    # hold the identifying attributes
    tags = record.tags
    attributes = [
        tags.resolution,
        tags.quality,
        tags.encode,
        ",".join(tags.audio_tags),
        ",".join(tags.visual_tags),
        ",".join(tags.languages),
        tags.release_group,
        record.indexer,
    ]
    group = "|".join(a for a in attributes if a)
    return f"{PROXIED_PREFIX}{group}" if record.proxied else group

"""
Compact default formatter

Builds a one line name and a multi line description from a record.
"""
class DefaultFormatter:

    def __init__(self, addon_name: str):
        self.addon_name = addon_name

    """
    Format a record

    @param record: CanonicalStream The record
    @return tuple: (name, description)
    """
    def format(self, record: CanonicalStream) -> Tuple[str, str]:

        # the name, service first
        tags = record.tags
        if record.service:
            detail = constants.SERVICES.get(record.service.id)
            short_name = detail.short_name if detail else record.service.id
            prefix = f"[{short_name}{'⚡' if record.service.cached else '⏳'}] "
        elif record.kind == constants.P2P:
            prefix = "[P2P] "
        else:
            prefix = ""
        name = f"{prefix}{self.addon_name} {tags.resolution or ''}".strip()

        # the description
        lines = []
        if record.message:
            lines.append(f"ℹ️ {record.message}")
        if tags.title:
            title = f"{tags.title} ({tags.year})" if tags.year else tags.title
            if tags.season_episode:
                title = f"{title} {' '.join(tags.season_episode)}"
            lines.append(title)
        video = " ".join(v for v in (tags.quality, tags.encode, " | ".join(tags.visual_tags)) if v)
        if video:
            lines.append(f"🎥 {video}")
        audio = " ".join(tags.audio_tags + tags.audio_channels)
        if audio:
            lines.append(f"🎧 {audio}")
        info = []
        if record.size:
            info.append(f"📦 {format_bytes(record.size)}")
        if record.seeders is not None:
            info.append(f"👥 {record.seeders}")
        if record.age:
            info.append(f"📅 {record.age}")
        if record.indexer:
            info.append(f"🔍 {record.indexer}")
        if info:
            lines.append(" ".join(info))
        if tags.languages:
            lines.append(" ".join(constants.LANGUAGE_EMOJI_MAPPING.get(l, l) for l in tags.languages))
        if record.filename:
            lines.append(f"📄 {record.filename}")
        lines.append(f"🔗 {record.source_name}")
        return name, "\n".join(lines)

"""
Maps records to outbound streams
"""
class StreamService:

    """
    Initialize the StreamService

    @param preferences: UserPreferences Controls error streams and external downloads
    @param addon_name: str Name used in formatted names and error titles
    @param error_url: str External url attached to error streams
    @param formatter: DefaultFormatter Optional formatter, defaults to the compact one
    """
    def __init__(self, preferences: UserPreferences, addon_name: str, error_url: str, formatter: Optional[DefaultFormatter] = None):

        # setup the internals
        self.preferences = preferences
        self.addon_name = addon_name
        self.error_url = error_url
        self.formatter = formatter or DefaultFormatter(addon_name)

    """
    Map a record to an outbound stream
    Only the locator field matching the record kind is set.

    @param record: CanonicalStream The record
    @return Stream: The outbound stream
    """
    def to_wire(self, record: CanonicalStream) -> Stream:

        # format it
        name, description = self.formatter.format(record)
        locator = record.locator
        is_p2p = record.kind == constants.P2P

        # the proxy headers, if any
        proxy_headers = None
        if record.request_headers or record.response_headers:
            proxy_headers = ProxyHeaders(request=record.request_headers or None, response=record.response_headers or None)

        # build it
        return Stream(
            url=locator.url if record.kind in constants.URL_KINDS else None,
            infoHash=locator.info_hash if is_p2p else None,
            fileIdx=locator.file_idx if is_p2p else None,
            sources=(locator.sources or None) if is_p2p else None,
            externalUrl=locator.external_url if record.kind == constants.EXTERNAL else None,
            ytId=locator.yt_id if record.kind == constants.YOUTUBE else None,
            name=name,
            description=description,
            subtitles=record.subtitles or None,
            behaviorHints=BehaviorHints(
                countryWhitelist=record.country_whitelist or None,
                notWebReady=record.not_web_ready or None,
                bingeGroup=binge_group(record),
                proxyHeaders=proxy_headers,
                videoHash=record.video_hash,
                videoSize=record.size,
                filename=record.filename,
            ),
        )

    """
    Render a failure as an error stream

    @param failure: SourceFailure The failed source or error record
    @return Stream: The error stream
    """
    def error_stream(self, failure: SourceFailure) -> Stream:
        return Stream(
            name=f"[❌] {failure.title or failure.source_name}",
            description=failure.message,
            externalUrl=self.error_url,
        )

    """
    Build an external download copy of a url record

    @param record: CanonicalStream The record
    @return CanonicalStream: The copy, or None for records without a url
    """
    @staticmethod
    def external_download(record: CanonicalStream) -> Optional[CanonicalStream]:

        # only url streams can be downloaded
        if not record.url or record.kind not in constants.URL_KINDS:
            return None
        return replace(
            record,
            id=f"{record.id}-external-download",
            kind=constants.EXTERNAL,
            locator=replace(record.locator, url=None, external_url=record.url),
            message="Download the stream above via your browser",
            size=None,
            seeders=None,
            indexer=None,
            age=None,
        )

    """
    Build the outbound stream list
    Error streams follow the regular ones unless errors are hidden.

    @param records: list Final records in order
    @param failures: list Source failures and error records
    @return list: Outbound streams
    """
    def build(self, records: List[CanonicalStream], failures: List[SourceFailure]) -> List[Stream]:

        # the regular streams, each optionally followed by its download
        streams = []
        for record in records:
            streams.append(self.to_wire(record))
            if self.preferences.show_external_downloads:
                download = self.external_download(record)
                if download:
                    streams.append(self.to_wire(download))

        # then the errors
        if failures and not self.preferences.hide_errors:
            streams.extend(self.error_stream(failure) for failure in failures)

        # logging
        logger.info(f"Returning {len(records)} streams and {len(failures)} errors")
        return streams
