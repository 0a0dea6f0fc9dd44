#!/usr/bin/env python3
"""
Source Presets Module

Per-source stream parsing strategies. Each known addon formats its stream
names and descriptions its own way; a preset overrides only the
capabilities or steps that differ from the default parser. Presets are
looked up by the preset key of a configured source.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging
from typing import Dict, Optional, Type
from urllib.parse import urlsplit, urlunsplit
from streamhub import constants
from streamhub.models import RawStream, Service, SourceConfig
from streamhub.parser.streams import StreamParser, strip_emoji, text_after_emojis

# setup the logger
logger = logging.getLogger(__name__)

"""
Torrentio puts the torrent folder on the first description line
"""
class TorrentioParser(StreamParser):

    def get_folder(self, raw: RawStream) -> Optional[str]:
        text = raw.text
        if not text:
            return None
        return strip_emoji(text.split("\n")[0]) or None

"""
MediaFusion

Reports content warnings in place of streams and prints the file as
'📂 folder ┈➤ file'.
"""
class MediaFusionParser(StreamParser):

    indexer_regex = text_after_emojis(["🔗"])
    file_regex = text_after_emojis(["📂"])

    def get_error(self, raw: RawStream) -> Optional[str]:
        if raw.description and "Content Warning" in raw.description:
            return raw.description
        return super().get_error(raw)

    def _file_line(self, raw: RawStream) -> Optional[str]:
        match = self.file_regex.search(raw.description or "")
        return match.group(1) if match else None

    def get_filename(self, raw: RawStream) -> Optional[str]:

        # the hint still wins
        if raw.behaviorHints and raw.behaviorHints.filename:
            return super().get_filename(raw)

        # split off the folder
        line = self._file_line(raw)
        if not line:
            return super().get_filename(raw)
        if "┈➤" in line:
            line = line.split("┈➤")[1]
        return strip_emoji(line) or None

    def get_folder(self, raw: RawStream) -> Optional[str]:
        line = self._file_line(raw)
        if line and "┈➤" in line:
            return strip_emoji(line.split("┈➤")[0]) or None
        return None

"""
TorBox

Returns structured fields next to the usual text: seeders, the torrent
hash, cache and library state, and a Type line telling torrents from
usenet downloads.
"""
class TorboxParser(StreamParser):

    age_regex = re.compile(r"\|\sAge:\s([0-9]+[dmyh])", re.IGNORECASE)
    indexer_regex = re.compile(r"Source:\s*([^\n]+)")
    type_regex = re.compile(r"Type:\s*([^\n\s]+)")

    def get_seeders(self, raw: RawStream) -> Optional[int]:
        seeders = self._as_int(raw.extra("seeders"))
        return seeders if seeders is not None and seeders >= 0 else None

    def get_info_hash(self, raw: RawStream) -> Optional[str]:
        value = raw.extra("hash")
        return value.lower() if isinstance(value, str) and value else None

    def get_in_library(self, raw: RawStream) -> bool:
        return bool(raw.extra("is_your_media")) or "Your Media" in (raw.name or "")

    def get_service(self, raw: RawStream) -> Optional[Service]:
        cached = raw.extra("is_cached")
        return Service(id=constants.TORBOX_SERVICE, cached=True if cached is None else bool(cached))

    def get_message(self, raw: RawStream) -> Optional[str]:
        if raw.description and "Click play to start" in raw.description:
            return "Click play to start streaming your media"
        return None

    def get_kind(self, raw: RawStream, service: Optional[Service]) -> str:

        # the explicit type field
        if raw.extra("type") == "usenet":
            return constants.USENET

        # then the description
        match = self.type_regex.search(raw.description or "")
        if match:
            if "Torrent" in match.group(1):
                return constants.DEBRID
            if "Usenet" in match.group(1):
                return constants.USENET
        return super().get_kind(raw, service)

"""
Easynews streams are always usenet downloads from Easynews itself
"""
class EasynewsParser(StreamParser):

    def get_service(self, raw: RawStream) -> Optional[Service]:
        return Service(id=constants.EASYNEWS_SERVICE, cached=True)

    def get_kind(self, raw: RawStream, service: Optional[Service]) -> str:
        return constants.USENET

class EasynewsPlusPlusParser(EasynewsParser):
    age_regex = re.compile(r"📅\s*(\d+[a-zA-Z])")
    indexer_regex = None

"""
StremThru Torz prints release groups where other sources print indexers
"""
class StremThruTorzParser(StreamParser):
    indexer_regex = None

"""
Orion reports errors in the title field
"""
class OrionParser(StreamParser):

    def get_error(self, raw: RawStream) -> Optional[str]:
        if raw.title and "ERROR" in raw.title:
            return raw.title
        return super().get_error(raw)

"""
Jackettio

Its stream urls point at the address the service was reached on, which
may be internal. The force_host, force_port and force_protocol options
rewrite them to a public address.
"""
class JackettioParser(StreamParser):

    def apply_url_modifications(self, url: Optional[str]) -> Optional[str]:

        # nothing to do
        options = self.source.options
        host = options.get("force_host")
        port = options.get("force_port")
        protocol = options.get("force_protocol")
        if not url or (host is None and port is None and protocol is None):
            return url

        # rebuild the url
        return override_url(url, host, port, protocol)

"""
Replace the host, port or scheme of a url

@param url: str Url to rewrite
@param host: str New hostname, or None to keep it
@param port: int New port, or None to keep it
@param protocol: str New scheme, or None to keep it
@return str: The rewritten url
"""
def override_url(url: str, host: Optional[str] = None, port: Optional[int] = None, protocol: Optional[str] = None) -> str:

    # split it up
    parts = urlsplit(url)
    hostname = host or parts.hostname or ""
    current_port = parts.port
    new_port = port if port is not None else current_port

    # rebuild the netloc, keeping any credentials
    netloc = hostname
    if new_port:
        netloc = f"{netloc}:{new_port}"
    if parts.username:
        credentials = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{credentials}@{netloc}"

    # put it back together
    scheme = protocol.rstrip(":") if protocol else parts.scheme
    return urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))

# hold the presets
PARSERS: Dict[str, Type[StreamParser]] = {
    "generic": StreamParser,
    "torrentio": TorrentioParser,
    "mediafusion": MediaFusionParser,
    "torbox": TorboxParser,
    "easynews": EasynewsParser,
    "easynewsplus": EasynewsParser,
    "easynewsplusplus": EasynewsPlusPlusParser,
    "stremthru-torz": StremThruTorzParser,
    "orion": OrionParser,
    "jackettio": JackettioParser,
}

"""
Get the parser for a configured source
Unknown presets fall back to the default parser.

@param source: SourceConfig The configured source
@return StreamParser: A parser bound to the source
"""
def get_parser(source: SourceConfig) -> StreamParser:

    # look it up
    parser_class = PARSERS.get(source.preset.lower())
    if parser_class is None:
        logger.warning(f"Unknown preset {source.preset} for {source.name}, using the generic parser")
        parser_class = StreamParser
    return parser_class(source)
