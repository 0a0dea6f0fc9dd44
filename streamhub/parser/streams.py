#!/usr/bin/env python3
"""
Stream Parser Module

Maps one raw upstream stream entry into a canonical record. The base class
carries the default capability set (error, size, seeders, age and indexer
patterns) and the normalization steps; per-source strategies in
streamhub.sources.presets override single capabilities or steps.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging
from dataclasses import replace
from typing import List, Optional, Pattern
from streamhub import constants
from streamhub.exceptions import RecordNormalizationError
from streamhub.models import (
    CanonicalStream, Locator, ParsedFile, RawStream, Service, SourceConfig, StreamError
)
from streamhub.parser.file import FileParser, normalise_whitespace

# setup the logger
logger = logging.getLogger(__name__)

# pictographs, dingbats, regional indicators and the joiners between them
EMOJI = re.compile("[\U0001F000-\U0001FAFF\u2300-\u23FF\u2600-\u27BF\u2B00-\u2BFF\uFE0F\u200D]")

# size with a unit
SIZE = re.compile(r"(\d+(?:\.\d+)?)\s?(KB|MB|GB|TB|KiB|MiB|GiB|TiB)\b", re.IGNORECASE)
UNIT_POWERS = {"K": 1, "M": 2, "G": 3, "T": 4}

# durations such as 1h:32m:10s, 1h 32m, 2h, 95m or 40s
DURATION = re.compile(
    r"(?<![^\s\[(_\-,.])(?:(\d+)h[:\s]?(\d+)m[:\s]?(\d+)s|(\d+)h[:\s]?(\d+)m|(\d+)h|(\d+)m|(\d+)s)(?=[\s\)\]_.\-,]|$)",
    re.IGNORECASE | re.MULTILINE,
)

"""
Build a pattern capturing the text after any of the given emojis

@param emojis: list Leading emojis
@return Pattern: Compiled pattern, group 1 is the text up to the next emoji or line end
"""
def text_after_emojis(emojis: List[str]) -> Pattern:
    alternatives = "|".join(re.escape(e) for e in emojis)
    return re.compile(rf"(?:{alternatives})\s?(.*?)(?=[\U0001F300-\U0001FAFF]|$)", re.MULTILINE)

"""
Remove emoji characters and tidy the whitespace left behind

@param text: str Raw text
@return str: Cleaned text
"""
def strip_emoji(text: str) -> str:
    return normalise_whitespace(EMOJI.sub("", text))

"""
Default stream parser

Capability attributes may be overridden by subclasses; a None pattern
disables that extraction.
"""
class StreamParser:

    # capabilities
    error_regexes: List[Pattern] = [re.compile(r"invalid\s+\w+\s+(account|apikey|token)", re.IGNORECASE)]
    filename_regex: Optional[Pattern] = None
    folder_regex: Optional[Pattern] = None
    size_regex: Optional[Pattern] = SIZE
    size_base: int = 1024
    seeders_regex: Optional[Pattern] = re.compile(r"[👥👤]\s*(\d+)")
    age_regex: Optional[Pattern] = None
    indexer_regex: Optional[Pattern] = text_after_emojis(["🌐", "⚙️", "🔗", "🔎", "☁️"])

    # markers for cached and uncached service streams
    cached_symbols: List[str] = constants.CACHED_SYMBOLS
    uncached_symbols: List[str] = constants.UNCACHED_SYMBOLS

    """
    Initialize the StreamParser

    @param source: SourceConfig The source whose streams this parser maps
    """
    def __init__(self, source: SourceConfig):
        self.source = source

    """
    Map a raw stream into a canonical record

    @param raw: RawStream Validated upstream entry
    @param index: int Position of the entry in the source response
    @return CanonicalStream: The record, of kind error when the source reported one
    @throws RecordNormalizationError: When the entry has no deliverable locator
    """
    def parse(self, raw: RawStream, index: int = 0) -> CanonicalStream:

        # hold the record identity
        record_id = f"{self.source.instance_id}-{index}"

        # an account or content error short circuits
        error = self.get_error(raw)
        if error:
            return CanonicalStream(
                id=record_id,
                source_id=self.source.instance_id,
                source_name=self.source.name,
                kind=constants.ERROR,
                error=StreamError(title=self.source.name, description=error),
            )

        # filename and the tags in it
        filename = self.get_filename(raw)
        tags = FileParser.parse(filename) if filename else ParsedFile()

        # merge in any flag languages
        languages = list(tags.languages)
        for language in self.get_flag_languages(raw):
            if language not in languages:
                languages.append(language)
        if languages != tags.languages:
            tags = replace(tags, languages=languages)

        # service, kind and locator
        service = self.get_service(raw)
        kind = self.get_kind(raw, service)
        hints = raw.behaviorHints
        proxy_headers = hints.proxyHeaders if hints and hints.proxyHeaders else None

        # build it up
        return CanonicalStream(
            id=record_id,
            source_id=self.source.instance_id,
            source_name=self.source.name,
            kind=kind,
            locator=self.get_locator(raw, kind),
            service=service,
            filename=filename,
            folder_name=self.get_folder(raw),
            size=self.get_size(raw, filename),
            folder_size=self._as_int(raw.extra("folderSize")),
            seeders=self.get_seeders(raw),
            age=self.get_age(raw),
            indexer=self.get_indexer(raw),
            duration=self.get_duration(raw),
            in_library=self.get_in_library(raw),
            personal=bool(raw.extra("personal", False)),
            tags=tags,
            message=self.get_message(raw),
            torrent_hash=self.get_info_hash(raw),
            request_headers=dict(proxy_headers.request or {}) if proxy_headers else {},
            response_headers=dict(proxy_headers.response or {}) if proxy_headers else {},
            subtitles=list(raw.subtitles or []),
            not_web_ready=bool(hints.notWebReady) if hints else False,
            video_hash=hints.videoHash if hints else None,
            country_whitelist=list(hints.countryWhitelist or []) if hints else [],
        )

    """
    Check the entry for an error the source reported in place of a stream

    @param raw: RawStream Upstream entry
    @return str: The error text, or None
    """
    def get_error(self, raw: RawStream) -> Optional[str]:

        # test each error pattern
        text = raw.text
        for pattern in self.error_regexes:
            if pattern.search(text):
                return text
        return None

    """
    Resolve the filename
    Tries the explicit hint, then the filename capability, then the first
    of the first five description lines that carries a year or an
    episode, and finally the first non-empty line.

    @param raw: RawStream Upstream entry
    @return str: Emoji free filename, or None
    """
    def get_filename(self, raw: RawStream) -> Optional[str]:

        # the explicit hint wins
        if raw.behaviorHints and raw.behaviorHints.filename:
            return strip_emoji(raw.behaviorHints.filename) or None

        # we need a description from here on
        text = raw.text
        if not text:
            return None

        # the source specific pattern
        if self.filename_regex:
            match = self.filename_regex.search(text)
            if match and match.group(1).strip():
                return strip_emoji(match.group(1)) or None

        # scan the first few lines for something that looks like a release
        lines = [line for line in text.split("\n") if line.strip()]
        for line in lines[:5]:
            candidate = strip_emoji(line)
            parsed = FileParser.parse(candidate)
            if parsed.year or (parsed.seasons and parsed.episode is not None) or parsed.episode is not None:
                return candidate or None

        # fall back to the first line
        return (strip_emoji(lines[0]) or None) if lines else None

    """
    Resolve the folder name from the folder capability

    @param raw: RawStream Upstream entry
    @return str: Folder name, or None
    """
    def get_folder(self, raw: RawStream) -> Optional[str]:
        if not self.folder_regex:
            return None
        match = self.folder_regex.search(raw.text)
        return (strip_emoji(match.group(1)) or None) if match else None

    """
    Resolve the byte size
    Explicit size fields first, then the description with the filename
    removed, then the display name.

    @param raw: RawStream Upstream entry
    @param filename: str The resolved filename
    @return int: Size in bytes, or None
    """
    def get_size(self, raw: RawStream, filename: Optional[str] = None) -> Optional[int]:

        # explicit hints
        hinted = raw.behaviorHints.videoSize if raw.behaviorHints else None
        for value in (hinted, raw.extra("size"), raw.extra("sizeBytes"), raw.extra("sizebytes")):
            size = self._as_int(value)
            if size:
                return size

        # the description, minus the filename so numbers in it don't count
        text = raw.text
        if filename:
            text = text.replace(filename, "")
        size = self.bytes_from_text(text) or self.bytes_from_text(raw.name or "")
        return size or None

    """
    Parse the first size expression in a text

    @param text: str Text to search
    @return int: Size in bytes, 0 when nothing is found
    """
    def bytes_from_text(self, text: str) -> int:

        # search for it
        if not self.size_regex or not text:
            return 0
        match = self.size_regex.search(text)
        if not match:
            return 0

        # scale it
        value = float(match.group(1))
        power = UNIT_POWERS.get(match.group(2)[0].upper(), 0)
        return int(value * self.size_base ** power)

    def get_seeders(self, raw: RawStream) -> Optional[int]:
        return self._capture_int(self.seeders_regex, raw.text)

    def get_age(self, raw: RawStream) -> Optional[str]:
        return self._capture(self.age_regex, raw.text)

    def get_indexer(self, raw: RawStream) -> Optional[str]:
        return self._capture(self.indexer_regex, raw.text)

    def get_info_hash(self, raw: RawStream) -> Optional[str]:
        return raw.infoHash.lower() if raw.infoHash else None

    def get_in_library(self, raw: RawStream) -> bool:
        return bool(raw.extra("library", False))

    def get_message(self, raw: RawStream) -> Optional[str]:
        return None

    def get_service(self, raw: RawStream) -> Optional[Service]:
        return self.parse_service(raw.name or "")

    """
    Detect the service and its cache state from a display name
    Services are tried in table order and the first alias hit wins.
    Uncached markers are checked before cached ones.

    @param name: str Display name
    @return Service: The detected service, or None
    """
    def parse_service(self, name: str) -> Optional[Service]:

        # web-dl would otherwise read as debrid-link
        clean = re.sub(r"web-?dl", "", name, flags=re.IGNORECASE)
        lowered = name.lower()

        # loop the known services
        for detail in constants.SERVICES.values():
            aliases = "|".join(re.escape(alias) for alias in detail.known_names)
            pattern = rf"(^|(?<![^ |\[(_/\-.]))({aliases})(?=[ ⬇️⏳⚡+/|\)\]_.\-]|$|\n)"
            if re.search(pattern, clean, re.IGNORECASE):

                # work out the cache state
                if any(symbol.lower() in lowered for symbol in self.uncached_symbols):
                    cached = False
                elif any(symbol.lower() in lowered for symbol in self.cached_symbols):
                    cached = True
                else:
                    cached = False
                return Service(id=detail.id, cached=cached)
        return None

    """
    Determine the stream kind
    Info hash, then live playlist, then usenet service, then any service,
    then plain url, external url and video platform id.

    @param raw: RawStream Upstream entry
    @param service: Service Detected service
    @return str: The stream kind
    @throws RecordNormalizationError: When nothing deliverable is present
    """
    def get_kind(self, raw: RawStream, service: Optional[Service]) -> str:
        if raw.infoHash:
            return constants.P2P
        if raw.url and raw.url.endswith(".m3u8"):
            return constants.LIVE
        if service and service.id == constants.EASYNEWS_SERVICE:
            return constants.USENET
        if service:
            return constants.DEBRID
        if raw.url:
            return constants.HTTP
        if raw.externalUrl:
            return constants.EXTERNAL
        if raw.ytId:
            return constants.YOUTUBE
        raise RecordNormalizationError(f"Stream from {self.source.name} has no url, info hash, external url or video id")

    """
    Populate the single locator variant for a kind

    @param raw: RawStream Upstream entry
    @param kind: str The stream kind
    @return Locator: The locator
    @throws RecordNormalizationError: When the kind's locator is missing
    """
    def get_locator(self, raw: RawStream, kind: str) -> Locator:

        # torrents
        if kind == constants.P2P:
            if not raw.infoHash:
                raise RecordNormalizationError(f"p2p stream from {self.source.name} has no info hash")
            return Locator(info_hash=raw.infoHash.lower(), file_idx=raw.fileIdx, sources=list(raw.sources or []))

        # plain urls
        if kind in constants.URL_KINDS:
            url = self.apply_url_modifications(raw.url)
            if not url:
                raise RecordNormalizationError(f"{kind} stream from {self.source.name} has no url")
            return Locator(url=url)

        # the rest
        if kind == constants.EXTERNAL and raw.externalUrl:
            return Locator(external_url=raw.externalUrl)
        if kind == constants.YOUTUBE and raw.ytId:
            return Locator(yt_id=raw.ytId)
        raise RecordNormalizationError(f"{kind} stream from {self.source.name} has no locator")

    def apply_url_modifications(self, url: Optional[str]) -> Optional[str]:
        return url

    """
    Extract the duration in milliseconds

    @param raw: RawStream Upstream entry
    @return int: Duration in milliseconds, 0 when absent
    """
    def get_duration(self, raw: RawStream) -> int:

        # find it
        match = DURATION.search(raw.text)
        if not match:
            return 0

        # add it up
        g = match.groups()
        hours = int(g[0] or g[3] or g[5] or 0)
        minutes = int(g[1] or g[4] or g[6] or 0)
        seconds = int(g[2] or g[7] or 0)
        return (hours * 3600 + minutes * 60 + seconds) * 1000

    """
    Languages announced with flag emojis in the description or name

    @param raw: RawStream Upstream entry
    @return list: Language names, in flag table order
    """
    def get_flag_languages(self, raw: RawStream) -> List[str]:

        # hold the combined text
        text = f"{raw.text}\n{raw.name or ''}"

        # keep the first language for each distinct flag
        found = []
        for flag, language in constants.EMOJI_LANGUAGE_MAPPING.items():
            if flag in text and language not in found:
                found.append(language)
        return found

    def _capture(self, pattern: Optional[Pattern], text: str) -> Optional[str]:
        if not pattern or not text:
            return None
        match = pattern.search(text)
        if not match:
            return None
        value = match.group(1).strip()
        return value or None

    def _capture_int(self, pattern: Optional[Pattern], text: str) -> Optional[int]:
        value = self._capture(pattern, text)
        return int(value) if value and value.isdigit() else None

    @staticmethod
    def _as_int(value) -> Optional[int]:
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None
