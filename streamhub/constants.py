#!/usr/bin/env python3
"""
Constants Module

Fixed vocabularies shared by the parser, the filter/sort pipeline and the
wire mapping: tag labels, stream kinds, debrid/usenet services, language
flags and the headers used to forward a client IP upstream.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
from dataclasses import dataclass
from typing import Dict, List, Tuple

# sentinel used wherever a tag or value is missing
UNKNOWN = "Unknown"

# the composite visual tag for a release carrying both HDR and Dolby Vision
HDR_DV = "HDR+DV"

# hold the tag vocabularies, best first
RESOLUTIONS = ["2160p", "1440p", "1080p", "720p", "576p", "480p", "360p", "240p", "144p", UNKNOWN]
QUALITIES = [
    "BluRay REMUX", "BluRay", "WEB-DL", "WEBRip", "HDRip", "HC HD-Rip",
    "DVDRip", "HDTV", "CAM", "TS", "TC", "SCR", UNKNOWN,
]
VISUAL_TAGS = [HDR_DV, "HDR10+", "HDR10", "DV", "HDR", "10bit", "3D", "IMAX", "AI", "SDR", UNKNOWN]
AUDIO_TAGS = [
    "Atmos", "DD+", "DD", "DTS-HD MA", "DTS-HD", "DTS-ES", "DTS",
    "TrueHD", "OPUS", "FLAC", "AAC", UNKNOWN,
]
AUDIO_CHANNELS = ["2.0", "5.1", "6.1", "7.1", UNKNOWN]
ENCODES = ["AV1", "HEVC", "AVC", "XviD", "DivX", "H-OU", "H-SBS", UNKNOWN]
LANGUAGES = [
    "English", "Japanese", "Chinese", "Russian", "Arabic", "Portuguese",
    "Spanish", "French", "German", "Italian", "Korean", "Hindi", "Bengali",
    "Punjabi", "Marathi", "Gujarati", "Tamil", "Telugu", "Kannada",
    "Malayalam", "Thai", "Vietnamese", "Indonesian", "Turkish", "Hebrew",
    "Persian", "Ukrainian", "Greek", "Lithuanian", "Latvian", "Estonian",
    "Polish", "Czech", "Slovak", "Hungarian", "Romanian", "Bulgarian",
    "Serbian", "Croatian", "Slovenian", "Dutch", "Danish", "Finnish",
    "Swedish", "Norwegian", "Malay", "Latino", "Dual Audio", "Dubbed",
    "Multi", UNKNOWN,
]

# stream kinds
P2P = "p2p"
LIVE = "live"
USENET = "usenet"
DEBRID = "debrid"
HTTP = "http"
EXTERNAL = "external"
YOUTUBE = "youtube"
ERROR = "error"
STREAM_KINDS = [P2P, LIVE, USENET, DEBRID, HTTP, EXTERNAL, YOUTUBE, ERROR]

# kinds that are delivered through a plain url
URL_KINDS = (HTTP, USENET, DEBRID, LIVE)

# content types
MOVIE = "movie"
SERIES = "series"

# resources a source can expose
STREAM_RESOURCE = "stream"
RESOURCES = ["stream", "subtitles", "catalog", "meta", "addon_catalog"]

# sort criteria and directions
SORT_CRITERIA = [
    "resolution", "quality", "encode", "stream_kind", "source", "service",
    "visual_tag", "audio_tag", "audio_channel", "language", "cached",
    "size", "seeders", "library", "personal", "regex", "keyword",
]
ASC = "asc"
DESC = "desc"
SORT_DIRECTIONS = [ASC, DESC]

# deduplication
DEDUP_KEYS = ["filename", "info_hash"]
DEDUP_MODES = ["default", "single_result", "per_service", "per_addon", "disabled"]

# size bounds
MIN_SIZE = 0
MAX_SIZE = 100 * 1000 * 1000 * 1000

# cache status filter modes and the torrent-like stream types
CACHE_FILTER_MODES = ["and", "or"]
SEEDER_RANGE_KINDS = ["p2p", "cached", "uncached"]

"""
Static details about a debrid or usenet service

@param id: str Service id
@param name: str Display name
@param short_name: str Short label used in the default formatter
@param known_names: tuple Aliases an upstream source may print
"""
@dataclass(frozen=True)
class ServiceDetail:
    id: str
    name: str
    short_name: str
    known_names: Tuple[str, ...]

# the usenet capable service
EASYNEWS_SERVICE = "easynews"
TORBOX_SERVICE = "torbox"

# hold the known services, detection order
SERVICES: Dict[str, ServiceDetail] = {
    "realdebrid": ServiceDetail("realdebrid", "Real-Debrid", "RD", ("RD", "Real Debrid", "RealDebrid", "Real-Debrid")),
    "alldebrid": ServiceDetail("alldebrid", "AllDebrid", "AD", ("AD", "All Debrid", "AllDebrid", "All-Debrid")),
    "premiumize": ServiceDetail("premiumize", "Premiumize", "PM", ("PM", "Premiumize")),
    "debridlink": ServiceDetail("debridlink", "Debrid-Link", "DL", ("DL", "Debrid Link", "DebridLink", "Debrid-Link")),
    TORBOX_SERVICE: ServiceDetail(TORBOX_SERVICE, "TorBox", "TB", ("TB", "TorBox", "Torbox", "TRB")),
    "offcloud": ServiceDetail("offcloud", "Offcloud", "OC", ("OC", "Offcloud")),
    "putio": ServiceDetail("putio", "put.io", "PO", ("PO", "put.io", "putio")),
    EASYNEWS_SERVICE: ServiceDetail(EASYNEWS_SERVICE, "Easynews", "EN", ("EN", "Easynews")),
    "easydebrid": ServiceDetail("easydebrid", "EasyDebrid", "ED", ("ED", "EasyDebrid")),
    "pikpak": ServiceDetail("pikpak", "PikPak", "PP", ("PP", "PikPak", "PKP")),
    "seedr": ServiceDetail("seedr", "Seedr", "SR", ("SR", "Seedr", "SDR")),
}

# pseudo service id used when a record has no service
NO_SERVICE = "none"

# symbols marking a service stream as cached or not cached
CACHED_SYMBOLS = ["+", "⚡", "🚀", "cached"]
UNCACHED_SYMBOLS = ["⏳", "download", "uncached"]

# language to flag, the first language listed wins on reverse lookup
LANGUAGE_EMOJI_MAPPING: Dict[str, str] = {
    "Multi": "🌎", "English": "🇬🇧", "Japanese": "🇯🇵", "Chinese": "🇨🇳",
    "Russian": "🇷🇺", "Arabic": "🇸🇦", "Portuguese": "🇵🇹", "Spanish": "🇪🇸",
    "French": "🇫🇷", "German": "🇩🇪", "Italian": "🇮🇹", "Korean": "🇰🇷",
    "Hindi": "🇮🇳", "Bengali": "🇧🇩", "Punjabi": "🇵🇰", "Thai": "🇹🇭",
    "Vietnamese": "🇻🇳", "Indonesian": "🇮🇩", "Turkish": "🇹🇷", "Hebrew": "🇮🇱",
    "Persian": "🇮🇷", "Ukrainian": "🇺🇦", "Greek": "🇬🇷", "Lithuanian": "🇱🇹",
    "Latvian": "🇱🇻", "Estonian": "🇪🇪", "Polish": "🇵🇱", "Czech": "🇨🇿",
    "Slovak": "🇸🇰", "Hungarian": "🇭🇺", "Romanian": "🇷🇴", "Bulgarian": "🇧🇬",
    "Serbian": "🇷🇸", "Croatian": "🇭🇷", "Slovenian": "🇸🇮", "Dutch": "🇳🇱",
    "Danish": "🇩🇰", "Finnish": "🇫🇮", "Swedish": "🇸🇪", "Norwegian": "🇳🇴",
    "Malay": "🇲🇾", "Latino": "🇲🇽",
}
EMOJI_LANGUAGE_MAPPING: Dict[str, str] = {}
for _language, _flag in LANGUAGE_EMOJI_MAPPING.items():
    EMOJI_LANGUAGE_MAPPING.setdefault(_flag, _language)

# headers used to forward the client ip to a source
IP_FORWARD_HEADERS: List[str] = [
    "X-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
    "True-Client-IP",
    "X-Forwarded",
    "Forwarded-For",
]

# cache names and ttls in seconds
MANIFEST_CACHE = "manifest"
RESOURCE_CACHE = "resource"
PUBLIC_IP_CACHE = "public_ip"
REGEX_COMPILED_CACHE = "regex_compiled"
REGEX_RESULT_CACHE = "regex_results"
MANIFEST_TTL = 300
RESOURCE_TTL = 300
PUBLIC_IP_TTL = 900
REGEX_COMPILED_TTL = 60
REGEX_RESULT_TTL = 100
