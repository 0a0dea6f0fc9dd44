#!/usr/bin/env python3
"""
Release Name Pattern Tables

Ordered (label, pattern) tables used to tag a release filename. Order is
the tie-break: single-valued categories take the first label that matches,
so more specific entries sit above more general ones.

Every pattern is wrapped in a separator guard so that a tag only matches as
a whole token bounded by whitespace, brackets, underscores, dots, commas,
dashes or the ends of the string.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re
from typing import List, Pattern, Tuple

# the table type
PatternTable = List[Tuple[str, Pattern]]

"""
Wrap a pattern in the token separator guard

@param pattern: str Pattern body
@return Pattern: Compiled case-insensitive pattern
"""
def tag(pattern: str) -> Pattern:
    return re.compile(rf"(?<![^\s\[(_\-.,])({pattern})(?=[\s\)\]_.\-,]|$)", re.IGNORECASE)

"""
Wrap a language pattern, refusing matches followed by a subtitle marker

@param pattern: str Pattern body
@return Pattern: Compiled case-insensitive pattern
"""
def language(pattern: str) -> Pattern:
    return tag(rf"(?:{pattern})(?![ .\-_]?sub(title)?s?)")

# resolutions
RESOLUTIONS: PatternTable = [
    ("2160p", tag(r"(bd|hd|m)?(4k|2160(p|i)?)|u(ltra)?[ .\-_]?hd|3840\s?x\s?(\d{4})")),
    ("1440p", tag(r"(bd|hd|m)?(1440(p|i)?)|2k|w?q(uad)?[ .\-_]?hd|2560\s?x\s?(\d{4})")),
    ("1080p", tag(r"(bd|hd|m)?(1080(p|i)?)|f(ull)?[ .\-_]?hd|1920\s?x\s?(\d{3,4})")),
    ("720p", tag(r"(bd|hd|m)?((720|800)(p|i)?)|hd|1280\s?x\s?(\d{3,4})")),
    ("576p", tag(r"(bd|hd|m)?((576|534)(p|i)?)")),
    ("480p", tag(r"(bd|hd|m)?(480(p|i)?)|sd")),
    ("360p", tag(r"(bd|hd|m)?(360(p|i)?)")),
    ("240p", tag(r"(bd|hd|m)?((240|266)(p|i)?)")),
    ("144p", tag(r"(bd|hd|m)?(144(p|i)?)")),
]

# qualities, remux must come before plain bluray
QUALITIES: PatternTable = [
    ("BluRay REMUX", re.compile(
        r"remux.*[ .\-_]blu[ .\-_]?ray"
        r"|blu[ .\-_]?ray[ .\-_](?=.*remux)"
        r"|(?<![^\s\[(_\-.,])(bd|br|b|uhd)[ .\-_]?remux(?=[\s\)\]_.\-,]|$)",
        re.IGNORECASE,
    )),
    ("BluRay", tag(r"blu[ .\-_]?ray|((bd|br|b)[ .\-_]?(rip|r)?)(?![ .\-_]?remux)")),
    ("WEB-DL", tag(r"web[ .\-_]?(dl)?(?![ .\-_]?(DLRip|cam))")),
    ("WEBRip", tag(r"web[ .\-_]?rip")),
    ("HDRip", tag(r"hd[ .\-_]?rip|web[ .\-_]?dl[ .\-_]?rip")),
    ("HC HD-Rip", tag(r"hc|hd[ .\-_]?rip")),
    ("DVDRip", tag(r"dvd[ .\-_]?(rip|mux|r|full|5|9)")),
    ("HDTV", tag(r"(hd|pd)tv|tv[ .\-_]?rip|hdtv[ .\-_]?rip|dsr(ip)?|sat[ .\-_]?rip")),
    ("CAM", tag(r"cam|hdcam|cam[ .\-_]?rip")),
    ("TS", tag(r"telesync|ts|hd[ .\-_]?ts|pdvd|predvd(rip)?")),
    ("TC", tag(r"telecine|tc|hd[ .\-_]?tc")),
    ("SCR", tag(r"((dvd|bd|web|hd)?[ .\-_]?)?(scr(eener)?)")),
]

# visual tags
VISUAL_TAGS: PatternTable = [
    ("10bit", tag(r"10[ .\-_]?bit")),
    ("HDR10+", tag(r"hdr[ .\-_]?10[ .\-_]?(plus|[+])")),
    ("HDR10", tag(r"hdr[ .\-_]?10(?![ .\-_]?(?:\+|plus))")),
    ("HDR", tag(r"hdr(?![ .\-_]?10)(?![ .\-_]?(?:\+|plus))")),
    ("DV", tag(r"do?(lby)?[ .\-_]?vi?(sion)?(?:[ .\-_]?atmos)?|dv")),
    ("3D", tag(r"(bd)?(3|three)[ .\-_]?(d(imension)?(al)?)")),
    ("IMAX", tag(r"imax")),
    ("AI", tag(r"ai[ .\-_]?(upscale|enhanced|remaster)?")),
    ("SDR", tag(r"sdr")),
]

# audio tags
AUDIO_TAGS: PatternTable = [
    ("Atmos", tag(r"atmos")),
    ("DD+", tag(r"(d(olby)?[ .\-_]?d(igital)?[ .\-_]?(p(lus)?|\+)(?:[ .\-_]?(5[ .\-_]?1|7[ .\-_]?1))?)|e[ .\-_]?ac[ .\-_]?3")),
    ("DD", tag(r"(d(olby)?[ .\-_]?d(igital)?(?:[ .\-_]?(5[ .\-_]?1|7[ .\-_]?1))?)|(?<!e)(?<!e[ .\-_])ac[ .\-_]?3")),
    ("DTS-HD MA", tag(r"dts[ .\-_]?hd[ .\-_]?ma")),
    ("DTS-HD", tag(r"dts[ .\-_]?hd(?![ .\-_]?ma)")),
    ("DTS-ES", tag(r"dts[ .\-_]?es")),
    ("DTS", tag(r"dts(?![ .\-_]?hd[ .\-_]?ma|[ .\-_]?hd|[ .\-_]?es)")),
    ("TrueHD", tag(r"true[ .\-_]?hd")),
    ("OPUS", tag(r"opus")),
    ("AAC", tag(r"q?aac(?:[ .\-_]?2)?")),
    ("FLAC", tag(r"flac(?:[ .\-_]?(lossless|2\.0|x[2-4]))?")),
]

# audio channels
AUDIO_CHANNELS: PatternTable = [
    ("2.0", tag(r"(2[ .\-_]?0)(ch)?")),
    ("5.1", tag(r"(d(olby)?[ .\-_]?d(igital)?[ .\-_]?(p(lus)?|\+)?)?5[ .\-_]?1(ch)?")),
    ("6.1", tag(r"(d(olby)?[ .\-_]?d(igital)?[ .\-_]?(p(lus)?|\+)?)?6[ .\-_]?1(ch)?")),
    ("7.1", tag(r"(d(olby)?[ .\-_]?d(igital)?[ .\-_]?(p(lus)?|\+)?)?7[ .\-_]?1(ch)?")),
]

# encodes
ENCODES: PatternTable = [
    ("HEVC", tag(r"hevc[ .\-_]?(10)?|[xh][ .\-_]?265")),
    ("AVC", tag(r"avc|[xh][ .\-_]?264")),
    ("AV1", tag(r"av1")),
    ("XviD", tag(r"xvid")),
    ("DivX", tag(r"divx|dvix")),
    ("H-OU", tag(r"h?(alf)?[ .\-_]?(ou|over[ .\-_]?under)")),
    ("H-SBS", tag(r"h?(alf)?[ .\-_]?(sbs|side[ .\-_]?by[ .\-_]?side)")),
]

# languages
LANGUAGES: PatternTable = [
    ("Multi", language(r"multi")),
    ("Dual Audio", language(r"dual[ .\-_]?(audio|lang(uage)?|flac|ac3|aac2?)")),
    ("Dubbed", language(r"dub(bed)?")),
    ("English", language(r"english|eng")),
    ("Japanese", language(r"japanese|jap|jpn")),
    ("Chinese", language(r"chinese|chi")),
    ("Russian", language(r"russian|rus")),
    ("Arabic", language(r"arabic|ara")),
    ("Portuguese", language(r"portuguese|por")),
    ("Spanish", language(r"spanish|spa|esp")),
    ("French", language(r"french|fra|fr|vf|vff|vfi|vf2|vfq|truefrench")),
    ("German", language(r"german|ger")),
    ("Italian", language(r"italian|ita")),
    ("Korean", language(r"korean|kor")),
    ("Hindi", language(r"hindi|hin")),
    ("Bengali", language(r"bengali|ben(?![ .\-_]?the[ .\-_]?men)")),
    ("Punjabi", language(r"punjabi|pan")),
    ("Marathi", language(r"marathi|mar")),
    ("Gujarati", language(r"gujarati|guj")),
    ("Tamil", language(r"tamil|tam")),
    ("Telugu", language(r"telugu|tel")),
    ("Kannada", language(r"kannada|kan")),
    ("Malayalam", language(r"malayalam|mal")),
    ("Thai", language(r"thai|tha")),
    ("Vietnamese", language(r"vietnamese|vie")),
    ("Indonesian", language(r"indonesian|ind")),
    ("Turkish", language(r"turkish|tur")),
    ("Hebrew", language(r"hebrew|heb")),
    ("Persian", language(r"persian|per")),
    ("Ukrainian", language(r"ukrainian|ukr")),
    ("Greek", language(r"greek|ell")),
    ("Lithuanian", language(r"lithuanian|lit")),
    ("Latvian", language(r"latvian|lav")),
    ("Estonian", language(r"estonian|est")),
    ("Polish", language(r"polish|pol")),
    ("Czech", language(r"czech|cze")),
    ("Slovak", language(r"slovak|slo")),
    ("Hungarian", language(r"hungarian|hun")),
    ("Romanian", language(r"romanian|rum")),
    ("Bulgarian", language(r"bulgarian|bul")),
    ("Serbian", language(r"serbian|srp")),
    ("Croatian", language(r"croatian|hrv")),
    ("Slovenian", language(r"slovenian|slv")),
    ("Dutch", language(r"dutch|dut")),
    ("Danish", language(r"danish|dan")),
    ("Finnish", language(r"finnish|fin")),
    ("Swedish", language(r"swedish|swe")),
    ("Norwegian", language(r"norwegian|nor")),
    ("Malay", language(r"malay")),
    ("Latino", language(r"latino|lat")),
]

# release group: a trailing -GROUP token that is not a bare number or episode marker
RELEASE_GROUP = re.compile(
    r"- ?(?!\d+$|S\d+|\d+x|ep?\d+|[^\[]+\]$)([^\-. \[]+[^\-. \[)\]\d][^\-. \[)\]]*)(?:\[[\w.-]+\])?(?=\.\w{2,4}$|$)",
    re.IGNORECASE,
)
