#!/usr/bin/env python3
"""
Release Filename Parser Module

Turns a release filename into a structured tag set. Resolution, quality
and encode take the first matching label from their tables; visual tags,
audio tags, audio channels and languages collect every match in table
order. Title, year, season and episode come from guessit.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging
from functools import lru_cache
from typing import Any, Dict, List, Optional
from guessit import guessit
from streamhub.models import ParsedFile
from streamhub.parser import patterns
from streamhub.parser.patterns import PatternTable

# setup the logger
logger = logging.getLogger(__name__)

# whitespace runs and leading/trailing separators
WHITESPACE = re.compile(r"\s+")
EDGE_SEPARATORS = re.compile(r"^[\s._\-]+|[\s._\-]+$")

"""
Collapse whitespace runs and strip separators from both ends

@param text: str Raw text
@return str: Normalized text
"""
def normalise_whitespace(text: str) -> str:
    return EDGE_SEPARATORS.sub("", WHITESPACE.sub(" ", text))

"""
First label whose pattern matches

@param text: str Text to search
@param table: PatternTable Ordered table
@return str: The label or None
"""
def match_first(text: str, table: PatternTable) -> Optional[str]:
    return next((label for label, pattern in table if pattern.search(text)), None)

"""
Every label whose pattern matches, in table order

@param text: str Text to search
@param table: PatternTable Ordered table
@return list: Matching labels
"""
def match_all(text: str, table: PatternTable) -> List[str]:
    return [label for label, pattern in table if pattern.search(text)]

"""
Run guessit, memoized since descriptions are scanned line by line

@param text: str Text to parse
@return dict: The guess, empty when guessit fails
"""
@lru_cache(maxsize=4096)
def _guess(text: str) -> Dict[str, Any]:
    try:
        return dict(guessit(text))
    except Exception as e:
        logger.debug(f"Title parsing failed for {text!r}: {e}")
        return {}

def _as_int_list(value: Any) -> List[int]:
    if value is None:
        return []
    values = value if isinstance(value, list) else [value]
    return [v for v in values if isinstance(v, int)]

"""
Render season and episode numbers as display labels
Contiguous season packs become a range such as S08-S10.

@param seasons: list Season numbers
@param episode: int Episode number
@return list: Labels such as ['S08', 'E04']
"""
def format_season_episode(seasons: List[int], episode: Optional[int]) -> List[str]:

    # hold the labels
    labels = []
    ordered = sorted(set(seasons))

    # a contiguous range collapses to first-last
    if len(ordered) > 1 and ordered == list(range(ordered[0], ordered[-1] + 1)):
        labels.append(f"S{ordered[0]:02d}-S{ordered[-1]:02d}")
    else:
        labels.extend(f"S{season:02d}" for season in ordered)

    # and the episode
    if episode is not None:
        labels.append(f"E{episode:02d}")
    return labels

"""
Parses release filenames into tag sets
"""
class FileParser:

    """
    Parse a filename
    Never raises; a category with no match is left unset or empty.

    @param filename: str Whitespace normalized filename
    @return ParsedFile: The extracted tags
    """
    @staticmethod
    def parse(filename: str) -> ParsedFile:

        # the tag tables
        resolution = match_first(filename, patterns.RESOLUTIONS)
        quality = match_first(filename, patterns.QUALITIES)
        encode = match_first(filename, patterns.ENCODES)
        visual_tags = match_all(filename, patterns.VISUAL_TAGS)
        audio_tags = match_all(filename, patterns.AUDIO_TAGS)
        audio_channels = match_all(filename, patterns.AUDIO_CHANNELS)
        languages = match_all(filename, patterns.LANGUAGES)

        # title, year, season and episode
        guess = _guess(filename)
        seasons = _as_int_list(guess.get("season"))
        episodes = _as_int_list(guess.get("episode"))
        episode = episodes[0] if episodes else None
        year = guess.get("year")
        title = guess.get("title")

        # the release group regex first, then the title parser's guess
        group_match = patterns.RELEASE_GROUP.search(filename)
        release_group = group_match.group(1) if group_match else guess.get("release_group")

        # build it up
        return ParsedFile(
            resolution=resolution,
            quality=quality,
            encode=encode,
            visual_tags=visual_tags,
            audio_tags=audio_tags,
            audio_channels=audio_channels,
            languages=languages,
            release_group=release_group if isinstance(release_group, str) else None,
            title=title if isinstance(title, str) else None,
            year=str(year) if isinstance(year, int) else None,
            season=seasons[0] if len(seasons) == 1 else None,
            seasons=seasons,
            episode=episode,
            season_episode=format_season_episode(seasons, episode),
        )
