#!/usr/bin/env python3
"""
Parser Package Initialization

This package contains the release filename parser and the base stream
parser that maps raw upstream entries into canonical records.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""
from .file import FileParser, normalise_whitespace, format_season_episode
from .streams import StreamParser, strip_emoji, text_after_emojis

# hold the necessary modules
__all__ = [
    "FileParser",
    "normalise_whitespace",
    "format_season_episode",
    "StreamParser",
    "strip_emoji",
    "text_after_emojis",
]
