#!/usr/bin/env python3
"""
Sources Package Initialization

This package contains the upstream addon client and the per-source stream
parsing presets.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the necessary imports
from .base import AddonClient
from .presets import PARSERS, get_parser, override_url

# now hold the modules
__all__ = ["AddonClient", "PARSERS", "get_parser", "override_url"]
