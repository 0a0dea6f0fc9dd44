#!/usr/bin/env python3
"""
Core Package Initialization

This package contains the core components for KPTV StreamHub.
It exports the StreamPipeline class for application use.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""
from .pipeline import PipelineResult, StreamPipeline, is_public_ip

__all__ = ["PipelineResult", "StreamPipeline", "is_public_ip"]
