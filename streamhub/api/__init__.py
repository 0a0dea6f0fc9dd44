#!/usr/bin/env python3
"""
API Package Initialization

This package contains the FastAPI routes for KPTV StreamHub.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""
from .routes import router

__all__ = ["router"]
