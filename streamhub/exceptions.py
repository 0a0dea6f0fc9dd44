#!/usr/bin/env python3
"""
Exceptions Module

Error taxonomy for the stream pipeline. Source and record errors are
recovered locally, the proxy IP error is the only one allowed to fail a
whole request.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""


"""
Base class for all application errors
"""
class StreamHubError(Exception):
    pass


"""
A single source could not be queried

Raised for network failures, timeouts, bad status codes and payloads that
do not match the expected schema.

@param source_id: str Instance id of the failing source
@param source_name: str Display name of the failing source
@param message: str Human readable reason
"""
class SourceError(StreamHubError):

    def __init__(self, source_id: str, source_name: str, message: str):
        super().__init__(f"[{source_name}] {message}")
        self.source_id = source_id
        self.source_name = source_name
        self.message = message


"""
One raw stream entry could not be mapped to a deliverable record
"""
class RecordNormalizationError(StreamHubError):
    pass


"""
The egress proxy public IP could not be resolved after all retries
"""
class ProxyIpError(StreamHubError):
    pass


"""
The proxy backend failed to rewrite a batch of stream urls
"""
class ProxyGenerationError(StreamHubError):
    pass


"""
A regex evaluation exceeded its time budget
"""
class RegexTimeoutError(StreamHubError, TimeoutError):
    pass
