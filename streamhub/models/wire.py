#!/usr/bin/env python3
"""
Wire Schema Module

Pydantic models for the addon wire protocol: the manifest and stream
responses read from upstream sources, and the outbound stream shape
returned to clients.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

"""
Request and response headers a player must send through a proxy
"""
class ProxyHeaders(BaseModel):
    request: Optional[Dict[str, str]] = None
    response: Optional[Dict[str, str]] = None

"""
Playback hints attached to a stream
"""
class BehaviorHints(BaseModel):
    model_config = ConfigDict(extra="allow")

    countryWhitelist: Optional[List[str]] = None
    notWebReady: Optional[bool] = None
    bingeGroup: Optional[str] = None
    proxyHeaders: Optional[ProxyHeaders] = None
    videoHash: Optional[str] = None
    videoSize: Optional[int] = None
    filename: Optional[str] = None

    @field_validator("videoSize", mode="before")
    @classmethod
    def whole_bytes(cls, value: Any) -> Any:
        # some sources send the size as a float
        if isinstance(value, float):
            return int(value)
        return value

"""
A stream entry as returned by an upstream source

Unknown keys are kept, some sources put size, seeders or hashes in
top level fields of their own.
"""
class RawStream(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    ytId: Optional[str] = None
    infoHash: Optional[str] = None
    fileIdx: Optional[int] = None
    externalUrl: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    subtitles: Optional[List[Dict[str, Any]]] = None
    sources: Optional[List[str]] = None
    behaviorHints: Optional[BehaviorHints] = None

    @property
    def text(self) -> str:
        """The description, falling back to the legacy title field"""
        return self.description or self.title or ""

    def extra(self, key: str, default: Any = None) -> Any:
        """Read a non-standard top level field"""
        return (self.model_extra or {}).get(key, default)

"""
Stream resource response envelope

Kept loose so that individual entries can be validated one by one.
"""
class StreamResponse(BaseModel):
    streams: List[Any]

"""
A resource declaration in a manifest
"""
class ManifestResource(BaseModel):
    name: str
    types: List[str] = Field(default_factory=list)
    idPrefixes: Optional[List[str]] = None

"""
An addon manifest
"""
class Manifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    description: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    idPrefixes: Optional[List[str]] = None
    resources: List[Union[str, ManifestResource]]
    catalogs: List[Dict[str, Any]] = Field(default_factory=list)
    logo: Optional[str] = None
    behaviorHints: Optional[Dict[str, Any]] = None

    def stream_resources(self) -> List[ManifestResource]:
        """Stream resources, with bare string entries inheriting the top level types and prefixes"""
        found = []
        for resource in self.resources:
            if isinstance(resource, str):
                if resource == "stream":
                    found.append(ManifestResource(name=resource, types=self.types, idPrefixes=self.idPrefixes))
            elif resource.name == "stream":
                found.append(resource)
        return found

"""
The outbound stream shape
"""
class Stream(BaseModel):
    url: Optional[str] = None
    infoHash: Optional[str] = None
    fileIdx: Optional[int] = None
    sources: Optional[List[str]] = None
    externalUrl: Optional[str] = None
    ytId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    subtitles: Optional[List[Dict[str, Any]]] = None
    behaviorHints: Optional[BehaviorHints] = None
