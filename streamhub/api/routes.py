#!/usr/bin/env python3
"""
API Routes Module

This module defines the REST API endpoints for KPTV StreamHub: the addon
manifest, the stream resource and a status endpoint.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# imports
import re, logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request
from streamhub import __version__, constants

# setup the logger
logger = logging.getLogger(__name__)

# setup the api router
router = APIRouter()

# what a content type and id may look like
CONTENT_TYPE = re.compile(r"^[a-z]+$")
CONTENT_ID = re.compile(r"^[\w.:%\-]+$")

"""
Get pipeline instance from application state

@param request: Request FastAPI request object
@return StreamPipeline: Pipeline instance from app state
@throws HTTPException: 503 if service not initialized
"""
def get_pipeline(request: Request):
    """Get pipeline instance from app state"""
    pipeline = getattr(request.app.state, "pipeline", None)
    if not pipeline:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return pipeline

"""
Get the requesting ip
Honors the first X-Forwarded-For entry when present.

@param request: Request FastAPI request object
@return str: The client ip, or None
"""
def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None

"""
Root endpoint with API information

@return dict: API info
"""
@router.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "KPTV StreamHub",
        "version": __version__,
        "endpoints": {
            "manifest": "/manifest.json",
            "streams": "/stream/{type}/{id}.json",
            "status": "/status",
        }
    }

"""
Get the addon manifest

@param request: Request FastAPI request object
@return dict: The manifest
"""
@router.get("/manifest.json")
async def get_manifest(request: Request):
    """Get the addon manifest"""
    return get_pipeline(request).manifest()

"""
Get service status information

@param request: Request FastAPI request object
@return dict: Source and cache status
"""
@router.get("/status")
async def get_status(request: Request):
    """Get service status"""
    pipeline = getattr(request.app.state, "pipeline", None)
    if not pipeline:
        return {"status": "not_initialized"}
    return pipeline.status()

"""
Get a resource for a content id
Only the stream resource is served.

@param resource: str Resource name
@param content_type: str Content type, e.g. movie or series
@param content_id: str Content id, e.g. tt0111161 or tt0944947:1:1
@param request: Request FastAPI request object
@return dict: The streams
@throws HTTPException: 404 for an unknown resource, 400 for a malformed type or id
"""
@router.get("/{resource}/{content_type}/{content_id}.json")
async def get_resource(resource: str, content_type: str, content_id: str, request: Request):
    """Get the streams for a content id"""

    # validate the request
    if resource != constants.STREAM_RESOURCE:
        raise HTTPException(status_code=404, detail=f"Unsupported resource: {resource}")
    if not CONTENT_TYPE.match(content_type):
        raise HTTPException(status_code=400, detail=f"Invalid content type: {content_type}")
    if not CONTENT_ID.match(content_id):
        raise HTTPException(status_code=400, detail=f"Invalid content id: {content_id}")

    # run the pipeline
    pipeline = get_pipeline(request)
    streams = await pipeline.get_wire_streams(content_type, content_id, get_client_ip(request))
    return {"streams": [stream.model_dump(exclude_none=True) for stream in streams]}
