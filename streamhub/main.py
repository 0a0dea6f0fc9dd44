#!/usr/bin/env python3
"""
StreamHub Entry Point

This module wires the loaded configuration into the FastAPI application
and the stream pipeline, and runs the server. It also offers a config
check that loads and validates the configuration without serving.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import argparse, logging, sys
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from streamhub import __version__
from streamhub.config import load_config
from streamhub.core import StreamPipeline
from streamhub.models import AppConfig

# setup the logger
logger = logging.getLogger(__name__)

# the log line layout
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

"""
Configure the root logger

@param level: str Level name from the config, e.g. INFO
@return int: The numeric level applied
@throws ValueError: When the level name is unknown
"""
def configure_logging(level: str) -> int:

    # resolve the level name
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    # apply it
    logging.basicConfig(level=numeric, format=LOG_FORMAT, force=True)
    return numeric

"""
Create the FastAPI app and the pipeline serving it
The pipeline opens its session and clients on startup and closes them
on shutdown.

@param config: AppConfig The application configuration
@return tuple: The app and its pipeline
"""
def create_app(config: AppConfig) -> Tuple[FastAPI, StreamPipeline]:

    # the pipeline lives as long as the app
    pipeline = StreamPipeline(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await pipeline.initialize()
        yield
        await pipeline.cleanup()

    # setup the app
    app = FastAPI(
        title=config.addon_name,
        description="Aggregate, filter and sort streams from multiple addon sources",
        version=__version__,
        lifespan=lifespan,
    )

    # stremio clients call from anywhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    # hold the state and hook up the routes
    app.state.config = config
    app.state.pipeline = pipeline
    from streamhub.api.routes import router
    app.include_router(router)
    return app, pipeline

"""
Build the command line parser

@return ArgumentParser: The parser
"""
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="streamhub", description="KPTV StreamHub, a federated stream aggregator")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML configuration file")
    parser.add_argument("--host", help="Override the bind host")
    parser.add_argument("--port", type=int, help="Override the bind port")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--check-config", action="store_true", help="Validate the configuration and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser

"""
Log what a loaded configuration will serve

@param config: AppConfig The application configuration
@return None
"""
def describe(config: AppConfig) -> None:
    enabled = [s for s in config.sources if s.enabled]
    logger.info(f"{config.addon_name} {__version__}: {len(enabled)} of {len(config.sources)} sources enabled")
    for source in enabled:
        logger.info(f"  {source.name} ({source.preset}) {source.manifest_url}")
    if config.proxy.enabled:
        logger.info(f"Proxying through {config.proxy.id} at {config.proxy.url}")

"""
Main entry point

@param argv: list Arguments, defaults to the process arguments
@return int: The exit code, 0 on success, 1 on a configuration error
"""
def main(argv: Optional[List[str]] = None) -> int:

    # parse the arguments
    args = build_parser().parse_args(argv)

    # load and validate the config
    try:
        config = load_config(args.config)
        if args.host:
            config.bind_host = args.host
        if args.port:
            config.bind_port = args.port
        if args.log_level:
            config.log_level = args.log_level
        configure_logging(config.log_level)

    # whoops...
    except FileNotFoundError as e:
        configure_logging("INFO")
        logger.error(f"Configuration error: {e}")
        return 1
    except ValueError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    # say what we have
    describe(config)
    if args.check_config:
        logger.info("Configuration is valid")
        return 0

    # serve it
    app, _ = create_app(config)
    logger.info(f"Starting server on {config.bind_host}:{config.bind_port}, public url {config.public_url}")
    uvicorn.run(app, host=config.bind_host, port=config.bind_port, log_level=config.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
