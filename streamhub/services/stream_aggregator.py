#!/usr/bin/env python3
"""
Stream Aggregator Module

This module fans a stream request out to every selected source at once,
waits for all of them to finish or fail, and normalizes what came back
into canonical records. A failing source never fails the request; it is
recorded as a SourceFailure instead.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# fire up the imports
import asyncio, logging, time
from typing import Any, Callable, Dict, List, Optional, Tuple
from streamhub import constants
from streamhub.exceptions import RecordNormalizationError, SourceError
from streamhub.models import AggregateResult, CanonicalStream, SourceConfig, SourceFailure
from streamhub.parser import StreamParser

# setup the logger
logger = logging.getLogger(__name__)

"""
Aggregates streams from multiple sources

Each source is queried concurrently and bounded by its own timeout.
Results come back in source order, not completion order.
"""
class StreamAggregator:

    """
    Initialize the StreamAggregator

    @param clients: list AddonClient instances in source priority order
    @param parser_factory: callable Builds the stream parser for a source configuration
    """
    def __init__(self, clients: List[Any], parser_factory: Callable[[SourceConfig], StreamParser]):

        # setup the internals
        self.clients = clients
        self.parser_factory = parser_factory
        self.parsers: Dict[str, StreamParser] = {
            client.config.instance_id: parser_factory(client.config) for client in clients
        }

    """
    Fetch streams from all sources
    Waits for every source task to complete; there is no early return.

    @param content_type: str Content type
    @param content_id: str Content id
    @param clients: list Optional subset of clients to query, defaults to all enabled clients
    @return AggregateResult: Records in source order and one failure per failed source or error record
    """
    async def fetch(self, content_type: str, content_id: str, clients: Optional[List[Any]] = None) -> AggregateResult:

        # figure out who we are asking
        if clients is None:
            clients = [c for c in self.clients if c.config.enabled]
        result = AggregateResult()
        if not clients:
            logger.warning(f"No sources to query for {content_type}/{content_id}")
            return result

        # setup the tasks
        start = time.time()
        tasks = [self._fetch_source(client, content_type, content_id) for client in clients]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        # collect the results
        for client, outcome in zip(clients, outcomes):

            # the source failed as a whole
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                message = outcome.message if isinstance(outcome, SourceError) else str(outcome) or type(outcome).__name__
                logger.error(f"Source {client.config.name} failed: {message}")
                result.failures.append(SourceFailure(client.config.instance_id, client.config.name, message))
                continue

            # the source worked, so split out any error records it sent
            records, failures = outcome
            result.records.extend(records)
            result.failures.extend(failures)

        # logging
        logger.info(
            f"Aggregated {len(result.records)} streams from {len(clients)} sources "
            f"({len(result.failures)} failures) in {time.time() - start:.2f}s"
        )
        return result

    """
    Fetch and normalize one source
    Bounded by the source timeout; entries that cannot be normalized are
    dropped one by one.

    @param client: AddonClient The source to query
    @param content_type: str Content type
    @param content_id: str Content id
    @return tuple: The normalized records and the error records as failures
    @throws SourceError: When the source times out or its payload is unusable
    """
    async def _fetch_source(self, client, content_type: str, content_id: str) -> Tuple[List[CanonicalStream], List[SourceFailure]]:

        # hold the source config
        config = client.config

        # fetch with the source's own timeout
        try:
            raw_streams = await asyncio.wait_for(client.get_streams(content_type, content_id), timeout=config.timeout)
        except asyncio.TimeoutError as e:
            raise SourceError(config.instance_id, config.name, f"Timed out after {config.timeout}s") from e

        # normalize each entry
        parser = self.parsers.get(config.instance_id) or self.parser_factory(config)
        records: List[CanonicalStream] = []
        failures: List[SourceFailure] = []
        for index, raw in enumerate(raw_streams):

            # try to parse it
            try:
                record = parser.parse(raw, index)

            # whoops... drop just this entry
            except RecordNormalizationError as e:
                logger.warning(f"Skipping stream {index} from {config.name}: {e}")
                continue
            except Exception as e:
                logger.exception(f"Unexpected error normalizing stream {index} from {config.name}: {e}")
                continue

            # error records become failures
            if record.kind == constants.ERROR and record.error:
                failures.append(SourceFailure(config.instance_id, config.name, record.error.description, record.error.title))
                continue
            records.append(record)

        # logging
        logger.debug(f"Normalized {len(records)} of {len(raw_streams)} streams from {config.name}")
        return records, failures
