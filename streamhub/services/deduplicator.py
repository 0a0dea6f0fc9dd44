#!/usr/bin/env python3
"""
Deduplicator Module

This module collapses records that point at the same release. Records are
grouped by a normalized key (filename, then info hash in a second pass) and
each group is reduced according to the configured mode.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging, time
from typing import Callable, Dict, Hashable, List, Optional
from streamhub import constants
from streamhub.models import CanonicalStream, DedupConfig

# setup the logger
logger = logging.getLogger(__name__)

# container extensions stripped before comparing filenames
CONTAINER_EXTENSION = re.compile(
    r"\.(mkv|mp4|avi|mov|wmv|flv|webm|m4v|mpg|mpeg|3gp|3g2|m2ts|ts|vob|ogv|ogm|divx|xvid|rm|rmvb|asf|mxf|mka|mks|mk3d|f4v|f4p|f4a|f4b)$",
    re.IGNORECASE,
)
NON_ALPHANUMERIC = re.compile(r"[^\w]|_|\s")

"""
Normalize a filename for duplicate detection

@param filename: str Release filename
@return str: Lowercased alphanumerics without the container extension
"""
def normalise_filename(filename: str) -> str:
    return NON_ALPHANUMERIC.sub("", CONTAINER_EXTENSION.sub("", filename)).lower()

"""
Removes duplicate records

@param config: DedupConfig Keys and mode
@param sources: list Instance ids in priority order
@param services: list Service ids in priority order
"""
class Deduplicator:

    def __init__(self, config: DedupConfig, sources: List[str], services: List[str]):

        # setup the internals
        self.config = config
        self.sources = sources
        self.services = services

    """
    Deduplicate records
    Each configured key is a separate pass over the previous pass's result.
    Survivors keep their input order.

    @param records: list Records to deduplicate
    @return list: The surviving records
    """
    def deduplicate(self, records: List[CanonicalStream]) -> List[CanonicalStream]:

        # nothing to do
        if self.config.mode == "disabled" or not records:
            return list(records)

        # run each pass
        start = time.time()
        result = list(records)
        for key in self.config.keys:
            result = self._pass(result, self._key_function(key))

        # logging
        logger.info(f"Deduplicated {len(records)} streams to {len(result)} in {time.time() - start:.3f}s")
        return result

    def _key_function(self, key: str) -> Callable[[CanonicalStream], Optional[Hashable]]:
        if key == "filename":
            return lambda r: normalise_filename(r.filename) if r.filename else None
        return lambda r: (r.info_hash or r.torrent_hash or "").lower() or None

    """
    Run one deduplication pass

    @param records: list Records to deduplicate
    @param key_of: callable Returns the grouping key, or None for records that never collide
    @return list: Survivors in input order
    """
    def _pass(self, records: List[CanonicalStream], key_of: Callable[[CanonicalStream], Optional[Hashable]]) -> List[CanonicalStream]:

        # group them up
        groups: Dict[Hashable, List[CanonicalStream]] = {}
        for record in records:
            key = key_of(record)
            if key is not None:
                groups.setdefault(key, []).append(record)

        # pick the survivors of each group
        keep = set()
        for group in groups.values():
            if len(group) == 1:
                keep.add(group[0].id)
                continue
            keep.update(record.id for record in self.select(group))

        # keep the input order
        return [r for r in records if key_of(r) is None or r.id in keep]

    """
    Select the survivors of one duplicate group

    @param group: list Records sharing a key
    @return list: The survivors
    """
    def select(self, group: List[CanonicalStream]) -> List[CanonicalStream]:

        # hold the mode
        mode = self.config.mode

        # one overall
        if mode == "single_result":
            return [min(group, key=self._overall_priority)]

        # one per service, service-less records share a pseudo service
        if mode == "per_service":
            return self._best_per(group, lambda r: r.service_id or constants.NO_SERVICE)

        # one per source
        if mode == "per_addon":
            return self._best_per(group, lambda r: r.source_id)

        # default, the union of the bucket selections
        no_provider = [r for r in group if r.service is None]
        cached = [r for r in group if r.service is not None and r.service.cached]
        uncached = [r for r in group if r.service is not None and not r.service.cached]
        survivors = []
        if no_provider:
            survivors.append(min(no_provider, key=self._source_priority))
        if cached:
            survivors.append(min(cached, key=lambda r: (self._service_index(r),) + self._source_priority(r)))
        survivors.extend(self._best_per(uncached, lambda r: r.service_id))
        return survivors

    def _best_per(self, records: List[CanonicalStream], group_of: Callable[[CanonicalStream], str]) -> List[CanonicalStream]:
        best: Dict[str, CanonicalStream] = {}
        for record in records:
            key = group_of(record)
            if key not in best or self._overall_priority(record) < self._overall_priority(best[key]):
                best[key] = record
        return list(best.values())

    def _source_priority(self, record: CanonicalStream) -> tuple:
        # lower is better, nonzero seeders break ties
        return (self._index(self.sources, record.source_id), 0 if record.seeders else 1)

    def _service_index(self, record: CanonicalStream) -> int:
        return self._index(self.services, record.service_id)

    def _overall_priority(self, record: CanonicalStream) -> tuple:
        # cached first, then service-less, then uncached
        if record.service is None:
            bucket = 1
        else:
            bucket = 0 if record.service.cached else 2
        return (bucket, self._service_index(record)) + self._source_priority(record)

    @staticmethod
    def _index(priorities: List[str], value: Optional[str]) -> int:
        try:
            return priorities.index(value)
        except ValueError:
            return len(priorities)
