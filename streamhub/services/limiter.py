#!/usr/bin/env python3
"""
Stream Limiter Module

Caps how many sorted records are returned, overall and per group.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import logging
from collections import Counter
from typing import Callable, List, Optional
from streamhub import constants
from streamhub.models import CanonicalStream, LimitConfig

# setup the logger
logger = logging.getLogger(__name__)

# the per group caps, applied in this order after the global one
GROUPS = (
    ("indexer", lambda r: r.indexer),
    ("release_group", lambda r: r.tags.release_group),
    ("resolution", lambda r: r.tags.resolution),
    ("quality", lambda r: r.tags.quality),
    ("source", lambda r: r.source_id),
    ("stream_kind", lambda r: r.kind),
    ("service", lambda r: r.service_id),
)

"""
Applies the configured result caps
"""
class StreamLimiter:

    def __init__(self, config: LimitConfig):
        self.config = config

    """
    Apply every enabled cap in order
    Records keep their sorted order; the earliest ones in each group win.

    @param records: list Sorted records
    @return list: The records within every cap
    """
    def limit(self, records: List[CanonicalStream]) -> List[CanonicalStream]:

        # the global cap
        result = list(records)
        if self.config.global_limit:
            result = result[:self.config.global_limit]

        # then each group cap
        for name, group_of in GROUPS:
            cap = getattr(self.config, name)
            if cap:
                result = self._cap(result, cap, group_of)

        # logging
        if len(result) != len(records):
            logger.info(f"Limited {len(records)} streams to {len(result)}")
        return result

    @staticmethod
    def _cap(records: List[CanonicalStream], cap: int, group_of: Callable[[CanonicalStream], Optional[str]]) -> List[CanonicalStream]:
        seen: Counter = Counter()
        kept = []
        for record in records:
            group = group_of(record) or constants.UNKNOWN
            if seen[group] < cap:
                seen[group] += 1
                kept.append(record)
        return kept
