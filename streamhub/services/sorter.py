#!/usr/bin/env python3
"""
Stream Sorter Module

This module orders records by the user's ordered list of sort criteria.
Sorting is two phase: a stable sort by filename seeds a deterministic
order, then a comparator walks the criteria and the first one that tells
two records apart decides. Ties keep the phase one order.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import logging, math, time
from dataclasses import replace
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence
from streamhub import constants
from streamhub.models import CanonicalStream, SortCriterion, UserPreferences
from streamhub.services.regex_engine import CompiledPattern, RegexFilterEngine

# setup the logger
logger = logging.getLogger(__name__)

# hdr variants checked before the general visual tag minimum
HDR_TAGS = ("HDR", "HDR10", "HDR10+")

"""
Compare two values, lower first

@param a: any Left value
@param b: any Right value
@return int: -1, 0 or 1
"""
def compare(a, b) -> int:
    return (a > b) - (a < b)

"""
Sorts records by the configured criteria
"""
class StreamSorter:

    """
    Initialize the StreamSorter

    @param preferences: UserPreferences Priority lists and sort criteria
    @param sources: list Source instance ids in priority order
    @param regex_engine: RegexFilterEngine Engine used to rank records by named patterns
    """
    def __init__(self, preferences: UserPreferences, sources: List[str], regex_engine: RegexFilterEngine):

        # setup the internals
        self.preferences = preferences
        self.sources = sources
        self.regex = regex_engine
        self.rank_patterns = regex_engine.compile_rank_patterns(preferences.rank_patterns)
        keywords = regex_engine.keywords_to_pattern(preferences.preferred_keywords)
        self.preferred_keywords = regex_engine.compile(keywords) if keywords else None

        # hold the comparators
        self._comparators: Dict[str, Callable[[CanonicalStream, CanonicalStream, str], int]] = {
            "resolution": self._by_list(lambda r: r.tags.resolution or constants.UNKNOWN, preferences.resolutions),
            "quality": self._by_list(lambda r: r.tags.quality or constants.UNKNOWN, preferences.qualities),
            "encode": self._by_list(lambda r: r.tags.encode or constants.UNKNOWN, preferences.encodes),
            "stream_kind": self._by_list(lambda r: r.kind, preferences.stream_kinds),
            "source": self._by_list(lambda r: r.source_id, sources),
            "service": self._by_list(lambda r: r.service_id, preferences.services),
            "visual_tag": self._by_index(self._visual_tag_index, preferences.visual_tags),
            "audio_tag": self._by_index(lambda r: self._min_index(r.tags.audio_tags, preferences.audio_tags), preferences.audio_tags),
            "audio_channel": self._by_index(lambda r: self._min_index(r.tags.audio_channels, preferences.audio_channels), preferences.audio_channels),
            "language": self._compare_language,
            "cached": self._compare_cached,
            "size": self._compare_size,
            "seeders": self._compare_seeders,
            "library": lambda a, b, d: self._compare_flag(a.in_library, b.in_library, d),
            "personal": lambda a, b, d: self._compare_flag(a.personal, b.personal, d),
            "regex": self._compare_rank,
            "keyword": lambda a, b, d: self._compare_flag(a.keyword_matched, b.keyword_matched, d),
        }

    """
    Attach the ranking pattern match and the preferred keyword flag to each record
    Patterns are tested against the filename then the folder name. Keywords
    are tested against the filename, the folder name and the indexer.

    @param records: list Records to rank
    @param patterns: sequence Compiled ranking patterns, defaults to the configured ones
    @return list: New records carrying their rank match and keyword flag
    """
    def prepare(self, records: List[CanonicalStream], patterns: Optional[Sequence[CompiledPattern]] = None) -> List[CanonicalStream]:

        # nothing to rank with
        patterns = self.rank_patterns if patterns is None else patterns
        if not patterns and not self.preferred_keywords:
            return list(records)

        # rank them
        prepared = []
        for r in records:
            if patterns:
                r = replace(r, rank_match=self.regex.rank(patterns, r.filename, r.folder_name))
            if self.preferred_keywords:
                r = replace(r, keyword_matched=self.regex.test_any(self.preferred_keywords, (r.filename, r.folder_name, r.indexer)))
            prepared.append(r)
        return prepared

    """
    Sort records
    When cached or uncached criteria are configured the cached records
    are sorted with their own criteria and placed before the rest.

    @param records: list Records to sort
    @return list: The sorted records
    """
    def sort(self, records: List[CanonicalStream]) -> List[CanonicalStream]:

        # setup
        start = time.time()
        config = self.preferences.sort

        # phase one, filename order, a missing name ties with anything
        seeded = sorted(records, key=cmp_to_key(self._compare_filename))

        # phase two
        if config.cached or config.uncached:
            cached = [r for r in seeded if r.cached is True]
            rest = [r for r in seeded if r.cached is not True]
            result = self._sort(cached, config.cached or config.criteria) + self._sort(rest, config.uncached or config.criteria)
        else:
            result = self._sort(seeded, config.criteria)

        # logging
        logger.info(f"Sorted {len(records)} streams in {time.time() - start:.3f}s")
        return result

    @staticmethod
    def _compare_filename(a: CanonicalStream, b: CanonicalStream) -> int:
        if a.filename is None or b.filename is None:
            return 0
        return compare(a.filename, b.filename)

    def _sort(self, records: List[CanonicalStream], criteria: List[SortCriterion]) -> List[CanonicalStream]:

        # no criteria keeps the seeded order
        if not criteria:
            return list(records)

        # first non zero criterion wins
        def _compare(a: CanonicalStream, b: CanonicalStream) -> int:
            for criterion in criteria:
                result = self._comparators[criterion.criterion](a, b, criterion.direction)
                if result:
                    return result
            return 0

        return sorted(records, key=cmp_to_key(_compare))

    """
    Build a comparator over a value's position in a priority list
    Values missing from the list sit at infinity. An empty list ties.

    @param value_of: callable Extracts the value from a record
    @param priorities: list Priority list, best first
    @return callable: The comparator
    """
    def _by_list(self, value_of: Callable[[CanonicalStream], Optional[str]], priorities: List[str]):
        return self._by_index(lambda r: self._index(priorities, value_of(r)), priorities)

    def _by_index(self, index_of: Callable[[CanonicalStream], float], priorities: List[str]):
        def _compare(a: CanonicalStream, b: CanonicalStream, direction: str) -> int:
            if not priorities:
                return 0
            result = compare(index_of(a), index_of(b))
            return result if direction == constants.DESC else -result
        return _compare

    @staticmethod
    def _index(priorities: List[str], value: Optional[str]) -> float:
        try:
            return priorities.index(value)
        except ValueError:
            return math.inf

    def _min_index(self, values: List[str], priorities: List[str]) -> float:
        values = list(values) or [constants.UNKNOWN]
        return min(self._index(priorities, value) for value in values)

    """
    Position of a record's visual tags
    The HDR+DV composite uses its own entry when present, otherwise the
    best HDR variant, then the best of any tag.

    @param record: CanonicalStream Record to rank
    @return float: The position, infinity when unlisted
    """
    def _visual_tag_index(self, record: CanonicalStream) -> float:

        # hold the tags
        priorities = self.preferences.visual_tags
        tags = record.tags.visual_tags
        hdr = [tag for tag in tags if tag in HDR_TAGS]

        # the composite
        if hdr and "DV" in tags and constants.HDR_DV in priorities:
            return priorities.index(constants.HDR_DV)

        # just the hdr variants
        if hdr:
            index = min(self._index(priorities, tag) for tag in hdr)
            if index != math.inf:
                return index
        return self._min_index(tags, priorities)

    def _compare_language(self, a: CanonicalStream, b: CanonicalStream, direction: str) -> int:

        # a single prioritised language is a yes or no
        prioritised = self.preferences.prioritised_language
        if prioritised:
            result = compare(prioritised not in a.languages, prioritised not in b.languages)
            return result if direction == constants.DESC else -result

        # otherwise the best language position, unknown ones at the end
        priorities = self.preferences.languages
        if not priorities:
            return 0

        def _index(record: CanonicalStream) -> int:
            return min(priorities.index(l) if l in priorities else len(priorities) for l in record.languages)

        result = compare(_index(a), _index(b))
        return result if direction == constants.DESC else -result

    """
    Compare cache status
    Cached and uncached service records are ordered by direction; records
    without a service always come after both.
    """
    def _compare_cached(self, a: CanonicalStream, b: CanonicalStream, direction: str) -> int:

        # the ranks, lower first
        order = {True: 0, False: 1, None: 2} if direction == constants.DESC else {False: 0, True: 1, None: 2}
        return compare(order[a.cached], order[b.cached])

    def _compare_size(self, a: CanonicalStream, b: CanonicalStream, direction: str) -> int:
        result = compare(a.size or 0, b.size or 0)
        return -result if direction == constants.DESC else result

    def _compare_seeders(self, a: CanonicalStream, b: CanonicalStream, direction: str) -> int:

        # missing always goes last
        if a.seeders is None or b.seeders is None:
            return compare(a.seeders is None, b.seeders is None)
        result = compare(a.seeders, b.seeders)
        return -result if direction == constants.DESC else result

    @staticmethod
    def _compare_flag(a: bool, b: bool, direction: str) -> int:
        result = compare(not a, not b)
        return result if direction == constants.DESC else -result

    def _compare_rank(self, a: CanonicalStream, b: CanonicalStream, direction: str) -> int:

        # unmatched always goes last
        if a.rank_match is None or b.rank_match is None:
            return compare(a.rank_match is None, b.rank_match is None)
        result = compare(a.rank_match.index, b.rank_match.index)
        return result if direction == constants.DESC else -result
