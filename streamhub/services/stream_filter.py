#!/usr/bin/env python3
"""
Stream Filter Module

This module decides which canonical records survive the user's filter
settings. Each predicate is independent and a record survives only when it
passes all of them. Every rejection is counted by reason and a summary is
logged once per run.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import re, logging, time
from collections import Counter
from typing import List, Optional, Tuple
from streamhub import constants
from streamhub.models import CacheStatusFilter, CanonicalStream, FilterConfig, SizeLimits
from streamhub.services.regex_engine import CompiledPattern, RegexFilterEngine

# setup the logger
logger = logging.getLogger(__name__)

# the season and episode at the end of a series id
SEASON_EPISODE_ID = re.compile(r":(\d+):(\d+)$")

# the hdr variants that make up the composite tag
HDR_TAGS = ("HDR", "HDR10", "HDR10+")

"""
Handles record filtering based on the user's filter settings
"""
class StreamFilter:

    """
    Initialize the StreamFilter
    Compiles the keyword and regex patterns once.

    @param config: FilterConfig Filter settings
    @param regex_engine: RegexFilterEngine Engine for the keyword and regex predicates
    """
    def __init__(self, config: FilterConfig, regex_engine: RegexFilterEngine):

        # setup the internals
        self.config = config
        self.regex = regex_engine
        self.skipped: Counter = Counter()

        # compile the patterns
        self.excluded_patterns = regex_engine.compile_all(config.excluded_patterns)
        self.required_patterns = regex_engine.compile_all(config.required_patterns)
        self.excluded_keywords = self._keyword_pattern(config.excluded_keywords)
        self.required_keywords = self._keyword_pattern(config.required_keywords)

    """
    Compile plain keywords into one guarded pattern

    @param keywords: list Plain keywords
    @return CompiledPattern: The pattern, or None without keywords
    """
    def _keyword_pattern(self, keywords: List[str]) -> Optional[CompiledPattern]:
        pattern = self.regex.keywords_to_pattern(keywords)
        return self.regex.compile(pattern) if pattern else None

    """
    Filter a list of records

    @param records: list Records to filter
    @param content_type: str Requested content type, drives the size limits
    @param content_id: str Requested content id, drives season and episode matching
    @return list: Surviving records in their original order
    """
    def filter(self, records: List[CanonicalStream], content_type: str, content_id: str) -> List[CanonicalStream]:

        # setup
        start = time.time()
        self.skipped = Counter()
        requested = self._requested_episode(content_type, content_id)
        kept = []

        # check each record
        for record in records:
            reason = self.skip_reason(record, content_type, requested)
            if reason:
                self.skipped[reason] += 1
                continue
            kept.append(record)

        # logging
        logger.info(f"Filtered {len(records)} streams to {len(kept)} in {time.time() - start:.3f}s")
        self.log_summary()
        return kept

    """
    Check if a record should be included

    @param record: CanonicalStream Record to evaluate
    @param content_type: str Requested content type
    @param content_id: str Requested content id
    @return bool: True if the record passes every predicate
    """
    def should_include_stream(self, record: CanonicalStream, content_type: str = constants.MOVIE, content_id: str = "") -> bool:
        return self.skip_reason(record, content_type, self._requested_episode(content_type, content_id)) is None

    """
    Find the first predicate a record fails

    @param record: CanonicalStream Record to evaluate
    @param content_type: str Requested content type
    @param requested: tuple Requested (season, episode), or None
    @return str: The skip reason, or None when the record passes
    """
    def skip_reason(self, record: CanonicalStream, content_type: str, requested: Optional[Tuple[int, int]] = None) -> Optional[str]:

        # hold the config and the tags
        config = self.config
        tags = record.tags

        # single valued categories
        checks = (
            ("stream kind", record.kind, config.excluded_stream_kinds, config.required_stream_kinds),
            ("resolution", tags.resolution or constants.UNKNOWN, config.excluded_resolutions, config.required_resolutions),
            ("quality", tags.quality or constants.UNKNOWN, config.excluded_qualities, config.required_qualities),
            ("encode", tags.encode or constants.UNKNOWN, config.excluded_encodes, config.required_encodes),
        )
        for label, value, excluded, required in checks:
            if value in excluded:
                return f"excluded {label}"
            if required and value not in required:
                return f"missing required {label}"

        # visual tags have their own rules
        reason = self._visual_tag_reason(tags.visual_tags)
        if reason:
            return reason

        # multi valued categories, any excluded value rejects
        checks = (
            ("audio tag", tags.audio_tags, config.excluded_audio_tags, config.required_audio_tags),
            ("audio channel", tags.audio_channels, config.excluded_audio_channels, config.required_audio_channels),
        )
        for label, values, excluded, required in checks:
            values = list(values) or [constants.UNKNOWN]
            if any(value in excluded for value in values):
                return f"excluded {label}"
            if required and not any(value in required for value in values):
                return f"missing required {label}"

        # languages, rejected only when every language is excluded
        languages = record.languages
        if config.excluded_languages and all(language in config.excluded_languages for language in languages):
            return "excluded language"
        if config.required_languages and not any(language in config.required_languages for language in languages):
            return "missing required language"

        # cache status
        reason = self._cache_reason(record)
        if reason:
            return reason

        # size
        if not self._size_ok(record, content_type):
            return "size out of range"

        # seeders
        reason = self._seeder_reason(record)
        if reason:
            return reason

        # keywords and patterns
        fields = (record.filename, record.folder_name, record.indexer)
        if self.excluded_keywords and self.regex.test_any(self.excluded_keywords, fields):
            return "excluded keyword"
        if self.required_keywords and not self.regex.test_any(self.required_keywords, fields):
            return "missing required keyword"
        if any(self.regex.test_any(pattern, fields) for pattern in self.excluded_patterns):
            return "excluded regex"
        if self.required_patterns and not any(self.regex.test_any(pattern, fields) for pattern in self.required_patterns):
            return "missing required regex"

        # season and episode
        if requested and not self._episode_matches(record, requested):
            return "wrong season or episode"

        # passed everything
        return None

    """
    Check the visual tags
    A record carrying both an HDR variant and DV also carries the HDR+DV
    composite. Every tag, the composite included, is checked for explicit
    denial. With an allow list set, a composite record is kept only when
    the composite itself is allowed.

    @param visual_tags: list The record's visual tags
    @return str: The skip reason, or None
    """
    def _visual_tag_reason(self, visual_tags: List[str]) -> Optional[str]:

        # hold the config
        excluded = self.config.excluded_visual_tags
        required = self.config.required_visual_tags
        effective = self.effective_visual_tags(visual_tags)

        # any denied tag rejects
        if any(tag in excluded for tag in effective):
            return "excluded visual tag"

        # allow only, the composite needs its own allowance
        if required:
            if constants.HDR_DV in effective:
                if constants.HDR_DV not in required:
                    return "missing required visual tag"
            elif not any(tag in required for tag in effective):
                return "missing required visual tag"
        return None

    """
    Get the tags a record is judged by
    The HDR+DV composite goes before the first HDR variant or DV.

    @param visual_tags: list The record's visual tags
    @return list: The tags, or Unknown for an untagged record
    """
    @staticmethod
    def effective_visual_tags(visual_tags: List[str]) -> List[str]:

        # untagged
        if not visual_tags:
            return [constants.UNKNOWN]

        # add the composite when both are there
        tags = list(visual_tags)
        positions = [i for i, tag in enumerate(tags) if tag in HDR_TAGS or tag == "DV"]
        if any(tag in HDR_TAGS for tag in tags) and "DV" in tags:
            tags.insert(min(positions), constants.HDR_DV)
        return tags

    """
    Check the cache status filters
    The global flags apply to every record with a service. The scoped
    filters apply to records from the configured sources, services or
    stream kinds, combined by their mode.

    @param record: CanonicalStream Record to evaluate
    @return str: The skip reason, or None
    """
    def _cache_reason(self, record: CanonicalStream) -> Optional[str]:

        # service-less records have no cache status
        if record.service is None:
            return None

        # the global flags
        config = self.config
        cached = record.service.cached
        if config.exclude_cached and cached:
            return "excluded cached"
        if config.exclude_uncached and not cached:
            return "excluded uncached"

        # the scoped ones
        if cached and self._cache_scope_matches(record, config.exclude_cached_from):
            return "excluded cached"
        if not cached and self._cache_scope_matches(record, config.exclude_uncached_from):
            return "excluded uncached"
        return None

    @staticmethod
    def _cache_scope_matches(record: CanonicalStream, scope: CacheStatusFilter) -> bool:

        # each configured scope the record falls in
        matches = [
            bool(scope.sources) and record.from_source(scope.sources),
            bool(scope.services) and record.service.id in scope.services,
            bool(scope.stream_kinds) and record.kind in scope.stream_kinds,
        ]
        return all(matches) if scope.mode == "and" else any(matches)

    """
    Check the seeder bounds
    The minimum and the ranges only apply to torrent-like records. A
    record below the required minimum, above the required maximum, or
    inside the excluded range is rejected.

    @param record: CanonicalStream Record to evaluate
    @return str: The skip reason, or None
    """
    def _seeder_reason(self, record: CanonicalStream) -> Optional[str]:

        # the plain minimum, known counts only
        config = self.config
        if config.min_seeders and record.seeders is not None and self._has_seeders(record):
            if record.seeders < config.min_seeders:
                return "too few seeders"

        # the ranges, scoped to some stream types
        kind = self.seeder_kind(record)
        if config.seeder_range_kinds and kind not in config.seeder_range_kinds:
            return None
        seeders = record.seeders or 0
        required = config.required_seeders
        if required.min is not None and seeders < required.min:
            return "too few seeders"
        if required.max is not None and record.seeders is not None and seeders > required.max:
            return "too many seeders"
        excluded = config.excluded_seeders
        if excluded.min is not None or excluded.max is not None:
            above = excluded.min is None or seeders >= excluded.min
            below = excluded.max is None or seeders <= excluded.max
            if above and below:
                return "excluded seeder range"
        return None

    """
    Get the seeder range type of a record

    @param record: CanonicalStream Record to classify
    @return str: p2p, cached or uncached, or None for other kinds
    """
    @staticmethod
    def seeder_kind(record: CanonicalStream) -> Optional[str]:
        if record.kind == constants.P2P:
            return "p2p"
        if record.kind in (constants.DEBRID, constants.USENET) and record.service is not None:
            return "cached" if record.service.cached else "uncached"
        return None

    """
    Check the size against the most specific configured limits
    Resolution limits win over content type limits, which win over the
    global ones. Records without a size always pass.

    @param record: CanonicalStream Record to evaluate
    @param content_type: str Requested content type
    @return bool: True when the size is within range
    """
    def _size_ok(self, record: CanonicalStream, content_type: str) -> bool:

        # nothing to check
        if record.size is None:
            return True

        # figure out the limits
        config = self.config
        type_limits = config.series_size if content_type == constants.SERIES else config.movie_size
        resolution_limits = config.resolution_sizes.get(record.tags.resolution or constants.UNKNOWN, SizeLimits())
        minimum = self._first_set(resolution_limits.min, type_limits.min, config.min_size)
        maximum = self._first_set(resolution_limits.max, type_limits.max, config.max_size)

        # and check them
        if minimum is not None and record.size < minimum:
            return False
        if maximum is not None and record.size > maximum:
            return False
        return True

    @staticmethod
    def _first_set(*values: Optional[int]) -> Optional[int]:
        return next((value for value in values if value is not None), None)

    @staticmethod
    def _has_seeders(record: CanonicalStream) -> bool:
        # seeders only mean something for torrents
        return record.kind == constants.P2P or (record.service is not None and not record.service.cached)

    """
    Parse the requested season and episode from a series id

    @param content_type: str Requested content type
    @param content_id: str Requested content id
    @return tuple: (season, episode), or None when matching is off or the id has none
    """
    def _requested_episode(self, content_type: str, content_id: str) -> Optional[Tuple[int, int]]:

        # only when enabled and for series
        if not self.config.season_episode_matching or content_type != constants.SERIES:
            return None
        match = SEASON_EPISODE_ID.search(content_id or "")
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    @staticmethod
    def _episode_matches(record: CanonicalStream, requested: Tuple[int, int]) -> bool:

        # hold the requested values
        season, episode = requested
        tags = record.tags

        # wrong season, or a season pack without it
        if tags.season is not None and tags.season != season:
            return False
        if tags.seasons and season not in tags.seasons:
            return False

        # wrong episode
        if tags.episode is not None and tags.episode != episode:
            return False
        return True

    """
    Log the skip reasons as a small table

    @return None
    """
    def log_summary(self):

        # nothing skipped, nothing to say
        if not self.skipped:
            return

        # build the table
        width = max(len(reason) for reason in self.skipped)
        lines = [f"  {reason.ljust(width)}  {count}" for reason, count in self.skipped.most_common()]
        logger.info(f"Skipped {sum(self.skipped.values())} streams:\n" + "\n".join(lines))
