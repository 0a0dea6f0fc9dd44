#!/usr/bin/env python3
"""
Regex Filter Engine Module

Compiles and safely evaluates user and operator supplied patterns. Patterns
run through the regex library so each evaluation can be bounded by a
timeout; a timeout is logged and counts as a non-match. Both compilation and
match results are memoized in named caches from the registry.

@package KPTV StreamHub
@author Kevin Pirnie <me@kpirnie.com>
@copyright Copyright (c) 2025
"""

# setup the imports
import logging, regex
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from streamhub import constants
from streamhub.exceptions import RegexTimeoutError
from streamhub.models import RankMatch, RankPattern
from streamhub.services.cache import CacheRegistry

# setup the logger
logger = logging.getLogger(__name__)

# a /pattern/flags literal
LITERAL_PATTERN = regex.compile(r"^/(.+)/([gimuyn]*)$", regex.DOTALL)

# the separators a keyword must be bounded by
BOUNDARY_BEFORE = r"(?<![^\s\[(_\-.,])"
BOUNDARY_AFTER = r"(?=[\s\)\]_.\-,]|$)"

"""
A compiled user pattern

@param source: str The pattern text as configured
@param pattern: regex.Pattern The compiled expression
@param negate: bool Invert the match result
"""
@dataclass(frozen=True)
class CompiledPattern:
    source: str
    pattern: "regex.Pattern"
    negate: bool = False
    name: Optional[str] = None

"""
Compiles and evaluates patterns with a timeout
"""
class RegexFilterEngine:

    """
    Initialize the RegexFilterEngine

    @param caches: CacheRegistry Registry holding the compile and result caches
    @param timeout: float Seconds allowed per evaluation
    """
    def __init__(self, caches: CacheRegistry, timeout: float = 1.0):

        # setup the internals
        self.timeout = timeout
        self._compiled = caches.get(constants.REGEX_COMPILED_CACHE)
        self._results = caches.get(constants.REGEX_RESULT_CACHE)

    """
    Split a pattern into its body, flags and negation
    Accepts a /body/flags literal or a bare pattern. Bare patterns are
    case-insensitive. The n flag negates the match result.

    @param text: str The configured pattern
    @return tuple: (body, flags, negate)
    """
    @staticmethod
    def parse_pattern(text: str) -> Tuple[str, int, bool]:

        # is it a literal
        match = LITERAL_PATTERN.match(text)
        if not match:
            return text, regex.IGNORECASE, False

        # map the flags
        body, letters = match.group(1), match.group(2)
        flags = 0
        if "i" in letters:
            flags |= regex.IGNORECASE
        if "m" in letters:
            flags |= regex.MULTILINE
        return body, flags, "n" in letters

    """
    Compile a pattern, memoized per pattern text

    @param text: str The configured pattern
    @param name: str Optional display name carried with the pattern
    @return CompiledPattern: The compiled pattern
    @throws ValueError: When the pattern is not a valid expression
    """
    def compile(self, text: str, name: Optional[str] = None) -> CompiledPattern:

        # check the cache
        cached = self._compiled.get(text)
        if cached is None:

            # try to compile it
            body, flags, negate = self.parse_pattern(text)
            try:
                cached = CompiledPattern(source=text, pattern=regex.compile(body, flags), negate=negate)

            # whoops... bad pattern
            except regex.error as e:
                raise ValueError(f"Invalid regex pattern {text!r}: {e}") from e
            self._compiled.set(text, cached, constants.REGEX_COMPILED_TTL)

        # attach the name if we were given one
        if name is not None and cached.name != name:
            return CompiledPattern(cached.source, cached.pattern, cached.negate, name)
        return cached

    """
    Compile a list of patterns, dropping and logging invalid ones

    @param texts: iterable Configured patterns
    @return list: Compiled patterns
    """
    def compile_all(self, texts: Iterable[str]) -> List[CompiledPattern]:

        # hold the compiled patterns
        compiled = []
        for text in texts:
            try:
                compiled.append(self.compile(text))
            except ValueError as e:
                logger.error(str(e))
        return compiled

    """
    Search text with a timeout

    @param compiled: CompiledPattern Pattern to run
    @param text: str Text to search
    @return bool: Raw match result, before negation
    @throws RegexTimeoutError: When the evaluation exceeds the timeout
    """
    def search(self, compiled: CompiledPattern, text: str) -> bool:
        try:
            return compiled.pattern.search(text, timeout=self.timeout) is not None
        except TimeoutError as e:
            raise RegexTimeoutError(f"Pattern {compiled.source!r} timed out") from e

    """
    Test a pattern against text
    Results are memoized. A timeout is logged and treated as a non-match.

    @param pattern: CompiledPattern|str Pattern to test
    @param text: str Text to test
    @return bool: True when the (possibly negated) pattern matches
    """
    def test(self, pattern: Union[CompiledPattern, str], text: Optional[str]) -> bool:

        # nothing to test
        if not text:
            return False

        # make sure we have a compiled pattern
        compiled = pattern if isinstance(pattern, CompiledPattern) else self.compile(pattern)

        # check for a cached result
        key = (compiled.source, text)
        cached = self._results.get(key)
        if cached is not None:
            return cached

        # run it
        try:
            result = self.search(compiled, text) != compiled.negate

        # timed out, so no match
        except RegexTimeoutError as e:
            logger.warning(f"{e}, treating as no match")
            return False

        # cache and return
        self._results.set(key, result, constants.REGEX_RESULT_TTL)
        return result

    """
    Test a pattern against several fields

    @param pattern: CompiledPattern Pattern to test
    @param texts: iterable Field values, empty ones are skipped
    @return bool: True when any field matches
    """
    def test_any(self, pattern: CompiledPattern, texts: Iterable[Optional[str]]) -> bool:
        return any(self.test(pattern, text) for text in texts if text)

    """
    Build a boundary guarded pattern from plain keywords
    Keywords are escaped, spaces match any common separator.

    @param keywords: sequence Plain keywords
    @return str: A pattern string, or None when no keywords are given
    """
    @staticmethod
    def keywords_to_pattern(keywords: Sequence[str]) -> Optional[str]:

        # clean the keywords up
        parts = [regex.escape(k.strip()).replace("\\ ", " ").replace(" ", r"[ .\-_]?") for k in keywords if k and k.strip()]
        if not parts:
            return None

        # and wrap them
        return f"{BOUNDARY_BEFORE}({'|'.join(parts)}){BOUNDARY_AFTER}"

    """
    Find the first ranking pattern that matches
    Patterns are tried in order against each text in turn.

    @param patterns: sequence Compiled ranking patterns
    @param texts: str Field values, typically filename then folder name
    @return RankMatch: The match, or None
    """
    def rank(self, patterns: Sequence[CompiledPattern], *texts: Optional[str]) -> Optional[RankMatch]:

        # skip records with nothing to match against
        if not any(texts):
            return None

        # first match wins
        for index, compiled in enumerate(patterns):
            if self.test_any(compiled, texts):
                return RankMatch(name=compiled.name, index=index)
        return None

    """
    Compile named ranking patterns, keeping list positions for valid ones

    @param patterns: sequence RankPattern entries
    @return list: Compiled patterns carrying their names
    """
    def compile_rank_patterns(self, patterns: Sequence[RankPattern]) -> List[CompiledPattern]:

        # hold them
        compiled = []
        for entry in patterns:
            try:
                compiled.append(self.compile(entry.pattern, name=entry.name))
            except ValueError as e:
                logger.error(str(e))
        return compiled
