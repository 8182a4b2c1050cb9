import logging
import re
from typing import Iterable, Pattern, Tuple
from urllib.parse import urlparse

from gcrauth.configuration import CONTAINER_REGISTRY_HOSTS

logger = logging.getLogger("hosts")


class InvalidPatternError(ValueError):
    pass


def _class_char(pattern: str, j: int) -> (str, int):
    """Single member of character class, escape honored. Returns char and next index"""
    if pattern[j] == "\\":
        j += 1
        if j >= len(pattern):
            raise InvalidPatternError(f"Unterminated character class in host pattern '{pattern}'")
    return pattern[j], j + 1


def _translate_class(pattern: str, i: int) -> (str, int):
    """Translate character class starting after '[' at index i. Returns regex and index after ']'"""
    n = len(pattern)
    negate = i < n and pattern[i] in "!^"
    if negate:
        i += 1
    items = []
    first = True
    while True:
        if i >= n:
            raise InvalidPatternError(f"Unterminated character class in host pattern '{pattern}'")
        # ']' right after opening is a literal member
        if pattern[i] == "]" and not first:
            break
        first = False
        lo, i = _class_char(pattern, i)
        if i + 1 < n and pattern[i] == "-" and pattern[i + 1] != "]":
            hi, i = _class_char(pattern, i + 1)
            if hi < lo:
                raise InvalidPatternError(f"Invalid range '{lo}-{hi}' in host pattern '{pattern}'")
            items.append(f"{re.escape(lo)}-{re.escape(hi)}")
        else:
            items.append(re.escape(lo))
    return f"[{'^' if negate else ''}{''.join(items)}]", i + 1


def translate_pattern(pattern: str) -> str:
    """
    Translate shell glob into regular expression.
    '*' and '?' never match '/', '\\' escapes the next character, '[...]' is character class
    negated with '!' or '^'. Raises InvalidPatternError on bad syntax.
    """
    if not pattern or not isinstance(pattern, str):
        raise InvalidPatternError(f"Host pattern must be non-empty string. Value: {pattern!r}")
    res = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "*":
            res.append("[^/]*")
        elif c == "?":
            res.append("[^/]")
        elif c == "\\":
            if i >= n:
                raise InvalidPatternError(f"Trailing escape in host pattern '{pattern}'")
            res.append(re.escape(pattern[i]))
            i += 1
        elif c == "[":
            regex, i = _translate_class(pattern, i)
            res.append(regex)
        else:
            res.append(re.escape(c))
    return "".join(res)


class HostMatcher:
    """
    Matches host names against ordered list of shell glob patterns, case-sensitive.

    Patterns are compiled when the matcher is created. Invalid pattern raises
    InvalidPatternError, or with strict=False it is logged and never matches.
    """

    def __init__(self, patterns: Iterable[str] = CONTAINER_REGISTRY_HOSTS, strict: bool = True):
        self._patterns: Tuple[str, ...] = tuple(patterns)
        self._compiled: Tuple[Pattern, ...] = tuple(
            c for c in (self._compile(p, strict) for p in self._patterns) if c is not None
        )

    @staticmethod
    def _compile(pattern: str, strict: bool):
        try:
            return re.compile(translate_pattern(pattern))
        except (InvalidPatternError, re.error) as e:
            if not strict:
                logger.warning(f"Skipping host pattern '{pattern}': {e}")
                return None
            if isinstance(e, InvalidPatternError):
                raise
            raise InvalidPatternError(f"Invalid host pattern '{pattern}': {e}") from e

    @property
    def patterns(self) -> Tuple[str, ...]:
        return self._patterns

    def matches(self, host: str) -> bool:
        if not host:
            return False
        return any(c.fullmatch(host) for c in self._compiled)


_default_matcher = HostMatcher()


def is_container_registry_host(host: str, matcher: HostMatcher = None) -> bool:
    """Whether Google Container Registry credentials should be used for the host"""
    return (matcher or _default_matcher).matches(host)


def registry_host(server_url: str) -> str:
    """
    Host name part of Docker server address, e.g.
    'https://eu.gcr.io/v2/' -> 'eu.gcr.io', 'gcr.io:443' -> 'gcr.io'
    """
    server_url = server_url.strip()
    if "://" not in server_url:
        server_url = f"//{server_url}"
    netloc = urlparse(server_url).netloc
    # Drop possible credentials and port
    host = netloc.rsplit("@", 1)[-1]
    if host.startswith("["):
        return host.split("]", 1)[0] + "]"
    return host.split(":", 1)[0]
