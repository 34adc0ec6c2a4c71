"""Engine: the immutable union of every compiled list.

Matching is delegated to adblockparser. Rules are split by kind when the
engine is built:

  - blocking rules go into one AdblockRules instance
  - allow-list (``@@``) rules are stripped of their prefix and go into a
    second one, so "does any allow-list rule match?" is the same fast
    combined-regex check as "does any blocking rule match?"

match_request() runs the blocking check first; only requests that hit a
blocking rule pay for the allow-list check. The specific rule that
matched is identified lazily, because that needs a linear scan and most
callers only care whether it is an allow-list rule.

An Engine is never mutated after construction. EngineManager swaps the
whole object when the configuration changes.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence
from urllib.parse import urlsplit

from adblockparser import AdblockParsingError, AdblockRule, AdblockRules

from tabshield.domain.types import SourceIndex, Url
from tabshield.engine.compiled import CompiledList

log = logging.getLogger(__name__)


def hostname_of(url: str | None) -> str | None:
    """Lower-cased hostname of ``url``, or None if it has none."""
    if not url:
        return None
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


class RequestType(Enum):
    DOCUMENT = "document"
    SUBDOCUMENT = "subdocument"
    SCRIPT = "script"
    IMAGE = "image"
    STYLESHEET = "stylesheet"
    XMLHTTPREQUEST = "xmlhttprequest"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Request:
    """What the engine is asked about: a URL and the document that loads it."""
    url: Url
    source_url: Url | None
    request_type: RequestType = RequestType.DOCUMENT

    @property
    def hostname(self) -> str | None:
        return hostname_of(self.url)

    @property
    def source_hostname(self) -> str | None:
        return hostname_of(self.source_url)

    @property
    def third_party(self) -> bool:
        source = self.source_hostname
        return source is not None and self.hostname != source

    def options(self) -> dict[str, object]:
        """adblockparser option dict for this request."""
        opts: dict[str, object] = {
            self.request_type.value: True,
            "third-party": self.third_party,
        }
        source = self.source_hostname
        if source:
            opts["domain"] = source
        return opts


@dataclass(frozen=True, slots=True)
class RuleOrigin:
    """Where a rule came from: list position and raw line number."""
    source_index: SourceIndex
    line: int


@dataclass(frozen=True, slots=True)
class MatchedRule:
    text: str
    is_exception: bool
    origin: RuleOrigin

    def is_allowlist(self) -> bool:
        return self.is_exception


class MatchResult:
    """Outcome of matching one request.

    ``matched`` and ``is_allowlist`` are known up front. ``basic_rule``
    resolves the specific rule on first access.
    """

    __slots__ = ("matched", "is_allowlist", "_resolver", "_rule", "_resolved")

    def __init__(
        self,
        matched: bool,
        is_allowlist: bool = False,
        resolver: Callable[[], MatchedRule | None] | None = None,
    ) -> None:
        self.matched = matched
        self.is_allowlist = is_allowlist
        self._resolver = resolver
        self._rule: MatchedRule | None = None
        self._resolved = resolver is None

    @classmethod
    def no_match(cls) -> MatchResult:
        return cls(matched=False)

    @property
    def blocked(self) -> bool:
        return self.matched and not self.is_allowlist

    @property
    def basic_rule(self) -> MatchedRule | None:
        """The primary matching rule, or None when nothing matched."""
        if not self._resolved:
            self._rule = self._resolver() if self._resolver else None
            self._resolved = True
        return self._rule


class Engine:
    """Compiled union of all filter lists for one list-sources snapshot.

    Args:
        compiled_lists: one CompiledList per configured source, any order.
    """

    def __init__(self, compiled_lists: Sequence[CompiledList]) -> None:
        self._sources = tuple(sorted(compiled_lists, key=lambda c: c.source_index))
        blocking, exceptions, skipped = _parse_rules(self._sources)
        self._blocking = blocking
        self._exceptions = exceptions
        self._block_rules = AdblockRules([rule for rule, _, _ in blocking])
        self._allow_rules = AdblockRules([rule for rule, _, _ in exceptions])
        self._rules_count = len(blocking) + len(exceptions)
        if skipped:
            log.debug("Skipped %d unparseable rule(s)", skipped)

    @classmethod
    def build(cls, compiled_lists: Iterable[CompiledList]) -> Engine:
        """Factory used by EngineManager; logs the resulting size."""
        engine = cls(list(compiled_lists))
        log.info("Engine loaded with %d rule(s)", engine.rules_count)
        return engine

    @property
    def rules_count(self) -> int:
        return self._rules_count

    @property
    def source_urls(self) -> tuple[Url, ...]:
        return tuple(c.source_url for c in self._sources)

    def match_request(self, request: Request) -> MatchResult:
        if self._rules_count == 0:
            return MatchResult.no_match()
        options = request.options()
        if not self._block_rules.should_block(request.url, options):
            return MatchResult.no_match()
        if self._exceptions and self._allow_rules.should_block(request.url, options):
            return MatchResult(
                matched=True,
                is_allowlist=True,
                resolver=lambda: _find(self._exceptions, request.url, options, True),
            )
        return MatchResult(
            matched=True,
            resolver=lambda: _find(self._blocking, request.url, options, False),
        )


_Entry = tuple[AdblockRule, str, RuleOrigin]


def _parse_rules(sources: Sequence[CompiledList]) -> tuple[list[_Entry], list[_Entry], int]:
    """Parse every rule line; returns (blocking, exceptions, skipped)."""
    blocking: list[_Entry] = []
    exceptions: list[_Entry] = []
    skipped = 0
    for compiled in sources:
        for position, text in enumerate(compiled.rule_lines()):
            is_exception = text.startswith("@@")
            try:
                # Exception rules are stored without "@@" so the allow-list
                # AdblockRules reports them as ordinary matches.
                rule = AdblockRule(text[2:] if is_exception else text)
            except (AdblockParsingError, re.error, ValueError):
                skipped += 1
                continue
            if not rule.regex:
                skipped += 1
                continue
            origin = RuleOrigin(compiled.source_index, compiled.raw_line_of(position))
            (exceptions if is_exception else blocking).append((rule, text, origin))
    return blocking, exceptions, skipped


def _find(
    entries: Sequence[_Entry],
    url: str,
    options: dict[str, object],
    is_exception: bool,
) -> MatchedRule | None:
    for rule, text, origin in entries:
        if rule.matching_supported(options) and rule.match_url(url, options):
            return MatchedRule(text=text, is_exception=is_exception, origin=origin)
    return None
