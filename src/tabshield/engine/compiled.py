"""CompiledList and the list preprocessor.

Preprocessing turns the raw text of one filter list into the form the
engine consumes: network rules only, one per line, with a source map back
to the raw line numbers so a matched rule can be traced to where it came
from.

Dropped during preprocessing:
  - blank lines, ``!`` comments, ``#`` comments and ``[Adblock Plus]`` headers
  - cosmetic rules (``##``, ``#@#``, ``#?#``, ``#$#``, ``#%#``): they hide
    page elements and never decide whether a request goes out

Hosts-file lines (``0.0.0.0 ads.example.com``) are rewritten to the
equivalent ``||ads.example.com^`` network rule, so blocklists published
in either format can be mixed in one configuration.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from tabshield.domain.types import SourceIndex, Url

_COSMETIC_MARKERS = ("##", "#@#", "#?#", "#$#", "#%#")

_HOSTS_LINE_RE = re.compile(r"^(?:0\.0\.0\.0|127\.0\.0\.1|::1?)\s+(?P<host>[^\s#]+)")
_LOCAL_HOSTS = frozenset({"localhost", "localhost.localdomain", "local", "0.0.0.0", "broadcasthost"})


@dataclass(frozen=True, slots=True)
class CompiledList:
    """Preprocessed form of one filter list. Immutable once produced."""
    source_index: SourceIndex
    source_url: Url
    rule_buffer: bytes                  # UTF-8, newline-joined network rules
    source_map: tuple[int, ...]         # raw 1-based line number per rule

    @classmethod
    def empty(cls, source_index: SourceIndex, source_url: Url) -> CompiledList:
        """Degraded form used when a list could not be fetched."""
        return cls(source_index, source_url, b"", ())

    @property
    def rule_count(self) -> int:
        return len(self.source_map)

    def rule_lines(self) -> list[str]:
        if not self.rule_buffer:
            return []
        return self.rule_buffer.decode("utf-8").split("\n")

    def raw_line_of(self, rule_position: int) -> int:
        """Raw line number of the rule at ``rule_position``."""
        return self.source_map[rule_position]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceIndex": self.source_index,
            "sourceUrl": self.source_url,
            "filterList": self.rule_buffer.decode("utf-8"),
            "sourceMap": list(self.source_map),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CompiledList:
        """Inverse of to_dict. Raises KeyError/TypeError/ValueError on bad input."""
        rule_buffer = str(data["filterList"]).encode("utf-8")
        source_map = tuple(int(n) for n in data["sourceMap"])
        line_count = len(rule_buffer.split(b"\n")) if rule_buffer else 0
        if line_count != len(source_map):
            raise ValueError(
                f"Source map has {len(source_map)} entries for {line_count} rules"
            )
        return cls(
            source_index=int(data["sourceIndex"]),
            source_url=str(data["sourceUrl"]),
            rule_buffer=rule_buffer,
            source_map=source_map,
        )


def _is_comment_or_header(line: str) -> bool:
    if line.startswith("!") or line.startswith("#"):
        return True
    return line.startswith("[") and line.endswith("]")


def _is_cosmetic(line: str) -> bool:
    return any(marker in line for marker in _COSMETIC_MARKERS)


def normalize_rule(line: str) -> str | None:
    """Return the network rule for one raw line, or None to drop it."""
    line = line.strip()
    if not line:
        return None
    m = _HOSTS_LINE_RE.match(line)
    if m:
        host = m.group("host").lower()
        if host in _LOCAL_HOSTS:
            return None
        return f"||{host}^"
    if _is_cosmetic(line):
        return None
    if _is_comment_or_header(line):
        return None
    return line


def preprocess(source_index: SourceIndex, source_url: Url, raw_text: str) -> CompiledList:
    """Compile the raw text of one list into a CompiledList."""
    rules: list[str] = []
    source_map: list[int] = []
    for line_no, raw_line in enumerate(raw_text.splitlines(), start=1):
        rule = normalize_rule(raw_line)
        if rule is None:
            continue
        rules.append(rule)
        source_map.append(line_no)
    return CompiledList(
        source_index=source_index,
        source_url=source_url,
        rule_buffer="\n".join(rules).encode("utf-8"),
        source_map=tuple(source_map),
    )
