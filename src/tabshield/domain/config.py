"""Configuration: the user's protection settings.

A Configuration is frozen. The only way to build one is through
``Configuration.create`` (or ``from_dict`` / ``with_changes``, which call
it), so every instance is already cleaned:

  - surrounding whitespace is trimmed
  - empty strings are dropped from both sequences
  - list_sources keeps the first occurrence of each URL, in order
  - blocked_domains are lower-cased and de-duplicated, in order

The storage form uses the camelCase keys the settings page writes:
``protectionEnabled``, ``adblockLists``, ``blockedDomains``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from tabshield.domain.types import DomainName, Url

DEFAULT_LIST_SOURCES: tuple[Url, ...] = (
    "https://easylist.to/easylist/easylist.txt",
    "https://big.oisd.nl",
)


def _clean(values: Iterable[str] | None, *, lower: bool = False) -> tuple[str, ...]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in values or ():
        if not isinstance(raw, str):
            continue
        value = raw.strip()
        if lower:
            value = value.lower()
        if not value or value in seen:
            continue
        seen.add(value)
        cleaned.append(value)
    return tuple(cleaned)


@dataclass(frozen=True, slots=True)
class Configuration:
    protection_enabled: bool
    list_sources: tuple[Url, ...]
    blocked_domains: tuple[DomainName, ...]

    @classmethod
    def create(
        cls,
        protection_enabled: bool = True,
        list_sources: Iterable[Url] | None = None,
        blocked_domains: Iterable[DomainName] | None = None,
    ) -> Configuration:
        """Factory: build a cleaned configuration."""
        return cls(
            protection_enabled=bool(protection_enabled),
            list_sources=_clean(list_sources),
            blocked_domains=_clean(blocked_domains, lower=True),
        )

    @classmethod
    def default(cls) -> Configuration:
        return cls.create(True, DEFAULT_LIST_SOURCES, ())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Configuration:
        """Build from the storage form. Missing keys fall back to defaults."""
        return cls.create(
            protection_enabled=data.get("protectionEnabled", True),
            list_sources=data.get("adblockLists", DEFAULT_LIST_SOURCES),
            blocked_domains=data.get("blockedDomains", ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "protectionEnabled": self.protection_enabled,
            "adblockLists": list(self.list_sources),
            "blockedDomains": list(self.blocked_domains),
        }

    def with_changes(self, **changes: Any) -> Configuration:
        """Return a re-cleaned copy with the given fields replaced."""
        fields = {
            "protection_enabled": self.protection_enabled,
            "list_sources": self.list_sources,
            "blocked_domains": self.blocked_domains,
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError(f"Unknown configuration fields: {sorted(unknown)}")
        fields.update(changes)
        return Configuration.create(**fields)

    def is_domain_blocked(self, hostname: str | None) -> bool:
        if not hostname:
            return False
        return hostname.lower() in self.blocked_domains
