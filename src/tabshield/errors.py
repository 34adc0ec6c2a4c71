"""Exception hierarchy shared by every tabshield component.

Recoverable failures (a list that cannot be downloaded) are caught inside
the component that owns them and degrade to an empty ruleset. Contract
violations (a malformed message payload) propagate to the caller of the
message handler and nowhere else.
"""
from __future__ import annotations


class TabShieldError(Exception):
    """Base class for all tabshield errors."""


class ListFetchError(TabShieldError):
    """A filter list could not be downloaded or returned a non-success status."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch filter list {url}: {reason}")
        self.url = url
        self.reason = reason


class MessageContractError(TabShieldError):
    """A message had an unknown kind or a malformed payload."""


class StorageError(TabShieldError):
    """The key-value storage backend failed to read or write."""
