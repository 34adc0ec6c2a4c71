"""Verdicts produced by the decision pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class DecisionReason(Enum):
    DOMAIN_BLOCKED = auto()
    RULE_MATCHED = auto()
    ALLOWLISTED = auto()
    NO_MATCH = auto()
    NO_ENGINE = auto()
    PROTECTION_DISABLED = auto()
    EVALUATION_FAILED = auto()


@dataclass(frozen=True, slots=True)
class MatchVerdict:
    """Final decision for one request.

    Only ``cancel`` crosses the boundary to the network layer; ``reason``
    is kept for logging and tests.
    """
    cancel: bool
    reason: DecisionReason

    def to_response(self) -> dict[str, bool]:
        return {"cancel": self.cancel}
