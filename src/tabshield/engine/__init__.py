"""Filter-list engine lifecycle: fetch, preprocess, cache, compile, swap.

EngineManager is not re-exported here; import it from
tabshield.engine.manager (it depends on tabshield.store, which itself
stores CompiledList values from this package).
"""
from tabshield.engine.compiled import CompiledList, preprocess
from tabshield.engine.engine import (
    Engine,
    MatchedRule,
    MatchResult,
    Request,
    RequestType,
    hostname_of,
)
from tabshield.engine.fetcher import ListFetcher

__all__ = [
    "CompiledList",
    "preprocess",
    "Engine",
    "MatchedRule",
    "MatchResult",
    "Request",
    "RequestType",
    "hostname_of",
    "ListFetcher",
]
