"""Request interception: the per-request decision pipeline."""
from tabshield.interceptor.pipeline import DecisionPipeline, RequestDetails, evaluate

__all__ = ["DecisionPipeline", "RequestDetails", "evaluate"]
