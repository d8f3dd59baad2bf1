"""
Exception taxonomy for the ingestion pipeline.

Only conditions that cross a component boundary are exceptions. Normalizer
rejections, classifier rejections and duplicates are ordinary return values
and are counted by the orchestrator instead of raised.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline errors."""


class SourceFetchError(PipelineError):
    """A connector call failed (timeout, non-2xx, malformed payload)."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code

    def __str__(self):
        prefix = f"[{self.source}] " if self.source else ""
        suffix = f" (HTTP {self.status_code})" if self.status_code else ""
        return f"{prefix}{self.args[0]}{suffix}"


class RateLimitedError(SourceFetchError):
    """HTTP 429 from a paid API; the only response class that is retried."""


class StoreError(PipelineError):
    """A persistence call failed."""


class BudgetExceeded(PipelineError):
    """
    Planned early-termination signal for a run.

    Raised between batches when the wall-clock budget is spent and caught by
    the orchestrator, which returns the partial results accumulated so far.
    """

    def __init__(self, elapsed_seconds: float, budget_seconds: float):
        super().__init__(f"Budget of {budget_seconds:.0f}s exhausted after {elapsed_seconds:.1f}s")
        self.elapsed_seconds = elapsed_seconds
        self.budget_seconds = budget_seconds
