"""
Error taxonomy for the clustering pipeline.

None of these ever escape the orchestrator: they are caught at the adapter or
collection boundary and recorded on the per-item status instead.
"""


class TabCompanionError(Exception):
    """Base class for all tab companion errors."""


class ExtractionFailure(TabCompanionError):
    """Page content could not be extracted for an item."""


class EnrichmentUnavailable(TabCompanionError):
    """An enrichment signal could not be obtained for an item."""


class ServiceUnavailableError(EnrichmentUnavailable):
    """The enrichment service reported that it is not available."""


class MalformedResponseError(EnrichmentUnavailable):
    """The enrichment service answered with something we cannot use."""


class DeadlineExceeded(TabCompanionError):
    """The global scan deadline elapsed before enrichment finished."""
